"""
skin-installer CLI - Install Roundcube skin packages.

Usage:
    skin-installer install path/to/package [--root /srv/roundcube]
        Installs a skin from a package directory or .tar.gz archive.

    skin-installer update path/to/package
        Replaces the installed version of the same package.

    skin-installer remove vendor/name
        Removes an installed skin.

    skin-installer activate my_skin
        Sets the skin in the local Roundcube config.

    skin-installer check path/to/package
        Checks the package's Roundcube version constraints.

    skin-installer path vendor/name
        Prints the install path of a package.

    skin-installer list
        Lists installed skins.
"""

import argparse
import logging
import sys
import tarfile
from pathlib import Path

from skin_installer.composer.config_patcher import ConfigPatcher
from skin_installer.composer.console import ConsoleIO
from skin_installer.composer.exceptions import SkinInstallerError
from skin_installer.composer.installer import SkinInstaller
from skin_installer.composer.library import InstalledRepository
from skin_installer.composer.package import Package, load_package
from skin_installer.composer.versioning import VersionGate
from skin_installer.settings import Settings, load_settings

logger = logging.getLogger(__name__)


def _settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(
        Path(args.config) if args.config else None,
        root_dir=Path(args.root).resolve() if args.root else None,
    )
    logger.debug(f"Using Roundcube root {settings.root_dir}")
    return settings


def _installer(args: argparse.Namespace, settings: Settings) -> SkinInstaller:
    io = ConsoleIO(interactive=False) if args.no_interaction else ConsoleIO()
    return SkinInstaller(settings, io=io)


def _load_skin_package(source: str, installer: SkinInstaller) -> Package:
    package = load_package(Path(source))
    if not installer.supports(package.type):
        raise ValueError(
            f"{package.name} is a '{package.type}' package, not a Roundcube skin"
        )
    return package


def cmd_install(args: argparse.Namespace) -> None:
    """Execute the 'install' subcommand: install a skin package."""
    settings = _settings(args)
    installer = _installer(args, settings)
    package = _load_skin_package(args.source, installer)
    repo = InstalledRepository(installer.vendor_dir)

    installer.install(repo, package)
    print(f"Installed {package.name} to {installer.get_install_path(package)}")


def cmd_update(args: argparse.Namespace) -> None:
    """Execute the 'update' subcommand: replace an installed skin package."""
    settings = _settings(args)
    installer = _installer(args, settings)
    target = _load_skin_package(args.source, installer)
    repo = InstalledRepository(installer.vendor_dir)

    initial = repo.find_package(target.name)
    if initial is None:
        print(f"Error: {target.name} is not installed", file=sys.stderr)
        sys.exit(1)

    installer.update(repo, initial, target)
    print(f"Updated {target.name} from {initial.version} to {target.version}")


def cmd_remove(args: argparse.Namespace) -> None:
    """Execute the 'remove' subcommand: uninstall a skin package."""
    settings = _settings(args)
    installer = _installer(args, settings)
    repo = InstalledRepository(installer.vendor_dir)

    package = repo.find_package(args.name)
    if package is None:
        print(f"Error: {args.name} is not installed", file=sys.stderr)
        sys.exit(1)

    installer.uninstall(repo, package)
    print(f"Removed {package.name}")


def cmd_activate(args: argparse.Namespace) -> None:
    """Execute the 'activate' subcommand: set the skin in the local config."""
    settings = _settings(args)
    patcher = ConfigPatcher(settings.root_dir, settings.config_path)

    if patcher.activate(args.skin):
        print(f"Updated local config at {patcher.config_file}")
    else:
        print(f"Skin {args.skin} is already active")


def cmd_check(args: argparse.Namespace) -> None:
    """Execute the 'check' subcommand: verify version constraints only."""
    settings = _settings(args)
    package = load_package(Path(args.source))
    gate = VersionGate(settings.root_dir, settings.iniset_path)

    gate.check(package)
    print(f"{package.name} is compatible with Roundcube {gate.detect_version()}")


def cmd_path(args: argparse.Namespace) -> None:
    """Execute the 'path' subcommand: print a package's install path."""
    settings = _settings(args)
    installer = SkinInstaller(settings)
    print(installer.get_install_path(Package(name=args.name)))


def cmd_list(args: argparse.Namespace) -> None:
    """Execute the 'list' subcommand: list installed skins."""
    settings = _settings(args)
    repo = InstalledRepository(settings.vendor_dir)

    packages = repo.list_packages()
    if not packages:
        print("No skins installed.")
        return

    name_w = max(len(p.name) for p in packages)
    for package in packages:
        print(f"  {package.name:<{name_w}}  {package.version}")


def main(argv: list[str] | None = None) -> None:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--root", type=str, help="Roundcube installation root (default: cwd)")
    common.add_argument("--config", type=str, help="Path to installer settings YAML")
    common.add_argument(
        "-n", "--no-interaction", action="store_true", help="Do not ask any questions"
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    parser = argparse.ArgumentParser(
        prog="skin-installer",
        description="Install Roundcube skin packages",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    install_parser = subparsers.add_parser(
        "install", parents=[common], help="Install a skin package"
    )
    install_parser.add_argument("source", help="Package directory or .tar.gz archive")
    install_parser.set_defaults(func=cmd_install)

    update_parser = subparsers.add_parser(
        "update", parents=[common], help="Update an installed skin package"
    )
    update_parser.add_argument("source", help="Package directory or .tar.gz archive")
    update_parser.set_defaults(func=cmd_update)

    remove_parser = subparsers.add_parser(
        "remove", parents=[common], help="Remove an installed skin package"
    )
    remove_parser.add_argument("name", help="Package name (vendor/name)")
    remove_parser.set_defaults(func=cmd_remove)

    activate_parser = subparsers.add_parser(
        "activate", parents=[common], help="Activate a skin in the local config"
    )
    activate_parser.add_argument("skin", help="Skin directory name")
    activate_parser.set_defaults(func=cmd_activate)

    check_parser = subparsers.add_parser(
        "check", parents=[common], help="Check Roundcube version compatibility"
    )
    check_parser.add_argument("source", help="Package directory or .tar.gz archive")
    check_parser.set_defaults(func=cmd_check)

    path_parser = subparsers.add_parser(
        "path", parents=[common], help="Print the install path of a package"
    )
    path_parser.add_argument("name", help="Package name (vendor/name)")
    path_parser.set_defaults(func=cmd_path)

    list_parser = subparsers.add_parser("list", parents=[common], help="List installed skins")
    list_parser.set_defaults(func=cmd_list)

    args = parser.parse_args(argv)

    # Configure logging
    level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        args.func(args)
    except (SkinInstallerError, FileNotFoundError, ValueError, tarfile.TarError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
