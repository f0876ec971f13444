"""Package file placement and the repository of installed packages.

LibraryInstaller places, replaces and removes package files; the skin
installer layers its Roundcube-specific steps on top of it.
InstalledRepository tracks which packages are installed.
"""

import logging
import shutil
import tarfile
import tempfile
from collections.abc import Callable
from pathlib import Path

from skin_installer.composer.package import Package, is_archive, load_package

logger = logging.getLogger(__name__)


class InstalledRepository:
    """Repository of installed packages.

    Attributes:
        vendor_dir: Directory scanned for installed packages (optional)
        packages: Dictionary mapping package names to Package objects
    """

    def __init__(self, vendor_dir: Path | None = None):
        self.vendor_dir = vendor_dir
        self.packages: dict[str, Package] = {}
        self.refresh()

    def refresh(self) -> None:
        """Rebuild the repository from composer.json files under vendor_dir.

        Directories without a readable composer.json are skipped.
        """
        self.packages = {}
        if self.vendor_dir is None or not self.vendor_dir.is_dir():
            return

        for item in sorted(self.vendor_dir.iterdir()):
            if not (item / "composer.json").is_file():
                continue
            try:
                package = load_package(item)
            except (OSError, ValueError) as e:
                logger.debug(f"Skipping {item}: {e}")
                continue
            self.packages[package.name] = package

    def add_package(self, package: Package) -> None:
        self.packages[package.name] = package

    def remove_package(self, package: Package) -> None:
        self.packages.pop(package.name, None)

    def has_package(self, package: Package) -> bool:
        return package.name in self.packages

    def find_package(self, name: str) -> Package | None:
        """Get installed package by name, or None."""
        return self.packages.get(name)

    def list_packages(self) -> list[Package]:
        """List installed packages sorted by name."""
        return sorted(self.packages.values(), key=lambda p: p.name)

    def count(self) -> int:
        return len(self.packages)


def _extract_archive(archive_path: Path, target_dir: Path) -> None:
    """Extract a package archive into target_dir.

    A single top-level directory in the archive is stripped.

    Raises:
        FileNotFoundError: If archive doesn't exist
        tarfile.TarError: If archive is invalid
        ValueError: If the archive holds absolute paths, parent refs or links
    """
    if not archive_path.exists():
        raise FileNotFoundError(f"Archive not found: {archive_path}")

    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)

        with tarfile.open(archive_path, "r:gz") as tar:
            # Security check: ensure no absolute paths, parent refs, or links
            for member in tar.getmembers():
                if member.name.startswith("/") or ".." in Path(member.name).parts:
                    raise ValueError(f"Invalid archive member path: {member.name}")
                if member.issym() or member.islnk():
                    raise ValueError(
                        f"Symlinks/hardlinks not allowed in package archives: {member.name}"
                    )

            tar.extractall(temp_path)

        entries = list(temp_path.iterdir())
        content_dir = entries[0] if len(entries) == 1 and entries[0].is_dir() else temp_path

        shutil.copytree(content_dir, target_dir)


class LibraryInstaller:
    """Places package files at their install path.

    Attributes:
        install_path: Callable returning the install path of a package
    """

    def __init__(self, install_path: Callable[[Package], Path]):
        self.install_path = install_path

    def is_installed(self, repo: InstalledRepository, package: Package) -> bool:
        return repo.has_package(package) and self.install_path(package).exists()

    def _place_files(self, package: Package) -> Path:
        if package.source is None:
            raise ValueError(f"Package {package.name} has no source to install from")
        if not package.source.exists():
            raise FileNotFoundError(f"Package source not found: {package.source}")

        target = self.install_path(package)
        if not is_archive(package.source) and package.source.resolve() == target.resolve():
            return target

        if target.exists():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)

        if is_archive(package.source):
            _extract_archive(package.source, target)
        else:
            shutil.copytree(package.source, target)

        return target

    def _remove_files(self, package: Package) -> None:
        target = self.install_path(package)
        if target.exists():
            shutil.rmtree(target)

    def install(self, repo: InstalledRepository, package: Package) -> Path:
        """Place package files and register the package.

        Returns:
            Install path

        Raises:
            FileNotFoundError: If the package source doesn't exist
            ValueError: If the package has no source or its archive is unsafe
        """
        target = self._place_files(package)
        repo.add_package(package)
        logger.info(f"Installed {package.name} ({package.version}) to {target}")
        return target

    def update(self, repo: InstalledRepository, initial: Package, target: Package) -> Path:
        """Replace an installed package with a new version.

        Raises:
            FileNotFoundError: If the initial package isn't installed
        """
        if not self.is_installed(repo, initial):
            raise FileNotFoundError(f"Package not installed: {initial.name}")

        self._remove_files(initial)
        repo.remove_package(initial)

        path = self._place_files(target)
        repo.add_package(target)
        logger.info(f"Updated {initial.name} from {initial.version} to {target.version}")
        return path

    def uninstall(self, repo: InstalledRepository, package: Package) -> None:
        """Remove package files and unregister the package.

        Raises:
            ValueError: If the package isn't installed
        """
        if not repo.has_package(package):
            raise ValueError(f"Package is not installed: {package.name}")

        self._remove_files(package)
        repo.remove_package(package)
        logger.info(f"Removed {package.name}")
