"""Roundcube skin installer.

This module provides the SkinInstaller class that installs, updates and
removes skin packages under <root>/skins, checking Roundcube version
compatibility, optionally activating the skin in the local config, and
running the package's lifecycle scripts.
"""

import logging
from functools import cached_property
from pathlib import Path

from skin_installer.composer.config_patcher import ConfigPatcher
from skin_installer.composer.console import ConsoleIO, NullIO
from skin_installer.composer.exceptions import ConfigError
from skin_installer.composer.library import InstalledRepository, LibraryInstaller
from skin_installer.composer.package import (
    POST_INSTALL_SCRIPT,
    POST_UNINSTALL_SCRIPT,
    POST_UPDATE_SCRIPT,
    Package,
)
from skin_installer.composer.scripts import ScriptRunner
from skin_installer.composer.versioning import VersionGate
from skin_installer.settings import Settings

logger = logging.getLogger(__name__)

INSTALLER_TYPE = "roundcube-skin"


class SkinInstaller:
    """Installer for Roundcube skin packages.

    Attributes:
        settings: Installer settings (root directory and layout)
        io: Console used for the activation prompt and messages
        library: Base installer placing package files
        gate: Roundcube version gate
        patcher: Local config patcher
        runner: Lifecycle script runner
    """

    def __init__(
        self,
        settings: Settings,
        io: ConsoleIO | None = None,
        library: LibraryInstaller | None = None,
        gate: VersionGate | None = None,
        patcher: ConfigPatcher | None = None,
        runner: ScriptRunner | None = None,
    ):
        self.settings = settings
        self.io = io or NullIO()
        self.library = library or LibraryInstaller(self.get_install_path)
        self.gate = gate or VersionGate(settings.root_dir, settings.iniset_path)
        self.patcher = patcher or ConfigPatcher(settings.root_dir, settings.config_path)
        self.runner = runner or ScriptRunner(
            settings.root_dir,
            vendor_dir=self.vendor_dir,
            php_binary=settings.php_binary,
            bootstrap_file=settings.iniset_path,
            script_suffixes=settings.script_suffixes,
        )

    @cached_property
    def vendor_dir(self) -> Path:
        """Directory skins are installed into (<root>/skins)."""
        return self.settings.vendor_dir

    def supports(self, package_type: str) -> bool:
        return package_type == INSTALLER_TYPE

    def get_skin_name(self, package: Package) -> str:
        """Skin directory name: the short package name with "-" replaced by "_"."""
        return package.short_name.replace("-", "_")

    def get_install_path(self, package: Package) -> Path:
        return self.vendor_dir / self.get_skin_name(package)

    def install(self, repo: InstalledRepository, package: Package) -> None:
        """Install a skin package.

        Raises:
            HostEnvironmentError: If no Roundcube installation is found
            IncompatibleVersionError: If the package rejects the Roundcube version
            CommandFailedError: If the post-install shell command fails
        """
        self.gate.check(package)
        self.library.install(repo, package)

        if self.patcher.is_writable() and self.io.is_interactive():
            skin_name = self.get_skin_name(package)
            answer = self.io.ask_confirmation(
                f"Do you want to activate the skin {skin_name}? [N|y] ", default=False
            )
            if answer:
                self._activate(skin_name)

        self._run_script(package, POST_INSTALL_SCRIPT)

    def update(self, repo: InstalledRepository, initial: Package, target: Package) -> None:
        """Update an installed skin package to the target version.

        Raises:
            HostEnvironmentError: If no Roundcube installation is found
            IncompatibleVersionError: If the target rejects the Roundcube version
            CommandFailedError: If the post-update shell command fails
        """
        self.gate.check(target)
        self.library.update(repo, initial, target)
        self._run_script(target, POST_UPDATE_SCRIPT)

    def uninstall(self, repo: InstalledRepository, package: Package) -> None:
        """Remove an installed skin package.

        Raises:
            CommandFailedError: If the post-uninstall shell command fails
        """
        self.library.uninstall(repo, package)
        self._run_script(package, POST_UNINSTALL_SCRIPT)

    def _activate(self, skin_name: str) -> bool:
        # Activation failures never roll back the installed files
        try:
            changed = self.patcher.activate(skin_name)
        except ConfigError as e:
            logger.warning(f"Skin activation failed: {e}")
            self.io.write_error(f"Unable to activate skin {skin_name}: {e}")
            return False

        if changed:
            self.io.write(f"Updated local config at {self.patcher.config_file}")
        return changed

    def _run_script(self, package: Package, key: str) -> None:
        script = package.get_script(key)
        if script:
            logger.debug(f"Running {key} for {package.name}")
            self.runner.run(script, package.short_name)
