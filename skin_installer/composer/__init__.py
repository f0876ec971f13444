"""Composer-style installer for Roundcube skin packages.

This module provides the installer that places skin packages under
<root>/skins, the Roundcube version gate, local config activation and
lifecycle script execution.
"""

from skin_installer.composer.config_patcher import (
    ConfigDocument,
    ConfigPatcher,
    ConfigVariable,
    load_config_document,
    parse_config,
    render_skin_value,
)
from skin_installer.composer.console import ConsoleIO, NullIO
from skin_installer.composer.exceptions import (
    CommandFailedError,
    ConfigError,
    ConfigKeyNotFoundError,
    ConfigNotFoundError,
    ConfigNotWritableError,
    ConfigParseError,
    ConfigWriteError,
    HostEnvironmentError,
    IncompatibleVersionError,
    ScriptError,
    SkinInstallerError,
)
from skin_installer.composer.installer import INSTALLER_TYPE, SkinInstaller
from skin_installer.composer.library import InstalledRepository, LibraryInstaller
from skin_installer.composer.package import Package, load_package
from skin_installer.composer.scripts import (
    EmbeddedScriptHook,
    ExecutableHook,
    HookContext,
    LifecycleHook,
    ScriptRunner,
    ShellCommandHook,
    resolve_hook,
)
from skin_installer.composer.versioning import (
    VersionConstraint,
    VersionGate,
    compare_versions,
    normalize_version,
    read_host_version,
)

__all__ = [
    # Package metadata
    "Package",
    "load_package",
    # Versioning
    "VersionConstraint",
    "VersionGate",
    "compare_versions",
    "normalize_version",
    "read_host_version",
    # Config activation
    "ConfigDocument",
    "ConfigPatcher",
    "ConfigVariable",
    "load_config_document",
    "parse_config",
    "render_skin_value",
    # Lifecycle scripts
    "LifecycleHook",
    "ExecutableHook",
    "EmbeddedScriptHook",
    "ShellCommandHook",
    "HookContext",
    "ScriptRunner",
    "resolve_hook",
    # Installation
    "INSTALLER_TYPE",
    "SkinInstaller",
    "LibraryInstaller",
    "InstalledRepository",
    "ConsoleIO",
    "NullIO",
    # Errors
    "SkinInstallerError",
    "HostEnvironmentError",
    "IncompatibleVersionError",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigNotWritableError",
    "ConfigParseError",
    "ConfigKeyNotFoundError",
    "ConfigWriteError",
    "ScriptError",
    "CommandFailedError",
]
