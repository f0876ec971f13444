"""Exceptions raised by the skin installer.

Fatal errors (host environment, version gate, failed shell hooks) abort the
current lifecycle call. ConfigError and its subclasses are reported by the
installer but never undo placed files.
"""


class SkinInstallerError(Exception):
    """Base exception for skin installer errors."""


class HostEnvironmentError(SkinInstallerError):
    """Roundcube installation or its version definition not found."""


class IncompatibleVersionError(SkinInstallerError):
    """Package version constraint not satisfied by the detected Roundcube version."""

    def __init__(self, package: str, operator: str, required: str, detected: str):
        self.package = package
        self.operator = operator
        self.required = required
        self.detected = detected
        super().__init__(
            f"Version check failed! {package} requires Roundcube version "
            f"{operator} {required}, {detected} was detected."
        )


class ConfigError(SkinInstallerError):
    """Base exception for local config activation failures."""


class ConfigNotFoundError(ConfigError):
    """Config file does not exist."""


class ConfigNotWritableError(ConfigError):
    """Config file exists but cannot be written."""


class ConfigParseError(ConfigError):
    """Config file could not be read."""


class ConfigKeyNotFoundError(ConfigError):
    """No assignment to the skin key in the config file."""


class ConfigWriteError(ConfigError):
    """Writing the patched config file failed."""


class ScriptError(SkinInstallerError):
    """Base exception for lifecycle script failures."""


class CommandFailedError(ScriptError):
    """Shell command lifecycle script exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Error executing script: {stderr.strip() or command} (exit code {exit_code})")
