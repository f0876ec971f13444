"""Lifecycle script execution.

A package may declare post-install, post-update and post-uninstall scripts.
Each declared script is resolved to exactly one hook variant, checked in
this order:

    1. ExecutableHook      - an executable file inside the package
    2. EmbeddedScriptHook  - a PHP file inside the package, run in the
                             Roundcube context (iniset.php loaded first)
    3. ShellCommandHook    - the declared string itself, run by the shell

Failure handling per variant:

    ExecutableHook       exit status is logged, never raised
    EmbeddedScriptHook   any failure propagates unhandled
                         (subprocess.CalledProcessError, OSError)
    ShellCommandHook     non-zero exit raises CommandFailedError
"""

import logging
import os
import shlex
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from skin_installer.composer.exceptions import CommandFailedError

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT_SUFFIXES = (".php",)


@dataclass(frozen=True)
class HookContext:
    """Environment shared by every hook run.

    Attributes:
        root_dir: Roundcube installation root (working directory for hooks)
        bootstrap_file: Roundcube iniset.php loaded before embedded scripts
        php_binary: PHP interpreter used for embedded scripts
    """

    root_dir: Path
    bootstrap_file: Path
    php_binary: str = "php"


class LifecycleHook(ABC):
    """A resolved lifecycle script."""

    @abstractmethod
    def run(self, context: HookContext) -> None:
        """Execute the hook, applying the variant's failure policy."""


@dataclass(frozen=True)
class ExecutableHook(LifecycleHook):
    path: Path

    def run(self, context: HookContext) -> None:
        logger.info(f"Running executable script {self.path}")
        # Through the shell so scripts without a shebang still run
        result = subprocess.run(shlex.quote(str(self.path)), shell=True, cwd=context.root_dir)
        if result.returncode != 0:
            logger.warning(f"Script {self.path} exited with status {result.returncode}")


@dataclass(frozen=True)
class EmbeddedScriptHook(LifecycleHook):
    path: Path

    def command(self, context: HookContext) -> list[str]:
        """PHP invocation that loads iniset.php before the script."""
        return [
            context.php_binary,
            "-d",
            f"auto_prepend_file={context.bootstrap_file}",
            str(self.path),
        ]

    def run(self, context: HookContext) -> None:
        logger.info(f"Running PHP script {self.path} in Roundcube context")
        subprocess.run(self.command(context), cwd=context.root_dir, check=True)


@dataclass(frozen=True)
class ShellCommandHook(LifecycleHook):
    command: str

    def run(self, context: HookContext) -> None:
        logger.info(f"Running shell command: {self.command}")
        result = subprocess.run(
            self.command,
            shell=True,
            cwd=context.root_dir,
            capture_output=True,
            text=True,
        )

        if result.stdout:
            logger.debug(result.stdout.rstrip())
        if result.returncode != 0:
            raise CommandFailedError(self.command, result.returncode, result.stderr or "")


def resolve_hook(
    script: str,
    package_dir: Path,
    script_suffixes: Sequence[str] = DEFAULT_SCRIPT_SUFFIXES,
) -> LifecycleHook:
    """Pick the hook variant for a declared script.

    Args:
        script: Declared script (relative file path or shell command)
        package_dir: Installed package directory the path is relative to
        script_suffixes: File suffixes run as embedded PHP scripts

    Returns:
        ExecutableHook, EmbeddedScriptHook or ShellCommandHook
    """
    # Plain string join: an absolute script still lands under package_dir
    try:
        script_file = Path(f"{package_dir}/{script}").resolve(strict=True)
    except (OSError, RuntimeError, ValueError):
        script_file = None

    if script_file is not None and script_file.is_file():
        if os.access(script_file, os.X_OK):
            return ExecutableHook(script_file)
        if script_file.name.endswith(tuple(script_suffixes)):
            return EmbeddedScriptHook(script_file)

    return ShellCommandHook(script)


class ScriptRunner:
    """Runs lifecycle scripts declared by skin packages.

    Attributes:
        vendor_dir: Directory skins are installed into
        context: Shared hook environment
        script_suffixes: File suffixes run as embedded PHP scripts
    """

    def __init__(
        self,
        root_dir: Path,
        vendor_dir: Path | None = None,
        php_binary: str = "php",
        bootstrap_file: Path | None = None,
        script_suffixes: Sequence[str] = DEFAULT_SCRIPT_SUFFIXES,
    ):
        self.vendor_dir = vendor_dir or (root_dir / "skins")
        self.context = HookContext(
            root_dir=root_dir,
            bootstrap_file=bootstrap_file or (root_dir / "program" / "include" / "iniset.php"),
            php_binary=php_binary,
        )
        self.script_suffixes = tuple(script_suffixes)

    def resolve(self, script: str, package_short_name: str) -> LifecycleHook:
        return resolve_hook(script, self.vendor_dir / package_short_name, self.script_suffixes)

    def run(self, script: str, package_short_name: str) -> None:
        """Resolve and run a lifecycle script.

        Args:
            script: Declared script (path relative to the package, or shell command)
            package_short_name: Package name without vendor prefix

        Raises:
            CommandFailedError: If a shell command exits non-zero
            subprocess.CalledProcessError: If an embedded PHP script fails
        """
        hook = self.resolve(script, package_short_name)
        logger.debug(f"Resolved script {script!r} for {package_short_name} to {hook}")
        hook.run(self.context)
