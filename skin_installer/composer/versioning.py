"""Roundcube version detection and package compatibility checking.

This module normalizes version strings the way Composer does, compares them,
and provides the VersionGate that checks a package's declared min/max
Roundcube versions against the installed host.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from skin_installer.composer.exceptions import HostEnvironmentError, IncompatibleVersionError
from skin_installer.composer.package import MAX_VERSION, MIN_VERSION, Package

logger = logging.getLogger(__name__)

# Development builds compare newer than any numbered release with the same prefix
DEV_SUFFIX = "-git"
DEV_REPLACEMENT = ".999"

RCMAIL_VERSION_PATTERN = re.compile(r"define\(.RCMAIL_VERSION.,\s*.([0-9.]+[a-z-]*)")

_VERSION_PATTERN = re.compile(
    r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:[._-]?(stable|beta|b|rc|alpha|a|patch|pl|p|dev)(?:[.-]?(\d+))?)?$",
    re.IGNORECASE,
)
_NORMALIZED_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)\.(\d+)(?:-(dev|alpha|beta|RC|patch)(\d*))?$")

_STABILITY_ALIASES = {
    "a": "alpha",
    "alpha": "alpha",
    "b": "beta",
    "beta": "beta",
    "rc": "RC",
    "p": "patch",
    "pl": "patch",
    "patch": "patch",
    "dev": "dev",
    "stable": "",
}
_STABILITY_RANK = {"dev": 0, "alpha": 1, "beta": 2, "RC": 3, "": 4, "patch": 5}

# Constraint keys in "extra.roundcube" and the operator each one applies
CONSTRAINT_OPERATORS = ((MIN_VERSION, ">="), (MAX_VERSION, "<="))


def normalize_version(version: str) -> str:
    """Normalize a version string to Composer's four-part form.

    Args:
        version: Version string (e.g., "1.4", "1.5-git", "1.6-beta")

    Returns:
        Normalized version (e.g., "1.4.0.0", "1.5.999.0", "1.6.0.0-beta")

    Raises:
        ValueError: If the version string can't be parsed

    Examples:
        >>> normalize_version("1.4")
        '1.4.0.0'
        >>> normalize_version("1.5-git")
        '1.5.999.0'
        >>> normalize_version("1.0-rc1")
        '1.0.0.0-RC1'
    """
    cleaned = version.strip().replace(DEV_SUFFIX, DEV_REPLACEMENT)
    match = _VERSION_PATTERN.match(cleaned)

    if not match:
        raise ValueError(f"Invalid version string: {version}")

    numbers = [int(part) if part else 0 for part in match.groups()[:4]]
    stability = _STABILITY_ALIASES[match.group(5).lower()] if match.group(5) else ""
    normalized = ".".join(str(n) for n in numbers)

    if stability:
        normalized += f"-{stability}{match.group(6) or ''}"

    return normalized


def _version_key(version: str) -> tuple[int, int, int, int, int, int]:
    """Build a sortable key from any version string."""
    match = _NORMALIZED_PATTERN.match(version) or _NORMALIZED_PATTERN.match(
        normalize_version(version)
    )
    if not match:
        raise ValueError(f"Invalid version string: {version}")

    major, minor, patch, build, stability, number = match.groups()
    return (
        int(major),
        int(minor),
        int(patch),
        int(build),
        _STABILITY_RANK[stability or ""],
        int(number) if number else 0,
    )


def compare_versions(v1: str, v2: str) -> int:
    """Compare two version strings.

    Numeric components are compared first, then stability
    (dev < alpha < beta < RC < stable < patch), then the stability number.

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2

    Raises:
        ValueError: If either version string is invalid

    Examples:
        >>> compare_versions("1.4.0.0", "1.4")
        0
        >>> compare_versions("1.5-git", "1.5.3")
        1
        >>> compare_versions("1.6-beta", "1.6")
        -1
    """
    key1 = _version_key(v1)
    key2 = _version_key(v2)

    if key1 == key2:
        return 0
    return 1 if key1 > key2 else -1


def version_satisfies(detected: str, operator: str, required: str) -> bool:
    """Evaluate `detected <operator> required`.

    Raises:
        ValueError: If the operator is unknown or a version is invalid
    """
    result = compare_versions(detected, required)

    if operator == ">=":
        return result >= 0
    if operator == "<=":
        return result <= 0
    if operator == ">":
        return result > 0
    if operator == "<":
        return result < 0
    if operator in ("==", "="):
        return result == 0
    if operator in ("!=", "<>"):
        return result != 0

    raise ValueError(f"Unknown version operator: {operator}")


@dataclass(frozen=True)
class VersionConstraint:
    """A declared Roundcube version bound.

    Attributes:
        operator: ">=" for min-version, "<=" for max-version
        version: Normalized required version
    """

    operator: str
    version: str

    def is_satisfied_by(self, detected: str) -> bool:
        return version_satisfies(detected, self.operator, self.version)


def constraints_for(package: Package) -> Iterator[VersionConstraint]:
    """Yield the package's declared constraints, min-version first."""
    extra = package.roundcube_extra

    for key, operator in CONSTRAINT_OPERATORS:
        if extra.get(key):
            yield VersionConstraint(operator, normalize_version(str(extra[key])))


def read_host_version(iniset_path: Path) -> str:
    """Read the normalized Roundcube version from iniset.php.

    Args:
        iniset_path: Path to program/include/iniset.php

    Returns:
        Normalized Roundcube version

    Raises:
        HostEnvironmentError: If the file is unreadable or has no version definition
    """
    try:
        content = iniset_path.read_text(errors="replace")
    except OSError as e:
        raise HostEnvironmentError(f"Unable to read {iniset_path}: {e}") from e

    match = RCMAIL_VERSION_PATTERN.search(content)
    if not match:
        raise HostEnvironmentError(f"No RCMAIL_VERSION definition found in {iniset_path}")

    try:
        return normalize_version(match.group(1))
    except ValueError as e:
        raise HostEnvironmentError(f"Unrecognized Roundcube version in {iniset_path}: {e}") from e


class VersionGate:
    """Checks package version constraints against the installed Roundcube.

    Attributes:
        root_dir: Roundcube installation root
        iniset_path: File holding the RCMAIL_VERSION definition
    """

    def __init__(self, root_dir: Path, iniset_path: Path | None = None):
        self.root_dir = root_dir
        self.iniset_path = iniset_path or (root_dir / "program" / "include" / "iniset.php")

    def detect_version(self) -> str:
        """Return the normalized version of the Roundcube installation.

        Raises:
            HostEnvironmentError: If no Roundcube installation is found
        """
        try:
            version = read_host_version(self.iniset_path)
        except HostEnvironmentError as e:
            raise HostEnvironmentError(
                f"Unable to find a Roundcube installation in {self.root_dir}: {e}"
            ) from e

        logger.debug(f"Detected Roundcube version {version} in {self.root_dir}")
        return version

    def check(self, package: Package) -> None:
        """Verify the package accepts the installed Roundcube version.

        Raises:
            HostEnvironmentError: If no Roundcube installation is found
            IncompatibleVersionError: On the first violated constraint
            ValueError: If the package declares an unparseable version
        """
        detected = self.detect_version()

        for constraint in constraints_for(package):
            logger.debug(
                f"Checking {package.name}: Roundcube {detected} "
                f"{constraint.operator} {constraint.version}"
            )
            if not constraint.is_satisfied_by(detected):
                raise IncompatibleVersionError(
                    package.name, constraint.operator, constraint.version, detected
                )
