"""Skin package data model and composer.json loading.

This module provides the Package dataclass consumed by the installer and
functions for reading package metadata from a composer.json file.
"""

import json
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Keys read from the "extra.roundcube" block of a package
MIN_VERSION = "min-version"
MAX_VERSION = "max-version"
POST_INSTALL_SCRIPT = "post-install-script"
POST_UPDATE_SCRIPT = "post-update-script"
POST_UNINSTALL_SCRIPT = "post-uninstall-script"


@dataclass
class Package:
    """A skin package as seen by the installer.

    Attributes:
        name: Pretty package name (e.g., "roundcube/my-skin")
        version: Package version string (e.g., "1.0.2")
        type: Package type tag (e.g., "roundcube-skin")
        extra: Free-form "extra" block from composer.json
        source: Directory or .tar.gz archive holding the package files (optional)
    """

    name: str
    version: str = "dev-master"
    type: str = "library"
    extra: dict[str, Any] = field(default_factory=dict)
    source: Path | None = None

    @property
    def vendor(self) -> str:
        """Vendor part of the package name (empty if the name has none)."""
        vendor, _, short_name = self.name.partition("/")
        return vendor if short_name else ""

    @property
    def short_name(self) -> str:
        """Package name without its vendor prefix.

        Only the segment after the vendor is used; any further "/" parts are ignored.
        """
        parts = self.name.split("/")
        return parts[1] if len(parts) > 1 and parts[1] else parts[0]

    @property
    def roundcube_extra(self) -> dict[str, Any]:
        """The "extra.roundcube" block, or an empty dict."""
        block = self.extra.get("roundcube")
        return block if isinstance(block, dict) else {}

    def get_script(self, key: str) -> str | None:
        """Return a declared lifecycle script, or None if unset or empty."""
        script = self.roundcube_extra.get(key)
        return script or None

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: Path | None = None) -> "Package":
        """Create package from composer.json content.

        Args:
            data: Parsed composer.json
            source: Location of the package files

        Returns:
            Package instance

        Raises:
            ValueError: If the package name is missing
        """
        if not data.get("name"):
            raise ValueError("Package metadata is missing the 'name' field")

        extra = data.get("extra") or {}
        return cls(
            name=data["name"],
            version=data.get("version", "dev-master"),
            type=data.get("type", "library"),
            extra=extra if isinstance(extra, dict) else {},
            source=source,
        )


def is_archive(path: Path) -> bool:
    """Check if path names a gzipped tar archive."""
    return path.name.endswith((".tar.gz", ".tgz"))


def _read_archive_metadata(archive_path: Path) -> dict[str, Any]:
    """Read composer.json from the archive root or its single top-level directory."""
    with tarfile.open(archive_path, "r:gz") as tar:
        for member in tar.getmembers():
            parts = Path(member.name).parts
            if member.isfile() and parts[-1] == "composer.json" and len(parts) <= 2:
                f = tar.extractfile(member)
                if f is not None:
                    return json.load(f)

    raise FileNotFoundError(f"composer.json not found in archive {archive_path}")


def load_package(path: Path) -> Package:
    """Load a package from a directory, composer.json file or archive.

    Args:
        path: Package directory, its composer.json, or a .tar.gz/.tgz archive

    Returns:
        Loaded Package whose source points at the package files

    Raises:
        FileNotFoundError: If path or composer.json doesn't exist
        json.JSONDecodeError: If composer.json contains invalid JSON
        tarfile.TarError: If the archive is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Package source not found: {path}")

    if is_archive(path):
        return Package.from_dict(_read_archive_metadata(path), source=path)

    composer_path = path if path.name == "composer.json" else path / "composer.json"
    if not composer_path.exists():
        raise FileNotFoundError(f"composer.json not found in {composer_path.parent}")

    with open(composer_path) as f:
        data = json.load(f)

    return Package.from_dict(data, source=composer_path.parent)
