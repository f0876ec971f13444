"""
Configuration management for the skin installer.

Settings come from, in increasing priority: field defaults, SKIN_INSTALLER_*
environment variables, an optional YAML file, and explicit overrides.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Installer settings."""

    # Roundcube installation root (defaults to the working directory)
    root_dir: Path = Field(default_factory=Path.cwd)

    # Layout relative to root_dir
    skins_dir: str = "skins"
    config_file: str = "config/config.inc.php"
    iniset_file: str = "program/include/iniset.php"

    # Lifecycle scripts
    php_binary: str = "php"
    script_suffixes: list[str] = [".php"]

    model_config = {"env_prefix": "SKIN_INSTALLER_"}

    @property
    def vendor_dir(self) -> Path:
        return self.root_dir / self.skins_dir

    @property
    def config_path(self) -> Path:
        return self.root_dir / self.config_file

    @property
    def iniset_path(self) -> Path:
        return self.root_dir / self.iniset_file


def load_config(config_path: Path) -> dict[str, Any]:
    """
    Load installer settings from a YAML file.

    Values are read from the top-level "installer" key.

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        config = yaml.safe_load(f) or {}

    return config.get("installer") or {}


def load_settings(config_path: Path | None = None, **overrides: Any) -> Settings:
    """
    Build installer settings.

    Args:
        config_path: Optional YAML settings file
        **overrides: Explicit values (None values are ignored)

    Returns:
        Settings instance
    """
    values: dict[str, Any] = {}

    if config_path is not None:
        values.update(load_config(config_path))

    values.update({key: value for key, value in overrides.items() if value is not None})

    return Settings(**values)
