"""Roundcube local config reading and skin activation.

This module reads config/config.inc.php without executing it: a small
reader walks the PHP source, records the literal values assigned to the
config array, and remembers where each assignment's expression sits in the
text. Activating a skin rewrites only those expression spans, so every
other byte of the file is preserved.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from skin_installer.composer.exceptions import (
    ConfigKeyNotFoundError,
    ConfigNotFoundError,
    ConfigNotWritableError,
    ConfigParseError,
    ConfigWriteError,
)

logger = logging.getLogger(__name__)

SKIN_KEY = "skin"

# Charset that round-trips any byte sequence unchanged
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"

_VARIABLE_PATTERN = re.compile(r"\$(config|rcmail_config)\b")
_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")
_DOUBLE_QUOTE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "$": "$"}


class ConfigVariable(Enum):
    """Name of the top-level config array.

    Roundcube before 1.0 used $rcmail_config; later versions use $config.
    """

    CONFIG = "config"
    RCMAIL_CONFIG = "rcmail_config"

    @property
    def php_name(self) -> str:
        return f"${self.value}"


@dataclass(frozen=True)
class RawExpression:
    """A PHP expression that isn't a plain literal (kept as source text)."""

    text: str


@dataclass(frozen=True)
class Assignment:
    """One assignment to the config array found in the source.

    Attributes:
        variable: Variable name without "$" (e.g., "config")
        key: Array key for `$config['key'] = ...`, None for `$config = ...`
        start: Offset where the assigned expression starts
        end: Offset just past the assigned expression
        value: Parsed literal value, or RawExpression
    """

    variable: str
    key: str | None
    start: int
    end: int
    value: Any


@dataclass
class ConfigDocument:
    """Raw config text plus the parsed view of the active config array."""

    path: Path
    text: str
    variable: ConfigVariable
    values: dict[Any, Any] = field(default_factory=dict)
    assignments: list[Assignment] = field(default_factory=list)

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def assignments_for(self, key: str) -> list[Assignment]:
        """Statement assignments of `key` on the resolved config variable."""
        return [
            a for a in self.assignments if a.variable == self.variable.value and a.key == key
        ]


class _ParseFailure(Exception):
    pass


class _PhpReader:
    """Scanner for the subset of PHP found in Roundcube config files."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.assignments: list[Assignment] = []

    # -- low level -------------------------------------------------------

    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def _skip_comment(self) -> bool:
        if self.text.startswith("//", self.pos) or self._peek() == "#":
            newline = self.text.find("\n", self.pos)
            self.pos = len(self.text) if newline == -1 else newline + 1
            return True
        if self.text.startswith("/*", self.pos):
            close = self.text.find("*/", self.pos + 2)
            self.pos = len(self.text) if close == -1 else close + 2
            return True
        return False

    def _skip_blank(self) -> None:
        while self.pos < len(self.text):
            if self.text[self.pos].isspace():
                self.pos += 1
            elif not self._skip_comment():
                return

    def _read_string(self) -> str:
        quote = self.text[self.pos]
        self.pos += 1
        chars = []

        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == quote:
                self.pos += 1
                return "".join(chars)
            if char == "\\" and self.pos + 1 < len(self.text):
                following = self.text[self.pos + 1]
                if quote == "'" and following in ("'", "\\"):
                    chars.append(following)
                    self.pos += 2
                    continue
                if quote == '"' and following in _DOUBLE_QUOTE_ESCAPES:
                    chars.append(_DOUBLE_QUOTE_ESCAPES[following])
                    self.pos += 2
                    continue
            chars.append(char)
            self.pos += 1

        raise _ParseFailure("unterminated string")

    def _skip_to_statement_end(self) -> int:
        """Advance past the current statement, returning the offset of its ';'."""
        depth = 0
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char in ("'", '"'):
                try:
                    self._read_string()
                except _ParseFailure:
                    self.pos = len(self.text)
                continue
            if self._skip_comment():
                continue
            if char in "([{":
                depth += 1
            elif char in ")]}":
                depth -= 1
            elif char == ";" and depth <= 0:
                end = self.pos
                self.pos += 1
                return end
            self.pos += 1
        return len(self.text)

    # -- literals --------------------------------------------------------

    def _read_value(self) -> Any:
        self._skip_blank()
        char = self._peek()

        if char in ("'", '"'):
            return self._read_string()
        if char == "[":
            self.pos += 1
            return self._read_array("]")

        number = _NUMBER_PATTERN.match(self.text, self.pos)
        if number:
            self.pos = number.end()
            literal = number.group(0)
            return float(literal) if "." in literal else int(literal)

        identifier = _IDENTIFIER_PATTERN.match(self.text, self.pos)
        if not identifier:
            raise _ParseFailure(f"unexpected {char!r}")
        self.pos = identifier.end()
        word = identifier.group(0).lower()

        if word == "array":
            self._skip_blank()
            if self._peek() != "(":
                raise _ParseFailure("expected '(' after array")
            self.pos += 1
            return self._read_array(")")
        if word in ("true", "false"):
            return word == "true"
        if word == "null":
            return None
        raise _ParseFailure(f"unsupported expression {word!r}")

    def _read_array(self, close: str) -> list[Any] | dict[Any, Any]:
        entries: list[tuple[Any, Any]] = []
        keyed = False
        next_index = 0

        while True:
            self._skip_blank()
            if self._peek() == close:
                self.pos += 1
                break

            value = self._read_value()
            self._skip_blank()
            if self.text.startswith("=>", self.pos):
                self.pos += 2
                key, value = value, self._read_value()
                keyed = True
                if isinstance(key, int):
                    next_index = max(next_index, key + 1)
            else:
                key = next_index
                next_index += 1
            entries.append((key, value))

            self._skip_blank()
            if self._peek() == ",":
                self.pos += 1
            elif self._peek() != close:
                raise _ParseFailure(f"expected ',' or {close!r}")

        if keyed:
            return dict(entries)
        return [value for _, value in entries]

    # -- statements ------------------------------------------------------

    def _read_assignment(self, variable: str) -> None:
        key = None
        self._skip_blank()

        if self._peek() == "[":
            self.pos += 1
            self._skip_blank()
            if self._peek() not in ("'", '"'):
                return
            key = self._read_string()
            self._skip_blank()
            if self._peek() != "]":
                return
            self.pos += 1
            self._skip_blank()

        # Only plain "=", not "==", "=>", ".=" or nested keys
        if self._peek() != "=" or self._peek(1) in ("=", ">"):
            return
        self.pos += 1
        self._skip_blank()

        start = self.pos
        try:
            value = self._read_value()
            end = self.pos
            self._skip_blank()
            if self._peek() != ";":
                raise _ParseFailure("expected ';'")
            self.pos += 1
        except _ParseFailure:
            self.pos = start
            end = self._skip_to_statement_end()
            value = RawExpression(self.text[start:end].strip())
            end = start + len(self.text[start:end].rstrip())

        self.assignments.append(Assignment(variable, key, start, end, value))

    def read(self) -> list[Assignment]:
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char in ("'", '"'):
                try:
                    self._read_string()
                except _ParseFailure:
                    break
                continue
            if self._skip_comment():
                continue
            match = _VARIABLE_PATTERN.match(self.text, self.pos)
            if match:
                self.pos = match.end()
                self._read_assignment(match.group(1))
                continue
            self.pos += 1
        return self.assignments


def _collect_values(assignments: list[Assignment], variable: ConfigVariable) -> dict[Any, Any]:
    """Replay assignments to one variable in source order."""
    values: dict[Any, Any] = {}

    for assignment in assignments:
        if assignment.variable != variable.value:
            continue
        if assignment.key is not None:
            values[assignment.key] = assignment.value
        elif isinstance(assignment.value, dict):
            values = dict(assignment.value)
        elif isinstance(assignment.value, list):
            values = dict(enumerate(assignment.value))
        else:
            values = {}

    return values


def parse_config(text: str, path: Path) -> ConfigDocument:
    """Parse config source into a ConfigDocument.

    The config variable is resolved once here: $config when it holds any
    values, otherwise $rcmail_config when that does, otherwise $config.
    """
    assignments = _PhpReader(text).read()
    variable = ConfigVariable.CONFIG
    values = _collect_values(assignments, ConfigVariable.CONFIG)

    if not values:
        legacy_values = _collect_values(assignments, ConfigVariable.RCMAIL_CONFIG)
        if legacy_values:
            variable = ConfigVariable.RCMAIL_CONFIG
            values = legacy_values

    return ConfigDocument(
        path=path, text=text, variable=variable, values=values, assignments=assignments
    )


def load_config_document(path: Path) -> ConfigDocument:
    """Read and parse a Roundcube config file.

    Raises:
        ConfigNotFoundError: If the file doesn't exist
        ConfigParseError: If the file can't be read
    """
    if not path.is_file():
        raise ConfigNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, encoding=_ENCODING, errors=_ERRORS, newline="") as f:
            text = f.read()
    except OSError as e:
        raise ConfigParseError(f"Unable to read config file {path}: {e}") from e

    return parse_config(text, path)


def _php_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def render_skin_value(skin_names: str | list[str]) -> str:
    """Render skin names as a PHP array literal, e.g. "array('larry',)"."""
    if isinstance(skin_names, str):
        skin_names = [skin_names]
    return "array(" + "".join(f"{_php_quote(name)}," for name in skin_names) + ")"


def skin_matches(current: Any, skin_name: str) -> bool:
    """Check if a configured skin value already selects skin_name."""
    if current == skin_name:
        return True
    if isinstance(current, list):
        return current == [skin_name]
    if isinstance(current, dict):
        return list(current.values()) == [skin_name]
    return False


def patch_skin(document: ConfigDocument, skin_name: str) -> str:
    """Return the config text with every skin assignment set to skin_name.

    Raises:
        ConfigKeyNotFoundError: If the config variable has no skin assignment
    """
    targets = document.assignments_for(SKIN_KEY)
    if not targets:
        raise ConfigKeyNotFoundError(
            f"No {document.variable.php_name}['{SKIN_KEY}'] assignment in {document.path}"
        )

    text = document.text
    replacement = render_skin_value(skin_name)

    for assignment in sorted(targets, key=lambda a: a.start, reverse=True):
        text = text[: assignment.start] + replacement + text[assignment.end :]

    return text


class ConfigPatcher:
    """Activates a skin in the local Roundcube config.

    Attributes:
        root_dir: Roundcube installation root
        config_file: Path to config/config.inc.php
    """

    def __init__(self, root_dir: Path, config_file: Path | None = None):
        self.root_dir = root_dir
        self.config_file = config_file or (root_dir / "config" / "config.inc.php")

    def is_writable(self) -> bool:
        """Check if the config file exists and can be written."""
        return self.config_file.is_file() and os.access(self.config_file, os.W_OK)

    def load(self) -> ConfigDocument:
        return load_config_document(self.config_file)

    def current_skin(self) -> Any:
        """Return the configured skin value, or None if unset."""
        return self.load().get(SKIN_KEY)

    def activate(self, skin_name: str) -> bool:
        """Point the config's skin setting at skin_name.

        Args:
            skin_name: Skin directory name (e.g., "my_skin")

        Returns:
            True if the file was rewritten, False if the skin was already active

        Raises:
            ConfigNotFoundError: If the config file doesn't exist
            ConfigNotWritableError: If the config file can't be written
            ConfigKeyNotFoundError: If the file has no skin assignment
            ConfigWriteError: If writing the file fails
        """
        if not self.config_file.is_file():
            raise ConfigNotFoundError(f"Config file not found: {self.config_file}")
        if not os.access(self.config_file, os.W_OK):
            raise ConfigNotWritableError(f"Config file is not writable: {self.config_file}")

        document = self.load()

        if skin_matches(document.get(SKIN_KEY), skin_name):
            logger.debug(f"Skin {skin_name} already active in {self.config_file}")
            return False

        new_text = patch_skin(document, skin_name)

        try:
            with open(self.config_file, "w", encoding=_ENCODING, errors=_ERRORS, newline="") as f:
                f.write(new_text)
        except OSError as e:
            raise ConfigWriteError(f"Unable to write config file {self.config_file}: {e}") from e

        logger.info(f"Updated local config at {self.config_file}")
        return True
