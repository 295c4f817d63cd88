"""Key/value server configuration read from INI-style files and command-line arguments."""

from __future__ import annotations

import re
from collections import deque
from collections.abc import Iterable, Mapping

_WHITESPACE = " \t\r\n"
_INT_PREFIX = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_TRUE_WORDS = frozenset({"true", "yes", "1", "on"})

_DEFAULTS = {
    "server.port": "8080",
    "server.max_threads": "4",
    "server.max_connections": "100",
    "server.timeout": "30",
    "server.web_root": "./www",
    "security.enable_directory_listing": "false",
    "security.default_index": "index.html",
    "security.max_file_size": "10485760",
    "logging.level": "INFO",
    "logging.file": "server.log",
    "logging.console": "true",
}


class Config:
    """A flat mapping of string settings with typed accessors."""

    def __init__(self, settings: Mapping[str, str] | None = None) -> None:
        self._settings: dict[str, str] = dict(settings or {})

    def __contains__(self, key: object) -> bool:
        return key in self._settings

    def __len__(self) -> int:
        return len(self._settings)

    def load_file(self, filename: str) -> None:
        """Merge settings from an INI-style file.

        Keys inside a ``[section]`` are stored as ``section.key``.
        Raises ``OSError`` when the file cannot be read.
        """
        with open(filename, encoding="utf-8", errors="replace", newline="") as handle:
            content = handle.read()

        section = ""
        for raw_line in content.split("\n"):
            line = raw_line.strip(_WHITESPACE)
            if not line or line[0] in "#;":
                continue
            if line[0] == "[" and line[-1] == "]":
                section = line[1:-1]
                continue
            key, sep, value = line.partition("=")
            if not sep:
                continue
            key = key.strip(_WHITESPACE)
            if section:
                key = f"{section}.{key}"
            self._settings[key] = value.strip(_WHITESPACE)

    def load_args(self, argv: Iterable[str]) -> None:
        """Merge ``--key=value`` and ``--key value`` arguments (program name excluded)."""
        pending = deque(argv)
        while pending:
            arg = pending.popleft()
            if not arg.startswith("--"):
                continue
            key, sep, value = arg[2:].partition("=")
            if sep:
                self._settings[key] = value
            elif pending and not pending[0].startswith("-"):
                self._settings[key] = pending.popleft()

    def get_int(self, key: str, default: int = 0) -> int:
        """Return the leading integer of a setting, or ``default`` if absent or unparsable."""
        value = self._settings.get(key)
        if value is None:
            return default
        match = _INT_PREFIX.match(value)
        if match is None:
            return default
        number = int(match.group(1))
        if not _INT_MIN <= number <= _INT_MAX:
            return default
        return number

    def get_str(self, key: str, default: str = "") -> str:
        """Return a setting as text, or ``default`` if absent."""
        return self._settings.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Return true for ``true``, ``yes``, ``1`` or ``on`` (any case)."""
        value = self._settings.get(key)
        if value is None:
            return default
        return value.lower() in _TRUE_WORDS

    def set(self, key: str, value: str) -> None:
        self._settings[key] = value

    @classmethod
    def default(cls) -> Config:
        """Return the built-in default configuration."""
        return cls(_DEFAULTS)

    def print_all(self) -> None:
        """Print every setting as ``key = value``."""
        for key, value in self._settings.items():
            print(f"{key} = {value}")