"""Leveled logging to the console and an optional append-mode log file."""

from __future__ import annotations

import sys
import threading
import time
from enum import IntEnum
from typing import TextIO


class LogLevel(IntEnum):
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


class Logger:
    """Writes timestamped entries; warnings and errors go to stderr, the rest to stdout."""

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self.level = LogLevel(level)
        self._stdout = stdout
        self._stderr = stderr
        self._file: TextIO | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _out(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    def _err(self) -> TextIO:
        return self._stderr if self._stderr is not None else sys.stderr

    def init(self, filename: str = "", level: LogLevel = LogLevel.INFO) -> None:
        """Set the level and, if a filename is given, append entries to that file."""
        with self._lock:
            self.level = LogLevel(level)
            if not filename:
                return
            if self._file is not None:
                self._file.close()
                self._file = None
            try:
                self._file = open(filename, "a", encoding="utf-8")
            except OSError:
                print(f"Warning: Cannot open log file: {filename}", file=self._err(), flush=True)

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def set_level(self, level: LogLevel) -> None:
        self.level = LogLevel(level)

    def log(self, level: LogLevel, message: str) -> None:
        """Write an entry regardless of the current level."""
        level = LogLevel(level)
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        entry = f"[{stamp}] [{level.name}] {message}"
        with self._lock:
            stream = self._err() if level >= LogLevel.WARNING else self._out()
            print(entry, file=stream, flush=True)
            if self._file is not None:
                self._file.write(entry + "\n")
                self._file.flush()

    def debug(self, message: str) -> None:
        if self.level <= LogLevel.DEBUG:
            self.log(LogLevel.DEBUG, message)

    def info(self, message: str) -> None:
        if self.level <= LogLevel.INFO:
            self.log(LogLevel.INFO, message)

    def warning(self, message: str) -> None:
        if self.level <= LogLevel.WARNING:
            self.log(LogLevel.WARNING, message)

    def error(self, message: str) -> None:
        if self.level <= LogLevel.ERROR:
            self.log(LogLevel.ERROR, message)