"""Filesystem helpers for serving static files."""

from __future__ import annotations

import os
from pathlib import Path, PurePath

_MIME_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".txt": "text/plain",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".xml": "application/xml",
    ".ico": "image/x-icon",
}
_DEFAULT_MIME = "application/octet-stream"


def file_exists(path: str) -> bool:
    """True if ``path`` names an existing regular file."""
    try:
        return os.path.isfile(path)
    except (OSError, ValueError):
        return False


def read_file(path: str) -> bytes:
    """Return the whole file as bytes; raises ``OSError`` if it cannot be read."""
    return Path(path).read_bytes()


def write_file(path: str, content: str | bytes) -> None:
    """Write ``content`` to ``path``, replacing it; text is stored as UTF-8."""
    data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
    Path(path).write_bytes(data)


def get_file_extension(filename: str) -> str:
    """Return the text from the last dot onwards, or an empty string."""
    dot = filename.rfind(".")
    return filename[dot:] if dot != -1 else ""


def get_mime_type(filename: str) -> str:
    return _MIME_TYPES.get(get_file_extension(filename), _DEFAULT_MIME)


def get_file_size(path: str) -> int:
    """Size of a regular file in bytes, or 0 if it is missing or not a file."""
    try:
        if not os.path.isfile(path):
            return 0
        return os.path.getsize(path)
    except (OSError, ValueError):
        return 0


def is_directory(path: str) -> bool:
    try:
        return os.path.isdir(path)
    except (OSError, ValueError):
        return False


def list_directory(path: str) -> list[str]:
    """Names of the entries in ``path``, sorted, directories suffixed with ``/``.

    Returns an empty list if the directory cannot be read.
    """
    try:
        with os.scandir(path) as entries:
            names = [entry.name + "/" if entry.is_dir() else entry.name for entry in entries]
    except (OSError, ValueError):
        return []
    return sorted(names)


def normalize_path(path: str) -> str:
    """Make ``path`` absolute against the working directory without resolving it."""
    try:
        if os.path.isabs(path):
            return path
        return os.path.join(os.getcwd(), path)
    except (OSError, ValueError):
        return path


def is_path_safe(web_root: str, requested_path: str) -> bool:
    """True if the absolute form of ``requested_path`` starts with every component of ``web_root``."""
    try:
        root = PurePath(normalize_path(web_root)).parts
        request = PurePath(normalize_path(requested_path)).parts
    except (OSError, ValueError):
        return False
    return request[: len(root)] == root