"""Parsing of raw HTTP/1.x request text."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

_ESCAPE = re.compile(rb"%(..)|\+", re.DOTALL)
_HEX_PREFIX = re.compile(rb"\s*([+-]?[0-9A-Fa-f]+)")
_LENGTH_PREFIX = re.compile(r"[ \t\n\v\f\r]*\+?(\d+)")
_MAX_LENGTH = 2**64 - 1


class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"
    HEAD = "HEAD"
    PUT = "PUT"
    DELETE = "DELETE"
    UNKNOWN = "UNKNOWN"


class RequestParseError(ValueError):
    """Raised when a request has no request line at all."""


def method_from_string(text: str) -> HttpMethod:
    """Map a method token to ``HttpMethod``; anything unrecognised is ``UNKNOWN``."""
    try:
        return HttpMethod(text)
    except ValueError:
        return HttpMethod.UNKNOWN


def _decode_escape(match: re.Match[bytes]) -> bytes:
    if match.group(0) == b"+":
        return b" "
    digits = match.group(1)
    parsed = _HEX_PREFIX.match(digits)
    if parsed is None:
        raise ValueError(f"invalid percent escape: %{digits.decode('latin-1')}")
    return bytes([int(parsed.group(1), 16) & 0xFF])


def url_decode(text: str) -> str:
    """Decode ``%XX`` escapes and ``+`` as space; raises ``ValueError`` on a bad escape."""
    decoded = _ESCAPE.sub(_decode_escape, text.encode("utf-8"))
    return decoded.decode("utf-8", errors="replace")


def _parse_query(query: str) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in query.split("&"):
        key, sep, value = pair.partition("=")
        if sep:
            params[url_decode(key)] = url_decode(value)
    return params


@dataclass
class HttpRequest:
    method: HttpMethod = HttpMethod.UNKNOWN
    path: str = ""
    version: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    query_params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, raw: str | bytes) -> HttpRequest:
        """Parse a request; raises ``RequestParseError`` if it is empty."""
        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode("utf-8", errors="replace")
        if not raw:
            raise RequestParseError("empty request")

        request_line, _, rest = raw.partition("\n")
        method_name, full_path, version = (request_line.split() + ["", "", ""])[:3]
        path, has_query, query = full_path.partition("?")
        request = cls(method=method_from_string(method_name), path=path, version=version)
        if has_query:
            request.query_params = _parse_query(query)

        while rest:
            line, _, rest = rest.partition("\n")
            if line in ("", "\r"):
                break
            key, sep, value = line.partition(":")
            if not sep:
                continue
            value = value[1:]
            if value.endswith("\r"):
                value = value[:-1]
            request.headers[key] = value

        length = request.content_length()
        if length > 0:
            request.body = rest[:length]
        return request

    def header(self, key: str) -> str:
        """Header value by exact name, or an empty string."""
        return self.headers.get(key, "")

    def content_type(self) -> str:
        return self.header("Content-Type")

    def content_length(self) -> int:
        """The Content-Length header as a number, or 0 if absent or invalid."""
        match = _LENGTH_PREFIX.match(self.header("Content-Length"))
        if match is None:
            return 0
        length = int(match.group(1))
        return length if length <= _MAX_LENGTH else 0

    def query_param(self, key: str) -> str:
        """Decoded query parameter, or an empty string."""
        return self.query_params.get(key, "")