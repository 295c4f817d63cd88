"""Building HTTP/1.1 responses."""

from __future__ import annotations

from email.utils import formatdate

SERVER_NAME = "tinyhttpd"

_STATUS_MESSAGES = {
    200: "OK",
    201: "Created",
    204: "No Content",
    301: "Moved Permanently",
    302: "Found",
    304: "Not Modified",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
    501: "Not Implemented",
    503: "Service Unavailable",
}

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
}


def status_message(code: int) -> str:
    """Reason phrase for a status code, or ``Unknown Status``."""
    return _STATUS_MESSAGES.get(code, "Unknown Status")


def mime_type(extension: str) -> str:
    """MIME type for an extension such as ``.html``; defaults to octet-stream."""
    return _MIME_TYPES.get(extension, "application/octet-stream")


def http_date() -> str:
    """The current time in HTTP date format, e.g. ``Mon, 01 Jan 2024 00:00:00 GMT``."""
    return formatdate(usegmt=True)


def _as_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


class HttpResponse:
    """A response with a status line, headers and a body; setters return ``self``."""

    def __init__(self) -> None:
        self.status_code = 200
        self.status_message = ""
        self.headers: dict[str, str] = {
            "Server": SERVER_NAME,
            "Date": http_date(),
            "Connection": "close",
        }
        self.body = b""

    def set_status(self, code: int) -> HttpResponse:
        """Set the status code and its standard reason phrase."""
        self.status_code = code
        self.status_message = status_message(code)
        return self

    def set_status_message(self, message: str) -> HttpResponse:
        self.status_message = message
        return self

    def set_header(self, key: str, value: str) -> HttpResponse:
        self.headers[key] = value
        return self

    def set_body(self, body: str | bytes) -> HttpResponse:
        """Set the body (text is UTF-8 encoded) and its Content-Length."""
        self.body = _as_bytes(body)
        return self.set_header("Content-Length", str(len(self.body)))

    def set_content_type(self, content_type: str) -> HttpResponse:
        return self.set_header("Content-Type", content_type)

    def to_bytes(self) -> bytes:
        """Serialise the response for the wire."""
        lines = [f"HTTP/1.1 {self.status_code} {self.status_message}"]
        lines.extend(f"{key}: {value}" for key, value in self.headers.items())
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("utf-8") + self.body

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    @classmethod
    def error(cls, code: int, message: str) -> HttpResponse:
        """An HTML error page for ``code``."""
        title = f"{code} {message}"
        html = (
            "<!DOCTYPE html>\n"
            f"<html><head><title>{title}</title></head>\n"
            "<body>\n"
            f"<h1>{title}</h1>\n"
            "<hr>\n"
            f"<p>{SERVER_NAME}</p>\n"
            "</body></html>"
        )
        return cls().set_status(code).set_content_type("text/html").set_body(html)

    @classmethod
    def file(cls, content: str | bytes, content_type: str) -> HttpResponse:
        return cls().set_status(200).set_content_type(content_type).set_body(content)

    @classmethod
    def text(cls, text: str) -> HttpResponse:
        return cls().set_status(200).set_content_type("text/plain").set_body(text)

    @classmethod
    def redirect(cls, location: str) -> HttpResponse:
        """A 302 response pointing at ``location``."""
        html = (
            f'<html><body>Redirecting to <a href="{location}">{location}</a>'
            "</body></html>"
        )
        return (
            cls()
            .set_status(302)
            .set_header("Location", location)
            .set_content_type("text/html")
            .set_body(html)
        )