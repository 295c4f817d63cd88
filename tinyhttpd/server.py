"""The HTTP server: accepts connections and serves static files and a small JSON API."""

from __future__ import annotations

import os
import re
import select
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor

from .config import Config
from .files import (
    file_exists,
    get_file_size,
    get_mime_type,
    is_directory,
    is_path_safe,
    list_directory,
    read_file,
)
from .logger import Logger
from .request import HttpMethod, HttpRequest, RequestParseError
from .response import HttpResponse
from .sockets import ServerSocket

_RECV_SIZE = 4095
_HEADER_END = b"\r\n\r\n"
_CONTENT_LENGTH = b"Content-Length:"
_LENGTH_PREFIX = re.compile(rb"[ \t\n\v\f\r]*([+-]?\d+)")
_POLL_INTERVAL = 0.2

_JSON_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def escape_json_string(text: str) -> str:
    """Escape quotes, backslashes and common control characters for a JSON string."""
    return "".join(_JSON_ESCAPES.get(char, char) for char in text)


def _content_length(headers: bytes) -> int | None:
    position = headers.find(_CONTENT_LENGTH)
    if position == -1:
        return None
    start = position + len(_CONTENT_LENGTH)
    end = headers.find(b"\r\n", start)
    field = headers[start:] if end == -1 else headers[start:end]
    match = _LENGTH_PREFIX.match(field)
    if match is None:
        raise ValueError(f"invalid Content-Length: {field!r}")
    return int(match.group(1)) % 2**64


def read_request(conn: socket.socket) -> bytes:
    """Read one request from ``conn``: the headers and, if announced, the whole body.

    Returns what was received if the peer closes early. Raises ``ValueError``
    for an unreadable Content-Length and ``OSError`` if receiving fails.
    """
    data = b""
    while True:
        chunk = conn.recv(_RECV_SIZE)
        if not chunk:
            return data
        data += chunk
        header_end = data.find(_HEADER_END)
        if header_end == -1:
            continue
        length = _content_length(data[:header_end])
        if length is not None and len(data) - (header_end + len(_HEADER_END)) < length:
            continue
        return data


def _add_cors_headers(response: HttpResponse) -> HttpResponse:
    return (
        response.set_header("Access-Control-Allow-Origin", "*")
        .set_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        .set_header("Access-Control-Allow-Headers", "Content-Type")
    )


def _error(code: int, message: str) -> HttpResponse:
    return HttpResponse.error(code, message).set_header("Access-Control-Allow-Origin", "*")


def _ok(content_type: str, body: str | bytes) -> HttpResponse:
    return (
        HttpResponse()
        .set_status(200)
        .set_status_message("OK")
        .set_content_type(content_type)
        .set_header("Access-Control-Allow-Origin", "*")
        .set_body(body)
    )


def _local_timestamp() -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())


class HttpServer:
    """Serves files under a web root with a pool of worker threads."""

    def __init__(self, config: Config | None = None, logger: Logger | None = None) -> None:
        self.config = config if config is not None else Config.default()
        self.logger = logger if logger is not None else Logger()
        self.web_root = self.config.get_str("server.web_root", "./www")
        self._socket: ServerSocket | None = None
        self._pool: ThreadPoolExecutor | None = None
        self._running = threading.Event()
        self._start_time = time.monotonic()

    def __enter__(self) -> HttpServer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def port(self) -> int:
        """The port the listening socket is bound to."""
        if self._socket is None:
            raise OSError("server is not initialized")
        return self._socket.port

    def initialize(self, config_path: str = "") -> None:
        """Load settings, open the listening socket and start the worker pool.

        Without ``config_path`` the configuration given at construction is used.
        Raises ``OSError`` or ``ValueError`` on failure, after logging it.
        """
        if config_path:
            config = Config()
            try:
                config.load_file(config_path)
            except OSError:
                self.logger.error(f"Failed to load config file: {config_path}")
                raise
            self.config = config

        port = self.config.get_int("server.port", 8080)
        max_threads = self.config.get_int("server.max_threads", 4)
        self.web_root = self.config.get_str("server.web_root", "./www")

        server_socket = ServerSocket()
        try:
            server_socket.create()
        except OSError:
            self.logger.error("Failed to create socket")
            raise
        try:
            server_socket.bind(port)
        except OSError:
            server_socket.close()
            self.logger.error(f"Failed to bind to port {port}")
            raise
        try:
            server_socket.listen()
        except OSError:
            server_socket.close()
            self.logger.error("Failed to listen on socket")
            raise

        try:
            pool = ThreadPoolExecutor(max_workers=max_threads)
        except ValueError as exc:
            server_socket.close()
            self.logger.error(f"Initialization error: {exc}")
            raise

        self._socket = server_socket
        self._pool = pool

        if not is_directory(self.web_root):
            try:
                os.mkdir(self.web_root, 0o755)
            except OSError:
                pass
            self.logger.info(f"Created web root directory: {self.web_root}")

        self.logger.info("Server initialized successfully")
        self.logger.info(f"Port: {port}")
        self.logger.info(f"Web root: {self.web_root}")
        self.logger.info(f"Threads: {max_threads}")

    def start(self) -> None:
        """Accept connections until ``stop`` is called, then wait for the workers."""
        if self._socket is None or self._pool is None:
            self.logger.error("Server not initialized")
            return

        server_socket, pool = self._socket, self._pool
        self._running.set()
        self.logger.info("Server started. Listening for connections...")
        try:
            while self._running.is_set() and server_socket.fileno() >= 0:
                try:
                    ready, _, _ = select.select([server_socket], [], [], _POLL_INTERVAL)
                except (OSError, ValueError):
                    if self._running.is_set():
                        self.logger.error("Failed to accept connection")
                    continue
                if not ready:
                    continue
                try:
                    conn, client_ip = server_socket.accept()
                except OSError:
                    if self._running.is_set():
                        self.logger.error("Failed to accept connection")
                    continue
                self.logger.debug(f"New connection from: {client_ip}")
                try:
                    pool.submit(self.handle_client, conn, client_ip)
                except RuntimeError:
                    conn.close()
                    break
        finally:
            pool.shutdown(wait=True)
            self._pool = None

    def stop(self) -> None:
        self._running.clear()
        if self._socket is not None:
            self._socket.close()
        self.logger.info("Server stopped")

    def handle_client(self, conn: socket.socket, client_ip: str) -> None:
        """Read one request from ``conn``, answer it and close the connection."""
        try:
            with conn:
                try:
                    raw = read_request(conn)
                except OSError:
                    self.logger.error(f"Error receiving data from: {client_ip}")
                    return
                if not raw:
                    self.logger.debug(f"Client disconnected: {client_ip}")
                    return
                response = self.process_request(raw)
                try:
                    conn.sendall(response.to_bytes())
                except OSError:
                    self.logger.error("Failed to send response")
        except Exception as exc:
            self.logger.error(f"Error handling client {client_ip}: {exc}")

    def process_request(self, raw: str | bytes) -> HttpResponse:
        """Build the response to one raw request."""
        try:
            try:
                request = HttpRequest.parse(raw)
            except RequestParseError:
                return HttpResponse.error(400, "Bad Request")

            if request.method is HttpMethod.UNKNOWN:
                text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
                if "OPTIONS" in text.split("\n", 1)[0]:
                    response = HttpResponse().set_status(200).set_status_message("OK")
                    _add_cors_headers(response)
                    return response.set_header("Access-Control-Max-Age", "86400")

            if request.method is HttpMethod.GET:
                return self._handle_get(request)
            if request.method is HttpMethod.POST:
                return self._handle_post(request)
            if request.method is HttpMethod.HEAD:
                return self._handle_head(request)
            return _add_cors_headers(HttpResponse.error(501, "Not Implemented"))
        except Exception as exc:
            self.logger.error(f"Error processing request: {exc}")
            return _error(500, "Internal Server Error")

    def _handle_get(self, request: HttpRequest) -> HttpResponse:
        path = request.path
        if path == "/api/directory":
            return self._api_directory()
        if path == "/api/status":
            return self._api_status()
        if path == "/":
            path = "/index.html"

        file_path = self.web_root + path
        if not is_path_safe(self.web_root, file_path):
            return _error(403, "Forbidden")
        if not file_exists(file_path):
            return _error(404, "Not Found")

        if is_directory(file_path):
            enable_listing = self.config.get_bool("security.enable_directory_listing", False)
            default_index = self.config.get_str("security.default_index", "index.html")
            index_file = f"{file_path}/{default_index}"
            if file_exists(index_file):
                file_path = index_file
            elif enable_listing:
                return _ok("text/html", self.directory_listing(file_path, path))
            else:
                return _error(403, "Forbidden")

        return _ok(get_mime_type(file_path), read_file(file_path))

    def _handle_post(self, request: HttpRequest) -> HttpResponse:
        if request.path == "/api/test":
            payload = (
                "{"
                '"status": "success", '
                '"message": "POST request received", '
                f'"receivedBody": "{escape_json_string(request.body)}", '
                f'"timestamp": "{_local_timestamp()}"'
                "}"
            )
            return _ok("application/json", payload)
        return _ok("text/plain", f"Received POST request with body: {request.body}")

    def _handle_head(self, request: HttpRequest) -> HttpResponse:
        path = "/index.html" if request.path == "/" else request.path
        file_path = self.web_root + path
        if not is_path_safe(self.web_root, file_path) or not file_exists(file_path):
            return _error(404, "Not Found")
        return (
            HttpResponse()
            .set_status(200)
            .set_status_message("OK")
            .set_content_type(get_mime_type(file_path))
            .set_header("Content-Length", str(get_file_size(file_path)))
            .set_header("Access-Control-Allow-Origin", "*")
        )

    def _api_directory(self) -> HttpResponse:
        try:
            entries = []
            for name in list_directory(self.web_root):
                file_path = f"{self.web_root}/{name}"
                name = name.removesuffix("/")
                is_dir = is_directory(file_path)
                size = 0 if is_dir else get_file_size(file_path)
                escaped = escape_json_string(name)
                entries.append(
                    f'  {{"name": "{escaped}", "path": "{escaped}", '
                    f'"isDirectory": {"true" if is_dir else "false"}, "size": {size}}}'
                )
            return _ok("application/json", "[\n" + ",\n".join(entries) + "\n]")
        except Exception as exc:
            self.logger.error(f"Error generating directory listing: {exc}")
            return _error(500, "Internal Server Error")

    def _api_status(self) -> HttpResponse:
        uptime = int(time.monotonic() - self._start_time)
        hours, remainder = divmod(uptime, 3600)
        minutes, seconds = divmod(remainder, 60)
        uptime_text = f"{hours:02d}:{minutes:02d}:{seconds:02d}"[:8]
        payload = (
            "{"
            '"status": "running", '
            f'"port": {self.config.get_int("server.port", 8080)}, '
            f'"webRoot": "{escape_json_string(self.web_root)}", '
            f'"threads": {self.config.get_int("server.max_threads", 4)}, '
            f'"uptime": "{uptime_text}"'
            "}"
        )
        return _ok("application/json", payload)

    def directory_listing(self, dir_path: str, url_path: str) -> str:
        """An HTML page linking every entry of ``dir_path`` under ``url_path``."""
        parts = [
            "<!DOCTYPE html>\n",
            "<html><head><title>Directory Listing</title></head>\n",
            "<body>\n",
            f"<h1>Directory Listing: {url_path}</h1>\n",
            "<ul>\n",
        ]
        if url_path != "/":
            parent = url_path[: url_path.rfind("/")] if "/" in url_path else url_path
            parts.append(f'<li><a href="{parent or "/"}">../</a></li>\n')
        separator = "" if url_path == "/" else "/"
        parts.extend(
            f'<li><a href="{url_path}{separator}{name}">{name}</a></li>\n'
            for name in list_directory(dir_path)
        )
        parts.append("</ul>\n")
        parts.append("</body></html>")
        return "".join(parts)