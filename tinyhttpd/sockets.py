"""A thin listening TCP socket for the server."""

from __future__ import annotations

import errno
import socket


class ServerSocket:
    """An IPv4 stream socket that binds to all interfaces and accepts clients."""

    def __init__(self) -> None:
        self._sock: socket.socket | None = None

    def __enter__(self) -> ServerSocket:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require(self) -> socket.socket:
        if self._sock is None:
            raise OSError(errno.EBADF, "socket is not open")
        return self._sock

    def create(self) -> None:
        """Open the socket with address reuse enabled; raises ``OSError`` on failure."""
        self.close()
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock = sock

    def bind(self, port: int) -> None:
        """Bind to ``port`` on every interface."""
        self._require().bind(("", port))

    def listen(self, backlog: int = 5) -> None:
        self._require().listen(backlog)

    def accept(self) -> tuple[socket.socket, str]:
        """Wait for a client; returns the connection and the client's IP address."""
        conn, address = self._require().accept()
        return conn, address[0]

    def send(self, data: str | bytes) -> int:
        """Send data on this socket; returns the number of bytes sent."""
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        return self._require().send(payload)

    def receive(self, size: int = 4096) -> bytes:
        """Receive up to ``size`` bytes; empty bytes mean the peer closed."""
        return self._require().recv(size)

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def fileno(self) -> int:
        """The descriptor of the open socket, or -1 when closed."""
        return self._sock.fileno() if self._sock is not None else -1

    @property
    def port(self) -> int:
        """The local port the socket is bound to."""
        return self._require().getsockname()[1]