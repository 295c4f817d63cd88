import io
import json
import re
import socket
import threading
import time

import pytest

from tinyhttpd.config import Config
from tinyhttpd.logger import Logger
from tinyhttpd.server import HttpServer, escape_json_string, read_request


@pytest.fixture
def quiet_logger():
    return Logger(stdout=io.StringIO(), stderr=io.StringIO())


@pytest.fixture
def web_root(tmp_path):
    root = tmp_path / "www"
    root.mkdir()
    return root


@pytest.fixture
def server(web_root, quiet_logger):
    config = Config.default()
    config.set("server.web_root", str(web_root))
    config.set("server.port", "0")
    return HttpServer(config, quiet_logger)


def _recv_all(sock):
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk


@pytest.mark.parametrize("text", ['a"b', "back\\slash", "line\nbreak\ttab\r", "\b\f", "plain"])
def test_escape_json_string_round_trips(text):
    assert json.loads('"' + escape_json_string(text) + '"') == text


def test_escape_json_string_quote():
    assert escape_json_string('"') == '\\"'


def test_get_root_serves_index(server, web_root):
    (web_root / "index.html").write_text("<p>hello</p>")
    response = server.process_request(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
    assert response.status_code == 200
    assert response.body == b"<p>hello</p>"
    assert response.headers["Content-Type"] == "text/html"
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Content-Length"] == str(len(b"<p>hello</p>"))


def test_get_missing_file_is_404(server):
    response = server.process_request("GET /missing.txt HTTP/1.1\r\n\r\n")
    assert response.status_code == 404
    assert b"404 Not Found" in response.body


def test_get_directory_is_not_a_file(server, web_root):
    (web_root / "sub").mkdir()
    response = server.process_request("GET /sub HTTP/1.1\r\n\r\n")
    assert response.status_code == 404


def test_post_echoes_body(server):
    response = server.process_request(
        "POST /echo HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
    )
    assert response.status_code == 200
    assert response.body == b"Received POST request with body: hello"
    assert response.headers["Content-Type"] == "text/plain"


def test_post_api_test_returns_json(server):
    body = 'say "hi"'
    raw = f"POST /api/test HTTP/1.1\r\nContent-Length: {len(body)}\r\n\r\n{body}"
    response = server.process_request(raw)
    payload = json.loads(response.body)
    assert payload["status"] == "success"
    assert payload["message"] == "POST request received"
    assert payload["receivedBody"] == body
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", payload["timestamp"])


def test_head_reports_size_without_body(server, web_root):
    (web_root / "data.json").write_bytes(b'{"a": 1}')
    response = server.process_request("HEAD /data.json HTTP/1.1\r\n\r\n")
    assert response.status_code == 200
    assert response.body == b""
    assert response.headers["Content-Length"] == str(len(b'{"a": 1}'))
    assert response.headers["Content-Type"] == "application/json"


def test_head_missing_is_404(server):
    assert server.process_request("HEAD /nothing HTTP/1.1\r\n\r\n").status_code == 404


def test_unsupported_method_is_501(server):
    response = server.process_request("PUT /x HTTP/1.1\r\n\r\n")
    assert response.status_code == 501
    assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"


def test_options_preflight(server):
    response = server.process_request("OPTIONS /x HTTP/1.1\r\n\r\n")
    assert response.status_code == 200
    assert response.status_message == "OK"
    assert response.headers["Access-Control-Max-Age"] == "86400"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"
    assert response.body == b""


def test_empty_request_is_400(server):
    assert server.process_request(b"").status_code == 400


def test_bad_query_escape_is_500(server):
    response = server.process_request("GET /?a=%zz HTTP/1.1\r\n\r\n")
    assert response.status_code == 500
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_api_directory_lists_entries(server, web_root):
    (web_root / "a.txt").write_bytes(b"abc")
    (web_root / "sub").mkdir()
    response = server.process_request("GET /api/directory HTTP/1.1\r\n\r\n")
    entries = json.loads(response.body)
    assert entries == [
        {"name": "a.txt", "path": "a.txt", "isDirectory": False, "size": 3},
        {"name": "sub", "path": "sub", "isDirectory": True, "size": 0},
    ]


def test_api_directory_empty(server):
    response = server.process_request("GET /api/directory HTTP/1.1\r\n\r\n")
    assert response.body == b"[\n\n]"


def test_api_status(server, web_root):
    response = server.process_request("GET /api/status HTTP/1.1\r\n\r\n")
    payload = json.loads(response.body)
    assert payload["status"] == "running"
    assert payload["port"] == 0
    assert payload["threads"] == 4
    assert payload["webRoot"] == str(web_root)
    assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", payload["uptime"])


def test_directory_listing_links(server, web_root):
    (web_root / "a.txt").write_text("x")
    html = server.directory_listing(str(web_root), "/docs")
    assert "<h1>Directory Listing: /docs</h1>" in html
    assert '<li><a href="/">../</a></li>' in html
    assert '<li><a href="/docs/a.txt">a.txt</a></li>' in html
    assert html.endswith("</body></html>")


def test_directory_listing_at_root_has_no_parent(server, web_root):
    (web_root / "b.txt").write_text("x")
    html = server.directory_listing(str(web_root), "/")
    assert "../" not in html
    assert '<li><a href="/b.txt">b.txt</a></li>' in html


def test_read_request_without_body():
    left, right = socket.socketpair()
    with left, right:
        raw = b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n"
        left.sendall(raw)
        assert read_request(right) == raw


def test_read_request_waits_for_body():
    left, right = socket.socketpair()
    with left, right:
        head = b"POST / HTTP/1.1\r\nContent-Length: 6\r\n\r\n"

        def write_in_parts():
            left.sendall(head + b"abc")
            time.sleep(0.1)
            left.sendall(b"def")

        writer = threading.Thread(target=write_in_parts)
        writer.start()
        right.settimeout(5)
        data = read_request(right)
        writer.join(timeout=5)
        assert data == head + b"abcdef"


def test_read_request_bad_length_raises():
    left, right = socket.socketpair()
    with left, right:
        left.sendall(b"POST / HTTP/1.1\r\nContent-Length: abc\r\n\r\n")
        with pytest.raises(ValueError):
            read_request(right)


def test_read_request_peer_closed():
    left, right = socket.socketpair()
    with right:
        left.close()
        assert read_request(right) == b""


def test_handle_client_answers_and_closes(server, web_root):
    (web_root / "index.html").write_text("home")
    client, conn = socket.socketpair()
    with client:
        client.sendall(b"GET / HTTP/1.1\r\n\r\n")
        server.handle_client(conn, "127.0.0.1")
        data = _recv_all(client)
    assert data.startswith(b"HTTP/1.1 200 OK\r\n")
    assert data.endswith(b"\r\n\r\nhome")
    assert conn.fileno() == -1


def test_serves_over_tcp(server, web_root):
    (web_root / "index.html").write_text("<p>hi</p>")
    server.initialize()
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()
    try:
        with socket.create_connection(("127.0.0.1", server.port), timeout=5) as client:
            client.sendall(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
            data = _recv_all(client)
    finally:
        server.stop()
        thread.join(timeout=5)
    assert data.startswith(b"HTTP/1.1 200 OK\r\n")
    assert data.endswith(b"<p>hi</p>")
    assert not thread.is_alive()
    assert not server.running


def test_initialize_creates_web_root(tmp_path, quiet_logger):
    root = tmp_path / "fresh"
    config = Config.default()
    config.set("server.web_root", str(root))
    config.set("server.port", "0")
    with HttpServer(config, quiet_logger) as server:
        server.initialize()
        assert root.is_dir()
        assert server.port > 0


def test_initialize_from_config_file(tmp_path, quiet_logger):
    root = tmp_path / "site"
    ini = tmp_path / "server.ini"
    ini.write_text(f"[server]\nport = 0\nweb_root = {root}\nmax_threads = 2\n")
    with HttpServer(logger=quiet_logger) as server:
        server.initialize(str(ini))
        assert server.web_root == str(root)
        assert server.config.get_int("server.max_threads") == 2


def test_initialize_missing_config_raises(tmp_path, quiet_logger):
    server = HttpServer(logger=quiet_logger)
    with pytest.raises(OSError):
        server.initialize(str(tmp_path / "missing.ini"))


def test_start_without_initialize_returns(server, quiet_logger):
    server.start()
    assert not server.running
    assert "Server not initialized" in quiet_logger._err().getvalue()