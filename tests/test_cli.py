import os
import signal
import socket
import threading

import pytest

from tinyhttpd.cli import build_config, help_text, main


def _log_text(directory):
    return (directory / "server.log").read_text(encoding="utf-8")


def test_help_text_lists_every_option():
    text = help_text()
    assert text.startswith("Usage: ")
    for option in ("--port=<port>", "--web_root=<path>", "--config=<file>",
                   "--max_threads=<num>", "--help"):
        assert option in text


@pytest.mark.parametrize("flag", ["--help", "-h"])
def test_main_help_prints_usage_and_succeeds(flag, capsys):
    assert main(["--server.port=1", flag]) == 0
    assert capsys.readouterr().out == help_text()


def test_build_config_without_arguments_is_default():
    config = build_config([])
    assert config.get_int("server.port", 0) == 8080
    assert config.get_str("server.web_root") == "./www"
    assert config.get_int("server.max_threads", 0) == 4


def test_build_config_applies_arguments_under_their_own_keys():
    config = build_config(["--port=9000", "--server.max_threads", "7"])
    assert config.get_str("port") == "9000"
    assert config.get_int("server.port", 0) == 8080
    assert config.get_int("server.max_threads", 0) == 7


def test_build_config_uses_file_without_defaults(tmp_path):
    path = tmp_path / "server.ini"
    path.write_text("[server]\nport = 8123\n", encoding="utf-8")
    config = build_config([f"--config={path}", "--server.max_threads=9"])
    assert config.get_int("server.port", 0) == 8123
    assert "server.max_threads" not in config
    assert "server.web_root" not in config


def test_build_config_missing_file_falls_back_to_defaults_and_args(tmp_path):
    missing = tmp_path / "absent.ini"
    config = build_config([f"--config={missing}", "--server.timeout=5"])
    assert config.get_int("server.port", 0) == 8080
    assert config.get_int("server.timeout", 0) == 5
    assert config.get_str("config") == str(missing)


def test_main_returns_error_when_initialization_fails(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    web_root = tmp_path / "www"
    status = main(["--server.port=0", "--server.max_threads=0", f"--server.web_root={web_root}"])
    assert status == 1
    log = _log_text(tmp_path)
    assert "[ERROR] Failed to initialize server" in log
    assert "HTTP Server starting..." not in log
    assert "Failed to initialize server" in capsys.readouterr().err


def test_main_reports_busy_port(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("", 0))
        busy.listen(1)
        port = busy.getsockname()[1]
        status = main([f"--server.port={port}", f"--server.web_root={tmp_path}"])
    assert status == 1
    log = _log_text(tmp_path)
    assert f"Failed to bind to port {port}" in log
    assert "Failed to initialize server" in log


def test_main_logs_loaded_config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "server.ini"
    path.write_text(
        f"[server]\nport = 0\nmax_threads = 0\nweb_root = {tmp_path}\n", encoding="utf-8"
    )
    assert main([f"--config={path}"]) == 1
    log = _log_text(tmp_path)
    assert f"Loaded configuration from: {path}" in log
    assert "Cannot load config file" not in log


def test_main_warns_about_unreadable_config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    missing = tmp_path / "absent.ini"
    assert main([f"--config={missing}", "--server.port=0", "--server.max_threads=0",
                 f"--server.web_root={tmp_path}"]) == 1
    log = _log_text(tmp_path)
    assert f"[WARNING] Cannot load config file: {missing}" in log


def test_main_stops_on_sigterm(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    web_root = tmp_path / "www"
    timer = threading.Timer(1.0, os.kill, (os.getpid(), signal.SIGTERM))
    timer.start()
    try:
        with pytest.raises(SystemExit) as excinfo:
            main(["--server.port=0", f"--server.web_root={web_root}"])
    finally:
        timer.cancel()
    assert excinfo.value.code == signal.SIGTERM
    out = capsys.readouterr().out
    assert f"Received signal {int(signal.SIGTERM)}. Shutting down server..." in out
    log = _log_text(tmp_path)
    assert "HTTP Server starting..." in log
    assert web_root.is_dir()
    assert signal.getsignal(signal.SIGTERM) is not None