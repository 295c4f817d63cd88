"""Command-line entry point that configures and runs the HTTP server."""

from __future__ import annotations

import signal
import sys
import threading
from collections.abc import Sequence

from .config import Config
from .logger import Logger, LogLevel
from .server import HttpServer

_CONFIG_OPTION = "--config="
_LOG_LEVELS = {
    "DEBUG": LogLevel.DEBUG,
    "WARNING": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def help_text() -> str:
    """The usage message printed for ``--help``."""
    return (
        "Usage: tinyhttpd [options]\n"
        "Options:\n"
        "  --port=<port>          Port to listen on (default: 8080)\n"
        "  --web_root=<path>      Web root directory (default: ./www)\n"
        "  --config=<file>        Configuration file\n"
        "  --max_threads=<num>    Maximum worker threads (default: 4)\n"
        "  --help                 Show this help message\n"
    )


def _config_path(argv: Sequence[str]) -> str | None:
    return next(
        (arg[len(_CONFIG_OPTION):] for arg in argv if arg.startswith(_CONFIG_OPTION)),
        None,
    )


def _load_config(argv: Sequence[str], logger: Logger | None) -> Config:
    path = _config_path(argv)
    if path is not None:
        config = Config()
        try:
            config.load_file(path)
        except OSError:
            if logger is not None:
                logger.warning(f"Cannot load config file: {path}")
        else:
            if logger is not None:
                logger.info(f"Loaded configuration from: {path}")
            return config

    config = Config.default()
    config.load_args(argv)
    return config


def build_config(argv: Sequence[str]) -> Config:
    """The configuration for ``argv``: the ``--config=`` file if it can be read,
    otherwise the defaults overlaid with the command-line options."""
    return _load_config(argv, None)


def _run(args: list[str], logger: Logger, servers: list[HttpServer]) -> int:
    try:
        logger.init("server.log", LogLevel.INFO)
        config = _load_config(args, logger)

        level = _LOG_LEVELS.get(config.get_str("logging.level", "INFO"))
        if level is not None:
            logger.set_level(level)

        server = HttpServer(config, logger)
        servers.append(server)
        try:
            server.initialize()
        except (OSError, ValueError):
            logger.error("Failed to initialize server")
            return 1

        logger.info("HTTP Server starting...")
        logger.info(f"Web root: {config.get_str('server.web_root', './www')}")
        logger.info(f"Port: {config.get_int('server.port', 8080)}")
        logger.info(f"Threads: {config.get_int('server.max_threads', 4)}")
        logger.info("Press Ctrl+C to stop the server")

        server.start()
        logger.info("Server shutdown complete")
        return 0
    except Exception as exc:
        print(f"Fatal error: {exc}", file=sys.stderr, flush=True)
        return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server until it is stopped; returns the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if any(arg in ("--help", "-h") for arg in args):
        print(help_text(), end="")
        return 0

    logger = Logger()
    servers: list[HttpServer] = []

    def on_signal(signum: int, _frame: object) -> None:
        print(f"\nReceived signal {signum}. Shutting down server...", flush=True)
        for server in servers:
            server.stop()
        logger.close()
        raise SystemExit(signum)

    previous: dict[int, object] = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, on_signal)

    try:
        return _run(args, logger, servers)
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
        for server in servers:
            if server.running:
                server.stop()
        logger.close()


if __name__ == "__main__":
    sys.exit(main())