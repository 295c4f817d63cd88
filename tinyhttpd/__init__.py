"""A small threaded HTTP/1.1 static file server with a few JSON endpoints."""

__version__ = "1.0.0"