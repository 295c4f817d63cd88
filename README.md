# tinyhttpd

tinyhttpd is a small HTTP/1.1 server. It serves static files from a web root
with a pool of worker threads and answers a few JSON endpoints. Every
connection carries one request and is then closed. Each response has the
headers `Server: tinyhttpd` and `Connection: close` and a `Date` header. Almost
every response also has `Access-Control-Allow-Origin: *`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Running

```
tinyhttpd --server.port=8080 --server.web_root=./www --server.max_threads=4
```

The server stops on Ctrl+C (SIGINT) or SIGTERM. Log lines go to the console.
Warnings and errors go to stderr and everything else to stdout. Every line is
also appended to `server.log` in the working directory.

### Command-line options

- `--help` or `-h` prints the usage text and exits.
- `--config=<file>` loads an INI-style configuration file (see below). When the
  file can be read, its settings are the whole configuration and the other
  options are ignored. When it cannot be read, a warning is logged and the
  server starts from the defaults.
- Every other `--key=value` or `--key value` argument is stored as a setting
  named `key` on top of the defaults.

The server reads only the dotted setting names listed below. Give them in full
on the command line, for example `--server.port=9000` or
`--logging.level=DEBUG`. The usage text mentions `--port`, `--web_root` and
`--max_threads`. These are stored under those bare names, and the server never
reads those names.

### Settings and defaults

| Setting                             | Default      |
|-------------------------------------|--------------|
| `server.port`                       | `8080`       |
| `server.max_threads`                | `4`          |
| `server.web_root`                   | `./www`      |
| `security.enable_directory_listing` | `false`      |
| `security.default_index`            | `index.html` |
| `logging.level`                     | `INFO`       |

`logging.level` may be `DEBUG`, `INFO`, `WARNING` or `ERROR`. If the web root
does not exist, the server tries to create it when it starts.

The defaults also hold `server.max_connections`, `server.timeout`,
`security.max_file_size`, `logging.file` and `logging.console`. The server does
not use them.

## Configuration file

The file is made of `[section]` headers and `key = value` lines. A key inside a
section is stored as `section.key`. Blank lines are skipped, and so are lines
that start with `#` or `;`.

```ini
[server]
port = 8080
max_threads = 4
web_root = ./www

[logging]
level = INFO
```

## Endpoints

- `GET /` serves `<web root>/index.html`. Any other path is appended to the web
  root and served when it names a regular file. The `Content-Type` comes from
  the file's extension. Anything that is not a regular file, directories
  included, gets `404 Not Found`.
- `GET /api/directory` returns a JSON array with one object per entry of the
  web root, sorted by name. Each object has `name`, `path`, `isDirectory` and
  `size`.
- `GET /api/status` returns `status`, `port`, `webRoot`, `threads` and
  `uptime` (`HH:MM:SS`).
- `POST /api/test` returns a JSON object with `status`, `message`,
  `receivedBody` and a local `timestamp`. A `POST` to any other path returns the
  body as plain text after `Received POST request with body: `.
- `HEAD` returns the `Content-Type` and `Content-Length` that a `GET` for the
  same file would return, with no body. It returns `404 Not Found` if the file
  does not exist.
- `OPTIONS` answers CORS preflight requests with the `Access-Control-Allow-*`
  headers and `Access-Control-Max-Age: 86400`.
- Any other method, `PUT` and `DELETE` included, gets `501 Not Implemented`. An
  empty request gets `400 Bad Request`.

## Using it from Python

```python
import threading

from tinyhttpd.config import Config
from tinyhttpd.request import HttpRequest
from tinyhttpd.response import HttpResponse
from tinyhttpd.server import HttpServer

request = HttpRequest.parse("GET /a?x=1 HTTP/1.1\r\nHost: localhost\r\n\r\n")
print(request.method, request.path, request.query_param("x"))

print(HttpResponse.text("hello").to_bytes())

config = Config.default()
config.set("server.port", "0")          # let the system pick a free port
config.set("server.web_root", "./www")

server = HttpServer(config)
print(server.process_request(b"GET /api/status HTTP/1.1\r\n\r\n").to_bytes())

server.initialize()                     # raises OSError or ValueError on failure
print("listening on", server.port)
thread = threading.Thread(target=server.start)
thread.start()
# ... later
server.stop()
thread.join()
```

The modules are:

- `tinyhttpd.config` provides `Config`. It has the typed accessors `get_int`,
  `get_str` and `get_bool`, and the methods `set`, `load_file`, `load_args`,
  `Config.default()` and `print_all`.
- `tinyhttpd.request` provides `HttpRequest.parse`, `HttpMethod`,
  `RequestParseError`, `method_from_string` and `url_decode`.
- `tinyhttpd.response` provides `HttpResponse`, whose setters can be chained,
  and the constructors `error`, `file`, `text` and `redirect`. It also provides
  `status_message`, `mime_type` and `http_date`.
- `tinyhttpd.server` provides `HttpServer` (`initialize`, `start`, `stop`,
  `handle_client`, `process_request` and `directory_listing`), `read_request`
  and `escape_json_string`.
- `tinyhttpd.sockets` provides `ServerSocket`.
- `tinyhttpd.files` provides helpers for files and directories.
- `tinyhttpd.logger` provides `Logger` and `LogLevel`.
- `tinyhttpd.cli` provides `main`, `build_config` and `help_text`.

## What it does not do

- There is no TLS and no keep-alive. Each connection serves a single request.
- A `GET` never serves an index file or a listing for a directory; it returns
  `404 Not Found`. `HttpServer.directory_listing` can still build an HTML
  listing page when you call it yourself.
- The path check compares path components without resolving `..`. It is not a
  guard against traversal outside the web root.
- Nothing handles `PUT`, `DELETE`, uploads or redirects. The server never
  returns a redirect on its own, though `HttpResponse.redirect` can build one.