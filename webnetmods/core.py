"""Request, session and shared helpers used by every server module."""

from __future__ import annotations

import enum
import io
import logging
import posixpath
from dataclasses import dataclass, field

SERVER_NAME = "webnet"
VERSION = "2.0.0"
PATH_MAX = 256
BUFFER_SIZE = 4096

_log = logging.getLogger("webnetmods.log")

_MIME_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".shtml": "text/html",
    ".shtm": "text/html",
    ".stm": "text/html",
    ".asp": "text/html",
    ".css": "text/css",
    ".txt": "text/plain",
    ".js": "application/javascript",
    ".json": "application/json",
    ".xml": "text/xml",
    ".gif": "image/gif",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".ico": "image/x-icon",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
}
_DEFAULT_MIME = "text/plain"


class Event(enum.Enum):
    """Points in the life of a request at which modules are invoked."""

    INIT = enum.auto()
    READ = enum.auto()
    WRITE = enum.auto()
    CLOSE = enum.auto()
    URI_PHYSICAL = enum.auto()
    URI_POST = enum.auto()
    RSP_HEADER = enum.auto()
    RSP_FILE = enum.auto()


class Method(enum.Enum):
    """HTTP request methods understood by the server."""

    UNKNOWN = enum.auto()
    GET = enum.auto()
    POST = enum.auto()
    HEADER = enum.auto()
    HEAD = enum.auto()
    PUT = enum.auto()
    OPTIONS = enum.auto()
    PROPFIND = enum.auto()
    PROPPATCH = enum.auto()
    DELETE = enum.auto()
    MKCOL = enum.auto()
    MOVE = enum.auto()
    SUBSCRIBE = enum.auto()
    UNSUBSCRIBE = enum.auto()
    NOTIFY = enum.auto()


class ModuleResult(enum.Enum):
    """What a module tells the server after handling an event."""

    CONTINUE = enum.auto()
    FINISHED = enum.auto()


@dataclass
class Request:
    """A parsed HTTP request."""

    method: Method = Method.GET
    path: str = "/"
    query: dict[str, str] = field(default_factory=dict)
    result_code: int = 200
    authorization: str | None = None
    user_agent: str | None = None
    cookie: str | None = None
    host: str | None = None
    destination: str | None = None
    depth: str | None = None
    content_type: str | None = None
    content_length: int = 0


class Session:
    """One client connection: reads from ``incoming`` and collects output."""

    def __init__(
        self,
        request,
        root="/",
        client_address=("0.0.0.0", 0),
        server_port=80,
        incoming=b"",
    ):
        self.request = request
        self.root = root.rstrip("/")
        self.client_address = tuple(client_address)
        self.server_port = server_port
        self.output = bytearray()
        self.closed = False
        self.user_data = None
        self.ops = None
        self.buffer = bytearray(BUFFER_SIZE)
        self.buffer_offset = 0
        self._incoming = io.BytesIO(bytes(incoming))

    def write(self, data):
        """Append raw bytes (or text) to the response; return the count."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.output += data
        return len(data)

    def printf(self, text):
        """Append already formatted text to the response."""
        return self.write(text)

    def read(self, size):
        """Read up to ``size`` bytes from the client; empty at end of stream."""
        return self._incoming.read(size)

    def set_header(self, mimetype, code, status, length=-1):
        """Write a complete response header."""
        lines = [
            f"HTTP/1.1 {code} {status}\r\n",
            f"Server: {SERVER_NAME} {VERSION}\r\n",
        ]
        if mimetype is not None:
            lines.append(f"Content-Type: {mimetype}\r\n")
        if length is not None and length >= 0:
            lines.append(f"Content-Length: {length}\r\n")
        lines.append("Connection: close\r\n\r\n")
        self.write("".join(lines))

    def set_status_line(self, code, status):
        """Write only the status line of a response."""
        self.write(f"HTTP/1.1 {code} {status}\r\n")

    def physical_path(self, uri):
        """Map a URI onto the file system below the document root."""
        normalized = posixpath.normpath("/" + uri.lstrip("/"))
        if normalized == "/" and self.root:
            path = self.root
        else:
            path = (self.root + normalized) if self.root else normalized
        if len(path) >= PATH_MAX:
            raise ValueError(f"path too long: {path!r}")
        return path

    def close(self):
        """Mark the session as finished."""
        self.closed = True


def mime_type(path):
    """Return the MIME type for a path from its extension."""
    _, ext = posixpath.splitext(path)
    return _MIME_TYPES.get(ext.lower(), _DEFAULT_MIME)


def path_starts_with(path, prefix):
    """True if ``path`` lies at or below ``prefix`` (case-insensitive)."""
    if prefix == "/":
        return True
    if not path.lower().startswith(prefix.lower()):
        return False
    return len(path) == len(prefix) or path[len(prefix)] == "/"


_LOGGED_METHODS = {
    Method.GET: "GET",
    Method.PUT: "PUT",
    Method.POST: "POST",
    Method.HEADER: "HEADER",
    Method.SUBSCRIBE: "SUBSCRIBE",
    Method.UNSUBSCRIBE: "UNSUBSCRIBE",
}


def log_module(session, event):
    """Log server start-up and each request's details."""
    request = session.request if session is not None else None

    if event is Event.INIT:
        _log.debug("server initialize success.")
    elif event is Event.URI_PHYSICAL and request is not None:
        host, port = session.client_address
        _log.debug("  new client: %s:%u", host, port)
        name = _LOGGED_METHODS.get(request.method)
        if name is not None:
            _log.debug("      method: %s", name)
        _log.debug("     request: %s", request.path)
        for index, (key, value) in enumerate(request.query.items()):
            _log.debug("    query[%d]: %s => %s", index, key, value)
    elif event is Event.URI_POST and request is not None:
        _log.debug("physical url: %s", request.path)
        _log.debug("   mime type: %s", mime_type(request.path))

    return ModuleResult.CONTINUE