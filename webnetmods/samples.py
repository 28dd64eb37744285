"""Example handlers and upload entry, and a helper that wires them together."""

from __future__ import annotations

import logging
import os
import re

from .alias import AliasModule
from .asp import AspModule
from .auth import AuthModule
from .cgi import CgiModule
from .core import mime_type
from .multipart import UploadEntry, UploadSession
from .upload import UploadModule

RT_VERSION = (4, 1, 0)

_log = logging.getLogger("webnetmods.samples")

_VERSION_PAGE = (
    '<html><body><font size="+2">RT-Thread {0}.{1}.{2}</font><br><br>'
    '<a href="javascript:history.go(-1);">Go back to root</a></html></body>'
)

_CALC_HEADER = (
    b'<html><head><meta http-equiv="Content-Type" content="text/html; '
    b'charset=gb2312" /><title> calc </title></head>'
)
_CALC_BODY = (
    b'<body><form method="post" action="/cgi-bin/calc">'
    b'<input type="text" name="a" value="%d"> '
    b'+ <input type="text" name="b" value="%d"> = %d<br>'
    b'<input type="submit" value="\xbc\xc6\xcb\xe3"></form>'
    b'<br><a href="/index.html">Go back to root</a></body></html>\r\n'
)

_HELLO_PAGE = (
    "<html><head><title> hello </title>"
    '</head><body><font size="+2">hello world</font><br><br>'
    '<a href="javascript:history.go(-1);">Go back to root</a></body></html>\r\n'
)

_UPLOAD_DONE_PAGE = (
    "<html><head><title>Upload OK </title>"
    "</head><body>Upload OK, file length = {0} "
    '<br/><br/><a href="javascript:history.go(-1);">'
    "Go back to root</a></body></html>\r\n"
)

_INTEGER = re.compile(r"\s*([+-]?\d+)")


def _atoi(text):
    if text is None:
        return 0
    match = _INTEGER.match(text)
    return int(match.group(1)) if match else 0


def asp_var_version(session):
    """ASP variable handler that writes the system version page."""
    session.printf(_VERSION_PAGE.format(*RT_VERSION))


def cgi_calc_handler(session):
    """CGI handler that adds the query values ``a`` and ``b``."""
    request = session.request
    mimetype = mime_type(".html")

    a = b = 1
    request.result_code = 200
    session.set_header(mimetype, 200, "Ok", -1)
    session.write(_CALC_HEADER)
    if request.query:
        a = _atoi(request.query.get("a"))
        b = _atoi(request.query.get("b"))
    session.write(_CALC_BODY % (a, b, a + b))


def cgi_hello_handler(session):
    """CGI handler that writes a fixed greeting page."""
    mimetype = mime_type(".html")
    body = _HELLO_PAGE.encode("utf-8")
    session.request.result_code = 200
    session.set_header(mimetype, 200, "Ok", len(body))
    session.write(body)


def upload_file_name(session):
    """Base name of the uploaded file, without any client directory part."""
    upload = session.user_data
    if not isinstance(upload, UploadSession) or upload.filename is None:
        _log.error("file name err!!")
        return None
    name = upload.filename
    name = name.rsplit("\\", 1)[-1]
    name = name.rsplit("/", 1)[-1]
    return name


def _current_file(session):
    upload = session.user_data
    return upload.user_data if isinstance(upload, UploadSession) else None


class SampleUploadEntry(UploadEntry):
    """Saves uploads posted to ``/upload`` below ``base_dir/upload_dir``."""

    def __init__(self, base_dir="/webnet", upload_dir="upload"):
        super().__init__("/upload")
        self.base_dir = base_dir
        self.upload_dir = upload_dir
        self.file_size = 0

    def open(self, session):
        """Create or open the target file; ``None`` if that fails."""
        file_name = upload_file_name(session)
        upload = session.user_data
        _log.info("Upload FileName: %s", file_name)
        _log.info("Content-Type   : %s", getattr(upload, "content_type", None))
        if file_name is None:
            return None

        path = f"{self.base_dir}/{self.upload_dir}/{file_name}"
        _log.info("save to: %s", path)
        try:
            descriptor = os.open(path, os.O_WRONLY | os.O_CREAT, 0o644)
        except OSError:
            session.close()
            return None
        self.file_size = 0
        return os.fdopen(descriptor, "wb")

    def close(self, session):
        """Close the current file."""
        handle = _current_file(session)
        if handle is None:
            return 0
        handle.close()
        _log.info("Upload FileSize: %d", self.file_size)
        return 0

    def write(self, session, data):
        """Append ``data`` to the current file and count it."""
        handle = _current_file(session)
        if handle is None:
            return 0
        _log.debug("write: length %d", len(data))
        handle.write(data)
        self.file_size += len(data)
        return len(data)

    def done(self, session):
        """Write the confirmation page."""
        page = _UPLOAD_DONE_PAGE.format(self.file_size).encode("utf-8")
        session.request.result_code = 200
        session.set_header(mime_type(".html"), 200, "Ok", len(page))
        session.write(page)
        return 0


def build_sample_modules(base_dir="/webnet"):
    """Create the example modules with their handlers registered."""
    cgi = CgiModule()
    cgi.register("hello", cgi_hello_handler)
    cgi.register("calc", cgi_calc_handler)

    asp = AspModule()
    asp.add_var("version", asp_var_version)

    alias = AliasModule()
    alias.add("/test", "/admin")

    auth = AuthModule()
    auth.set("/admin", "admin:password")

    upload = UploadModule()
    upload.add(SampleUploadEntry(base_dir))

    return {"cgi": cgi, "asp": asp, "alias": alias, "auth": auth, "upload": upload}