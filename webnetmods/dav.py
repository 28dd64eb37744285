"""WebDAV methods: OPTIONS, PROPFIND, PROPPATCH, PUT, DELETE, MKCOL and MOVE."""

from __future__ import annotations

import logging
import os
import posixpath
import stat
import time

from .core import BUFFER_SIZE, SERVER_NAME, VERSION, Event, Method, ModuleResult

_log = logging.getLogger("webnetmods.dav")

_PROPFIND_ELEMENT = (
    "<d:response>"
    "<d:href>{uri}</d:href>"
    "<d:propstat>"
    "<d:prop>"
    "<d:resourcetype>{resourcetype}</d:resourcetype>"
    "<d:getcontentlength>{size}</d:getcontentlength>"
    "<d:getlastmodified>{modified}</d:getlastmodified>"
    "</d:prop>"
    "<d:status>HTTP/1.1 200 OK</d:status>"
    "</d:propstat>"
    "</d:response>\n"
)

_OPTIONS_STATUS = (
    "Allow: GET, POST, HEAD, PUT, DELETE, OPTIONS, PROPFIND, MKCOL\r\n"
    "DAV: 1\r\n\r\n"
)

_PROPFIND_HEADER = (
    "HTTP/1.1 207 Multi-Status\r\n"
    "Connection: close\r\n"
    "Content-Type: text/xml; charset=utf-8\r\n\r\n"
    '<?xml version="1.0" encoding="utf-8"?>'
    "<d:multistatus xmlns:d='DAV:'>\n"
)
_PROPFIND_FOOTER = "</d:multistatus>"

_PROPPATCH_HEADER = (
    "HTTP/1.1 207 Multi-Status\r\n"
    "Server: {server} {version}\r\n"
    "Content-Length: {length} \r\n"
    'Content-Type: text/xml; charset="utf-8"\r\n\r\n'
)
_PROPPATCH_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<D:multistatus xmlns:D="DAV:" xmlns:ns0="DAV:">'
    "<D:response>"
    "<D:href>{path}</D:href>"
    "<D:propstat>"
    "<D:prop><ns0:getlastmodified/>"
    "</D:prop>"
    "<D:status>HTTP/1.1 409 (status)</D:status>"
    "<D:responsedescription>"
    "Property is read-only.</D:responsedescription>"
    "</D:propstat>"
    "</D:response>"
    "</D:multistatus>"
)

_PUT_DONE_HEADER = (
    "HTTP/1.1 201 Created\r\n"
    "Date: Mon, 07 Sep 2015 01:50:42 GMT\r\n"
    "Server: {server} {version}\r\n"
    "Location: http://{host}{path} \r\n"
    "Content-Length: {length} \r\n"
    "Content-Type: text/html; charset=ISO-8859-1\r\n\r\n"
)
_PUT_DONE_BODY = (
    '<!DOCTYPE HTML PUBLIC "-//IETF//DTD HTML 2.0//EN">'
    "<html><head>"
    "<title>"
)


def _empty_response(status_line):
    return (
        f"HTTP/1.1 {status_line}\r\n"
        "Server: webnet\r\n"
        "Content-Length: 0\r\n"
        "Content-Type: text/plain\r\n\r\n"
    )


def propfind_element(uri, size, mtime, is_dir):
    """Return one ``<d:response>`` element of a PROPFIND reply."""
    modified = time.strftime("%a, %d %b %Y %H:%M:%S GMT", time.localtime(mtime))
    return _PROPFIND_ELEMENT.format(
        uri=uri,
        resourcetype="<d:collection/>" if is_dir else "",
        size=size,
        modified=modified,
    )


class PutSession:
    """Receives the body of a PUT request and stores it in a file."""

    def __init__(self):
        self.file = None
        self.file_opened = False
        self.read_bytes = 0

    def _open(self, session):
        path = session.request.path
        if path is None:
            _log.error("PUT without a path")
            return None
        try:
            return open(path, "wb")
        except OSError:
            _log.error("cannot open %s for writing", path)
            session.close()
            return None

    def _done(self, session):
        request = session.request
        session.printf(
            _PUT_DONE_HEADER.format(
                server=SERVER_NAME,
                version=VERSION,
                host=session.client_address[0],
                path=request.path,
                length=len(_PUT_DONE_BODY),
            )
        )
        session.printf(_PUT_DONE_BODY)

    def handle(self, session, event):
        """Read the next chunk of the request body and write it out."""
        request = session.request
        if request.method is not Method.PUT:
            return

        data = session.read(BUFFER_SIZE - 1)
        if not data:
            _log.error("connection closed while receiving %s", request.path)
            session.close()
            return
        self.read_bytes += len(data)

        if not self.file_opened:
            self.file = self._open(session)
            self.file_opened = True

        if self.file is not None:
            self.file.write(data)

        if self.read_bytes >= request.content_length:
            self._done(session)
            self.close(session)
            self.read_bytes = 0

    def close(self, session):
        """Close the file and detach this session from ``session``."""
        if self.file_opened:
            if self.file is not None:
                self.file.close()
                self.file = None
            self.file_opened = False
        session.user_data = None
        session.ops = None


def _exists(path):
    return os.path.isfile(path) or os.path.isdir(path)


def _propfind(session):
    request = session.request
    _log.debug("PROPFIND %s depth: %s", request.path, request.depth or "null")

    if not _exists(request.path):
        _log.error("Open file(%s) is not exist.", request.path)
        request.result_code = 404
        return ModuleResult.FINISHED

    session.printf(_PROPFIND_HEADER)
    parent_path = request.path[len(session.root):]
    session.printf(propfind_element(parent_path, 0, 0, True))

    if request.depth is None or request.depth != "0":
        try:
            entries = list(os.scandir(request.path))
        except OSError:
            entries = []
        for entry in entries:
            full_path = posixpath.normpath(f"{request.path}/{entry.name}")
            try:
                info = os.stat(full_path)
                size, mtime = info.st_size, info.st_mtime
                is_dir = stat.S_ISDIR(info.st_mode)
            except OSError:
                size, mtime, is_dir = 0, 0, False
            session.printf(propfind_element(entry.name, size, mtime, is_dir))

    session.printf(_PROPFIND_FOOTER)
    return ModuleResult.FINISHED


def _proppatch(session):
    request = session.request
    _log.debug("PROPPATCH %s", request.path)
    body = _PROPPATCH_BODY.format(path=request.path)
    session.printf(
        _PROPPATCH_HEADER.format(
            server=SERVER_NAME, version=VERSION, length=len(body.encode("utf-8"))
        )
    )
    session.printf(body)
    return ModuleResult.FINISHED


def _delete(session):
    path = session.request.path
    _log.debug("DELETE %s", path)
    try:
        os.unlink(path)
    except OSError:
        _log.error("DELETE failed, path %s.", path)
    session.printf(_empty_response("204 No Content"))
    return ModuleResult.FINISHED


def _mkcol(session):
    request = session.request
    _log.debug("MKCOL %s", request.path)
    try:
        os.mkdir(request.path)
    except OSError:
        request.result_code = 404
        _log.error("MKCOL mkdir error, path %s.", request.path)
    session.printf(_empty_response("201 Created"))
    return ModuleResult.FINISHED


def _move(session):
    request = session.request
    if request.destination and request.host:
        position = request.destination.find(request.host)
        if position >= 0:
            uri = request.destination[position + len(request.host):]
            try:
                full_path = session.physical_path(uri)
            except ValueError:
                full_path = None
            if full_path is not None:
                _log.debug("Get full path, %s => %s", request.path, full_path)
                try:
                    os.rename(request.path, full_path)
                except OSError:
                    _log.error("MOVE failed, %s => %s", request.path, full_path)
    session.printf(_empty_response("200 OK"))
    return ModuleResult.FINISHED


def _put(session):
    _log.debug("PUT %s", session.request.path)
    put_session = PutSession()
    session.user_data = put_session
    session.ops = put_session
    return ModuleResult.FINISHED


def _options(session):
    request = session.request
    _log.debug("OPTIONS %s", request.path)
    request.result_code = 200
    session.set_status_line(request.result_code, "OK")
    session.printf(_OPTIONS_STATUS)
    return ModuleResult.FINISHED


_HANDLERS = {
    Method.OPTIONS: _options,
    Method.PROPFIND: _propfind,
    Method.PUT: _put,
    Method.PROPPATCH: _proppatch,
    Method.DELETE: _delete,
    Method.MKCOL: _mkcol,
    Method.MOVE: _move,
}


def dav_module(session, event):
    """Handle the WebDAV methods once the physical path is known."""
    if event is not Event.URI_POST:
        return ModuleResult.CONTINUE
    handler = _HANDLERS.get(session.request.method)
    if handler is None:
        return ModuleResult.CONTINUE
    return handler(session)