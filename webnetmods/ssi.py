"""Server-side includes in ``.shtml`` and related pages."""

from __future__ import annotations

import os

from .core import BUFFER_SIZE, Event, ModuleResult

_INCLUDE = b"<!--#include "
_VIRTUAL = b'virtual="'
_FILE = b'file="'
_END = b'" -->'

SSI_EXTENSIONS = (".shtm", ".SHTM", ".shtml", ".SHTML", ".stm", ".STM")


def send_file(session, filename):
    """Copy a file into the response; a missing or empty file writes nothing."""
    try:
        handle = open(filename, "rb")
    except OSError:
        return
    with handle:
        for chunk in iter(lambda: handle.read(BUFFER_SIZE), b""):
            if session.write(chunk) == 0:
                break


class SsiModule:
    """Expands ``<!--#include virtual="..." -->`` and ``file="..."`` directives."""

    def __init__(self, use_virtual_handlers=False):
        self.use_virtual_handlers = use_virtual_handlers
        self.virtual_handlers: list[tuple[str, object]] = []

    def register_virtual(self, name, handler):
        """Register ``handler(session)`` for a virtual include ``name``."""
        self.virtual_handlers.append((name, handler))

    def _include_virtual(self, session, raw_name):
        if self.use_virtual_handlers:
            name = raw_name.decode("utf-8", errors="replace").lower()
            for registered, handler in self.virtual_handlers:
                if registered.lower() == name:
                    handler(session)
            return
        try:
            path = session.physical_path(os.fsdecode(raw_name))
        except ValueError:
            return
        send_file(session, path)

    @staticmethod
    def _quoted(content, marker_at, marker):
        start = marker_at + len(marker)
        stop = content.find(b'"', start)
        if stop < 0:
            return None
        return content[start:stop]

    def render(self, session, content):
        """Write ``content`` to the session, expanding every include directive."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        offset = 0
        end = len(content)
        while offset < end:
            begin = content.find(_INCLUDE, offset)
            if begin < 0:
                session.write(content[offset:])
                break
            close = content.find(_END, begin)
            if close < 0:
                session.write(content[offset:])
                break

            session.write(content[offset:begin])

            virtual_at = content.find(_VIRTUAL, begin)
            if virtual_at >= 0:
                name = self._quoted(content, virtual_at, _VIRTUAL)
                if name is not None:
                    self._include_virtual(session, name)
            else:
                file_at = content.find(_FILE, begin)
                if file_at >= 0:
                    name = self._quoted(content, file_at, _FILE)
                    if name is not None:
                        send_file(session, os.fsdecode(name))

            offset = close + len(_END)

    def _do_file(self, session, handle):
        session.set_header("text/html", 200, "OK", -1)
        try:
            content = handle.read()
        except OSError:
            session.request.result_code = 500
            return
        self.render(session, content)

    def handle(self, session, event):
        """Serve SSI pages, or ``index.shtm`` inside a requested directory."""
        if event is not Event.URI_POST:
            return ModuleResult.CONTINUE

        request = session.request
        if any(ext in request.path for ext in SSI_EXTENSIONS):
            try:
                handle = open(request.path, "rb")
            except OSError:
                request.result_code = 404
                return ModuleResult.FINISHED
            with handle:
                self._do_file(session, handle)
            return ModuleResult.FINISHED

        try:
            handle = open(f"{request.path}/index.shtm", "rb")
        except OSError:
            return ModuleResult.CONTINUE
        with handle:
            self._do_file(session, handle)
        return ModuleResult.FINISHED