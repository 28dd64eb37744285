"""Server-side variable substitution in ``.asp`` pages."""

from __future__ import annotations

import time

from .core import Event, ModuleResult

_OPEN_TAG = b"<%"
_CLOSE_TAG = b"%>"
_START_TIME = time.monotonic()


def _text(value):
    return "" if value is None else str(value)


def _uptime():
    seconds = int(time.monotonic() - _START_TIME)
    hour, rest = divmod(seconds, 3600)
    minute, second = divmod(rest, 60)
    return f"{hour:02d}:{minute:02d}:{second:02d}"


def _default_variable(session, name):
    """Write the value of a built-in variable; unknown names write nothing."""
    request = session.request
    if name.startswith(b"VERION"):
        session.printf("WebNet 1.0.0")
    elif name.startswith(b"REMOTE_ADDR"):
        session.printf(_text(session.client_address[0]))
    elif name.startswith(b"REMOTE_PORT"):
        session.printf(f"{session.client_address[1]}")
    elif name.startswith(b"SERVER_ADDR"):
        # The server address is not known without a network interface.
        pass
    elif name.startswith(b"SERVER_PORT"):
        session.printf(f"{session.server_port}")
    elif name.startswith(b"DOCUMENT_ROOT"):
        session.printf(session.root)
    elif name.startswith(b"SERVER"):
        session.printf("RT-Thread/WebNet")
    elif name.startswith(b"HOST"):
        session.printf("WebNet")
    elif name.startswith(b"DATE"):
        session.printf("2011/08/01")
    elif name.startswith(b"USER_AGENT"):
        session.printf(_text(request.user_agent))
    elif name.startswith(b"COOKIE"):
        session.printf(_text(request.cookie))
    elif name.startswith(b"MEMUSAGE"):
        total, used, max_used = 1024 * 32, 1024 * 16, 1024 * 24
        session.printf(f"current {used}/maximal used {max_used}/total {total}")
    elif name.startswith(b"TICK"):
        session.printf(_uptime())


class AspModule:
    """Replaces ``<% name %>`` markers with the output of variable handlers."""

    def __init__(self):
        self.variables: list[tuple[str, object]] = []

    def add_var(self, name, handler):
        """Register ``handler(session)`` for the variable ``name``."""
        self.variables.append((name, handler))

    def _find_handler(self, text):
        lowered = text.lower()
        for name, handler in self.variables:
            if lowered.startswith(name.encode("utf-8").lower()):
                return handler
        return None

    def render(self, session, content):
        """Write ``content`` to the session, expanding every variable marker."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        offset = 0
        end = len(content)
        while offset < end:
            begin = content.find(_OPEN_TAG, offset)
            if begin < 0:
                session.write(content[offset:])
                break
            close = content.find(_CLOSE_TAG, begin)
            if close < 0:
                session.write(content[offset:])
                break

            session.write(content[offset:begin])
            name_start = begin + len(_OPEN_TAG)
            while name_start < end and content[name_start] in b" \t":
                name_start += 1
            remainder = content[name_start:]

            handler = self._find_handler(remainder)
            if handler is not None:
                handler(session)
            else:
                _default_variable(session, remainder)

            offset = close + len(_CLOSE_TAG)

    def _do_file(self, session, handle):
        session.set_header("text/html", 200, "OK", -1)
        try:
            content = handle.read()
        except OSError:
            session.request.result_code = 500
            return
        self.render(session, content)

    def handle(self, session, event):
        """Serve ``.asp`` files, or ``index.asp`` inside a requested directory."""
        if event is not Event.URI_POST:
            return ModuleResult.CONTINUE

        request = session.request
        if ".asp" in request.path or ".ASP" in request.path:
            try:
                handle = open(request.path, "rb")
            except OSError:
                request.result_code = 404
                return ModuleResult.FINISHED
            with handle:
                self._do_file(session, handle)
            return ModuleResult.FINISHED

        try:
            handle = open(f"{request.path}/index.asp", "rb")
        except OSError:
            return ModuleResult.CONTINUE
        with handle:
            self._do_file(session, handle)
        return ModuleResult.FINISHED