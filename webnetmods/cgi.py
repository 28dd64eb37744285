"""Dispatches requests below the CGI root to registered handlers."""

from __future__ import annotations

from .core import Event, ModuleResult

CGI_ROOT_PATH_MAX = 64
DEFAULT_CGI_ROOT = "/cgi-bin/"


class CgiModule:
    """Calls a handler whose name matches the path after the CGI root."""

    def __init__(self):
        self.root = ""
        self.handlers: list[tuple[str, object]] = []

    def set_root(self, root):
        """Set the URI prefix that marks CGI requests."""
        if len(root) > CGI_ROOT_PATH_MAX:
            raise ValueError(f"CGI root longer than {CGI_ROOT_PATH_MAX} characters")
        self.root = root if root.endswith("/") else root + "/"

    def register(self, name, handler):
        """Register ``handler(session)`` under ``name``."""
        self.handlers.append((name, handler))

    def handle(self, session, event):
        """Run the matching handler, or mark the request 404."""
        if event is Event.INIT:
            if not self.root:
                self.root = DEFAULT_CGI_ROOT
        elif event is Event.URI_PHYSICAL:
            request = session.request
            position = request.path.find(self.root) if self.root else -1
            if position >= 0:
                cgi_name = request.path[position + len(self.root):]
                for name, handler in self.handlers:
                    if cgi_name.lower() == name.lower():
                        handler(session)
                        return ModuleResult.FINISHED
                request.result_code = 404
        return ModuleResult.CONTINUE