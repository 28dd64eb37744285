"""HTTP basic authorization on path prefixes."""

from __future__ import annotations

import base64

from .core import Event, ModuleResult, path_starts_with


class AuthModule:
    """Protects paths with a ``username:password`` pair."""

    def __init__(self):
        self.items: dict[str, str] = {}

    def set(self, path, username_password):
        """Protect ``path``; setting the same path again replaces its credentials."""
        encoded = base64.b64encode(username_password.encode("utf-8")).decode("ascii")
        self.items[path] = encoded

    def handle(self, session, event):
        """Check the request's authorization against the first matching path."""
        if event is not Event.URI_PHYSICAL:
            return ModuleResult.CONTINUE

        request = session.request
        for path, expected in self.items.items():
            if not path_starts_with(request.path, path):
                continue
            if request.authorization is not None and request.authorization == expected:
                request.result_code = 200
                return ModuleResult.CONTINUE
            request.result_code = 401
            return ModuleResult.FINISHED

        return ModuleResult.CONTINUE