"""Rewrites request paths that start with a registered alias."""

from __future__ import annotations

from .core import PATH_MAX, Event, ModuleResult, path_starts_with


class AliasModule:
    """Maps path prefixes onto other paths."""

    def __init__(self):
        self.aliases: list[tuple[str, str]] = []

    def add(self, old_path, new_path):
        """Register ``old_path`` as an alias for ``new_path``."""
        self.aliases.append((old_path, new_path))

    def handle(self, session, event):
        """Rewrite the request path on the first matching alias."""
        if event is Event.URI_PHYSICAL:
            request = session.request
            for old_path, new_path in self.aliases:
                if path_starts_with(request.path, old_path):
                    mapped = f"{new_path}/{request.path[len(old_path):]}"
                    request.path = mapped[: PATH_MAX - 1]
                    break
        return ModuleResult.CONTINUE