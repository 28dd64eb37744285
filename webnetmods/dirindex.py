"""Produces an HTML listing for directory requests."""

from __future__ import annotations

import os
import posixpath
import stat

from .core import VERSION, Event, Method, ModuleResult

_HEADER = (
    '<html><head><title>Index of {0}</title></head><body bgcolor="white">'
    "<h1>Index of {0}</h1><hr><pre>"
)
_FOOT = "</pre><hr>WebNet/{0} (RT-Thread)</body></html>"


def dirindex_module(session, event):
    """List the directory named by the request path."""
    request = session.request
    if request.method not in (Method.GET, Method.POST):
        return ModuleResult.CONTINUE
    if event is not Event.URI_POST:
        return ModuleResult.CONTINUE

    try:
        if not stat.S_ISDIR(os.stat(request.path).st_mode):
            return ModuleResult.CONTINUE
        entries = list(os.scandir(request.path))
    except OSError:
        return ModuleResult.CONTINUE

    session.set_header("text/html", 200, "OK", -1)
    sub_path = request.path[len(session.root):]
    session.printf(_HEADER.format(sub_path))
    session.printf('<a href="../">..</a>\n')

    for entry in entries:
        full_path = posixpath.normpath(f"{request.path}/{entry.name}")
        try:
            info = os.stat(full_path)
            is_dir, size = stat.S_ISDIR(info.st_mode), info.st_size
        except OSError:
            is_dir, size = False, 0
        href = f"{sub_path}/{entry.name}"
        if is_dir:
            session.printf(f'<a href="{href}/">{entry.name}/</a>\n')
        else:
            session.printf(f'<a href="{href}">{entry.name}</a>\t\t\t\t\t{size}\n')

    session.printf(_FOOT.format(VERSION))
    return ModuleResult.FINISHED