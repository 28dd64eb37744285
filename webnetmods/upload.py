"""Dispatches ``multipart/form-data`` POSTs to registered upload entries."""

from __future__ import annotations

from .core import Event, Method, ModuleResult
from .multipart import UploadEntry, UploadSession

_BOUNDARY = "boundary="


def _upload_session(session):
    upload = session.user_data
    return upload if isinstance(upload, UploadSession) else None


def _current_file(session):
    upload = _upload_session(session)
    return None if upload is None else upload.user_data


class UploadModule:
    """Starts an upload session for POSTs to a registered entry's URL."""

    def __init__(self):
        self.entries: list[UploadEntry] = []

    def add(self, entry):
        """Register an upload entry."""
        self.entries.append(entry)

    def _find_entry(self, path):
        for entry in self.entries:
            if path.startswith(entry.url):
                rest = path[len(entry.url):]
                if rest == "" or rest.startswith("?"):
                    return entry
        return None

    def open(self, session):
        """Attach an upload session to ``session`` and process the first data.

        Raises ``ValueError`` when the request carries no multipart boundary.
        """
        request = session.request
        if request.method is not Method.POST:
            return ModuleResult.CONTINUE

        entry = self._find_entry(request.path)
        if entry is None:
            return ModuleResult.CONTINUE

        content_type = request.content_type or ""
        position = content_type.find(_BOUNDARY)
        boundary = content_type[position + len(_BOUNDARY):] if position >= 0 else ""
        upload = UploadSession(boundary, entry)

        session.user_data = upload
        session.ops = upload
        upload.handle(session, Event.READ)
        return ModuleResult.FINISHED

    def handle(self, session, event):
        """Open uploads once the physical path is known."""
        if event is Event.URI_PHYSICAL:
            return self.open(session)
        return ModuleResult.CONTINUE


class FileUploadEntry(UploadEntry):
    """Writes each uploaded file into the existing file named by the upload."""

    def __init__(self, url):
        super().__init__(url)

    def open(self, session):
        """Open the upload's file name for writing; ``None`` if that fails."""
        upload = _upload_session(session)
        if upload is None or upload.filename is None:
            return None
        try:
            handle = open(upload.filename, "r+b")
        except OSError:
            handle = None
        upload.user_data = handle
        return handle

    def close(self, session):
        """Close the current file."""
        handle = _current_file(session)
        if handle is not None:
            handle.close()

    def write(self, session, data):
        """Write ``data`` to the current file; return the number of bytes written."""
        handle = _current_file(session)
        if handle is None:
            return 0
        return handle.write(data)

    def done(self, session):
        """Flush and close the current file once the upload is complete."""
        handle = _current_file(session)
        if handle is not None:
            handle.close()