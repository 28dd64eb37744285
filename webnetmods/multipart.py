"""Streaming parser for ``multipart/form-data`` request bodies."""

from __future__ import annotations

import abc
from dataclasses import dataclass

from .core import BUFFER_SIZE, Event

_CONTENT_DISPOSITION = b"Content-Disposition:"
_CONTENT_TYPE = b"Content-Type:"
_CONTENT_RANGE = b"Content-Range:"
_FORM_DATA = b"form-data"
_FILENAME = b'filename="'
_FIELDNAME = b'name="'
_CRLF = b"\r\n"


def find_bytes(haystack, needle):
    """Return the offset of ``needle`` in ``haystack``, or ``None``."""
    position = bytes(haystack).find(bytes(needle))
    return None if position < 0 else position


def _begins(data, position, prefix):
    """Case-insensitive test that ``data`` holds ``prefix`` at ``position``."""
    return data[position:position + len(prefix)].lower() == prefix.lower()


def _skip(data, position, characters):
    while position < len(data) and data[position] in characters:
        position += 1
    return position


def _decode(raw):
    return raw.decode("utf-8", errors="replace")


class UploadEntry(abc.ABC):
    """Receives the files of uploads posted to ``url``."""

    def __init__(self, url):
        self.url = url

    @abc.abstractmethod
    def open(self, session):
        """Start a file; the result is kept as the upload's user data."""

    @abc.abstractmethod
    def close(self, session):
        """Finish the file that is currently open."""

    @abc.abstractmethod
    def write(self, session, data):
        """Store one chunk of the current file."""

    @abc.abstractmethod
    def done(self, session):
        """Called once the final boundary has been seen."""


@dataclass
class _NameEntry:
    name: str
    value: str | None = None


class UploadSession:
    """State of one multipart upload, fed by the session's READ events."""

    def __init__(self, boundary, entry):
        if not boundary:
            raise ValueError("multipart upload without a boundary")
        if isinstance(boundary, str):
            boundary = boundary.encode("utf-8")
        self.boundary = b"--" + boundary
        self.entry = entry
        self.filename: str | None = None
        self.content_type: str | None = None
        self.name_entries: list[_NameEntry] = []
        self.file_opened = False
        self.user_data = None
        self.pending = b""

    @property
    def _first(self):
        return self.boundary + _CRLF

    @property
    def _normal(self):
        return _CRLF + self.boundary + _CRLF

    @property
    def _common(self):
        return _CRLF + self.boundary

    @property
    def _last(self):
        return _CRLF + self.boundary + b"--" + _CRLF

    def parse_header(self, data):
        """Parse a part header at the start of ``data``.

        Returns the offset just past the header, or ``None`` when ``data``
        does not begin with a boundary.
        """
        data = bytes(data)
        if _begins(data, 0, self._last):
            return len(self._last)
        if _begins(data, 0, self._normal):
            position = len(self._normal)
        elif _begins(data, 0, self._first):
            position = len(self._first)
        else:
            return None

        if self.filename is not None and self.content_type is not None:
            self.filename = None
            self.content_type = None

        name = filename = content_type = None
        end = len(data)
        while position < end:
            line_end = data.find(_CRLF, position)
            if line_end < 0:
                line_end = end
            if _begins(data, position, _CONTENT_DISPOSITION):
                position = _skip(data, position + len(_CONTENT_DISPOSITION), b" ")
                if _begins(data, position, _FORM_DATA):
                    position = _skip(data, position + len(_FORM_DATA), b" ;")
                    if _begins(data, position, _FIELDNAME):
                        position += len(_FIELDNAME)
                        quote = data.find(b'"', position)
                        if quote >= 0:
                            name = data[position:quote]
                            position = _skip(data, quote + 1, b" ;")
                        else:
                            name = data[position:line_end]
                    if _begins(data, position, _FILENAME):
                        position += len(_FILENAME)
                        quote = data.find(b'"', position)
                        if quote >= 0:
                            filename = data[position:quote]
                            position = quote + 1
                        else:
                            filename = data[position:line_end]
            elif _begins(data, position, _CONTENT_TYPE):
                position = _skip(data, position + len(_CONTENT_TYPE), b" ")
                content_type = data[position:line_end]
            elif _begins(data, position, _CONTENT_RANGE):
                position = _skip(data, position + len(_CONTENT_RANGE), b" ")
            elif _begins(data, position, _CRLF):
                position += len(_CRLF)
                self.filename = _decode(filename) if filename is not None else None
                self.content_type = (
                    _decode(content_type) if content_type is not None else None
                )
                if name is not None:
                    self.name_entries.append(_NameEntry(_decode(name)))
                return position

            next_line = data.find(_CRLF, position)
            if next_line < 0:
                return end
            position = next_line + len(_CRLF)

        return position

    def next_possible_boundary(self, data):
        """Offset where a boundary starts or may start, or ``None``."""
        data = bytes(data)
        common = self._common
        if _begins(data, 0, common):
            return 0
        position = data.find(common)
        if position >= 0:
            return position

        carriage = data.rfind(b"\r")
        if carriage < 0:
            return None
        if carriage == len(data) - 1:
            return carriage
        if data[carriage + 1:carriage + 2] == b"\n" and carriage == len(data) - 2:
            return None
        tail = data[carriage + 2:]
        if len(tail) <= len(self.boundary) and tail == self.boundary[: len(tail)]:
            return carriage
        return None

    def handle_section(self, session, data):
        """Pass file data to the entry, or record a form field's value."""
        data = bytes(data)
        if self.filename is not None and self.content_type is not None and data:
            self.entry.write(session, data)
            return
        line_end = data.find(_CRLF)
        if line_end >= 0 and self.name_entries:
            self.name_entries[-1].value = _decode(data[:line_end])

    def _consume(self, session, data):
        position = self.next_possible_boundary(data)
        if not position:
            self.handle_section(session, data)
            return len(data)
        self.handle_section(session, data[:position])
        return position

    def _read(self, session):
        if self._last in self.pending:
            return self.pending
        if self.pending:
            more = session.read(BUFFER_SIZE - len(self.pending) - 1)
            return self.pending + (more or b"")
        return session.read(BUFFER_SIZE - 1)

    def handle(self, session, event):
        """Read the next piece of the body and process every part in it."""
        if event is not Event.READ:
            return

        data = bytes(self._read(session))
        if not data:
            session.close()
            return

        position = 0
        end = len(data)
        while position < end:
            remaining = data[position:]
            if _begins(remaining, 0, self._last):
                self.entry.done(session)
                session.close()
                return

            if len(remaining) < BUFFER_SIZE // 3 and self._last not in remaining:
                self.pending = remaining
                return

            header_end = self.parse_header(remaining)
            if header_end is not None:
                if self.filename is not None and self.content_type is not None:
                    if not self.file_opened:
                        self.user_data = self.entry.open(session)
                        self.file_opened = True
                elif self.file_opened:
                    self.entry.close(session)
                    self.user_data = None
                    self.file_opened = False
                position += header_end
                remaining = data[position:]

            position += self._consume(session, remaining)

        self.pending = b""

    def close(self, session):
        """Close any open file and detach this upload from ``session``."""
        if self.file_opened:
            self.entry.close(session)
            self.file_opened = False
        self.filename = None
        self.content_type = None
        self.name_entries = []
        self.pending = b""
        session.user_data = None
        session.ops = None
        session.close()

    def name_entry(self, name):
        """Value of the form field ``name`` (case-insensitive), or ``None``."""
        wanted = name.lower()
        for entry in self.name_entries:
            if entry.name.lower() == wanted:
                return entry.value
        return None