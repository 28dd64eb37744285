import os
import time

import pytest

from webnetmods.core import Event, Method, ModuleResult, Request, Session
from webnetmods.dav import PutSession, dav_module, propfind_element


def make_session(tmp_path, method, path, **kwargs):
    incoming = kwargs.pop("incoming", b"")
    request = Request(method=method, path=str(path), **kwargs)
    return Session(
        request,
        root=str(tmp_path),
        client_address=("10.0.0.2", 5000),
        incoming=incoming,
    )


def text(session):
    return session.output.decode("utf-8")


def test_other_events_continue(tmp_path):
    session = make_session(tmp_path, Method.OPTIONS, tmp_path)
    assert dav_module(session, Event.URI_PHYSICAL) is ModuleResult.CONTINUE
    assert session.output == b""


def test_get_is_not_handled(tmp_path):
    session = make_session(tmp_path, Method.GET, tmp_path)
    assert dav_module(session, Event.URI_POST) is ModuleResult.CONTINUE
    assert session.output == b""


def test_options(tmp_path):
    session = make_session(tmp_path, Method.OPTIONS, tmp_path)
    assert dav_module(session, Event.URI_POST) is ModuleResult.FINISHED
    assert session.request.result_code == 200
    out = text(session)
    assert out.startswith("HTTP/1.1 200 OK\r\n")
    assert "DAV: 1\r\n" in out
    assert "PROPFIND, MKCOL" in out


def test_propfind_missing_is_404(tmp_path):
    session = make_session(tmp_path, Method.PROPFIND, tmp_path / "missing")
    assert dav_module(session, Event.URI_POST) is ModuleResult.FINISHED
    assert session.request.result_code == 404
    assert session.output == b""


def test_propfind_depth_zero_lists_only_parent(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"hello")
    sub = tmp_path / "docs"
    sub.mkdir()
    session = make_session(tmp_path, Method.PROPFIND, sub, depth="0")
    assert dav_module(session, Event.URI_POST) is ModuleResult.FINISHED
    out = text(session)
    assert out.startswith("HTTP/1.1 207 Multi-Status\r\n")
    assert out.endswith("</d:multistatus>")
    assert out.count("<d:response>") == 1
    assert "<d:href>/docs</d:href>" in out
    assert "<d:collection/>" in out


def test_propfind_lists_children(tmp_path):
    data = b"hello"
    (tmp_path / "a.txt").write_bytes(data)
    (tmp_path / "sub").mkdir()
    session = make_session(tmp_path, Method.PROPFIND, tmp_path)
    dav_module(session, Event.URI_POST)
    out = text(session)
    assert out.count("<d:response>") == 3
    assert "<d:href>a.txt</d:href>" in out
    assert f"<d:getcontentlength>{len(data)}</d:getcontentlength>" in out
    sub_part = out.split("<d:href>sub</d:href>")[1].split("</d:response>")[0]
    assert "<d:collection/>" in sub_part
    file_part = out.split("<d:href>a.txt</d:href>")[1].split("</d:response>")[0]
    assert "<d:collection/>" not in file_part


def test_propfind_element_structure():
    element = propfind_element("/x", 42, 0, False)
    assert element.startswith("<d:response><d:href>/x</d:href>")
    assert element.endswith("</d:response>\n")
    assert "<d:resourcetype></d:resourcetype>" in element
    assert "<d:getcontentlength>42</d:getcontentlength>" in element


def test_propfind_element_directory():
    element = propfind_element("/d", 0, 0, True)
    assert "<d:resourcetype><d:collection/></d:resourcetype>" in element


def test_propfind_element_date_round_trip():
    mtime = 1441446473
    element = propfind_element("/x", 0, mtime, False)
    stamp = element.split("<d:getlastmodified>")[1].split("</d:getlastmodified>")[0]
    parsed = time.strptime(stamp, "%a, %d %b %Y %H:%M:%S GMT")
    assert parsed[:6] == time.localtime(mtime)[:6]


def test_proppatch_content_length_matches_body(tmp_path):
    path = tmp_path / "file.txt"
    session = make_session(tmp_path, Method.PROPPATCH, path)
    assert dav_module(session, Event.URI_POST) is ModuleResult.FINISHED
    header, body = session.output.split(b"\r\n\r\n", 1)
    assert header.startswith(b"HTTP/1.1 207 Multi-Status\r\n")
    length_line = [line for line in header.split(b"\r\n") if line.startswith(b"Content-Length:")]
    assert int(length_line[0].split(b":")[1]) == len(body)
    assert f"<D:href>{path}</D:href>".encode() in body


def test_delete_removes_file(tmp_path):
    path = tmp_path / "gone.txt"
    path.write_bytes(b"x")
    session = make_session(tmp_path, Method.DELETE, path)
    assert dav_module(session, Event.URI_POST) is ModuleResult.FINISHED
    assert not path.exists()
    assert text(session).startswith("HTTP/1.1 204 No Content\r\n")


def test_mkcol_creates_directory(tmp_path):
    path = tmp_path / "newdir"
    session = make_session(tmp_path, Method.MKCOL, path)
    assert dav_module(session, Event.URI_POST) is ModuleResult.FINISHED
    assert path.is_dir()
    assert session.request.result_code == 200
    assert text(session).startswith("HTTP/1.1 201 Created\r\n")


def test_mkcol_existing_sets_404(tmp_path):
    path = tmp_path / "newdir"
    path.mkdir()
    session = make_session(tmp_path, Method.MKCOL, path)
    dav_module(session, Event.URI_POST)
    assert session.request.result_code == 404
    assert text(session).startswith("HTTP/1.1 201 Created\r\n")


def test_move_renames_file(tmp_path):
    old = tmp_path / "old.txt"
    old.write_bytes(b"content")
    session = make_session(
        tmp_path,
        Method.MOVE,
        old,
        host="localhost",
        destination="http://localhost/new.txt",
    )
    assert dav_module(session, Event.URI_POST) is ModuleResult.FINISHED
    assert not old.exists()
    assert (tmp_path / "new.txt").read_bytes() == b"content"
    assert text(session).startswith("HTTP/1.1 200 OK\r\n")


def test_move_without_host_keeps_file(tmp_path):
    old = tmp_path / "old.txt"
    old.write_bytes(b"content")
    session = make_session(
        tmp_path, Method.MOVE, old, host="elsewhere", destination="http://localhost/new.txt"
    )
    dav_module(session, Event.URI_POST)
    assert old.exists()
    assert not (tmp_path / "new.txt").exists()


def run_put(session):
    for _ in range(100):
        if session.ops is None or session.closed:
            break
        session.ops.handle(session, Event.READ)


@pytest.mark.parametrize("size", [5, 10000])
def test_put_stores_body(tmp_path, size):
    data = bytes(range(256)) * (size // 256) + b"z" * (size % 256)
    path = tmp_path / "upload.bin"
    session = make_session(
        tmp_path, Method.PUT, path, content_length=len(data), incoming=data
    )
    assert dav_module(session, Event.URI_POST) is ModuleResult.FINISHED
    assert isinstance(session.ops, PutSession)
    assert session.user_data is session.ops
    run_put(session)
    assert session.ops is None
    assert session.user_data is None
    assert path.read_bytes() == data
    out = text(session)
    assert out.startswith("HTTP/1.1 201 Created\r\n")
    assert f"Location: http://10.0.0.2{path} \r\n" in out


def test_put_connection_break_closes_session(tmp_path):
    path = tmp_path / "upload.bin"
    session = make_session(tmp_path, Method.PUT, path, content_length=10)
    dav_module(session, Event.URI_POST)
    session.ops.handle(session, Event.READ)
    assert session.closed is True
    assert not path.exists()


def test_put_session_close_detaches(tmp_path):
    session = make_session(tmp_path, Method.PUT, tmp_path / "f")
    put = PutSession()
    session.ops = put
    session.user_data = put
    put.close(session)
    assert session.ops is None
    assert session.user_data is None
    assert put.file_opened is False


def test_put_unwritable_path_closes_session(tmp_path):
    path = tmp_path / "no" / "such" / "dir.bin"
    session = make_session(
        tmp_path, Method.PUT, path, content_length=100, incoming=b"abc"
    )
    dav_module(session, Event.URI_POST)
    session.ops.handle(session, Event.READ)
    assert session.closed is True
    assert not os.path.exists(path)