import base64

from webnetmods.core import Event, Method, ModuleResult, Request, Session
from webnetmods.multipart import UploadSession
from webnetmods.samples import (
    RT_VERSION,
    SampleUploadEntry,
    asp_var_version,
    build_sample_modules,
    cgi_calc_handler,
    cgi_hello_handler,
    upload_file_name,
)


def _split(output):
    head, body = bytes(output).split(b"\r\n\r\n", 1)
    return head, body


def _multipart(filename, payload):
    return (
        b"--XYZ\r\n"
        b'Content-Disposition: form-data; name="file"; filename="' + filename + b'"\r\n'
        b"Content-Type: application/octet-stream\r\n\r\n"
        + payload + b"\r\n--XYZ--\r\n"
    )


def test_hello_content_length_matches_body():
    session = Session(Request(path="/cgi-bin/hello"))
    cgi_hello_handler(session)
    head, body = _split(session.output)
    assert f"Content-Length: {len(body)}".encode() in head
    assert b"hello world" in body
    assert session.request.result_code == 200


def test_calc_uses_query_values():
    session = Session(Request(query={"a": "3", "b": "4"}))
    cgi_calc_handler(session)
    assert b'value="3"' in session.output
    assert b"= 7<br>" in session.output


def test_calc_defaults_without_query():
    session = Session(Request())
    cgi_calc_handler(session)
    assert b"= 2<br>" in session.output
    assert b"\xbc\xc6\xcb\xe3" in session.output


def test_calc_parses_like_atoi():
    session = Session(Request(query={"a": "12abc", "b": " -2"}))
    cgi_calc_handler(session)
    assert b"= 10<br>" in session.output


def test_asp_version_page():
    session = Session(Request())
    asp_var_version(session)
    version = ".".join(str(part) for part in RT_VERSION)
    assert f"RT-Thread {version}".encode() in session.output
    assert b"Go back to root" in session.output


def test_upload_file_name_strips_directories():
    entry = SampleUploadEntry("/base")
    session = Session(Request())
    upload = UploadSession("XYZ", entry)
    upload.filename = "C:\\dir\\sub/file.txt"
    session.user_data = upload
    assert upload_file_name(session) == "file.txt"


def test_upload_file_name_none_cases():
    session = Session(Request())
    assert upload_file_name(session) is None
    session.user_data = UploadSession("XYZ", SampleUploadEntry("/base"))
    assert upload_file_name(session) is None


def test_sample_upload_saves_file(tmp_path):
    (tmp_path / "upload").mkdir()
    modules = build_sample_modules(str(tmp_path))
    request = Request(
        method=Method.POST,
        path="/upload",
        content_type="multipart/form-data; boundary=XYZ",
    )
    payload = b"hello world"
    session = Session(request, incoming=_multipart(b"C:\\x\\photo.bin", payload))
    assert modules["upload"].handle(session, Event.URI_PHYSICAL) is ModuleResult.FINISHED
    session.ops.close(session)
    assert (tmp_path / "upload" / "photo.bin").read_bytes() == payload
    assert f"Upload OK, file length = {len(payload)}".encode() in session.output


def test_sample_upload_open_failure_closes_session(tmp_path):
    entry = SampleUploadEntry(str(tmp_path), "absent")
    session = Session(Request())
    upload = UploadSession("XYZ", entry)
    upload.filename = "photo.bin"
    session.user_data = upload
    assert entry.open(session) is None
    assert session.closed


def test_sample_cgi_dispatch():
    modules = build_sample_modules()
    modules["cgi"].handle(None, Event.INIT)
    session = Session(Request(path="/cgi-bin/hello"))
    assert modules["cgi"].handle(session, Event.URI_PHYSICAL) is ModuleResult.FINISHED
    assert b"hello world" in session.output


def test_sample_alias_maps_to_admin():
    modules = build_sample_modules()
    session = Session(Request(path="/test/page.html"))
    modules["alias"].handle(session, Event.URI_PHYSICAL)
    assert session.request.path.startswith("/admin/")
    assert session.request.path.endswith("page.html")


def test_sample_auth_protects_admin():
    modules = build_sample_modules()
    session = Session(Request(path="/admin/index.html"))
    assert modules["auth"].handle(session, Event.URI_PHYSICAL) is ModuleResult.FINISHED
    assert session.request.result_code == 401

    credentials = base64.b64encode(b"admin:password").decode("ascii")
    allowed = Session(Request(path="/admin/index.html", authorization=credentials))
    assert modules["auth"].handle(allowed, Event.URI_PHYSICAL) is ModuleResult.CONTINUE
    assert allowed.request.result_code == 200