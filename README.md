# webnetmods

Request-handling modules for a small HTTP server, such as a device front end
or a test rig. Each module looks at a session at fixed points in the life of a
request. It can rewrite the request, answer it, or leave it to the next module.

The package uses only the standard library.

## The model

`webnetmods.core` holds the shared pieces:

- `Request` is a parsed request. It holds the method, path, query dict,
  result code and the headers the modules use: authorization, user agent,
  cookie, host, destination, depth, content type and content length.
- `Session` is one client connection. It is built from a `Request`, a
  document root, a client address, a server port and the incoming body bytes.
  - `write` and `printf` append to `session.output`.
  - `read(size)` takes bytes from the incoming body.
  - `set_header` and `set_status_line` write response headers.
  - `physical_path(uri)` maps a URI below the root. It raises `ValueError`
    for paths that are too long.
  - `close()` sets `session.closed`.
- `Event` names the points where modules are called, for example `INIT`,
  `READ`, `URI_PHYSICAL` and `URI_POST`.
- `Method` lists the HTTP and WebDAV methods.
- `ModuleResult` is what a module returns: `CONTINUE` or `FINISHED`.
- `mime_type(path)` gives a MIME type from a file extension.
- `path_starts_with(path, prefix)` is true when a path lies at or below a
  prefix, ignoring case.
- `log_module(session, event)` logs start-up and request details at debug
  level to the `webnetmods.log` logger.

Every module is called as `handle(session, event)`, or as a plain function
that takes the same arguments, and returns a `ModuleResult`.

## Modules

| Module | What it does |
| --- | --- |
| `webnetmods.alias.AliasModule` | `add(old_path, new_path)` rewrites request paths under `old_path` to lie under `new_path`. |
| `webnetmods.auth.AuthModule` | `set(path, username_password)` protects a path prefix with a base64-encoded `user:password` pair. A second `set` on the same path replaces it. A missing or wrong authorization sets the result code to 401 and finishes the request. |
| `webnetmods.cgi.CgiModule` | `register(name, handler)` runs `handler(session)` for `<root><name>`. Names are matched without regard to case. `set_root` changes the root, and the root defaults to `/cgi-bin/` at `INIT`. Unknown names get a 404. |
| `webnetmods.dirindex.dirindex_module` | Writes an HTML listing for GET or POST requests on a directory. |
| `webnetmods.asp.AspModule` | Serves `.asp` files, or `index.asp` in a requested directory. Each `<% name %>` is replaced by the output of a handler added with `add_var`. Names that are not registered fall back to built-in variables such as `REMOTE_ADDR`, `SERVER_PORT`, `DOCUMENT_ROOT`, `USER_AGENT`, `COOKIE` and `TICK`. `render(session, content)` expands a page directly. |
| `webnetmods.ssi.SsiModule` | Serves `.shtm`, `.shtml` and `.stm` files, or `index.shtm` in a requested directory. It expands `<!--#include virtual="..." -->`, which is resolved below the document root, and `<!--#include file="..." -->`, which uses the path as given. Built with `use_virtual_handlers=True`, it sends virtual includes to callables added with `register_virtual` instead. `send_file(session, filename)` copies a file into the response. |
| `webnetmods.dav.dav_module` | Handles OPTIONS, PROPFIND, PROPPATCH, PUT, DELETE, MKCOL and MOVE. A PUT attaches a `PutSession` to the session; its `handle` streams the body to disk and writes a `201 Created` reply when the body is complete. `propfind_element(uri, size, mtime, is_dir)` builds one PROPFIND response element. |
| `webnetmods.upload.UploadModule` | For POSTs to the URL of an entry added with `add(entry)`, it attaches a `webnetmods.multipart.UploadSession` and processes the first data. It raises `ValueError` if the content type has no boundary. |

## Writing handlers

A CGI or ASP handler is any callable that takes the session:

```python
from webnetmods.alias import AliasModule
from webnetmods.cgi import CgiModule


def hello(session):
    session.set_header("text/html", 200, "Ok", -1)
    session.printf("<html><body>hello world</body></html>\r\n")


cgi = CgiModule()
cgi.register("hello", hello)

alias = AliasModule()
alias.add("/test", "/admin")
```

## Upload entries

An upload entry subclasses `webnetmods.multipart.UploadEntry`. It has a `url`
and four callbacks:

- `open`: its return value is kept as the upload's `user_data`;
- `write`;
- `close`;
- `done`: called when the final boundary is seen.

The `UploadSession` parses the multipart body as it arrives. While an upload
runs, `session.user_data` is that `UploadSession`. It exposes:

- `filename`;
- `content_type`;
- ordinary form fields, through `name_entry(name)`.

There are two ready-made entries:

- `webnetmods.upload.FileUploadEntry` writes each file into an already
  existing file at the name given in the form.
- `webnetmods.samples.SampleUploadEntry` listens on `/upload`. It writes files
  into `base_dir/upload_dir`, creating them as needed, and answers with a
  confirmation page that gives the file length.

## Samples

`webnetmods.samples` contains example handlers:

- `cgi_hello_handler`
- `cgi_calc_handler`, which adds the query values `a` and `b`
- `asp_var_version`
- `upload_file_name(session)`, which strips any client-side directory from the
  uploaded file name

`build_sample_modules(base_dir)` returns a dict of configured modules under
the keys `cgi`, `asp`, `alias`, `auth` and `upload`. It includes:

- the `hello` and `calc` CGI handlers;
- the `version` ASP variable;
- an alias from `/test` to `/admin`;
- authorization on `/admin` with `admin:password`;
- a `SampleUploadEntry`.

## What it does not do

The package has no network server and no command-line program. It does not
accept connections, parse raw HTTP requests, or run modules in order on its
own. The caller builds the `Request` and `Session`, calls the modules, and
sends `session.output` to the client.