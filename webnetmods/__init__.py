"""Request-handling modules for a small HTTP server: alias, auth, CGI, directory index, ASP, SSI, WebDAV and multipart upload."""

__version__ = "0.1.0"