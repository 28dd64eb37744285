[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webnetmods"
version = "0.1.0"
description = "Pluggable request-handling modules for a small HTTP server: aliases, basic auth, CGI, directory index, ASP and SSI templates, WebDAV and multipart uploads."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "http",
    "web server",
    "cgi",
    "ssi",
    "webdav",
    "multipart",
    "upload",
    "basic auth",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content :: CGI Tools/Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["webnetmods"]

[tool.hatch.build.targets.sdist]
include = ["webnetmods", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
