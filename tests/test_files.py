import os
from pathlib import Path

import pytest

from rcli.bridge import PythonBridge
from rcli.http.api import CONTENT_BYTES, CONTENT_HTML, CONTENT_TEXT
from rcli.http.model import HTTPHeaders, HTTPRequest
from rcli.services import files
from rcli.services.files import (
	BytesContent,
	ErrorContent,
	FileService,
	HTMLContent,
	ServeOptions,
	TextContent,
	readFile,
	renderListing,
	resolvePath,
)

from conftest import BINARY

# --
# Path resolution


def test_resolve_joins_request_path_to_root(tmp_path: Path):
	assert resolvePath(tmp_path, "/index.txt") == tmp_path / "index.txt"
	assert resolvePath(tmp_path, "/sub/a b.txt") == tmp_path / "sub" / "a b.txt"
	assert resolvePath(tmp_path, "") == tmp_path
	assert resolvePath(tmp_path, "/") == tmp_path


def test_resolve_keeps_relative_roots():
	assert resolvePath(Path("."), "/index.txt") == Path("index.txt")
	assert resolvePath(Path("public"), "/a/b") == Path("public/a/b")


def test_resolve_rejects_paths_escaping_root(tmp_path: Path):
	assert resolvePath(tmp_path, "/../secret") is None
	assert resolvePath(tmp_path, "/sub/../../secret") is None
	# Staying inside the root is fine, and the path is not normalized
	assert resolvePath(tmp_path, "/sub/../index.txt") == tmp_path / "sub/../index.txt"


def test_resolve_rejects_sibling_with_common_prefix(tmp_path: Path):
	root = tmp_path / "www"
	assert resolvePath(root, "/../www-private/key") is None


# --
# Reading files


def test_read_text_file_as_text(root: Path):
	assert readFile(root / "index.txt") == TextContent("hello")


def test_read_text_keeps_line_endings(root: Path):
	res = readFile(root / "sub" / "a b.txt")
	assert isinstance(res, TextContent)
	assert res.text.encode("utf8") == b"spaced\r\nout\n"


def test_read_binary_falls_back_to_bytes(root: Path):
	assert readFile(root / "image.bin") == BytesContent(BINARY)


def test_read_binary_fallback_failure_is_an_error(root: Path, monkeypatch):
	monkeypatch.setattr(
		files, "readBytes", lambda path: ErrorContent(500, "Disk on fire")
	)
	assert readFile(root / "image.bin") == ErrorContent(500, "Disk on fire")


def test_read_failure_is_an_error(tmp_path: Path):
	res = readFile(tmp_path / "nope.txt")
	assert isinstance(res, ErrorContent)
	assert res.status == 500
	assert "No such file" in res.message


# --
# Directory listings


def test_listing_links_entries_under_request_path():
	body = renderListing("/sub", ["a.txt", "b"])
	assert body.startswith("<!DOCTYPE html><html><body><ul>")
	assert body.endswith("</ul></body></html>")
	assert '<li><a href="/sub">.</a></li>' in body
	assert '<li><a href="/sub/a.txt">a.txt</a></li>' in body
	assert '<li><a href="/sub/b">b</a></li>' in body


def test_listing_of_root_has_absolute_links():
	body = renderListing("/", ["index.txt"])
	assert '<a href="/">.</a>' in body
	assert '<a href="/index.txt">index.txt</a>' in body


def test_listing_percent_encodes_links_and_escapes_labels():
	body = renderListing("/", ["a b.txt", "<x>&y"])
	assert '<a href="/a%20b.txt">a b.txt</a>' in body
	assert '<a href="/%3Cx%3E%26y">&lt;x&gt;&amp;y</a>' in body


def test_listing_shows_undecodable_names_without_link():
	name = os.fsdecode(b"\xff.bin")
	body = renderListing("/", [name])
	assert body.count("<li>") == 2
	assert "<li>b&#x27;\\xff.bin&#x27;</li>" in body


# --
# Responses


def test_scenario_root_listing(bridge: PythonBridge):
	res = bridge.get("/")
	assert res.status == 200
	assert res.contentType == CONTENT_HTML
	body = res.payload.decode("utf8")
	assert body.count("<li>") == 4
	for href, label in (
		("/", "."),
		("/index.txt", "index.txt"),
		("/image.bin", "image.bin"),
		("/sub", "sub"),
	):
		assert f'<a href="{href}">{label}</a>' in body


def test_scenario_text_file(bridge: PythonBridge):
	res = bridge.get("/index.txt")
	assert res.status == 200
	assert res.contentType == CONTENT_TEXT
	assert res.payload == b"hello"
	assert res.getHeader("Content-Length") == "5"


def test_scenario_binary_file(bridge: PythonBridge):
	res = bridge.get("/image.bin")
	assert res.status == 200
	assert res.contentType == CONTENT_BYTES
	assert res.payload == BINARY


def test_scenario_missing_file(bridge: PythonBridge, root: Path):
	res = bridge.get("/missing.txt")
	assert res.status == 404
	assert res.contentType == CONTENT_TEXT
	assert res.payload.decode("utf8") == f'File "{root / "missing.txt"}" not found!'


def test_percent_encoded_link_is_followable(bridge: PythonBridge):
	listing = bridge.get("/sub").payload.decode("utf8")
	assert '<a href="/sub/a%20b.txt">a b.txt</a>' in listing
	res = bridge.get("/sub/a%20b.txt")
	assert res.status == 200
	assert res.payload == b"spaced\r\nout\n"


def test_subdirectory_listing_with_trailing_slash(bridge: PythonBridge):
	body = bridge.get("/sub/").payload.decode("utf8")
	assert '<a href="/sub/">.</a>' in body
	assert '<a href="/sub/a%20b.txt">a b.txt</a>' in body


def test_empty_directory_lists_only_itself(bridge: PythonBridge, root: Path):
	(root / "empty").mkdir()
	res = bridge.get("/empty")
	assert res.status == 200
	assert res.payload.decode("utf8").count("<li>") == 1


def test_query_string_is_ignored(bridge: PythonBridge):
	res = bridge.get("/index.txt?download=1")
	assert res.status == 200
	assert res.payload == b"hello"


def test_escaping_root_is_not_found(bridge: PythonBridge, root: Path):
	res = bridge.get("/../etc/passwd")
	assert res.status == 404
	assert res.payload.decode("utf8") == f'File "{root / "../etc/passwd"}" not found!'


def test_missing_non_utf8_path_is_not_found(bridge: PythonBridge, root: Path):
	res = bridge.get("/%FF.txt")
	assert res.status == 404
	assert res.contentType == CONTENT_TEXT
	assert res.payload.decode("utf8") == f'File "{root}/\\xff.txt" not found!'


def test_non_regular_file_is_a_server_error(bridge: PythonBridge, root: Path):
	if not hasattr(os, "mkfifo"):
		pytest.skip("Named pipes are not supported")
	os.mkfifo(root / "pipe")
	res = bridge.get("/pipe")
	assert res.status == 500
	assert res.contentType == CONTENT_TEXT
	assert b"is not a regular file" in res.payload


def test_listing_failure_is_a_server_error(bridge: PythonBridge, monkeypatch):
	def fail(path: Path) -> list[str]:
		raise PermissionError(13, "Permission denied", str(path))

	monkeypatch.setattr(files, "listDirectory", fail)
	res = bridge.get("/sub")
	assert res.status == 500
	assert res.contentType == CONTENT_TEXT
	assert b"Permission denied" in res.payload


def test_text_read_failure_is_a_server_error(bridge: PythonBridge, monkeypatch):
	monkeypatch.setattr(
		files, "readText", lambda path: ErrorContent(500, "Input/output error")
	)
	res = bridge.get("/index.txt")
	assert res.status == 500
	assert res.payload == b"Input/output error"


def test_undecodable_directory_entry(bridge: PythonBridge, root: Path):
	try:
		name = os.path.join(os.fsencode(root), b"\xff.bin")
		fd = os.open(name, os.O_CREAT | os.O_WRONLY)
	except OSError:
		pytest.skip("Filesystem does not support non UTF-8 names")
	os.close(fd)
	body = bridge.get("/").payload.decode("utf8")
	assert body.count("<li>") == 5
	assert "<li>b&#x27;\\xff.bin&#x27;</li>" in body


def test_respond_collapses_content_variants(root: Path):
	service = FileService(root)
	req = HTTPRequest("GET", "/", None, HTTPHeaders({}))
	for content, status, content_type in (
		(TextContent("a"), 200, CONTENT_TEXT),
		(BytesContent(b"\xff"), 200, CONTENT_BYTES),
		(HTMLContent("<html></html>"), 200, CONTENT_HTML),
		(ErrorContent(404, "gone"), 404, CONTENT_TEXT),
	):
		res = service.respond(req, content)
		assert res.status == status
		assert res.contentType == content_type


def test_error_messages_with_undecodable_bytes(root: Path):
	req = HTTPRequest("GET", "/", None, HTTPHeaders({}))
	message = os.fsdecode(b"Permission denied: '\xff.bin'")
	res = FileService(root).respond(req, ErrorContent(500, message))
	assert res.status == 500
	assert res.payload == b"Permission denied: '\\xff.bin'"


def test_service_accepts_root_as_string(tmp_path: Path):
	assert FileService(str(tmp_path)).options == ServeOptions(root=tmp_path)
	assert FileService().options.root == Path(".")


# EOF
