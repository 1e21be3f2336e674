import os
from pathlib import Path
from typing import NamedTuple, TypeAlias
from urllib.parse import quote

from ..config import HOST, PORT
from ..decorators import on
from ..http.model import HTTPRequest, HTTPResponse
from ..model import Service
from ..utils.htmpl import H, Node, html
from ..utils.logging import LogLevel, debug, logged, warning

# -----------------------------------------------------------------------------
#
# CONFIGURATION
#
# -----------------------------------------------------------------------------


class ServeOptions(NamedTuple):
	"""The configuration of a file server, created once at startup and
	shared as-is by every request."""

	root: Path = Path(".")
	host: str = HOST
	port: int = PORT


# -----------------------------------------------------------------------------
#
# CONTENT
#
# -----------------------------------------------------------------------------
# The outcome of serving a path, before it is turned into an HTTP response.


class TextContent(NamedTuple):
	"""A file that decoded as UTF-8."""

	text: str


class BytesContent(NamedTuple):
	"""A file served as raw bytes, because it is not valid UTF-8."""

	data: bytes


class HTMLContent(NamedTuple):
	"""A directory listing."""

	html: str


class ErrorContent(NamedTuple):
	status: int
	message: str


class DecodeFailure(NamedTuple):
	"""A text read that failed only because the content is not UTF-8. This
	is what triggers the binary fallback."""

	reason: str


TContent: TypeAlias = TextContent | BytesContent | HTMLContent | ErrorContent


# -----------------------------------------------------------------------------
#
# PATHS
#
# -----------------------------------------------------------------------------


def resolvePath(root: Path, path: str) -> Path | None:
	"""Joins the request `path` to the `root` directory. The path is not
	normalized, but `None` is returned when its `..` segments would lead
	outside of the root."""
	relative: str = path.lstrip("/")
	base: str = os.path.abspath(root)
	target: str = os.path.abspath(os.path.join(base, relative))
	if target != base and not target.startswith(os.path.join(base, "")):
		return None
	return root / relative if relative else root


def isText(name: str) -> bool:
	"""Tells if the given directory entry name is valid text, names that
	are not are surrogate-escaped by `os.listdir`."""
	try:
		name.encode("utf8")
		return True
	except UnicodeEncodeError:
		return False


def displayText(text: str) -> str:
	"""Makes text holding surrogate-escaped bytes (like non UTF-8 paths)
	encodable, showing these bytes as `\\xff`."""
	return text.encode("utf8", "surrogateescape").decode("utf8", "backslashreplace")


# -----------------------------------------------------------------------------
#
# READING
#
# -----------------------------------------------------------------------------


def readText(path: Path) -> TextContent | DecodeFailure | ErrorContent:
	try:
		# NOTE: No newline translation, the text is the exact file content
		with open(path, "rt", encoding="utf8", newline="") as f:
			return TextContent(f.read())
	except UnicodeDecodeError as e:
		return DecodeFailure(str(e))
	except OSError as e:
		return ErrorContent(500, str(e))


def readBytes(path: Path) -> BytesContent | ErrorContent:
	try:
		with open(path, "rb") as f:
			return BytesContent(f.read())
	except OSError as e:
		return ErrorContent(500, str(e))


def readFile(path: Path) -> TextContent | BytesContent | ErrorContent:
	"""Reads the file as UTF-8 text, falling back to its raw bytes when
	the content does not decode."""
	res = readText(path)
	if isinstance(res, DecodeFailure):
		logged(LogLevel.Debug) and debug(
			"Serving binary content", Path=str(path), Reason=res.reason
		)
		return readBytes(path)
	else:
		return res


def listDirectory(path: Path) -> list[str]:
	"""Returns the names of the immediate children of `path`, in the order
	given by the filesystem."""
	return os.listdir(path)


def renderListing(requestPath: str, entries: list[str]) -> str:
	"""Renders the given directory entries as an HTML list of links, relative
	to the given request path."""
	base: str = requestPath.rstrip("/")
	items: list[Node] = [
		H.li(H.a(".", href=quote(requestPath or "/", errors="surrogateescape")))
	]
	for name in entries:
		if isText(name):
			href: str = quote(f"{base}/{name}", errors="surrogateescape")
			items.append(H.li(H.a(name, href=href)))
		else:
			items.append(H.li(repr(os.fsencode(name))))
	return "".join(html(H.html(H.body(H.ul(items))), doctype="html"))


# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class FileService(Service):
	"""Serves the files and directories under a root directory."""

	def __init__(self, options: ServeOptions | Path | str | None = None):
		super().__init__()
		self.options: ServeOptions = (
			options
			if isinstance(options, ServeOptions)
			else ServeOptions(root=Path(options or "."))
		)

	@on(GET_HEAD=("/", "/{path:any}"))
	def read(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		local_path = resolvePath(self.options.root, path)
		content: TContent = (
			self.respondPath(request.path, local_path)
			if local_path
			else ErrorContent(404, f'File "{self.options.root / path}" not found!')
		)
		return self.respond(request, content)

	def respondPath(self, requestPath: str, localPath: Path) -> TContent:
		"""Produces the content for the given resolved path: a not found error,
		a directory listing, or the file's content."""
		if not os.path.exists(localPath):
			return ErrorContent(404, f'File "{localPath}" not found!')
		elif os.path.isdir(localPath):
			try:
				entries = listDirectory(localPath)
			except OSError as e:
				warning("Could not list directory", Path=str(localPath), Error=str(e))
				return ErrorContent(500, str(e))
			return HTMLContent(renderListing(requestPath, entries))
		elif not os.path.isfile(localPath):
			return ErrorContent(500, f'Path "{localPath}" is not a regular file')
		else:
			res = readFile(localPath)
			if isinstance(res, ErrorContent):
				warning("Could not read file", Path=str(localPath), Error=res.message)
			return res

	def respond(self, request: HTTPRequest, content: TContent) -> HTTPResponse:
		match content:
			case TextContent(text):
				return request.respondText(text)
			case BytesContent(data):
				return request.respondBytes(data)
			case HTMLContent(body):
				return request.respondHTML(body)
			case ErrorContent(status, message):
				return request.error(status, displayText(message))
			case _:
				raise ValueError(f"Unsupported content: {content}")


# EOF
