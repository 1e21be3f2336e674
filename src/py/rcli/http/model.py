from enum import Enum
from functools import cache
from typing import Any, NamedTuple, TypeAlias, Union

from ..utils.io import DEFAULT_ENCODING
from .api import ResponseFactory
from .status import HTTP_STATUS


@cache
def headername(name: str) -> str:
	"""Header names are case-insensitive, we store them as `Kebab-Case`."""
	return "-".join(_.capitalize() for _ in name.lower().split("-"))


# -----------------------------------------------------------------------------
#
# PARSING
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""The first line of a request, `GET /path?query HTTP/1.1`, where the
	path is still percent-encoded."""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	Processing = 0
	# Headers are parsed, the parser waits for `Content-Length` bytes
	Body = 1
	# The request cannot be parsed, the connection should be dropped
	BadFormat = 2


class HTTPBody(NamedTuple):
	payload: bytes = b""

	@property
	def length(self) -> int:
		return len(self.payload)


# What the parser yields as it goes through a connection's data
HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	"HTTPRequest",
]


class HTTPRequestError(Exception):
	"""Raised by handlers to respond with the given error status."""

	def __init__(self, message: str, status: int = 500):
		super().__init__(message)
		self.message: str = message
		self.status: int = status


# -----------------------------------------------------------------------------
#
# REQUEST
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	__slots__ = ["method", "path", "query", "protocol", "_headers", "body"]

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBody | None = None,
		protocol: str = "HTTP/1.1",
	):
		self.method: str = method
		# The decoded path, so that `/a%20b` is `/a b`
		self.path: str = path
		self.query: dict[str, str] = query or {}
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers
		self.body: HTTPBody = body or HTTPBody()

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	def param(self, name: str, default: str | None = None) -> str | None:
		return self.query.get(name, default)

	@property
	def keepAlive(self) -> bool:
		"""HTTP/1.1 connections are persistent unless the client sends
		`Connection: close`, HTTP/1.0 ones only when it asks for it."""
		connection: str = (self.header("Connection") or "").lower()
		if self.protocol == "HTTP/1.0":
			return connection == "keep-alive"
		return connection != "close"

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			content,
			contentType,
			headers=headers,
			status=status,
			message=message,
			protocol=self.protocol,
		)

	def __repr__(self) -> str:
		return f"(HTTPRequest {self.method} {self.path!r} {self.protocol})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""A response with its whole body in memory, which means its length is
	always known and sent as `Content-Length`."""

	__slots__ = ["protocol", "status", "message", "headers", "body"]

	@staticmethod
	def Create(
		content: str | bytes | None = None,
		contentType: str | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		match content:
			case None:
				payload = b""
			case str():
				payload = content.encode(DEFAULT_ENCODING)
			case bytes() | bytearray():
				payload = bytes(content)
			case _:
				raise ValueError(f"Response content must be text or bytes: {content!r}")
		fields: dict[str, str] = {
			headername(k): v for k, v in (headers or {}).items()
		}
		if contentType:
			fields["Content-Type"] = contentType
		fields["Content-Length"] = str(len(payload))
		return HTTPResponse(
			protocol,
			status,
			message,
			HTTPHeaders(fields, contentType, len(payload)),
			HTTPBody(payload),
		)

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: HTTPBody | None = None,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str = message or HTTP_STATUS.get(status, "Unknown")
		self.headers: HTTPHeaders = headers
		self.body: HTTPBody = body or HTTPBody()

	@property
	def contentType(self) -> str | None:
		return self.headers.contentType

	@property
	def payload(self) -> bytes:
		return self.body.payload

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		"""Sets the header, removing it when `value` is `None`."""
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = str(value)
		return self

	def head(self) -> bytes:
		"""The status line and headers, up to and including the blank line
		that separates them from the body."""
		lines: list[str] = [f"{self.protocol} {self.status} {self.message}"]
		lines.extend(f"{k}: {v}" for k, v in self.headers.headers.items())
		# NOTE: HTTP/1.1 headers are ISO-8859-1
		return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1", "replace")

	def __repr__(self) -> str:
		return f"(HTTPResponse {self.status} {self.contentType} {len(self.payload)})"


# EOF
