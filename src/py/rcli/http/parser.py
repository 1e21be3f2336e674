from typing import ClassVar, Iterator
from urllib.parse import unquote

from ..utils.io import EOL
from .model import (
	HTTPAtom,
	HTTPBody,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)


def parseRequestLine(line: bytes) -> HTTPRequestLine | None:
	"""Parses `METHOD /path?query PROTOCOL`, returning `None` when the line
	is malformed."""
	try:
		ln: str = line.decode("ascii")
	except UnicodeDecodeError:
		return None
	i = ln.find(" ")
	j = ln.rfind(" ")
	if i <= 0 or j <= i:
		return None
	p: list[str] = ln[i + 1 : j].split("?", 1)
	return HTTPRequestLine(ln[0:i], p[0], p[1] if len(p) > 1 else "", ln[j + 1 :])


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		if len(kv) == 1:
			res[unquote(item)] = ""
		else:
			res[unquote(kv[0])] = unquote(kv[1])
	return res


class HTTPParser:
	"""A stateful, incremental HTTP request parser. Chunks are fed as they
	come from the socket, and the parser yields atoms as soon as they
	are complete: the request line, the headers, and then the request
	itself. A single chunk may contain more than one request (pipelining),
	and a request may span many chunks."""

	MAX_HEAD: ClassVar[int] = 64_000

	def __init__(self) -> None:
		self.buffer: bytearray = bytearray()
		self.status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def reset(self) -> "HTTPParser":
		self.status = HTTPProcessingStatus.Processing
		self.requestLine = None
		self.requestHeaders = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		self.buffer += chunk
		while True:
			if self.status is HTTPProcessingStatus.Body:
				expected: int = self.contentLength or 0
				if len(self.buffer) < expected:
					break
				body = bytes(self.buffer[:expected])
				del self.buffer[:expected]
				yield self.flush(HTTPBody(body))
				continue
			end = self.buffer.find(EOL)
			if end == -1:
				if len(self.buffer) > self.MAX_HEAD:
					self.buffer.clear()
					self.reset()
					yield HTTPProcessingStatus.BadFormat
				break
			line = bytes(self.buffer[:end])
			del self.buffer[: end + len(EOL)]
			if self.requestLine is None:
				# Empty lines between pipelined requests are tolerated
				if not line:
					continue
				request_line = parseRequestLine(line)
				if request_line is None:
					self.buffer.clear()
					self.reset()
					yield HTTPProcessingStatus.BadFormat
					break
				self.requestLine = request_line
				yield request_line
			elif line:
				self.parseHeader(line)
			else:
				# An empty line denotes the end of headers
				yield HTTPHeaders(
					self.requestHeaders, self.contentType, self.contentLength
				)
				if self.contentLength:
					self.status = HTTPProcessingStatus.Body
					yield HTTPProcessingStatus.Body
				else:
					yield self.flush(HTTPBody())

	def parseHeader(self, line: bytes) -> str | None:
		ln: str = line.decode("latin-1")
		i = ln.find(":")
		if i == -1:
			return None
		h = ln[:i].strip().lower()
		v = ln[i + 1 :].strip()
		if h == "content-length":
			try:
				self.contentLength = max(0, int(v))
			except ValueError:
				self.contentLength = None
		elif h == "content-type":
			self.contentType = v
		n: str = headername(h)
		self.requestHeaders[n] = v
		return n

	def flush(self, body: HTTPBody) -> HTTPRequest:
		line = self.requestLine
		if line is None:
			raise RuntimeError("Parser has no request line to flush")
		request = HTTPRequest(
			method=line.method,
			# NOTE: The path is given decoded, so `a%20b.txt` is `a b.txt`, bytes
			# that are not UTF-8 map to surrogates, like `os.fsdecode` does.
			path=unquote(line.path, errors="surrogateescape"),
			query=parseQuery(line.query),
			headers=HTTPHeaders(
				self.requestHeaders, self.contentType, self.contentLength
			),
			body=body,
			protocol=line.protocol,
		)
		self.reset()
		return request


# EOF
