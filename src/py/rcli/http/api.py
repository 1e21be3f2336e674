from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from .status import HTTP_STATUS

T = TypeVar("T")

# --
# Every response this server produces has one of these types, the body
# being UTF-8 for the text ones.

CONTENT_TEXT: str = "text/plain; charset=utf-8"
CONTENT_HTML: str = "text/html; charset=utf-8"
CONTENT_BYTES: str = "application/octet-stream"


class ResponseFactory(ABC, Generic[T]):
	"""Shorthands to create responses of type `T`, implemented on top of
	`respond`."""

	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	def respondText(self, text: str, status: int = 200) -> T:
		return self.respond(text, CONTENT_TEXT, status)

	def respondHTML(self, html: str, status: int = 200) -> T:
		return self.respond(html, CONTENT_HTML, status)

	def respondBytes(self, data: bytes, status: int = 200) -> T:
		return self.respond(data, CONTENT_BYTES, status)

	def error(self, status: int, text: str | None = None) -> T:
		"""An error response, with a plain text body defaulting to the
		status' reason phrase."""
		reason: str = HTTP_STATUS.get(status, "Error")
		return self.respond(
			reason if text is None else text, CONTENT_TEXT, status, message=reason
		)

	def notFound(self, text: str | None = None) -> T:
		return self.error(404, text)


# EOF
