import asyncio

from .http.model import HTTPRequest, HTTPResponse
from .http.parser import HTTPParser
from .model import Application, Service, mount


class PythonBridge:
	"""Processes raw HTTP requests in-process, without going through
	sockets. This is what the tests use to exercise services."""

	def __init__(self, application: Application):
		self.application: Application = application

	async def aprocess(self, request: HTTPRequest) -> HTTPResponse:
		r = self.application.process(request)
		return r if isinstance(r, HTTPResponse) else await r

	def process(self, request: HTTPRequest) -> HTTPResponse:
		return asyncio.run(self.aprocess(request))

	def request(self, payload: bytes) -> HTTPResponse:
		"""Parses the given raw request and returns the response produced
		by the application."""
		for atom in HTTPParser().feed(payload):
			if isinstance(atom, HTTPRequest):
				return self.process(atom)
		raise ValueError(f"Payload does not hold a complete request: {payload!r}")

	def get(self, path: str, method: str = "GET") -> HTTPResponse:
		"""Sends a request for the given (percent-encoded) URL path."""
		return self.request(
			f"{method} {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode("ascii")
		)


def run(*components: Application | Service) -> PythonBridge:
	"""Mounts the given components in a bridge instead of a server."""
	return PythonBridge(mount(*components))


# EOF
