import asyncio
import socket
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, NamedTuple

from .config import HOST, LOG_REQUESTS, PORT
from .http.model import HTTPProcessingStatus, HTTPRequest, HTTPResponse
from .http.parser import HTTPParser
from .model import Application, Service, mount
from .utils.logging import (
	LogLevel,
	debug,
	error,
	event,
	exception,
	info,
	logged,
	warning,
)


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = HOST
	port: int = PORT
	backlog: int = 1_024
	# This is the polling timeout for accepting new connections, so that
	# the `condition` and stop signals are checked at least every second.
	polling: float = 1.0
	readsize: int = 4_096
	# Idle time after which a keep-alive connection is closed
	keepalive: float = 30.0
	logRequests: bool = LOG_REQUESTS
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()


SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 21\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal server error"
)


class AIOSocketServer:
	"""AsyncIO backend using sockets directly, with one task per
	connection."""

	@staticmethod
	def Listen(options: ServerOptions) -> socket.socket:
		"""Creates the listening socket, failing when the address cannot be
		bound."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			server.bind((options.host, options.port))
		except OSError as e:
			server.close()
			error(
				f"Unable to bind to {options.host}:{options.port}, aborting: {e}",
				"HOSTPORTERR",
			)
			raise e
		# The backlog of connections that are accepted before being refused
		server.listen(options.backlog)
		server.setblocking(False)
		return server

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Processes the requests sent on the `client` connection until it
		is closed, times out, or asks for the connection to be closed."""
		parser: HTTPParser = HTTPParser()
		keep_alive: bool = True
		req_count: int = 0
		res_count: int = 0
		try:
			while keep_alive:
				try:
					data = await asyncio.wait_for(
						loop.sock_recv(client, options.readsize),
						timeout=options.keepalive,
					)
				except asyncio.TimeoutError:
					if req_count != res_count or not req_count:
						warning(
							"Client timed out", Requests=req_count, Responses=res_count
						)
					break
				if not data:
					# A no-data means a close
					break
				# NOTE: With HTTP pipelining, the payload may hold more than one
				# request.
				for atom in parser.feed(data):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request, closing connection", Read=len(data))
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						if options.logRequests:
							event(atom.method, atom.path)
						keep_alive = keep_alive and atom.keepAlive
						if await cls.SendResponse(
							atom, app, client, loop=loop, keepAlive=keep_alive
						):
							res_count += 1
						else:
							keep_alive = False
							break
		except Exception as e:
			exception(e)
		finally:
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		keepAlive: bool = True,
	) -> HTTPResponse | None:
		"""Processes the request within the application and sends the
		response, returning it when it was sent."""
		try:
			r = app.process(request)
			res: HTTPResponse = r if isinstance(r, HTTPResponse) else await r
		except Exception as e:
			exception(e, f"Request failed: {request.method} {request.path}")
			await loop.sock_sendall(client, SERVER_ERROR)
			return None
		if not keepAlive:
			res.setHeader("Connection", "close")
		try:
			await loop.sock_sendall(client, res.head())
			# HEAD responses have the headers of a GET, without the body
			if request.method != "HEAD":
				await loop.sock_sendall(client, res.payload)
		except (BrokenPipeError, ConnectionResetError):
			warning("Client closed the connection early", Path=request.path)
			return None
		logged(LogLevel.Debug) and debug(
			"Response sent",
			Status=res.status,
			Length=res.headers.contentLength,
		)
		return res

	@classmethod
	async def Serve(
		cls,
		app: Application,
		options: ServerOptions = OPTIONS,
		*,
		server: socket.socket | None = None,
	) -> None:
		"""Main server coroutine, accepting connections on the given listening
		socket (or a new one) until stopped."""
		server = server or cls.Listen(options)
		loop = asyncio.get_running_loop()
		state = ServerState()
		tasks: set[asyncio.Task[None]] = set()
		# Signal handlers can only be set from the main thread
		signals: bool = (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		)
		if signals:
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)
		host, port = server.getsockname()[:2]
		info("Server listening", icon="🚀", Host=host, Port=port)
		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# This can be: [OSError] [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnRequest(app, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			if signals:
				loop.remove_signal_handler(SIGINT)
				loop.remove_signal_handler(SIGTERM)
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)


def run(
	*components: Application | Service,
	host: str = HOST,
	port: int = PORT,
	backlog: int = OPTIONS.backlog,
	keepalive: float = OPTIONS.keepalive,
	logRequests: bool = LOG_REQUESTS,
	condition: Callable[[], bool] | None = None,
) -> None:
	"""High level function to run the server, which binds the listening
	socket before starting the event loop so that bind errors abort right
	away."""
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		keepalive=keepalive,
		logRequests=logRequests,
		condition=condition,
	)
	app = mount(*components)
	server = AIOSocketServer.Listen(options)
	try:
		asyncio.run(AIOSocketServer.Serve(app, options, server=server))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
