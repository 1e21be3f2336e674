import argparse
import os
import sys
from pathlib import Path

from . import __version__
from .config import DIR, HOST, LOG_LEVEL, LOG_REQUESTS, PORT
from .server import run
from .services.files import FileService, ServeOptions
from .utils.logging import Logger, info


def directory(path: str) -> Path:
	"""Argument type for `--dir`, which must be an existing directory."""
	if os.path.isdir(path):
		return Path(path)
	else:
		raise argparse.ArgumentTypeError("Path does not exist or is not a directory")


def port(value: str) -> int:
	"""Argument type for `--port`, a TCP port number."""
	try:
		res = int(value)
	except ValueError:
		raise argparse.ArgumentTypeError(f"Invalid port number: {value!r}") from None
	if not 0 <= res <= 65_535:
		raise argparse.ArgumentTypeError(f"Port must be between 0 and 65535: {res}")
	return res


def parser() -> argparse.ArgumentParser:
	res = argparse.ArgumentParser(
		prog="rcli",
		description="A command line toolbox, serving files over HTTP",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	res.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
	commands = res.add_subparsers(dest="command", metavar="COMMAND", required=True)

	http = commands.add_parser("http", help="HTTP related commands")
	http_commands = http.add_subparsers(
		dest="subcommand", metavar="SUBCOMMAND", required=True
	)

	serve = http_commands.add_parser(
		"serve",
		help="Serves a directory over HTTP",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	serve.add_argument(
		"-d",
		"--dir",
		action="store",
		dest="dir",
		type=directory,
		help="The directory to serve",
		default=DIR,
	)
	serve.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		type=port,
		help="Specifies the port",
		default=PORT,
	)
	serve.add_argument(
		"--host",
		action="store",
		dest="host",
		help="Specifies the interface to listen on",
		default=HOST,
	)
	serve.set_defaults(handler=serve_command)
	return res


def serve_command(options: argparse.Namespace) -> int:
	config = ServeOptions(root=options.dir, host=options.host, port=options.port)
	info(f"Serving {str(config.root)!r} on port {config.port}")
	try:
		run(
			FileService(config),
			host=config.host,
			port=config.port,
			logRequests=LOG_REQUESTS,
		)
	except OSError:
		# The bind error is already logged by the server
		return 1
	return 0


def main(args: list[str] | None = None) -> int:
	options = parser().parse_args(args=args)
	Logger.SetLevel(LOG_LEVEL)
	return int(options.handler(options))


if __name__ == "__main__":
	sys.exit(main())

# EOF
