import sys
import time
from enum import Enum
from typing import Any, NamedTuple, TextIO, TypeAlias
from contextvars import ContextVar
from .term import Term

# --
# Structured logging to stderr. Each entry has a message and a context of
# key/value pairs, written on one line like:
#
#   [rcli] 🚀 Server listening Host=0.0.0.0 Port=8080
#
# Events are entries that are a name and a value, like `[rcli] GET /index.txt`.

TPrimitive: TypeAlias = (
	bool | int | float | str | bytes | list[Any] | tuple[Any, ...] | dict[str, Any] | None
)

# The name shown in brackets, which can be changed per task
LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="rcli")


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	Error = 40
	Exception = 50


LOG_LEVELS: dict[str, LogLevel] = {_.name.lower(): _ for _ in LogLevel}

# 256 color palette codes
LOG_COLORS: dict[LogLevel, int] = {
	LogLevel.Debug: 244,
	LogLevel.Info: 75,
	LogLevel.Warning: 214,
	LogLevel.Error: 196,
	LogLevel.Exception: 160,
}


class LogEntry(NamedTuple):
	level: LogLevel
	message: str
	context: dict[str, TPrimitive]
	origin: str
	time: float
	code: int | str | None = None
	icon: str | None = None
	event: bool = False


class Logger:
	"""Holds the threshold below which entries are not written."""

	Level: LogLevel = LogLevel.Info

	@classmethod
	def SetLevel(cls, level: LogLevel | str) -> LogLevel:
		if isinstance(level, str):
			name: str = level.strip().lower()
			if name not in LOG_LEVELS:
				raise ValueError(
					f"Unknown log level {level!r}, expected one of: {', '.join(LOG_LEVELS)}"
				)
			level = LOG_LEVELS[name]
		cls.Level = level
		return level


def logged(level: LogLevel) -> bool:
	"""Tells if entries of the given level are written, so that costly
	entries can be skipped with `logged(LogLevel.Debug) and debug(…)`."""
	return level.value >= Logger.Level.value


def formatValue(value: Any) -> str:
	match value:
		case None:
			return "◌"
		case bool():
			return "✓" if value else "✗"
		case float():
			return f"{value:0.2f}"
		case str():
			return repr(value) if not value or " " in value else value
		case dict():
			return " ".join(
				f"{Term.BOLD}{k}{Term.RESET}={formatValue(v)}" for k, v in value.items()
			)
		case list() | tuple():
			return ",".join(formatValue(_) for _ in value)
		case _:
			return str(value)


def formatEntry(entry: LogEntry) -> str:
	prefix: str = f"{Term.Color(LOG_COLORS[entry.level])}{Term.BOLD}[{entry.origin}]"
	if entry.event:
		line = f"{prefix} {entry.message}{Term.RESET}"
	else:
		line = f"{prefix}{Term.RESET}"
		if entry.icon:
			line += f" {entry.icon}"
		if entry.code is not None:
			line += f" [{entry.code}]"
		line += f" {entry.message}"
	if entry.context:
		line += f" {formatValue(entry.context)}"
	return f"{line}{Term.RESET}\n"


def send(entry: LogEntry, stream: TextIO | None = None) -> LogEntry:
	if logged(entry.level):
		# The stream is looked up on each call, as it may be swapped (tests)
		out = stream or sys.stderr
		out.write(formatEntry(entry))
		out.flush()
	return entry


def log(
	level: LogLevel,
	message: str,
	context: dict[str, TPrimitive],
	*,
	code: int | str | None = None,
	icon: str | None = None,
	event: bool = False,
) -> LogEntry:
	return send(
		LogEntry(
			level,
			message,
			context,
			LogOrigin.get(),
			time.time(),
			code=code,
			icon=icon,
			event=event,
		)
	)


def debug(message: str, *, icon: str | None = None, **context: TPrimitive) -> LogEntry:
	return log(LogLevel.Debug, message, context, icon=icon)


def info(message: str, *, icon: str | None = None, **context: TPrimitive) -> LogEntry:
	return log(LogLevel.Info, message, context, icon=icon)


def warning(
	message: str, *, icon: str | None = None, **context: TPrimitive
) -> LogEntry:
	return log(LogLevel.Warning, message, context, icon=icon)


def error(message: str, code: int | str | None = None, **context: TPrimitive) -> LogEntry:
	"""Logs an error that is handled, `code` identifying its kind."""
	return log(LogLevel.Error, message, context, code=code)


def event(name: str, value: Any = None, **context: TPrimitive) -> LogEntry:
	return log(
		LogLevel.Info,
		name if value is None else f"{name} {value}",
		context,
		event=True,
	)


def exception(exc: BaseException, message: str | None = None) -> BaseException:
	"""Writes the exception and its traceback frames to stderr, returning
	it so that one can `raise exception(e)`."""
	try:
		out = sys.stderr
		label: str = f"{message}: " if message else ""
		out.write(f"!!! EXCP {label}[{type(exc).__name__}] {exc}\n")
		tb = exc.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			out.write(f"... {code.co_filename}:{tb.tb_lineno} in {code.co_name}\n")
			tb = tb.tb_next
		out.flush()
	except Exception:  # nosec: B110
		# Called from exception handlers, must never raise
		pass
	return exc


# EOF
