from typing import Any, Callable, ClassVar, NamedTuple, Optional, Pattern
from inspect import isawaitable
import re

from .decorators import Extra
from .http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from .utils.logging import LogLevel, debug, logged

# -----------------------------------------------------------------------------
#
# ROUTE
#
# -----------------------------------------------------------------------------
#
# A route is a path template like `/files/{path:any}`. Each `{name}` or
# `{name:kind}` placeholder becomes a named group in the route's regular
# expression, and its match is converted by the kind's function.


class Placeholder(NamedTuple):
    """The regular expression matched by a kind of placeholder, and the
    function converting the matched text."""

    expr: str
    convert: Callable[[str], Any]


class Route:

    RE_PLACEHOLDER: ClassVar[Pattern[str]] = re.compile(
        r"\{(?P<name>[A-Za-z_]\w*)(?::(?P<kind>\w+))?\}"
    )

    KINDS: ClassVar[dict[str, Placeholder]] = {
        # A single path segment, the default
        "segment": Placeholder(r"[^/]+", str),
        "int": Placeholder(r"-?\d+", int),
        # Zero or more characters, including slashes
        "any": Placeholder(r".*", str),
        # One or more characters, including slashes
        "rest": Placeholder(r".+", str),
    }

    @classmethod
    def Compile(cls, template: str) -> tuple[Pattern[str], dict[str, Placeholder]]:
        """Returns the regular expression matching the template, along
        with its placeholders by name."""
        expr: list[str] = []
        placeholders: dict[str, Placeholder] = {}
        end: int = 0
        for m in cls.RE_PLACEHOLDER.finditer(template):
            kind: str = (m.group("kind") or "segment").lower()
            placeholder = cls.KINDS.get(kind)
            if placeholder is None:
                raise ValueError(
                    f"Unknown placeholder kind '{kind}' in route {template!r}, expected one of: {', '.join(cls.KINDS)}"
                )
            expr.append(re.escape(template[end : m.start()]))
            expr.append(f"(?P<{m.group('name')}>{placeholder.expr})")
            placeholders[m.group("name")] = placeholder
            end = m.end()
        expr.append(re.escape(template[end:]))
        return re.compile("".join(expr), re.DOTALL), placeholders

    def __init__(self, template: str, handler: Optional["Handler"] = None):
        self.template: str = template
        self.regexp, self.placeholders = self.Compile(template)
        self.handler: Optional[Handler] = handler

    @property
    def priority(self) -> int:
        return self.handler.priority if self.handler else 0

    def match(self, path: str) -> dict[str, Any] | None:
        """Returns the converted placeholder values when the whole path
        matches the route."""
        m = self.regexp.fullmatch(path)
        if not m:
            return None
        return {k: p.convert(m.group(k)) for k, p in self.placeholders.items()}

    def __repr__(self) -> str:
        return f"(Route {self.template!r} {self.priority})"


# -----------------------------------------------------------------------------
#
# HANDLER
#
# -----------------------------------------------------------------------------


class Handler:
    """Binds a function decorated with `@on` to the `(method, template)`
    pairs it responds to."""

    @classmethod
    def Get(cls, value: Any) -> Optional["Handler"]:
        # Bound methods give access to their function's attributes
        routes = getattr(value, Extra.ON, None) if callable(value) else None
        if not routes:
            return None
        return Handler(value, routes, getattr(value, Extra.ON_PRIORITY, 0))

    def __init__(
        self,
        functor: Callable[..., Any],
        routes: list[tuple[str, str]],
        priority: int = 0,
    ):
        self.functor = functor
        self.routes: list[tuple[str, str]] = list(routes)
        self.priority: int = priority

    async def __call__(
        self, request: HTTPRequest, params: dict[str, Any]
    ) -> HTTPResponse:
        try:
            res = self.functor(request, **params)
            return await res if isawaitable(res) else res
        except HTTPRequestError as e:
            return request.error(e.status, e.message)

    def __repr__(self) -> str:
        return f"(Handler {self.functor.__name__} {self.priority} {self.routes})"


# -----------------------------------------------------------------------------
#
# DISPATCHER
#
# -----------------------------------------------------------------------------


class Dispatcher:
    """Finds the handler for a request's method and path."""

    def __init__(self) -> None:
        self.routes: dict[str, list[Route]] = {}

    def register(self, handler: Handler, prefix: str | None = None) -> "Dispatcher":
        for method, template in handler.routes:
            path: str = f"{prefix or ''}{template}"
            if not path.startswith("/"):
                path = f"/{path}"
            logged(LogLevel.Debug) and debug(
                "Registered route", Method=method, Path=path
            )
            self.routes.setdefault(method, []).append(Route(path, handler))
        return self

    def match(self, method: str, path: str) -> tuple[Route | None, dict[str, Any]]:
        """Returns the matching route with the highest priority, the first
        registered one winning ties, and its placeholder values."""
        best: Route | None = None
        values: dict[str, Any] = {}
        for route in self.routes.get(method, ()):
            if best and route.priority <= best.priority:
                continue
            params = route.match(path)
            if params is not None:
                best, values = route, params
        return best, values


# EOF
