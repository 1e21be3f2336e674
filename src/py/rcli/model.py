from typing import Any, ClassVar, Coroutine, Iterator, Optional

from .routing import Handler, Dispatcher
from .http.model import HTTPRequest, HTTPResponse

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service:
    """Groups the request handlers of a feature, which are the methods
    decorated with `@on`. A service is mounted in exactly one application,
    optionally under a path prefix."""

    PREFIX: ClassVar[str] = ""

    def __init__(self, name: Optional[str] = None, *, prefix: str | None = None):
        self.name: str = name or type(self).__name__
        self.prefix: str = prefix or self.PREFIX
        self.app: Optional[Application] = None

    @property
    def isMounted(self) -> bool:
        return self.app is not None

    def iterHandlers(self) -> Iterator[Handler]:
        # Handlers are looked up on the class so that properties are not
        # evaluated.
        for name in dir(type(self)):
            if name.startswith("_") or not Handler.Get(getattr(type(self), name)):
                continue
            handler = Handler.Get(getattr(self, name))
            if handler:
                yield handler

    def __repr__(self) -> str:
        return f"(Service {self.name}{' :mounted' if self.isMounted else ''})"


# -----------------------------------------------------------------------------
#
# APPLICATION
#
# -----------------------------------------------------------------------------


class Application:
    """Dispatches requests to the handlers of its mounted services."""

    def __init__(self, services: list[Service] | None = None) -> None:
        self.dispatcher: Dispatcher = Dispatcher()
        self.services: list[Service] = []
        for _ in services or ():
            self.mount(_)

    def process(
        self, request: HTTPRequest
    ) -> HTTPResponse | Coroutine[Any, Any, HTTPResponse]:
        """Returns the response to the request, which is a coroutine when
        a handler matched."""
        route, params = self.dispatcher.match(request.method, request.path or "/")
        if route is None or route.handler is None:
            return self.onRouteNotFound(request)
        return route.handler(request, params)

    def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse:
        return request.notFound(f"No route for {request.method} {request.path}")

    def mount(self, service: Service, prefix: Optional[str] = None) -> Service:
        if service.isMounted:
            raise RuntimeError(f"Service {service.name} is already mounted")
        for handler in service.iterHandlers():
            self.dispatcher.register(handler, prefix or service.prefix)
        service.app = self
        self.services.append(service)
        return service


def mount(*components: Application | Service) -> Application:
    """Mounts the given services in the first given application, or in a
    new one."""
    app: Application | None = None
    services: list[Service] = []
    for _ in components:
        if isinstance(_, Application):
            app = app or _
        elif isinstance(_, Service):
            services.append(_)
        else:
            raise RuntimeError(f"Cannot mount {type(_).__name__}: {_!r}")
    app = app or Application()
    for service in services:
        app.mount(service)
    return app


# EOF
