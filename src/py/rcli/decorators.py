from typing import Any, Callable, ClassVar, TypeVar

T = TypeVar("T")


class Extra:
    """Names of the attributes where decorators store their metadata."""

    ON: ClassVar[str] = "_rcli_on"
    ON_PRIORITY: ClassVar[str] = "_rcli_on_priority"

    @staticmethod
    def Meta(scope: Any) -> dict[str, Any]:
        try:
            return vars(scope)
        except TypeError:
            raise RuntimeError(f"Cannot attach metadata to {scope!r}") from None


def on(priority: int = 0, **routes: str | list[str] | tuple[str, ...]) -> Callable[[T], T]:
    """Marks the decorated method as a request handler. Keywords are HTTP
    methods, joined by `_` when the handler serves many, and values are
    one or more route templates:

    >    @on(GET_HEAD=("/", "/{path:any}"))
    >    def read(self, request, path=""):
    >        ...

    The handler is called with the request and the template's placeholder
    values, and returns a response. When many routes match, the handler
    with the highest priority wins."""

    def decorator(function: T) -> T:
        meta = Extra.Meta(function)
        handled: list[tuple[str, str]] = meta.setdefault(Extra.ON, [])
        meta[Extra.ON_PRIORITY] = priority
        for methods, templates in routes.items():
            for method in methods.upper().split("_"):
                if isinstance(templates, str):
                    handled.append((method, templates))
                else:
                    handled.extend((method, _) for _ in templates)
        return function

    return decorator


# EOF
