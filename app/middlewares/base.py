"""Base middleware architecture for Robyn applications."""

from abc import ABC
from collections.abc import Callable

from robyn import Request, Response, Robyn

from app.core.logger import LogIcon, logger


class BaseMiddleware(ABC):
    """Middleware with optional before/after hooks.

    Subclasses override at least one hook. An empty ``endpoints`` set registers
    the hooks globally.
    """

    endpoints: frozenset[str] = frozenset()

    def __init__(self, endpoints: frozenset[str] | list[str] | None = None) -> None:
        if endpoints is not None:
            self.endpoints = frozenset(endpoints)

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.has_before() and not cls.has_after():
            raise TypeError(f"{cls.__name__} must implement at least one of before/after")

    @classmethod
    def has_before(cls) -> bool:
        return cls.before is not BaseMiddleware.before

    @classmethod
    def has_after(cls) -> bool:
        return cls.after is not BaseMiddleware.after

    def before(self, request: Request) -> Request | Response:
        """Return the Request to continue or a Response to short-circuit."""
        return request

    def after(self, response: Response) -> Response:
        return response


class MiddlewareHandler:
    """Registers middleware hooks on a Robyn application."""

    def __init__(self, app: Robyn) -> None:
        self._app = app
        self._middlewares: list[BaseMiddleware] = []

    @property
    def middlewares(self) -> list[BaseMiddleware]:
        return self._middlewares

    def register(self, middleware: BaseMiddleware) -> "MiddlewareHandler":
        """Register a middleware instance. Returns self for chaining."""
        self._middlewares.append(middleware)
        self._apply_middleware(middleware)
        logger.info(f"Registered middleware: {type(middleware).__name__}", icon=LogIcon.ADAPTER)
        return self

    def _apply_middleware(self, middleware: BaseMiddleware) -> None:
        endpoints: list[str | None] = list(middleware.endpoints) or [None]
        for endpoint in endpoints:
            if middleware.has_before():
                self._register_before(endpoint, middleware.before)
            if middleware.has_after():
                self._register_after(endpoint, middleware.after)

    def _register_before(self, endpoint: str | None, handler: Callable) -> None:
        @self._app.before_request(endpoint)
        async def before_wrapper(request: Request) -> Request | Response:
            return handler(request)

    def _register_after(self, endpoint: str | None, handler: Callable) -> None:
        @self._app.after_request(endpoint)
        def after_wrapper(response: Response) -> Response:
            return handler(response)
