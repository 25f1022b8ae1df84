"""Router adapting Robyn handlers to the ``(request, response, next_)`` pipeline."""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any

from robyn import Request, Response, SubRouter, status_codes
from robyn.robyn import HttpMethod

from app.core.errors import HttpError
from app.core.http import ResponseWriter
from app.core.logger import LogIcon, logger

UPLOAD_ENDPOINTS: set[str] = set()

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


class ErrorChannel:
    """The ``next_`` continuation given to handlers; keeps the first forwarded error."""

    __slots__ = ("error", "calls")

    def __init__(self) -> None:
        self.error: BaseException | None = None
        self.calls = 0

    def __call__(self, error: BaseException) -> None:
        self.calls += 1
        if self.error is not None:
            logger.warning("Error channel called more than once", icon=LogIcon.WARNING, dropped=repr(error))
            return
        self.error = error


def render_error(error: BaseException, response: ResponseWriter) -> ResponseWriter:
    """Error middleware: turn a forwarded error into the outgoing response."""
    server_message = getattr(error, "server_message", None) or repr(error)

    if response.sent:
        logger.error("Error raised after response was sent", icon=LogIcon.ERROR, server_message=server_message)
        return response

    match error:
        case HttpError():
            logger.warning(
                "Request failed",
                icon=LogIcon.WARNING,
                status_code=error.status_code,
                kind=error.kind,
                server_message=server_message,
            )
            return error.send_error(response)
        case _:
            logger.error("Unhandled error", icon=LogIcon.CRITICAL, server_message=server_message)
            return response.status(status_codes.HTTP_500_INTERNAL_SERVER_ERROR).send(INTERNAL_ERROR_MESSAGE)


async def dispatch(handler: Callable, request: Request) -> Response:
    """Run one handler with a fresh response and error channel."""
    response = ResponseWriter()
    channel = ErrorChannel()

    try:
        await handler(request, response, channel)
    except Exception as err:
        channel(err)

    if channel.error is not None:
        render_error(channel.error, response)
    elif not response.sent:
        logger.warning("Handler returned without responding", icon=LogIcon.WARNING, handler=handler.__name__)

    return response.to_response()


HTTP_METHODS = (
    HttpMethod.GET,
    HttpMethod.POST,
    HttpMethod.PUT,
    HttpMethod.DELETE,
    HttpMethod.PATCH,
    HttpMethod.HEAD,
    HttpMethod.OPTIONS,
)


def _create_method_wrapper(original_method: Callable, router_prefix: str = "") -> Callable:
    @wraps(original_method)
    def method_wrapper(*args, upload: bool = False, **kwargs) -> Callable:
        endpoint = args[0] if args else kwargs.get("endpoint", "")
        decorator = original_method(*args, **kwargs)

        if upload:
            UPLOAD_ENDPOINTS.add(f"{router_prefix}{endpoint}".replace("//", "/"))

        def handler_decorator(handler: Callable) -> Callable:
            @wraps(handler)
            async def wrapped_handler(request: Request) -> Response:
                return await dispatch(handler, request)

            # Robyn injects arguments by signature; only the request is needed
            wrapped_handler.__signature__ = inspect.Signature(  # type: ignore[attr-defined]
                [inspect.Parameter("request", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=Request)]
            )
            decorator(wrapped_handler)
            return handler

        return handler_decorator

    return method_wrapper


class Router(SubRouter):
    """SubRouter whose verb decorators accept controller methods.

    ``router.post("/submissions", upload=True)(controller.create)`` registers the
    handler and marks the route as a multipart upload endpoint.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._prefix = kwargs.get("prefix", "")
        self._wrap_methods()

    def _wrap_methods(self) -> None:
        for method in HTTP_METHODS:
            method_name = str(method).split(".")[-1].lower()
            if hasattr(self, method_name):
                setattr(self, method_name, _create_method_wrapper(getattr(self, method_name), self._prefix))
