"""Controller base class: handler decoration, success helpers and file reading."""

import inspect
from collections.abc import Callable, Coroutine, Iterable
from functools import wraps
from typing import Any

from robyn import Request, status_codes

from app.core.http import ResponseWriter
from app.core.logger import LogIcon, logger
from app.core.settings import settings as st
from app.core.upload import read_upload
from app.models.core import UploadResult

CAPABILITY_PREFIX = "can_"
NEXT_POSITION = 2
NEXT_KEYWORD = "next_"

Handler = Callable[..., Coroutine[Any, Any, Any]]
NextFn = Callable[[BaseException], Any]


def annotate(error: BaseException, owner: str, operation: str) -> str:
    """Attach ``<owner>.<operation>: <message>`` to the error as ``server_message``."""
    server_message = f"{owner}.{operation}: {error}"
    error.server_message = server_message  # type: ignore[attr-defined]
    return server_message


def decorate(method: Handler, owner: str) -> Handler:
    """Forward any failure of ``method`` to the pipeline continuation instead of raising it.

    The continuation is the third positional argument (``request, response, next_``)
    or the ``next_`` keyword. Successful results are returned untouched.
    """

    @wraps(method)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await method(*args, **kwargs)
        except Exception as err:
            next_fn: NextFn | None = args[NEXT_POSITION] if len(args) > NEXT_POSITION else kwargs.get(NEXT_KEYWORD)
            server_message = annotate(err, owner, method.__name__)
            logger.warning("Handler failed", icon=LogIcon.CONTROLLER, server_message=server_message)
            if next_fn is None:
                raise
            next_fn(err)
            return None

    return wrapper


class Controller:
    """Base class for groups of request handlers.

    Every public coroutine method of a subclass is replaced on the instance by a
    decorated version. Names starting with ``_`` or with ``can_`` (capability
    checks used as guards rather than handlers) are left alone. Passing
    ``method_names`` skips the introspection and decorates exactly those methods.
    """

    def __init__(self, method_names: Iterable[str] | None = None) -> None:
        names = list(method_names) if method_names is not None else self._public_handler_names()
        owner = type(self).__name__

        for name in names:
            method = getattr(self, name)
            if not inspect.iscoroutinefunction(method):
                raise TypeError(f"{owner}.{name} must be a coroutine function to be decorated")
            setattr(self, name, decorate(method, owner))

        self.handler_names: tuple[str, ...] = tuple(names)
        logger.info(f"Controller ready: {owner}", icon=LogIcon.CONTROLLER, handlers=len(names))

    @classmethod
    def _public_handler_names(cls) -> list[str]:
        names: dict[str, None] = {}
        for klass in cls.__mro__:
            if klass is Controller or not issubclass(klass, Controller):
                continue
            for name, value in vars(klass).items():
                if name.startswith("_") or name.startswith(CAPABILITY_PREFIX):
                    continue
                if inspect.iscoroutinefunction(value):
                    names.setdefault(name, None)
        return list(names)

    # -------------------------------------------------------------------------
    # Success helpers
    # -------------------------------------------------------------------------

    def send_data(self, response: ResponseWriter, data: Any) -> ResponseWriter:
        return response.status(status_codes.HTTP_200_OK).json(data)

    def send_data_created(self, response: ResponseWriter, data: Any) -> ResponseWriter:
        return response.status(status_codes.HTTP_201_CREATED).json(data)

    def send_no_data(self, response: ResponseWriter) -> ResponseWriter:
        return response.status(status_codes.HTTP_204_NO_CONTENT).send()

    # -------------------------------------------------------------------------
    # Uploads
    # -------------------------------------------------------------------------

    async def read_file(self, request: Request) -> UploadResult:
        """Read the ``datafile`` part of a multipart request, gunzipping when asked to."""
        return await read_upload(
            request.headers,
            request.body,
            max_size=st.SUBMISSIONS_MAX_SIZE,
            chunk_size=st.UPLOAD_CHUNK_SIZE,
        )
