"""Per-request correlation id for structured logs."""

from uuid import uuid4

from asgi_correlation_id import correlation_id
from robyn import Request

from app.middlewares.base import BaseMiddleware

REQUEST_ID_HEADER = "x-request-id"
MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(header_value: str | None) -> str:
    """Reuse a sane incoming id, otherwise generate one."""
    if header_value and len(header_value) <= MAX_REQUEST_ID_LENGTH and header_value.isprintable():
        return header_value
    return uuid4().hex


class CorrelationIdMiddleware(BaseMiddleware):
    """Binds ``x-request-id`` (or a fresh id) to the logging context of the request."""

    def before(self, request: Request) -> Request:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        correlation_id.set(request_id)
        request.headers.set(REQUEST_ID_HEADER, request_id)
        return request
