"""HTTP error taxonomy shared by controllers, the upload ingestor and downstream calls."""

from collections.abc import Mapping
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from app.core.http import ResponseWriter

RATE_LIMIT_HEADER = "x-rate-limit-remaining"


class ErrorKind(StrEnum):
    """Closed set of error kinds rendered by the error middleware."""

    BAD_REQUEST = "bad_request"
    AUTHENTICATION = "authentication"
    ACCESS_DENIED = "access_denied"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    TOO_MANY_REQUESTS = "too_many_requests"
    UPLOAD_FAILED = "upload_failed"
    GENERIC = "generic"


STATUS_BY_KIND: Mapping[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.RESOURCE_NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TOO_MANY_REQUESTS: 429,
    ErrorKind.UPLOAD_FAILED: 400,
}


class HttpError(Exception):
    """Failure carrying the status code and message sent back to the client.

    Used as-is for the ``GENERIC`` kind, which passes any status code through.
    ``server_message`` holds the diagnostic annotation added by controller
    decoration and is never written to the response.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.GENERIC

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.server_message: str | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, message={self.message!r})"

    def send_error(self, response: "ResponseWriter") -> "ResponseWriter":
        """Write status code and message, finalizing the response."""
        return response.status(self.status_code).send(self.message)


class _FixedStatusError(HttpError):
    def __init__(self, message: str) -> None:
        super().__init__(message, STATUS_BY_KIND[self.kind])


class BadRequestError(_FixedStatusError):
    kind = ErrorKind.BAD_REQUEST


class AuthenticationError(_FixedStatusError):
    kind = ErrorKind.AUTHENTICATION


class AccessDeniedError(_FixedStatusError):
    kind = ErrorKind.ACCESS_DENIED


class ResourceNotFoundError(_FixedStatusError):
    kind = ErrorKind.RESOURCE_NOT_FOUND


class ConflictError(_FixedStatusError):
    kind = ErrorKind.CONFLICT


class TooManyRequestsError(_FixedStatusError):
    """Rate limit hit; ``remaining_time`` is the number of seconds until retry."""

    kind = ErrorKind.TOO_MANY_REQUESTS

    def __init__(self, message: str, remaining_time: float | None = None) -> None:
        super().__init__(message)
        self.remaining_time = remaining_time

    def send_error(self, response: "ResponseWriter") -> "ResponseWriter":
        if self.remaining_time is not None:
            response.set(RATE_LIMIT_HEADER, str(self.remaining_time))
        return super().send_error(response)


class UploadError(BadRequestError):
    """Multipart ingestion failure, always answered with 400."""

    kind = ErrorKind.UPLOAD_FAILED

    def __init__(self, reason: str) -> None:
        super().__init__(f"Cannot retrieve file: {reason}")
        self.reason = reason


ERROR_BY_KIND: Mapping[ErrorKind, type[_FixedStatusError]] = {
    ErrorKind.BAD_REQUEST: BadRequestError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.ACCESS_DENIED: AccessDeniedError,
    ErrorKind.RESOURCE_NOT_FOUND: ResourceNotFoundError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.UPLOAD_FAILED: UploadError,
}


def build_error(
    kind: ErrorKind,
    message: str,
    remaining_time: float | None = None,
    status_code: int | None = None,
) -> HttpError:
    """Construct the error for ``kind``. ``status_code`` only applies to ``GENERIC``."""
    match kind:
        case ErrorKind.TOO_MANY_REQUESTS:
            return TooManyRequestsError(message, remaining_time)
        case ErrorKind.GENERIC:
            return HttpError(message, status_code if status_code is not None else 500)
        case _:
            return ERROR_BY_KIND[kind](message)


def _parse_remaining_time(headers: Mapping[str, str] | None) -> float | None:
    raw = headers.get(RATE_LIMIT_HEADER) if headers else None
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return int(value) if value.is_integer() else value


def from_http_response(
    status_code: int,
    body: str | bytes,
    headers: Mapping[str, str] | None = None,
) -> HttpError:
    """Rebuild the local error for a failed downstream response.

    Total over status codes: anything unmapped becomes a generic error that
    keeps the received code.
    """
    message = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body

    match status_code:
        case 400:
            return BadRequestError(message)
        case 401:
            return AuthenticationError(message)
        case 403:
            return AccessDeniedError(message)
        case 404:
            return ResourceNotFoundError(message)
        case 409:
            return ConflictError(message)
        case 429:
            return TooManyRequestsError(message, _parse_remaining_time(headers))
        case _:
            return HttpError(message, status_code)
