"""Outbound response object handed to controller methods."""

from typing import Any

import orjson
from pydantic import BaseModel
from robyn import Response, status_codes


class ResponseAlreadySentError(RuntimeError):
    """Raised when a handler tries to send a second body on the same response."""


class ResponseWriter:
    """Express-style response builder converted into a Robyn Response once the handler returns."""

    __slots__ = ("status_code", "headers", "body", "sent")

    def __init__(self) -> None:
        self.status_code: int = status_codes.HTTP_200_OK
        self.headers: dict[str, str] = {}
        self.body: str | bytes = ""
        self.sent = False

    def status(self, code: int) -> "ResponseWriter":
        self.status_code = code
        return self

    def set(self, name: str, value: str) -> "ResponseWriter":
        self.headers[name.lower()] = value
        return self

    def send(self, body: str | bytes | None = None) -> "ResponseWriter":
        """Finalize the response with a plain body."""
        if self.sent:
            raise ResponseAlreadySentError(f"Response already sent with status {self.status_code}")

        self.body = "" if body is None else body
        if self.body and "content-type" not in self.headers:
            binary = isinstance(self.body, bytes)
            self.headers["content-type"] = "application/octet-stream" if binary else "text/plain; charset=utf-8"
        self.sent = True
        return self

    def json(self, data: Any) -> "ResponseWriter":
        """Finalize the response with a JSON body."""
        match data:
            case BaseModel():
                payload = data.model_dump_json()
            case _:
                payload = orjson.dumps(data).decode()
        self.headers["content-type"] = "application/json"
        return self.send(payload)

    def to_response(self) -> Response:
        return Response(status_code=self.status_code, headers=dict(self.headers), description=self.body)
