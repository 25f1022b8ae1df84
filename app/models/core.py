"""Core models for request/response handling."""

from collections.abc import Iterator
from types import MappingProxyType
from typing import Any

FILE_FIELD = "datafile"
COMPRESSION_FIELD = "compression"


class UploadResult:
    """Payload and auxiliary form fields extracted from a multipart submission."""

    __slots__ = ("_payload", "_fields")

    def __init__(self, payload: bytes, fields: dict[str, str] | None = None) -> None:
        object.__setattr__(self, "_payload", payload)
        object.__setattr__(self, "_fields", MappingProxyType(dict(fields or {})))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("UploadResult is immutable")

    @property
    def payload(self) -> bytes:
        return self._payload

    @property
    def fields(self) -> MappingProxyType[str, str]:
        return self._fields

    @property
    def compression(self) -> str | None:
        return self._fields.get(COMPRESSION_FIELD)

    def __iter__(self) -> Iterator[Any]:
        return iter((self._payload, self._fields))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UploadResult):
            return NotImplemented
        return self._payload == other._payload and dict(self._fields) == dict(other._fields)

    def __hash__(self) -> int:
        return hash((self._payload, frozenset(self._fields.items())))

    def __repr__(self) -> str:
        return f"UploadResult(size={len(self._payload)}, fields={dict(self._fields)})"
