"""Test fixtures for platform-engine unit tests."""

import gzip
from collections.abc import Callable
from dataclasses import dataclass, field
from unittest.mock import MagicMock

import pytest

BOUNDARY = "----platformengineboundary"


# -----------------------------------------------------------------------------
# Mock classes for Robyn Request
# -----------------------------------------------------------------------------


@dataclass
class MockHeaders:
    """Case-insensitive stand-in for Robyn Headers."""

    _data: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._data = {key.lower(): value for key, value in self._data.items()}

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key.lower(), default)

    def set(self, key: str, value: str) -> None:
        self._data[key.lower()] = value

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key.lower()] = value


@dataclass
class MockRequest:
    """Mock Request object for Robyn."""

    body: bytes | str = b""
    headers: MockHeaders = field(default_factory=MockHeaders)
    method: str = "POST"
    path: str = "/"


# -----------------------------------------------------------------------------
# Multipart helpers
# -----------------------------------------------------------------------------


def build_multipart(
    fields: list[tuple[str, str]] | None = None,
    files: list[tuple[str, bytes]] | None = None,
    boundary: str = BOUNDARY,
) -> tuple[dict[str, str], bytes]:
    """Encode fields then files as multipart/form-data; returns (headers, body)."""
    parts: list[bytes] = []
    for name, value in fields or []:
        parts.append(
            f"--{boundary}\r\nContent-Disposition: form-data; name=\"{name}\"\r\n\r\n".encode() + value.encode() + b"\r\n"
        )
    for name, content in files or []:
        parts.append(
            f"--{boundary}\r\n"
            f"Content-Disposition: form-data; name=\"{name}\"; filename=\"{name}.dat\"\r\n"
            "Content-Type: application/octet-stream\r\n\r\n".encode()
            + content
            + b"\r\n"
        )
    body = b"".join(parts) + f"--{boundary}--\r\n".encode()
    headers = {"content-type": f"multipart/form-data; boundary={boundary}", "content-length": str(len(body))}
    return headers, body


@pytest.fixture
def multipart() -> Callable[..., tuple[dict[str, str], bytes]]:
    return build_multipart


@pytest.fixture
def gzipped() -> Callable[[bytes], bytes]:
    return gzip.compress


@pytest.fixture
def make_mock_request(multipart):
    """Factory fixture building a multipart MockRequest."""

    def _make(
        fields: list[tuple[str, str]] | None = None,
        files: list[tuple[str, bytes]] | None = None,
        **extra_headers: str,
    ) -> MockRequest:
        headers, body = multipart(fields, files)
        headers.update({key.replace("_", "-"): value for key, value in extra_headers.items()})
        return MockRequest(body=body, headers=MockHeaders(headers))

    return _make


@pytest.fixture
def next_fn() -> MagicMock:
    """Pipeline continuation spy."""
    return MagicMock(name="next_")


@pytest.fixture
def make_request():
    """Factory fixture for a MockRequest with arbitrary headers and body."""

    def _make(headers: dict[str, str] | None = None, body: bytes | str = b"") -> MockRequest:
        return MockRequest(body=body, headers=MockHeaders(dict(headers or {})))

    return _make
