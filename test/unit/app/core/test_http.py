"""Tests for the response writer."""

import orjson
import pytest
from pydantic import BaseModel
from robyn import Response

from app.core.http import ResponseAlreadySentError, ResponseWriter


class SampleModel(BaseModel):
    name: str
    value: int


class TestResponseWriter:
    """Tests for ResponseWriter."""

    def test_defaults(self) -> None:
        """Verify a fresh writer is an unsent 200."""
        response = ResponseWriter()

        assert response.status_code == 200
        assert not response.sent
        assert response.body == ""

    def test_status_is_chainable(self) -> None:
        """Verify status returns the writer itself."""
        response = ResponseWriter()
        assert response.status(201) is response
        assert response.status_code == 201

    def test_set_lowercases_header_names(self) -> None:
        """Verify header names are normalized."""
        response = ResponseWriter().set("X-Rate-Limit-Remaining", "3")
        assert response.headers == {"x-rate-limit-remaining": "3"}

    def test_send_text(self) -> None:
        """Verify send stores the body and a text content type."""
        response = ResponseWriter().send("hello")

        assert response.sent
        assert response.body == "hello"
        assert response.headers["content-type"].startswith("text/plain")

    def test_send_bytes_unchanged(self) -> None:
        """Verify bytes bodies are passed through without decoding."""
        payload = b"\xff\xfe\x00binary"
        response = ResponseWriter().send(payload)

        assert response.body == payload
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.to_response().description == payload

    def test_send_bytes_keeps_explicit_content_type(self) -> None:
        """Verify a content type set before sending bytes is kept."""
        response = ResponseWriter().set("Content-Type", "application/gzip").send(b"\x1f\x8b")

        assert response.headers["content-type"] == "application/gzip"

    def test_send_empty(self) -> None:
        """Verify an empty send adds no content type."""
        response = ResponseWriter().status(204).send()

        assert response.body == ""
        assert "content-type" not in response.headers

    def test_json_dict(self) -> None:
        """Verify dicts are serialized with orjson."""
        response = ResponseWriter().json({"key": "value", "num": 42})

        assert response.headers["content-type"] == "application/json"
        assert orjson.loads(response.body) == {"key": "value", "num": 42}

    def test_json_pydantic_model(self) -> None:
        """Verify pydantic models are serialized through model_dump_json."""
        response = ResponseWriter().json(SampleModel(name="test", value=123))
        assert orjson.loads(response.body) == {"name": "test", "value": 123}

    def test_second_send_raises(self) -> None:
        """Verify the body can only be sent once."""
        response = ResponseWriter().send("first")

        with pytest.raises(ResponseAlreadySentError):
            response.json({"again": True})

    def test_to_response(self) -> None:
        """Verify conversion into a Robyn Response."""
        result = ResponseWriter().status(201).json({"a": 1}).to_response()

        assert isinstance(result, Response)
        assert result.status_code == 201
        assert orjson.loads(result.description) == {"a": 1}
