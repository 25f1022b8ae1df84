"""Tests for the health and submission controllers."""

import hashlib

import orjson

from app.api.health import HealthController
from app.api.submissions import SubmissionsController
from app.core.router import UPLOAD_ENDPOINTS, dispatch
from app.core.settings import settings as st


class TestHealthController:
    """Tests for HealthController."""

    async def test_check(self) -> None:
        response = await dispatch(HealthController().check, request=None)

        assert response.status_code == 200
        body = orjson.loads(response.description)
        assert body["status"] == "healthy"
        assert body["service"] == st.API_NAME


class TestSubmissionsController:
    """Tests for SubmissionsController."""

    def test_route_is_an_upload_endpoint(self) -> None:
        assert "/submissions" in UPLOAD_ENDPOINTS

    async def test_create_gzip_submission(self, make_mock_request, gzipped) -> None:
        """Verify a gzip submission is decompressed and summarized."""
        request = make_mock_request(fields=[("compression", "gzip"), ("name", "run-1")], files=[("datafile", gzipped(b"hello"))])

        response = await dispatch(SubmissionsController().create, request)

        assert response.status_code == 201
        body = orjson.loads(response.description)
        assert body == {
            "size": 5,
            "sha256": hashlib.sha256(b"hello").hexdigest(),
            "fields": {"compression": "gzip", "name": "run-1"},
        }

    async def test_create_without_file(self, make_mock_request) -> None:
        """Verify upload failures are answered with 400."""
        request = make_mock_request(fields=[("name", "run-1")])

        response = await dispatch(SubmissionsController().create, request)

        assert response.status_code == 400
        assert response.description == "Cannot retrieve file: No file found"

    async def test_create_file_exactly_at_limit(self, make_mock_request, monkeypatch) -> None:
        """Verify a file of exactly the limit is accepted although the body is larger."""
        monkeypatch.setattr(st, "SUBMISSIONS_MAX_SIZE", 64)
        request = make_mock_request(fields=[("name", "run-1")], files=[("datafile", b"x" * 64)])
        assert int(request.headers.get("content-length")) > 64

        response = await dispatch(SubmissionsController().create, request)

        assert response.status_code == 201
        assert orjson.loads(response.description)["size"] == 64

    async def test_create_small_file_under_small_limit(self, make_mock_request, monkeypatch) -> None:
        """Verify the multipart framing does not count against the file limit."""
        monkeypatch.setattr(st, "SUBMISSIONS_MAX_SIZE", 100)
        request = make_mock_request(files=[("datafile", b"0123456789")])

        response = await dispatch(SubmissionsController().create, request)

        assert response.status_code == 201
        assert orjson.loads(response.description)["size"] == 10

    async def test_create_too_large(self, make_mock_request, monkeypatch) -> None:
        """Verify a file over the limit fails in the ingestor with 400."""
        monkeypatch.setattr(st, "SUBMISSIONS_MAX_SIZE", 16)
        request = make_mock_request(files=[("datafile", b"x" * 64)])

        response = await dispatch(SubmissionsController().create, request)

        assert response.status_code == 400
        assert response.description == "Cannot retrieve file: file too large"

    async def test_create_too_large_without_length(self, make_mock_request, monkeypatch) -> None:
        """Verify the ingestor limit applies when no length is declared."""
        monkeypatch.setattr(st, "SUBMISSIONS_MAX_SIZE", 16)
        request = make_mock_request(files=[("datafile", b"x" * 64)])
        request.headers._data.pop("content-length")

        response = await dispatch(SubmissionsController().create, request)

        assert response.status_code == 400
        assert response.description == "Cannot retrieve file: file too large"
