"""Tests for settings helpers."""

from pathlib import Path

from app.core.settings import Settings, read_pyproject, settings


def test_read_pyproject(tmp_path: Path) -> None:
    """Verify pyproject.toml is parsed into a dict."""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text('[project]\nname = "demo"\n')

    assert read_pyproject(pyproject) == {"project": {"name": "demo"}}


def test_read_pyproject_missing(tmp_path: Path) -> None:
    assert read_pyproject(tmp_path / "missing.toml") == {}


def test_project_metadata() -> None:
    """Verify the service name comes from this project's pyproject."""
    assert Settings.API_NAME == "platform-engine"
    assert settings.API_VERSION


def test_upload_limits_from_env(monkeypatch) -> None:
    monkeypatch.setenv("SUBMISSIONS_MAX_SIZE", "2048")
    monkeypatch.setenv("DOWNSTREAM_URL", "http://scoring.internal")

    configured = Settings()

    assert configured.SUBMISSIONS_MAX_SIZE == 2048
    assert configured.DOWNSTREAM_URL == "http://scoring.internal"
    assert configured.api_url == f"http://{configured.API_HOST}:{configured.API_PORT}"
