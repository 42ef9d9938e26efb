"""Tests for the studybuddy CLI."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from studybuddy.cli.app import app

runner = CliRunner()


@pytest.fixture
def captured_run(monkeypatch: pytest.MonkeyPatch, tmp_path) -> dict:
    """Replace uvicorn.run and the log directory so serve returns immediately."""
    captured: dict = {}

    def fake_run(api_app, **kwargs):
        captured["app"] = api_app
        captured.update(kwargs)

    monkeypatch.setattr("uvicorn.run", fake_run)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path)
    return captured


def test_serve_uses_config_values(captured_run, tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"gateway": {"host": "0.0.0.0", "port": 8123}}))

    result = runner.invoke(app, ["--config", str(config_file), "serve"])

    assert result.exit_code == 0, result.output
    assert captured_run["host"] == "0.0.0.0"
    assert captured_run["port"] == 8123
    assert captured_run["app"].title == "Study Buddy API"


def test_serve_flags_override_config(captured_run, tmp_path):
    result = runner.invoke(
        app,
        ["--config", str(tmp_path / "missing.json"), "serve", "--host", "::1", "--port", "9001"],
    )

    assert result.exit_code == 0, result.output
    assert captured_run["host"] == "::1"
    assert captured_run["port"] == 9001


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert "serve" in result.output


def test_version_flag():
    from studybuddy import __version__

    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"studybuddy {__version__}"
