"""Tests for the command-line bootstrap."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tests.helpers import FakeProposalSource, record
from wordwise import app
from wordwise.ai.analysis.pipeline import AnalysisContext
from wordwise.services.settings import Settings


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch: pytest.MonkeyPatch) -> list[bool]:
    calls: list[bool] = []

    def fake_configure(debug: bool = False, *, force: bool = False) -> Path:
        calls.append(debug)
        return Path("wordwise.log")

    monkeypatch.setattr(app, "configure_logging", fake_configure)
    return calls


def test_coerce_cli_overrides_uses_field_types() -> None:
    overrides = app._coerce_cli_overrides(
        ["port=9000", "debug_logging=on", "temperature=0.5", "model= gpt-4o-mini ", 'default_headers={"X-A": "1"}']
    )

    assert overrides == {
        "port": 9000,
        "debug_logging": True,
        "temperature": 0.5,
        "model": "gpt-4o-mini",
        "default_headers": {"X-A": "1"},
    }


@pytest.mark.parametrize("entry", ["port", "=1", "nope=1", "debug_logging=maybe", "port=abc"])
def test_invalid_overrides_raise(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_dump_settings_redacts_api_key(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("WORDWISE_API_KEY", "sk-1234567890")
    settings_path = tmp_path / "settings.json"

    exit_code = app.main(["--dump-settings", "--settings-path", str(settings_path), "--set", "model=gpt-4o-mini"])

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["settings"]["model"] == "gpt-4o-mini"
    assert output["settings"]["api_key"] == "sk*********90"
    assert output["meta"]["cli_overrides"] == ["model"]
    assert output["meta"]["environment_variables"] == ["WORDWISE_API_KEY"]
    assert output["meta"]["path"] == str(settings_path)


def test_invalid_set_exits_with_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["--settings-path", str(tmp_path / "s.json"), "--set", "bogus=1"])

    assert excinfo.value.code == 2


def test_check_command_streams_suggestions(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    source = FakeProposalSource([record("spelling", "teh", "the")])
    monkeypatch.setattr(app, "build_context", lambda settings: AnalysisContext(source=source))

    exit_code = app.main(["check", "--text", "teh cat", "--settings-path", str(tmp_path / "s.json")])

    lines = capsys.readouterr().out.splitlines()
    assert exit_code == 0
    assert [json.loads(line)["id"] for line in lines] == ["spelling-0-teh"]


def test_check_command_reports_errors(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(
        app, "build_context", lambda settings: AnalysisContext(source=FakeProposalSource(configured=False))
    )

    exit_code = app.main(["check", "--text", "teh cat", "--settings-path", str(tmp_path / "s.json")])

    assert exit_code == 1
    assert "OpenAI API key not configured" in capsys.readouterr().err


def test_serve_runs_uvicorn_with_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(application, **kwargs) -> None:
        captured["app"] = application
        captured.update(kwargs)

    monkeypatch.setattr(app.uvicorn, "run", fake_run)
    monkeypatch.setattr(app, "build_context", lambda settings: AnalysisContext(source=FakeProposalSource()))

    exit_code = app._serve(Settings(host="0.0.0.0", port=9123))

    assert exit_code == 0
    assert captured["host"] == "0.0.0.0"
    assert captured["port"] == 9123
    assert captured["log_config"] is None
    assert captured["app"].state.analysis_context.source is not None


def test_load_settings_falls_back_on_store_errors(tmp_path: Path) -> None:
    class _BrokenStore:
        path = tmp_path / "broken.json"

        def load(self, *, overrides=None) -> Settings:
            raise OSError("disk on fire")

    assert app.load_settings(store=_BrokenStore()) == Settings()
