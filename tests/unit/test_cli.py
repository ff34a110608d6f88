# tests/unit/test_cli.py
"""Tests for the nullmodel CLI."""

import json
import os
from pathlib import Path
from typing import Any

import pytest
import yaml
from typer.testing import CliRunner

from nullmodel import __version__
from nullmodel.cli import FIRST_TOKEN_LATENCY_FACTOR, app, build_cli_overrides
from nullmodel.config import NullModelConfig
from nullmodel.server import CONFIG_ENV_VAR, app_from_environment

runner = CliRunner()


@pytest.fixture
def uvicorn_calls(monkeypatch: pytest.MonkeyPatch) -> list[tuple[Any, dict[str, Any]]]:
    """Capture uvicorn.run() calls instead of starting a server."""
    calls: list[tuple[Any, dict[str, Any]]] = []

    def fake_run(app_or_path: Any, **kwargs: Any) -> None:
        calls.append((app_or_path, kwargs))

    monkeypatch.setattr("uvicorn.run", fake_run)
    # Registers the variable for restoration even though serve() writes it directly.
    monkeypatch.setenv(CONFIG_ENV_VAR, "{}")
    return calls


class TestBuildCliOverrides:
    """Tests for build_cli_overrides()."""

    def test_no_flags(self) -> None:
        assert build_cli_overrides() == {}

    def test_latency_sets_both_bases(self) -> None:
        overrides = build_cli_overrides(latency=20)
        assert overrides == {
            "latency": {"per_token_ms": 20, "first_token_ms": 20 * FIRST_TOKEN_LATENCY_FACTOR},
        }

    def test_chaos_flags(self) -> None:
        overrides = build_cli_overrides(chaos=True, error_rate=0.2)
        assert overrides == {"chaos": {"enabled": True, "error_rate": 0.2}}

    def test_no_chaos_is_kept(self) -> None:
        """--no-chaos is an explicit False, not an unset flag."""
        assert build_cli_overrides(chaos=False) == {"chaos": {"enabled": False}}

    def test_server_and_logging(self) -> None:
        overrides = build_cli_overrides(port=8080, workers=2, verbose=True, json_logs=True)
        assert overrides["server"] == {"port": 8080, "workers": 2}
        assert overrides["logging"] == {"level": "DEBUG", "json_output": True}

    def test_persona(self) -> None:
        assert build_cli_overrides(persona="code") == {"defaults": {"persona": "code"}}


class TestListingCommands:
    """Tests for personas and presets."""

    def test_personas(self) -> None:
        result = runner.invoke(app, ["personas"])
        assert result.exit_code == 0
        assert "tool_calls" in result.output
        assert "error_prone" in result.output

    def test_presets(self) -> None:
        result = runner.invoke(app, ["presets"])
        assert result.exit_code == 0
        for name in ("chaos", "fast", "flaky", "realistic", "slow"):
            assert f"- {name}" in result.output


class TestShowConfig:
    """Tests for show-config."""

    def test_json_output(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["show-config", "--preset", "fast", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["latency"]["first_token_ms"] == 50
        assert data["preset_name"] == "fast"

    def test_yaml_output(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["show-config"])
        assert result.exit_code == 0
        assert yaml.safe_load(result.output)["defaults"]["persona"] == "balanced"

    def test_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("chaos:\n  enabled: true\n")
        result = runner.invoke(app, ["show-config", "--config", str(config_file), "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["chaos"]["enabled"] is True

    def test_unknown_preset_exits(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["show-config", "--preset", "nope"])
        assert result.exit_code == 1


class TestServe:
    """Tests for serve (uvicorn is stubbed)."""

    def test_single_worker_runs_app(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, uvicorn_calls: list[tuple[Any, dict[str, Any]]]
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["serve", "--preset", "fast", "--port", "4100"])
        assert result.exit_code == 0, result.output
        assert "/v1/chat/completions" in result.output
        assert "Preset: fast" in result.output

        ((target, kwargs),) = uvicorn_calls
        assert kwargs["port"] == 4100
        assert kwargs["log_config"] is None
        assert target.state.server.config.preset_name == "fast"

    def test_multi_worker_uses_factory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, uvicorn_calls: list[tuple[Any, dict[str, Any]]]
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["serve", "--workers", "3", "--chaos"])
        assert result.exit_code == 0, result.output

        ((target, kwargs),) = uvicorn_calls
        assert target == "nullmodel.server:app_from_environment"
        assert kwargs["factory"] is True
        assert kwargs["workers"] == 3

        config = NullModelConfig.model_validate_json(os.environ[CONFIG_ENV_VAR])
        assert config.chaos.enabled is True
        assert config.server.workers == 3

    def test_discovers_config_in_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, uvicorn_calls: list[tuple[Any, dict[str, Any]]]
    ) -> None:
        (tmp_path / "nullmodel.yaml").write_text("defaults:\n  persona: terse\n")
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["serve"])
        assert result.exit_code == 0, result.output
        assert "Persona: terse" in result.output

    def test_unknown_persona_warns(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, uvicorn_calls: list[tuple[Any, dict[str, Any]]]
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["serve", "--persona", "pirate"])
        assert result.exit_code == 0
        assert "unknown persona 'pirate'" in result.output

    def test_version(self) -> None:
        result = runner.invoke(app, ["serve", "--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestAppFromEnvironment:
    """Tests for the multi-worker app factory."""

    def test_reads_serialized_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        config = NullModelConfig.model_validate({"defaults": {"persona": "markdown"}, "cors": False})
        monkeypatch.setenv(CONFIG_ENV_VAR, config.model_dump_json())
        built = app_from_environment()
        assert built.state.server.config == config

    def test_defaults_without_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert app_from_environment().state.server.config == NullModelConfig()
