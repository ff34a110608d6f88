# tests/unit/test_config.py
"""Tests for nullmodel configuration models and loading."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from nullmodel.config import (
    ChaosConfig,
    LatencyConfig,
    NullModelConfig,
    ServerConfig,
    discover_config_file,
    list_presets,
    load_config,
    load_preset,
)
from nullmodel.config_loader import deep_merge


class TestModels:
    """Tests for configuration model defaults and validation."""

    def test_defaults(self) -> None:
        config = NullModelConfig()
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 4000
        assert config.latency.first_token_ms == 300
        assert config.latency.per_token_ms == 30
        assert config.latency.variance == 0.3
        assert config.defaults.persona == "balanced"
        assert config.chaos.enabled is False
        assert config.chaos.rate_limit_rate == 0.02
        assert config.chaos.error_rate == 0.05
        assert config.chaos.slowdown_rate == 0.1
        assert config.chaos.slowdown_multiplier == 5.0
        assert config.cors is True
        assert config.preset_name is None

    def test_models_are_frozen(self) -> None:
        config = NullModelConfig()
        with pytest.raises(ValidationError):
            config.cors = False  # type: ignore[misc]

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            ChaosConfig(enabled=True, explode_rate=0.5)  # type: ignore[call-arg]

    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_rates_are_probabilities(self, rate: float) -> None:
        with pytest.raises(ValidationError):
            ChaosConfig(error_rate=rate)

    def test_slowdown_multiplier_at_least_one(self) -> None:
        with pytest.raises(ValidationError):
            ChaosConfig(slowdown_multiplier=0.5)

    def test_variance_bounded(self) -> None:
        with pytest.raises(ValidationError):
            LatencyConfig(variance=1.5)

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_range(self, port: int) -> None:
        with pytest.raises(ValidationError):
            ServerConfig(port=port)

    def test_latency_scaled(self) -> None:
        scaled = LatencyConfig(first_token_ms=100, per_token_ms=10, variance=0.2).scaled(3)
        assert scaled == LatencyConfig(first_token_ms=300, per_token_ms=30, variance=0.2)


class TestDeepMerge:
    """Tests for deep_merge()."""

    def test_nested_override(self) -> None:
        base = {"chaos": {"enabled": False, "error_rate": 0.05}, "cors": True}
        override = {"chaos": {"enabled": True}}
        assert deep_merge(base, override) == {"chaos": {"enabled": True, "error_rate": 0.05}, "cors": True}

    def test_does_not_mutate_inputs(self) -> None:
        base = {"a": {"b": 1}}
        override = {"a": {"c": 2}}
        deep_merge(base, override)
        assert base == {"a": {"b": 1}}
        assert override == {"a": {"c": 2}}

    def test_non_dict_replaces_dict(self) -> None:
        assert deep_merge({"a": {"b": 1}}, {"a": 5}) == {"a": 5}


class TestPresets:
    """Tests for the shipped presets."""

    def test_shipped_presets(self) -> None:
        assert list_presets() == ["chaos", "fast", "flaky", "realistic", "slow"]

    @pytest.mark.parametrize("name", ["chaos", "fast", "flaky", "realistic", "slow"])
    def test_every_preset_validates(self, name: str) -> None:
        config = load_config(preset=name)
        assert config.preset_name == name

    def test_chaos_preset_enables_faults(self) -> None:
        assert load_config(preset="chaos").chaos.enabled is True

    def test_fast_preset_latency(self) -> None:
        config = load_config(preset="fast")
        assert config.latency.first_token_ms == 50
        assert config.latency.per_token_ms == 5

    def test_unknown_preset(self) -> None:
        with pytest.raises(FileNotFoundError, match="Available presets"):
            load_preset("does-not-exist")


class TestLoadConfig:
    """Tests for load_config() precedence."""

    def test_defaults_when_nothing_given(self) -> None:
        config = load_config()
        assert config == NullModelConfig()

    def test_config_file_overrides_preset(self, tmp_path: Path) -> None:
        config_file = tmp_path / "nullmodel.yaml"
        config_file.write_text("latency:\n  per_token_ms: 12\n")
        config = load_config(preset="slow", config_file=config_file)
        assert config.latency.per_token_ms == 12
        # Preset values the file does not mention survive
        assert config.latency.first_token_ms == 1500

    def test_cli_overrides_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "nullmodel.yaml"
        config_file.write_text("defaults:\n  persona: terse\nserver:\n  port: 5000\n")
        config = load_config(config_file=config_file, cli_overrides={"defaults": {"persona": "code"}})
        assert config.defaults.persona == "code"
        assert config.server.port == 5000

    def test_json_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "nullmodel.config.json"
        config_file.write_text(json.dumps({"chaos": {"enabled": True, "error_rate": 0.5}}))
        config = load_config(config_file=config_file)
        assert config.chaos.enabled is True
        assert config.chaos.error_rate == 0.5

    def test_missing_config_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_file=tmp_path / "missing.yaml")

    def test_non_mapping_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "nullmodel.yaml"
        config_file.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(config_file=config_file)

    def test_empty_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "nullmodel.yaml"
        config_file.write_text("")
        assert load_config(config_file=config_file) == NullModelConfig()

    def test_invalid_values_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "nullmodel.yaml"
        config_file.write_text("chaos:\n  rate_limit_rate: 7\n")
        with pytest.raises(ValidationError):
            load_config(config_file=config_file)


class TestDiscoverConfigFile:
    """Tests for discover_config_file()."""

    def test_none_when_absent(self, tmp_path: Path) -> None:
        assert discover_config_file(tmp_path) is None

    def test_finds_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "nullmodel.yaml").write_text("{}")
        assert discover_config_file(tmp_path) == tmp_path / "nullmodel.yaml"

    def test_finds_json(self, tmp_path: Path) -> None:
        (tmp_path / "nullmodel.config.json").write_text("{}")
        assert discover_config_file(tmp_path) == tmp_path / "nullmodel.config.json"

    def test_yaml_preferred_over_json(self, tmp_path: Path) -> None:
        (tmp_path / "nullmodel.config.json").write_text("{}")
        (tmp_path / "nullmodel.yml").write_text("{}")
        assert discover_config_file(tmp_path) == tmp_path / "nullmodel.yml"
