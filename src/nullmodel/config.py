# src/nullmodel/config.py
"""Configuration schema and loading for the nullmodel server.

Uses Pydantic for validation with frozen (immutable) models.
Configuration precedence: CLI > config file > preset > defaults.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from nullmodel.config_loader import discover_config_file
from nullmodel.config_loader import list_presets as _list_presets
from nullmodel.config_loader import load_config as _load_config
from nullmodel.config_loader import load_preset as _load_preset

__all__ = [
    "ChaosConfig",
    "DefaultsConfig",
    "LatencyConfig",
    "LoggingConfig",
    "NullModelConfig",
    "ServerConfig",
    "discover_config_file",
    "list_presets",
    "load_config",
    "load_preset",
]


class ServerConfig(BaseModel):
    """Server binding and worker configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    host: str = Field(
        default="127.0.0.1",
        description="Host address to bind to",
    )
    port: int = Field(
        default=4000,
        gt=0,
        le=65535,
        description="Port to listen on",
    )
    workers: int = Field(
        default=1,
        gt=0,
        description="Number of uvicorn workers",
    )


class LatencyConfig(BaseModel):
    """Latency simulation configuration.

    Both bases are jittered by +/- ``variance`` (a fraction of the base),
    so variance=0.3 puts a 30ms per-token base anywhere in [21, 39] ms.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    first_token_ms: float = Field(
        default=300.0,
        ge=0.0,
        description="Base delay before the first streamed unit (time to first token)",
    )
    per_token_ms: float = Field(
        default=30.0,
        ge=0.0,
        description="Base delay between streamed units",
    )
    variance: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Relative jitter applied to both bases (0-1)",
    )

    def scaled(self, multiplier: float) -> "LatencyConfig":
        """Return a copy with both bases multiplied (used by slowdown faults)."""
        return LatencyConfig(
            first_token_ms=self.first_token_ms * multiplier,
            per_token_ms=self.per_token_ms * multiplier,
            variance=self.variance,
        )


class DefaultsConfig(BaseModel):
    """Per-request defaults applied when the request does not say otherwise."""

    model_config = {"frozen": True, "extra": "forbid"}

    persona: str = Field(
        default="balanced",
        description="Persona used when the request carries no _persona override",
    )


class ChaosConfig(BaseModel):
    """Fault injection configuration.

    Rates are probabilities (0-1). They are evaluated as cumulative bands in
    fixed order (rate limit, server error, slowdown) against a single draw,
    so at most one outcome fires per request.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(
        default=False,
        description="Enable random fault injection",
    )
    rate_limit_rate: float = Field(
        default=0.02,
        ge=0.0,
        le=1.0,
        description="Probability of a 429 rate limit response",
    )
    error_rate: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Probability of a 500 server error response",
    )
    slowdown_rate: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Probability of a slowed-down (but successful) response",
    )
    slowdown_multiplier: float = Field(
        default=5.0,
        ge=1.0,
        description="Factor applied to both latency bases on slowdown",
    )


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    json_output: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output",
    )


class NullModelConfig(BaseModel):
    """Top-level nullmodel server configuration.

    Configuration precedence (highest to lowest):
    1. CLI flags
    2. Config file
    3. Preset defaults
    4. Built-in defaults
    """

    model_config = {"frozen": True, "extra": "forbid"}

    server: ServerConfig = Field(
        default_factory=ServerConfig,
        description="Server binding configuration",
    )
    latency: LatencyConfig = Field(
        default_factory=LatencyConfig,
        description="Latency simulation configuration",
    )
    defaults: DefaultsConfig = Field(
        default_factory=DefaultsConfig,
        description="Per-request defaults",
    )
    chaos: ChaosConfig = Field(
        default_factory=ChaosConfig,
        description="Fault injection configuration",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    cors: bool = Field(
        default=True,
        description="Add permissive CORS headers for browser clients",
    )
    preset_name: str | None = Field(
        default=None,
        description="Preset name used to build this config (if any)",
    )


# === Preset Loading ===


def _get_presets_dir() -> Path:
    """Get the presets directory path."""
    return Path(__file__).parent / "presets"


def list_presets() -> list[str]:
    """List available preset names."""
    return _list_presets(_get_presets_dir())


def load_preset(preset_name: str) -> dict[str, Any]:
    """Load a preset configuration by name."""
    return _load_preset(_get_presets_dir(), preset_name)


def load_config(
    *,
    preset: str | None = None,
    config_file: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> NullModelConfig:
    """Load nullmodel configuration with precedence handling.

    Precedence (highest to lowest):
    1. cli_overrides - Direct overrides from CLI flags
    2. config_file - User's YAML or JSON configuration file
    3. preset - Named preset configuration
    4. defaults - Built-in Pydantic defaults
    """
    return _load_config(
        NullModelConfig,
        _get_presets_dir(),
        preset=preset,
        config_file=config_file,
        cli_overrides=cli_overrides,
    )
