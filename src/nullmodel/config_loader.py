# src/nullmodel/config_loader.py
"""Configuration layering for the nullmodel server.

Provides YAML preset loading, config file discovery and deep merge for
configuration precedence (CLI > config file > preset > defaults). The
`nullmodel.config.load_config()` wrapper binds these to the package's presets
directory and the `NullModelConfig` model.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel

ConfigT = TypeVar("ConfigT", bound=BaseModel)

# Searched in order; JSON is accepted because YAML is a superset of it.
CONFIG_FILE_NAMES: tuple[str, ...] = (
    "nullmodel.yaml",
    "nullmodel.yml",
    "nullmodel.config.json",
)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dicts, with override taking precedence.

    Args:
        base: Base configuration dict.
        override: Override values (takes precedence).

    Returns:
        Merged configuration dict (new dict, does not mutate inputs).
    """
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def list_presets(presets_dir: Path) -> list[str]:
    """List available preset names (YAML file stems) from a directory."""
    if not presets_dir.exists():
        return []
    return sorted(p.stem for p in presets_dir.glob("*.yaml"))


def load_preset(presets_dir: Path, preset_name: str) -> dict[str, Any]:
    """Load a preset configuration by name.

    Raises:
        FileNotFoundError: If preset does not exist.
        yaml.YAMLError: If preset YAML is malformed.
        ValueError: If preset is not a YAML mapping.
    """
    preset_path = presets_dir / f"{preset_name}.yaml"

    if not preset_path.exists():
        available = list_presets(presets_dir)
        raise FileNotFoundError(f"Preset '{preset_name}' not found. Available presets: {available}")

    with preset_path.open() as f:
        loaded = yaml.safe_load(f)
        if not isinstance(loaded, dict):
            raise ValueError(f"Preset '{preset_name}' must be a YAML mapping, got {type(loaded).__name__}")
        return loaded


def discover_config_file(directory: Path) -> Path | None:
    """Return the first known config file present in ``directory``, if any."""
    for name in CONFIG_FILE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def read_config_file(config_file: Path) -> dict[str, Any]:
    """Read a YAML or JSON config file into a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not contain a mapping.
    """
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")
    with config_file.open() as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping, got {type(loaded).__name__}")
    return loaded


def load_config(
    config_cls: type[ConfigT],
    presets_dir: Path,
    *,
    preset: str | None = None,
    config_file: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> ConfigT:
    """Load a server configuration with precedence handling.

    Precedence (highest to lowest):
    1. cli_overrides - Direct overrides from CLI flags
    2. config_file - User's YAML/JSON configuration file
    3. preset - Named preset configuration
    4. defaults - Built-in Pydantic defaults

    Raises:
        FileNotFoundError: If preset or config_file not found.
        yaml.YAMLError: If YAML is malformed.
        pydantic.ValidationError: If final config fails validation.
    """
    config_dict: dict[str, Any] = {}

    if preset is not None:
        config_dict = load_preset(presets_dir, preset)

    if config_file is not None:
        config_dict = deep_merge(config_dict, read_config_file(config_file))

    if cli_overrides is not None:
        config_dict = deep_merge(config_dict, cli_overrides)

    config_dict["preset_name"] = preset

    return config_cls(**config_dict)
