# src/nullmodel/cli.py
"""CLI for the nullmodel server.

Usage:
    # Start server with defaults (port 4000)
    nullmodel serve

    # Start with a preset
    nullmodel serve --preset=fast

    # Force a persona and enable chaos
    nullmodel serve --persona=tool_calls --chaos --error-rate=0.2

    # Inspect what is available
    nullmodel personas
    nullmodel presets
    nullmodel show-config --preset=flaky --format=json
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from nullmodel import __version__
from nullmodel.config import NullModelConfig, discover_config_file, list_presets, load_config
from nullmodel.personas import PERSONAS, list_personas

# First-token latency is this multiple of the per-token latency given by --latency.
FIRST_TOKEN_LATENCY_FACTOR = 5

app = typer.Typer(
    name="nullmodel",
    help="nullmodel: fake OpenAI, Anthropic and Gemini endpoints for UI and client testing.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"nullmodel {__version__}")
        raise typer.Exit()


def _load_or_exit(
    *,
    preset: str | None,
    config_file: Path | None,
    cli_overrides: dict[str, Any] | None = None,
) -> NullModelConfig:
    if config_file is None:
        config_file = discover_config_file(Path.cwd())
    try:
        return load_config(
            preset=preset,
            config_file=config_file,
            cli_overrides=cli_overrides,
        )
    except FileNotFoundError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e
    except Exception as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e


def build_cli_overrides(
    *,
    host: str | None = None,
    port: int | None = None,
    workers: int | None = None,
    persona: str | None = None,
    latency: float | None = None,
    chaos: bool | None = None,
    rate_limit_rate: float | None = None,
    error_rate: float | None = None,
    slowdown_rate: float | None = None,
    slowdown_multiplier: float | None = None,
    verbose: bool = False,
    json_logs: bool = False,
) -> dict[str, Any]:
    """Translate serve flags into a partial config dict (unset flags are omitted)."""
    overrides: dict[str, Any] = {}

    server = {
        key: value for key, value in (("host", host), ("port", port), ("workers", workers)) if value is not None
    }
    if server:
        overrides["server"] = server

    if persona is not None:
        overrides["defaults"] = {"persona": persona}

    if latency is not None:
        overrides["latency"] = {
            "per_token_ms": latency,
            "first_token_ms": latency * FIRST_TOKEN_LATENCY_FACTOR,
        }

    chaos_overrides = {
        key: value
        for key, value in (
            ("enabled", chaos),
            ("rate_limit_rate", rate_limit_rate),
            ("error_rate", error_rate),
            ("slowdown_rate", slowdown_rate),
            ("slowdown_multiplier", slowdown_multiplier),
        )
        if value is not None
    }
    if chaos_overrides:
        overrides["chaos"] = chaos_overrides

    logging_overrides: dict[str, Any] = {}
    if verbose:
        logging_overrides["level"] = "DEBUG"
    if json_logs:
        logging_overrides["json_output"] = True
    if logging_overrides:
        overrides["logging"] = logging_overrides

    return overrides


def _print_banner(config: NullModelConfig, config_file: Path | None) -> None:
    base_url = f"http://{config.server.host}:{config.server.port}"
    typer.secho(f"nullmodel {__version__} listening on {base_url}", fg=typer.colors.GREEN)
    if config.preset_name:
        typer.echo(f"  Preset: {config.preset_name}")
    if config_file:
        typer.echo(f"  Config: {config_file}")
    typer.echo(f"  Persona: {config.defaults.persona}")
    typer.echo(
        f"  Latency: first token ~{config.latency.first_token_ms:.0f}ms, "
        f"per token ~{config.latency.per_token_ms:.0f}ms (variance {config.latency.variance:.0%})"
    )

    chaos = config.chaos
    if chaos.enabled:
        typer.echo(
            f"  Chaos: 429 {chaos.rate_limit_rate:.0%}, 500 {chaos.error_rate:.0%}, "
            f"slowdown {chaos.slowdown_rate:.0%} (x{chaos.slowdown_multiplier:g})"
        )
    else:
        typer.echo("  Chaos: disabled")
    typer.echo(f"  Workers: {config.server.workers}")

    typer.echo()
    typer.echo("  Endpoints:")
    typer.echo(f"    OpenAI:    POST {base_url}/v1/chat/completions")
    typer.echo(f"    Anthropic: POST {base_url}/v1/messages")
    typer.echo(f"    Gemini:    POST {base_url}/v1beta/models/<model>:generateContent")
    typer.echo(f"               POST {base_url}/v1beta/models/<model>:streamGenerateContent")
    typer.echo(f"    Health:    GET  {base_url}/health")
    typer.echo()


@app.command()
def serve(
    # Configuration sources
    preset: Annotated[
        str | None,
        typer.Option(
            "--preset",
            "-p",
            help="Preset configuration to use. Use 'nullmodel presets' to list available presets.",
        ),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to YAML or JSON configuration file (default: nullmodel.yaml in the working directory).",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
    # Server binding
    host: Annotated[
        str | None,
        typer.Option(
            "--host",
            "-h",
            help="Host address to bind to.",
        ),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option(
            "--port",
            "-P",
            help="Port to listen on.",
            min=1,
            max=65535,
        ),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option(
            "--workers",
            "-w",
            help="Number of uvicorn workers.",
            min=1,
        ),
    ] = None,
    # Content
    persona: Annotated[
        str | None,
        typer.Option(
            "--persona",
            help="Default persona. Requests can still override it with the _persona body field.",
        ),
    ] = None,
    # Latency
    latency: Annotated[
        float | None,
        typer.Option(
            "--latency",
            "-l",
            help=f"Per-token latency in ms (first token is {FIRST_TOKEN_LATENCY_FACTOR}x this).",
            min=0.0,
        ),
    ] = None,
    # Chaos overrides
    chaos: Annotated[
        bool | None,
        typer.Option(
            "--chaos/--no-chaos",
            help="Enable random fault injection.",
        ),
    ] = None,
    rate_limit_rate: Annotated[
        float | None,
        typer.Option(
            "--rate-limit-rate",
            help="Probability of a 429 rate limit response (0-1).",
            min=0.0,
            max=1.0,
        ),
    ] = None,
    error_rate: Annotated[
        float | None,
        typer.Option(
            "--error-rate",
            help="Probability of a 500 server error response (0-1).",
            min=0.0,
            max=1.0,
        ),
    ] = None,
    slowdown_rate: Annotated[
        float | None,
        typer.Option(
            "--slowdown-rate",
            help="Probability of a slowed-down response (0-1).",
            min=0.0,
            max=1.0,
        ),
    ] = None,
    slowdown_multiplier: Annotated[
        float | None,
        typer.Option(
            "--slowdown-multiplier",
            help="Latency multiplier applied on slowdown.",
            min=1.0,
        ),
    ] = None,
    # Logging
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log every request (DEBUG level).",
        ),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option(
            "--json-logs",
            help="Emit JSON log lines.",
        ),
    ] = False,
    # Misc options
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Start the nullmodel server.

    Configuration precedence (highest to lowest):
    1. Command-line flags
    2. Config file (--config, or nullmodel.yaml / nullmodel.yml / nullmodel.config.json in the working directory)
    3. Preset (--preset)
    4. Built-in defaults

    Examples:

        # Start with defaults
        nullmodel serve

        # Fast responses for CI
        nullmodel serve --preset=fast

        # Exercise client retry paths
        nullmodel serve --chaos --rate-limit-rate=0.3
    """
    import uvicorn

    from nullmodel.logging import configure_logging
    from nullmodel.server import CONFIG_ENV_VAR, create_app

    if config_file is None:
        config_file = discover_config_file(Path.cwd())

    cli_overrides = build_cli_overrides(
        host=host,
        port=port,
        workers=workers,
        persona=persona,
        latency=latency,
        chaos=chaos,
        rate_limit_rate=rate_limit_rate,
        error_rate=error_rate,
        slowdown_rate=slowdown_rate,
        slowdown_multiplier=slowdown_multiplier,
        verbose=verbose,
        json_logs=json_logs,
    )
    config = _load_or_exit(preset=preset, config_file=config_file, cli_overrides=cli_overrides)

    if config.defaults.persona not in PERSONAS:
        typer.secho(
            f"Warning: unknown persona '{config.defaults.persona}', requests will fall back to 'balanced'.",
            fg=typer.colors.YELLOW,
            err=True,
        )

    configure_logging(json_output=config.logging.json_output, level=config.logging.level)
    _print_banner(config, config_file)

    log_level = config.logging.level.lower()
    if config.server.workers > 1:
        # Worker processes rebuild the app from the serialized config.
        os.environ[CONFIG_ENV_VAR] = config.model_dump_json()
        uvicorn.run(
            "nullmodel.server:app_from_environment",
            factory=True,
            host=config.server.host,
            port=config.server.port,
            workers=config.server.workers,
            log_level=log_level,
            log_config=None,
        )
        return

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=log_level,
        log_config=None,
    )


@app.command()
def personas() -> None:
    """List the built-in personas.

    Select one per request with the `_persona` body field, or server-wide
    with `nullmodel serve --persona=<name>`.
    """
    typer.secho("Available personas:", fg=typer.colors.GREEN)
    for entry in list_personas():
        typer.echo(f"  - {entry['name']}: {entry['description']}")


@app.command()
def presets() -> None:
    """List available preset configurations."""
    available = list_presets()

    if not available:
        typer.echo("No presets found.")
        return

    typer.secho("Available presets:", fg=typer.colors.GREEN)
    for name in sorted(available):
        typer.echo(f"  - {name}")

    typer.echo()
    typer.echo("Use with: nullmodel serve --preset=<name>")


@app.command()
def show_config(
    preset: Annotated[
        str | None,
        typer.Option(
            "--preset",
            "-p",
            help="Preset to show configuration for.",
        ),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file to show.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help="Output format: json or yaml.",
        ),
    ] = "yaml",
) -> None:
    """Show the effective configuration.

    Displays the merged configuration from preset and/or config file.
    """
    config = _load_or_exit(preset=preset, config_file=config_file)
    config_dict = config.model_dump()

    if output_format == "json":
        typer.echo(json.dumps(config_dict, indent=2))
    else:
        typer.echo(yaml.dump(config_dict, default_flow_style=False, sort_keys=False))


def main() -> None:
    """Entry point for the nullmodel CLI."""
    app()


if __name__ == "__main__":
    main()
