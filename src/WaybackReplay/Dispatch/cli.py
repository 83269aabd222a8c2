"""CLI commands for dispatch configuration and offline diagnostics.

Provides:
  - config validate: Validate a configuration file and print its hash
  - config print-merged: Print configuration after file → env → CLI precedence
  - config schema: Export the JSON Schema of DispatchConfig
  - components: List registered component names
  - explain-mime: Run media-type resolution against a local payload file
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from WaybackReplay.Dispatch.bootstrap import build_dispatcher, component_properties
from WaybackReplay.Dispatch.config.loader import export_config_schema, load_config
from WaybackReplay.Dispatch.core import CaptureResult, ReplayRequest
from WaybackReplay.Dispatch.errors import ConfigurationError, log_dispatch_failure
from WaybackReplay.Dispatch.registry import get_registry
from WaybackReplay.Dispatch.resources import BytesResource

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="WaybackReplay dispatch tools")
config_app = typer.Typer(help="Configuration inspection and validation")
app.add_typer(config_app, name="config")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@config_app.command("validate")
def config_validate(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file path (YAML/JSON)"
    ),
) -> None:
    """Validate configuration and the components it references."""
    try:
        cfg = load_config(config_file)
        build_dispatcher(cfg)
    except (ValueError, ConfigurationError) as e:
        typer.secho("❌ Config validation failed:", fg="red", err=True)
        typer.secho(f"   {e}", fg="red", err=True)
        raise typer.Exit(1)
    typer.secho("✅ Config is valid", fg="green")
    typer.echo(f"   Config hash: {cfg.config_hash()[:16]}...")


@config_app.command("print-merged")
def config_print_merged(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file path (YAML/JSON)"
    ),
) -> None:
    """Print merged configuration, including effective component properties."""
    try:
        cfg = load_config(config_file)
    except ValueError as e:
        typer.secho(f"❌ Error loading config: {e}", fg="red", err=True)
        raise typer.Exit(1)
    output = cfg.model_dump(mode="json")
    output["components"] = component_properties(cfg)
    typer.echo(json.dumps(output, indent=2, sort_keys=True))


@config_app.command("schema")
def config_schema(
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the schema to this file instead of stdout"
    ),
) -> None:
    """Export JSON Schema for IDE/tooling integration."""
    schema = export_config_schema(output_file)
    if output_file:
        typer.secho(f"✅ Schema exported to {output_file}", fg="green")
    else:
        typer.echo(json.dumps(schema, indent=2))


@app.command("components")
def list_components() -> None:
    """List registered component names by kind."""
    # Importing bootstrap registered the built-in components.
    for name, (kind, _factory) in sorted(get_registry().items(), key=lambda i: (i[1][0], i[0])):
        typer.echo(f"{kind:<12} {name}")


@app.command("explain-mime")
def explain_mime(
    payload: Path = typer.Argument(..., exists=True, dir_okay=False, help="Payload bytes"),
    recorded: Optional[str] = typer.Option(
        None, "--recorded", "-r", help="Media type recorded in the capture index"
    ),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="Content-Type header recorded with the response"
    ),
    url: str = typer.Option("http://example.com/", "--url", help="Original URL"),
    timestamp: str = typer.Option("20000101000000", "--timestamp", help="Capture timestamp"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file path (YAML/JSON)"
    ),
) -> None:
    """Resolve the effective media type of a payload as replay would."""
    request: Optional[ReplayRequest] = None
    try:
        request = ReplayRequest(request_url=url, replay_timestamp=timestamp)
        capture = CaptureResult(original_url=url, capture_timestamp=timestamp, mime_type=recorded)
        cfg = load_config(config_file)
        dispatcher, _registry = build_dispatcher(cfg)
    except (ValueError, ConfigurationError) as e:
        log_dispatch_failure(LOGGER, e, request=request)
        typer.secho(f"❌ {e}", fg="red", err=True)
        raise typer.Exit(1)

    headers = {"Content-Type": content_type} if content_type else {}
    resource = BytesResource(payload.read_bytes(), headers)

    resolved = dispatcher.resolve_mime_type(request, capture, resource)
    typer.echo(json.dumps({"recorded": recorded, "header": content_type, "resolved": resolved}))


__all__ = ["app"]


if __name__ == "__main__":  # pragma: no cover
    app()
