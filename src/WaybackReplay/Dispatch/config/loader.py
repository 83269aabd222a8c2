# === NAVMAP v1 ===
# {
#   "module": "WaybackReplay.Dispatch.config.loader",
#   "purpose": "Layered DispatchConfig loading from a file, WBRD_ variables and overrides.",
#   "sections": [
#     {
#       "id": "parse-document",
#       "name": "_parse_document",
#       "anchor": "function-parse-document",
#       "kind": "function"
#     },
#     {
#       "id": "environment-layer",
#       "name": "_environment_layer",
#       "anchor": "function-environment-layer",
#       "kind": "function"
#     },
#     {
#       "id": "overlay",
#       "name": "_overlay",
#       "anchor": "function-overlay",
#       "kind": "function"
#     },
#     {
#       "id": "load-config",
#       "name": "load_config",
#       "anchor": "function-load-config",
#       "kind": "function"
#     },
#     {
#       "id": "export-config-schema",
#       "name": "export_config_schema",
#       "anchor": "function-export-config-schema",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Loading of DispatchConfig

A replay deployment describes its dispatch wiring in one document (YAML or
JSON) and adjusts individual values per host through ``WBRD_`` variables.
Embedding code and the CLI may pass a final mapping of overrides. The three
layers are overlaid in that order before the result is validated once.

Variable names map onto the document by lower-casing and reading ``__`` as
one level of nesting::

    WBRD_MEMENTO__REPLAY_PREFIX=/wayback/       memento.replay_prefix
    WBRD_COMPONENTS__CLOSEST__CLASSNAME=mine    components["closest.classname"]

Variable values are read as JSON where they parse (numbers, booleans, lists)
and kept as plain strings otherwise.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable

import yaml

from .models import DispatchConfig

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "WBRD_"

# ============================================================================
# Layers
# ============================================================================


def _parse_yaml(text: str) -> Any:
    # An empty document means "all defaults".
    return yaml.safe_load(text) or {}


_PARSERS: dict[str, tuple[str, Callable[[str], Any], tuple[type[Exception], ...]]] = {
    ".yaml": ("YAML", _parse_yaml, (yaml.YAMLError,)),
    ".yml": ("YAML", _parse_yaml, (yaml.YAMLError,)),
    ".json": ("JSON", json.loads, (json.JSONDecodeError,)),
}


def _parse_document(path: str) -> dict[str, Any]:
    """Return the mapping stored in a ``.yaml``/``.yml``/``.json`` dispatch document.

    Raises:
        ValueError: If the document is missing, unreadable, malformed, or does
            not hold a mapping.
    """
    document = Path(path)
    if not document.exists():
        raise ValueError(f"Config file not found: {path}")

    suffix = document.suffix.lower()
    if suffix not in _PARSERS:
        raise ValueError(f"Unsupported file format: {suffix}. Use .yaml or .json")
    label, parse, errors = _PARSERS[suffix]

    try:
        text = document.read_text(encoding="utf-8")
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e
    try:
        data = parse(text)
    except errors as e:
        raise ValueError(f"Invalid {label} in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return data


def _env_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        pass
    # Tolerate shell-style "True"/"FALSE".
    if raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    return raw


def _environment_layer(env_prefix: str) -> dict[str, Any]:
    """Collect ``<env_prefix>SECTION__KEY`` variables into a nested mapping."""
    layer: dict[str, Any] = {}
    for name in sorted(os.environ):
        if not name.startswith(env_prefix):
            continue
        path = name[len(env_prefix) :].lower().split("__")
        value = _env_value(os.environ[name])

        node = layer
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[path[-1]] = value
        _LOGGER.debug(f"{name} sets {'.'.join(path)} = {value!r}")
    return layer


def _overlay(base: dict[str, Any], layer: Mapping[str, Any] | None) -> dict[str, Any]:
    """Overlay ``layer`` onto ``base`` in place; mappings merge, anything else replaces."""
    for key, value in (layer or {}).items():
        current = base.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            _overlay(current, value)
        elif isinstance(value, Mapping):
            base[key] = _overlay({}, value)
        else:
            base[key] = value
    return base


# ============================================================================
# Public API
# ============================================================================


def load_config(
    path: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_overrides: Mapping[str, Any] | None = None,
) -> DispatchConfig:
    """
    Build a validated DispatchConfig.

    Layers, weakest first: the document at ``path`` (if any), variables
    starting with ``env_prefix``, then ``cli_overrides``.

    Raises:
        ValueError: If the document cannot be read or parsed
        pydantic.ValidationError: If the combined layers are invalid
    """
    data: dict[str, Any] = {}
    if path:
        try:
            data = _parse_document(path)
        except ValueError as e:
            _LOGGER.error(f"Failed to load config: {e}")
            raise
        _LOGGER.info(f"Loaded config from {path}")

    _overlay(data, _environment_layer(env_prefix))
    if cli_overrides:
        _LOGGER.debug(f"Applying overrides for {sorted(cli_overrides)}")
        _overlay(data, cli_overrides)

    config = DispatchConfig.model_validate(data)
    _LOGGER.info(f"Dispatch config ready (hash {config.config_hash()[:8]})")
    return config


def export_config_schema(output_path: str | None = None) -> dict[str, Any]:
    """Return the DispatchConfig JSON Schema, also writing it to ``output_path`` if given."""
    schema = DispatchConfig.model_json_schema()
    if output_path:
        Path(output_path).write_text(json.dumps(schema, indent=2), encoding="utf-8")
        _LOGGER.info(f"Config schema written to {output_path}")
    return schema
