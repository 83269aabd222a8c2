"""
Replay Dispatch Configuration Package

Public API for loading, validating, and introspecting dispatch configuration.

Example:
    from WaybackReplay.Dispatch.config import load_config

    config = load_config(
        path="dispatch.yaml",
        cli_overrides={"sniffing": {"stop_on_first_match": True}},
    )
    config_id = config.config_hash()
"""

from .loader import export_config_schema, load_config
from .models import ClosestPolicy, DispatchConfig, MementoPolicy, SniffingPolicy

__all__ = [
    # Models
    "DispatchConfig",
    "SniffingPolicy",
    "MementoPolicy",
    "ClosestPolicy",
    # Loading
    "load_config",
    "export_config_schema",
]
