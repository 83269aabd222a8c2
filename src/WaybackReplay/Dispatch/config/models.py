"""
Pydantic v2 Configuration Models for replay dispatch

Provides strict, typed configuration for the dispatch subsystems:
- Media-type sniffing policy (which recorded types are always re-checked)
- Memento link generation (replay and timemap URL prefixes)
- Default closest-capture selection policy
- Flat component configuration consumed by the plugin registry
- Top-level DispatchConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

import hashlib
import json
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ============================================================================
# Policy Models
# ============================================================================


class SniffingPolicy(BaseModel):
    """Configuration for media-type sniffing."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    always_sniff_prefixes: List[str] = Field(
        default_factory=lambda: ["text/html"],
        description="Recorded media type prefixes that are re-checked by sniffers",
    )
    stop_on_first_match: bool = Field(
        default=False,
        description="Use the first non-empty sniffer guess instead of the last",
    )
    peek_bytes: int = Field(default=2048, description="Bytes inspected by built-in sniffers")

    @field_validator("always_sniff_prefixes")
    @classmethod
    def normalize_prefixes(cls, v: List[str]) -> List[str]:
        return [prefix.strip().lower() for prefix in v if prefix and prefix.strip()]

    @field_validator("peek_bytes")
    @classmethod
    def validate_peek_bytes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("peek_bytes must be > 0")
        return v


class MementoPolicy(BaseModel):
    """Configuration for Memento (RFC 7089) header generation."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    replay_prefix: str = Field(
        default="/web/", description="Prefix of replay URLs: <prefix><timestamp>/<url>"
    )
    timemap_prefix: Optional[str] = Field(
        default="/web/timemap/link/",
        description="Prefix of link-format TimeMap URLs (None disables the timemap link)",
    )
    link_all_captures: bool = Field(
        default=False,
        description="List every capture in TimeGate Link values, not only first/prev/next/last",
    )

    @field_validator("replay_prefix")
    @classmethod
    def validate_replay_prefix(cls, v: str) -> str:
        if not v:
            raise ValueError("replay_prefix must not be empty")
        return v if v.endswith("/") else v + "/"


class ClosestPolicy(BaseModel):
    """Configuration for the default closest-capture selector."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    prefer_2xx: bool = Field(
        default=True, description="Skip non-2xx captures when a 2xx capture exists"
    )
    match_url_key: bool = Field(
        default=True, description="Prefer captures whose url_key matches the request"
    )


# ============================================================================
# Top-Level Configuration
# ============================================================================


class DispatchConfig(BaseModel):
    """
    Single source of truth for replay dispatch configuration.

    Loaded from file (YAML/JSON), overlaid with environment variables,
    and finally overridden by CLI arguments. Precedence: file < env < CLI.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", validate_assignment=True)

    sniffing: SniffingPolicy = Field(
        default_factory=SniffingPolicy, description="Media-type sniffing policy"
    )
    memento: MementoPolicy = Field(
        default_factory=MementoPolicy, description="Memento header policy"
    )
    closest: ClosestPolicy = Field(
        default_factory=ClosestPolicy, description="Closest-capture selection policy"
    )
    components: Dict[str, str] = Field(
        default_factory=dict,
        description="Flat component properties (<namespace>.classname and <namespace>.<key>)",
    )

    @field_validator("components", mode="before")
    @classmethod
    def flatten_components(cls, v: object) -> object:
        # Nested mappings (YAML sections, WBRD_COMPONENTS__X__Y env vars)
        # collapse to dotted keys.
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        flat: Dict[str, str] = {}

        def _walk(prefix: str, value: object) -> None:
            if isinstance(value, dict):
                for key, child in value.items():
                    _walk(f"{prefix}.{key}" if prefix else str(key), child)
            elif isinstance(value, (list, tuple)):
                flat[prefix] = ",".join(str(item) for item in value if item is not None)
            elif value is None:
                flat[prefix] = ""
            elif isinstance(value, bool):
                flat[prefix] = "true" if value else "false"
            else:
                flat[prefix] = str(value)

        _walk("", v)
        return flat

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
