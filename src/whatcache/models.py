"""Canonical Pydantic models shared across all whatcache modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`CacheConfig`, :class:`CredentialsConfig`,
    :class:`OutputConfig`, and :class:`GlobalConfig`.

**Cache models** -- persisted in the response store:
    :class:`CachedRecord`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field

from whatcache import __version__


class RequestConfig(BaseModel):
    """HTTP settings applied to every call the live API client makes."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=3, description="Max retry attempts")
    probe_on_connect: bool = Field(
        default=False,
        description="GET the base URL once when the client is opened",
    )


class CacheConfig(BaseModel):
    """Response store settings.

    ``staleness_seconds`` is the default window after which a stored record
    is refetched.  ``operation_staleness`` overrides it per facade operation
    name, e.g. ``{"get_notifications": 60, "get_torrent": 86400}``.  A window
    of ``0`` always refetches.
    """

    enabled: bool = Field(default=True, description="Enable response caching")
    directory: Optional[str] = Field(
        default=None,
        description="Store directory (defaults to <cache dir>/responses)",
    )
    staleness_seconds: int = Field(
        default=3600, ge=0, description="Default staleness window in seconds"
    )
    operation_staleness: dict[str, Annotated[int, Field(ge=0)]] = Field(
        default_factory=dict,
        description="Per-operation staleness windows in seconds",
    )

    def staleness_for(self, operation: str) -> int:
        """Return the staleness window that applies to *operation*."""
        return self.operation_staleness.get(operation, self.staleness_seconds)


class CredentialsConfig(BaseModel):
    """Where the CLI reads tracker credentials from.

    Both fields take a credential source descriptor understood by
    :func:`~whatcache.config.resolve_credential`.
    """

    username_source: Optional[str] = Field(
        default=None, description="Username source: env:VAR, file:/path, value:NAME"
    )
    password_source: str = Field(
        default="prompt", description="Password source: env:VAR, file:/path, prompt"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/whatcache/config.json``.

    Loaded and saved by :func:`~whatcache.config.load_global_config` and
    :func:`~whatcache.config.save_global_config`.  See
    :func:`~whatcache.config.resolve_config` for the precedence chain that
    layers project config, environment variables, and CLI flags on top.
    """

    base_url: str = Field(
        default="https://what.cd/", description="Tracker base URL"
    )
    user_agent: str = Field(
        default=f"whatcache/{__version__}",
        description="User-Agent header sent with every request",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


class CachedRecord(BaseModel):
    """A single stored API result.

    The ``payload`` is whatever the wrapped client returned, kept as-is so
    that a cache hit hands back the same shape as a live call.

    Attributes:
        fingerprint: The request fingerprint this record is stored under.
        operation: Facade operation name that produced the record.
        captured_at: UTC time of the upstream call that produced the payload.
        payload: The upstream result.
    """

    fingerprint: str
    operation: str
    captured_at: datetime
    payload: Any = None

    def age_seconds(self, now: datetime) -> float:
        """Seconds elapsed between :attr:`captured_at` and *now*."""
        return (now - self.captured_at).total_seconds()
