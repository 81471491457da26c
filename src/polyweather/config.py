"""Configuration management for polyweather.

A frozen pydantic model holds every tunable of the classification
engine and its collaborators. Each ``Dashboard`` captures a snapshot of
the active ``Config`` at creation time.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

logger = logging.getLogger("polyweather")

_DEFAULT_ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
_DEFAULT_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
_DEFAULT_TIMELINE_ANCHOR = datetime(2025, 8, 4, 7, 0, tzinfo=timezone.utc)


class Config(BaseModel):
    """Settings model.

    Args:
        archive_url: Open-Meteo historical archive endpoint.
        forecast_url: Open-Meteo forecast endpoint (recent and future days).
        request_timeout: Per-request HTTP timeout in seconds.
        max_retries: Attempts per request before a fetch is reported failed.
        fallback_color: Color for missing values and unmatched rules.
        default_rule_color: Color of a newly added threshold rule.
        equality_tolerance: Absolute tolerance of the ``=`` operator.
        timeline_anchor: Instant the 30-day timeline is centred on.
        timeline_days_before: Days of look-back before the anchor.
        timeline_days_after: Days of look-ahead after the anchor.
        state_dir: Directory for the persisted preferences file.

    Example:
        >>> cfg = Config(request_timeout=10)
        >>> cfg.fallback_color
        '#9ca3af'
    """

    model_config = ConfigDict(frozen=True, validate_default=True, extra="forbid")

    archive_url: str = _DEFAULT_ARCHIVE_URL
    forecast_url: str = _DEFAULT_FORECAST_URL
    request_timeout: float = 30.0
    max_retries: int = 3
    fallback_color: str = "#9ca3af"
    default_rule_color: str = "#3B82F6"
    equality_tolerance: float = 0.01
    timeline_anchor: datetime = _DEFAULT_TIMELINE_ANCHOR
    timeline_days_before: int = 15
    timeline_days_after: int = 15
    state_dir: Path = Path("~/.polyweather")

    @field_validator("state_dir", mode="before")
    @classmethod
    def _expand_state_dir(cls, v: str | Path) -> Path:
        """Expand ``~`` in the state directory path."""
        return Path(v).expanduser()

    @field_validator("timeline_anchor")
    @classmethod
    def _anchor_to_utc(cls, v: datetime) -> datetime:
        """Interpret naive anchors as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_validator("request_timeout", "equality_tolerance")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            msg = "value must be greater than 0"
            raise ValueError(msg)
        return v

    @field_validator("max_retries")
    @classmethod
    def _validate_retries(cls, v: int) -> int:
        if v < 1:
            msg = "max_retries must be at least 1"
            raise ValueError(msg)
        return v

    @field_validator("fallback_color", "default_rule_color")
    @classmethod
    def _validate_color(cls, v: str) -> str:
        if not v.strip():
            msg = "color must be a non-empty token"
            raise ValueError(msg)
        return v

    @field_validator("timeline_days_before", "timeline_days_after")
    @classmethod
    def _validate_days(cls, v: int) -> int:
        if v < 0:
            msg = "timeline day counts cannot be negative"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def _validate_horizon(self) -> Config:
        """Ensure the timeline spans at least one day."""
        if self.timeline_days_before + self.timeline_days_after == 0:
            msg = "timeline must span at least one day"
            raise ValueError(msg)
        return self


_default_config = Config()


def configure(**kwargs: Any) -> None:
    """Set module-level default configuration.

    Creates a new ``Config`` from the current defaults merged with
    the provided keyword arguments.

    Args:
        **kwargs: Any ``Config`` field.

    Raises:
        ValidationError: If a provided value fails pydantic validation.

    Example:
        >>> configure(request_timeout=10, max_retries=5)
    """
    global _default_config  # noqa: PLW0603
    current = _default_config.model_dump()
    current.update(kwargs)
    _default_config = Config(**current)
    logger.debug("Default configuration updated: %s", sorted(kwargs))


def get_default_config() -> Config:
    """Return the current module-level default configuration."""
    return _default_config
