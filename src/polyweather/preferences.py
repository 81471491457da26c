"""Persisted user preferences (onboarding tour flag).

Preferences live in ``<state_dir>/preferences.json`` as a flat JSON
object. A missing file means defaults.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from polyweather.config import get_default_config
from polyweather.exceptions import ConfigurationError

if TYPE_CHECKING:
    from polyweather.config import Config

logger = logging.getLogger(__name__)

_PREFERENCES_FILE = "preferences.json"
_TOUR_KEY = "tour_shown"


def preferences_path(config: Config | None = None) -> Path:
    """Return the preferences file location for *config*."""
    cfg = config if config is not None else get_default_config()
    return Path(cfg.state_dir).expanduser() / _PREFERENCES_FILE


def load_preferences(config: Config | None = None) -> dict[str, Any]:
    """Load the preferences file.

    Args:
        config: Supplies ``state_dir``; the global default when omitted.

    Returns:
        Parsed preferences, empty when the file does not exist.

    Raises:
        ConfigurationError: If the file cannot be read or is not a JSON
            object.
    """
    path = preferences_path(config)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except PermissionError:
        raise ConfigurationError(
            what="Cannot read preferences file",
            cause=f"Permission denied: {path}",
            fix=f"Check file permissions on {path}",
        ) from None

    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            what="Invalid preferences file format",
            cause=f"JSON parse error in {path}: {exc}",
            fix=f"Delete {path} to restore the defaults",
        ) from None

    if not isinstance(parsed, dict):
        raise ConfigurationError(
            what="Invalid preferences file format",
            cause=f"Expected a JSON object in {path}, got {type(parsed).__name__}",
            fix=f"Delete {path} to restore the defaults",
        )
    return parsed


def _save_preferences(prefs: dict[str, Any], config: Config | None) -> None:
    path = preferences_path(config)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(prefs, indent=2), encoding="utf-8")
    logger.debug("Saved preferences to %s", path)


def tour_shown(config: Config | None = None) -> bool:
    """Whether the onboarding tour was already shown."""
    return bool(load_preferences(config).get(_TOUR_KEY, False))


def mark_tour_shown(config: Config | None = None) -> None:
    """Record that the onboarding tour was shown."""
    prefs = load_preferences(config)
    prefs[_TOUR_KEY] = True
    _save_preferences(prefs, config)


def reset_tour(config: Config | None = None) -> None:
    """Forget the tour flag so the tour shows again."""
    prefs = load_preferences(config)
    if prefs.pop(_TOUR_KEY, None) is not None:
        _save_preferences(prefs, config)
