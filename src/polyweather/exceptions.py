"""polyweather exception hierarchy.

All exceptions follow a three-part message pattern: what failed,
likely cause, and suggested fix.
"""

from __future__ import annotations


class PolyWeatherError(Exception):
    """Base exception for all polyweather errors.

    Args:
        what: Description of what failed.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.

    Example:
        >>> raise PolyWeatherError(
        ...     what="Operation failed",
        ...     cause="Unexpected internal state",
        ...     fix="Please report this issue",
        ... )
    """

    def __init__(
        self,
        what: str,
        cause: str = "",
        fix: str = "",
    ) -> None:
        self.what = what
        self.cause = cause
        self.fix = fix
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Build the multi-line error message from parts.

        Returns:
            Formatted message with optional Cause and Fix lines.
        """
        parts = [self.what]
        if self.cause:
            parts.append(f"Cause: {self.cause}")
        if self.fix:
            parts.append(f"Fix: {self.fix}")
        return "\n".join(parts)


class ConfigurationError(PolyWeatherError):
    """Raised for invalid configuration or unreadable state files.

    Example:
        >>> raise ConfigurationError(
        ...     what="Cannot read preferences file",
        ...     cause="Invalid JSON in ~/.polyweather/preferences.json",
        ...     fix="Delete the file to reset preferences",
        ... )
    """


class ProviderError(PolyWeatherError):
    """Raised when a weather fetch fails (HTTP error, network, API error flag).

    Example:
        >>> raise ProviderError(
        ...     what="Open-Meteo request failed",
        ...     cause="HTTP 503 after 3 retries",
        ...     fix="Try again later",
        ... )
    """


class MalformedResponseError(ProviderError):
    """Raised when a provider payload lacks the expected hourly array."""


class GeometryError(PolyWeatherError):
    """Raised when a polygon geometry has no usable outer ring."""


class RegistryError(PolyWeatherError):
    """Raised when a registry operation would break an id invariant."""
