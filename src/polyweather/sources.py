"""Selectable weather fields and their threshold rules.

The registry keeps exactly one source active at a time. Every mutation
builds a new mapping and swaps it in with a single assignment, so a
reader never observes zero or two active sources.

Example:
    >>> registry = DataSourceRegistry.with_defaults()
    >>> registry.active.field
    'temperature_2m'
    >>> registry.set_active("precipitation")
    True
    >>> [s.id for s in registry if s.is_active]
    ['precipitation']
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from polyweather._types import Operator, Threshold
from polyweather.exceptions import RegistryError

if TYPE_CHECKING:
    from polyweather.config import Config

logger = logging.getLogger(__name__)

DEFAULT_RULE_COLOR = "#3B82F6"
_EDITABLE_FIELDS = frozenset({"operator", "value", "color"})


class RuleEdit(str, Enum):
    """Outcome of a threshold rule edit."""

    APPLIED = "applied"
    IGNORED = "ignored"
    LAST_RULE = "last_rule"


@dataclass(frozen=True)
class DataSource:
    """A selectable weather field with its classification rules.

    Args:
        id: Unique identifier within a registry.
        name: Display name.
        field: Provider field key (e.g. ``"temperature_2m"``).
        unit: Display unit.
        is_active: Whether this source drives classification.
        thresholds: Rules in editing order; dicts are validated into
            ``Threshold`` instances.
    """

    id: str
    name: str
    field: str
    unit: str
    is_active: bool = False
    thresholds: tuple[Threshold, ...] = ()

    def __post_init__(self) -> None:
        rules = tuple(
            t if isinstance(t, Threshold) else Threshold.model_validate(t)
            for t in self.thresholds
        )
        object.__setattr__(self, "thresholds", rules)


def _rules(*specs: tuple[str, float, str]) -> tuple[Threshold, ...]:
    return tuple(
        Threshold(operator=Operator(op), value=value, color=color)
        for op, value, color in specs
    )


def default_sources() -> list[DataSource]:
    """Return the stock data sources, with air temperature active."""
    return [
        DataSource(
            id="temperature",
            name="Temperature",
            field="temperature_2m",
            unit="°C",
            is_active=True,
            thresholds=_rules(
                (">=", 25, "#EF4444"),
                (">=", 15, "#F97316"),
                ("<", 15, "#3B82F6"),
            ),
        ),
        DataSource(
            id="humidity",
            name="Relative Humidity",
            field="relative_humidity_2m",
            unit="%",
            thresholds=_rules(
                (">=", 80, "#1D4ED8"),
                (">=", 50, "#60A5FA"),
                ("<", 50, "#FDE68A"),
            ),
        ),
        DataSource(
            id="precipitation",
            name="Precipitation",
            field="precipitation",
            unit="mm",
            thresholds=_rules(
                (">=", 5, "#1E3A8A"),
                (">", 0, "#3B82F6"),
                ("=", 0, "#D1D5DB"),
            ),
        ),
        DataSource(
            id="wind",
            name="Wind Speed",
            field="wind_speed_10m",
            unit="km/h",
            thresholds=_rules(
                (">=", 40, "#7C3AED"),
                (">=", 20, "#A78BFA"),
                ("<", 20, "#DDD6FE"),
            ),
        ),
    ]


class DataSourceRegistry:
    """Registry of data sources with a single-active invariant.

    On construction the first source flagged active (or the first source,
    if none is) becomes the only active one.

    Args:
        sources: Initial sources; ids must be unique.
        default_rule_color: Color of rules created by ``add_threshold``.

    Raises:
        RegistryError: If two sources share an id.
    """

    def __init__(
        self,
        sources: Iterable[DataSource] = (),
        *,
        default_rule_color: str = DEFAULT_RULE_COLOR,
    ) -> None:
        items = list(sources)
        ids = [s.id for s in items]
        if len(set(ids)) != len(ids):
            raise RegistryError(
                what="Cannot build data source registry",
                cause=f"Duplicate source ids in {ids}",
                fix="Give every data source a unique id",
            )

        active_id = next((s.id for s in items if s.is_active), ids[0] if ids else None)
        self._sources: dict[str, DataSource] = {
            s.id: replace(s, is_active=s.id == active_id) for s in items
        }
        self._default_rule_color = default_rule_color

    @classmethod
    def with_defaults(cls, config: Config | None = None) -> DataSourceRegistry:
        """Registry of ``default_sources()``."""
        color = config.default_rule_color if config is not None else DEFAULT_RULE_COLOR
        return cls(default_sources(), default_rule_color=color)

    def __iter__(self) -> Iterator[DataSource]:
        return iter(list(self._sources.values()))

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def get(self, source_id: str) -> DataSource | None:
        return self._sources.get(source_id)

    def by_field(self, field_key: str) -> DataSource | None:
        """Return the first source reading *field_key*, if any."""
        return next((s for s in self._sources.values() if s.field == field_key), None)

    @property
    def active(self) -> DataSource | None:
        """The active source, or ``None`` for an empty registry."""
        return next((s for s in self._sources.values() if s.is_active), None)

    def set_active(self, source_id: str) -> bool:
        """Make *source_id* the only active source.

        Returns:
            ``False`` (registry unchanged) when the id is unknown.
        """
        if source_id not in self._sources:
            logger.debug("Ignoring activation of unknown source %r", source_id)
            return False
        self._sources = {
            sid: replace(s, is_active=sid == source_id)
            for sid, s in self._sources.items()
        }
        logger.debug("Active data source is now %r", source_id)
        return True

    # ── Threshold editing ──────────────────────────────────────

    def update_threshold(
        self,
        source_id: str,
        index: int,
        field_name: str,
        value: Any,
    ) -> RuleEdit:
        """Set one attribute (``operator``, ``value`` or ``color``) of a rule.

        Unknown sources, out-of-range indexes, unknown attributes and values
        that fail validation leave the registry unchanged.
        """
        source = self._sources.get(source_id)
        if source is None or not 0 <= index < len(source.thresholds):
            return RuleEdit.IGNORED
        if field_name not in _EDITABLE_FIELDS:
            logger.debug("Ignoring edit of unknown rule attribute %r", field_name)
            return RuleEdit.IGNORED

        current = source.thresholds[index]
        try:
            updated = Threshold.model_validate(
                {**current.model_dump(), field_name: value}
            )
        except ValidationError as exc:
            logger.warning(
                "Rejected %s=%r for rule %d of %s: %s",
                field_name,
                value,
                index,
                source_id,
                exc.errors()[0].get("msg", "invalid value"),
            )
            return RuleEdit.IGNORED

        rules = list(source.thresholds)
        rules[index] = updated
        self._store(replace(source, thresholds=tuple(rules)))
        return RuleEdit.APPLIED

    def add_threshold(self, source_id: str) -> RuleEdit:
        """Append the default rule ``>= 0`` in the default rule color."""
        source = self._sources.get(source_id)
        if source is None:
            return RuleEdit.IGNORED
        rule = Threshold(operator=Operator.GE, value=0, color=self._default_rule_color)
        self._store(replace(source, thresholds=(*source.thresholds, rule)))
        return RuleEdit.APPLIED

    def remove_threshold(self, source_id: str, index: int) -> RuleEdit:
        """Remove one rule; a source always keeps at least one.

        Returns:
            ``LAST_RULE`` when the removal would leave the source empty.
        """
        source = self._sources.get(source_id)
        if source is None or not 0 <= index < len(source.thresholds):
            return RuleEdit.IGNORED
        if len(source.thresholds) <= 1:
            logger.debug("Refusing to remove the last rule of %s", source_id)
            return RuleEdit.LAST_RULE
        rules = source.thresholds[:index] + source.thresholds[index + 1 :]
        self._store(replace(source, thresholds=rules))
        return RuleEdit.APPLIED

    def _store(self, source: DataSource) -> None:
        self._sources = {**self._sources, source.id: source}
