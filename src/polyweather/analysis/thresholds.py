"""Threshold classification of a scalar into a color.

Rules are evaluated in a fixed order: exceedance rules (``>``, ``>=``)
from the highest threshold down, then the remaining rules (``<``, ``<=``,
``=``) from the lowest threshold up. The first matching rule wins. Both
groups are sorted stably, so rules with equal values keep their input
order and the result never depends on the sort algorithm.

Example:
    >>> rules = [
    ...     Threshold(operator=">=", value=25, color="red"),
    ...     Threshold(operator=">=", value=15, color="orange"),
    ...     Threshold(operator="<", value=15, color="blue"),
    ... ]
    >>> classify(20.0, rules)
    'orange'
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from polyweather._types import Operator, Threshold

FALLBACK_COLOR = "#9ca3af"
EQUALITY_TOLERANCE = 0.01


def order_thresholds(thresholds: Iterable[Threshold]) -> list[Threshold]:
    """Return the evaluation order of *thresholds*.

    Args:
        thresholds: Rules in editing order.

    Returns:
        A new list: descending-family rules by value descending, followed by
        ascending-family rules by value ascending.
    """
    rules = list(thresholds)
    descending = [t for t in rules if t.operator.descending]
    ascending = [t for t in rules if not t.operator.descending]
    descending.sort(key=lambda t: t.value, reverse=True)
    ascending.sort(key=lambda t: t.value)
    return descending + ascending


def matches(
    value: float,
    threshold: Threshold,
    tolerance: float = EQUALITY_TOLERANCE,
) -> bool:
    """Evaluate one rule's predicate against *value*."""
    op = threshold.operator
    if op is Operator.GE:
        return value >= threshold.value
    if op is Operator.GT:
        return value > threshold.value
    if op is Operator.LE:
        return value <= threshold.value
    if op is Operator.LT:
        return value < threshold.value
    return abs(value - threshold.value) < tolerance


def classify(
    value: float | None,
    thresholds: Iterable[Threshold],
    *,
    fallback: str = FALLBACK_COLOR,
    tolerance: float = EQUALITY_TOLERANCE,
) -> str:
    """Map *value* to the color of the first matching rule.

    Args:
        value: Scalar to classify; ``None`` or ``NaN`` means no data.
        thresholds: Rules to evaluate, in any order.
        fallback: Color for missing values and unmatched values.
        tolerance: Absolute tolerance of the ``=`` operator.

    Returns:
        The matching rule's color, or *fallback*.
    """
    if value is None or math.isnan(value):
        return fallback

    for threshold in order_thresholds(thresholds):
        if matches(value, threshold, tolerance):
            return threshold.color
    return fallback
