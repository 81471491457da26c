"""Pure analysis functions: series reduction and threshold classification."""

from polyweather.analysis.series import reduce_series
from polyweather.analysis.thresholds import classify, order_thresholds

__all__ = ["classify", "order_thresholds", "reduce_series"]
