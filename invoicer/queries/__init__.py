"""Read-side query package."""

from invoicer.queries.statistics import MONTH_LABELS, StatisticsAggregator

__all__ = ["MONTH_LABELS", "StatisticsAggregator"]
