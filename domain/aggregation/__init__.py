"""
K-line aggregation module

Exports:
- Aggregator: day/week/month re-bucketing
- merge_bars: bucket merge rule
"""

from domain.aggregation.aggregator import PERIOD_LABELS, Aggregator, merge_bars

__all__ = ["Aggregator", "merge_bars", "PERIOD_LABELS"]
