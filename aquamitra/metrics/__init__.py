"""Metrics package."""

from aquamitra.metrics.calculator import (
    MetricsCalculator,
    compute_metrics,
    rank,
    top_performer,
)

__all__ = ["MetricsCalculator", "compute_metrics", "rank", "top_performer"]
