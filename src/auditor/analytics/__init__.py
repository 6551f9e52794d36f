"""Dashboard analytics over the interaction history."""

from src.auditor.analytics.aggregation import (
    VITAL_CUTOFF_PERCENT,
    CategoryPerformance,
    ParetoItem,
    Statistics,
    average_score,
    category_performance,
    compute_statistics,
    failure_frequency_ranking,
    score_band,
)

__all__ = [
    "VITAL_CUTOFF_PERCENT",
    "CategoryPerformance",
    "ParetoItem",
    "Statistics",
    "average_score",
    "category_performance",
    "compute_statistics",
    "failure_frequency_ranking",
    "score_band",
]
