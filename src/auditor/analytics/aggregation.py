"""Aggregate analytics over the interaction history.

Every function here is a pure function of ``(interactions, rubric)`` and is
recomputed from scratch on each call; nothing is cached, so results can never
go stale relative to the history.

Functions:
    average_score: Mean total score over scored interactions.
    category_performance: Earned / possible points per rubric category.
    failure_frequency_ranking: Pareto ranking of non-conforming criteria.
    compute_statistics: All of the above in one Statistics object.

Pareto rule:
    Items are sorted by failure count (descending, ties in first-encountered
    order). An item is "vital" when the cumulative share of failures
    *before* it is strictly below 80%.

Example:
    >>> stats = compute_statistics(store.all(), rubric)
    >>> stats.average_score
    72
    >>> [item.criterion_id for item in stats.pareto if item.is_vital]
    ['5.2', '4.1']
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict

from src.common.scorecard.results import STATUS_CONFORME, Interaction, round_half_up
from src.common.scorecard.rubric import Rubric


logger = logging.getLogger(__name__)


# Cumulative share (percent) below which a failure cause is "vital"
VITAL_CUTOFF_PERCENT = 80.0

# Average-score bands used by dashboards
EXCELLENT_THRESHOLD = 90
GOOD_THRESHOLD = 75

ScoreBand = Literal["excellent", "good", "attention"]


# =============================================================================
# Result Models
# =============================================================================


class CategoryPerformance(BaseModel):
    """Earned versus possible points for one rubric category.

    Attributes:
        category: Category label.
        points_earned: Points earned across all scored interactions.
        points_possible: Sum of criterion weights across those interactions.
        scored_count: Number of criterion scores that contributed.
        percentage: ``round(100 * earned / possible)``, or None when no
            points were possible.
    """

    model_config = ConfigDict(frozen=True)

    category: str
    points_earned: int
    points_possible: int
    scored_count: int
    percentage: int | None


class ParetoItem(BaseModel):
    """One entry of the failure-frequency ranking.

    Attributes:
        criterion_id: The failing criterion.
        name: Criterion name (``Item <id>`` if it is no longer in the rubric).
        count: Interactions in which the criterion did not conform.
        cumulative_count: Failures up to and including this item.
        cumulative_share: Exact cumulative percentage (0-100).
        cumulative_percentage: cumulative_share rounded half-up.
        is_vital: Whether the share before this item is below 80%.
    """

    model_config = ConfigDict(frozen=True)

    criterion_id: str
    name: str
    count: int
    cumulative_count: int
    cumulative_share: float
    cumulative_percentage: int
    is_vital: bool


class Statistics(BaseModel):
    """Aggregate dashboard statistics."""

    model_config = ConfigDict(frozen=True)

    total_interactions: int
    scored_interactions: int
    average_score: int
    score_band: ScoreBand
    categories: list[CategoryPerformance]
    pareto: list[ParetoItem]
    total_failures: int


# =============================================================================
# Aggregations
# =============================================================================


def average_score(interactions: Iterable[Interaction]) -> int:
    """Return the half-up rounded mean total score of scored interactions.

    Interactions without a result are ignored; returns 0 when none are scored.
    """
    scores = [i.result.total_score for i in interactions if i.result is not None]
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def score_band(score: int) -> ScoreBand:
    """Classify an average score into a dashboard band."""
    if score >= EXCELLENT_THRESHOLD:
        return "excellent"
    if score >= GOOD_THRESHOLD:
        return "good"
    return "attention"


def category_performance(
    interactions: Iterable[Interaction],
    rubric: Rubric,
) -> list[CategoryPerformance]:
    """Compute earned/possible points per category across all interactions.

    Every rubric category is reported, in first-seen rubric order. Scores
    for criteria no longer in the rubric are ignored. The possible points
    use the criterion's current weight.

    Args:
        interactions: Interaction history.
        rubric: Current rubric (defines categories and weights).

    Returns:
        One CategoryPerformance per rubric category.
    """
    category_of = {c.id: c for c in rubric.criteria}
    totals: dict[str, list[int]] = {}
    for criterion in rubric.criteria:
        totals.setdefault(criterion.category, [0, 0, 0])

    for interaction in interactions:
        if interaction.result is None:
            continue
        for score in interaction.result.criteria_scores:
            criterion = category_of.get(score.criterion_id)
            if criterion is None:
                continue
            bucket = totals[criterion.category]
            bucket[0] += score.points_earned
            bucket[1] += criterion.weight
            bucket[2] += 1

    performance = []
    for category, (earned, possible, count) in totals.items():
        percentage = round_half_up(100 * earned / possible) if possible > 0 else None
        performance.append(
            CategoryPerformance(
                category=category,
                points_earned=earned,
                points_possible=possible,
                scored_count=count,
                percentage=percentage,
            )
        )
    return performance


def failure_frequency_ranking(
    interactions: Iterable[Interaction],
    rubric: Rubric | None = None,
) -> list[ParetoItem]:
    """Rank criteria by how often they failed (status other than CONFORME).

    Args:
        interactions: Interaction history.
        rubric: Optional rubric used to resolve criterion names.

    Returns:
        Pareto items sorted by count descending; ties keep first-encountered
        order. Empty when there are no failures.
    """
    counts: dict[str, int] = {}
    for interaction in interactions:
        if interaction.result is None:
            continue
        for score in interaction.result.criteria_scores:
            if score.status != STATUS_CONFORME:
                counts[score.criterion_id] = counts.get(score.criterion_id, 0) + 1

    total_failures = sum(counts.values())
    if total_failures == 0:
        return []

    # sorted() is stable, so equal counts keep insertion (first-seen) order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)

    items = []
    cumulative = 0
    for criterion_id, count in ranked:
        share_before = 100.0 * cumulative / total_failures
        cumulative += count
        share = 100.0 * cumulative / total_failures
        criterion = rubric.get(criterion_id) if rubric is not None else None
        items.append(
            ParetoItem(
                criterion_id=criterion_id,
                name=criterion.name if criterion is not None else f"Item {criterion_id}",
                count=count,
                cumulative_count=cumulative,
                cumulative_share=share,
                cumulative_percentage=round_half_up(share),
                is_vital=share_before < VITAL_CUTOFF_PERCENT,
            )
        )
    return items


def compute_statistics(
    interactions: Iterable[Interaction],
    rubric: Rubric,
) -> Statistics:
    """Compute all dashboard statistics from scratch.

    Args:
        interactions: Interaction history (any iterable; consumed once).
        rubric: Current rubric.

    Returns:
        A Statistics snapshot.
    """
    history = list(interactions)
    average = average_score(history)
    pareto = failure_frequency_ranking(history, rubric)

    stats = Statistics(
        total_interactions=len(history),
        scored_interactions=sum(1 for i in history if i.result is not None),
        average_score=average,
        score_band=score_band(average),
        categories=category_performance(history, rubric),
        pareto=pareto,
        total_failures=sum(item.count for item in pareto),
    )
    logger.debug(
        "Computed statistics over %d interactions: average=%d, failures=%d",
        stats.total_interactions,
        stats.average_score,
        stats.total_failures,
    )
    return stats
