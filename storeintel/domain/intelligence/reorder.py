"""Reorder advice: which items run out soon and how much to bring in.

NO DATA ACCESS - pure functions only.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from storeintel.domain.intelligence.ranking import rank_reorders, urgency_counts
from storeintel.domain.intelligence.types import DemandEstimate, ReorderSuggestion, Urgency


@dataclass(frozen=True)
class ReorderPolicy:
    """Tunables for reorder advice.

    ``horizon_days`` is independent of the alert threshold so tightening the
    threshold never shrinks the proposed quantity.
    """

    horizon_days: int = 14
    critical_days: float = 2.0
    warning_days: float = 5.0


@dataclass(frozen=True)
class ReorderAdvice:
    suggestions: list[ReorderSuggestion]
    critical_count: int
    warning_count: int
    info_count: int


def classify_urgency(runway: float, policy: ReorderPolicy = ReorderPolicy()) -> Urgency:
    """Map a runway to an urgency tier.

    Examples:
        >>> classify_urgency(2.0).value
        'critical'
        >>> classify_urgency(4.9).value
        'warning'
        >>> classify_urgency(6.0).value
        'info'
    """
    if runway <= policy.critical_days:
        return Urgency.CRITICAL
    if runway <= policy.warning_days:
        return Urgency.WARNING
    return Urgency.INFO


def suggested_reorder_qty(avg_daily_demand: float, horizon_days: int = 14) -> int:
    """Units needed to cover the replenishment horizon, rounded up."""
    if avg_daily_demand <= 0:
        return 0
    return math.ceil(avg_daily_demand * horizon_days)


def advise_reorders(
    estimates: Iterable[DemandEstimate],
    threshold_days: int,
    policy: ReorderPolicy = ReorderPolicy(),
) -> ReorderAdvice:
    """Select items whose runway is within ``threshold_days``.

    Items without demand (unbounded runway) never produce a suggestion.

    Args:
        estimates: Demand estimates for one store
        threshold_days: Runway alert threshold (already clamped by caller)
        policy: Horizon and urgency cut-offs

    Returns:
        Suggestions sorted by runway ascending plus per-tier counts

    """
    suggestions = [
        ReorderSuggestion(
            estimate=e,
            suggested_qty=suggested_reorder_qty(e.avg_daily_demand, policy.horizon_days),
            urgency=classify_urgency(e.runway_days, policy),
        )
        for e in estimates
        if not e.is_unbounded
        and e.avg_daily_demand > 0
        and 0 <= e.runway_days <= threshold_days
    ]

    ranked = rank_reorders(suggestions)
    counts = urgency_counts(ranked)

    return ReorderAdvice(
        suggestions=ranked,
        critical_count=counts[Urgency.CRITICAL],
        warning_count=counts[Urgency.WARNING],
        info_count=counts[Urgency.INFO],
    )
