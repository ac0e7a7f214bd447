"""Deterministic ordering and summary counts for engine results.

All sorts are stable, so the order a caller passes in survives as the
tie-break within equal keys.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from storeintel.domain.intelligence.types import (
    Anomaly,
    DemandEstimate,
    ReorderSuggestion,
    Severity,
    Urgency,
)


def runway_sort_key(estimate: DemandEstimate) -> tuple[bool, float]:
    """Ascending runway with unbounded runway last."""
    return (estimate.is_unbounded, estimate.runway_days)


def rank_forecast(estimates: Iterable[DemandEstimate]) -> list[DemandEstimate]:
    """Order a demand forecast: most urgent runway first, unbounded last.

    Equal runways fall back to best sellers first, then item id.
    """
    by_volume = sorted(estimates, key=lambda e: (-e.total_quantity, e.item.id))
    return sorted(by_volume, key=runway_sort_key)


def rank_reorders(suggestions: Iterable[ReorderSuggestion]) -> list[ReorderSuggestion]:
    return sorted(suggestions, key=lambda s: s.estimate.runway_days)


def rank_anomalies(anomalies: Iterable[Anomaly]) -> list[Anomaly]:
    """Global severity order (high, medium, low), not grouped by type."""
    return sorted(anomalies, key=lambda a: a.severity.rank)


def severity_counts(anomalies: Sequence[Anomaly]) -> dict[Severity, int]:
    counts = Counter(a.severity for a in anomalies)
    return {severity: counts.get(severity, 0) for severity in Severity}


def urgency_counts(suggestions: Sequence[ReorderSuggestion]) -> dict[Urgency, int]:
    counts = Counter(s.urgency for s in suggestions)
    return {urgency: counts.get(urgency, 0) for urgency in Urgency}
