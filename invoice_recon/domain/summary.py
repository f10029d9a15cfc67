"""Folding discrepancies into report-level totals."""
from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Iterable

from .models import Discrepancy, DiscrepancyType, Severity
from .results import DiscrepancySummary


def summarize(discrepancies: Iterable[Discrepancy]) -> DiscrepancySummary:
    by_type: Counter[DiscrepancyType] = Counter()
    by_severity: Counter[Severity] = Counter()
    total = Decimal("0")
    undercharged = Decimal("0")
    overcharged = Decimal("0")

    for discrepancy in discrepancies:
        by_type[discrepancy.discrepancy_type] += 1
        by_severity[discrepancy.severity] += 1
        impact = discrepancy.financial_impact
        total += impact
        if impact < 0:
            undercharged += -impact
        elif impact > 0:
            overcharged += impact

    return DiscrepancySummary(
        price_discrepancies=by_type[DiscrepancyType.PRICE],
        weight_discrepancies=by_type[DiscrepancyType.WEIGHT],
        zone_discrepancies=by_type[DiscrepancyType.ZONE],
        fuel_surcharge_discrepancies=by_type[DiscrepancyType.FUEL_SURCHARGE],
        high_severity_count=by_severity[Severity.HIGH],
        medium_severity_count=by_severity[Severity.MEDIUM],
        low_severity_count=by_severity[Severity.LOW],
        total_financial_impact=total,
        total_undercharged=undercharged,
        total_overcharged=overcharged,
    )
