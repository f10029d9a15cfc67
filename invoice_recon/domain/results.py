"""Domain-level results for invoice reconciliation."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from .models import Discrepancy, DiscrepancyType


@dataclass(frozen=True)
class DiscrepancySummary:
    price_discrepancies: int = 0
    weight_discrepancies: int = 0
    zone_discrepancies: int = 0
    fuel_surcharge_discrepancies: int = 0
    high_severity_count: int = 0
    medium_severity_count: int = 0
    low_severity_count: int = 0
    total_financial_impact: Decimal = Decimal("0")
    total_undercharged: Decimal = Decimal("0")
    total_overcharged: Decimal = Decimal("0")

    def __add__(self, other: DiscrepancySummary) -> DiscrepancySummary:
        if not isinstance(other, DiscrepancySummary):
            return NotImplemented
        return DiscrepancySummary(
            price_discrepancies=self.price_discrepancies + other.price_discrepancies,
            weight_discrepancies=self.weight_discrepancies + other.weight_discrepancies,
            zone_discrepancies=self.zone_discrepancies + other.zone_discrepancies,
            fuel_surcharge_discrepancies=self.fuel_surcharge_discrepancies + other.fuel_surcharge_discrepancies,
            high_severity_count=self.high_severity_count + other.high_severity_count,
            medium_severity_count=self.medium_severity_count + other.medium_severity_count,
            low_severity_count=self.low_severity_count + other.low_severity_count,
            total_financial_impact=self.total_financial_impact + other.total_financial_impact,
            total_undercharged=self.total_undercharged + other.total_undercharged,
            total_overcharged=self.total_overcharged + other.total_overcharged,
        )


@dataclass(frozen=True)
class DiscrepancyReport:
    """Outcome of one reconciliation run.

    ``is_complete`` is False when a batched run was cancelled; the report then
    covers only the carrier invoices processed before cancellation.
    """

    generated_at: datetime
    total_records_processed: int
    summary: DiscrepancySummary
    discrepancies: Sequence[Discrepancy] = field(default_factory=tuple)
    unmatched_carrier_invoices: Sequence[str] = field(default_factory=tuple)
    unmatched_customer_charges: Sequence[str] = field(default_factory=tuple)
    is_complete: bool = True

    @property
    def total_discrepancies_found(self) -> int:
        return len(self.discrepancies)

    def has_issues(self) -> bool:
        return any(
            [
                self.discrepancies,
                self.unmatched_carrier_invoices,
                self.unmatched_customer_charges,
            ]
        )

    def iter_discrepancies(self, discrepancy_type: DiscrepancyType | None = None) -> Iterable[Discrepancy]:
        for discrepancy in self.discrepancies:
            if discrepancy_type is None or discrepancy.discrepancy_type == discrepancy_type:
                yield discrepancy


def merge_reports(reports: Sequence[DiscrepancyReport]) -> DiscrepancyReport:
    """Combine reports from independent runs over disjoint key partitions.

    Safe only when no tracking number is split across partitions.
    """
    if not reports:
        raise ValueError("merge_reports requires at least one report")

    discrepancies: list[Discrepancy] = []
    unmatched_carrier: list[str] = []
    unmatched_customer: list[str] = []
    summary = DiscrepancySummary()
    for report in reports:
        discrepancies.extend(report.discrepancies)
        unmatched_carrier.extend(report.unmatched_carrier_invoices)
        unmatched_customer.extend(report.unmatched_customer_charges)
        summary = summary + report.summary

    return DiscrepancyReport(
        generated_at=max(report.generated_at for report in reports),
        total_records_processed=sum(report.total_records_processed for report in reports),
        summary=summary,
        discrepancies=tuple(discrepancies),
        unmatched_carrier_invoices=tuple(unmatched_carrier),
        unmatched_customer_charges=tuple(unmatched_customer),
        is_complete=all(report.is_complete for report in reports),
    )
