"""Domain models for the invoice reconciliation pipeline.

These dataclasses capture the canonical schema for carrier invoice lines,
customer charges and the discrepancies found between them.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class DiscrepancyType(str, Enum):
    """Dimensions along which a matched pair is compared."""

    PRICE = "Price"
    WEIGHT = "Weight"
    ZONE = "Zone"
    FUEL_SURCHARGE = "FuelSurcharge"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


DEFAULT_BATCH_SIZE = 10_000


@dataclass(frozen=True)
class ReconciliationConfig:
    """Tolerances and thresholds applied when comparing a matched pair."""

    price_tolerance_amount: Decimal = Decimal("0.01")
    weight_tolerance_percent: float = 0.05  # fraction of the carrier weight
    high_severity_threshold: Decimal = Decimal("10.00")
    medium_severity_threshold: Decimal = Decimal("2.00")
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self) -> None:
        if self.price_tolerance_amount < 0:
            raise ValueError("price_tolerance_amount must not be negative")
        if self.weight_tolerance_percent < 0:
            raise ValueError("weight_tolerance_percent must not be negative")
        if self.medium_severity_threshold > self.high_severity_threshold:
            raise ValueError("medium_severity_threshold must not exceed high_severity_threshold")
        if self.batch_size < 1:
            raise ValueError("batch_size must be a positive integer")


@dataclass(frozen=True)
class CarrierInvoiceLine:
    """A single line from a carrier invoice."""

    tracking_number: str
    amount: Decimal
    weight: float
    zone: str
    invoice_date: date
    carrier_name: str
    fuel_surcharge: Decimal | None = None


@dataclass(frozen=True)
class CustomerCharge:
    """A charge billed to a customer for one shipment."""

    tracking_number: str
    billed_amount: Decimal
    declared_weight: float
    zone: str
    charge_date: date
    customer_id: str
    applied_fuel_surcharge: Decimal | None = None


@dataclass(frozen=True)
class Discrepancy:
    """A divergence between a carrier line and the customer charge it matched.

    Only the value pair belonging to ``discrepancy_type`` is populated.
    ``financial_impact`` is ``customer - carrier``: positive means the customer
    was billed more than the carrier invoiced.
    """

    tracking_number: str
    discrepancy_type: DiscrepancyType
    description: str
    financial_impact: Decimal
    severity: Severity
    carrier_amount: Decimal | None = None
    customer_billed_amount: Decimal | None = None
    carrier_weight: float | None = None
    customer_declared_weight: float | None = None
    carrier_zone: str | None = None
    customer_zone: str | None = None
    carrier_fuel_surcharge: Decimal | None = None
    customer_fuel_surcharge: Decimal | None = None
