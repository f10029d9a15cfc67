"""Comparison rules applied to a matched carrier line / customer charge pair."""
from __future__ import annotations

from decimal import Decimal

from .models import (
    CarrierInvoiceLine,
    CustomerCharge,
    Discrepancy,
    DiscrepancyType,
    ReconciliationConfig,
    Severity,
)

ZERO = Decimal("0")


def classify_severity(amount: Decimal, config: ReconciliationConfig) -> Severity:
    if amount >= config.high_severity_threshold:
        return Severity.HIGH
    if amount >= config.medium_severity_threshold:
        return Severity.MEDIUM
    return Severity.LOW


def detect_discrepancies(
    carrier_line: CarrierInvoiceLine,
    customer_charge: CustomerCharge,
    config: ReconciliationConfig,
) -> list[Discrepancy]:
    """Compare one matched pair and return its discrepancies.

    At most one discrepancy per type is produced, in the order price, weight,
    zone, fuel surcharge. Types are independent of each other.
    """
    found: list[Discrepancy] = []
    tracking_number = carrier_line.tracking_number

    if abs(carrier_line.amount - customer_charge.billed_amount) > config.price_tolerance_amount:
        impact = customer_charge.billed_amount - carrier_line.amount
        found.append(
            Discrepancy(
                tracking_number=tracking_number,
                discrepancy_type=DiscrepancyType.PRICE,
                description=(
                    f"Price mismatch: carrier charged {carrier_line.amount}, "
                    f"customer billed {customer_charge.billed_amount}"
                ),
                financial_impact=impact,
                severity=classify_severity(abs(impact), config),
                carrier_amount=carrier_line.amount,
                customer_billed_amount=customer_charge.billed_amount,
            )
        )

    weight_tolerance = carrier_line.weight * config.weight_tolerance_percent
    if abs(carrier_line.weight - customer_charge.declared_weight) > weight_tolerance:
        found.append(
            Discrepancy(
                tracking_number=tracking_number,
                discrepancy_type=DiscrepancyType.WEIGHT,
                description=(
                    f"Weight mismatch: carrier recorded {carrier_line.weight}kg, "
                    f"customer declared {customer_charge.declared_weight}kg"
                ),
                # no monetary delta without re-pricing
                financial_impact=ZERO,
                severity=Severity.MEDIUM,
                carrier_weight=carrier_line.weight,
                customer_declared_weight=customer_charge.declared_weight,
            )
        )

    if carrier_line.zone.lower() != customer_charge.zone.lower():
        found.append(
            Discrepancy(
                tracking_number=tracking_number,
                discrepancy_type=DiscrepancyType.ZONE,
                description=(
                    f"Zone mismatch: carrier zone '{carrier_line.zone}', "
                    f"customer zone '{customer_charge.zone}'"
                ),
                financial_impact=ZERO,
                severity=Severity.MEDIUM,
                carrier_zone=carrier_line.zone,
                customer_zone=customer_charge.zone,
            )
        )

    carrier_fuel = carrier_line.fuel_surcharge
    customer_fuel = customer_charge.applied_fuel_surcharge
    if carrier_fuel is not None and customer_fuel is not None:
        if abs(carrier_fuel - customer_fuel) > config.price_tolerance_amount:
            impact = customer_fuel - carrier_fuel
            found.append(
                Discrepancy(
                    tracking_number=tracking_number,
                    discrepancy_type=DiscrepancyType.FUEL_SURCHARGE,
                    description=f"Fuel surcharge mismatch: carrier {carrier_fuel}, customer {customer_fuel}",
                    financial_impact=impact,
                    severity=classify_severity(abs(impact), config),
                    carrier_fuel_surcharge=carrier_fuel,
                    customer_fuel_surcharge=customer_fuel,
                )
            )

    return found
