from datetime import date
from decimal import Decimal

import pytest

from invoice_recon.domain.detection import classify_severity, detect_discrepancies
from invoice_recon.domain.models import (
    CarrierInvoiceLine,
    CustomerCharge,
    DiscrepancyType,
    ReconciliationConfig,
    Severity,
)


def make_line(amount: str = "5.99", weight: float = 2.0, zone: str = "NL", fuel: str | None = None) -> CarrierInvoiceLine:
    return CarrierInvoiceLine(
        tracking_number="123ABC",
        amount=Decimal(amount),
        weight=weight,
        zone=zone,
        fuel_surcharge=Decimal(fuel) if fuel is not None else None,
        invoice_date=date(2024, 1, 1),
        carrier_name="SpeedShip",
    )


def make_charge(billed: str = "5.99", weight: float = 2.0, zone: str = "NL", fuel: str | None = None) -> CustomerCharge:
    return CustomerCharge(
        tracking_number="123ABC",
        billed_amount=Decimal(billed),
        declared_weight=weight,
        zone=zone,
        applied_fuel_surcharge=Decimal(fuel) if fuel is not None else None,
        charge_date=date(2024, 1, 1),
        customer_id="CUST001",
    )


@pytest.fixture
def config() -> ReconciliationConfig:
    return ReconciliationConfig()


def test_identical_records_produce_nothing(config):
    assert detect_discrepancies(make_line(), make_charge(), config) == []


def test_price_mismatch(config):
    found = detect_discrepancies(make_line(amount="5.99"), make_charge(billed="6.99"), config)

    assert len(found) == 1
    price = found[0]
    assert price.discrepancy_type == DiscrepancyType.PRICE
    assert price.carrier_amount == Decimal("5.99")
    assert price.customer_billed_amount == Decimal("6.99")
    assert price.financial_impact == Decimal("1.00")
    assert price.severity == Severity.LOW
    assert price.carrier_weight is None
    assert price.carrier_zone is None


def test_undercharge_has_negative_impact(config):
    found = detect_discrepancies(make_line(amount="20.00"), make_charge(billed="5.00"), config)

    assert found[0].financial_impact == Decimal("-15.00")
    assert found[0].severity == Severity.HIGH


def test_price_difference_equal_to_tolerance_is_ignored(config):
    assert detect_discrepancies(make_line(amount="5.99"), make_charge(billed="6.00"), config) == []


def test_price_difference_one_cent_over_tolerance_is_flagged(config):
    found = detect_discrepancies(make_line(amount="5.99"), make_charge(billed="6.01"), config)

    assert [d.discrepancy_type for d in found] == [DiscrepancyType.PRICE]


def test_weight_tolerance_is_relative_to_carrier_weight(config):
    assert detect_discrepancies(make_line(weight=100.0), make_charge(weight=104.0), config) == []

    found = detect_discrepancies(make_line(weight=100.0), make_charge(weight=106.0), config)

    assert len(found) == 1
    weight = found[0]
    assert weight.discrepancy_type == DiscrepancyType.WEIGHT
    assert weight.financial_impact == 0
    assert weight.severity == Severity.MEDIUM
    assert weight.carrier_weight == 100.0
    assert weight.customer_declared_weight == 106.0


def test_zero_carrier_weight_flags_any_difference(config):
    assert detect_discrepancies(make_line(weight=0.0), make_charge(weight=0.0), config) == []
    found = detect_discrepancies(make_line(weight=0.0), make_charge(weight=0.1), config)
    assert [d.discrepancy_type for d in found] == [DiscrepancyType.WEIGHT]


def test_zone_comparison_ignores_case(config):
    assert detect_discrepancies(make_line(zone="nl"), make_charge(zone="NL"), config) == []

    found = detect_discrepancies(make_line(zone="NL"), make_charge(zone="EU"), config)

    assert len(found) == 1
    assert found[0].discrepancy_type == DiscrepancyType.ZONE
    assert found[0].carrier_zone == "NL"
    assert found[0].customer_zone == "EU"
    assert found[0].severity == Severity.MEDIUM
    assert found[0].financial_impact == 0


def test_zone_comparison_does_not_fold_special_casing(config):
    found = detect_discrepancies(make_line(zone="STRASSE"), make_charge(zone="straße"), config)

    assert [d.discrepancy_type for d in found] == [DiscrepancyType.ZONE]


def test_fuel_surcharge_skipped_when_either_side_missing(config):
    assert detect_discrepancies(make_line(fuel="1.00"), make_charge(), config) == []
    assert detect_discrepancies(make_line(), make_charge(fuel="9.00"), config) == []


def test_fuel_surcharge_mismatch(config):
    found = detect_discrepancies(make_line(fuel="0.50"), make_charge(fuel="3.50"), config)

    assert len(found) == 1
    fuel = found[0]
    assert fuel.discrepancy_type == DiscrepancyType.FUEL_SURCHARGE
    assert fuel.financial_impact == Decimal("3.00")
    assert fuel.severity == Severity.MEDIUM
    assert fuel.carrier_fuel_surcharge == Decimal("0.50")
    assert fuel.customer_fuel_surcharge == Decimal("3.50")


def test_all_four_types_in_fixed_order(config):
    found = detect_discrepancies(
        make_line(amount="5.99", weight=2.0, zone="NL", fuel="1.00"),
        make_charge(billed="6.99", weight=1.5, zone="EU", fuel="2.00"),
        config,
    )

    assert [d.discrepancy_type for d in found] == [
        DiscrepancyType.PRICE,
        DiscrepancyType.WEIGHT,
        DiscrepancyType.ZONE,
        DiscrepancyType.FUEL_SURCHARGE,
    ]
    assert {d.tracking_number for d in found} == {"123ABC"}


@pytest.mark.parametrize(
    "amount, expected",
    [
        ("0.50", Severity.LOW),
        ("1.99", Severity.LOW),
        ("2.00", Severity.MEDIUM),
        ("3.00", Severity.MEDIUM),
        ("10.00", Severity.HIGH),
        ("15.00", Severity.HIGH),
    ],
)
def test_classify_severity_with_default_thresholds(config, amount, expected):
    assert classify_severity(Decimal(amount), config) == expected


def test_custom_thresholds_change_price_severity():
    config = ReconciliationConfig(high_severity_threshold=Decimal("1.00"), medium_severity_threshold=Decimal("0.50"))

    found = detect_discrepancies(make_line(amount="5.99"), make_charge(billed="6.99"), config)

    assert found[0].severity == Severity.HIGH
