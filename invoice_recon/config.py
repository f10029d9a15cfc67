"""Central configuration for the invoice reconciliation package."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone
from decimal import Context
from pathlib import Path

from invoice_recon.domain.models import ReconciliationConfig
from invoice_recon.infrastructure.storage.settings_store import DEFAULT_PATH, load_default_settings

# Header aliases accepted by the file parsers, keyed by canonical column name.
CARRIER_COLUMN_ALIASES = {
    "tracking_number": ("tracking number", "trackingnumber", "tracking_number", "tracking no"),
    "amount": ("amount", "invoice amount", "carrier amount"),
    "weight": ("weight", "weight (kg)", "weight_kg"),
    "zone": ("zone",),
    "fuel_surcharge": ("fuel surcharge", "fuelsurcharge", "fuel_surcharge"),
    "invoice_date": ("invoice date", "invoicedate", "invoice_date", "date"),
    "carrier_name": ("carrier", "carrier name", "carriername", "carrier_name"),
}

CUSTOMER_COLUMN_ALIASES = {
    "tracking_number": ("tracking number", "trackingnumber", "tracking_number", "tracking no"),
    "billed_amount": ("billed amount", "billedamount", "billed_amount", "amount"),
    "declared_weight": ("declared weight", "declaredweight", "declared_weight", "weight"),
    "zone": ("zone",),
    "applied_fuel_surcharge": (
        "applied fuel surcharge",
        "appliedfuelsurcharge",
        "applied_fuel_surcharge",
        "fuel surcharge",
    ),
    "charge_date": ("charge date", "chargedate", "charge_date", "date"),
    "customer_id": ("customer id", "customerid", "customer_id", "customer"),
}


@dataclass(slots=True, frozen=True)
class Settings:
    decimal_context: Context
    timezone: timezone.__class__
    reconciliation: ReconciliationConfig
    settings_path: Path


SETTINGS = Settings(
    decimal_context=Context(prec=28),
    timezone=timezone.utc,
    reconciliation=load_default_settings(),
    settings_path=DEFAULT_PATH,
)
