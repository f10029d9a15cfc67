"""Customer charge parser producing canonical charge records."""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Sequence

import pandas as pd

from invoice_recon.config import CUSTOMER_COLUMN_ALIASES
from invoice_recon.domain.models import CustomerCharge
from invoice_recon.infrastructure.parsing.utils import (
    normalize_columns,
    parse_date_column,
    parse_decimal,
    parse_float,
    parse_optional_decimal,
    read_frame,
)

REQUIRED_COLUMNS = ("tracking_number", "billed_amount", "declared_weight", "zone")
DEFAULT_SHEET_NAME = "Charges"


def normalize_customer(df: pd.DataFrame) -> pd.DataFrame:
    return normalize_columns(df, CUSTOMER_COLUMN_ALIASES, REQUIRED_COLUMNS, label="Customer charge")


def customer_to_records(source: BytesIO | Path | bytes, file_format: str | None = None) -> Sequence[CustomerCharge]:
    work = normalize_customer(read_frame(source, file_format, sheet_name=DEFAULT_SHEET_NAME))
    charge_dates = parse_date_column(work["charge_date"])

    records: list[CustomerCharge] = []
    for row, charge_date in zip(work.itertuples(index=False), charge_dates):
        records.append(
            CustomerCharge(
                tracking_number=row.tracking_number,
                billed_amount=parse_decimal(row.billed_amount),
                declared_weight=parse_float(row.declared_weight),
                zone=row.zone,
                applied_fuel_surcharge=parse_optional_decimal(row.applied_fuel_surcharge),
                charge_date=charge_date,
                customer_id=str(row.customer_id).strip(),
            )
        )
    return records
