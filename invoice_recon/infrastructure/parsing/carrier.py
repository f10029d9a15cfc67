"""Carrier invoice parser producing canonical invoice lines."""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Iterator, Sequence

import pandas as pd

from invoice_recon.config import CARRIER_COLUMN_ALIASES
from invoice_recon.domain.models import CarrierInvoiceLine
from invoice_recon.infrastructure.parsing.utils import (
    iter_frames,
    normalize_columns,
    parse_date_column,
    parse_decimal,
    parse_float,
    parse_optional_decimal,
    read_frame,
)

REQUIRED_COLUMNS = ("tracking_number", "amount", "weight", "zone")
DEFAULT_SHEET_NAME = "Invoice"


def normalize_carrier(df: pd.DataFrame) -> pd.DataFrame:
    return normalize_columns(df, CARRIER_COLUMN_ALIASES, REQUIRED_COLUMNS, label="Carrier invoice")


def carrier_frame_to_records(df: pd.DataFrame, carrier_name: str | None = None) -> list[CarrierInvoiceLine]:
    work = normalize_carrier(df)
    invoice_dates = parse_date_column(work["invoice_date"])

    records: list[CarrierInvoiceLine] = []
    for row, invoice_date in zip(work.itertuples(index=False), invoice_dates):
        records.append(
            CarrierInvoiceLine(
                tracking_number=row.tracking_number,
                amount=parse_decimal(row.amount),
                weight=parse_float(row.weight),
                zone=row.zone,
                fuel_surcharge=parse_optional_decimal(row.fuel_surcharge),
                invoice_date=invoice_date,
                carrier_name=carrier_name or str(row.carrier_name).strip(),
            )
        )
    return records


def carrier_to_records(
    source: BytesIO | Path | bytes,
    file_format: str | None = None,
    carrier_name: str | None = None,
) -> Sequence[CarrierInvoiceLine]:
    dataframe = read_frame(source, file_format, sheet_name=DEFAULT_SHEET_NAME)
    return carrier_frame_to_records(dataframe, carrier_name=carrier_name)


def iter_carrier_records(
    source: BytesIO | Path | bytes,
    chunksize: int,
    file_format: str | None = None,
    carrier_name: str | None = None,
) -> Iterator[CarrierInvoiceLine]:
    for chunk in iter_frames(source, chunksize, file_format, sheet_name=DEFAULT_SHEET_NAME):
        yield from carrier_frame_to_records(chunk, carrier_name=carrier_name)
