"""Shared parsing utilities for CSV / Excel ingestion."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path
from typing import Iterator, Mapping, Sequence

import pandas as pd

from invoice_recon.config import SETTINGS

CSV_SUFFIXES = {".csv", ".txt"}
EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


def ensure_bytes(source: BytesIO | Path | bytes) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, Path):
        return source.read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def detect_format(source: BytesIO | Path | bytes, file_format: str | None = None) -> str:
    if file_format:
        fmt = file_format.lower().lstrip(".")
    elif isinstance(source, Path):
        suffix = source.suffix.lower()
        if suffix in CSV_SUFFIXES:
            fmt = "csv"
        elif suffix in EXCEL_SUFFIXES:
            fmt = "excel"
        else:
            raise ValueError(f"Cannot infer file format from {source.name!r}")
    else:
        fmt = "csv"
    if fmt in {"xlsx", "xlsm"}:
        fmt = "excel"
    if fmt not in {"csv", "excel"}:
        raise ValueError(f"Unsupported file format: {file_format!r}")
    return fmt


def parse_decimal(value: object) -> Decimal:
    if value is None:
        return Decimal("0")
    s = str(value).strip()
    if not s:
        return Decimal("0")
    if s.upper() == "NAN":
        return Decimal("0")
    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    for ch in [",", "$", "€", "£", " "]:
        s = s.replace(ch, "")
    try:
        result = SETTINGS.decimal_context.create_decimal(s)
    except InvalidOperation:
        return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    if negative:
        result = -result
    return result


def parse_optional_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    s = str(value).strip()
    if not s or s.upper() == "NAN":
        return None
    return parse_decimal(s)


def parse_float(value: object) -> float:
    s = "" if value is None else str(value).strip().replace(",", "")
    if not s:
        return 0.0
    try:
        return float(s)
    except ValueError:
        return 0.0


def parse_date_column(series: pd.Series) -> list[date]:
    fallback = datetime.now(SETTINGS.timezone).date()
    parsed = pd.to_datetime(series, errors="coerce")
    return [fallback if pd.isna(value) else value.date() for value in parsed]


def _list_sheets(source: BytesIO) -> list[str]:
    xls = pd.ExcelFile(source, engine="openpyxl")
    return xls.sheet_names


def _pick_sheet(source: BytesIO, preferred: str | None) -> str:
    sheets = _list_sheets(source)
    if not sheets:
        raise ValueError("Workbook has no sheets")
    if preferred is None:
        return sheets[0]
    if preferred in sheets:
        return preferred
    lower_map = {name.lower(): name for name in sheets}
    if preferred.lower() in lower_map:
        return lower_map[preferred.lower()]
    for name in sheets:
        if preferred.lower() in name.lower():
            return name
    return sheets[0]


def read_frame(source: BytesIO | Path | bytes, file_format: str | None = None, sheet_name: str | None = None) -> pd.DataFrame:
    fmt = detect_format(source, file_format)
    data = BytesIO(ensure_bytes(source))
    if fmt == "excel":
        sheet = _pick_sheet(data, sheet_name)
        data.seek(0)
        return pd.read_excel(
            data,
            sheet_name=sheet,
            engine="openpyxl",
            dtype=str,
            keep_default_na=False,
        )
    return pd.read_csv(data, dtype=str, keep_default_na=False)


def iter_frames(
    source: BytesIO | Path | bytes,
    chunksize: int,
    file_format: str | None = None,
    sheet_name: str | None = None,
) -> Iterator[pd.DataFrame]:
    """Yield the source in row chunks; CSV paths are read lazily from disk."""
    fmt = detect_format(source, file_format)
    if fmt == "excel":
        yield read_frame(source, fmt, sheet_name=sheet_name)
        return
    handle = source if isinstance(source, Path) else BytesIO(ensure_bytes(source))
    with pd.read_csv(handle, dtype=str, keep_default_na=False, chunksize=chunksize) as reader:
        yield from reader


def normalize_columns(
    df: pd.DataFrame,
    aliases: Mapping[str, Sequence[str]],
    required: Sequence[str],
    label: str,
) -> pd.DataFrame:
    """Rename known headers to canonical names and add blank optional columns."""
    lookup = {str(column).strip().lower(): column for column in df.columns}
    renames: dict[object, str] = {}
    for canonical, candidates in aliases.items():
        for candidate in candidates:
            original = lookup.get(candidate)
            if original is not None and original not in renames:
                renames[original] = canonical
                break

    missing = [name for name in required if name not in renames.values()]
    if missing:
        raise ValueError(f"{label} file is missing required column(s): {', '.join(missing)}")

    work = df[list(renames)].rename(columns=renames)
    for canonical in aliases:
        if canonical not in work.columns:
            work[canonical] = ""
    work = work.fillna("")
    for column in ("tracking_number", "zone"):
        work[column] = work[column].astype(str).str.strip()
    return work
