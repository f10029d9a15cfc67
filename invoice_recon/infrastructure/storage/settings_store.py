"""Storage helpers for reconciliation tolerance overrides."""
from __future__ import annotations

from dataclasses import asdict, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
import json
import logging
from typing import Any

from invoice_recon.domain.models import ReconciliationConfig

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path(__file__).resolve().parents[3] / "reconciliation_settings.json"

_DECIMAL_FIELDS = {"price_tolerance_amount", "high_severity_threshold", "medium_severity_threshold"}
_FIELD_NAMES = {f.name for f in fields(ReconciliationConfig)}


def _coerce(name: str, value: Any) -> Any:
    try:
        if name in _DECIMAL_FIELDS:
            return Decimal(str(value).strip())
        if name == "batch_size":
            return int(value)
        return float(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {name}: {value!r}") from exc


def _normalize_settings(raw: dict[str, Any] | None) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    if not isinstance(raw, dict):
        return normalized
    for key, value in raw.items():
        if key is None or value is None:
            continue
        name = str(key).strip().lower().replace("-", "_").replace(" ", "_")
        if name not in _FIELD_NAMES:
            continue
        normalized[name] = _coerce(name, value)
    return normalized


def load_settings(path: Path | None = None) -> ReconciliationConfig:
    override_path = path or DEFAULT_PATH
    if not override_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Settings file not found: {override_path}")
        return ReconciliationConfig()
    try:
        data = json.loads(override_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return ReconciliationConfig()
    return ReconciliationConfig(**_normalize_settings(data))


def load_default_settings() -> ReconciliationConfig:
    """Settings from DEFAULT_PATH; an unusable override falls back to defaults."""
    try:
        return load_settings()
    except ValueError as exc:
        logger.warning(f"Ignoring settings in {DEFAULT_PATH}: {exc}")
        return ReconciliationConfig()


def save_settings(config: ReconciliationConfig, path: Path | None = None) -> ReconciliationConfig:
    override_path = path or DEFAULT_PATH
    payload = {name: str(value) if isinstance(value, Decimal) else value for name, value in asdict(config).items()}
    override_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )
    return config
