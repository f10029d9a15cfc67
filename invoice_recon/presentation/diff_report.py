"""Report generators for invoice discrepancies."""
from __future__ import annotations

import csv
import html
import io
from decimal import Decimal
from enum import Enum
from typing import Any, Sequence

from invoice_recon.domain.models import Discrepancy
from invoice_recon.domain.results import DiscrepancyReport

ROW_FIELDS = [
    "tracking_number",
    "type",
    "severity",
    "financial_impact",
    "carrier_value",
    "customer_value",
    "description",
]


def _value_pair(item: Discrepancy) -> tuple[object, object]:
    for carrier, customer in (
        (item.carrier_amount, item.customer_billed_amount),
        (item.carrier_weight, item.customer_declared_weight),
        (item.carrier_zone, item.customer_zone),
        (item.carrier_fuel_surcharge, item.customer_fuel_surcharge),
    ):
        if carrier is not None or customer is not None:
            return carrier, customer
    return None, None


def discrepancies_to_rows(discrepancies: Sequence[Discrepancy]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for item in discrepancies:
        carrier_value, customer_value = _value_pair(item)
        rows.append(
            {
                "tracking_number": item.tracking_number,
                "type": item.discrepancy_type.value,
                "severity": item.severity.value,
                "financial_impact": str(item.financial_impact),
                "carrier_value": "" if carrier_value is None else str(carrier_value),
                "customer_value": "" if customer_value is None else str(customer_value),
                "description": item.description,
            }
        )
    return rows


def render_csv(discrepancies: Sequence[Discrepancy]) -> bytes:
    rows = discrepancies_to_rows(discrepancies)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=ROW_FIELDS)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def render_html(report: DiscrepancyReport) -> str:
    rows = discrepancies_to_rows(report.discrepancies)
    if not rows:
        return "<p>No discrepancies detected.</p>"
    header = "".join(f"<th>{col}</th>" for col in ROW_FIELDS)
    body_parts = []
    for row in rows:
        body_parts.append("<tr>" + "".join(f"<td>{html.escape(value)}</td>" for value in row.values()) + "</tr>")
    body_html = "".join(body_parts)
    table = f"<table><thead><tr>{header}</tr></thead><tbody>{body_html}</tbody></table>"
    if not report.is_complete:
        return "<p><strong>Partial report: reconciliation was cancelled.</strong></p>" + table
    return table


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def report_to_dict(report: DiscrepancyReport) -> dict[str, Any]:
    """JSON-ready representation; money is rendered as strings to keep precision."""
    summary = report.summary
    return {
        "generated_at": report.generated_at.isoformat(),
        "is_complete": report.is_complete,
        "total_records_processed": report.total_records_processed,
        "total_discrepancies_found": report.total_discrepancies_found,
        "summary": {name: _plain(getattr(summary, name)) for name in summary.__dataclass_fields__},
        "discrepancies": [
            {name: _plain(getattr(item, name)) for name in item.__dataclass_fields__}
            for item in report.discrepancies
        ],
        "unmatched_carrier_invoices": list(report.unmatched_carrier_invoices),
        "unmatched_customer_charges": list(report.unmatched_customer_charges),
    }
