"""Command-line entrypoint for invoice reconciliation."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from invoice_recon.application.use_cases import ReconcileInvoicesUseCase, ReconciliationContext
from invoice_recon.domain.services import InvoiceReconciler
from invoice_recon.infrastructure.repositories.file_repositories import (
    FileCarrierInvoiceRepository,
    FileCustomerChargeRepository,
)
from invoice_recon.infrastructure.storage.settings_store import load_default_settings, load_settings
from invoice_recon.presentation.diff_report import render_csv, render_html, report_to_dict


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile carrier invoices against customer charges")
    parser.add_argument("carrier", type=Path, help="Path to carrier invoice file (CSV or Excel)")
    parser.add_argument("customer", type=Path, help="Path to customer charge file (CSV or Excel)")
    parser.add_argument("--config", type=Path, help="JSON file with tolerance overrides")
    parser.add_argument("--batch-size", type=int, help="Stream carrier invoices in batches of this size")
    parser.add_argument("--carrier-name", type=str, help="Carrier name when the file has no carrier column")
    parser.add_argument("--csv", type=Path, help="Write discrepancies to this CSV file")
    parser.add_argument("--html", type=Path, help="Write an HTML discrepancy table to this file")
    parser.add_argument("--json", type=Path, help="Write the full report as JSON to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_settings(args.config) if args.config else load_default_settings()
        context = ReconciliationContext(
            carrier_repository=FileCarrierInvoiceRepository(
                args.carrier,
                carrier_name=args.carrier_name,
                chunksize=args.batch_size or config.batch_size,
            ),
            customer_repository=FileCustomerChargeRepository(args.customer),
            reconciler=InvoiceReconciler(config),
        )
        use_case = ReconcileInvoicesUseCase(context)
        if args.batch_size:
            report = use_case.execute_in_batches(batch_size=args.batch_size)
        else:
            report = use_case.execute()
    except (FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.csv:
        args.csv.write_bytes(render_csv(report.discrepancies))
    if args.html:
        args.html.write_text(render_html(report), encoding="utf-8")
    if args.json:
        args.json.write_text(json.dumps(report_to_dict(report), indent=2), encoding="utf-8")

    print("Reconciliation Summary")
    print("======================")
    summary = report.summary
    print(f"Carrier invoices processed: {report.total_records_processed}")
    print(f"Price discrepancies: {summary.price_discrepancies}")
    print(f"Weight discrepancies: {summary.weight_discrepancies}")
    print(f"Zone discrepancies: {summary.zone_discrepancies}")
    print(f"Fuel surcharge discrepancies: {summary.fuel_surcharge_discrepancies}")
    print(
        f"Severity: {summary.high_severity_count} high, "
        f"{summary.medium_severity_count} medium, {summary.low_severity_count} low"
    )
    print(f"Total financial impact: {summary.total_financial_impact}")
    print(f"Overcharged: {summary.total_overcharged}  Undercharged: {summary.total_undercharged}")
    print(f"Unmatched carrier invoices: {len(report.unmatched_carrier_invoices)}")
    print(f"Unmatched customer charges: {len(report.unmatched_customer_charges)}")

    if report.discrepancies:
        print("\nDiscrepancies detected:")
        for discrepancy in report.discrepancies:
            print(
                f"- {discrepancy.discrepancy_type.value} ({discrepancy.severity.value}) "
                f"for {discrepancy.tracking_number}: {discrepancy.description}"
            )
    if report.unmatched_carrier_invoices:
        print("\nCarrier invoices without a customer charge:")
        for tracking_number in report.unmatched_carrier_invoices:
            print(f"- {tracking_number}")
    if report.unmatched_customer_charges:
        print("\nCustomer charges without a carrier invoice:")
        for tracking_number in report.unmatched_customer_charges:
            print(f"- {tracking_number}")
    if report.has_issues():
        return 1

    print("\nNo discrepancies detected.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
