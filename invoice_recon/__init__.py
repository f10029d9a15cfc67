"""Carrier invoice reconciliation toolkit."""
from invoice_recon.application.use_cases import ReconcileInvoicesUseCase, ReconciliationContext
from invoice_recon.domain.index import MatchIndex
from invoice_recon.domain.models import (
    CarrierInvoiceLine,
    CustomerCharge,
    Discrepancy,
    DiscrepancyType,
    ReconciliationConfig,
    Severity,
)
from invoice_recon.domain.results import DiscrepancyReport, DiscrepancySummary, merge_reports
from invoice_recon.domain.services import InvoiceReconciler, ReconciliationRun, RunState

__all__ = [
    "ReconcileInvoicesUseCase",
    "ReconciliationContext",
    "MatchIndex",
    "CarrierInvoiceLine",
    "CustomerCharge",
    "Discrepancy",
    "DiscrepancyType",
    "ReconciliationConfig",
    "Severity",
    "DiscrepancyReport",
    "DiscrepancySummary",
    "merge_reports",
    "InvoiceReconciler",
    "ReconciliationRun",
    "RunState",
]
