"""Application services orchestrating the invoice reconciliation workflow."""
from __future__ import annotations

from dataclasses import dataclass

from invoice_recon.domain.repositories import (
    CarrierInvoiceRepository,
    CustomerChargeRepository,
)
from invoice_recon.domain.results import DiscrepancyReport
from invoice_recon.domain.services import CancellationSignal, InvoiceReconciler


@dataclass(slots=True)
class ReconciliationContext:
    carrier_repository: CarrierInvoiceRepository
    customer_repository: CustomerChargeRepository
    reconciler: InvoiceReconciler


class ReconcileInvoicesUseCase:
    def __init__(self, context: ReconciliationContext) -> None:
        self._context = context

    def execute(self) -> DiscrepancyReport:
        carrier_invoices = self._context.carrier_repository.list_invoice_lines()
        customer_charges = self._context.customer_repository.list_charges()
        return self._context.reconciler.reconcile(carrier_invoices, customer_charges)

    def execute_in_batches(
        self,
        batch_size: int | None = None,
        cancellation: CancellationSignal | None = None,
    ) -> DiscrepancyReport:
        return self._context.reconciler.reconcile_stream(
            self._context.carrier_repository.iter_invoice_lines(),
            self._context.customer_repository.list_charges(),
            batch_size=batch_size,
            cancellation=cancellation,
        )
