"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from typing import Iterator, Protocol, Sequence

from .models import CarrierInvoiceLine, CustomerCharge


class CarrierInvoiceRepository(Protocol):
    """Provides invoice lines issued by a carrier."""

    def list_invoice_lines(self) -> Sequence[CarrierInvoiceLine]:
        ...

    def iter_invoice_lines(self) -> Iterator[CarrierInvoiceLine]:
        ...


class CustomerChargeRepository(Protocol):
    """Provides charges billed to customers."""

    def list_charges(self) -> Sequence[CustomerCharge]:
        ...
