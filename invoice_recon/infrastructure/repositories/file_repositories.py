"""File-backed repositories for carrier invoices and customer charges."""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Iterator, Sequence

from invoice_recon.domain.models import DEFAULT_BATCH_SIZE, CarrierInvoiceLine, CustomerCharge
from invoice_recon.domain.repositories import (
    CarrierInvoiceRepository,
    CustomerChargeRepository,
)
from invoice_recon.infrastructure.parsing.carrier import carrier_to_records, iter_carrier_records
from invoice_recon.infrastructure.parsing.customer import customer_to_records
from invoice_recon.infrastructure.parsing.utils import detect_format


class FileCarrierInvoiceRepository(CarrierInvoiceRepository):
    def __init__(
        self,
        source: BytesIO | Path | bytes,
        file_format: str | None = None,
        carrier_name: str | None = None,
        chunksize: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._source = source.getvalue() if isinstance(source, BytesIO) else source
        self._format = detect_format(self._source, file_format)
        self._carrier_name = carrier_name
        self._chunksize = chunksize

    def list_invoice_lines(self) -> Sequence[CarrierInvoiceLine]:
        return carrier_to_records(self._source, self._format, carrier_name=self._carrier_name)

    def iter_invoice_lines(self) -> Iterator[CarrierInvoiceLine]:
        return iter_carrier_records(
            self._source,
            self._chunksize,
            self._format,
            carrier_name=self._carrier_name,
        )


class FileCustomerChargeRepository(CustomerChargeRepository):
    def __init__(self, source: BytesIO | Path | bytes, file_format: str | None = None) -> None:
        self._source = source.getvalue() if isinstance(source, BytesIO) else source
        self._format = detect_format(self._source, file_format)

    def list_charges(self) -> Sequence[CustomerCharge]:
        return customer_to_records(self._source, self._format)
