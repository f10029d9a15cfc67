import asyncio
import threading
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from invoice_recon.domain.models import CarrierInvoiceLine, CustomerCharge, ReconciliationConfig
from invoice_recon.domain.services import InvoiceReconciler

FIXED_NOW = datetime(2024, 1, 2, tzinfo=timezone.utc)


def make_line(tracking: str, amount: str = "5.00", zone: str = "NL") -> CarrierInvoiceLine:
    return CarrierInvoiceLine(
        tracking_number=tracking,
        amount=Decimal(amount),
        weight=1.0,
        zone=zone,
        invoice_date=date(2024, 1, 1),
        carrier_name="SpeedShip",
    )


def make_charge(tracking: str, billed: str = "5.00") -> CustomerCharge:
    return CustomerCharge(
        tracking_number=tracking,
        billed_amount=Decimal(billed),
        declared_weight=1.0,
        zone="NL",
        charge_date=date(2024, 1, 1),
        customer_id="CUST001",
    )


def sample_inputs() -> tuple[list[CarrierInvoiceLine], list[CustomerCharge]]:
    carrier = [
        make_line("T0", amount="1.00"),
        make_line("T1"),
        make_line("T2", zone="EU"),
        make_line("MISSING"),
        make_line("T4", amount="20.00"),
    ]
    customer = [
        make_charge("T0"),
        make_charge("T1"),
        make_charge("T2"),
        make_charge("T4"),
        make_charge("ORPHAN"),
        make_charge("T0", billed="99.00"),
    ]
    return carrier, customer


async def as_async(items):
    for item in items:
        await asyncio.sleep(0)
        yield item


class CancelAfterChecks:
    """Reports cancellation once ``checks`` pulls from the carrier source have been allowed."""

    def __init__(self, checks: int) -> None:
        self._remaining = checks

    def is_set(self) -> bool:
        if self._remaining <= 0:
            return True
        self._remaining -= 1
        return False


@pytest.fixture
def reconciler() -> InvoiceReconciler:
    return InvoiceReconciler(clock=lambda: FIXED_NOW)


@pytest.mark.parametrize("batch_size", [1, 2, 3, 5, 10_000])
def test_batched_report_matches_whole_collection(reconciler, batch_size):
    carrier, customer = sample_inputs()
    expected = reconciler.reconcile(carrier, customer)

    report = asyncio.run(reconciler.reconcile_in_batches(carrier, customer, batch_size=batch_size))

    assert report == expected


def test_async_sources_are_supported(reconciler):
    carrier, customer = sample_inputs()
    expected = reconciler.reconcile(carrier, customer)

    report = asyncio.run(reconciler.reconcile_in_batches(as_async(carrier), as_async(customer), batch_size=2))

    assert report == expected
    assert report.unmatched_carrier_invoices == ("MISSING",)
    assert report.unmatched_customer_charges == ("ORPHAN",)


@pytest.mark.parametrize("batch_size", [1, 2, 4])
def test_sync_stream_matches_whole_collection(reconciler, batch_size):
    carrier, customer = sample_inputs()

    report = reconciler.reconcile_stream(iter(carrier), iter(customer), batch_size=batch_size)

    assert report == reconciler.reconcile(carrier, customer)


def test_default_batch_size_comes_from_config():
    reconciler = InvoiceReconciler(ReconciliationConfig(batch_size=2), clock=lambda: FIXED_NOW)
    carrier, customer = sample_inputs()

    report = reconciler.reconcile_stream(carrier, customer, cancellation=CancelAfterChecks(2))

    assert report.total_records_processed == 2


def test_cancellation_before_first_batch(reconciler):
    carrier, customer = sample_inputs()
    event = asyncio.Event()
    event.set()

    report = asyncio.run(reconciler.reconcile_in_batches(carrier, customer, batch_size=2, cancellation=event))

    assert not report.is_complete
    assert report.total_records_processed == 0
    assert report.discrepancies == ()
    assert report.unmatched_customer_charges == ("T0", "T1", "T2", "T4", "ORPHAN")


def test_cancellation_keeps_processed_prefix(reconciler):
    carrier, customer = sample_inputs()

    report = asyncio.run(
        reconciler.reconcile_in_batches(carrier, customer, batch_size=2, cancellation=CancelAfterChecks(2))
    )

    assert not report.is_complete
    assert report.total_records_processed == 2
    assert [d.tracking_number for d in report.discrepancies] == ["T0"]
    assert report.unmatched_carrier_invoices == ()
    assert report.unmatched_customer_charges == ("T2", "T4", "ORPHAN")
    assert report.summary.total_financial_impact == Decimal("4.00")


def test_lines_pulled_before_cancellation_are_all_processed(reconciler):
    carrier, customer = sample_inputs()
    pulled: list[str] = []

    async def scenario():
        event = asyncio.Event()

        async def source():
            for position, line in enumerate(carrier):
                if position == 3:
                    event.set()
                pulled.append(line.tracking_number)
                yield line

        return await reconciler.reconcile_in_batches(source(), customer, batch_size=2, cancellation=event)

    report = asyncio.run(scenario())

    assert not report.is_complete
    assert pulled == ["T0", "T1", "T2", "MISSING"]
    assert report.total_records_processed == len(pulled)
    assert report.unmatched_carrier_invoices == ("MISSING",)
    assert report.unmatched_customer_charges == ("T4", "ORPHAN")


def test_partial_batch_is_processed_when_cancelled_mid_gather(reconciler):
    carrier, customer = sample_inputs()
    pulled: list[str] = []

    async def source():
        for line in carrier:
            pulled.append(line.tracking_number)
            yield line

    report = asyncio.run(
        reconciler.reconcile_in_batches(source(), customer, batch_size=4, cancellation=CancelAfterChecks(1))
    )

    assert not report.is_complete
    assert pulled == ["T0"]
    assert report.total_records_processed == 1
    assert [d.tracking_number for d in report.discrepancies] == ["T0"]


def test_cancel_while_source_is_idle_returns_promptly(reconciler):
    carrier, customer = sample_inputs()

    async def scenario():
        queue: asyncio.Queue = asyncio.Queue()
        for line in carrier[:3]:
            queue.put_nowait(line)
        idle = asyncio.Event()
        event = asyncio.Event()

        async def source():
            while True:
                if queue.empty():
                    idle.set()
                yield await queue.get()

        task = asyncio.create_task(
            reconciler.reconcile_in_batches(source(), customer, batch_size=10, cancellation=event)
        )
        await idle.wait()
        event.set()
        report = await asyncio.wait_for(task, 1.0)
        return report, queue

    report, queue = asyncio.run(scenario())

    assert not report.is_complete
    assert report.total_records_processed == 3
    assert report.unmatched_customer_charges == ("T4", "ORPHAN")
    assert queue.empty()


def test_sync_stream_honours_threading_event(reconciler):
    carrier, customer = sample_inputs()
    event = threading.Event()
    pulled: list[str] = []

    def source():
        for position, line in enumerate(carrier):
            if position == 2:
                event.set()
            pulled.append(line.tracking_number)
            yield line

    report = reconciler.reconcile_stream(source(), customer, batch_size=2, cancellation=event)

    assert not report.is_complete
    assert pulled == ["T0", "T1", "T2"]
    assert report.total_records_processed == 3


def test_async_run_honours_threading_event(reconciler):
    carrier, customer = sample_inputs()
    event = threading.Event()
    pulled: list[str] = []

    async def source():
        for position, line in enumerate(carrier):
            if position == 1:
                event.set()
            pulled.append(line.tracking_number)
            yield line

    report = asyncio.run(reconciler.reconcile_in_batches(source(), customer, batch_size=3, cancellation=event))

    assert not report.is_complete
    assert pulled == ["T0", "T1"]
    assert report.total_records_processed == 2


def test_signal_raised_as_source_ends_leaves_report_complete(reconciler):
    carrier, customer = sample_inputs()
    event = threading.Event()

    def source():
        yield from carrier
        event.set()

    report = reconciler.reconcile_stream(source(), customer, batch_size=5, cancellation=event)

    assert report.is_complete
    assert report.total_records_processed == 5


@pytest.mark.parametrize("batch_size", [0, -3])
def test_invalid_batch_size_rejected(reconciler, batch_size):
    carrier, customer = sample_inputs()

    with pytest.raises(ValueError):
        reconciler.reconcile_stream(carrier, customer, batch_size=batch_size)
    with pytest.raises(ValueError):
        asyncio.run(reconciler.reconcile_in_batches(carrier, customer, batch_size=batch_size))
