"""Domain services orchestrating a reconciliation run."""
from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import aclosing
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Callable, Iterable, Iterator, Protocol, Sequence, TypeVar, Union

from .detection import detect_discrepancies
from .index import MatchIndex, MatchIndexBuilder
from .models import CarrierInvoiceLine, CustomerCharge, Discrepancy, ReconciliationConfig
from .results import DiscrepancyReport
from .summary import summarize

logger = logging.getLogger(__name__)

T = TypeVar("T")
Source = Union[Iterable[T], AsyncIterable[T]]


class CancellationSignal(Protocol):
    """Anything exposing ``is_set()``, e.g. ``asyncio.Event`` or ``threading.Event``."""

    def is_set(self) -> bool:
        ...


class RunState(str, Enum):
    IDLE = "idle"
    INDEX_BUILT = "index_built"
    PROCESSING = "processing"
    CANCELLED = "cancelled"
    FINALIZING = "finalizing"
    DONE = "done"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReconciliationRun:
    """State for a single pass over carrier invoices against a customer index.

    The run owns the growing discrepancy list and the set of visited tracking
    numbers. ``finalize`` turns them into an immutable report exactly once.
    """

    def __init__(self, config: ReconciliationConfig, clock: Callable[[], datetime] = _utcnow) -> None:
        self._config = config
        self._generated_at = clock()
        self._state = RunState.IDLE
        self._index: MatchIndex | None = None
        self._processed_tracking_numbers: set[str] = set()
        self._discrepancies: list[Discrepancy] = []
        self._unmatched_carrier_invoices: list[str] = []
        self._records_processed = 0
        self._batches_processed = 0

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def batches_processed(self) -> int:
        return self._batches_processed

    def build_index(self, customer_charges: Iterable[CustomerCharge] | MatchIndex) -> MatchIndex:
        if isinstance(customer_charges, MatchIndex):
            index = customer_charges
        else:
            index = MatchIndex.build(customer_charges)
        self.attach_index(index)
        return index

    def attach_index(self, index: MatchIndex) -> None:
        self._require(RunState.IDLE)
        self._index = index
        self._state = RunState.INDEX_BUILT
        if index.duplicates_dropped:
            logger.debug(f"Dropped {index.duplicates_dropped} customer charges with repeated tracking numbers")

    def process_batch(self, batch: Sequence[CarrierInvoiceLine]) -> None:
        self._require(RunState.INDEX_BUILT, RunState.PROCESSING)
        self._state = RunState.PROCESSING
        index = self._attached_index()

        unmatched = 0
        for line in batch:
            self._processed_tracking_numbers.add(line.tracking_number)
            charge = index.get(line.tracking_number)
            if charge is None:
                self._unmatched_carrier_invoices.append(line.tracking_number)
                unmatched += 1
                continue
            self._discrepancies.extend(detect_discrepancies(line, charge, self._config))

        self._records_processed += len(batch)
        self._batches_processed += 1
        if unmatched:
            logger.warning(f"{unmatched} of {len(batch)} carrier invoices had no matching customer charge")

    def cancel(self) -> None:
        self._require(RunState.INDEX_BUILT, RunState.PROCESSING)
        self._state = RunState.CANCELLED
        logger.info(f"Reconciliation cancelled after {self._batches_processed} batches")

    def finalize(self) -> DiscrepancyReport:
        self._require(RunState.INDEX_BUILT, RunState.PROCESSING, RunState.CANCELLED)
        is_complete = self._state is not RunState.CANCELLED
        self._state = RunState.FINALIZING

        unmatched_customer = [
            tracking_number
            for tracking_number in self._attached_index()
            if tracking_number not in self._processed_tracking_numbers
        ]
        report = DiscrepancyReport(
            generated_at=self._generated_at,
            total_records_processed=self._records_processed,
            summary=summarize(self._discrepancies),
            discrepancies=tuple(self._discrepancies),
            unmatched_carrier_invoices=tuple(self._unmatched_carrier_invoices),
            unmatched_customer_charges=tuple(unmatched_customer),
            is_complete=is_complete,
        )
        self._state = RunState.DONE
        return report

    def _attached_index(self) -> MatchIndex:
        if self._index is None:
            raise RuntimeError("Run has no match index attached")
        return self._index

    def _require(self, *allowed: RunState) -> None:
        if self._state not in allowed:
            expected = ", ".join(state.value for state in allowed)
            raise RuntimeError(f"Run is {self._state.value}; expected one of: {expected}")


class InvoiceReconciler:
    """Reconciles carrier invoice lines against customer charges."""

    def __init__(
        self,
        config: ReconciliationConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or ReconciliationConfig()
        self._clock = clock

    @property
    def config(self) -> ReconciliationConfig:
        return self._config

    def reconcile(
        self,
        carrier_invoices: Sequence[CarrierInvoiceLine],
        customer_charges: Iterable[CustomerCharge] | MatchIndex,
    ) -> DiscrepancyReport:
        logger.info(f"Starting invoice reconciliation: {len(carrier_invoices)} carrier invoices")
        run = ReconciliationRun(self._config, clock=self._clock)
        index = run.build_index(customer_charges)
        logger.info(f"Indexed {len(index)} customer charges")
        run.process_batch(carrier_invoices)
        report = run.finalize()
        self._log_completion(report)
        return report

    def reconcile_stream(
        self,
        carrier_invoices: Iterable[CarrierInvoiceLine],
        customer_charges: Iterable[CustomerCharge] | MatchIndex,
        batch_size: int | None = None,
        cancellation: CancellationSignal | None = None,
    ) -> DiscrepancyReport:
        """Synchronous batched run over plain iterables."""
        size = self._resolve_batch_size(batch_size)
        logger.info(f"Starting batch reconciliation with batch size {size}")
        run = ReconciliationRun(self._config, clock=self._clock)
        run.build_index(customer_charges)

        feed = _BatchFeed(size, cancellation)
        for batch in feed.batches(carrier_invoices):
            logger.info(f"Processing batch {run.batches_processed + 1} with {len(batch)} records")
            run.process_batch(batch)
        if feed.cancelled:
            run.cancel()

        report = run.finalize()
        self._log_completion(report, run.batches_processed)
        return report

    async def reconcile_in_batches(
        self,
        carrier_invoices: Source[CarrierInvoiceLine],
        customer_charges: Source[CustomerCharge],
        batch_size: int | None = None,
        cancellation: CancellationSignal | None = None,
    ) -> DiscrepancyReport:
        """Batched run over sync or async sources with bounded carrier buffering.

        The customer source is drained into the index before any carrier line
        is matched. Cancellation is checked before every pull from the carrier
        source, and a signal with an awaitable ``wait()`` (``asyncio.Event``)
        also interrupts a pull that is stalled waiting for input. Lines already
        pulled are always processed, so the report covers exactly what was
        consumed and is marked incomplete.
        """
        size = self._resolve_batch_size(batch_size)
        logger.info(f"Starting batch reconciliation with batch size {size}")
        run = ReconciliationRun(self._config, clock=self._clock)

        builder = MatchIndexBuilder()
        async for charge in _iterate(customer_charges):
            builder.add(charge)
        run.attach_index(builder.build())

        feed = _BatchFeed(size, cancellation)
        async with aclosing(feed.abatches(carrier_invoices)) as batches:
            async for batch in batches:
                logger.info(f"Processing batch {run.batches_processed + 1} with {len(batch)} records")
                run.process_batch(batch)
                # chunk boundary: let other tasks run, e.g. whoever sets the cancellation signal
                await asyncio.sleep(0)
        if feed.cancelled:
            run.cancel()

        report = run.finalize()
        self._log_completion(report, run.batches_processed)
        return report

    def _resolve_batch_size(self, batch_size: int | None) -> int:
        size = self._config.batch_size if batch_size is None else batch_size
        if size < 1:
            raise ValueError(f"batch_size must be a positive integer, got {size}")
        return size

    @staticmethod
    def _log_completion(report: DiscrepancyReport, batches: int | None = None) -> None:
        suffix = f" in {batches} batches" if batches is not None else ""
        status = "complete" if report.is_complete else "cancelled (partial report)"
        logger.info(
            f"Reconciliation {status}{suffix}: {report.total_records_processed} records, "
            f"{report.total_discrepancies_found} discrepancies, "
            f"financial impact {report.summary.total_financial_impact}"
        )


def _is_cancelled(cancellation: CancellationSignal | None) -> bool:
    return cancellation is not None and cancellation.is_set()


async def _iterate(source: Source[T]) -> AsyncIterator[T]:
    if hasattr(source, "__aiter__"):
        async for item in source:  # type: ignore[union-attr]
            yield item
    else:
        for item in source:  # type: ignore[union-attr]
            yield item


async def _anext(iterator: AsyncIterator[T]) -> tuple[bool, Any]:
    try:
        return True, await iterator.__anext__()
    except StopAsyncIteration:
        return False, None


def _cancellation_waiter(cancellation: CancellationSignal | None) -> asyncio.Future | None:
    wait = getattr(cancellation, "wait", None)
    if wait is None or not inspect.iscoroutinefunction(wait):
        return None
    return asyncio.ensure_future(wait())


class _BatchFeed:
    """Groups carrier lines into batches, checking cancellation before every pull.

    Once cancellation is observed nothing more is taken from the source; lines
    already taken are still yielded so none of them go unprocessed.
    """

    def __init__(self, size: int, cancellation: CancellationSignal | None) -> None:
        self._size = size
        self._cancellation = cancellation
        self.cancelled = False

    def _stop_requested(self) -> bool:
        if not self.cancelled and _is_cancelled(self._cancellation):
            self.cancelled = True
        return self.cancelled

    def batches(self, items: Iterable[T]) -> Iterator[list[T]]:
        iterator = iter(items)
        batch: list[T] = []
        while not self._stop_requested():
            try:
                item = next(iterator)
            except StopIteration:
                break
            batch.append(item)
            if len(batch) >= self._size:
                yield batch
                batch = []
        if batch:
            yield batch

    async def abatches(self, items: Source[T]) -> AsyncIterator[list[T]]:
        if not hasattr(items, "__aiter__"):
            for batch in self.batches(items):  # type: ignore[arg-type]
                yield batch
            return

        iterator = items.__aiter__()  # type: ignore[union-attr]
        waiter = _cancellation_waiter(self._cancellation)
        batch: list[T] = []
        try:
            while not self._stop_requested():
                pulled, item = await self._pull(iterator, waiter)
                if not pulled:
                    break
                batch.append(item)
                if len(batch) >= self._size:
                    yield batch
                    batch = []
            if batch:
                yield batch
        finally:
            if waiter is not None:
                waiter.cancel()

    async def _pull(self, iterator: AsyncIterator[T], waiter: asyncio.Future | None) -> tuple[bool, Any]:
        if waiter is None:
            return await _anext(iterator)

        pending = asyncio.ensure_future(_anext(iterator))
        await asyncio.wait({pending, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if not pending.done():
            pending.cancel()
            await asyncio.wait({pending})
        if pending.cancelled():
            self.cancelled = True
            return False, None
        # a line that arrived alongside the signal was consumed and must be kept
        return pending.result()
