"""Tracking-number index over customer charges."""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from .models import CustomerCharge


class MatchIndex:
    """Read-only mapping from tracking number to the first charge seen for it.

    Later charges sharing a tracking number are dropped and never take part in
    matching. An empty tracking number is an ordinary key.
    """

    __slots__ = ("_charges", "_duplicates_dropped")

    def __init__(self, charges: Mapping[str, CustomerCharge], duplicates_dropped: int = 0) -> None:
        self._charges = MappingProxyType(dict(charges))
        self._duplicates_dropped = duplicates_dropped

    @classmethod
    def build(cls, charges: Iterable[CustomerCharge]) -> MatchIndex:
        builder = MatchIndexBuilder()
        for charge in charges:
            builder.add(charge)
        return builder.build()

    @property
    def duplicates_dropped(self) -> int:
        return self._duplicates_dropped

    def get(self, tracking_number: str) -> CustomerCharge | None:
        return self._charges.get(tracking_number)

    def __contains__(self, tracking_number: object) -> bool:
        return tracking_number in self._charges

    def __len__(self) -> int:
        return len(self._charges)

    def __iter__(self) -> Iterator[str]:
        return iter(self._charges)


class MatchIndexBuilder:
    """Accumulates charges one at a time, for sources that arrive incrementally."""

    def __init__(self) -> None:
        self._charges: dict[str, CustomerCharge] = {}
        self._duplicates_dropped = 0

    def add(self, charge: CustomerCharge) -> None:
        if charge.tracking_number in self._charges:
            self._duplicates_dropped += 1
            return
        self._charges[charge.tracking_number] = charge

    def build(self) -> MatchIndex:
        return MatchIndex(self._charges, duplicates_dropped=self._duplicates_dropped)
