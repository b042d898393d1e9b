"""Per-date-range advisory lock for the reservation ledger.

Holders of overlapping ranges are serialized; holders of disjoint ranges run
side by side. A waiter that cannot get its range in time gets a
``TransientError`` so the request can be retried without a partial write.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, List, Tuple

from domain.errors import InvalidRangeError, TransientError

logger = logging.getLogger(__name__)


class DateRangeLock:
    """Advisory lock keyed by inclusive calendar-date ranges"""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._held: List[Tuple[date, date]] = []
        self._condition = asyncio.Condition()

    def _conflicts(self, start: date, end: date) -> bool:
        return any(s <= end and e >= start for s, e in self._held)

    @property
    def held_ranges(self) -> List[Tuple[date, date]]:
        return list(self._held)

    async def acquire(self, start: date, end: date) -> Tuple[date, date]:
        if start > end:
            raise InvalidRangeError(f"Lock range start {start} is after end {end}")
        key = (start, end)

        async def _wait() -> None:
            async with self._condition:
                await self._condition.wait_for(lambda: not self._conflicts(start, end))
                self._held.append(key)

        try:
            await asyncio.wait_for(_wait(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out waiting for date range %s..%s (held: %s)", start, end, self.held_ranges
            )
            raise TransientError(
                f"Dates {start.isoformat()}..{end.isoformat()} are busy, retry shortly"
            )
        return key

    async def release(self, key: Tuple[date, date]) -> None:
        async with self._condition:
            self._held.remove(key)
            self._condition.notify_all()

    @asynccontextmanager
    async def hold(self, start: date, end: date) -> AsyncIterator[None]:
        key = await self.acquire(start, end)
        try:
            yield
        finally:
            await self.release(key)
