"""Per-flight mutual exclusion for booking and cancellation."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from .errors import FlightBusyError

logger = logging.getLogger(__name__)


class FlightLockRegistry:
    """Hands out one lock per flight id.

    Operations on the same flight serialize; operations on different flights
    never share a lock. This covers callers inside one process, the write
    lock taken by the transaction covers the others. A flight's entry lives
    only while someone holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # flight id -> [lock, number of holders and waiters]
        self._locks: Dict[int, List] = {}

    def _checkout(self, flight_id: int) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(flight_id)
            if entry is None:
                entry = self._locks[flight_id] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, flight_id: int) -> None:
        with self._guard:
            entry = self._locks[flight_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[flight_id]

    @contextmanager
    def hold(self, flight_id: int, timeout: float) -> Iterator[None]:
        """Hold the flight's lock for the duration of the ``with`` block."""

        lock = self._checkout(flight_id)
        try:
            if not lock.acquire(timeout=timeout if timeout >= 0 else -1):
                logger.warning("Timed out after %.2fs waiting for flight %s", timeout, flight_id)
                raise FlightBusyError(flight_id)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(flight_id)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
