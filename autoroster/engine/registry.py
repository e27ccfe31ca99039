"""In-process registry that serializes generation runs per department and range."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, Optional, Tuple

from autoroster.errors import GenerationInProgressError

logger = logging.getLogger(__name__)

Claim = Tuple[int, date, date]


def _overlaps(claim: Claim, department_id: int, start_date: date, end_date: date) -> bool:
    dept, start, end = claim
    return dept == department_id and start <= end_date and start_date <= end


class GenerationRegistry:
    """
    Tracks active generation runs and their cancel tokens.

    A claim conflicts with an active one for the same department whose date
    range overlaps (inclusive on both ends). Each claim carries a
    threading.Event; the search polls it and stops with its best result so
    far once it is set.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Dict[Claim, threading.Event] = {}

    def active(self) -> List[Claim]:
        with self._lock:
            return list(self._active)

    def acquire(
        self,
        department_id: int,
        start_date: date,
        end_date: date,
        cancel_event: Optional[threading.Event] = None,
    ) -> Claim:
        claim = (department_id, start_date, end_date)
        with self._lock:
            for held in self._active:
                if _overlaps(held, department_id, start_date, end_date):
                    _, start, end = held
                    raise GenerationInProgressError(
                        f"A generation run for department {department_id} "
                        f"({start.isoformat()} to {end.isoformat()}) is already in progress"
                    )
            self._active[claim] = cancel_event if cancel_event is not None else threading.Event()
        logger.debug("Registry: claimed %s", claim)
        return claim

    def release(self, claim: Claim) -> None:
        with self._lock:
            self._active.pop(claim, None)
        logger.debug("Registry: released %s", claim)

    def cancel_event(self, claim: Claim) -> Optional[threading.Event]:
        with self._lock:
            return self._active.get(claim)

    def cancel(self, department_id: int, start_date: date, end_date: date) -> int:
        """Ask every run overlapping the range to stop; returns how many were signalled."""
        with self._lock:
            events = [
                event for held, event in self._active.items()
                if _overlaps(held, department_id, start_date, end_date)
            ]
        for event in events:
            event.set()
        if events:
            logger.info(
                "Registry: cancelling %d run(s) for department %s (%s..%s)",
                len(events),
                department_id,
                start_date,
                end_date,
            )
        return len(events)

    @contextmanager
    def claim(
        self,
        department_id: int,
        start_date: date,
        end_date: date,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[Claim]:
        held = self.acquire(department_id, start_date, end_date, cancel_event)
        try:
            yield held
        finally:
            self.release(held)


default_registry = GenerationRegistry()
