"""Solver interface shared by the backtracking and CP-SAT engines."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

from autoroster.domain.types import Placement, ShiftSlot, UnfilledSlot
from autoroster.services.constraints import CandidateFilter, ScheduleLedger
from autoroster.services.fairness import FairnessTracker
from autoroster.services.scoring import ScheduleScore, preference_total, score_schedule


@dataclass(frozen=True)
class SearchBudget:
    """
    Wall-clock and iteration limits; None means unlimited.

    A set cancel_event ends the search at its next poll, the same way an
    exhausted limit does.
    """

    max_seconds: Optional[float] = 10.0
    max_iterations: Optional[int] = 20000
    stop_at_first_complete: bool = False
    cancel_event: Optional[threading.Event] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_settings(cls, settings) -> "SearchBudget":
        return cls(
            max_seconds=settings.max_seconds,
            max_iterations=settings.max_iterations,
            stop_at_first_complete=settings.stop_at_first_complete,
        )

    @classmethod
    def unbounded(cls) -> "SearchBudget":
        return cls(max_seconds=None, max_iterations=None)

    def with_cancel(self, cancel_event: Optional[threading.Event]) -> "SearchBudget":
        return replace(self, cancel_event=cancel_event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def start(self) -> "BudgetClock":
        return BudgetClock(self)


class BudgetClock:
    """Polled between search steps."""

    def __init__(self, budget: SearchBudget):
        self.budget = budget
        self.started = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def exhausted(self, iterations: int) -> bool:
        if self.budget.cancelled:
            return True
        if self.budget.max_iterations is not None and iterations >= self.budget.max_iterations:
            return True
        if self.budget.max_seconds is not None and self.elapsed >= self.budget.max_seconds:
            return True
        return False


@dataclass
class SearchOutcome:
    placements: List[Placement]
    unfilled: List[UnfilledSlot]
    time_bound: bool
    iterations: int
    score: ScheduleScore
    tracker: FairnessTracker = field(repr=False)

    @property
    def unfilled_seats(self) -> int:
        return sum(u.missing for u in self.unfilled)


class BaseSolver(ABC):
    """
    Abstract base class for schedule solvers.

    A solver receives the open seats (one ShiftSlot entry per seat), the
    candidate filter and the seeded ledger/tally, and returns a consistent,
    possibly partial, set of placements. It never raises for infeasibility.
    """

    name: str = "base"

    @abstractmethod
    def solve(
        self,
        units: Sequence[ShiftSlot],
        candidate_filter: CandidateFilter,
        ledger: ScheduleLedger,
        tracker: FairnessTracker,
        budget: SearchBudget,
    ) -> SearchOutcome:
        """
        Assign employees to open seats.

        Args:
            units: Open seats in requirement order
            candidate_filter: Eligibility and ordering for the run's snapshot
            ledger: Pre-existing assignments (not modified)
            tracker: Seeded fairness tally (not modified)
            budget: Search limits

        Returns:
            SearchOutcome
        """
        pass


def build_outcome(
    units: Sequence[ShiftSlot],
    chosen: Sequence[Optional[int]],
    candidate_filter: CandidateFilter,
    ledger: ScheduleLedger,
    tracker: FairnessTracker,
    time_bound: bool,
    iterations: int,
) -> SearchOutcome:
    """
    Turn a per-unit employee choice (None = unfilled) into a SearchOutcome.

    The seeds are copied; the returned tracker includes the placements.
    """
    final_ledger = ledger.copy()
    final_tracker = tracker.copy()
    placements: List[Placement] = []
    missing: "OrderedDict[tuple, list]" = OrderedDict()

    for slot, emp_id in zip(units, chosen):
        if emp_id is None:
            entry = missing.setdefault(slot.key, [slot, 0])
            entry[1] += 1
            continue
        final_ledger.place(emp_id, slot)
        final_tracker.add(emp_id, slot.hours)
        placements.append(
            Placement(
                slot=slot,
                employee_id=emp_id,
                preference=candidate_filter.employees[emp_id].preference_for(slot.role_id),
            )
        )

    unfilled = [
        UnfilledSlot(slot=slot, missing=count, reason=candidate_filter.explain(slot, final_ledger))
        for slot, count in missing.values()
    ]
    score = score_schedule(
        sum(u.missing for u in unfilled),
        final_tracker,
        sorted(candidate_filter.employees),
        preference_total(placements),
    )
    return SearchOutcome(
        placements=placements,
        unfilled=unfilled,
        time_bound=time_bound,
        iterations=iterations,
        score=score,
        tracker=final_tracker,
    )
