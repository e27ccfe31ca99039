"""Schedule objective: coverage first, then workload balance, then preference."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from autoroster.domain.types import Placement

from .fairness import FairnessTracker

# Variance and preference sums are compared at this precision so float noise
# from add/remove cycles never registers as an improvement.
_PRECISION = 6


@dataclass(frozen=True, order=True)
class ScheduleScore:
    """Lexicographic score; smaller is better."""

    unfilled: int
    variance: float
    neg_preference: float

    @property
    def preference(self) -> float:
        return -self.neg_preference

    def improves_on(self, other: "ScheduleScore | None") -> bool:
        return other is None or self < other


def preference_total(placements: Iterable[Placement]) -> float:
    return sum(p.preference for p in placements)


def score_schedule(
    unfilled: int,
    tracker: FairnessTracker,
    employee_ids: Sequence[int],
    preference: float,
) -> ScheduleScore:
    """
    Calculate the objective for a complete or partial assignment set.

    Args:
        unfilled: Number of open seats left without an employee
        tracker: Run tally (seeded hours + placements)
        employee_ids: Roster the variance is taken over
        preference: Sum of preference weights of the placements

    Returns:
        ScheduleScore (lower is better)
    """
    return ScheduleScore(
        unfilled=int(unfilled),
        variance=round(tracker.variance(employee_ids), _PRECISION),
        neg_preference=round(-preference, _PRECISION),
    )
