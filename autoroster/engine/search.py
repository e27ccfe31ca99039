"""Most-constrained-first backtracking search over open seats."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from autoroster.domain.types import EmployeeProfile, ShiftSlot
from autoroster.services.constraints import CandidateFilter, ScheduleLedger, exceeds_cap
from autoroster.services.fairness import FairnessTracker
from autoroster.services.scoring import ScheduleScore, score_schedule

from .base import BaseSolver, SearchBudget, SearchOutcome, build_outcome

logger = logging.getLogger(__name__)

# Scores within this distance of the floor count as having reached it
_FLOOR_TOLERANCE = 1e-6


def _interchangeable_key(employee: EmployeeProfile, candidate_filter: CandidateFilter) -> Tuple:
    """Everything that decides where an employee may work and how a seat scores."""
    return (
        employee.skills,
        employee.max_hours_per_week,
        employee.availability,
        tuple(sorted(employee.preferences.items())),
        tuple((p.start_date, p.end_date) for p in candidate_filter.leave_of(employee.employee_id)),
    )


def _level_loads(loads: FairnessTracker, pool: Sequence[int], total_hours: float) -> None:
    """Spread total_hours over pool so the lowest loads rise to a common level."""
    ordered = sorted(pool, key=lambda e: (loads.hours(e), e))
    levels = [loads.hours(e) for e in ordered]
    raised = len(levels)
    level = 0.0
    for count in range(1, len(levels) + 1):
        level = (sum(levels[:count]) + total_hours) / count
        if count == len(levels) or level <= levels[count]:
            raised = count
            break
    for emp_id in ordered[:raised]:
        loads.add(emp_id, level - loads.hours(emp_id))


def score_floor(
    units: Sequence[ShiftSlot],
    candidate_filter: CandidateFilter,
    tracker: FairnessTracker,
    employee_ids: Sequence[int],
) -> ScheduleScore:
    """
    A score no schedule for these seats can beat.

    Seats without a single static candidate stay unfilled. Every other seat
    is filled, and its hours go to whoever is least loaded while overlap, caps
    and per-seat eligibility are ignored, which gives the lowest reachable
    variance. Each seat then counts its best candidate's preference.
    """
    fillable = [slot for slot in units if candidate_filter.static_candidates(slot)]
    preference = sum(
        max(candidate_filter.employees[e].preference_for(slot.role_id) for e in candidate_filter.static_candidates(slot))
        for slot in fillable
    )
    pool = sorted({e for slot in fillable for e in candidate_filter.static_candidates(slot)})
    loads = tracker.copy()
    if len({slot.minutes for slot in fillable}) <= 1:
        # Equal seats: handing each to the least loaded employee is optimal
        for slot in fillable:
            loads.add(min(pool, key=lambda e: (loads.hours(e), e)), slot.hours)
    else:
        _level_loads(loads, pool, sum(slot.hours for slot in fillable))
    return score_schedule(len(units) - len(fillable), loads, employee_ids, preference)


class _ChoicePoint:
    """One decided seat: its ordered options and which one is applied."""

    __slots__ = ("unit", "options", "cursor")

    def __init__(self, unit: int, options: List[Optional[int]]):
        self.unit = unit
        self.options = options
        self.cursor = -1

    @property
    def choice(self) -> Optional[int]:
        return self.options[self.cursor]


class _SearchRun:
    """Mutable state of one search: ledger, tally and the choice-point stack."""

    def __init__(
        self,
        units: Sequence[ShiftSlot],
        candidate_filter: CandidateFilter,
        ledger: ScheduleLedger,
        tracker: FairnessTracker,
        budget: SearchBudget,
    ):
        self.units = list(units)
        self.filter = candidate_filter
        self.ledger = ledger.copy()
        self.tracker = tracker.copy()
        self.budget = budget
        self.employee_ids = sorted(candidate_filter.employees)
        self.floor = score_floor(self.units, candidate_filter, tracker, self.employee_ids)
        self.profile_keys = {
            emp_id: _interchangeable_key(emp, candidate_filter) for emp_id, emp in candidate_filter.employees.items()
        }

        self.decided = [False] * len(self.units)
        self.stack: List[_ChoicePoint] = []
        self.unfilled = 0
        self.preference = 0.0
        self.iterations = 0

        self.best_score: Optional[ScheduleScore] = None
        self.best_choice: Optional[List[Optional[int]]] = None

    # -- applying and undoing choices -------------------------------------

    def _apply(self, cp: _ChoicePoint) -> None:
        emp_id = cp.choice
        if emp_id is None:
            self.unfilled += 1
            return
        slot = self.units[cp.unit]
        self.ledger.place(emp_id, slot)
        self.tracker.add(emp_id, slot.hours)
        self.preference += self.filter.employees[emp_id].preference_for(slot.role_id)

    def _undo(self, cp: _ChoicePoint) -> None:
        emp_id = cp.choice
        if emp_id is None:
            self.unfilled -= 1
            return
        slot = self.units[cp.unit]
        self.ledger.unplace(emp_id, slot)
        self.tracker.remove(emp_id, slot.hours)
        self.preference -= self.filter.employees[emp_id].preference_for(slot.role_id)

    def _push(self, unit: int, options: List[Optional[int]]) -> None:
        cp = _ChoicePoint(unit, options)
        self.stack.append(cp)
        self.decided[unit] = True
        cp.cursor = 0
        self._apply(cp)

    def _backtrack(self) -> bool:
        """Advance the deepest choice point with options left; False when exhausted."""
        while self.stack:
            cp = self.stack[-1]
            self._undo(cp)
            if cp.cursor + 1 < len(cp.options):
                cp.cursor += 1
                self._apply(cp)
                return True
            self.stack.pop()
            self.decided[cp.unit] = False
        return False

    # -- ordering -----------------------------------------------------------

    def _blocks(self, emp_id: int, placed: ShiftSlot, other: ShiftSlot) -> bool:
        """Would placing emp_id on `placed` make them ineligible for `other`?"""
        if other.overlaps(placed.date, placed.start_time, placed.end_time):
            return True
        if other.week_id != placed.week_id:
            return False
        cap = self.filter.employees[emp_id].max_hours_per_week
        current = self.ledger.week_minutes(emp_id, placed.week_id)
        return exceeds_cap(current, placed.minutes + other.minutes, cap)

    def _options(self, unit: int, candidates: Dict[int, List[int]]) -> List[Optional[int]]:
        """
        Candidates that keep every other seat staffable first (forward
        checking), then the ones that would strand a seat, then unfilled.

        Of employees that are interchangeable right now (same profile, same
        hours and the same work on the books) only the first is tried; the
        others would lead to mirror-image schedules with the same score.
        """
        slot = self.units[unit]
        sole = [(other, cands[0]) for other, cands in candidates.items() if other != unit and len(cands) == 1]
        safe: List[Optional[int]] = []
        risky: List[Optional[int]] = []
        twins = set()
        for emp_id in candidates[unit]:
            state = (self.profile_keys[emp_id], round(self.tracker.hours(emp_id), 6), self.ledger.occupancy(emp_id))
            if state in twins:
                continue
            twins.add(state)
            if any(only == emp_id and self._blocks(emp_id, slot, self.units[other]) for other, only in sole):
                risky.append(emp_id)
            else:
                safe.append(emp_id)
        return safe + risky + [None]

    # -- main loop ----------------------------------------------------------

    def _record_leaf(self) -> None:
        score = score_schedule(self.unfilled, self.tracker, self.employee_ids, self.preference)
        if score.improves_on(self.best_score):
            self.best_score = score
            self.best_choice = self._current_choice()
            logger.debug(
                "Search: improved to unfilled=%d variance=%.3f preference=%.2f at iteration %d",
                score.unfilled,
                score.variance,
                score.preference,
                self.iterations,
            )

    def _at_floor(self) -> bool:
        best, floor = self.best_score, self.floor
        return (
            best.unfilled <= floor.unfilled
            and best.variance <= floor.variance + _FLOOR_TOLERANCE
            and best.neg_preference <= floor.neg_preference + _FLOOR_TOLERANCE
        )

    def _current_choice(self) -> List[Optional[int]]:
        choice: List[Optional[int]] = [None] * len(self.units)
        for cp in self.stack:
            choice[cp.unit] = cp.choice
        return choice

    def execute(self, seed_ledger: ScheduleLedger, seed_tracker: FairnessTracker) -> SearchOutcome:
        clock = self.budget.start()
        time_bound = False

        while True:
            if clock.exhausted(self.iterations):
                time_bound = True
                break
            self.iterations += 1

            remaining = [u for u in range(len(self.units)) if not self.decided[u]]
            if not remaining:
                self._record_leaf()
                if self.budget.stop_at_first_complete and self.best_score.unfilled == 0:
                    break
                if self._at_floor():
                    logger.debug("Search: best possible score reached at iteration %d", self.iterations)
                    break
                if not self._backtrack():
                    break
                continue

            candidates = {
                u: self.filter.eligible(self.units[u], self.ledger, self.tracker) for u in remaining
            }
            if self.best_score is not None:
                stranded = sum(1 for u in remaining if not candidates[u])
                if self.unfilled + stranded > self.best_score.unfilled:
                    if not self._backtrack():
                        break
                    continue

            unit = min(remaining, key=lambda u: (len(candidates[u]), u))
            self._push(unit, self._options(unit, candidates))

        choice = self.best_choice if self.best_choice is not None else self._current_choice()
        outcome = build_outcome(
            self.units, choice, self.filter, seed_ledger, seed_tracker, time_bound, self.iterations
        )
        logger.info(
            "Search: %d/%d seats filled in %d iterations (%.2fs)%s",
            len(outcome.placements),
            len(self.units),
            self.iterations,
            clock.elapsed,
            ", time bound reached" if time_bound else "",
        )
        return outcome


class BacktrackingSearch(BaseSolver):
    """
    Branch-and-bound backtracking with most-constrained-first ordering.

    The search keeps an explicit stack of choice points. Each seat's options
    are its eligible employees in fairness order followed by leaving it
    unfilled, so the first descent is a complete greedy schedule; further
    iterations explore alternatives and keep a result only when it strictly
    improves (fewer unfilled seats, then lower hours variance, then higher
    preference). The budget is polled between steps.
    """

    name = "backtracking"

    def solve(
        self,
        units: Sequence[ShiftSlot],
        candidate_filter: CandidateFilter,
        ledger: ScheduleLedger,
        tracker: FairnessTracker,
        budget: SearchBudget,
    ) -> SearchOutcome:
        run = _SearchRun(units, candidate_filter, ledger, tracker, budget)
        return run.execute(ledger, tracker)
