"""Optional parallel search over independent ISO-week partitions."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Sequence

from autoroster.domain.types import ShiftSlot
from autoroster.services.constraints import CandidateFilter, ScheduleLedger
from autoroster.services.fairness import FairnessTracker
from autoroster.services.scoring import preference_total, score_schedule

from .base import BaseSolver, SearchBudget, SearchOutcome

logger = logging.getLogger(__name__)


def partition_units(units: Sequence[ShiftSlot], candidate_filter: CandidateFilter) -> List[List[int]]:
    """
    Group seat indices into independent partitions.

    Overlap and weekly-cap rules never cross an ISO week, so each week is a
    starting group; weeks that share a candidate employee are joined so the
    fairness ordering still sees every seat that employee competes for.
    Partitions come back ordered by their first seat.
    """
    parent: Dict[str, str] = {}

    def find(week: str) -> str:
        while parent[week] != week:
            parent[week] = parent[parent[week]]
            week = parent[week]
        return week

    def union(a: str, b: str) -> None:
        root_a, root_b = find(a), find(b)
        if root_a != root_b:
            parent[max(root_a, root_b)] = min(root_a, root_b)

    first_week_of: Dict[int, str] = {}
    for slot in units:
        parent.setdefault(slot.week_id, slot.week_id)
        for emp_id in candidate_filter.static_candidates(slot):
            if emp_id in first_week_of:
                union(first_week_of[emp_id], slot.week_id)
            else:
                first_week_of[emp_id] = slot.week_id

    groups: Dict[str, List[int]] = {}
    for idx, slot in enumerate(units):
        groups.setdefault(find(slot.week_id), []).append(idx)
    return sorted(groups.values(), key=lambda indices: indices[0])


class PartitionedSearch(BaseSolver):
    """
    Runs an inner solver on each partition in a thread pool and merges the
    results. With a single partition it simply delegates.

    Threads only run truly in parallel for the CP-SAT solver, whose native
    search releases the GIL. The pure-Python backtracking search gains from
    partitioning because each partition is a much smaller search, not from
    the threads. Threads also share the cancel event and the filter cache,
    which a process pool could not.
    """

    def __init__(self, inner: BaseSolver, max_workers: int = 4):
        self.inner = inner
        self.max_workers = max_workers
        self.name = f"{inner.name}+partitioned"

    def solve(
        self,
        units: Sequence[ShiftSlot],
        candidate_filter: CandidateFilter,
        ledger: ScheduleLedger,
        tracker: FairnessTracker,
        budget: SearchBudget,
    ) -> SearchOutcome:
        units = list(units)
        partitions = partition_units(units, candidate_filter)
        if len(partitions) <= 1:
            return self.inner.solve(units, candidate_filter, ledger, tracker, budget)

        logger.info(
            "Partitioned search: %d partitions, %d workers", len(partitions), self.max_workers
        )
        # partition_units filled the static cache; workers only read it
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(
                    self.inner.solve,
                    [units[idx] for idx in indices],
                    candidate_filter,
                    ledger,
                    tracker,
                    budget,
                )
                for indices in partitions
            ]
            outcomes = [future.result() for future in futures]

        return merge_outcomes(outcomes, candidate_filter, tracker)


def merge_outcomes(
    outcomes: Sequence[SearchOutcome],
    candidate_filter: CandidateFilter,
    seed: FairnessTracker,
) -> SearchOutcome:
    """Combine partition outcomes that all started from the same seed tally."""
    merged = seed.copy()
    placements = []
    unfilled = []
    for outcome in outcomes:
        merged.merge(outcome.tracker, baseline=seed)
        placements.extend(outcome.placements)
        unfilled.extend(outcome.unfilled)

    def slot_order(slot: ShiftSlot):
        return (slot.date, slot.role_id, slot.start_time, slot.end_time)

    placements.sort(key=lambda p: slot_order(p.slot))
    unfilled.sort(key=lambda u: slot_order(u.slot))
    score = score_schedule(
        sum(u.missing for u in unfilled),
        merged,
        sorted(candidate_filter.employees),
        preference_total(placements),
    )
    return SearchOutcome(
        placements=placements,
        unfilled=unfilled,
        time_bound=any(o.time_bound for o in outcomes),
        iterations=sum(o.iterations for o in outcomes),
        score=score,
        tracker=merged,
    )
