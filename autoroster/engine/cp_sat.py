"""
Constraint-programming alternative to the backtracking search.

Uses OR-Tools CP-SAT to fill as many open seats as possible, then to keep the
spread between the busiest and idlest employee small, then to honour role
preferences. Hard rules mirror the candidate filter: only statically eligible
employees get a variable, no employee works two overlapping seats, and weekly
minutes stay under each employee's cap.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from ortools.sat.python import cp_model

from autoroster.domain.types import ShiftSlot
from autoroster.services.constraints import CandidateFilter, ScheduleLedger
from autoroster.services.fairness import FairnessTracker

from .base import BaseSolver, SearchBudget, SearchOutcome, build_outcome

logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT = 30.0
PREFERENCE_SCALE = 100


class _CancelWatcher(cp_model.CpSolverSolutionCallback):
    """Stops the solver at the next improving solution once the budget is cancelled."""

    def __init__(self, budget: SearchBudget):
        super().__init__()
        self.budget = budget
        self.was_cancelled = False

    def on_solution_callback(self):
        if self.budget.cancelled:
            self.was_cancelled = True
            self.StopSearch()


class CPSatSearch(BaseSolver):
    """
    Seat assignment solved as a single CP-SAT model.

    The three objective tiers are combined with weights large enough that a
    lower tier can never outweigh one seat of the tier above it.
    """

    name = "cp_sat"

    def __init__(self, random_seed: int = 0):
        self.random_seed = random_seed

    def solve(
        self,
        units: Sequence[ShiftSlot],
        candidate_filter: CandidateFilter,
        ledger: ScheduleLedger,
        tracker: FairnessTracker,
        budget: SearchBudget,
    ) -> SearchOutcome:
        units = list(units)
        if not units:
            return build_outcome(units, [], candidate_filter, ledger, tracker, False, 0)
        if budget.cancelled:
            logger.info("CP-SAT: cancelled before solving")
            return build_outcome(units, [None] * len(units), candidate_filter, ledger, tracker, True, 0)

        model = cp_model.CpModel()
        assign = self._create_variables(model, units, candidate_filter, ledger)
        if not assign:
            logger.info("CP-SAT: no seat has an eligible employee")
            return build_outcome(units, [None] * len(units), candidate_filter, ledger, tracker, False, 0)

        self._add_seat_constraints(model, assign, len(units))
        self._add_overlap_constraints(model, assign, units)
        self._add_weekly_cap_constraints(model, assign, units, candidate_filter, ledger)
        self._build_objective(model, assign, units, candidate_filter, tracker)

        solver = cp_model.CpSolver()
        solver.parameters.num_workers = 1
        solver.parameters.random_seed = self.random_seed
        solver.parameters.max_time_in_seconds = (
            budget.max_seconds if budget.max_seconds is not None else DEFAULT_TIME_LIMIT
        )

        watcher = _CancelWatcher(budget)
        status = solver.Solve(model, watcher)
        logger.info(
            "CP-SAT: status=%s, %d variables, %.2fs",
            self._status_name(status),
            len(assign),
            solver.WallTime(),
        )

        if status in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            chosen = self._extract_solution(solver, assign, len(units))
        else:
            chosen = [None] * len(units)

        return build_outcome(
            units,
            chosen,
            candidate_filter,
            ledger,
            tracker,
            time_bound=status != cp_model.OPTIMAL or watcher.was_cancelled,
            iterations=int(solver.NumBranches()),
        )

    def _create_variables(
        self,
        model: cp_model.CpModel,
        units: List[ShiftSlot],
        candidate_filter: CandidateFilter,
        ledger: ScheduleLedger,
    ) -> Dict[Tuple[int, int], cp_model.IntVar]:
        """
        One boolean per (seat, employee) pair the employee could take given
        only the pre-existing assignments.
        """
        assign = {}
        for idx, slot in enumerate(units):
            for emp_id in candidate_filter.static_candidates(slot):
                employee = candidate_filter.employees[emp_id]
                if candidate_filter.dynamic_reason(employee, slot, ledger) is not None:
                    continue
                assign[(idx, emp_id)] = model.NewBoolVar(f"assign_u{idx}_e{emp_id}")
        return assign

    def _add_seat_constraints(self, model, assign, n_units: int) -> None:
        by_unit: Dict[int, List] = defaultdict(list)
        for (idx, _), var in assign.items():
            by_unit[idx].append(var)
        for idx in range(n_units):
            if len(by_unit[idx]) > 1:
                model.Add(sum(by_unit[idx]) <= 1)

    def _add_overlap_constraints(self, model, assign, units: List[ShiftSlot]) -> None:
        by_emp: Dict[int, List[int]] = defaultdict(list)
        for idx, emp_id in assign:
            by_emp[emp_id].append(idx)

        for emp_id, indices in by_emp.items():
            for pos, i in enumerate(indices):
                a = units[i]
                for j in indices[pos + 1:]:
                    b = units[j]
                    if b.overlaps(a.date, a.start_time, a.end_time):
                        model.Add(assign[(i, emp_id)] + assign[(j, emp_id)] <= 1)

    def _add_weekly_cap_constraints(
        self,
        model,
        assign,
        units: List[ShiftSlot],
        candidate_filter: CandidateFilter,
        ledger: ScheduleLedger,
    ) -> None:
        terms: Dict[Tuple[int, str], List] = defaultdict(list)
        for (idx, emp_id), var in assign.items():
            slot = units[idx]
            terms[(emp_id, slot.week_id)].append((var, slot.minutes))

        for (emp_id, week_id), week_terms in terms.items():
            cap = candidate_filter.employees[emp_id].max_hours_per_week
            room = int(cap * 60 + 1e-6) - ledger.week_minutes(emp_id, week_id)
            model.Add(sum(var * minutes for var, minutes in week_terms) <= max(room, 0))

    def _build_objective(
        self,
        model,
        assign,
        units: List[ShiftSlot],
        candidate_filter: CandidateFilter,
        tracker: FairnessTracker,
    ) -> None:
        employee_ids = sorted(candidate_filter.employees)
        seed_minutes = {emp_id: int(round(tracker.hours(emp_id) * 60)) for emp_id in employee_ids}
        total_minutes = sum(slot.minutes for slot in units)
        horizon = max(seed_minutes.values(), default=0) + total_minutes

        # 1. Preference (lowest tier)
        preference_terms = []
        max_preference = 0
        for (idx, emp_id), var in assign.items():
            weight = candidate_filter.employees[emp_id].preference_for(units[idx].role_id)
            scaled = int(round(weight * PREFERENCE_SCALE))
            if scaled:
                preference_terms.append(var * scaled)
                max_preference += abs(scaled)

        # 2. Workload spread (max - min minutes over the roster)
        loads = []
        for emp_id in employee_ids:
            load = model.NewIntVar(0, horizon, f"load_e{emp_id}")
            worked = [var * units[idx].minutes for (idx, e), var in assign.items() if e == emp_id]
            model.Add(load == seed_minutes[emp_id] + sum(worked))
            loads.append(load)

        spread_weight = max_preference + 1
        fill_weight = (horizon + 1) * spread_weight

        objective = [fill_weight * var for var in assign.values()]
        if len(loads) >= 2:
            max_load = model.NewIntVar(0, horizon, "max_load")
            min_load = model.NewIntVar(0, horizon, "min_load")
            model.AddMaxEquality(max_load, loads)
            model.AddMinEquality(min_load, loads)
            objective.append(-spread_weight * (max_load - min_load))
        objective.extend(preference_terms)

        model.Maximize(sum(objective))

    def _extract_solution(self, solver, assign, n_units: int) -> List[Optional[int]]:
        chosen: List[Optional[int]] = [None] * n_units
        for (idx, emp_id), var in sorted(assign.items(), key=lambda item: item[0]):
            if solver.Value(var) == 1:
                chosen[idx] = emp_id
        return chosen

    def _status_name(self, status: int) -> str:
        status_map = {
            cp_model.OPTIMAL: "OPTIMAL",
            cp_model.FEASIBLE: "FEASIBLE",
            cp_model.INFEASIBLE: "INFEASIBLE",
            cp_model.MODEL_INVALID: "MODEL_INVALID",
            cp_model.UNKNOWN: "UNKNOWN",
        }
        return status_map.get(status, f"UNKNOWN({status})")
