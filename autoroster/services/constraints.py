"""Candidate filtering and hard-constraint checks for scheduling."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date, time
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from autoroster.domain.types import (
    EmployeeProfile,
    ExistingAssignment,
    LeavePeriod,
    RoleProfile,
    ScheduleSnapshot,
    ShiftSlot,
)

from .fairness import FairnessTracker
from .timeplan import format_time, iso_week_key, minutes_of, windows_overlap

logger = logging.getLogger(__name__)

REASON_SKILL = "skill"
REASON_UNAVAILABLE = "unavailable"
REASON_LEAVE = "leave"
REASON_OVERLAP = "overlap"
REASON_WEEKLY_CAP = "weekly_cap"

_REASON_TEXT = {
    REASON_SKILL: "lack skill",
    REASON_UNAVAILABLE: "unavailable",
    REASON_LEAVE: "on leave",
    REASON_OVERLAP: "already working",
    REASON_WEEKLY_CAP: "at weekly cap",
}


class ScheduleLedger:
    """
    Occupied windows per employee per date and minutes per ISO week.

    Holds pre-existing assignments plus tentative placements of the run.
    """

    def __init__(self):
        self._windows: Dict[int, Dict[date, List[Tuple[time, time]]]] = defaultdict(lambda: defaultdict(list))
        self._week_minutes: Dict[Tuple[int, str], int] = defaultdict(int)

    @classmethod
    def from_existing(cls, existing: Iterable[ExistingAssignment]) -> "ScheduleLedger":
        ledger = cls()
        for assignment in existing:
            ledger.occupy(assignment.employee_id, assignment.date, assignment.start_time, assignment.end_time)
        return ledger

    def occupy(self, employee_id: int, day: date, start: time, end: time) -> None:
        self._windows[employee_id][day].append((start, end))
        self._week_minutes[(employee_id, iso_week_key(day))] += minutes_of(end) - minutes_of(start)

    def release(self, employee_id: int, day: date, start: time, end: time) -> None:
        self._windows[employee_id][day].remove((start, end))
        self._week_minutes[(employee_id, iso_week_key(day))] -= minutes_of(end) - minutes_of(start)

    def place(self, employee_id: int, slot: ShiftSlot) -> None:
        self.occupy(employee_id, slot.date, slot.start_time, slot.end_time)

    def unplace(self, employee_id: int, slot: ShiftSlot) -> None:
        self.release(employee_id, slot.date, slot.start_time, slot.end_time)

    def has_overlap(self, employee_id: int, day: date, start: time, end: time) -> bool:
        days = self._windows.get(employee_id)
        if not days:
            return False
        return any(windows_overlap(s, e, start, end) for s, e in days.get(day, ()))

    def week_minutes(self, employee_id: int, week_id: str) -> int:
        return self._week_minutes.get((employee_id, week_id), 0)

    def occupancy(self, employee_id: int) -> Tuple[Tuple[date, Tuple[Tuple[time, time], ...]], ...]:
        """Everything the employee works, as a comparable value."""
        days = self._windows.get(employee_id, {})
        return tuple((day, tuple(sorted(windows))) for day, windows in sorted(days.items()) if windows)

    def copy(self) -> "ScheduleLedger":
        clone = ScheduleLedger()
        for employee_id, days in self._windows.items():
            for day, windows in days.items():
                clone._windows[employee_id][day] = list(windows)
        clone._week_minutes.update(self._week_minutes)
        return clone


def exceeds_cap(current_minutes: int, extra_minutes: int, cap_hours: float) -> bool:
    return current_minutes + extra_minutes > cap_hours * 60 + 1e-6


class CandidateFilter:
    """
    Computes the eligible employees for a slot.

    Skill, availability and leave are static for a run and cached per slot;
    overlap and the weekly cap are checked against the ledger on each call.
    """

    def __init__(self, snapshot: ScheduleSnapshot):
        self.snapshot = snapshot
        self.employees: Dict[int, EmployeeProfile] = {
            e.employee_id: e for e in sorted(snapshot.employees, key=lambda e: e.employee_id)
        }
        self._leave: Dict[int, List[LeavePeriod]] = defaultdict(list)
        for period in snapshot.leave:
            if period.is_approved:
                self._leave[period.employee_id].append(period)
        self._static: Dict[Tuple, Tuple[int, ...]] = {}

    def is_on_leave(self, employee_id: int, day: date) -> bool:
        return any(period.covers(day) for period in self._leave.get(employee_id, ()))

    def leave_of(self, employee_id: int) -> Tuple[LeavePeriod, ...]:
        return tuple(self._leave.get(employee_id, ()))

    def static_reason(self, employee: EmployeeProfile, slot: ShiftSlot) -> Optional[str]:
        if not employee.has_skill(slot.required_skill):
            return REASON_SKILL
        if self.is_on_leave(employee.employee_id, slot.date):
            return REASON_LEAVE
        if not employee.is_available(slot.date, slot.start_time, slot.end_time):
            return REASON_UNAVAILABLE
        return None

    def dynamic_reason(self, employee: EmployeeProfile, slot: ShiftSlot, ledger: ScheduleLedger) -> Optional[str]:
        emp_id = employee.employee_id
        if ledger.has_overlap(emp_id, slot.date, slot.start_time, slot.end_time):
            return REASON_OVERLAP
        if exceeds_cap(ledger.week_minutes(emp_id, slot.week_id), slot.minutes, employee.max_hours_per_week):
            return REASON_WEEKLY_CAP
        return None

    def static_candidates(self, slot: ShiftSlot) -> Tuple[int, ...]:
        """Employees passing skill, leave and availability, by id."""
        cached = self._static.get(slot.key)
        if cached is None:
            cached = tuple(
                emp_id for emp_id, emp in self.employees.items() if self.static_reason(emp, slot) is None
            )
            self._static[slot.key] = cached
        return cached

    def is_eligible(self, employee_id: int, slot: ShiftSlot, ledger: ScheduleLedger) -> bool:
        employee = self.employees.get(employee_id)
        if employee is None:
            return False
        if employee_id not in self.static_candidates(slot):
            return False
        return self.dynamic_reason(employee, slot, ledger) is None

    def order(self, employee_ids: Iterable[int], slot: ShiftSlot, tracker: FairnessTracker) -> List[int]:
        """Fewest run hours first, then higher role preference, then lower id."""
        return sorted(
            employee_ids,
            key=lambda emp_id: (
                tracker.hours(emp_id),
                -self.employees[emp_id].preference_for(slot.role_id),
                emp_id,
            ),
        )

    def eligible(self, slot: ShiftSlot, ledger: ScheduleLedger, tracker: FairnessTracker) -> List[int]:
        """
        Ordered eligible employee ids for a slot.

        Args:
            slot: Open slot to staff
            ledger: Existing and tentatively placed assignments
            tracker: Run tally used for ordering

        Returns:
            Employee ids, fairness-first
        """
        ids = [
            emp_id for emp_id in self.static_candidates(slot)
            if self.dynamic_reason(self.employees[emp_id], slot, ledger) is None
        ]
        return self.order(ids, slot, tracker)

    def rejection_reasons(self, slot: ShiftSlot, ledger: ScheduleLedger) -> Counter:
        """Count of first failing rule per employee in the roster."""
        reasons: Counter = Counter()
        for employee in self.employees.values():
            reason = self.static_reason(employee, slot) or self.dynamic_reason(employee, slot, ledger)
            if reason is not None:
                reasons[reason] += 1
        return reasons

    def explain(self, slot: ShiftSlot, ledger: ScheduleLedger) -> str:
        """Short human-readable summary of why a slot lacks candidates."""
        if not self.employees:
            return "no employees in roster"
        reasons = self.rejection_reasons(slot, ledger)
        if not reasons:
            return "eligible employees were needed elsewhere"
        if reasons.get(REASON_SKILL, 0) == len(self.employees):
            return f"no employee has skill '{slot.required_skill}'"
        parts = [f"{count} {_REASON_TEXT[reason]}" for reason, count in sorted(reasons.items())]
        return ", ".join(parts)


def find_violations(
    assignments: Sequence[ExistingAssignment],
    employees: Mapping[int, EmployeeProfile],
    roles: Mapping[int, RoleProfile],
    leave: Iterable[LeavePeriod] = (),
    strict_refs: bool = True,
) -> List[str]:
    """
    Check skill, approved leave, same-day overlap and weekly caps over a set of assignments.

    Args:
        assignments: Every assignment to check together
        employees: Profiles by id (unknown ids are reported)
        roles: Roles by id (unknown ids are reported)
        leave: Leave periods; only approved ones count
        strict_refs: Report assignments whose employee or role is unknown;
            when False they are only counted toward overlaps and caps

    Returns:
        Human-readable violation messages, empty when consistent
    """
    violations: List[str] = []
    by_emp_date: Dict[Tuple[int, date], List[ExistingAssignment]] = defaultdict(list)
    week_minutes: Dict[Tuple[int, str], int] = defaultdict(int)
    approved = defaultdict(list)
    for period in leave:
        if period.is_approved:
            approved[period.employee_id].append(period)

    for a in assignments:
        by_emp_date[(a.employee_id, a.date)].append(a)
        week_minutes[(a.employee_id, a.week_id)] += minutes_of(a.end_time) - minutes_of(a.start_time)

        employee = employees.get(a.employee_id)
        role = roles.get(a.role_id)
        if employee is None:
            if strict_refs:
                violations.append(f"Assignment {a.assignment_id} references unknown employee {a.employee_id}")
            continue
        if role is None:
            if strict_refs:
                violations.append(f"Assignment {a.assignment_id} references unknown role {a.role_id}")
        elif role.required_skill and not employee.has_skill(role.required_skill):
            violations.append(
                f"Employee {a.employee_id} lacks skill '{role.required_skill}' for role {a.role_id} on {a.date}"
            )
        if any(p.covers(a.date) for p in approved.get(a.employee_id, ())):
            violations.append(f"Employee {a.employee_id} is assigned on {a.date} during approved leave")

    # 1. Overlaps within the same day
    for (emp_id, day), day_assigns in by_emp_date.items():
        ordered = sorted(day_assigns, key=lambda x: (x.start_time, x.end_time))
        for i, a1 in enumerate(ordered):
            for a2 in ordered[i + 1:]:
                if windows_overlap(a1.start_time, a1.end_time, a2.start_time, a2.end_time):
                    violations.append(
                        f"Employee {emp_id} has overlapping assignments on {day}: "
                        f"{format_time(a1.start_time)}-{format_time(a1.end_time)} overlaps "
                        f"{format_time(a2.start_time)}-{format_time(a2.end_time)}"
                    )

    # 2. Weekly caps
    for (emp_id, week_id), minutes in sorted(week_minutes.items()):
        employee = employees.get(emp_id)
        if employee is not None and exceeds_cap(minutes, 0, employee.max_hours_per_week):
            violations.append(
                f"Employee {emp_id} exceeds weekly cap in {week_id}: "
                f"{minutes / 60:.1f}h > {employee.max_hours_per_week}h"
            )

    return violations


def validate_assignment_constraints(
    assignments: Sequence[ExistingAssignment],
    snapshot: ScheduleSnapshot,
) -> None:
    """
    Validate a set of assignments against the snapshot's employees, roles and leave.

    Raises:
        ValueError: If any constraint is violated
    """
    violations = find_violations(
        assignments,
        {e.employee_id: e for e in snapshot.employees},
        {r.role_id: r for r in snapshot.roles},
        snapshot.leave,
    )
    if violations:
        raise ValueError("; ".join(violations))
    logger.debug("All assignment constraints validated (%d assignments)", len(assignments))
