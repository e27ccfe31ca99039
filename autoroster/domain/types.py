"""
Immutable in-memory types used by the generation engine.

Decoupled from the SQLAlchemy models: a run loads a snapshot once and never
touches the session again until the result is materialized.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, Optional, Tuple

from autoroster.services.timeplan import iso_week_key, merge_windows, minutes_of, window_contains, windows_overlap


@dataclass(frozen=True)
class AvailabilitySpec:
    start_time: time
    end_time: time
    day_of_week: Optional[int] = None
    specific_date: Optional[date] = None
    available: bool = True

    def applies_to(self, day: date) -> bool:
        if self.specific_date is not None:
            return self.specific_date == day
        return self.day_of_week == day.weekday()


@dataclass(frozen=True)
class EmployeeProfile:
    employee_id: int
    name: str
    skills: frozenset
    max_hours_per_week: float
    availability: Tuple[AvailabilitySpec, ...] = ()
    preferences: Dict[int, float] = field(default_factory=dict, hash=False, compare=False)

    def has_skill(self, skill: str) -> bool:
        return skill.lower() in self.skills

    def preference_for(self, role_id: int) -> float:
        return float(self.preferences.get(role_id, 0.0))

    def is_available(self, day: date, start: time, end: time) -> bool:
        """
        Check whether availability covers [start, end) on a date.

        Dated available windows replace the weekly pattern for that date;
        dated unavailable windows block their range. Touching or overlapping
        windows count as one continuous window. No windows at all means
        always available.
        """
        if not self.availability:
            return True

        dated = [w for w in self.availability if w.specific_date == day]
        for window in dated:
            if not window.available and windows_overlap(window.start_time, window.end_time, start, end):
                return False

        dated_open = [w for w in dated if w.available]
        if dated_open:
            candidates = dated_open
        else:
            candidates = [
                w for w in self.availability
                if w.specific_date is None and w.available and w.day_of_week == day.weekday()
            ]
            if not candidates and not any(w.specific_date is None for w in self.availability):
                # Only dated exceptions on file: the weekly pattern is open.
                return True
        merged = merge_windows((w.start_time, w.end_time) for w in candidates)
        return any(window_contains(s, e, start, end) for s, e in merged)


@dataclass(frozen=True)
class ShiftTemplateSpec:
    start_time: time
    end_time: time
    day_of_week: Optional[int] = None
    headcount: int = 1
    label: Optional[str] = None
    template_id: Optional[int] = None

    def applies_to(self, day: date) -> bool:
        return self.day_of_week is None or self.day_of_week == day.weekday()


@dataclass(frozen=True)
class RoleProfile:
    role_id: int
    name: str
    required_skill: Optional[str]
    templates: Tuple[ShiftTemplateSpec, ...] = ()


@dataclass(frozen=True)
class LeavePeriod:
    employee_id: int
    start_date: date
    end_date: date
    status: str = "approved"

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class ExistingAssignment:
    assignment_id: Optional[int]
    employee_id: int
    role_id: int
    date: date
    start_time: time
    end_time: time
    status: str = "draft"

    @property
    def hours(self) -> float:
        return (minutes_of(self.end_time) - minutes_of(self.start_time)) / 60.0

    @property
    def week_id(self) -> str:
        return iso_week_key(self.date)

    def overlaps(self, day: date, start: time, end: time) -> bool:
        return self.date == day and windows_overlap(self.start_time, self.end_time, start, end)


@dataclass(frozen=True)
class ShiftSlot:
    """One (role, date, window) coverage requirement."""

    role_id: int
    date: date
    start_time: time
    end_time: time
    required_skill: str
    headcount: int = 1
    prefilled_count: int = 0
    label: Optional[str] = None

    @property
    def open_count(self) -> int:
        return max(0, self.headcount - self.prefilled_count)

    @property
    def prefilled(self) -> bool:
        return self.open_count == 0

    @property
    def hours(self) -> float:
        return (minutes_of(self.end_time) - minutes_of(self.start_time)) / 60.0

    @property
    def minutes(self) -> int:
        return minutes_of(self.end_time) - minutes_of(self.start_time)

    @property
    def week_id(self) -> str:
        return iso_week_key(self.date)

    @property
    def key(self) -> Tuple[int, date, time, time]:
        return (self.role_id, self.date, self.start_time, self.end_time)

    def overlaps(self, other_date: date, start: time, end: time) -> bool:
        return self.date == other_date and windows_overlap(self.start_time, self.end_time, start, end)


@dataclass(frozen=True)
class Placement:
    """A tentative or final employee-to-slot decision."""

    slot: ShiftSlot
    employee_id: int
    preference: float = 0.0


@dataclass(frozen=True)
class UnfilledSlot:
    slot: ShiftSlot
    missing: int
    reason: str = ""

    def as_dict(self) -> dict:
        return {
            "role_id": self.slot.role_id,
            "date": self.slot.date.isoformat(),
            "start_time": self.slot.start_time.strftime("%H:%M"),
            "end_time": self.slot.end_time.strftime("%H:%M"),
            "missing": self.missing,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Everything a generation run reads, captured once."""

    department_id: Optional[int]
    start_date: date
    end_date: date
    employees: Tuple[EmployeeProfile, ...]
    roles: Tuple[RoleProfile, ...]
    leave: Tuple[LeavePeriod, ...] = ()
    existing: Tuple[ExistingAssignment, ...] = ()

    def employee(self, employee_id: int) -> Optional[EmployeeProfile]:
        for emp in self.employees:
            if emp.employee_id == employee_id:
                return emp
        return None
