"""Per-run workload tally used for fairness ordering and the objective."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from autoroster.domain.types import ExistingAssignment


class FairnessTracker:
    """
    Employee id -> hours assigned within the current generation run.

    Seeded from pre-existing assignments in the requested range, updated on
    each tentative placement and rolled back on backtrack.
    """

    def __init__(self, employee_ids: Iterable[int] = ()):
        self._hours: Dict[int, float] = {emp_id: 0.0 for emp_id in employee_ids}

    @classmethod
    def seeded(
        cls,
        employee_ids: Iterable[int],
        existing: Iterable[ExistingAssignment],
        start_date=None,
        end_date=None,
        statuses: Iterable[str] = ("confirmed",),
    ) -> "FairnessTracker":
        tracker = cls(employee_ids)
        allowed = set(statuses)
        for assignment in existing:
            if assignment.status not in allowed:
                continue
            if start_date is not None and assignment.date < start_date:
                continue
            if end_date is not None and assignment.date > end_date:
                continue
            if assignment.employee_id in tracker._hours:
                tracker.add(assignment.employee_id, assignment.hours)
        return tracker

    def hours(self, employee_id: int) -> float:
        return self._hours.get(employee_id, 0.0)

    def add(self, employee_id: int, hours: float) -> None:
        self._hours[employee_id] = self._hours.get(employee_id, 0.0) + hours

    def remove(self, employee_id: int, hours: float) -> None:
        remaining = self._hours.get(employee_id, 0.0) - hours
        # Float drift from repeated add/remove
        self._hours[employee_id] = 0.0 if abs(remaining) < 1e-9 else remaining

    def variance(self, employee_ids: Optional[Iterable[int]] = None) -> float:
        """Population variance of tallied hours."""
        ids = list(self._hours) if employee_ids is None else list(employee_ids)
        if not ids:
            return 0.0
        values = [self.hours(emp_id) for emp_id in ids]
        mean = sum(values) / len(values)
        return sum((v - mean) ** 2 for v in values) / len(values)

    def copy(self) -> "FairnessTracker":
        clone = FairnessTracker()
        clone._hours = dict(self._hours)
        return clone

    def merge(self, other: "FairnessTracker", baseline: Optional["FairnessTracker"] = None) -> None:
        """
        Fold another tracker's hours into this one.

        With a baseline, only the other tracker's increase over the baseline
        is added (partitions all start from the same seed).
        """
        for emp_id, hours in other._hours.items():
            delta = hours - (baseline.hours(emp_id) if baseline is not None else 0.0)
            if delta:
                self.add(emp_id, delta)

    def as_dict(self) -> Dict[int, float]:
        return dict(self._hours)

    def __len__(self) -> int:
        return len(self._hours)
