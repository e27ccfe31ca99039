"""Post-generation validation and summaries of stored assignments."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from autoroster.domain.repositories import (
    AssignmentRepository,
    EmployeeRepository,
    LeaveRepository,
    RoleRepository,
)
from autoroster.domain.snapshot import employee_profile, existing_assignment, load_snapshot, role_profile
from autoroster.domain.types import LeavePeriod, ShiftSlot
from autoroster.services.constraints import find_violations
from autoroster.services.requirements import expand_requirements
from autoroster.services.timeplan import iso_week_bounds

logger = logging.getLogger(__name__)


def validate_range(
    session: Session,
    start_date: date,
    end_date: date,
    default_max_hours: float = 40.0,
) -> List[str]:
    """
    Check stored assignments touching [start_date, end_date] against the hard rules.

    Whole ISO weeks are loaded so weekly caps are judged on complete weeks.

    Returns:
        Violation messages, empty when the stored schedule is consistent
    """
    week_start, week_end = iso_week_bounds(start_date, end_date)
    employees = {
        e.employee_id: employee_profile(e, default_max_hours) for e in EmployeeRepository.get_all(session)
    }
    roles = {r.id: role_profile(r) for r in RoleRepository.get_all(session)}
    leave = [
        LeavePeriod(employee_id=lr.emp_id, start_date=lr.start_date, end_date=lr.end_date, status=lr.status)
        for lr in LeaveRepository.get_overlapping(session, week_start, week_end, approved_only=True)
    ]
    assignments = [
        existing_assignment(a) for a in AssignmentRepository.get_by_date_range(session, week_start, week_end)
    ]
    violations = find_violations(assignments, employees, roles, leave)
    if violations:
        logger.warning("Validator: %d violations in %s..%s", len(violations), week_start, week_end)
    else:
        logger.info("Validator: %d assignments in %s..%s are consistent", len(assignments), week_start, week_end)
    return violations


def coverage_gaps(
    session: Session,
    start_date: date,
    end_date: date,
    department_id: int,
    default_max_hours: float = 40.0,
) -> List[ShiftSlot]:
    """Slots of a department's roles that stored assignments do not fully cover."""
    snapshot = load_snapshot(session, department_id, start_date, end_date, default_max_hours)
    slots = expand_requirements(snapshot.roles, start_date, end_date, snapshot.existing)
    return [slot for slot in slots if slot.open_count > 0]


def summarize_assignments(assignments_df: pd.DataFrame, status: Optional[str] = None) -> str:
    """
    Text summary of coverage per day per role and hours per employee.

    Args:
        assignments_df: Frame with the export columns (see assignments_frame)
        status: Only summarize rows with this status
    """
    if status is not None and not assignments_df.empty:
        assignments_df = assignments_df[assignments_df["status"] == status]
    if assignments_df.empty:
        return "No assignments."

    ts = assignments_df.copy()
    ts["hours"] = ts["hours"].astype(float)

    coverage = ts.groupby(["date", "role_name"]).size().unstack(fill_value=0)
    hours = ts.groupby(["employee_id", "employee_name"])["hours"].sum().sort_values(ascending=False)
    by_status = ts.groupby("status").size()

    lines = ["Coverage per day per role:"]
    lines.append(coverage.to_string())
    lines.append("")
    lines.append("Hours per employee:")
    lines.append(hours.to_string())
    lines.append("")
    lines.append("Assignments by status:")
    lines.append(by_status.to_string())
    return "\n".join(lines)
