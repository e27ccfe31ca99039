"""CSV export of assignments and employees."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd
from sqlalchemy.orm import Session

from autoroster.domain.models import Assignment
from autoroster.domain.repositories import AssignmentRepository, EmployeeRepository, RoleRepository
from autoroster.services.timeplan import calculate_shift_hours, format_time

logger = logging.getLogger(__name__)

ASSIGNMENT_COLUMNS = [
    "id",
    "employee_id",
    "employee_name",
    "role_id",
    "role_name",
    "date",
    "start_time",
    "end_time",
    "hours",
    "status",
    "version",
    "notes",
]


def assignments_frame(
    session: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
) -> pd.DataFrame:
    """Assignments as a DataFrame, optionally limited to a date range and status."""
    if start_date is not None and end_date is not None:
        rows = AssignmentRepository.get_by_date_range(session, start_date, end_date, status=status)
    else:
        rows = AssignmentRepository.get_all(session)
        if status is not None:
            rows = [a for a in rows if a.status == status]

    names = {e.employee_id: e.full_name for e in EmployeeRepository.get_all(session)}
    roles = {r.id: r.name for r in RoleRepository.get_all(session)}

    records = [_assignment_record(a, names, roles) for a in rows]
    return pd.DataFrame.from_records(records, columns=ASSIGNMENT_COLUMNS)


def _assignment_record(a: Assignment, names, roles) -> dict:
    return {
        "id": a.id,
        "employee_id": a.emp_id,
        "employee_name": names.get(a.emp_id, ""),
        "role_id": a.role_id,
        "role_name": roles.get(a.role_id, ""),
        "date": a.date.isoformat(),
        "start_time": format_time(a.start_time),
        "end_time": format_time(a.end_time),
        "hours": calculate_shift_hours(a.start_time, a.end_time),
        "status": a.status,
        "version": a.version,
        "notes": a.notes or "",
    }


def export_assignments_csv(
    session: Session,
    csv_path: str | Path,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
) -> int:
    """
    Export assignments to CSV.

    Args:
        session: Database session
        csv_path: Output path
        start_date: First day (inclusive); with end_date limits the export
        end_date: Last day (inclusive)
        status: Only rows with this status

    Returns:
        Number of rows written
    """
    df = assignments_frame(session, start_date, end_date, status)
    df.to_csv(csv_path, index=False)
    logger.info("Exported %d assignments to %s", len(df), csv_path)
    return len(df)


def export_employees_csv(session: Session, csv_path: str | Path) -> int:
    """Export employees in the same column layout import_employees_csv reads."""
    records = [
        {
            "employee_id": e.employee_id,
            "first_name": e.first_name,
            "last_name": e.last_name,
            "department_id": e.department_id,
            "skills": e.skills,
            "max_hours_per_week": e.max_hours_per_week,
            "active": "TRUE" if e.active else "FALSE",
        }
        for e in EmployeeRepository.get_all(session)
    ]
    df = pd.DataFrame.from_records(
        records,
        columns=["employee_id", "first_name", "last_name", "department_id", "skills", "max_hours_per_week", "active"],
    )
    df.to_csv(csv_path, index=False)
    logger.info("Exported %d employees to %s", len(df), csv_path)
    return len(df)
