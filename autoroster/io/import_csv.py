"""CSV import utilities to load data into database."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pandas as pd
from sqlalchemy.orm import Session

from autoroster.domain.models import (
    AvailabilityWindow,
    Department,
    Employee,
    LeaveRequest,
    Role,
    RolePreference,
    ShiftTemplate,
    format_skills,
)
from autoroster.errors import ValidationError
from autoroster.services.timeplan import parse_time_string

logger = logging.getLogger(__name__)

_TRUE = {"TRUE", "T", "1", "YES", "Y"}


def _read(csv_path: str | Path, required: Iterable[str]) -> pd.DataFrame:
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=True)
    # Normalize column names
    df.columns = df.columns.str.lower().str.strip()
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValidationError(f"{csv_path}: missing columns {missing}")
    return df


def _text(row, name: str, default: str | None = None) -> str | None:
    value = row.get(name)
    if value is None or pd.isna(value) or str(value).strip() == "":
        return default
    return str(value).strip()


def _int(row, name: str, default: int | None = None) -> int | None:
    value = _text(row, name)
    return int(float(value)) if value is not None else default


def _float(row, name: str, default: float | None = None) -> float | None:
    value = _text(row, name)
    return float(value) if value is not None else default


def _bool(row, name: str, default: bool = True) -> bool:
    value = _text(row, name)
    return value.upper() in _TRUE if value is not None else default


def _date(row, name: str):
    value = _text(row, name)
    return pd.to_datetime(value).date() if value is not None else None


def import_departments_csv(session: Session, csv_path: str | Path) -> int:
    """Import departments (department_id, name)."""
    df = _read(csv_path, ["department_id", "name"])
    departments = [Department(id=_int(row, "department_id"), name=_text(row, "name")) for _, row in df.iterrows()]
    session.add_all(departments)
    session.commit()
    logger.info("Imported %d departments from %s", len(departments), csv_path)
    return len(departments)


def import_employees_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import employees from CSV into database.

    Columns: employee_id, first_name, last_name, department_id, skills
    (';'-separated), max_hours_per_week (blank = configured default), active.

    Args:
        session: Database session
        csv_path: Path to employees CSV

    Returns:
        Number of employees imported
    """
    df = _read(csv_path, ["employee_id", "first_name", "last_name"])

    employees = []
    for _, row in df.iterrows():
        skills = _text(row, "skills", "")
        employees.append(
            Employee(
                employee_id=_int(row, "employee_id"),
                first_name=_text(row, "first_name"),
                last_name=_text(row, "last_name"),
                department_id=_int(row, "department_id"),
                skills=format_skills(skills.split(";")),
                max_hours_per_week=_float(row, "max_hours_per_week"),
                active=_bool(row, "active", True),
            )
        )

    session.add_all(employees)
    session.commit()
    logger.info("Imported %d employees from %s", len(employees), csv_path)
    return len(employees)


def import_roles_csv(session: Session, csv_path: str | Path) -> int:
    """Import roles (role_id, department_id, name, required_skill)."""
    df = _read(csv_path, ["role_id", "name", "required_skill"])
    roles = [
        Role(
            id=_int(row, "role_id"),
            department_id=_int(row, "department_id"),
            name=_text(row, "name"),
            required_skill=(_text(row, "required_skill") or "").lower() or None,
        )
        for _, row in df.iterrows()
    ]
    session.add_all(roles)
    session.commit()
    logger.info("Imported %d roles from %s", len(roles), csv_path)
    return len(roles)


def import_templates_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import shift templates.

    Columns: role_id, day_of_week (0 = Monday, blank = every day), start_time,
    end_time, headcount (default 1), label.
    """
    df = _read(csv_path, ["role_id", "start_time", "end_time"])
    templates = []
    for _, row in df.iterrows():
        try:
            start = parse_time_string(_text(row, "start_time"))
            end = parse_time_string(_text(row, "end_time"))
        except ValueError as exc:
            raise ValidationError(f"{csv_path}: {exc}") from exc
        templates.append(
            ShiftTemplate(
                role_id=_int(row, "role_id"),
                day_of_week=_int(row, "day_of_week"),
                start_time=start,
                end_time=end,
                headcount=_int(row, "headcount", 1),
                label=_text(row, "label"),
            )
        )
    session.add_all(templates)
    session.commit()
    logger.info("Imported %d shift templates from %s", len(templates), csv_path)
    return len(templates)


def import_availability_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import availability windows.

    Columns: employee_id, day_of_week or date, start_time, end_time,
    available (default TRUE; FALSE blocks the window on that date).
    """
    df = _read(csv_path, ["employee_id", "start_time", "end_time"])
    windows = []
    for _, row in df.iterrows():
        try:
            start = parse_time_string(_text(row, "start_time"))
            end = parse_time_string(_text(row, "end_time"))
        except ValueError as exc:
            raise ValidationError(f"{csv_path}: {exc}") from exc
        windows.append(
            AvailabilityWindow(
                emp_id=_int(row, "employee_id"),
                day_of_week=_int(row, "day_of_week"),
                specific_date=_date(row, "date"),
                start_time=start,
                end_time=end,
                available=_bool(row, "available", True),
            )
        )
    session.add_all(windows)
    session.commit()
    logger.info("Imported %d availability windows from %s", len(windows), csv_path)
    return len(windows)


def import_leave_csv(session: Session, csv_path: str | Path) -> int:
    """Import leave requests (employee_id, start_date, end_date, status, reason)."""
    df = _read(csv_path, ["employee_id", "start_date", "end_date"])
    requests = [
        LeaveRequest(
            emp_id=_int(row, "employee_id"),
            start_date=_date(row, "start_date"),
            end_date=_date(row, "end_date"),
            status=(_text(row, "status") or "pending").lower(),
            reason=_text(row, "reason"),
        )
        for _, row in df.iterrows()
    ]
    session.add_all(requests)
    session.commit()
    logger.info("Imported %d leave requests from %s", len(requests), csv_path)
    return len(requests)


def import_preferences_csv(session: Session, csv_path: str | Path) -> int:
    """Import role preferences (employee_id, role_id, weight)."""
    df = _read(csv_path, ["employee_id", "role_id"])
    # Later rows win for the same employee and role
    df = df.drop_duplicates(subset=["employee_id", "role_id"], keep="last")
    preferences = [
        RolePreference(
            emp_id=_int(row, "employee_id"),
            role_id=_int(row, "role_id"),
            weight=_float(row, "weight", 1.0),
        )
        for _, row in df.iterrows()
    ]
    session.add_all(preferences)
    session.commit()
    logger.info("Imported %d role preferences from %s", len(preferences), csv_path)
    return len(preferences)
