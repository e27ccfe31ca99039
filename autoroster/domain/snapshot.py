"""Read a consistent in-memory snapshot for one generation run."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from autoroster.services.timeplan import iso_week_bounds

from .models import Assignment, Employee, Role
from .repositories import AssignmentRepository, EmployeeRepository, LeaveRepository, RoleRepository
from .types import (
    AvailabilitySpec,
    EmployeeProfile,
    ExistingAssignment,
    LeavePeriod,
    RoleProfile,
    ScheduleSnapshot,
    ShiftTemplateSpec,
)

logger = logging.getLogger(__name__)


def employee_profile(employee: Employee, default_max_hours: float) -> EmployeeProfile:
    availability = tuple(
        AvailabilitySpec(
            start_time=w.start_time,
            end_time=w.end_time,
            day_of_week=w.day_of_week,
            specific_date=w.specific_date,
            available=bool(w.available),
        )
        for w in employee.availability
    )
    cap = employee.max_hours_per_week
    return EmployeeProfile(
        employee_id=employee.employee_id,
        name=employee.full_name,
        skills=employee.skill_set,
        max_hours_per_week=float(cap) if cap is not None else float(default_max_hours),
        availability=availability,
        preferences={p.role_id: float(p.weight) for p in employee.preferences},
    )


def role_profile(role: Role) -> RoleProfile:
    templates = tuple(
        ShiftTemplateSpec(
            start_time=t.start_time,
            end_time=t.end_time,
            day_of_week=t.day_of_week,
            headcount=t.headcount if t.headcount is not None else 1,
            label=t.label,
            template_id=t.id,
        )
        for t in role.templates
    )
    return RoleProfile(
        role_id=role.id,
        name=role.name,
        required_skill=role.required_skill.strip().lower() if role.required_skill else None,
        templates=templates,
    )


def existing_assignment(row: Assignment) -> ExistingAssignment:
    return ExistingAssignment(
        assignment_id=row.id,
        employee_id=row.emp_id,
        role_id=row.role_id,
        date=row.date,
        start_time=row.start_time,
        end_time=row.end_time,
        status=row.status,
    )


def load_snapshot(
    session: Session,
    department_id: int,
    start_date: date,
    end_date: date,
    default_max_hours: float = 40.0,
) -> ScheduleSnapshot:
    """
    Load employees, roles, leave and existing assignments for a run.

    Existing assignments are loaded for the whole ISO weeks touching the range
    so weekly caps see hours worked just outside it.

    Args:
        session: Database session
        department_id: Department whose roles are staffed
        start_date: First day of the range (inclusive)
        end_date: Last day of the range (inclusive)
        default_max_hours: Weekly cap for employees without their own

    Returns:
        ScheduleSnapshot
    """
    employees = EmployeeRepository.get_by_department(session, department_id)
    roles = RoleRepository.get_by_department(session, department_id)
    employee_ids = [e.employee_id for e in employees]
    role_ids = [r.id for r in roles]

    week_start, week_end = iso_week_bounds(start_date, end_date)
    leave_rows = LeaveRepository.get_overlapping(session, week_start, week_end, employee_ids=employee_ids)
    assignment_rows = AssignmentRepository.get_by_date_range(
        session, week_start, week_end, employee_ids=employee_ids, role_ids=role_ids
    )

    snapshot = ScheduleSnapshot(
        department_id=department_id,
        start_date=start_date,
        end_date=end_date,
        employees=tuple(employee_profile(e, default_max_hours) for e in employees),
        roles=tuple(role_profile(r) for r in roles),
        leave=tuple(
            LeavePeriod(
                employee_id=lr.emp_id,
                start_date=lr.start_date,
                end_date=lr.end_date,
                status=lr.status,
            )
            for lr in leave_rows
        ),
        existing=tuple(existing_assignment(a) for a in assignment_rows),
    )
    logger.info(
        "Snapshot: department %s, %s..%s, %d employees, %d roles, %d existing assignments",
        department_id,
        start_date,
        end_date,
        len(snapshot.employees),
        len(snapshot.roles),
        len(snapshot.existing),
    )
    return snapshot
