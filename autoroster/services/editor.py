"""Manual create / update / delete of single assignments."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from autoroster.config import SchedulerConfig
from autoroster.domain.models import Assignment, Employee, Role, parse_skills
from autoroster.domain.repositories import (
    AssignmentRepository,
    EmployeeRepository,
    LeaveRepository,
    RoleRepository,
)
from autoroster.errors import ConflictError, ValidationError
from autoroster.schemas import AssignmentPayload, AssignmentUpdatePayload, ModelT, coerce, describe_errors

from .timeplan import format_time, iso_week_bounds, minutes_of, parse_time_string, windows_overlap

logger = logging.getLogger(__name__)


def _validated(model: Type[ModelT], data) -> ModelT:
    """Typed payloads pass through unchanged; raw mappings are validated here."""
    try:
        return coerce(model, data)
    except PydanticValidationError as exc:
        raise ValidationError(describe_errors(exc, root="payload")) from exc


class AssignmentEditor:
    """
    Validated single-assignment edits.

    Field problems, unknown references, skill mismatches and approved leave
    raise ValidationError; collisions with stored assignments (overlap, weekly
    cap, stale version) raise ConflictError. Nothing is written when a check
    fails.
    """

    def __init__(self, session: Session, cfg: Optional[SchedulerConfig] = None):
        self.session = session
        self.cfg = cfg or SchedulerConfig()

    # -- field handling -----------------------------------------------------

    def _fields(self, payload: AssignmentPayload) -> Dict[str, Any]:
        fields = {
            "emp_id": payload.employee_id,
            "role_id": payload.role_id,
            "date": payload.date,
            "start_time": payload.start_time,
            "end_time": payload.end_time,
            "notes": payload.notes,
        }
        if fields["start_time"] is None:
            fields["start_time"] = parse_time_string(self.cfg.default_shift.start)
        if fields["end_time"] is None:
            fields["end_time"] = parse_time_string(self.cfg.default_shift.end)
        if fields["end_time"] <= fields["start_time"]:
            raise ValidationError(
                f"end_time {format_time(fields['end_time'])} must be later than "
                f"start_time {format_time(fields['start_time'])}"
            )
        return fields

    # -- rule checks ---------------------------------------------------------

    def _check(self, fields: Dict[str, Any], exclude_id: Optional[int] = None) -> None:
        employee: Optional[Employee] = EmployeeRepository.get_by_id(self.session, fields["emp_id"])
        if employee is None:
            raise ValidationError(f"Unknown employee {fields['emp_id']}")
        role: Optional[Role] = RoleRepository.get_by_id(self.session, fields["role_id"])
        if role is None:
            raise ValidationError(f"Unknown role {fields['role_id']}")

        day = fields["date"]
        skill = (role.required_skill or "").strip().lower()
        if skill and skill not in parse_skills(employee.skills):
            raise ValidationError(
                f"Employee {employee.employee_id} lacks skill '{skill}' required by role {role.id}"
            )
        if LeaveRepository.get_overlapping(
            self.session, day, day, employee_ids=[employee.employee_id], approved_only=True
        ):
            raise ValidationError(f"Employee {employee.employee_id} has approved leave on {day.isoformat()}")

        week_start, week_end = iso_week_bounds(day, day)
        others = [
            a
            for a in AssignmentRepository.get_by_date_range(
                self.session, week_start, week_end, employee_ids=[employee.employee_id]
            )
            if a.id != exclude_id
        ]
        start, end = fields["start_time"], fields["end_time"]
        for other in others:
            if other.date == day and windows_overlap(other.start_time, other.end_time, start, end):
                raise ConflictError(
                    f"Employee {employee.employee_id} already works "
                    f"{format_time(other.start_time)}-{format_time(other.end_time)} on {day.isoformat()} "
                    f"(assignment {other.id})"
                )

        cap = employee.max_hours_per_week
        if cap is None:
            cap = self.cfg.hours.default_max_hours_per_week
        week_minutes = sum(minutes_of(a.end_time) - minutes_of(a.start_time) for a in others)
        total = week_minutes + minutes_of(end) - minutes_of(start)
        if total > cap * 60 + 1e-6:
            raise ConflictError(
                f"Employee {employee.employee_id} would work {total / 60:.1f}h in the week of "
                f"{week_start.isoformat()}, above the {cap}h cap"
            )

    def _get(self, assignment_id: int) -> Assignment:
        assignment = AssignmentRepository.get_by_id(self.session, assignment_id)
        if assignment is None:
            raise ValidationError(f"Unknown assignment {assignment_id}")
        return assignment

    def _commit(self, assignment: Assignment) -> None:
        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise ConflictError(f"Assignment {assignment.id} was modified concurrently") from exc

    # -- operations ------------------------------------------------------------

    def create(self, data: Union[AssignmentPayload, Mapping[str, Any]]) -> Assignment:
        """
        Create a draft assignment.

        Args:
            data: an AssignmentPayload, or a mapping validated into one
                (employee_id, role_id, date, optional start_time/end_time
                and notes; omitted times use the configured default shift)

        Returns:
            The stored Assignment (version 1)
        """
        fields = self._fields(_validated(AssignmentPayload, data))
        self._check(fields)
        assignment = AssignmentRepository.create(self.session, Assignment(status="draft", **fields))
        logger.info("Editor: created assignment %s", assignment.id)
        return assignment

    def update(self, assignment_id: int, data: Union[AssignmentUpdatePayload, Mapping[str, Any]]) -> Assignment:
        """
        Replace an assignment's fields when the caller's version is current.

        Raises:
            ValidationError: Unknown id, bad fields or a hard-rule failure
            ConflictError: Stale version, overlap or weekly cap
        """
        payload = _validated(AssignmentUpdatePayload, data)
        assignment = self._get(assignment_id)
        version = payload.version
        if version != assignment.version:
            raise ConflictError(
                f"Assignment {assignment_id} is at version {assignment.version}, update was for {version}"
            )
        fields = self._fields(payload)
        self._check(fields, exclude_id=assignment.id)

        for name, value in fields.items():
            setattr(assignment, name, value)
        self._commit(assignment)
        logger.info("Editor: updated assignment %s to version %s", assignment.id, assignment.version)
        return assignment

    def confirm(self, assignment_id: int, version: Optional[int] = None) -> Assignment:
        """Move a draft to confirmed; with a version, only if it is current."""
        assignment = self._get(assignment_id)
        if version is not None and version != assignment.version:
            raise ConflictError(
                f"Assignment {assignment_id} is at version {assignment.version}, confirm was for {version}"
            )
        if assignment.status != "confirmed":
            assignment.status = "confirmed"
            self._commit(assignment)
            logger.info("Editor: confirmed assignment %s", assignment.id)
        return assignment

    def delete(self, assignment_id: int) -> bool:
        assignment = AssignmentRepository.get_by_id(self.session, assignment_id)
        if assignment is None:
            return False
        AssignmentRepository.delete(self.session, assignment)
        logger.info("Editor: deleted assignment %s", assignment_id)
        return True

    def list(
        self,
        start_date: date,
        end_date: date,
        employee_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Assignment]:
        if end_date < start_date:
            raise ValidationError("end_date is before start_date")
        return AssignmentRepository.get_by_date_range(
            self.session,
            start_date,
            end_date,
            employee_ids=[employee_id] if employee_id is not None else None,
            status=status,
        )
