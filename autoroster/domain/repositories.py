"""Static-method repositories, one per aggregate, plus a small engine holder."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, sessionmaker

from .db import DEFAULT_DB_URL, create_db_engine
from .models import Assignment, Base, Department, Employee, LeaveRequest, Role


class DatabaseManager:
    """Owns one engine and its session factory for a database URL."""

    def __init__(self, db_url: str = DEFAULT_DB_URL):
        self.db_url = db_url
        self.engine = create_db_engine(db_url)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self):
        Base.metadata.create_all(self.engine)

    def drop_tables(self):
        """Drop every table, deleting all data."""
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        return self.SessionLocal()


class DepartmentRepository:
    """Repository for department data access."""

    @staticmethod
    def get_by_id(session: Session, department_id: int) -> Optional[Department]:
        return session.get(Department, department_id)


class EmployeeRepository:
    """Repository for employee data access."""

    @staticmethod
    def get_all(session: Session) -> List[Employee]:
        return session.query(Employee).order_by(Employee.employee_id).all()

    @staticmethod
    def get_by_id(session: Session, employee_id: int) -> Optional[Employee]:
        return session.get(Employee, employee_id)

    @staticmethod
    def get_by_department(session: Session, department_id: int, active_only: bool = True) -> List[Employee]:
        """Get employees of a department, ordered by id."""
        query = session.query(Employee).filter(Employee.department_id == department_id)
        if active_only:
            query = query.filter(Employee.active.is_(True))
        return query.order_by(Employee.employee_id).all()


class RoleRepository:
    """Repository for roles and their shift templates."""

    @staticmethod
    def get_all(session: Session) -> List[Role]:
        return session.query(Role).order_by(Role.id).all()

    @staticmethod
    def get_by_id(session: Session, role_id: int) -> Optional[Role]:
        return session.get(Role, role_id)

    @staticmethod
    def get_by_department(session: Session, department_id: int) -> List[Role]:
        return session.query(Role).filter(Role.department_id == department_id).order_by(Role.id).all()


class LeaveRepository:
    """Repository for leave requests."""

    @staticmethod
    def get_overlapping(
        session: Session,
        start_date: date,
        end_date: date,
        employee_ids: Iterable[int] | None = None,
        approved_only: bool = False,
    ) -> List[LeaveRequest]:
        """Leave requests intersecting [start_date, end_date]."""
        query = session.query(LeaveRequest).filter(
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        )
        if employee_ids is not None:
            query = query.filter(LeaveRequest.emp_id.in_(list(employee_ids)))
        if approved_only:
            query = query.filter(LeaveRequest.status == "approved")
        return query.order_by(LeaveRequest.emp_id, LeaveRequest.start_date).all()


class AssignmentRepository:
    """Repository for assignment data access."""

    @staticmethod
    def get_all(session: Session) -> List[Assignment]:
        return session.query(Assignment).order_by(Assignment.id).all()

    @staticmethod
    def get_by_id(session: Session, assignment_id: int) -> Optional[Assignment]:
        return session.get(Assignment, assignment_id)

    @staticmethod
    def get_by_date_range(
        session: Session,
        start_date: date,
        end_date: date,
        employee_ids: Iterable[int] | None = None,
        role_ids: Iterable[int] | None = None,
        status: str | None = None,
    ) -> List[Assignment]:
        """
        Get assignments dated within [start_date, end_date].

        When both employee_ids and role_ids are given, rows matching either are
        returned (used to load everything a department run can collide with).
        """
        query = session.query(Assignment).filter(
            Assignment.date >= start_date,
            Assignment.date <= end_date,
        )
        clauses = []
        if employee_ids is not None:
            clauses.append(Assignment.emp_id.in_(list(employee_ids)))
        if role_ids is not None:
            clauses.append(Assignment.role_id.in_(list(role_ids)))
        if clauses:
            query = query.filter(or_(*clauses))
        if status is not None:
            query = query.filter(Assignment.status == status)
        return query.order_by(Assignment.date, Assignment.start_time, Assignment.id).all()

    @staticmethod
    def create(session: Session, assignment: Assignment) -> Assignment:
        session.add(assignment)
        session.commit()
        session.refresh(assignment)
        return assignment

    @staticmethod
    def delete(session: Session, assignment: Assignment) -> None:
        session.delete(assignment)
        session.commit()
