"""SQLAlchemy models for the staffing store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import DeclarativeBase, relationship

ASSIGNMENT_STATUSES = ("draft", "confirmed")
LEAVE_STATUSES = ("pending", "approved", "rejected")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Department(Base):
    """Organizational unit owning roles and employees."""

    __tablename__ = "departments"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)

    employees = relationship("Employee", back_populates="department")
    roles = relationship("Role", back_populates="department")

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, name='{self.name}')>"


class Employee(Base):
    """Employee with skills, weekly cap and availability."""

    __tablename__ = "employees"

    employee_id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    skills = Column(String(500), nullable=False, default="")  # Semicolon-separated tags
    max_hours_per_week = Column(Float, nullable=True)  # None = configured default

    department = relationship("Department", back_populates="employees")
    availability = relationship(
        "AvailabilityWindow",
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="AvailabilityWindow.id",
    )
    preferences = relationship("RolePreference", back_populates="employee", cascade="all, delete-orphan")
    leave_requests = relationship("LeaveRequest", back_populates="employee", cascade="all, delete-orphan")
    assignments = relationship("Assignment", back_populates="employee")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def skill_set(self) -> frozenset:
        return parse_skills(self.skills)

    def __repr__(self) -> str:
        return f"<Employee(id={self.employee_id}, name='{self.full_name}', skills='{self.skills}')>"


class AvailabilityWindow(Base):
    """
    Weekly (day_of_week) or dated (specific_date) availability entry.

    available=False marks a blocked window on a specific date.
    """

    __tablename__ = "availability_windows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    emp_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    day_of_week = Column(Integer, nullable=True)  # 0 = Monday
    specific_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    available = Column(Boolean, nullable=False, default=True)

    employee = relationship("Employee", back_populates="availability")

    def __repr__(self) -> str:
        when = self.specific_date or f"dow={self.day_of_week}"
        return f"<AvailabilityWindow(emp={self.emp_id}, {when}, {self.start_time}-{self.end_time}, available={self.available})>"


class RolePreference(Base):
    """How much an employee likes working a role (higher = preferred)."""

    __tablename__ = "role_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    emp_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    weight = Column(Float, nullable=False, default=1.0)

    employee = relationship("Employee", back_populates="preferences")


class Role(Base):
    """Role requiring a skill, staffed through shift templates."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    name = Column(String(100), nullable=False)
    required_skill = Column(String(100), nullable=True)

    department = relationship("Department", back_populates="roles")
    templates = relationship(
        "ShiftTemplate",
        back_populates="role",
        cascade="all, delete-orphan",
        order_by="ShiftTemplate.id",
    )
    assignments = relationship("Assignment", back_populates="role")

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}', skill='{self.required_skill}')>"


class ShiftTemplate(Base):
    """Recurring coverage requirement of a role (day_of_week None = every day)."""

    __tablename__ = "shift_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    day_of_week = Column(Integer, nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    headcount = Column(Integer, nullable=False, default=1)
    label = Column(String(50), nullable=True)  # e.g., "morning", "close"

    role = relationship("Role", back_populates="templates")


class LeaveRequest(Base):
    """Leave over an inclusive date range. Only approved leave blocks scheduling."""

    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    emp_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    reason = Column(Text, nullable=True)

    employee = relationship("Employee", back_populates="leave_requests")

    def __repr__(self) -> str:
        return f"<LeaveRequest(emp={self.emp_id}, {self.start_date}..{self.end_date}, status={self.status})>"


class Assignment(Base):
    """Employee working a role on a date between two times."""

    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    emp_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default="draft")  # draft, confirmed
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    employee = relationship("Employee", back_populates="assignments")
    role = relationship("Role", back_populates="assignments")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Assignment(id={self.id}, emp={self.emp_id}, role={self.role_id}, "
            f"{self.date} {self.start_time}-{self.end_time}, status={self.status})>"
        )


def parse_skills(raw: str | None) -> frozenset:
    """Normalize a ';'-separated skill string to a lowercase tag set."""
    if not raw:
        return frozenset()
    return frozenset(part.strip().lower() for part in str(raw).split(";") if part.strip())


def format_skills(skills) -> str:
    return ";".join(sorted({str(s).strip().lower() for s in skills if str(s).strip()}))
