"""Pytest configuration and shared fixtures."""

import datetime as dt
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from autoroster.domain.models import Base, Department, Employee, Role, ShiftTemplate
from autoroster.domain.types import EmployeeProfile, RoleProfile, ScheduleSnapshot, ShiftTemplateSpec
from autoroster.engine.base import SearchBudget
from autoroster.engine.search import BacktrackingSearch
from autoroster.services.constraints import CandidateFilter, ScheduleLedger
from autoroster.services.fairness import FairnessTracker
from autoroster.services.requirements import expand_requirements, open_units

MONDAY = dt.date(2025, 9, 1)  # ISO week 2025-W36
FRIDAY = dt.date(2025, 9, 5)


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def db_session():
    """Create in-memory database session for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def cashier_store(db_session):
    """Department 1 with a weekday 09:00-17:00 cashier role and two cashiers."""
    db_session.add(Department(id=1, name="Front of house"))
    db_session.add(
        Role(
            id=1,
            department_id=1,
            name="Cashier",
            required_skill="cashier",
            templates=[
                ShiftTemplate(day_of_week=d, start_time=dt.time(9), end_time=dt.time(17)) for d in range(5)
            ],
        )
    )
    db_session.add_all(
        [
            Employee(employee_id=1, first_name="Ana", last_name="Reyes", department_id=1, skills="cashier"),
            Employee(employee_id=2, first_name="Ben", last_name="Okafor", department_id=1, skills="cashier"),
        ]
    )
    db_session.commit()
    return db_session


def profile(emp_id, skills=("cashier",), cap=40.0, availability=(), preferences=None):
    return EmployeeProfile(
        employee_id=emp_id,
        name=f"Employee {emp_id}",
        skills=frozenset(skills),
        max_hours_per_week=cap,
        availability=tuple(availability),
        preferences=dict(preferences or {}),
    )


def weekday_role(role_id=1, skill="cashier", days=range(5), start=dt.time(9), end=dt.time(17), headcount=1):
    return RoleProfile(
        role_id=role_id,
        name=f"Role {role_id}",
        required_skill=skill,
        templates=tuple(
            ShiftTemplateSpec(start_time=start, end_time=end, day_of_week=d, headcount=headcount) for d in days
        ),
    )


def snapshot(employees, roles, start=MONDAY, end=FRIDAY, leave=(), existing=()):
    return ScheduleSnapshot(
        department_id=1,
        start_date=start,
        end_date=end,
        employees=tuple(employees),
        roles=tuple(roles),
        leave=tuple(leave),
        existing=tuple(existing),
    )


def solve(snap, solver=None, budget=None):
    """Run expansion, filtering and a solver over a snapshot."""
    slots = expand_requirements(snap.roles, snap.start_date, snap.end_date, snap.existing)
    units = open_units(slots)
    candidate_filter = CandidateFilter(snap)
    ledger = ScheduleLedger.from_existing(snap.existing)
    tracker = FairnessTracker.seeded(candidate_filter.employees, snap.existing, snap.start_date, snap.end_date)
    solver = solver or BacktrackingSearch()
    return solver.solve(units, candidate_filter, ledger, tracker, budget or SearchBudget.unbounded())


@pytest.fixture
def build():
    """Snapshot builders shared by the engine tests."""
    return SimpleNamespace(
        profile=profile,
        role=weekday_role,
        snapshot=snapshot,
        solve=solve,
        monday=MONDAY,
        friday=FRIDAY,
    )
