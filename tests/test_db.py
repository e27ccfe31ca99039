"""Tests for database helpers and the assignment version column."""

import datetime as dt

import pytest
from sqlalchemy.orm.exc import StaleDataError

from autoroster.cli import main
from autoroster.domain.db import get_session, init_database, reset_database
from autoroster.domain.models import Assignment, Department, Employee
from autoroster.domain.repositories import AssignmentRepository, DatabaseManager, EmployeeRepository


def test_database_manager_round_trip():
    manager = DatabaseManager("sqlite:///:memory:")
    manager.create_tables()
    session = manager.get_session()
    session.add(Department(id=1, name="Front"))
    session.add(Employee(employee_id=7, first_name="Ana", last_name="Reyes", department_id=1, skills="cashier"))
    session.commit()

    employee = EmployeeRepository.get_by_id(session, 7)
    assert employee.skill_set == frozenset({"cashier"})
    assert EmployeeRepository.get_by_department(session, 1) == [employee]
    session.close()
    manager.drop_tables()


def test_reset_database_deletes_rows(tmp_path):
    url = f"sqlite:///{tmp_path / 'roster.db'}"
    init_database(url)
    session = get_session(url)
    session.add(Department(id=1, name="Front"))
    session.commit()
    session.close()

    reset_database(url)
    session = get_session(url)
    assert session.get(Department, 1) is None
    session.close()


def test_cli_reset(tmp_path, capsys):
    url = f"sqlite:///{tmp_path / 'roster.db'}"
    assert main(["--db", url, "init-db"]) == 0
    assert main(["--db", url, "init-db", "--reset"]) == 0
    assert "[OK] Database reset" in capsys.readouterr().out


def test_stale_write_is_detected(tmp_path):
    """Two sessions editing the same row: the second flush fails."""
    url = f"sqlite:///{tmp_path / 'roster.db'}"
    init_database(url)
    first = get_session(url)
    row = AssignmentRepository.create(
        first,
        Assignment(emp_id=1, role_id=1, date=dt.date(2025, 9, 1), start_time=dt.time(9), end_time=dt.time(17)),
    )
    assert row.version == 1

    second = get_session(url)
    other = second.get(Assignment, row.id)
    other.notes = "moved"
    second.commit()
    assert other.version == 2

    row.notes = "kept"
    with pytest.raises(StaleDataError):
        first.commit()
    first.rollback()
    first.close()
    second.close()
