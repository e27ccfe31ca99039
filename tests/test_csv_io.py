"""Tests for CSV import/export functionality."""

import datetime as dt

import pandas as pd
import pytest

from autoroster.domain.models import AvailabilityWindow, Employee, LeaveRequest, Role, RolePreference, ShiftTemplate
from autoroster.domain.repositories import AssignmentRepository, EmployeeRepository, RoleRepository
from autoroster.errors import ValidationError
from autoroster.io.export_csv import ASSIGNMENT_COLUMNS, export_assignments_csv, export_employees_csv
from autoroster.io.import_csv import (
    import_availability_csv,
    import_departments_csv,
    import_employees_csv,
    import_leave_csv,
    import_preferences_csv,
    import_roles_csv,
    import_templates_csv,
)
from autoroster.services.editor import AssignmentEditor


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content)
    return path


def test_import_employees_csv(db_session, tmp_path):
    """Test importing employees from CSV."""
    csv_file = _write(
        tmp_path,
        "employees.csv",
        """Employee_ID,First_Name,Last_Name,department_id,skills,max_hours_per_week,active
1001,Max,Hayes,,Cashier;stock,32,TRUE
1002,Mia,Stone,,cashier,,
1003,Ben,Park,,,20,FALSE
""",
    )

    assert import_employees_csv(db_session, csv_file) == 3

    max_ = EmployeeRepository.get_by_id(db_session, 1001)
    assert max_.full_name == "Max Hayes"
    assert max_.skills == "cashier;stock"
    assert max_.max_hours_per_week == 32.0
    assert max_.active is True

    mia = EmployeeRepository.get_by_id(db_session, 1002)
    assert mia.max_hours_per_week is None
    assert mia.active is True

    ben = EmployeeRepository.get_by_id(db_session, 1003)
    assert ben.skills == ""
    assert ben.active is False


def test_import_missing_columns(db_session, tmp_path):
    csv_file = _write(tmp_path, "employees.csv", "employee_id,first_name\n1,Max\n")
    with pytest.raises(ValidationError, match="last_name"):
        import_employees_csv(db_session, csv_file)


def test_import_store_setup(db_session, tmp_path):
    """Departments, roles, templates, availability, leave and preferences."""
    import_departments_csv(db_session, _write(tmp_path, "departments.csv", "department_id,name\n1,Front\n"))
    import_employees_csv(
        db_session,
        _write(tmp_path, "employees.csv", "employee_id,first_name,last_name,department_id,skills\n1,Ana,Reyes,1,cashier\n"),
    )
    import_roles_csv(
        db_session,
        _write(tmp_path, "roles.csv", "role_id,department_id,name,required_skill\n1,1,Cashier,CASHIER\n"),
    )
    count = import_templates_csv(
        db_session,
        _write(
            tmp_path,
            "templates.csv",
            "role_id,day_of_week,start_time,end_time,headcount,label\n1,0,09:00,17:00,2,Monday\n1,,07:00,11:00,,\n",
        ),
    )
    assert count == 2

    assert RoleRepository.get_by_id(db_session, 1).required_skill == "cashier"
    templates = db_session.query(ShiftTemplate).order_by(ShiftTemplate.start_time).all()
    assert [(t.day_of_week, t.start_time, t.headcount) for t in templates] == [
        (None, dt.time(7), 1),
        (0, dt.time(9), 2),
    ]

    import_availability_csv(
        db_session,
        _write(
            tmp_path,
            "availability.csv",
            "employee_id,day_of_week,date,start_time,end_time,available\n"
            "1,0,,08:00,18:00,\n"
            "1,,2025-09-02,00:00,23:59,FALSE\n",
        ),
    )
    windows = db_session.query(AvailabilityWindow).order_by(AvailabilityWindow.id).all()
    assert [(w.day_of_week, w.specific_date, w.available) for w in windows] == [
        (0, None, True),
        (None, dt.date(2025, 9, 2), False),
    ]

    import_leave_csv(
        db_session,
        _write(tmp_path, "leave.csv", "employee_id,start_date,end_date,status\n1,2025-09-10,2025-09-12,Approved\n1,2025-10-01,2025-10-01,\n"),
    )
    leave = db_session.query(LeaveRequest).order_by(LeaveRequest.start_date).all()
    assert [lr.status for lr in leave] == ["approved", "pending"]
    assert leave[0].end_date == dt.date(2025, 9, 12)

    count = import_preferences_csv(
        db_session,
        _write(tmp_path, "preferences.csv", "employee_id,role_id,weight\n1,1,1.0\n1,1,3.5\n"),
    )
    assert count == 1
    assert db_session.query(RolePreference).one().weight == 3.5


def test_import_templates_rejects_bad_time(db_session, tmp_path):
    db_session.add(Role(id=1, name="Cashier", required_skill="cashier"))
    db_session.commit()
    csv_file = _write(tmp_path, "templates.csv", "role_id,start_time,end_time\n1,9am,17:00\n")
    with pytest.raises(ValidationError):
        import_templates_csv(db_session, csv_file)


def test_export_assignments_csv(cashier_store, tmp_path):
    editor = AssignmentEditor(cashier_store)
    editor.create({"employee_id": 1, "role_id": 1, "date": "2025-09-01", "notes": "opening"})
    second = editor.create({"employee_id": 2, "role_id": 1, "date": "2025-09-08", "start_time": "12:00", "end_time": "16:00"})
    editor.confirm(second.id)

    out = tmp_path / "assignments.csv"
    assert export_assignments_csv(cashier_store, out) == 2

    df = pd.read_csv(out, dtype=str, keep_default_na=False)
    assert list(df.columns) == ASSIGNMENT_COLUMNS
    assert df.loc[0, "employee_name"] == "Ana Reyes"
    assert df.loc[0, "role_name"] == "Cashier"
    assert df.loc[0, "start_time"] == "09:00"
    assert float(df.loc[0, "hours"]) == 8.0
    assert df.loc[0, "notes"] == "opening"
    assert df.loc[1, "status"] == "confirmed"
    assert df.loc[1, "version"] == "2"

    # Range and status filters
    assert export_assignments_csv(cashier_store, out, dt.date(2025, 9, 1), dt.date(2025, 9, 7)) == 1
    assert export_assignments_csv(cashier_store, out, status="draft") == 1
    assert export_assignments_csv(cashier_store, out, status="cancelled") == 0
    assert list(pd.read_csv(out).columns) == ASSIGNMENT_COLUMNS


def test_export_employees_reimports(cashier_store, tmp_path):
    cashier_store.get(Employee, 2).max_hours_per_week = 24.0
    cashier_store.commit()
    out = tmp_path / "employees.csv"
    assert export_employees_csv(cashier_store, out) == 2

    # Wipe the roster and load it back from the export
    for e in EmployeeRepository.get_all(cashier_store):
        cashier_store.delete(e)
    cashier_store.commit()
    assert import_employees_csv(cashier_store, out) == 2

    ben = EmployeeRepository.get_by_id(cashier_store, 2)
    assert ben.max_hours_per_week == 24.0
    assert ben.skills == "cashier"
    assert ben.department_id == 1
    assert EmployeeRepository.get_by_id(cashier_store, 1).max_hours_per_week is None
    assert AssignmentRepository.get_all(cashier_store) == []
