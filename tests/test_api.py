"""Tests for the request/response boundary."""

import datetime as dt

import pytest
from sqlalchemy.exc import OperationalError

from autoroster.api import (
    handle_confirm,
    handle_create,
    handle_delete,
    handle_generate,
    handle_list,
    handle_update,
)
from autoroster.engine.registry import GenerationRegistry
from autoroster.schemas import AssignmentPayload
from autoroster.services.editor import AssignmentEditor

MONDAY = dt.date(2025, 9, 1)


@pytest.fixture
def registry():
    return GenerationRegistry()


def test_generate_success(cashier_store, registry):
    status, body = handle_generate(
        cashier_store, {"start_date": "2025-09-01", "end_date": "2025-09-05", "department_id": 1}, registry=registry
    )
    assert status == 200
    assert body == {
        "success": True,
        "schedules_created": 5,
        "unfilled_slots": [],
        "time_bound": False,
        "error": None,
    }


def test_generate_malformed_request(cashier_store, registry):
    status, body = handle_generate(cashier_store, {"start_date": "someday", "department_id": 1}, registry=registry)
    assert status == 400
    assert body["success"] is False
    assert "start_date" in body["error"]
    assert "end_date" in body["error"]


def test_generate_inverted_range(cashier_store, registry):
    status, body = handle_generate(
        cashier_store, {"start_date": "2025-09-05", "end_date": "2025-09-01", "department_id": 1}, registry=registry
    )
    assert status == 400
    assert body["success"] is False
    assert body["schedules_created"] == 0


def test_generate_while_in_progress(cashier_store, registry):
    with registry.claim(1, MONDAY, MONDAY):
        status, body = handle_generate(
            cashier_store,
            {"start_date": "2025-09-01", "end_date": "2025-09-05", "department_id": 1},
            registry=registry,
        )
    assert status == 409
    assert body["success"] is False
    assert "in progress" in body["error"]


def test_create_update_confirm_delete(cashier_store):
    status, record = handle_create(cashier_store, {"employee_id": 1, "role_id": 1, "date": "2025-09-01"})
    assert status == 201
    assert record["start_time"] == "09:00"
    assert record["end_time"] == "17:00"
    assert record["status"] == "draft"
    assert record["version"] == 1
    assert record["date"] == "2025-09-01"

    status, record = handle_update(
        cashier_store,
        record["id"],
        {"employee_id": 1, "role_id": 1, "date": "2025-09-01", "start_time": "10:00", "end_time": "18:00", "version": 1},
    )
    assert status == 200
    assert record["start_time"] == "10:00"
    assert record["version"] == 2

    status, record = handle_confirm(cashier_store, record["id"], version=2)
    assert status == 200
    assert record["status"] == "confirmed"

    status, body = handle_delete(cashier_store, record["id"])
    assert (status, body) == (200, {"deleted": True})
    assert handle_delete(cashier_store, record["id"]) == (200, {"deleted": False})


def test_create_conflict_and_validation(cashier_store):
    assert handle_create(cashier_store, {"employee_id": 1, "role_id": 1, "date": "2025-09-01"})[0] == 201

    status, body = handle_create(
        cashier_store, {"employee_id": 1, "role_id": 1, "date": "2025-09-01", "start_time": "12:00", "end_time": "20:00"}
    )
    assert status == 409
    assert "already works" in body["error"]

    status, body = handle_create(cashier_store, {"role_id": 1, "date": "2025-09-01"})
    assert status == 400
    assert "employee_id" in body["error"]

    status, body = handle_create(cashier_store, {"employee_id": 77, "role_id": 1, "date": "2025-09-01"})
    assert status == 400
    assert "Unknown employee" in body["error"]


def test_update_stale_version(cashier_store):
    _, record = handle_create(cashier_store, {"employee_id": 1, "role_id": 1, "date": "2025-09-01"})
    payload = {"employee_id": 1, "role_id": 1, "date": "2025-09-01", "notes": "swap", "version": 1}
    assert handle_update(cashier_store, record["id"], payload)[0] == 200
    status, body = handle_update(cashier_store, record["id"], payload)
    assert status == 409

    status, body = handle_update(cashier_store, record["id"], {"employee_id": 1, "role_id": 1, "date": "2025-09-01"})
    assert status == 400
    assert "version" in body["error"]


def test_list(cashier_store):
    handle_create(cashier_store, {"employee_id": 1, "role_id": 1, "date": "2025-09-01"})
    handle_create(cashier_store, {"employee_id": 2, "role_id": 1, "date": "2025-09-02"})

    status, body = handle_list(cashier_store, {"start_date": "2025-09-01", "end_date": "2025-09-07"})
    assert status == 200
    assert [(a["employee_id"], a["status"], a["version"]) for a in body["assignments"]] == [
        (1, "draft", 1),
        (2, "draft", 1),
    ]

    status, body = handle_list(cashier_store, {"start_date": "2025-09-01", "end_date": "2025-09-07", "employee_id": 2})
    assert [a["employee_id"] for a in body["assignments"]] == [2]

    status, _ = handle_list(cashier_store, {"start_date": "2025-09-07", "end_date": "2025-09-01"})
    assert status == 400


def _locked(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


def test_unexpected_database_error_is_a_500(cashier_store, registry, monkeypatch, caplog):
    monkeypatch.setattr("autoroster.engine.orchestrator.load_snapshot", _locked)
    status, body = handle_generate(
        cashier_store, {"start_date": "2025-09-01", "end_date": "2025-09-05", "department_id": 1}, registry=registry
    )
    assert status == 500
    assert body["success"] is False
    assert body["error"] == "Internal error"
    assert registry.active() == []
    assert "generate failed unexpectedly" in caplog.text


def test_editor_failures_outside_the_taxonomy_are_a_500(cashier_store, monkeypatch):
    monkeypatch.setattr("autoroster.services.editor.AssignmentEditor.list", _locked)
    monkeypatch.setattr("autoroster.services.editor.AssignmentEditor.create", _locked)

    status, body = handle_list(cashier_store, {"start_date": "2025-09-01", "end_date": "2025-09-07"})
    assert (status, body) == (500, {"error": "Internal error"})
    status, _ = handle_create(cashier_store, {"employee_id": 1, "role_id": 1, "date": "2025-09-01"})
    assert status == 500


def test_handlers_pass_typed_payloads_to_the_editor(cashier_store, monkeypatch):
    seen = []
    original = AssignmentEditor.create

    def record(self, data):
        seen.append(data)
        return original(self, data)

    monkeypatch.setattr(AssignmentEditor, "create", record)
    status, _ = handle_create(cashier_store, {"employee_id": "1", "role_id": 1, "date": "2025-09-01"})

    assert status == 201
    assert isinstance(seen[0], AssignmentPayload)
    assert seen[0].employee_id == 1
    assert seen[0].date == MONDAY
