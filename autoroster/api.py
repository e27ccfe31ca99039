"""
Request/response boundary.

Payloads are validated once into the pydantic models of
``autoroster.schemas`` and handed to the services already typed. Handlers
return a ``(status_code, body)`` pair and translate autoroster errors into
their status codes; anything unexpected is logged and answered with 500.
Any web framework can mount these handlers directly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from autoroster.config import SchedulerConfig
from autoroster.domain.models import Assignment
from autoroster.engine.orchestrator import Orchestrator
from autoroster.engine.registry import GenerationRegistry
from autoroster.errors import SchedulerError
from autoroster.schemas import (
    AssignmentPayload,
    AssignmentRecord,
    AssignmentUpdatePayload,
    GenerateRequest,
    GenerateResponse,
    ListRequest,
    describe_errors,
)
from autoroster.services.editor import AssignmentEditor

logger = logging.getLogger(__name__)

Response = Tuple[int, Dict[str, Any]]

INTERNAL_ERROR = "Internal error"


def _record(row: Assignment) -> Dict[str, Any]:
    return AssignmentRecord.from_row(row).model_dump(mode="json")


def _error(status: int, message: str) -> Response:
    return status, {"error": message}


def _rollback(session: Session) -> None:
    try:
        session.rollback()
    except Exception:
        logger.exception("API: rollback after an internal error failed")


def handle_generate(
    session: Session,
    payload: Mapping[str, Any],
    cfg: Optional[SchedulerConfig] = None,
    registry: Optional[GenerationRegistry] = None,
) -> Response:
    """
    Run a generation.

    Returns:
        (200, GenerateResponse) on success, including partial and time-bound
        results; (400|409|500, GenerateResponse with success=False) otherwise
    """
    try:
        request = GenerateRequest.model_validate(payload)
    except PydanticValidationError as exc:
        body = GenerateResponse(success=False, error=describe_errors(exc))
        return 400, body.model_dump(mode="json")

    try:
        report = Orchestrator(cfg, registry).generate(
            session, request.start_date, request.end_date, request.department_id
        )
    except SchedulerError as exc:
        logger.warning("API: generate failed (%s): %s", exc.status_code, exc)
        body = GenerateResponse(success=False, error=str(exc))
        return exc.status_code, body.model_dump(mode="json")
    except Exception:
        logger.exception("API: generate failed unexpectedly")
        _rollback(session)
        body = GenerateResponse(success=False, error=INTERNAL_ERROR)
        return 500, body.model_dump(mode="json")

    body = GenerateResponse.model_validate(report.as_response())
    return 200, body.model_dump(mode="json")


def handle_create(session: Session, payload: Mapping[str, Any], cfg: Optional[SchedulerConfig] = None) -> Response:
    try:
        request = AssignmentPayload.model_validate(payload)
    except PydanticValidationError as exc:
        return _error(400, describe_errors(exc))
    try:
        row = AssignmentEditor(session, cfg).create(request)
    except SchedulerError as exc:
        return _error(exc.status_code, str(exc))
    except Exception:
        logger.exception("API: create failed unexpectedly")
        _rollback(session)
        return _error(500, INTERNAL_ERROR)
    return 201, _record(row)


def handle_update(
    session: Session,
    assignment_id: int,
    payload: Mapping[str, Any],
    cfg: Optional[SchedulerConfig] = None,
) -> Response:
    try:
        request = AssignmentUpdatePayload.model_validate(payload)
    except PydanticValidationError as exc:
        return _error(400, describe_errors(exc))
    try:
        row = AssignmentEditor(session, cfg).update(assignment_id, request)
    except SchedulerError as exc:
        return _error(exc.status_code, str(exc))
    except Exception:
        logger.exception("API: update of assignment %s failed unexpectedly", assignment_id)
        _rollback(session)
        return _error(500, INTERNAL_ERROR)
    return 200, _record(row)


def handle_confirm(session: Session, assignment_id: int, version: Optional[int] = None) -> Response:
    try:
        row = AssignmentEditor(session).confirm(assignment_id, version)
    except SchedulerError as exc:
        return _error(exc.status_code, str(exc))
    except Exception:
        logger.exception("API: confirm of assignment %s failed unexpectedly", assignment_id)
        _rollback(session)
        return _error(500, INTERNAL_ERROR)
    return 200, _record(row)


def handle_delete(session: Session, assignment_id: int) -> Response:
    try:
        deleted = AssignmentEditor(session).delete(assignment_id)
    except Exception:
        logger.exception("API: delete of assignment %s failed unexpectedly", assignment_id)
        _rollback(session)
        return _error(500, INTERNAL_ERROR)
    return 200, {"deleted": deleted}


def handle_list(session: Session, params: Mapping[str, Any]) -> Response:
    try:
        request = ListRequest.model_validate(params)
    except PydanticValidationError as exc:
        return _error(400, describe_errors(exc))
    try:
        rows = AssignmentEditor(session).list(
            request.start_date, request.end_date, request.employee_id, request.status
        )
    except SchedulerError as exc:
        return _error(exc.status_code, str(exc))
    except Exception:
        logger.exception("API: list failed unexpectedly")
        _rollback(session)
        return _error(500, INTERNAL_ERROR)
    return 200, {"assignments": [_record(r) for r in rows]}
