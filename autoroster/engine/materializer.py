"""Persist a search outcome as draft assignments and build the run report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from autoroster.domain.models import Assignment
from autoroster.domain.types import UnfilledSlot
from autoroster.errors import MaterializationError

from .base import SearchOutcome

logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    schedules_created: int
    unfilled: List[UnfilledSlot] = field(default_factory=list)
    time_bound: bool = False
    iterations: int = 0
    solver: str = ""
    assignments: List[Assignment] = field(default_factory=list, repr=False)

    @property
    def unfilled_seats(self) -> int:
        return sum(u.missing for u in self.unfilled)

    def as_response(self, error: Optional[str] = None) -> dict:
        """Body of a successful generate response."""
        return {
            "success": error is None,
            "schedules_created": self.schedules_created,
            "unfilled_slots": [u.as_dict() for u in self.unfilled],
            "time_bound": self.time_bound,
            "error": error,
        }


def build_assignments(outcome: SearchOutcome, notes: Optional[str] = None) -> List[Assignment]:
    """New draft rows for every placement, in requirement order."""
    return [
        Assignment(
            emp_id=placement.employee_id,
            role_id=placement.slot.role_id,
            date=placement.slot.date,
            start_time=placement.slot.start_time,
            end_time=placement.slot.end_time,
            status="draft",
            notes=notes,
        )
        for placement in outcome.placements
    ]


def materialize(session: Session, outcome: SearchOutcome, solver_name: str = "") -> GenerationReport:
    """
    Write the outcome in one transaction.

    Pre-existing rows are never modified. On a database error the session is
    rolled back and nothing from this run is stored.

    Raises:
        MaterializationError: If the write fails
    """
    rows = build_assignments(outcome)
    try:
        session.add_all(rows)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Materializer: rolled back %d assignments: %s", len(rows), exc)
        raise MaterializationError(f"Failed to store generated assignments: {exc}") from exc

    logger.info(
        "Materializer: stored %d draft assignments, %d seats unfilled",
        len(rows),
        outcome.unfilled_seats,
    )
    return GenerationReport(
        schedules_created=len(rows),
        unfilled=list(outcome.unfilled),
        time_bound=outcome.time_bound,
        iterations=outcome.iterations,
        solver=solver_name,
        assignments=rows,
    )
