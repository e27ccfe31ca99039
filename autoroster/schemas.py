"""pydantic models for the request/response boundary."""

from __future__ import annotations

from datetime import date, time
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from autoroster.domain.models import Assignment

ModelT = TypeVar("ModelT", bound=BaseModel)


class GenerateRequest(BaseModel):
    start_date: date
    end_date: date
    department_id: int


class UnfilledSlotOut(BaseModel):
    role_id: int
    date: str
    start_time: str
    end_time: str
    missing: int = Field(ge=1)
    reason: str = ""


class GenerateResponse(BaseModel):
    success: bool
    schedules_created: int = 0
    unfilled_slots: List[UnfilledSlotOut] = []
    time_bound: bool = False
    error: Optional[str] = None


class AssignmentPayload(BaseModel):
    """Create fields; omitted times fall back to the configured default shift."""

    employee_id: int
    role_id: int
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    notes: Optional[str] = None


class AssignmentUpdatePayload(AssignmentPayload):
    version: int


class ListRequest(BaseModel):
    start_date: date
    end_date: date
    employee_id: Optional[int] = None
    status: Optional[str] = None


class AssignmentRecord(BaseModel):
    id: int
    employee_id: int
    role_id: int
    date: date
    start_time: str
    end_time: str
    status: str
    version: int
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Assignment) -> "AssignmentRecord":
        return cls(
            id=row.id,
            employee_id=row.emp_id,
            role_id=row.role_id,
            date=row.date,
            start_time=row.start_time.strftime("%H:%M"),
            end_time=row.end_time.strftime("%H:%M"),
            status=row.status,
            version=row.version,
            notes=row.notes,
        )


def describe_errors(exc: PydanticValidationError, root: str = "request") -> str:
    """One line per failed field, e.g. ``start_date: Input should be a valid date``."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or root
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def coerce(model: Type[ModelT], data) -> ModelT:
    """Pass a model instance through; validate anything else into one."""
    if isinstance(data, model):
        return data
    return model.model_validate(data)
