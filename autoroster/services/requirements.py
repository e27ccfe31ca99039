"""Expand role shift templates into the slots a date range must cover."""

from __future__ import annotations

import logging
from collections import Counter, OrderedDict
from datetime import date
from typing import Dict, Iterable, List, Sequence, Tuple

from autoroster.domain.types import ExistingAssignment, RoleProfile, ShiftSlot, ShiftTemplateSpec
from autoroster.errors import ConfigurationError

from .timeplan import daterange, format_time

logger = logging.getLogger(__name__)


def validate_role(role: RoleProfile) -> None:
    """
    Check a role's staffing configuration.

    Raises:
        ConfigurationError: If the role has no required skill, no templates,
            or a template with an empty window, bad headcount or weekday
    """
    if not role.required_skill:
        raise ConfigurationError(f"Role {role.role_id} ({role.name}) has no required skill")
    if not role.templates:
        raise ConfigurationError(f"Role {role.role_id} ({role.name}) has no shift templates")
    for template in role.templates:
        _validate_template(role, template)


def _validate_template(role: RoleProfile, template: ShiftTemplateSpec) -> None:
    if template.start_time is None or template.end_time is None:
        raise ConfigurationError(f"Role {role.role_id} ({role.name}) has a template without times")
    if template.end_time <= template.start_time:
        raise ConfigurationError(
            f"Role {role.role_id} ({role.name}) template {format_time(template.start_time)}-"
            f"{format_time(template.end_time)}: end time must be after start time"
        )
    if template.headcount is None or int(template.headcount) < 1:
        raise ConfigurationError(
            f"Role {role.role_id} ({role.name}) template headcount must be at least 1, got {template.headcount}"
        )
    if template.day_of_week is not None and not 0 <= int(template.day_of_week) <= 6:
        raise ConfigurationError(
            f"Role {role.role_id} ({role.name}) template day_of_week must be 0..6, got {template.day_of_week}"
        )


def expand_requirements(
    roles: Sequence[RoleProfile],
    start_date: date,
    end_date: date,
    existing: Iterable[ExistingAssignment] = (),
) -> List[ShiftSlot]:
    """
    Build the ordered slot list for [start_date, end_date].

    Order is date, then role id, then window start/end. Each (role, date,
    window) appears once; templates producing the same combination add their
    headcounts. Existing assignments of the same role, date and window consume
    seats (any status).

    Args:
        roles: Roles to staff (all validated first)
        start_date: First day (inclusive)
        end_date: Last day (inclusive)
        existing: Assignments already in the store

    Returns:
        List of ShiftSlot, pre-filled ones included

    Raises:
        ConfigurationError: If any role is misconfigured
    """
    for role in roles:
        validate_role(role)

    coverage = Counter(
        (a.role_id, a.date, a.start_time, a.end_time) for a in existing
    )

    slots: List[ShiftSlot] = []
    ordered_roles = sorted(roles, key=lambda r: r.role_id)
    for day in daterange(start_date, end_date):
        for role in ordered_roles:
            windows: Dict[Tuple, Tuple[int, str | None]] = OrderedDict()
            for template in sorted(
                (t for t in role.templates if t.applies_to(day)),
                key=lambda t: (t.start_time, t.end_time, t.template_id or 0),
            ):
                key = (template.start_time, template.end_time)
                count, label = windows.get(key, (0, template.label))
                windows[key] = (count + int(template.headcount), label)

            for (start, end), (headcount, label) in windows.items():
                covered = coverage.get((role.role_id, day, start, end), 0)
                slots.append(
                    ShiftSlot(
                        role_id=role.role_id,
                        date=day,
                        start_time=start,
                        end_time=end,
                        required_skill=role.required_skill,
                        headcount=headcount,
                        prefilled_count=min(covered, headcount),
                        label=label,
                    )
                )

    open_seats = sum(s.open_count for s in slots)
    logger.info(
        "Requirements: %d slots over %s..%s, %d pre-filled, %d open seats",
        len(slots),
        start_date,
        end_date,
        sum(1 for s in slots if s.prefilled),
        open_seats,
    )
    return slots


def open_units(slots: Iterable[ShiftSlot]) -> List[ShiftSlot]:
    """One entry per open seat, preserving slot order."""
    units: List[ShiftSlot] = []
    for slot in slots:
        units.extend([slot] * slot.open_count)
    return units
