"""Tests for candidate filtering and hard-constraint checks."""

import datetime as dt

import pytest

from autoroster.domain.types import AvailabilitySpec, ExistingAssignment, LeavePeriod, ShiftSlot
from autoroster.services.constraints import (
    REASON_LEAVE,
    REASON_OVERLAP,
    REASON_SKILL,
    REASON_UNAVAILABLE,
    REASON_WEEKLY_CAP,
    CandidateFilter,
    ScheduleLedger,
    find_violations,
    validate_assignment_constraints,
)
from autoroster.services.fairness import FairnessTracker

MONDAY = dt.date(2025, 9, 1)


def _slot(day=MONDAY, start=9, end=17, role_id=1, skill="cashier"):
    return ShiftSlot(role_id=role_id, date=day, start_time=dt.time(start), end_time=dt.time(end), required_skill=skill)


def _existing(emp_id, day=MONDAY, start=9, end=17, role_id=1, status="confirmed"):
    return ExistingAssignment(None, emp_id, role_id, day, dt.time(start), dt.time(end), status)


def test_skill_leave_and_availability_are_static_rules(build):
    employees = [
        build.profile(1),
        build.profile(2, skills=("barista",)),
        build.profile(3),
        build.profile(4, availability=[AvailabilitySpec(dt.time(8), dt.time(12), day_of_week=0)]),
    ]
    leave = [LeavePeriod(3, MONDAY, MONDAY + dt.timedelta(days=2), "approved")]
    snap = build.snapshot(employees, [build.role()], leave=leave)
    cf = CandidateFilter(snap)
    slot = _slot()

    assert cf.static_candidates(slot) == (1,)
    assert cf.static_reason(cf.employees[2], slot) == REASON_SKILL
    assert cf.static_reason(cf.employees[3], slot) == REASON_LEAVE
    assert cf.static_reason(cf.employees[4], slot) == REASON_UNAVAILABLE
    assert cf.static_reason(cf.employees[4], _slot(start=8, end=12)) is None


def test_pending_leave_does_not_block(build):
    leave = [LeavePeriod(1, MONDAY, MONDAY, "pending"), LeavePeriod(1, MONDAY, MONDAY, "rejected")]
    cf = CandidateFilter(build.snapshot([build.profile(1)], [build.role()], leave=leave))
    assert cf.static_candidates(_slot()) == (1,)


def test_skill_match_is_case_insensitive(build):
    cf = CandidateFilter(build.snapshot([build.profile(1)], [build.role()]))
    assert cf.static_candidates(_slot(skill="Cashier")) == (1,)


def test_dated_availability_overrides_weekly_pattern(build):
    weekly = AvailabilitySpec(dt.time(9), dt.time(17), day_of_week=0)
    blocked = AvailabilitySpec(dt.time(12), dt.time(13), specific_date=MONDAY, available=False)
    extra = AvailabilitySpec(dt.time(6), dt.time(22), specific_date=MONDAY + dt.timedelta(days=1))
    emp = build.profile(1, availability=[weekly, blocked, extra])

    assert not emp.is_available(MONDAY, dt.time(9), dt.time(17))
    assert emp.is_available(MONDAY + dt.timedelta(days=7), dt.time(9), dt.time(17))
    # Tuesday has no weekly window but a dated one
    assert emp.is_available(MONDAY + dt.timedelta(days=1), dt.time(9), dt.time(17))
    assert not emp.is_available(MONDAY + dt.timedelta(days=2), dt.time(9), dt.time(17))


def test_no_availability_means_always_available(build):
    assert build.profile(1).is_available(MONDAY, dt.time(0), dt.time(23, 59))
    only_block = build.profile(
        1, availability=[AvailabilitySpec(dt.time(9), dt.time(10), specific_date=MONDAY, available=False)]
    )
    assert only_block.is_available(MONDAY + dt.timedelta(days=1), dt.time(9), dt.time(17))
    assert not only_block.is_available(MONDAY, dt.time(9), dt.time(17))


def test_split_availability_windows_cover_a_full_shift(build):
    morning = AvailabilitySpec(dt.time(9), dt.time(12), day_of_week=0)
    afternoon = AvailabilitySpec(dt.time(12), dt.time(17), day_of_week=0)
    late = AvailabilitySpec(dt.time(13), dt.time(17), day_of_week=1)
    early = AvailabilitySpec(dt.time(9), dt.time(12), day_of_week=1)
    emp = build.profile(1, availability=[afternoon, morning, early, late])

    assert emp.is_available(MONDAY, dt.time(9), dt.time(17))
    # A lunch gap on Tuesday still breaks the day
    assert not emp.is_available(MONDAY + dt.timedelta(days=1), dt.time(9), dt.time(17))
    assert emp.is_available(MONDAY + dt.timedelta(days=1), dt.time(13), dt.time(17))

    cf = CandidateFilter(build.snapshot([emp], [build.role()]))
    assert cf.static_candidates(_slot()) == (1,)

    dated = build.profile(
        2,
        availability=[
            AvailabilitySpec(dt.time(14), dt.time(17), specific_date=MONDAY),
            AvailabilitySpec(dt.time(9), dt.time(15), specific_date=MONDAY),
        ],
    )
    assert dated.is_available(MONDAY, dt.time(9), dt.time(17))


def test_overlap_and_cap_are_dynamic_rules(build):
    cf = CandidateFilter(build.snapshot([build.profile(1, cap=16.0), build.profile(2)], [build.role()]))
    ledger = ScheduleLedger.from_existing([_existing(1, start=13, end=21)])
    tracker = FairnessTracker([1, 2])

    assert cf.eligible(_slot(), ledger, tracker) == [2]
    assert cf.dynamic_reason(cf.employees[1], _slot(), ledger) == REASON_OVERLAP

    ledger.occupy(1, MONDAY + dt.timedelta(days=1), dt.time(9), dt.time(17))
    assert cf.dynamic_reason(cf.employees[1], _slot(day=MONDAY + dt.timedelta(days=2)), ledger) == REASON_WEEKLY_CAP
    # Next ISO week starts fresh
    assert cf.is_eligible(1, _slot(day=MONDAY + dt.timedelta(days=7)), ledger)


def test_back_to_back_shift_is_not_an_overlap(build):
    cf = CandidateFilter(build.snapshot([build.profile(1)], [build.role()]))
    ledger = ScheduleLedger.from_existing([_existing(1, start=5, end=9)])
    assert cf.is_eligible(1, _slot(), ledger)


def test_cap_reached_exactly_is_allowed(build):
    cf = CandidateFilter(build.snapshot([build.profile(1, cap=16.0)], [build.role()]))
    ledger = ScheduleLedger.from_existing([_existing(1, day=MONDAY + dt.timedelta(days=1))])
    assert cf.is_eligible(1, _slot(), ledger)


def test_ledger_release_and_copy_are_independent():
    ledger = ScheduleLedger.from_existing([_existing(1, day=MONDAY + dt.timedelta(days=1)), _existing(1, end=12)])
    assert ledger.week_minutes(1, "2025-W36") == 13 * 60
    assert ledger.occupancy(1) == (
        (MONDAY, ((dt.time(9), dt.time(12)),)),
        (MONDAY + dt.timedelta(days=1), ((dt.time(9), dt.time(17)),)),
    )

    clone = ledger.copy()
    ledger.release(1, MONDAY, dt.time(9), dt.time(12))
    assert ledger.week_minutes(1, "2025-W36") == 8 * 60
    assert not ledger.has_overlap(1, MONDAY, dt.time(10), dt.time(11))
    assert ledger.occupancy(1) == ((MONDAY + dt.timedelta(days=1), ((dt.time(9), dt.time(17)),)),)
    assert clone.has_overlap(1, MONDAY, dt.time(10), dt.time(11))
    assert ledger.occupancy(2) == ()


def test_ordering_prefers_lower_tally_then_preference_then_id(build):
    employees = [
        build.profile(1),
        build.profile(2, preferences={1: 2.0}),
        build.profile(3),
        build.profile(4),
    ]
    cf = CandidateFilter(build.snapshot(employees, [build.role()]))
    tracker = FairnessTracker([1, 2, 3, 4])
    tracker.add(4, 8.0)

    assert cf.eligible(_slot(), ScheduleLedger(), tracker) == [2, 1, 3, 4]


def test_monotonic_fairness(build):
    """All else equal, the employee with the lower tally comes first."""
    cf = CandidateFilter(build.snapshot([build.profile(1), build.profile(2)], [build.role()]))
    tracker = FairnessTracker([1, 2])
    tracker.add(1, 8.0)
    assert cf.eligible(_slot(), ScheduleLedger(), tracker) == [2, 1]
    tracker.add(2, 16.0)
    assert cf.eligible(_slot(), ScheduleLedger(), tracker) == [1, 2]


def test_explain_summarises_rejections(build):
    employees = [build.profile(1, skills=("barista",)), build.profile(2, skills=("barista",))]
    cf = CandidateFilter(build.snapshot(employees, [build.role()]))
    assert cf.explain(_slot(), ScheduleLedger()) == "no employee has skill 'cashier'"

    employees = [build.profile(1, skills=("barista",)), build.profile(2)]
    cf = CandidateFilter(build.snapshot(employees, [build.role()]))
    ledger = ScheduleLedger.from_existing([_existing(2)])
    reasons = cf.rejection_reasons(_slot(), ledger)
    assert reasons == {REASON_SKILL: 1, REASON_OVERLAP: 1}
    assert cf.explain(_slot(), ledger) == "1 already working, 1 lack skill"

    cf = CandidateFilter(build.snapshot([build.profile(2)], [build.role()]))
    assert cf.explain(_slot(), ScheduleLedger()) == "eligible employees were needed elsewhere"


def test_find_violations_reports_each_rule(build):
    employees = {1: build.profile(1, cap=8.0), 2: build.profile(2, skills=("barista",))}
    roles = {1: build.role()}
    leave = [LeavePeriod(1, MONDAY + dt.timedelta(days=1), MONDAY + dt.timedelta(days=1), "approved")]
    assignments = [
        _existing(1),
        _existing(1, start=16, end=20),
        _existing(1, day=MONDAY + dt.timedelta(days=1)),
        _existing(2),
        _existing(3),
    ]
    violations = find_violations(assignments, employees, roles, leave)
    text = "\n".join(violations)
    assert "overlapping assignments" in text
    assert "exceeds weekly cap in 2025-W36" in text
    assert "lacks skill 'cashier'" in text
    assert "during approved leave" in text
    assert "unknown employee 3" in text

    relaxed = find_violations(assignments, employees, roles, leave, strict_refs=False)
    assert not any("unknown employee" in v for v in relaxed)


def test_validate_assignment_constraints(build):
    snap = build.snapshot([build.profile(1)], [build.role()])
    validate_assignment_constraints([_existing(1)], snap)
    with pytest.raises(ValueError):
        validate_assignment_constraints([_existing(1), _existing(1, start=10, end=12)], snap)
