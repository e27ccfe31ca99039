"""Orchestrator - runs one generation from snapshot to stored drafts."""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from autoroster.config import SchedulerConfig
from autoroster.domain.repositories import DepartmentRepository
from autoroster.domain.snapshot import load_snapshot
from autoroster.domain.types import ExistingAssignment, ScheduleSnapshot
from autoroster.errors import SchedulerError, ValidationError
from autoroster.services.constraints import CandidateFilter, ScheduleLedger, find_violations
from autoroster.services.fairness import FairnessTracker
from autoroster.services.requirements import expand_requirements, open_units

from .base import BaseSolver, SearchBudget, SearchOutcome
from .cp_sat import CPSatSearch
from .materializer import GenerationReport, materialize
from .partition import PartitionedSearch
from .registry import GenerationRegistry, default_registry
from .search import BacktrackingSearch

logger = logging.getLogger(__name__)


def build_solver(cfg: SchedulerConfig) -> BaseSolver:
    """Solver named in the search settings, wrapped for partitions if enabled."""
    settings = cfg.search
    if settings.solver == "cp_sat":
        solver: BaseSolver = CPSatSearch()
    else:
        solver = BacktrackingSearch()
    if settings.parallel_partitions:
        solver = PartitionedSearch(solver, max_workers=settings.max_workers)
    return solver


class Orchestrator:
    """
    Orchestrator coordinates a generation run.

    The snapshot is read once; expansion, filtering and search work purely in
    memory; the result is checked against the hard rules together with the
    pre-existing assignments and then stored as drafts in one transaction.
    """

    def __init__(
        self,
        cfg: Optional[SchedulerConfig] = None,
        registry: Optional[GenerationRegistry] = None,
        solver: Optional[BaseSolver] = None,
    ):
        self.cfg = cfg or SchedulerConfig()
        self.registry = registry or default_registry
        self.solver = solver or build_solver(self.cfg)

    def generate(
        self,
        session: Session,
        start_date: date,
        end_date: date,
        department_id: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> GenerationReport:
        """
        Generate draft assignments for a department over [start_date, end_date].

        Args:
            session: Database session
            start_date: First day (inclusive)
            end_date: Last day (inclusive)
            department_id: Department to staff
            cancel_event: Stops the search once set; the best result found so
                far is stored and reported as time bound. The registry also
                sets it on GenerationRegistry.cancel for this range.

        Returns:
            GenerationReport

        Raises:
            ValidationError: If the range is inverted or the department is unknown
            GenerationInProgressError: If an overlapping run is in flight
            ConfigurationError: If a role template is malformed
            MaterializationError: If storing the result fails
        """
        if end_date < start_date:
            raise ValidationError(
                f"end_date {end_date.isoformat()} is before start_date {start_date.isoformat()}"
            )
        if DepartmentRepository.get_by_id(session, department_id) is None:
            raise ValidationError(f"Unknown department {department_id}")

        with self.registry.claim(department_id, start_date, end_date, cancel_event) as held:
            logger.info(
                "Orchestrator: generating department %s for %s..%s with %s",
                department_id,
                start_date,
                end_date,
                self.solver.name,
            )
            snapshot = load_snapshot(
                session,
                department_id,
                start_date,
                end_date,
                default_max_hours=self.cfg.hours.default_max_hours_per_week,
            )
            outcome = self.search(snapshot, self.registry.cancel_event(held))
            self._check_result(snapshot, outcome)
            report = materialize(session, outcome, self.solver.name)

        logger.info(
            "Orchestrator: created %d assignments, %d seats unfilled%s",
            report.schedules_created,
            report.unfilled_seats,
            " (time bound)" if report.time_bound else "",
        )
        return report

    def search(self, snapshot: ScheduleSnapshot, cancel_event: Optional[threading.Event] = None) -> SearchOutcome:
        """Expand, filter and search an already-loaded snapshot."""
        slots = expand_requirements(
            snapshot.roles, snapshot.start_date, snapshot.end_date, snapshot.existing
        )
        units = open_units(slots)

        statuses = ("confirmed", "draft") if self.cfg.hours.seed_fairness_with_drafts else ("confirmed",)
        candidate_filter = CandidateFilter(snapshot)
        ledger = ScheduleLedger.from_existing(snapshot.existing)
        tracker = FairnessTracker.seeded(
            candidate_filter.employees,
            snapshot.existing,
            snapshot.start_date,
            snapshot.end_date,
            statuses=statuses,
        )
        budget = SearchBudget.from_settings(self.cfg.search).with_cancel(cancel_event)
        return self.solver.solve(units, candidate_filter, ledger, tracker, budget)

    def _check_result(self, snapshot: ScheduleSnapshot, outcome: SearchOutcome) -> None:
        """Fail if the placements add a violation the existing data did not have."""
        employees = {e.employee_id: e for e in snapshot.employees}
        roles = {r.role_id: r for r in snapshot.roles}
        new: List[ExistingAssignment] = [
            ExistingAssignment(
                assignment_id=None,
                employee_id=p.employee_id,
                role_id=p.slot.role_id,
                date=p.slot.date,
                start_time=p.slot.start_time,
                end_time=p.slot.end_time,
                status="draft",
            )
            for p in outcome.placements
        ]
        existing = list(snapshot.existing)
        before = set(find_violations(existing, employees, roles, snapshot.leave, strict_refs=False))
        after = find_violations(existing + new, employees, roles, snapshot.leave, strict_refs=False)
        introduced = [v for v in after if v not in before]
        if introduced:
            for violation in introduced:
                logger.error("Orchestrator: %s", violation)
            raise SchedulerError(f"Generated schedule violates constraints: {introduced[0]}")


def generate_schedule(
    session: Session,
    start_date: date,
    end_date: date,
    department_id: int,
    cfg: Optional[SchedulerConfig] = None,
    registry: Optional[GenerationRegistry] = None,
    cancel_event: Optional[threading.Event] = None,
) -> GenerationReport:
    """
    Convenience function to run one generation with the orchestrator.

    Args:
        session: Database session
        start_date: First day (inclusive)
        end_date: Last day (inclusive)
        department_id: Department to staff
        cfg: SchedulerConfig (defaults when omitted)
        registry: Run registry (process-wide default when omitted)
        cancel_event: Optional token that stops the search early

    Returns:
        GenerationReport
    """
    return Orchestrator(cfg, registry).generate(session, start_date, end_date, department_id, cancel_event)
