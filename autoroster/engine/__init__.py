"""Scheduling engine: solvers, partitioning, run registry and materialization."""

from .base import BaseSolver, SearchBudget, SearchOutcome
from .cp_sat import CPSatSearch
from .materializer import GenerationReport, materialize
from .orchestrator import Orchestrator, build_solver, generate_schedule
from .partition import PartitionedSearch, partition_units
from .registry import GenerationRegistry, default_registry
from .search import BacktrackingSearch

__all__ = [
    "BaseSolver",
    "SearchBudget",
    "SearchOutcome",
    "BacktrackingSearch",
    "CPSatSearch",
    "PartitionedSearch",
    "partition_units",
    "GenerationRegistry",
    "default_registry",
    "GenerationReport",
    "materialize",
    "Orchestrator",
    "build_solver",
    "generate_schedule",
]
