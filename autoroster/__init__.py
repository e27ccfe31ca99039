"""autoroster: automatic staff rostering over role templates.

Modules:
- config: load and validate configuration (YAML or JSON)
- errors: exception taxonomy with boundary status codes
- domain: SQLAlchemy models, repositories, snapshot types
- services: time arithmetic, requirement expansion, candidate filtering,
  fairness tally, scoring, manual assignment editor
- engine: backtracking and CP-SAT solvers, partitioning, run registry,
  materializer, orchestrator
- api: pydantic request/response boundary
- io: CSV import/export
- validator: post-generation checks and summaries
- cli: command-line interface entrypoints
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "errors",
    "domain",
    "services",
    "engine",
    "api",
    "io",
    "validator",
    "cli",
]
