"""Services for scheduling logic.

Modules:
- timeplan: time parsing, window arithmetic, ISO week keys
- requirements: expand role templates into shift slots
- constraints: candidate filtering and invariant checks
- fairness: per-run workload tally
- scoring: schedule objective
- editor: manual assignment create/update/delete
"""

__all__ = [
    "timeplan",
    "requirements",
    "constraints",
    "fairness",
    "scoring",
    "editor",
]
