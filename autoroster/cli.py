"""Command-line interface for autoroster."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, timedelta

from autoroster.config import SOLVERS, SchedulerConfig, load_config
from autoroster.domain.db import get_session, init_database, reset_database
from autoroster.engine.orchestrator import generate_schedule
from autoroster.errors import SchedulerError
from autoroster.io.export_csv import assignments_frame, export_assignments_csv, export_employees_csv
from autoroster.io.import_csv import (
    import_availability_csv,
    import_departments_csv,
    import_employees_csv,
    import_leave_csv,
    import_preferences_csv,
    import_roles_csv,
    import_templates_csv,
)
from autoroster.services.editor import AssignmentEditor
from autoroster.services.timeplan import format_time
from autoroster.validator import coverage_gaps, summarize_assignments, validate_range

logger = logging.getLogger(__name__)

# Import order respects foreign keys
_IMPORTERS = [
    ("departments", import_departments_csv),
    ("employees", import_employees_csv),
    ("roles", import_roles_csv),
    ("templates", import_templates_csv),
    ("availability", import_availability_csv),
    ("leave", import_leave_csv),
    ("preferences", import_preferences_csv),
]


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from exc


def _range(args: argparse.Namespace) -> tuple[date, date]:
    start = args.start or date.today()
    end = args.end or start + timedelta(days=7)
    return start, end


def _cmd_init_db(args: argparse.Namespace, cfg: SchedulerConfig) -> int:
    """Initialize the database."""
    if args.reset:
        reset_database(cfg.db_url)
        print(f"[OK] Database reset: {cfg.db_url}")
        return 0
    init_database(cfg.db_url)
    print(f"[OK] Database initialized: {cfg.db_url}")
    return 0


def _cmd_import_csv(args: argparse.Namespace, cfg: SchedulerConfig) -> int:
    """Import CSV data into database."""
    session = get_session(cfg.db_url)
    try:
        for name, importer in _IMPORTERS:
            path = getattr(args, name)
            if path:
                count = importer(session, path)
                print(f"[OK] Imported {count} {name}")
        print("[OK] CSV import complete")
        return 0
    except Exception as e:
        session.rollback()
        print(f"[ERROR] Import failed: {e}")
        raise
    finally:
        session.close()


def _cmd_generate(args: argparse.Namespace, cfg: SchedulerConfig) -> int:
    """Generate draft assignments for a department."""
    if args.solver:
        cfg = cfg.model_copy(update={"search": cfg.search.model_copy(update={"solver": args.solver})})
    start, end = _range(args)
    session = get_session(cfg.db_url)
    try:
        report = generate_schedule(session, start, end, args.department, cfg)
        if args.out:
            export_assignments_csv(session, args.out, start, end)

        print(f"[OK] Generated {report.schedules_created} assignments for {start}..{end}")
        for gap in report.unfilled:
            slot = gap.slot
            print(
                f"[WARN] Unfilled: role {slot.role_id} on {slot.date} "
                f"{format_time(slot.start_time)}-{format_time(slot.end_time)} "
                f"missing {gap.missing} ({gap.reason})"
            )
        if report.time_bound:
            print("[WARN] Search budget exhausted; result is the best found so far")
        return 0
    except SchedulerError as e:
        print(f"[ERROR] Generation failed: {e}")
        return 1
    finally:
        session.close()


def _cmd_list(args: argparse.Namespace, cfg: SchedulerConfig) -> int:
    """List assignments in a date range."""
    start, end = _range(args)
    session = get_session(cfg.db_url)
    try:
        rows = AssignmentEditor(session, cfg).list(start, end, args.employee, args.status)
        for a in rows:
            print(
                f"{a.id:>5}  {a.date}  {format_time(a.start_time)}-{format_time(a.end_time)}  "
                f"emp={a.emp_id}  role={a.role_id}  {a.status}  v{a.version}"
            )
        print(f"[OK] {len(rows)} assignments")
        return 0
    except SchedulerError as e:
        print(f"[ERROR] {e}")
        return 1
    finally:
        session.close()


def _cmd_validate(args: argparse.Namespace, cfg: SchedulerConfig) -> int:
    """Validate stored assignments for a date range."""
    start, end = _range(args)
    session = get_session(cfg.db_url)
    try:
        default_cap = cfg.hours.default_max_hours_per_week
        violations = validate_range(session, start, end, default_cap)
        for violation in violations:
            print(f"[ERROR] {violation}")

        if args.department is not None:
            for slot in coverage_gaps(session, start, end, args.department, default_cap):
                print(
                    f"[WARN] Role {slot.role_id} on {slot.date} "
                    f"{format_time(slot.start_time)}-{format_time(slot.end_time)}: "
                    f"{slot.open_count} of {slot.headcount} seats open"
                )

        if args.summary:
            print(summarize_assignments(assignments_frame(session, start, end)))

        if violations:
            print(f"[ERROR] Validation failed: {len(violations)} violations")
            return 1
        print(f"[OK] Validation passed for {start}..{end}")
        return 0
    except SchedulerError as e:
        print(f"[ERROR] Validation failed: {e}")
        return 1
    finally:
        session.close()


def _cmd_export(args: argparse.Namespace, cfg: SchedulerConfig) -> int:
    """Export data from database to CSV."""
    session = get_session(cfg.db_url)
    try:
        if args.assignments:
            count = export_assignments_csv(session, args.assignments, args.start, args.end, args.status)
            print(f"[OK] Exported {count} assignments to {args.assignments}")

        if args.employees:
            count = export_employees_csv(session, args.employees)
            print(f"[OK] Exported {count} employees to {args.employees}")
        return 0
    finally:
        session.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autoroster", description="Automatic staff rostering")

    # Global options
    parser.add_argument("--db", help="Database URL (default: from config, sqlite:///autoroster.db)")
    parser.add_argument("--config", help="Path to config YAML or JSON")

    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Initialize database")
    init.add_argument("--reset", action="store_true", help="Drop and recreate all tables (deletes all data)")
    init.set_defaults(func=_cmd_init_db)

    imp = sub.add_parser("import-csv", help="Import CSV data into database")
    for name, _ in _IMPORTERS:
        imp.add_argument(f"--{name}", help=f"Path to {name} CSV")
    imp.set_defaults(func=_cmd_import_csv)

    gen = sub.add_parser("generate", help="Generate draft assignments")
    gen.add_argument("--start", type=_iso_date, help="First day (default: today)")
    gen.add_argument("--end", type=_iso_date, help="Last day (default: start + 7 days)")
    gen.add_argument("--department", type=int, required=True, help="Department id")
    gen.add_argument("--solver", choices=sorted(SOLVERS), help="Override search.solver")
    gen.add_argument("--out", help="Optional: export assignments in the range to CSV")
    gen.set_defaults(func=_cmd_generate)

    lst = sub.add_parser("list", help="List assignments")
    lst.add_argument("--start", type=_iso_date, help="First day (default: today)")
    lst.add_argument("--end", type=_iso_date, help="Last day (default: start + 7 days)")
    lst.add_argument("--employee", type=int, help="Only this employee")
    lst.add_argument("--status", choices=["draft", "confirmed"], help="Only this status")
    lst.set_defaults(func=_cmd_list)

    val = sub.add_parser("validate", help="Validate stored assignments")
    val.add_argument("--start", type=_iso_date, help="First day (default: today)")
    val.add_argument("--end", type=_iso_date, help="Last day (default: start + 7 days)")
    val.add_argument("--department", type=int, help="Also report open seats for this department")
    val.add_argument("--summary", action="store_true", help="Print coverage and hours summary")
    val.set_defaults(func=_cmd_validate)

    exp = sub.add_parser("export", help="Export data from database to CSV")
    exp.add_argument("--assignments", help="Path to export assignments CSV")
    exp.add_argument("--employees", help="Path to export employees CSV")
    exp.add_argument("--start", type=_iso_date, help="First day of assignments to export")
    exp.add_argument("--end", type=_iso_date, help="Last day of assignments to export")
    exp.add_argument("--status", choices=["draft", "confirmed"], help="Only this status")
    exp.set_defaults(func=_cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config)
    except SchedulerError as e:
        print(f"[ERROR] {e}")
        return 1
    if args.db:
        cfg = cfg.model_copy(update={"db_url": args.db})

    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
