from __future__ import annotations

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import List, Optional

APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import data_exchange  # noqa: E402
from database import SessionLocal, init_database, seed_state  # noqa: E402
from exporter import export_payroll_summary, export_roster  # noqa: E402
from gateway import DatabaseStateGateway, GatewayError  # noqa: E402
from models import WEEKS  # noqa: E402
from payroll import summarize_hours  # noqa: E402
from roles import DEPARTMENTS  # noqa: E402

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 4000


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from api import app

    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


def _init_db(_: argparse.Namespace) -> int:
    init_database()
    with SessionLocal() as session:
        seeded = seed_state(session)
    print("[roster] Seeded default employees." if seeded else "[roster] Database already initialised.")
    return 0


def _export_payroll(args: argparse.Namespace) -> int:
    state = DatabaseStateGateway().load()
    summary = summarize_hours(state.employees, state.time_logs, args.department)
    path = export_payroll_summary(summary, target_dir=args.output)
    print(f"[roster] Wrote {path}")
    return 0


def _export_roster(args: argparse.Namespace) -> int:
    state = DatabaseStateGateway().load()
    employees = [employee for employee in state.employees if employee.department == args.department]
    week_start = datetime.date.fromisoformat(args.week_start) if args.week_start else None
    path = export_roster(
        state.rosters.week(args.week),
        employees,
        args.week,
        week_start=week_start,
        target_dir=args.output,
    )
    print(f"[roster] Wrote {path}")
    return 0


def _export_backup(args: argparse.Namespace) -> int:
    path = data_exchange.export_backup(DatabaseStateGateway().load(), target_dir=args.output)
    print(f"[roster] Wrote {path}")
    return 0


def _import_backup(args: argparse.Namespace) -> int:
    state = data_exchange.import_backup(args.file)
    DatabaseStateGateway().save(state)
    print(f"[roster] Imported {len(state.employees)} employees and {len(state.time_logs)} time logs.")
    return 0


def _merge_logs(args: argparse.Namespace) -> int:
    gateway = DatabaseStateGateway()
    state = gateway.load()
    logs, added = data_exchange.merge_time_logs(state.time_logs, data_exchange.read_time_logs(args.file))
    if added:
        state.time_logs = logs
        gateway.save(state)
    print(f"[roster] Merge complete! {added} new time log entries were added.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="staff-roster", description="Staff roster and time clock backend.")
    parser.add_argument("--log-level", default="INFO")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP state backend.")
    serve.add_argument("--host", default=DEFAULT_HOST)
    serve.add_argument("--port", type=int, default=DEFAULT_PORT)
    serve.set_defaults(handler=_serve)

    init = commands.add_parser("init-db", help="Create tables and seed the default employees.")
    init.set_defaults(handler=_init_db)

    payroll_cmd = commands.add_parser("export-payroll", help="Write the payroll summary CSV for a department.")
    payroll_cmd.add_argument("--department", choices=DEPARTMENTS, required=True)
    payroll_cmd.add_argument("--output", type=Path, default=None)
    payroll_cmd.set_defaults(handler=_export_payroll)

    roster_cmd = commands.add_parser("export-roster", help="Write a roster CSV for one week.")
    roster_cmd.add_argument("--week", choices=WEEKS, default="current_week")
    roster_cmd.add_argument("--department", choices=DEPARTMENTS, default="Kitchen")
    roster_cmd.add_argument("--week-start", default=None, help="Monday of the week (YYYY-MM-DD).")
    roster_cmd.add_argument("--output", type=Path, default=None)
    roster_cmd.set_defaults(handler=_export_roster)

    backup_cmd = commands.add_parser("export-backup", help="Write every employee, roster and time log to one JSON file.")
    backup_cmd.add_argument("--output", type=Path, default=None)
    backup_cmd.set_defaults(handler=_export_backup)

    import_cmd = commands.add_parser("import-backup", help="Overwrite the stored state with a backup file.")
    import_cmd.add_argument("file", type=Path)
    import_cmd.set_defaults(handler=_import_backup)

    merge_cmd = commands.add_parser("merge-logs", help="Add time logs from a backup file that are not stored yet.")
    merge_cmd.add_argument("file", type=Path)
    merge_cmd.set_defaults(handler=_merge_logs)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        return args.handler(args)
    except (GatewayError, data_exchange.DataExchangeError) as exc:
        print(f"[roster] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
