"""CLI entrypoint for the archive job and its continuation triggers."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from config import get_settings
from orchestrator import JsonFileScheduler, build_default_job, entry_points, fire_due
from utils import ArchiverError, configure_package_loggers


def _print(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, default=str))


def _status_table(payload) -> Table:
    table = Table(title="Archive job")
    table.add_column("Field")
    table.add_column("Value")
    for key, value in payload.items():
        if isinstance(value, list):
            value = ", ".join(str(item) for item in value) or "-"
        table.add_row(key, str(value if value is not None else "-"))
    return table


def main() -> None:
    parser = argparse.ArgumentParser(description="Artifact archiver CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run")
    run.add_argument("--collection", default="")

    tick = sub.add_parser("tick")
    tick.add_argument("--now-epoch", type=float, default=None)

    status = sub.add_parser("status")
    status.add_argument("--table", action="store_true")

    sub.add_parser("reset")

    args = parser.parse_args()
    settings = get_settings()
    configure_package_loggers(
        level=getattr(logging, settings.logging.level.upper(), logging.INFO),
        log_file=settings.logging.file,
        use_rich=settings.logging.use_rich,
    )

    try:
        if args.command == "run":
            report = build_default_job(settings).run(args.collection.strip() or None)
            _print(report.model_dump(mode="json", exclude={"outcomes"}))
            return

        if args.command == "tick":
            service = JsonFileScheduler(settings.storage.scheduler_path)
            fired = fire_due(service, entry_points(settings), now=args.now_epoch)
            _print(
                {
                    "fired": [
                        {"ticket_id": ticket_id, "outcome": report.outcome.value, "state": report.state.value}
                        for ticket_id, report in fired
                    ]
                }
            )
            return

        if args.command == "status":
            job = build_default_job(settings)
            session = job.sessions.load()
            payload = {
                "state": job.current_state().value,
                "collection": session.collection_name if session else None,
                "resumed_count": session.resumed_count if session else 0,
                "tracked_tickets": job.continuations.tracked_ids(),
                "live_tickets": job.continuations.live_ids(),
                "lease": job.lease.holder(),
            }
            if args.table:
                Console().print(_status_table(payload))
            else:
                _print(payload)
            return

        if args.command == "reset":
            cancelled = build_default_job(settings).reset()
            _print({"cancelled_tickets": cancelled})
            return
    except ArchiverError as exc:
        _print({"error": str(exc)})
        sys.exit(1)


if __name__ == "__main__":
    main()
