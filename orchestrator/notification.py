"""Completion notification with local side effects for testing."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any, Dict

from core import JobReport, RunOutcome


def _event(
    channel: str,
    payload: Dict[str, Any],
    *,
    out_dir: str | Path | None = None,
) -> Dict[str, Any]:
    entry = {
        "channel": channel,
        "payload": dict(payload or {}),
        "sent_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "status": "ok",
    }
    if out_dir:
        target = Path(out_dir)
        target.mkdir(parents=True, exist_ok=True)
        log_path = target / "notifications.jsonl"
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry, ensure_ascii=False) + "\n")
        entry["log_path"] = str(log_path)
    return entry


def format_summary(report: JobReport) -> str:
    name = report.collection_name or "(no collection)"
    if report.message and report.outcome != RunOutcome.COMPLETED:
        return f"Archive job {report.outcome.value} for {name}: {report.message}"
    return (
        f"Archive job {report.outcome.value} for {name}: "
        f"{report.succeeded} stored, {report.failed} failed, {report.skipped} already done"
    )


def notify_job_finished(report: JobReport, *, out_dir: str | Path | None = None) -> Dict[str, Any]:
    payload = {
        "collection": report.collection_name,
        "outcome": report.outcome.value,
        "message": format_summary(report),
        "succeeded": report.succeeded,
        "failed": report.failed,
        "skipped": report.skipped,
    }
    return _event("job_finished", payload, out_dir=out_dir)
