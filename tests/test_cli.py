from __future__ import annotations

import json
from pathlib import Path
import sys

import httpx
import pytest

from config import get_settings
from core import JobReport, JobState, RunOutcome
from orchestrator import ArchiveJob, JsonFileScheduler
from orchestrator.notification import format_summary, notify_job_finished
from storage import CsvRecordStore, JsonFilePropertyStore, LocalObjectStore
import main as cli


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "records").mkdir()
    (tmp_path / "records" / "papers.csv").write_text("source,extracted,result\n", encoding="utf-8")
    (tmp_path / "objects" / "archive").mkdir(parents=True)

    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("ARCHIVER_COLLECTION_NAME", "papers")
    monkeypatch.setenv("LOG_USE_RICH", "false")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


def _invoke(monkeypatch, capsys, *argv: str) -> dict:
    monkeypatch.setattr(sys, "argv", ["main.py", *argv])
    cli.main()
    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    return json.loads(lines[-1])


def test_run_completes_empty_collection_and_notifies(data_dir: Path, monkeypatch, capsys) -> None:
    payload = _invoke(monkeypatch, capsys, "run")

    assert payload["outcome"] == "completed"
    assert payload["collection_name"] == "papers"
    log = (data_dir / "notifications" / "notifications.jsonl").read_text(encoding="utf-8")
    assert json.loads(log.splitlines()[-1])["payload"]["outcome"] == "completed"


def test_status_is_fresh_without_session(data_dir: Path, monkeypatch, capsys) -> None:
    payload = _invoke(monkeypatch, capsys, "status")

    assert payload["state"] == "fresh"
    assert payload["tracked_tickets"] == []
    assert payload["lease"] is None


def test_tick_fires_due_continuation(data_dir: Path, monkeypatch, capsys) -> None:
    scheduler = JsonFileScheduler(data_dir / "triggers.json")
    ticket_id = scheduler.create_delayed("run_archive_job", 0)

    payload = _invoke(monkeypatch, capsys, "tick")

    assert payload["fired"] == [{"ticket_id": ticket_id, "outcome": "completed", "state": "done"}]
    assert JsonFileScheduler(data_dir / "triggers.json").list_all() == []


def test_unknown_collection_exits_with_error(data_dir: Path, monkeypatch, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _invoke(monkeypatch, capsys, "run", "--collection", "ghost")

    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "ghost" in json.loads(out.splitlines()[-1])["error"]


def test_notification_summary_and_log(tmp_path: Path) -> None:
    done = JobReport(outcome=RunOutcome.COMPLETED, state=JobState.DONE, collection_name="papers", succeeded=3, failed=1, skipped=2)
    aborted = JobReport(outcome=RunOutcome.ABORTED, state=JobState.FRESH, collection_name="gone", message="collection 'gone' no longer resolves")

    assert format_summary(done) == "Archive job completed for papers: 3 stored, 1 failed, 2 already done"
    assert format_summary(aborted).endswith("no longer resolves")

    entry = notify_job_finished(done, out_dir=tmp_path)
    assert entry["channel"] == "job_finished"
    assert Path(entry["log_path"]).exists()


def _suspend_papers_job(data_dir: Path, config, web, clock, pdf_bytes) -> str:
    def _slow_pdf(request: httpx.Request) -> httpx.Response:
        clock.advance(200)
        return httpx.Response(200, headers={"content-type": "application/pdf"}, content=pdf_bytes)

    urls = [f"https://a.co/{name}.pdf" for name in ("one", "two", "three")]
    for url in urls:
        web.add("HEAD", url, (200, "application/pdf", b""))
        web.add("GET", url, _slow_pdf)
    rows = "".join(f"{url},,\n" for url in urls)
    (data_dir / "records" / "papers.csv").write_text(f"source,extracted,result\n{rows}", encoding="utf-8")

    job = ArchiveJob(
        config,
        records=CsvRecordStore(data_dir / "records"),
        objects=LocalObjectStore(data_dir / "objects"),
        properties=JsonFilePropertyStore(str(data_dir / "properties.json")),
        scheduler=JsonFileScheduler(data_dir / "triggers.json", clock=clock),
        client=web.client(),
        clock=clock,
        wall_clock=clock,
    )
    report = job.run()
    assert report.outcome == RunOutcome.SUSPENDED
    return report.ticket_id


def test_reset_cancels_continuation_and_clears_state(data_dir: Path, config, web, clock, pdf_bytes, monkeypatch, capsys) -> None:
    ticket_id = _suspend_papers_job(data_dir, config, web, clock, pdf_bytes)
    properties = JsonFilePropertyStore(str(data_dir / "properties.json"))
    properties.set_json("archive_session_lease", {"owner": "stuck", "expires_at": 9_999_999_999})
    assert [t.id for t in JsonFileScheduler(data_dir / "triggers.json").list_all()] == [ticket_id]

    payload = _invoke(monkeypatch, capsys, "reset")

    assert payload == {"cancelled_tickets": 1}
    assert JsonFileScheduler(data_dir / "triggers.json").list_all() == []
    stored = json.loads((data_dir / "properties.json").read_text(encoding="utf-8"))
    assert "archive_session" not in stored
    assert "archive_session_lease" not in stored
    assert "continuation_tickets" not in stored

    status = _invoke(monkeypatch, capsys, "status")
    assert status["state"] == "fresh"


def test_status_table_renders_suspended_job(data_dir: Path, config, web, clock, pdf_bytes, monkeypatch, capsys) -> None:
    ticket_id = _suspend_papers_job(data_dir, config, web, clock, pdf_bytes)

    monkeypatch.setattr(sys, "argv", ["main.py", "status", "--table"])
    cli.main()
    out = capsys.readouterr().out

    assert "Archive job" in out
    assert "suspended" in out
    assert ticket_id in out
