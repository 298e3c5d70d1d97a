"""Archive job: per-row loop plus the suspend/resume hand-off.

One invocation processes rows until the time budget runs out, then schedules a
single continuation and exits. The next invocation re-reads the persisted
session and carries on from the first row without a result.
"""

from __future__ import annotations

from functools import partial
import logging
import time
from typing import Any, Callable, Dict, Optional, Sequence

import httpx

from config import Settings, get_settings
from core import (
    Classification,
    FailureKind,
    ItemOutcome,
    ItemState,
    JobConfig,
    JobReport,
    JobState,
    RunOutcome,
    WorkItem,
)
from sources.classifier import classify
from sources.extractor import try_extract
from sources.fetcher import try_fetch
from sources.http import client_scope
from storage.artifacts import try_persist
from storage.objects import LocalObjectStore, ObjectStore
from storage.properties import JsonFilePropertyStore, PropertyStore
from storage.records import CsvRecordStore, RecordStore
from utils.exceptions import ConfigurationError, SessionError

from .budget import TimeBudget
from .notification import notify_job_finished
from .scheduler import ContinuationScheduler, JsonFileScheduler, SchedulingService, describe_state
from .session import SessionLease, SessionStore
from .tracker import RowStateTracker

logger = logging.getLogger(__name__)


class ArchiveJob:
    """Time-boxed, resumable archiving of one collection of rows."""

    def __init__(
        self,
        config: JobConfig,
        *,
        records: RecordStore,
        objects: ObjectStore,
        properties: PropertyStore,
        scheduler: SchedulingService,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        notifier: Optional[Callable[[JobReport], Any]] = None,
        lease_owner: Optional[str] = None,
    ) -> None:
        self.config = config
        self._records = records
        self._objects = objects
        self._client = client
        self._notifier = notifier
        self._tracker = RowStateTracker(records, config)
        self._sessions = SessionStore(properties)
        self._continuations = ContinuationScheduler(scheduler, properties, entry_point=config.entry_point)
        self._lease = SessionLease(
            properties,
            ttl_seconds=config.hard_limit_seconds,
            clock=wall_clock,
            owner=lease_owner,
        )
        self._budget = TimeBudget(config.time_ceiling_seconds, clock=clock)

    @property
    def continuations(self) -> ContinuationScheduler:
        return self._continuations

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def lease(self) -> SessionLease:
        return self._lease

    def current_state(self) -> JobState:
        try:
            session = self._sessions.load()
        except SessionError:
            session = None
        return describe_state(session, self._continuations.live_ids())

    def validate_startup(self, collection_name: str) -> None:
        """Fatal when the target container or the collection does not resolve."""
        if not self._objects.has_container(self.config.container_id):
            raise ConfigurationError(
                f"object store container {self.config.container_id!r} does not exist",
                {"container_id": self.config.container_id},
            )
        if not self._records.has_collection(collection_name):
            raise ConfigurationError(
                f"collection {collection_name!r} does not exist",
                {"collection": collection_name},
            )

    def reset(self) -> int:
        """Cancel tracked continuations and forget the session and lease."""
        cancelled = self._continuations.cancel_all()
        self._sessions.clear()
        self._lease.force_release()
        return cancelled

    def run(self, collection_name: Optional[str] = None) -> JobReport:
        self._budget.start()
        if not self._lease.acquire():
            return JobReport(
                outcome=RunOutcome.LOCKED,
                state=self.current_state(),
                message="another invocation holds the session lease",
            )
        try:
            return self._run_with_lease(collection_name)
        finally:
            self._lease.release()

    def _run_with_lease(self, requested: Optional[str]) -> JobReport:
        try:
            session = self._sessions.load()
        except SessionError as exc:
            return self._abort(None, str(exc))

        if session is not None:
            collection = session.collection_name
            if requested and requested != collection:
                logger.warning(f"Ignoring requested collection {requested!r}; resuming {collection!r}")
            if not self._records.has_collection(collection):
                return self._abort(collection, f"collection {collection!r} no longer resolves")
            self.validate_startup(collection)
            session = self._sessions.mark_resumed(session)
            logger.info(f"Resuming {collection} (resume #{session.resumed_count})")
        else:
            collection = requested or self.config.collection_name
            if not collection:
                raise ConfigurationError("no collection given and none configured")
            self.validate_startup(collection)
            session = self._sessions.start(collection)
            logger.info(f"Starting archive job for {collection}")

        return self._process(session.collection_name)

    def _process(self, collection: str) -> JobReport:
        items = self._tracker.load_items(collection)
        report = JobReport(outcome=RunOutcome.COMPLETED, state=JobState.RUNNING, collection_name=collection)

        with client_scope(self._client, self.config) as http:
            for index, item in enumerate(items):
                if not self._budget.within():
                    if self._has_pending(items[index:]):
                        return self._suspend(report)
                    break

                outcome = self._handle_item(collection, item, http)
                if outcome is None:
                    report.skipped += 1
                    continue

                report.processed += 1
                report.outcomes.append(outcome)
                if outcome.state == ItemState.SUCCEEDED:
                    report.succeeded += 1
                else:
                    report.failed += 1

                if not self._budget.within() and self._has_pending(items[index + 1:]):
                    return self._suspend(report)

        self._continuations.cancel_all()
        self._sessions.clear()
        report.state = JobState.DONE
        report.elapsed_seconds = self._budget.elapsed()
        logger.info(
            f"Finished {collection}: {report.succeeded} stored, {report.failed} failed, "
            f"{report.skipped} skipped in {report.elapsed_seconds:.1f}s"
        )
        self._notify(report)
        return report

    @staticmethod
    def _has_pending(items: Sequence[WorkItem]) -> bool:
        return any(not item.is_processed for item in items)

    def _handle_item(self, collection: str, item: WorkItem, http: httpx.Client) -> Optional[ItemOutcome]:
        """Outcome for one row, or None when it already has a result.

        Record store errors on this row fail the row only; the loop moves on.
        """
        try:
            if self._tracker.is_processed(collection, item):
                return None
        except Exception as exc:
            logger.exception(f"Could not read the result cell of row {item.row}")
            return ItemOutcome.failed(item.row, FailureKind.UNEXPECTED, f"result cell unreadable: {exc}")

        outcome = self._process_item(collection, item, http)
        try:
            self._tracker.record_outcome(collection, item, outcome)
        except Exception as exc:
            logger.exception(f"Could not record the result of row {item.row}")
            return ItemOutcome.failed(
                item.row,
                FailureKind.UNEXPECTED,
                f"result not recorded: {exc}",
                classification=outcome.classification,
                extracted_reference=outcome.extracted_reference,
            )
        return outcome

    def _process_item(self, collection: str, item: WorkItem, http: httpx.Client) -> ItemOutcome:
        try:
            return self._archive(collection, item, http)
        except Exception as exc:
            logger.exception(f"Unexpected error on row {item.row}")
            return ItemOutcome.failed(item.row, FailureKind.UNEXPECTED, str(exc) or type(exc).__name__)

    def _archive(self, collection: str, item: WorkItem, http: httpx.Client) -> ItemOutcome:
        source = item.source_reference
        classification = classify(source, config=self.config, client=http)

        target = source
        extracted: Optional[str] = None
        if classification == Classification.WRAPPER:
            extraction = try_extract(source, config=self.config, client=http)
            if not extraction.ok:
                return ItemOutcome.failed(
                    item.row, FailureKind.EXTRACTION, extraction.reason, classification=classification
                )
            extracted = extraction.value
            self._tracker.record_extracted(collection, item, extracted)
            target = extracted

        fetched = try_fetch(target, config=self.config, client=http)
        if not fetched.ok:
            return ItemOutcome.failed(
                item.row,
                FailureKind.FETCH,
                fetched.reason,
                classification=classification,
                extracted_reference=extracted,
            )

        persisted = try_persist(
            fetched.value,
            target,
            self.config.container_id,
            store=self._objects,
            extension=self.config.artifact_extension,
        )
        if not persisted.ok:
            return ItemOutcome.failed(
                item.row,
                FailureKind.PERSIST,
                persisted.reason,
                classification=classification,
                extracted_reference=extracted,
            )

        logger.info(f"Row {item.row}: stored {target}")
        return ItemOutcome.succeeded(
            item.row,
            persisted.value,
            classification=classification,
            extracted_reference=extracted,
        )

    def _suspend(self, report: JobReport) -> JobReport:
        ticket_id = self._continuations.schedule_continuation(self.config.continuation_delay_seconds)
        report.outcome = RunOutcome.SUSPENDED
        report.state = JobState.SUSPENDED
        report.ticket_id = ticket_id
        report.elapsed_seconds = self._budget.elapsed()
        logger.info(
            f"Time budget reached after {report.elapsed_seconds:.1f}s on {report.collection_name}; "
            f"{report.processed} row(s) done this run, continuing via {ticket_id}"
        )
        return report

    def _abort(self, collection: Optional[str], reason: str) -> JobReport:
        logger.error(f"Aborting archive job: {reason}")
        self._sessions.clear()
        self._continuations.cancel_all()
        report = JobReport(
            outcome=RunOutcome.ABORTED,
            state=JobState.FRESH,
            collection_name=collection,
            elapsed_seconds=self._budget.elapsed(),
            message=reason,
        )
        self._notify(report)
        return report

    def _notify(self, report: JobReport) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier(report)
        except Exception as exc:
            logger.warning(f"Notification failed: {exc}")


def build_default_job(settings: Optional[Settings] = None) -> ArchiveJob:
    """Job wired to the file-backed collaborators under ``STORAGE_DATA_DIR``."""
    settings = settings or get_settings()
    config = JobConfig.from_settings(settings.archiver)
    storage = settings.storage
    return ArchiveJob(
        config,
        records=CsvRecordStore(storage.records_path),
        objects=LocalObjectStore(storage.objects_path),
        properties=JsonFilePropertyStore(str(storage.properties_path)),
        scheduler=JsonFileScheduler(storage.scheduler_path),
        notifier=partial(notify_job_finished, out_dir=storage.notifications_path),
    )


def run_archive_job(collection_name: Optional[str] = None) -> JobReport:
    """Entry point fired by continuation tickets."""
    return build_default_job().run(collection_name)


def entry_points(settings: Optional[Settings] = None) -> Dict[str, Callable[[], JobReport]]:
    settings = settings or get_settings()
    return {settings.archiver.entry_point: run_archive_job}
