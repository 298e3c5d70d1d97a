"""Canonical data contracts for the archive job."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from utils.exceptions import ConfigurationError

from .columns import column_index

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Classification(str, Enum):
    """How a source reference should be fetched."""

    DIRECT = "direct"
    WRAPPER = "wrapper"


class ItemState(str, Enum):
    """Tagged per-item state derived from the result cell."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @classmethod
    def from_result(cls, value: Optional[str], failure_prefix: str) -> "ItemState":
        text = str(value or "").strip()
        if not text:
            return cls.PENDING
        if failure_prefix and text.startswith(failure_prefix.strip()):
            return cls.FAILED
        return cls.SUCCEEDED


class FailureKind(str, Enum):
    """Per-item failure categories recorded in the result cell."""

    EXTRACTION = "extraction failed"
    FETCH = "fetch failed"
    PERSIST = "persist failed"
    UNEXPECTED = "unexpected"


class JobState(str, Enum):
    """Suspend/resume lifecycle of the job as a whole."""

    FRESH = "fresh"
    RUNNING = "running"
    SUSPENDED = "suspended"
    DONE = "done"


class RunOutcome(str, Enum):
    """How a single invocation ended."""

    COMPLETED = "completed"
    SUSPENDED = "suspended"
    ABORTED = "aborted"
    LOCKED = "locked"


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Value-or-reason result threaded through classify/extract/fetch/persist."""

    value: Optional[T] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> "StepResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> "StepResult[T]":
        return cls(reason=str(reason or "unknown error"))


class WorkItem(BaseModel):
    """One row of the record store."""

    row: int
    source_reference: str
    extracted_reference: Optional[str] = None
    result_reference: Optional[str] = None
    state: ItemState = ItemState.PENDING

    @field_validator("source_reference", mode="before")
    @classmethod
    def _strip_source(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("extracted_reference", "result_reference", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None

    @property
    def is_processed(self) -> bool:
        return bool(self.result_reference)


class ItemOutcome(BaseModel):
    """Terminal result of one processing attempt for a work item."""

    row: int
    state: ItemState
    reference: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    reason: Optional[str] = None
    classification: Optional[Classification] = None
    extracted_reference: Optional[str] = None

    @classmethod
    def succeeded(cls, row: int, reference: str, **kwargs: Any) -> "ItemOutcome":
        return cls(row=row, state=ItemState.SUCCEEDED, reference=reference, **kwargs)

    @classmethod
    def failed(cls, row: int, kind: FailureKind, reason: str, **kwargs: Any) -> "ItemOutcome":
        return cls(row=row, state=ItemState.FAILED, failure_kind=kind, reason=reason, **kwargs)

    def describe_failure(self) -> str:
        kind = self.failure_kind.value if self.failure_kind else FailureKind.UNEXPECTED.value
        return f"{kind}: {self.reason or 'unknown error'}"


class Session(BaseModel):
    """Collection being processed across suspend/resume cycles."""

    collection_name: str
    started_at: datetime = Field(default_factory=_utcnow)
    resumed_count: int = 0

    @field_validator("collection_name", mode="before")
    @classmethod
    def _non_empty_text(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("collection_name is required")
        return text


class ContinuationTicket(BaseModel):
    """Scheduled future re-invocation of the job entry point."""

    id: str
    entry_point: str
    due_at: float
    created_at: float


class JobConfig(BaseModel):
    """Validated, immutable configuration handed to the orchestrator."""

    model_config = ConfigDict(frozen=True)

    source_column: int = Field(ge=1)
    extracted_column: int = Field(ge=1)
    result_column: int = Field(ge=1)
    start_row: int = Field(default=2, ge=1)

    time_ceiling_seconds: float = Field(default=300.0, gt=0)
    hard_limit_seconds: float = Field(default=360.0, gt=0)
    continuation_delay_seconds: float = Field(default=60.0, gt=0)

    container_id: str
    collection_name: Optional[str] = None

    probe_timeout: float = Field(default=10.0, gt=0)
    fetch_timeout: float = Field(default=30.0, gt=0)
    artifact_mime: str = "application/pdf"
    artifact_extension: str = ".pdf"
    embed_tag: str = "embed"
    failure_prefix: str = "ERROR: "
    user_agent: str = "ArtifactArchiver/1.0"
    entry_point: str = "run_archive_job"

    @field_validator("container_id", "artifact_mime", "embed_tag", "entry_point", mode="before")
    @classmethod
    def _required_text(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("value is required")
        return text

    @field_validator("collection_name", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None

    @field_validator("artifact_extension", mode="before")
    @classmethod
    def _dotted_extension(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        if not text or text == ".":
            raise ValueError("artifact_extension is required")
        return text if text.startswith(".") else f".{text}"

    @field_validator("artifact_mime", mode="after")
    @classmethod
    def _lower_mime(cls, value: str) -> str:
        return value.lower()

    @field_validator("failure_prefix", mode="after")
    @classmethod
    def _non_blank_prefix(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("failure_prefix must not be blank")
        return value

    @model_validator(mode="after")
    def _check_layout_and_budget(self) -> "JobConfig":
        columns = {self.source_column, self.extracted_column, self.result_column}
        if len(columns) != 3:
            raise ValueError("source, extracted and result columns must be distinct")
        if self.time_ceiling_seconds >= self.hard_limit_seconds:
            raise ValueError("time_ceiling_seconds must be strictly below hard_limit_seconds")
        return self

    @classmethod
    def from_settings(cls, settings: Any) -> "JobConfig":
        """Build from ``ArchiverSettings``; any invalid value is a ConfigurationError."""
        try:
            return cls(
                source_column=column_index(settings.source_column),
                extracted_column=column_index(settings.extracted_column),
                result_column=column_index(settings.result_column),
                start_row=settings.start_row,
                time_ceiling_seconds=settings.time_ceiling_seconds,
                hard_limit_seconds=settings.hard_limit_seconds,
                continuation_delay_seconds=settings.continuation_delay_seconds,
                container_id=settings.container_id,
                collection_name=settings.collection_name,
                probe_timeout=settings.probe_timeout,
                fetch_timeout=settings.fetch_timeout,
                artifact_mime=settings.artifact_mime,
                artifact_extension=settings.artifact_extension,
                embed_tag=settings.embed_tag,
                failure_prefix=settings.failure_prefix,
                user_agent=settings.user_agent,
                entry_point=settings.entry_point,
            )
        except ValueError as exc:
            raise ConfigurationError("invalid archiver configuration", {"error": str(exc)}) from exc


class JobReport(BaseModel):
    """Summary of one invocation of the archive job."""

    outcome: RunOutcome
    state: JobState
    collection_name: Optional[str] = None
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    elapsed_seconds: float = 0.0
    ticket_id: Optional[str] = None
    message: str = ""
    outcomes: List[ItemOutcome] = Field(default_factory=list)
