"""Core contracts and shared types for the archive job."""

from .columns import column_index, column_letter
from .contracts import (
    Classification,
    ContinuationTicket,
    FailureKind,
    ItemOutcome,
    ItemState,
    JobConfig,
    JobReport,
    JobState,
    RunOutcome,
    Session,
    StepResult,
    WorkItem,
)

__all__ = [
    "Classification",
    "ContinuationTicket",
    "FailureKind",
    "ItemOutcome",
    "ItemState",
    "JobConfig",
    "JobReport",
    "JobState",
    "RunOutcome",
    "Session",
    "StepResult",
    "WorkItem",
    "column_index",
    "column_letter",
]
