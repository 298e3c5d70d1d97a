"""Archive job orchestration: budget, row state, session, continuations."""

from .budget import TimeBudget, within_budget
from .scheduler import (
    ContinuationScheduler,
    InMemoryScheduler,
    JsonFileScheduler,
    SchedulingService,
    describe_state,
    fire_due,
)
from .service import ArchiveJob, build_default_job, entry_points, run_archive_job
from .session import SessionLease, SessionStore
from .tracker import RowStateTracker

__all__ = [
    "ArchiveJob",
    "ContinuationScheduler",
    "InMemoryScheduler",
    "JsonFileScheduler",
    "RowStateTracker",
    "SchedulingService",
    "SessionLease",
    "SessionStore",
    "TimeBudget",
    "build_default_job",
    "describe_state",
    "entry_points",
    "fire_due",
    "run_archive_job",
    "within_budget",
]
