"""Delayed re-invocation of the job entry point.

``SchedulingService`` is the host scheduler (create/list/cancel time-delayed
triggers). ``ContinuationScheduler`` is the job's view of it: it records the
ids it created in the property store so that only self-created tickets are
ever cancelled, and keeps at most one of them alive.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
import os
from pathlib import Path
from threading import Lock
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import uuid4

from core import ContinuationTicket, JobState, Session
from storage.properties import PropertyStore
from utils.exceptions import SchedulerError

logger = logging.getLogger(__name__)

TICKETS_KEY = "continuation_tickets"


def _new_ticket_id() -> str:
    return f"trigger_{uuid4().hex[:10]}"


class SchedulingService(ABC):
    @abstractmethod
    def create_delayed(self, entry_point: str, delay_ms: int) -> str:
        ...

    @abstractmethod
    def list_all(self) -> List[ContinuationTicket]:
        ...

    @abstractmethod
    def cancel(self, ticket_id: str) -> bool:
        ...


class InMemoryScheduler(SchedulingService):
    """Thread-safe trigger table keyed by ticket id."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._tickets: Dict[str, ContinuationTicket] = {}
        self._clock = clock
        self._lock = Lock()

    def _refresh(self) -> None:
        """Reload hook for durable subclasses."""

    def _commit(self) -> None:
        """Persist hook for durable subclasses."""

    def create_delayed(self, entry_point: str, delay_ms: int) -> str:
        name = str(entry_point or "").strip()
        if not name:
            raise SchedulerError("entry point is required")
        if int(delay_ms) < 0:
            raise SchedulerError("delay must not be negative", {"delay_ms": delay_ms})
        with self._lock:
            self._refresh()
            now = self._clock()
            ticket = ContinuationTicket(
                id=_new_ticket_id(),
                entry_point=name,
                due_at=now + int(delay_ms) / 1000.0,
                created_at=now,
            )
            self._tickets[ticket.id] = ticket
            self._commit()
            return ticket.id

    def list_all(self) -> List[ContinuationTicket]:
        with self._lock:
            self._refresh()
            return sorted((t.model_copy() for t in self._tickets.values()), key=lambda t: t.due_at)

    def cancel(self, ticket_id: str) -> bool:
        with self._lock:
            self._refresh()
            if ticket_id not in self._tickets:
                return False
            del self._tickets[ticket_id]
            self._commit()
            return True

    def due(self, now: Optional[float] = None) -> List[ContinuationTicket]:
        moment = self._clock() if now is None else now
        return [t for t in self.list_all() if t.due_at <= moment]


class JsonFileScheduler(InMemoryScheduler):
    """Trigger table persisted to a JSON file so another process can fire it."""

    def __init__(self, path: str | Path, *, clock: Callable[[], float] = time.time) -> None:
        super().__init__(clock=clock)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _refresh(self) -> None:
        if not self.path.exists():
            self._tickets = {}
            return
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "[]")
            tickets = [ContinuationTicket.model_validate(item) for item in payload]
        except (OSError, ValueError) as exc:
            raise SchedulerError(f"failed to read trigger file {self.path}", {"error": str(exc)}) from exc
        self._tickets = {t.id: t for t in tickets}

    def _commit(self) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        payload = [t.model_dump() for t in sorted(self._tickets.values(), key=lambda t: t.due_at)]
        try:
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise SchedulerError(f"failed to write trigger file {self.path}", {"error": str(exc)}) from exc


class ContinuationScheduler:
    def __init__(
        self,
        service: SchedulingService,
        properties: PropertyStore,
        *,
        entry_point: str,
        key: str = TICKETS_KEY,
    ) -> None:
        self._service = service
        self._properties = properties
        self._entry_point = entry_point
        self._key = key

    def tracked_ids(self) -> List[str]:
        data = self._properties.get_json(self._key, default=[])
        if not isinstance(data, list):
            return []
        return [str(item) for item in data if str(item or "").strip()]

    def live_ids(self) -> List[str]:
        tracked = set(self.tracked_ids())
        return [t.id for t in self._service.list_all() if t.id in tracked]

    def schedule_continuation(self, delay_seconds: float) -> str:
        """Replace any tracked ticket with exactly one new one."""
        self.cancel_all()
        ticket_id = self._service.create_delayed(self._entry_point, int(round(float(delay_seconds) * 1000)))
        self._properties.set_json(self._key, [ticket_id])
        logger.info(f"Scheduled continuation {ticket_id} in {float(delay_seconds):.0f}s")
        return ticket_id

    def cancel_all(self) -> int:
        """Cancel every tracked ticket still pending; safe to call when none exist."""
        tracked = self.tracked_ids()
        cancelled = 0
        if tracked:
            live = {t.id for t in self._service.list_all()}
            for ticket_id in tracked:
                if ticket_id in live and self._service.cancel(ticket_id):
                    cancelled += 1
        self._properties.delete(self._key)
        if cancelled:
            logger.info(f"Cancelled {cancelled} continuation ticket(s)")
        return cancelled


def describe_state(session: Optional[Session], live_ticket_ids: Iterable[str]) -> JobState:
    """FRESH without a session, SUSPENDED with a pending ticket, RUNNING otherwise.

    DONE is not observable from persisted state: completion clears the session.
    """
    if session is None:
        return JobState.FRESH
    if list(live_ticket_ids):
        return JobState.SUSPENDED
    return JobState.RUNNING


def fire_due(
    service: InMemoryScheduler,
    registry: Mapping[str, Callable[[], Any]],
    *,
    now: Optional[float] = None,
) -> List[Tuple[str, Any]]:
    """Invoke the registered entry point of every due ticket.

    Tickets are claimed one at a time just before their handler runs. A handler
    that raises consumes only its own ticket; the remaining due tickets still fire.
    """
    results: List[Tuple[str, Any]] = []
    for ticket in service.due(now):
        if not service.cancel(ticket.id):
            # Claimed by a concurrent tick, or cancelled by a handler that already ran.
            continue
        handler = registry.get(ticket.entry_point)
        if handler is None:
            logger.warning(f"No handler registered for entry point {ticket.entry_point} ({ticket.id})")
            continue
        logger.info(f"Firing {ticket.id} -> {ticket.entry_point}")
        try:
            results.append((ticket.id, handler()))
        except Exception:
            logger.exception(f"Continuation {ticket.id} ({ticket.entry_point}) failed")
    return results
