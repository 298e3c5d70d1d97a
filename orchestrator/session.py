"""Persisted session identity and the lease that guards it."""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Dict, Optional
from uuid import uuid4

from pydantic import ValidationError

from core import Session
from storage.properties import PropertyStore
from utils.exceptions import SessionError

logger = logging.getLogger(__name__)

SESSION_KEY = "archive_session"
LEASE_KEY = "archive_session_lease"


def _new_owner() -> str:
    return f"worker_{uuid4().hex[:8]}"


class SessionStore:
    """Which collection is in flight; lives only while a job is running or suspended."""

    def __init__(self, properties: PropertyStore, *, key: str = SESSION_KEY) -> None:
        self._properties = properties
        self._key = key

    def load(self) -> Optional[Session]:
        raw = self._properties.get(self._key)
        if raw is None or not raw.strip():
            return None
        try:
            return Session.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise SessionError("persisted session is unreadable", raw=raw[:200], error=str(exc)) from exc

    def _save(self, session: Session) -> Session:
        self._properties.set(self._key, session.model_dump_json())
        return session.model_copy(deep=True)

    def start(self, collection_name: str) -> Session:
        return self._save(Session(collection_name=collection_name))

    def mark_resumed(self, session: Session) -> Session:
        updated = session.model_copy(update={"resumed_count": session.resumed_count + 1})
        return self._save(updated)

    def clear(self) -> None:
        self._properties.delete(self._key)


class SessionLease:
    """Best-effort mutual exclusion between a manual run and a fired continuation.

    The property store has no compare-and-set, so acquisition is read-then-write;
    it closes the common overlap window but is not a distributed lock.
    """

    def __init__(
        self,
        properties: PropertyStore,
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
        key: str = LEASE_KEY,
        owner: Optional[str] = None,
    ) -> None:
        self._properties = properties
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._key = key
        self.owner = owner or _new_owner()

    def holder(self) -> Optional[Dict[str, object]]:
        data = self._properties.get_json(self._key)
        if not isinstance(data, dict) or not data.get("owner"):
            return None
        try:
            expires_at = float(data.get("expires_at") or 0.0)
        except (TypeError, ValueError):
            return None
        if expires_at <= self._clock():
            return None
        return {"owner": str(data["owner"]), "expires_at": expires_at}

    def acquire(self) -> bool:
        current = self.holder()
        if current is not None and current["owner"] != self.owner:
            logger.warning(f"Session lease held by {current['owner']} until {current['expires_at']:.0f}")
            return False
        self._properties.set_json(self._key, {"owner": self.owner, "expires_at": self._clock() + self._ttl})
        return True

    def release(self) -> None:
        current = self._properties.get_json(self._key)
        if isinstance(current, dict) and current.get("owner") == self.owner:
            self._properties.delete(self._key)

    def force_release(self) -> None:
        self._properties.delete(self._key)
