"""Persist validated artifact bytes into the object store under a safe name."""

from __future__ import annotations

from datetime import datetime
import logging
import os
import re
from typing import Optional
from urllib.parse import unquote, urlsplit

from core import StepResult
from utils.exceptions import DuplicateObjectError

from .objects import ObjectStore

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
MAX_NAME_ATTEMPTS = 50


def _timestamp_stem(now: Optional[datetime] = None) -> str:
    return f"artifact_{(now or datetime.now()).strftime('%Y%m%d_%H%M%S')}"


def artifact_filename(url: str, extension: str, *, now: Optional[datetime] = None) -> str:
    """Filename from the URL's last path segment, sanitized, with ``extension`` forced."""
    path = urlsplit(str(url or "").strip()).path
    segment = unquote(path.split("/")[-1]) if path else ""
    stem, suffix = os.path.splitext(segment)
    if not stem or not suffix:
        stem = _timestamp_stem(now)

    stem = _UNSAFE_CHARS.sub("_", stem).strip("._")
    if not stem:
        stem = _timestamp_stem(now)
    return f"{stem}{extension.lower()}"


def try_persist(
    data: bytes,
    original_url: str,
    container_id: str,
    *,
    store: ObjectStore,
    extension: str = ".pdf",
    now: Optional[datetime] = None,
) -> StepResult[str]:
    base_name = artifact_filename(original_url, extension, now=now)
    stem, suffix = os.path.splitext(base_name)

    # Only stores that reject duplicates raise DuplicateObjectError.
    for attempt in range(MAX_NAME_ATTEMPTS):
        name = base_name if attempt == 0 else f"{stem}-{attempt}{suffix}"
        try:
            stored = store.create_file(data, name, container_id)
        except DuplicateObjectError:
            continue
        except Exception as exc:
            logger.warning(f"Object store rejected {name}: {exc}")
            return StepResult.failure(f"object store error: {exc}")
        if not stored.reference:
            return StepResult.failure("object store returned no reference")
        return StepResult.success(stored.reference)

    return StepResult.failure(f"no free name for {base_name} after {MAX_NAME_ATTEMPTS} attempts")


def persist_artifact(
    data: bytes,
    original_url: str,
    container_id: str,
    *,
    store: ObjectStore,
    extension: str = ".pdf",
) -> Optional[str]:
    """Durable reference for the stored copy, or None on any store error."""
    return try_persist(data, original_url, container_id, store=store, extension=extension).value
