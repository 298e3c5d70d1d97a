"""Decide whether a source reference is a direct artifact URL or a wrapper page."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

from core import Classification, JobConfig

from .http import client_scope, declares_mime

logger = logging.getLogger(__name__)


def has_artifact_extension(reference: str, extension: str) -> bool:
    """True when the URL path (query and fragment ignored) ends with ``extension``."""
    try:
        path = urlsplit(str(reference or "").strip()).path
    except ValueError:
        return False
    return path.lower().endswith(extension.lower())


def _probe_declares_artifact(reference: str, *, client: httpx.Client, config: JobConfig) -> bool:
    # Any probe failure counts as "not declared"; the caller falls back to the path suffix.
    try:
        response = client.head(reference, timeout=config.probe_timeout, follow_redirects=True)
    except Exception as exc:
        logger.debug(f"Probe failed for {reference}: {exc}")
        return False
    if not response.is_success:
        logger.debug(f"Probe for {reference} returned HTTP {response.status_code}")
        return False
    return declares_mime(response, config.artifact_mime)


def classify(
    reference: str,
    *,
    config: JobConfig,
    client: Optional[httpx.Client] = None,
) -> Classification:
    with client_scope(client, config) as http:
        if _probe_declares_artifact(reference, client=http, config=config):
            return Classification.DIRECT
    if has_artifact_extension(reference, config.artifact_extension):
        return Classification.DIRECT
    return Classification.WRAPPER
