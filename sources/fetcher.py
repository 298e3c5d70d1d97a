"""Download artifact bytes and validate the declared content type."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from core import JobConfig, StepResult

from .http import client_scope, content_type, declares_mime

logger = logging.getLogger(__name__)


def try_fetch(
    url: str,
    *,
    config: JobConfig,
    client: Optional[httpx.Client] = None,
) -> StepResult[bytes]:
    with client_scope(client, config) as http:
        try:
            response = http.get(url, timeout=config.fetch_timeout, follow_redirects=True)
        except Exception as exc:
            return StepResult.failure(f"request failed: {exc}")

    if not response.is_success:
        return StepResult.failure(f"HTTP {response.status_code}")

    # A 200 with an HTML body usually means a login wall or a misclassified wrapper.
    if not declares_mime(response, config.artifact_mime):
        return StepResult.failure(f"unexpected content type {content_type(response) or '(missing)'}")

    data = response.content
    if not data:
        return StepResult.failure("empty response body")

    logger.debug(f"Fetched {len(data)} bytes from {url}")
    return StepResult.success(data)


def fetch_artifact(
    url: str,
    *,
    config: JobConfig,
    client: Optional[httpx.Client] = None,
) -> Optional[bytes]:
    """Artifact bytes, or None on transport error, non-2xx or wrong content type."""
    return try_fetch(url, config=config, client=client).value
