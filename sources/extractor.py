"""Locate the artifact URL embedded in a wrapper page.

Only one markup convention is recognised: an element named by
``JobConfig.embed_tag`` (``<embed>`` by default) whose ``type`` attribute is
the artifact MIME type and whose ``src`` attribute points at the artifact.
Markup authors write the two attributes in either order; the parser makes
that irrelevant.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
import httpx

from core import JobConfig, StepResult

from .http import client_scope

logger = logging.getLogger(__name__)


def normalize_source(src: str, base_url: str) -> str:
    """Protocol-relative sources get ``https:``; relative ones resolve against the page."""
    value = str(src or "").strip()
    if value.startswith("//"):
        return f"https:{value}"
    return urljoin(base_url, value)


def find_embedded_artifact(html: str, base_url: str, *, mime: str, tag: str = "embed") -> Optional[str]:
    """Return the first matching embed source in ``html``, or None."""
    soup = BeautifulSoup(html or "", "html.parser")
    wanted = mime.strip().lower()
    for node in soup.find_all(tag):
        declared = str(node.get("type") or "").split(";")[0].strip().lower()
        src = str(node.get("src") or "").strip()
        if declared == wanted and src:
            return normalize_source(src, base_url)
    return None


def try_extract(
    wrapper_url: str,
    *,
    config: JobConfig,
    client: Optional[httpx.Client] = None,
) -> StepResult[str]:
    with client_scope(client, config) as http:
        try:
            response = http.get(wrapper_url, timeout=config.fetch_timeout, follow_redirects=True)
        except Exception as exc:
            return StepResult.failure(f"wrapper request failed: {exc}")

    if not response.is_success:
        return StepResult.failure(f"wrapper page returned HTTP {response.status_code}")

    found = find_embedded_artifact(
        response.text,
        str(response.url),
        mime=config.artifact_mime,
        tag=config.embed_tag,
    )
    if not found:
        return StepResult.failure(f"no <{config.embed_tag} type=\"{config.artifact_mime}\"> found in wrapper page")

    logger.debug(f"Extracted {found} from {wrapper_url}")
    return StepResult.success(found)


def extract_artifact_url(
    wrapper_url: str,
    *,
    config: JobConfig,
    client: Optional[httpx.Client] = None,
) -> Optional[str]:
    """Embedded artifact URL, or None when the page is unreachable or has no match."""
    return try_extract(wrapper_url, config=config, client=client).value
