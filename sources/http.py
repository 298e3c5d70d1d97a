"""Shared httpx client construction and response helpers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import httpx

from core import JobConfig


def build_client(config: JobConfig, *, transport: Optional[httpx.BaseTransport] = None) -> httpx.Client:
    """Synchronous client with redirects followed and the fetch timeout as default."""
    return httpx.Client(
        timeout=httpx.Timeout(config.fetch_timeout),
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
        transport=transport,
    )


@contextmanager
def client_scope(client: Optional[httpx.Client], config: JobConfig) -> Iterator[httpx.Client]:
    """Use the caller's client, or a short-lived one closed on exit."""
    if client is not None:
        yield client
        return
    with build_client(config) as owned:
        yield owned


def content_type(response: httpx.Response) -> str:
    return str(response.headers.get("content-type") or "").strip().lower()


def declares_mime(response: httpx.Response, mime: str) -> bool:
    return mime.lower() in content_type(response)
