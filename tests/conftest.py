from __future__ import annotations

from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest

from core import JobConfig

PDF_BYTES = b"%PDF-1.4\n% test document\n"

Route = Union[Tuple[int, str, bytes], Exception, Callable[[httpx.Request], httpx.Response]]


class FakeClock:
    """Manually advanced clock; ``step`` adds time on every read."""

    def __init__(self, start: float = 1_000.0, step: float = 0.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWeb:
    """Routes keyed by (method, url); unknown routes answer 404."""

    def __init__(self, routes: Dict[Tuple[str, str], Route] | None = None) -> None:
        self.routes: Dict[Tuple[str, str], Route] = dict(routes or {})
        self.calls: List[Tuple[str, str]] = []

    def add(self, method: str, url: str, route: Route) -> None:
        self.routes[(method, url)] = route

    def pdf(self, url: str, body: bytes = PDF_BYTES) -> None:
        self.add("HEAD", url, (200, "application/pdf", b""))
        self.add("GET", url, (200, "application/pdf", body))

    def page(self, url: str, html: str) -> None:
        self.add("HEAD", url, (200, "text/html; charset=utf-8", b""))
        self.add("GET", url, (200, "text/html; charset=utf-8", html.encode("utf-8")))

    def handler(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, str(request.url))
        self.calls.append(key)
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, headers={"content-type": "text/html"}, content=b"not found")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        status, content_type, body = route
        return httpx.Response(status, headers={"content-type": content_type}, content=body)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler), follow_redirects=True)

    def urls_requested(self) -> List[str]:
        return [url for _, url in self.calls]


@pytest.fixture
def config() -> JobConfig:
    return JobConfig(
        source_column=1,
        extracted_column=2,
        result_column=3,
        start_row=2,
        container_id="archive",
        collection_name="papers",
        time_ceiling_seconds=300,
        hard_limit_seconds=360,
        continuation_delay_seconds=60,
    )


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_clock() -> Callable[..., FakeClock]:
    return FakeClock


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES
