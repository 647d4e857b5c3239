from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlencode

import azure.functions as func
import httpx
import pytest

from discog_radar.shared import common_proxy

ENV_OVERRIDES = (
    "DISCOGS_RETRIES",
    "DISCOGS_RETRY_DELAY_MS",
    "DISCOGS_TIMEOUT_SECONDS",
    "USER_AGENT",
    "LABEL_SCAN_BATCH_SIZE",
    "LABEL_SCAN_BATCH_DELAY_MS",
)


class FakeDiscogs:
    """Scripted upstream. Each entry is a status, a (status, payload) pair or an exception.

    The last entry repeats once the script runs out.
    """

    def __init__(self) -> None:
        self.script: list[Any] = [(200, {"results": [], "pagination": {"page": 1, "pages": 1, "per_page": 25, "items": 0}})]
        self.requests: list[httpx.Request] = []
        self.handler = None

    def respond(self, *entries: Any) -> None:
        self.script = list(entries)

    def _next(self) -> Any:
        if len(self.script) > 1:
            return self.script.pop(0)
        return self.script[0]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        entry = self._next()
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, int):
            return httpx.Response(entry, request=request)
        status, payload = entry
        return httpx.Response(status, json=payload, request=request)

    @property
    def last_params(self) -> httpx.QueryParams:
        return self.requests[-1].url.params


@pytest.fixture
def credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISCOGS_KEY", "test-key")
    monkeypatch.setenv("DISCOGS_SECRET", "test-secret")
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def waits(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []

    async def _fake_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr(common_proxy, "_sleep", _fake_sleep)
    return recorded


@pytest.fixture
def discogs(monkeypatch: pytest.MonkeyPatch, credentials: None, waits: list[float]) -> FakeDiscogs:
    fake = FakeDiscogs()
    monkeypatch.setattr(common_proxy, "_new_client", lambda: httpx.Client(transport=httpx.MockTransport(fake)))
    return fake


def _make_request(
    path: str,
    params: dict[str, Any] | None = None,
    route_params: dict[str, str] | None = None,
    method: str = "GET",
) -> func.HttpRequest:
    params = params or {}
    qs = urlencode(params, doseq=True)
    url = f"http://localhost/api/discogs/{path}" + (f"?{qs}" if qs else "")
    flat = {k: (v[0] if isinstance(v, list) else v) for k, v in params.items()}
    return func.HttpRequest(method=method, url=url, params=flat, route_params=route_params or {}, body=b"")


@pytest.fixture
def make_request():
    return _make_request


def body_of(resp: func.HttpResponse) -> Any:
    return json.loads(resp.get_body())


@pytest.fixture
def read_body():
    return body_of
