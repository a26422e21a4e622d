"""
Shared fixtures: an in-memory fake of the upstream pollution API.
"""

import json

import httpx
import pytest

from pollution_proxy.auth.orchestrator import AuthOrchestrator
from pollution_proxy.auth.token_store import TokenStore
from pollution_proxy.services.client import UpstreamClient

BASE_URL = "https://api.test"

RAW_RESULTS = [
    {"name": "Zürich (City)", "pollution": 41.5},
    {"name": "Station 42", "pollution": 90},
    {"name": "Kraków", "pollution": 63},
    {"name": "Industrial Zone", "pollution": 120.2},
    {"name": "unknown area", "pollution": 10},
    {"name": "SÃO PAULO (SP)", "pollution": 77},
]


class FakeUpstream:
    """
    Stand-in for the pollution API.

    Statuses queued in ``pollution_statuses`` are answered in order before
    falling back to 200 with ``results``.
    """

    def __init__(self, results: list[dict] | None = None):
        self.results = results if results is not None else list(RAW_RESULTS)
        self.requests: list[httpx.Request] = []
        self.pollution_statuses: list[int] = []
        self.login_status = 200
        self.refresh_status = 200
        self.login_payload: dict | None = None
        self.issued = 0

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def _issue(self) -> dict:
        self.issued += 1
        return {"token": f"access-{self.issued}", "refreshToken": f"refresh-{self.issued}"}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/auth/login":
            if self.login_status != 200:
                return httpx.Response(self.login_status, json={"message": "login failed"})
            if self.login_payload is not None:
                return httpx.Response(200, json=self.login_payload)
            return httpx.Response(200, json=self._issue())

        if path == "/auth/refresh":
            if self.refresh_status != 200:
                return httpx.Response(self.refresh_status, json={"message": "refresh failed"})
            return httpx.Response(200, json=self._issue())

        if path == "/pollution":
            status = self.pollution_statuses.pop(0) if self.pollution_statuses else 200
            if status != 200:
                return httpx.Response(status, json={"message": "error"})
            page = int(request.url.params["page"])
            return httpx.Response(
                200,
                json={"meta": {"page": page, "totalPages": 3}, "results": self.results},
            )

        return httpx.Response(404, json={"message": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def api_client(upstream):
    return UpstreamClient(service_id="pollution_api", transport=upstream.transport())


@pytest.fixture
def token_store():
    return TokenStore()


@pytest.fixture
def auth(api_client, token_store):
    return AuthOrchestrator(
        client=api_client,
        base_url=BASE_URL,
        username="user",
        password="secret",
        store=token_store,
    )
