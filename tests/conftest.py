"""
Shared fixtures for codedx_client tests.
Network-free: every HTTP exchange goes through httpx.MockTransport.
"""
import json
from typing import Callable

import httpx
import pytest

from codedx_client.core.client_config import ApiKeyConfig
from codedx_client.services.api_client import ApiClient

BASE_URL = "https://codedx.example.com/codedx"
TEST_API_KEY = "test-api-key"

Handler = Callable[[httpx.Request], httpx.Response]


def json_response(status_code: int, body) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(body).encode("utf-8"))


def make_api_client(handler: Handler) -> ApiClient:
    """ApiClient whose requests are answered by `handler`."""
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return ApiClient(ApiKeyConfig(BASE_URL, TEST_API_KEY), http_client=http_client)


class RecordingHandler:
    """Answers every request with the next canned response and keeps what was sent."""

    def __init__(self, *responses: httpx.Response):
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        return self._responses.pop(0)


@pytest.fixture
def clear_codedx_env(monkeypatch):
    """Remove any CODEDX_* variables inherited from the outer environment."""
    for name in (
        "CODEDX_BASE_URL",
        "CODEDX_INSECURE",
        "CODEDX_API_KEY",
        "CODEDX_USERNAME",
        "CODEDX_PASSWORD",
        "CODEDX_TIMEOUT_MS",
        "CODEDX_POLL_INTERVAL_MS",
        "CODEDX_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch
