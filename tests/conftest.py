import os

import httpx
import pytest
from fastapi.testclient import TestClient

# Keep tests deterministic and offline-safe.
os.environ["VECTORIZER_API_ID"] = "test-id"
os.environ["VECTORIZER_API_SECRET"] = "test-secret"
os.environ["VECTORIZER_API_URL"] = "https://vectorizer.test/api/v1/vectorize"
os.environ["LOG_JSON"] = "false"

from vectorizer_proxy.config import Settings  # noqa: E402
from vectorizer_proxy.main import create_app  # noqa: E402
from payloads import SVG_BYTES  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_id="test-id",
        api_secret="test-secret",
        api_url="https://vectorizer.test/api/v1/vectorize",
        timeout_s=5.0,
    )


class RecordingUpstream:
    """Stub vectorizer: records requests and answers with a canned response."""

    def __init__(self, response: httpx.Response | None = None, error: Exception | None = None) -> None:
        self.response = response or httpx.Response(200, content=SVG_BYTES, headers={"content-type": "image/svg+xml"})
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(
            self.response.status_code,
            content=self.response.content,
            headers=self.response.headers,
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def stub_upstream():
    def _stub(response: httpx.Response | None = None, error: Exception | None = None) -> RecordingUpstream:
        return RecordingUpstream(response=response, error=error)

    return _stub


@pytest.fixture
def make_client(settings):
    def _make(upstream: RecordingUpstream, **kwargs) -> TestClient:
        app = create_app(settings, transport=upstream.transport)
        return TestClient(app, **kwargs)

    return _make
