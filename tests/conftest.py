import os

import httpx
import pytest

# Set environment variables BEFORE any imports so the module-level app can be built
os.environ.setdefault("GATEWAY_API_KEY", "test-gateway-key")

from ai_proxy.config import Settings
from ai_proxy.main import create_app
from ai_proxy.upstream_client import UpstreamClient

GATEWAY_KEY = "test-gateway-key"
AUTH_HEADERS = {"Authorization": f"Bearer {GATEWAY_KEY}"}


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class UpstreamRecorder:
    """httpx MockTransport handler that records every outbound request."""

    def __init__(self, handler=None):
        self.requests = []
        self.handler = handler or (lambda request: httpx.Response(200, json={}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self, settings: Settings) -> UpstreamClient:
        return UpstreamClient(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(self)))


def build_settings(**overrides) -> Settings:
    values = {
        "GATEWAY_API_KEY": GATEWAY_KEY,
        "AI_API_PROVIDER": "openai",
        "OPENAI_API_KEY": "sk-test",
        "ANTHROPIC_API_KEY": "",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_settings():
    return build_settings


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_client():
    """Build an ASGI test client whose upstream calls go to the given recorder."""
    def _make(settings: Settings, recorder: UpstreamRecorder) -> httpx.AsyncClient:
        app = create_app(settings)
        app.state.upstream_client = recorder.client(settings)
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    return _make
