import pytest
from fastapi.testclient import TestClient

from src.app import create_app
from src.shared.contact.config import ContactConfig
from src.shared.contact.rate_limiter import RateLimitStore

NOW_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now_ms: int = NOW_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return ContactConfig(
        rate_limit_max=5,
        rate_limit_window_ms=60_000,
        message_min_length=10,
        allowed_origins=["http://localhost:3000"],
    )


@pytest.fixture
def rate_limiter(config):
    return RateLimitStore(max_requests=config.rate_limit_max, window_ms=config.rate_limit_window_ms)


@pytest.fixture
def app(config, rate_limiter, clock):
    return create_app(config=config, rate_limiter=rate_limiter, clock=clock)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def valid_payload():
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada.lovelace@acme.org",
        "message": "I would like to hear more about your services.",
        "honeypot": "",
        "form_timestamp": str(NOW_MS - 10_000),
    }
