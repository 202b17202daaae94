"""
Pytest shared fixtures.

The app is built with an offline timezone resolver and a fake Gemini
model, so no test touches the network.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from bazichart.api import create_app
from bazichart.bazi import compute_chart
from bazichart.config import Settings
from bazichart.create_chart import ChartService
from bazichart.llm import ChatAdvisor
from bazichart.sessions import InMemorySessionStore
from bazichart.timezones import TimezoneResolver


class FakeModel:
    """Stands in for genai.GenerativeModel; records every call."""

    def __init__(self, text="Your Bing Fire Day Master shines in creative work."):
        self.text = text
        self.calls = []

    def generate_content(self, contents, **kwargs):
        self.calls.append((contents, kwargs))
        return SimpleNamespace(text=self.text)


class FailingModel:
    def generate_content(self, contents, **kwargs):
        raise RuntimeError("quota exceeded")


@pytest.fixture
def sample_chart():
    """1990-01-01 00:00, male: 己巳 丙子 丙寅 戊子."""
    birth = datetime(1990, 1, 1, 0, 0)
    return compute_chart(birth, birth, "male")


@pytest.fixture
def resolver():
    return TimezoneResolver()


@pytest.fixture
def chart_service(resolver):
    service = ChartService(resolver, timeout=10.0)
    yield service
    service.close()


@pytest.fixture
def store():
    return InMemorySessionStore(ttl_seconds=3600, max_entries=100)


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def app(store, chart_service, fake_model):
    return create_app(
        Settings(geocoder_enabled=False),
        store=store,
        chart_service=chart_service,
        advisor=ChatAdvisor(None, model=fake_model),
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def failing_model():
    return FailingModel()


@pytest.fixture
def make_client(store, chart_service):
    """Build a client around a custom Gemini model and/or chart service."""
    opened = []

    def _make(model=None, service=None):
        app = create_app(
            Settings(geocoder_enabled=False),
            store=store,
            chart_service=service or chart_service,
            advisor=ChatAdvisor(None, model=model),
        )
        test_client = TestClient(app)
        test_client.__enter__()
        opened.append(test_client)
        return test_client

    yield _make
    for test_client in opened:
        test_client.__exit__(None, None, None)
