from types import SimpleNamespace
from uuid import uuid4

import pytest
from unittest.mock import Mock

from app.config import settings
from app.models import CredentialType
from app.services import classifier_cache, classifier_service
from app.services.classifier_cache import ClassifierCache
from app.services.history_store import HistoryStore
from app.services.hub_service import CallerChannel, MessageKind


class FakeCaller(CallerChannel):
    """Collects every frame the hub sends back."""

    def __init__(self):
        self.sent: list[tuple[MessageKind, str]] = []

    async def send(self, kind: MessageKind, payload: str) -> None:
        self.sent.append((kind, payload))


def _make_user(first_name=None):
    return SimpleNamespace(id=uuid4(), first_name=first_name)


def _make_credential(credential_type: CredentialType, value: str = "secret"):
    return SimpleNamespace(credential_type=credential_type.value, value=value)


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture(autouse=True)
def _no_llm(monkeypatch):
    """Keep the classifier on heuristics unless a test installs a provider."""
    monkeypatch.setattr(settings, "openai_api_key", None)
    monkeypatch.setattr(classifier_service, "_llm_provider", None)
    monkeypatch.setattr(classifier_cache, "_classifier_cache", ClassifierCache(max_size=64, redis_client=None))


@pytest.fixture
def history_store():
    return HistoryStore(limit=50)


@pytest.fixture
def caller():
    return FakeCaller()


@pytest.fixture
def make_user():
    return _make_user


@pytest.fixture
def make_credential():
    return _make_credential
