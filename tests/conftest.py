"""Shared test fixtures for the care intelligence tests."""

import json
from unittest.mock import MagicMock

import pytest

from care_intelligence.config import AppConfig, ModelConfig
from care_intelligence.llm import GenAIJSONClient
from care_intelligence.storage import InMemoryCareStore


@pytest.fixture(autouse=True)
def no_ambient_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)


def make_genai_client(payload=None, raw=None, error=None):
    """A stand-in for ``genai.Client`` returning one canned response."""
    client = MagicMock()
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        text = raw if raw is not None else json.dumps(payload, ensure_ascii=False)
        client.models.generate_content.return_value = MagicMock(text=text)
    return client


@pytest.fixture
def offline_llm():
    return GenAIJSONClient(ModelConfig())


@pytest.fixture
def llm_factory():
    def _build(payload=None, raw=None, error=None):
        return GenAIJSONClient(ModelConfig(), client=make_genai_client(payload, raw, error))

    return _build


@pytest.fixture
def app_config():
    return AppConfig()


@pytest.fixture
def memory_store():
    return InMemoryCareStore()


@pytest.fixture
def user_id():
    return "parent1"
