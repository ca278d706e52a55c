"""
Tests for ai_providers.py and llm_utils.py

Covers the provider factory and the single JSON reply parser.
"""

import pytest
from termbank.lib.ai_providers import OpenAIProvider, get_provider
from termbank.lib.llm_utils import call_llm_sync, parse_json_object
from termbank.lib.mock_ai_provider import MockAIProvider


@pytest.mark.unit
def test_factory_returns_mock():
    provider = get_provider("mock")

    assert isinstance(provider, MockAIProvider)
    assert provider.get_provider_name() == "mock"


@pytest.mark.unit
def test_factory_reads_env(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "MOCK")

    assert isinstance(get_provider(), MockAIProvider)


@pytest.mark.unit
def test_factory_rejects_unknown_provider():
    with pytest.raises(ValueError, match="Unknown AI provider"):
        get_provider("bogus")


@pytest.mark.unit
def test_openai_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ValueError, match="OpenAI API key not found"):
        OpenAIProvider()


@pytest.mark.unit
def test_call_llm_sync_dispatches_to_mock():
    provider = MockAIProvider(similarities={("伏击", "埋伏"): 0.82})

    reply = call_llm_sync(provider, "词汇A：「伏击」\n词汇B：「埋伏」")

    assert parse_json_object(reply)["similarity"] == pytest.approx(0.82)


@pytest.mark.unit
@pytest.mark.parametrize("text,expected", [
    ('{"similarity": 0.5}', {"similarity": 0.5}),
    ('```json\n{"similarity": 0.5}\n```', {"similarity": 0.5}),
    ('判断如下：{"similarity": 0.5, "reason": "近义"} 完毕', {"similarity": 0.5, "reason": "近义"}),
])
def test_parse_json_object(text, expected):
    assert parse_json_object(text) == expected


@pytest.mark.unit
@pytest.mark.parametrize("text", ["", "no json here", "{not json}", "[1, 2]"])
def test_parse_json_object_rejects_garbage(text):
    assert parse_json_object(text) is None
