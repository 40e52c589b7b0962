"""
Unit tests -- LLM client: mock mode + dispatch.
"""
import pytest
from salesbot.core.config import get_settings
from salesbot.copilot.llm_client import call_llm


def test_mock_returns_string():
    result = call_llm("Hello world", provider="mock")
    assert isinstance(result, str)


def test_mock_prefix():
    result = call_llm("Hello world", provider="mock")
    assert result.startswith("[MOCK]")


def test_mock_truncates_prompt():
    result = call_llm("x" * 500, provider="mock")
    assert result == "[MOCK] " + "x" * 200


def test_unknown_provider_raises():
    with pytest.raises(NotImplementedError, match="not supported"):
        call_llm("hi", provider="banana")


def test_openai_missing_key_raises(monkeypatch):
    """Should raise RuntimeError when key is empty."""
    monkeypatch.setattr(get_settings(), "openai_api_key", "")
    with pytest.raises(RuntimeError, match="openai_api_key"):
        call_llm("hi", provider="openai")


def test_anthropic_missing_key_raises(monkeypatch):
    """Should raise RuntimeError when key is empty."""
    monkeypatch.setattr(get_settings(), "anthropic_api_key", "")
    with pytest.raises(RuntimeError, match="anthropic_api_key"):
        call_llm("hi", provider="anthropic")


def test_provider_from_settings(monkeypatch):
    monkeypatch.setattr(get_settings(), "llm_provider", "mock")
    assert "[MOCK]" in call_llm("test")
