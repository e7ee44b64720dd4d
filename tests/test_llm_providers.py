"""
Tests for LLM providers and the provider factory
"""
import pytest
from langchain_core.messages import AIMessage

from conftest import FakeLLM
from mockify.modules.study_rag.llm_providers import (
    GroqLLM,
    LLMError,
    LLMFactory,
    LLMRateLimitError,
    OllamaLLM,
)


class FailingChatModel:
    def __init__(self, message):
        self.message = message

    def invoke(self, prompt):
        raise RuntimeError(self.message)


class TestGenerate:
    """Test cases for BaseLLM.generate"""

    def test_returns_text(self):
        assert FakeLLM(["hello"]).generate("Say hello") == "hello"

    def test_rate_limit_is_retried(self):
        llm = FakeLLM(error=RuntimeError("429 Too Many Requests"))
        llm.max_retries = 2

        with pytest.raises(LLMRateLimitError):
            llm.generate("prompt")
        assert len(llm.prompts) == 3

    def test_other_errors_fail_at_once(self):
        llm = FakeLLM(error=RuntimeError("model not found"))
        llm.max_retries = 2

        with pytest.raises(LLMError) as excinfo:
            llm.generate("prompt")
        assert not isinstance(excinfo.value, LLMRateLimitError)
        assert len(llm.prompts) == 1


class TestGroqFallback:
    """Test cases for GroqLLM"""

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GroqLLM(api_key=None)

    def test_falls_back_to_ollama(self, monkeypatch):
        groq = GroqLLM(api_key="test-key", ollama_config={"model": "llama3.1:latest"})
        monkeypatch.setattr(groq, "get_llm", lambda json_mode=False: FailingChatModel("429 rate limit"))
        monkeypatch.setattr(OllamaLLM, "invoke", lambda self, prompt, json_mode=False: AIMessage(content="local"))

        assert groq.invoke("hi").content == "local"

    def test_without_fallback(self, monkeypatch):
        groq = GroqLLM(api_key="test-key", fallback_to_ollama=False)
        monkeypatch.setattr(groq, "get_llm", lambda json_mode=False: FailingChatModel("401 Unauthorized"))

        with pytest.raises(LLMError, match="invalid or expired"):
            groq.invoke("hi")


class TestLLMFactory:
    """Test cases for LLMFactory"""

    def test_create_ollama(self):
        llm = LLMFactory.create(provider="ollama", model="mistral")
        assert isinstance(llm, OllamaLLM)
        assert llm.model == "mistral"

    def test_create_unknown(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            LLMFactory.create(provider="nonexistent")

    def test_groq_needs_key(self):
        with pytest.raises(ValueError, match="GROQ_API_KEY"):
            LLMFactory.create(provider="groq")

    def test_set_provider_validation(self):
        assert LLMFactory.set_provider("nonexistent")["success"] is False
        assert LLMFactory.set_provider("groq")["error"] == "GROQ_API_KEY is not configured"
