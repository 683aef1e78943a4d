"""Tests for GeminiClient with a mocked google-genai client."""

from unittest.mock import MagicMock, PropertyMock

import httpx
import pytest
from google.genai import errors as genai_errors

from gitpolish.clients.llm import GeminiClient
from gitpolish.errors import ConfigurationError, LlmError
from gitpolish.settings import PolishSettings


def _settings(**kwargs) -> PolishSettings:
    defaults = {"gemini_api_key": "test-key", "gemini_model": "gemini-2.5-flash"}
    defaults.update(kwargs)
    return PolishSettings(**defaults)


def _client_returning(text: str | None) -> MagicMock:
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text=text)
    return client


class TestGeminiClient:
    def test_returns_text(self) -> None:
        genai_client = _client_returning("# Hello")
        llm = GeminiClient(_settings(), client=genai_client)

        assert llm.complete("write a readme") == "# Hello"
        genai_client.models.generate_content.assert_called_once_with(
            model="gemini-2.5-flash", contents="write a readme"
        )

    def test_uses_configured_model(self) -> None:
        genai_client = _client_returning("ok")
        GeminiClient(_settings(gemini_model="gemini-2.5-pro"), client=genai_client).complete("hi")
        assert genai_client.models.generate_content.call_args.kwargs["model"] == "gemini-2.5-pro"

    @pytest.mark.parametrize("text", [None, "", "   \n"])
    def test_empty_response_raises(self, text: str | None) -> None:
        llm = GeminiClient(_settings(), client=_client_returning(text))
        with pytest.raises(LlmError, match="empty"):
            llm.complete("hi")

    def test_api_error_raises_llm_error(self) -> None:
        genai_client = MagicMock()
        genai_client.models.generate_content.side_effect = genai_errors.APIError(
            503, {"error": {"message": "The model is overloaded.", "status": "UNAVAILABLE"}}
        )
        with pytest.raises(LlmError, match="Gemini request failed"):
            GeminiClient(_settings(), client=genai_client).complete("hi")

    def test_transport_error_raises_llm_error(self) -> None:
        genai_client = MagicMock()
        genai_client.models.generate_content.side_effect = httpx.ConnectError("no route to host")
        with pytest.raises(LlmError):
            GeminiClient(_settings(), client=genai_client).complete("hi")

    def test_missing_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GIT_POLISH_GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="Gemini API key"):
            GeminiClient(_settings(gemini_api_key=None))

    def test_unreadable_response_raises_llm_error(self) -> None:
        genai_client = MagicMock()
        type(genai_client.models.generate_content.return_value).text = PropertyMock(
            side_effect=ValueError("response has no candidates")
        )
        with pytest.raises(LlmError, match="could not be read"):
            GeminiClient(_settings(), client=genai_client).complete("hi")

    def test_sdk_value_error_raises_llm_error(self) -> None:
        genai_client = MagicMock()
        genai_client.models.generate_content.side_effect = ValueError("unsupported contents")
        with pytest.raises(LlmError, match="Gemini request failed"):
            GeminiClient(_settings(), client=genai_client).complete("hi")
