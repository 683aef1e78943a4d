"""Text-completion capability and its Gemini implementation."""

import logging
from abc import ABC, abstractmethod

import httpx
from google import genai
from google.genai import errors as genai_errors

from gitpolish.errors import ConfigurationError, LlmError
from gitpolish.settings import PolishSettings

logger = logging.getLogger(__name__)


class LlmClient(ABC):
    """complete() returns the model's text or raises LlmError. Callers own their fallbacks."""

    @abstractmethod
    def complete(self, prompt: str) -> str: ...


class GeminiClient(LlmClient):
    def __init__(self, settings: PolishSettings, client: genai.Client | None = None) -> None:
        if client is None:
            if not settings.gemini_api_key:
                raise ConfigurationError(
                    "Missing Gemini API key. Set GEMINI_API_KEY or gemini_api_key in your config, "
                    "or run: git-polish configure"
                )
            client = genai.Client(api_key=settings.gemini_api_key.get_secret_value())
        self._client = client
        self._model = settings.gemini_model

    def complete(self, prompt: str) -> str:
        logger.debug("Gemini %s: prompt of %d chars", self._model, len(prompt))
        try:
            response = self._client.models.generate_content(model=self._model, contents=prompt)
        except (genai_errors.APIError, httpx.HTTPError, ValueError) as exc:
            raise LlmError(f"Gemini request failed: {exc}") from exc
        try:
            text = response.text
        except ValueError as exc:
            raise LlmError(f"Gemini response could not be read: {exc}") from exc
        if not text or not text.strip():
            raise LlmError("Gemini returned an empty response")
        return text
