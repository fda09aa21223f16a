"""Generative model backends used for transcription and enrichment."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

import google.generativeai as genai

from .errors import ValidationError

logger = logging.getLogger(__name__)


class GenerativeBackend(Protocol):
    """Common interface for generative model backends."""

    async def transcribe(self, audio: bytes, mime_type: str, prompt: str, model_id: str) -> str:
        """Return the raw transcription text for ``audio``."""

    async def generate(self, prompt: str, model_id: str) -> str:
        """Return the raw model output for a text-only ``prompt``."""


BackendFactory = Callable[[str], GenerativeBackend]


class GeminiBackend:
    """Hosted inference through the Google Gemini API."""

    def __init__(self, api_key: Optional[str], timeout: float = 600.0) -> None:
        if not api_key:
            raise ValidationError("APIキーが設定されていません。")
        genai.configure(api_key=api_key)
        self.timeout = timeout

    def _model(self, model_id: str):
        return genai.GenerativeModel(model_name=model_id)

    async def transcribe(self, audio: bytes, mime_type: str, prompt: str, model_id: str) -> str:  # pragma: no cover - network call
        logger.info("Sending %d bytes of %s to %s", len(audio), mime_type, model_id)
        response = await self._model(model_id).generate_content_async(
            [prompt, {"mime_type": mime_type, "data": audio}],
            request_options={"timeout": self.timeout},
        )
        return response.text

    async def generate(self, prompt: str, model_id: str) -> str:  # pragma: no cover - network call
        response = await self._model(model_id).generate_content_async(
            prompt,
            request_options={"timeout": self.timeout},
        )
        return response.text


def get_backend(api_key: Optional[str], timeout: float = 600.0) -> GenerativeBackend:
    """Return the backend for ``api_key``."""

    return GeminiBackend(api_key, timeout=timeout)
