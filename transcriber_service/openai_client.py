from __future__ import annotations

import logging

import httpx

from audio_pipeline.models import EncodedUnit
from common.config import TranscriberSettings
from transcriber_service.errors import ServiceError

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.reason_phrase or "Unknown"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return "Unknown"


class OpenAIClient:
    """Speech-to-text and chat-completion calls against an OpenAI-compatible API.

    Pass ``client`` to reuse (or mock) an ``httpx.AsyncClient``; otherwise one
    is opened per request.
    """

    def __init__(
        self,
        api_key: str,
        settings: TranscriberSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.settings = settings or TranscriberSettings()
        self._client = client

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _post(self, path: str, **kwargs) -> httpx.Response:
        url = f"{self.settings.api_base_url.rstrip('/')}/{path}"
        if self._client is not None:
            return await self._client.post(url, headers=self._headers, **kwargs)
        async with httpx.AsyncClient(timeout=self.settings.request_timeout_s) as client:
            return await client.post(url, headers=self._headers, **kwargs)

    async def transcribe(self, unit: EncodedUnit, language: str) -> str:
        """Send one unit to /audio/transcriptions and return the recognized text."""
        resp = await self._post(
            "audio/transcriptions",
            data={"model": self.settings.transcription_model, "language": language},
            files={"file": (unit.filename, unit.data, unit.media_type)},
        )
        if resp.is_error:
            raise ServiceError(resp.status_code, _error_message(resp))
        return resp.json().get("text") or ""

    async def chat_completion(self, prompt: str) -> str:
        """Single-message chat completion; returns the assistant content."""
        payload = {
            "model": self.settings.transformation_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }
        resp = await self._post("chat/completions", json=payload)
        if resp.is_error:
            raise ServiceError(resp.status_code, _error_message(resp))
        data = resp.json()
        return data["choices"][0]["message"]["content"]
