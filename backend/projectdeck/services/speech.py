"""
Client for the hosted speech-synthesis endpoint.

Talks to an OpenAI-compatible ``POST /audio/speech`` API and returns the raw
audio bytes. Input is trimmed and truncated to the configured character
budget before it leaves the process.
"""

from typing import Any, Optional

import httpx

from projectdeck.config import Settings
from projectdeck.exceptions import ConfigurationError, SpeechProviderError, ValidationError
from projectdeck.logging_config import get_logger
from projectdeck.services.normalize import MAX_TTS_CHARS, truncate_tts_text

logger = get_logger(__name__)


def provider_error_message(response: httpx.Response) -> str:
    """Best human-readable message from a failed provider response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


class SpeechClient:
    """Async wrapper around the provider's speech endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini-tts",
        default_voice: str = "alloy",
        response_format: str = "mp3",
        max_chars: int = MAX_TTS_CHARS,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self.model = model
        self.default_voice = default_voice
        self.response_format = response_format
        self.max_chars = max_chars
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SpeechClient":
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.tts_base_url,
            model=settings.tts_model,
            default_voice=settings.tts_voice,
            response_format=settings.tts_format,
            max_chars=settings.tts_max_chars,
            timeout=settings.tts_timeout_seconds,
            transport=transport,
        )

    @property
    def media_type(self) -> str:
        return "audio/mpeg" if self.response_format == "mp3" else f"audio/{self.response_format}"

    async def synthesize(self, text: Any, voice: Optional[str] = None) -> bytes:
        """
        Convert text to audio bytes.

        Raises:
            ConfigurationError: no API key configured
            ValidationError: text missing, not a string, or blank
            SpeechProviderError: transport failure or non-2xx response
        """
        if not self._api_key:
            raise ConfigurationError("OPENAI_API_KEY")

        if not text or not isinstance(text, str):
            raise ValidationError("Missing text", details=[{"loc": ["body", "text"], "msg": "Missing text", "type": "missing"}])

        safe_text = truncate_tts_text(text, self.max_chars)
        if not safe_text:
            raise ValidationError("Empty text", details=[{"loc": ["body", "text"], "msg": "Empty text", "type": "empty"}])

        payload = {
            "model": self.model,
            "voice": voice or self.default_voice,
            "input": safe_text,
            "response_format": self.response_format,
        }
        logger.debug(f"Synthesizing {len(safe_text)} chars with voice={payload['voice']}")

        try:
            response = await self._client.post(
                "/audio/speech",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Speech provider unreachable: {e}")
            raise SpeechProviderError(str(e) or type(e).__name__)

        if response.is_error:
            message = provider_error_message(response)
            logger.error(f"Speech provider returned {response.status_code}: {message}")
            raise SpeechProviderError(message, provider_status=response.status_code)

        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
