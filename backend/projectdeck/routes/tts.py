"""
Text-to-speech proxy route.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from projectdeck.config import get_settings
from projectdeck.schemas import SpeechRequest
from projectdeck.services.speech import SpeechClient
from projectdeck.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()

_speech_client: Optional[SpeechClient] = None


def get_speech_client() -> SpeechClient:
    """Shared provider client, created on first use."""
    global _speech_client
    if _speech_client is None:
        _speech_client = SpeechClient.from_settings(get_settings())
    return _speech_client


async def close_speech_client() -> None:
    global _speech_client
    if _speech_client is not None:
        await _speech_client.aclose()
        _speech_client = None


@router.post("")
async def synthesize_speech(
    request: SpeechRequest,
    speech: SpeechClient = Depends(get_speech_client),
) -> Response:
    """Return the narration of ``text`` as audio bytes."""
    audio = await speech.synthesize(request.text, request.voice)

    logger.info(f"Synthesized {len(audio)} bytes of audio")

    return Response(
        content=audio,
        media_type=speech.media_type,
        headers={"Cache-Control": "no-store"},
    )
