"""
Transcription Client: speech-to-text through the OpenAI audio API.

Provider and transport failures raise ``TranscriptionFailedError``. An empty
transcript (silence, non-speech) is a valid result here; deciding whether it
is usable is the caller's job.
"""

from __future__ import annotations

import mimetypes

import httpx

from openai import APIError, AsyncOpenAI

from api.middleware.exception_handlers import TranscriptionFailedError
from core.constants import (
    AUDIO_EXTENSION_OVERRIDES,
    AUDIO_FILENAME_FALLBACK,
    DEFAULT_AUDIO_MIME_TYPE,
)
from utils.logger import logger


def base_mime_type(mime_type: str | None) -> str:
    """Strip parameters (``audio/webm;codecs=opus`` -> ``audio/webm``)."""
    if not mime_type:
        return DEFAULT_AUDIO_MIME_TYPE
    return mime_type.split(";", 1)[0].strip().lower() or DEFAULT_AUDIO_MIME_TYPE


def audio_filename(mime_type: str | None) -> str:
    """Upload filename whose extension lets the provider detect the format."""
    base = base_mime_type(mime_type)
    extension = AUDIO_EXTENSION_OVERRIDES.get(base) or mimetypes.guess_extension(base)
    if not extension:
        return AUDIO_FILENAME_FALLBACK
    return f"audio{extension}"


class TranscriptionClient:
    """Stateless speech-to-text client."""

    def __init__(self, client: AsyncOpenAI, model: str = "whisper-1", language: str | None = "en"):
        self._client = client
        self.model = model
        self.language = language

    async def transcribe(self, audio: bytes, mime_type: str | None = None) -> str:
        """Transcribe one audio buffer.

        Returns:
            Transcript text, possibly empty

        Raises:
            TranscriptionFailedError: Provider or transport error
        """
        mime = base_mime_type(mime_type)
        kwargs = {"language": self.language} if self.language else {}
        try:
            transcription = await self._client.audio.transcriptions.create(
                model=self.model,
                file=(audio_filename(mime), audio, mime),
                **kwargs,
            )
        except (APIError, httpx.HTTPError) as e:
            logger.error(
                f"Transcription failed: {type(e).__name__}: {e}",
                exc_info=True,
                mime_type=mime,
                audio_bytes=len(audio),
            )
            raise TranscriptionFailedError(cause=e) from e

        text = transcription.text or ""
        logger.debug(f"Transcribed {len(audio)} bytes ({mime}) into {len(text)} chars")
        return text


__all__ = ["TranscriptionClient", "audio_filename", "base_mime_type"]
