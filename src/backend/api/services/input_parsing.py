"""
Request field parsing shared by the HTTP and WebSocket surfaces.

Clients send loosely typed fields (multipart forms carry everything as
strings), so vector store ids and params accept several encodings.
"""

from __future__ import annotations

import base64
import binascii
import json

from collections.abc import Sequence
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from api.middleware.exception_handlers import PayloadTooLargeError, ValidationException
from core.constants import AUDIO_FILENAME_FALLBACK, DEFAULT_AUDIO_MIME_TYPE, Settings
from models.agent_models import (
    AgentInput,
    AgentParams,
    AudioChunk,
    BatchAudioInput,
    BatchMetadata,
    ProcessingMode,
    SingleAudioInput,
)
from models.schemas.agents import SupervisorRequest

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def parse_vector_store_ids(value: Any) -> tuple[str, ...]:
    """Accept a list, a JSON array string, or a comma-separated string."""
    if value is None:
        return ()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ()
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None
        value = parsed if isinstance(parsed, list) else text.split(",")
    if not isinstance(value, Sequence):
        raise ValidationException("vectorStoreIds must be a list or a string", field="vectorStoreIds")
    return tuple(item.strip() for item in map(str, value) if item.strip())


def parse_params(value: Any) -> dict[str, Any]:
    """Accept a dict or a JSON object string; anything unparseable becomes empty."""
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, str) and value.strip():
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def agent_params(body: SupervisorRequest) -> AgentParams:
    return AgentParams(
        vector_store_ids=parse_vector_store_ids(body.vectorStoreIds),
        extra=parse_params(body.params),
    )


def processing_mode(value: str | None, settings: Settings) -> ProcessingMode:
    return ProcessingMode.parse(value, default=ProcessingMode.parse(settings.default_processing_mode))


def decode_base64_audio(data: str) -> bytes:
    """Decode base64 audio, tolerating a ``data:<mime>;base64,`` prefix."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationException("audio must be base64 encoded", field="audio") from e


def check_audio_size(filename: str, audio: bytes, settings: Settings) -> bytes:
    if len(audio) > settings.max_audio_upload_bytes:
        raise PayloadTooLargeError(filename, len(audio), settings.max_audio_upload_bytes)
    return audio


async def _read_upload(upload: UploadFile, settings: Settings) -> AudioChunk:
    audio = check_audio_size(upload.filename or AUDIO_FILENAME_FALLBACK, await upload.read(), settings)
    return AudioChunk(audio=audio, mime_type=upload.content_type or DEFAULT_AUDIO_MIME_TYPE)


async def read_supervisor_request(
    request: Request,
    settings: Settings,
) -> tuple[SupervisorRequest, AgentInput | str | None]:
    """Read a JSON or multipart supervisor request.

    Multipart requests may carry one ``audio`` file (single audio) or
    repeated ``audioChunks`` files (batch audio, in upload order). When audio
    is present, the ``input`` text field travels with it as the prompt placed
    ahead of the transcript.

    Returns:
        The parsed fields and the agent input, or None when nothing usable was sent
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        body = SupervisorRequest.model_validate({k: v for k, v in form.multi_items() if isinstance(v, str)})

        uploads = [item for item in form.getlist("audioChunks") if isinstance(item, UploadFile)]
        if uploads:
            chunks = tuple([await _read_upload(upload, settings) for upload in uploads])
            mode = processing_mode(body.processingMode, settings)
            return body, BatchAudioInput(
                chunks=chunks,
                batch_metadata=BatchMetadata(processing_mode=mode),
                prompt=body.input,
            )

        audio = form.get("audio")
        if isinstance(audio, UploadFile):
            chunk = await _read_upload(audio, settings)
            return body, SingleAudioInput(audio=chunk.audio, mime_type=chunk.mime_type, prompt=body.input)

        return body, body.input

    raw = await request.body()
    if not raw.strip():
        return SupervisorRequest(), None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationException("Request body must be JSON or multipart form data", field="body") from e
    if not isinstance(payload, dict):
        raise ValidationException("Request body must be a JSON object", field="body")

    body = SupervisorRequest.model_validate(payload)
    return body, body.input


__all__ = [
    "agent_params",
    "check_audio_size",
    "decode_base64_audio",
    "parse_params",
    "parse_vector_store_ids",
    "processing_mode",
    "read_supervisor_request",
]
