"""
Batch audio ingestion.

AudioBatchProcessor turns an ordered list of chunks into one transcript
under a processing mode:

- sequential: one call per chunk, in order; failed or empty chunks are skipped
- parallel: one concurrent call per chunk; results are reassembled by index
- merged: chunk bytes concatenated and transcribed once with the first chunk's MIME type

AudioBatchAccumulator is the per-connection builder behind the WebSocket
start/append/commit protocol.
"""

from __future__ import annotations

import asyncio

from collections.abc import Mapping, Sequence
from typing import Any

from api.middleware.exception_handlers import (
    BatchAlreadyActiveError,
    BatchNotStartedError,
    NoChunksTranscribedError,
    TranscriptionFailedError,
)
from core.constants import DEFAULT_AUDIO_MIME_TYPE
from integrations.transcription import TranscriptionClient
from models.agent_models import (
    AudioChunk,
    BatchAudioInput,
    BatchMetadata,
    ProcessingMode,
)
from utils.logger import logger


def join_transcripts(transcripts: Sequence[str]) -> str:
    """Join non-empty transcripts with single spaces, in the given order."""
    return " ".join(t.strip() for t in transcripts if t and t.strip()).strip()


class AudioBatchProcessor:
    def __init__(self, transcriber: TranscriptionClient):
        self._transcriber = transcriber

    async def process_batch(
        self,
        chunks: Sequence[AudioChunk],
        processing_mode: ProcessingMode | str | None = None,
    ) -> str:
        """Transcribe a batch into one string.

        Raises:
            NoChunksTranscribedError: No chunk produced usable text (or the batch is empty)
            TranscriptionFailedError: The single merged-mode call failed
        """
        mode = ProcessingMode.parse(processing_mode)
        if not chunks:
            raise NoChunksTranscribedError(0)

        match mode:
            case ProcessingMode.SEQUENTIAL:
                transcripts = await self._sequential(chunks)
            case ProcessingMode.PARALLEL:
                transcripts = await self._parallel(chunks)
            case ProcessingMode.MERGED:
                transcripts = [await self._merged(chunks)]

        text = join_transcripts(transcripts)
        if not text:
            raise NoChunksTranscribedError(len(chunks))

        logger.info(
            f"Transcribed {len(chunks)} audio chunks ({mode.value}) into {len(text)} chars",
            processing_mode=mode.value,
            chunks_count=len(chunks),
        )
        return text

    async def _transcribe_chunk(self, index: int, chunk: AudioChunk) -> str:
        """Transcribe one chunk, mapping any failed call to an empty placeholder.

        Never raises, so one bad chunk cannot abort its siblings in parallel mode.
        """
        try:
            return await self._transcriber.transcribe(chunk.audio, chunk.mime_type)
        except TranscriptionFailedError as e:
            logger.warning(f"Skipping audio chunk {index}: {e.message}", chunk_index=index)
            return ""
        except Exception as e:
            logger.error(f"Skipping audio chunk {index}: {type(e).__name__}: {e}", exc_info=True, chunk_index=index)
            return ""

    async def _sequential(self, chunks: Sequence[AudioChunk]) -> list[str]:
        return [await self._transcribe_chunk(index, chunk) for index, chunk in enumerate(chunks)]

    async def _parallel(self, chunks: Sequence[AudioChunk]) -> list[str]:
        # gather() returns results in argument order regardless of completion order
        return list(await asyncio.gather(*(self._transcribe_chunk(i, c) for i, c in enumerate(chunks))))

    async def _merged(self, chunks: Sequence[AudioChunk]) -> str:
        buffer = b"".join(chunk.audio for chunk in chunks)
        return await self._transcriber.transcribe(buffer, chunks[0].mime_type)


class AudioBatchAccumulator:
    """Builder for one in-flight batch at a time.

    ``start`` while a batch is open raises BatchAlreadyActiveError and leaves
    the open batch untouched; ``append``/``commit`` without an open batch
    raise BatchNotStartedError. ``commit`` hands back the finished batch and
    closes it.
    """

    def __init__(self, default_mode: ProcessingMode = ProcessingMode.MERGED):
        self.default_mode = default_mode
        self._active = False
        self._mime_type = DEFAULT_AUDIO_MIME_TYPE
        self._mode = default_mode
        self._chunks: list[AudioChunk] = []
        self._context: dict[str, Any] = {}

    @property
    def active(self) -> bool:
        return self._active

    @property
    def chunks_count(self) -> int:
        return len(self._chunks)

    def start(
        self,
        mime_type: str | None = None,
        processing_mode: ProcessingMode | str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        if self._active:
            raise BatchAlreadyActiveError(len(self._chunks))
        self._active = True
        self._mime_type = mime_type or DEFAULT_AUDIO_MIME_TYPE
        self._mode = ProcessingMode.parse(processing_mode, default=self.default_mode)
        self._chunks = []
        self._context = dict(context or {})

    def append(self, audio: bytes, timestamp: float | None = None) -> int:
        """Add a chunk to the open batch and return the new chunk count."""
        if not self._active:
            raise BatchNotStartedError("append audio")
        self._chunks.append(AudioChunk(audio=audio, mime_type=self._mime_type, timestamp=timestamp))
        return len(self._chunks)

    def commit(self) -> tuple[BatchAudioInput, dict[str, Any]]:
        """Close the open batch.

        Returns:
            The batch input and the context given to ``start``

        Raises:
            BatchNotStartedError: No batch is open
            NoChunksTranscribedError: The batch has no chunks (the batch is still closed)
        """
        if not self._active:
            raise BatchNotStartedError("commit")
        chunks = tuple(self._chunks)
        mode = self._mode
        context = self._context
        self.reset()
        if not chunks:
            raise NoChunksTranscribedError(0)
        return BatchAudioInput(chunks=chunks, batch_metadata=BatchMetadata(processing_mode=mode)), context

    def reset(self) -> int:
        """Discard any open batch and return how many chunks were dropped."""
        dropped = len(self._chunks)
        self._active = False
        self._chunks = []
        self._context = {}
        self._mode = self.default_mode
        self._mime_type = DEFAULT_AUDIO_MIME_TYPE
        return dropped


__all__ = ["AudioBatchAccumulator", "AudioBatchProcessor", "join_transcripts"]
