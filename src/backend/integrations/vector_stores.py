"""
Vector store helpers over the OpenAI vector stores and files APIs.

Used by the route layer to create knowledge bases that the retrieval agent
searches. Provider errors propagate as ``openai.APIError`` and are mapped to
HTTP responses by the global exception handlers.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from openai import AsyncOpenAI

from utils.logger import logger

#: Purpose the files API requires for documents used by file search
FILE_PURPOSE = "assistants"


@dataclass(frozen=True, slots=True)
class UploadedDocument:
    """A document received from a client, ready to forward to the provider."""

    filename: str
    content: bytes
    content_type: str | None = None


class VectorStoreClient:
    def __init__(self, client: AsyncOpenAI):
        self._client = client

    async def create(self, name: str) -> dict[str, Any]:
        vector_store = await self._client.vector_stores.create(name=name)
        logger.info(f"Created vector store {vector_store.id} ({name})")
        return vector_store.model_dump(mode="json")

    async def list_stores(self, limit: int = 20) -> list[dict[str, Any]]:
        page = await self._client.vector_stores.list(limit=limit)
        return [vector_store.model_dump(mode="json") for vector_store in page.data]

    async def list_files(self, vector_store_id: str, limit: int = 100) -> list[dict[str, Any]]:
        page = await self._client.vector_stores.files.list(vector_store_id=vector_store_id, limit=limit)
        return [item.model_dump(mode="json") for item in page.data]

    async def upload_and_attach(self, vector_store_id: str, documents: Sequence[UploadedDocument]) -> list[str]:
        """Upload documents to the files API and attach each one to the store.

        Files are processed in order; the first provider error aborts the
        remaining uploads.

        Returns:
            Provider file ids, in upload order
        """
        file_ids: list[str] = []
        for document in documents:
            upload = (document.filename, document.content, document.content_type or "application/octet-stream")
            file = await self._client.files.create(file=upload, purpose=FILE_PURPOSE)
            await self._client.vector_stores.files.create(vector_store_id=vector_store_id, file_id=file.id)
            logger.info(f"Attached file {file.id} ({document.filename}) to vector store {vector_store_id}")
            file_ids.append(file.id)
        return file_ids


__all__ = ["FILE_PURPOSE", "UploadedDocument", "VectorStoreClient"]
