"""
Vector store API schemas.

Provider objects are passed through as plain dicts; only the envelope is typed.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VectorStoreCreateResponse(BaseModel):
    """A newly created vector store and the files ingested into it."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "vectorStore": {"id": "vs_123", "name": "handbook", "object": "vector_store"},
                "uploadedFileIds": ["file_abc"],
            }
        }
    )

    vectorStore: dict[str, Any]
    uploadedFileIds: list[str] = Field(default_factory=list)


class VectorStoreListResponse(BaseModel):
    data: list[dict[str, Any]] = Field(default_factory=list)


class VectorStoreFilesResponse(BaseModel):
    vectorStoreId: str
    data: list[dict[str, Any]] = Field(default_factory=list)


class VectorStoreUploadResponse(BaseModel):
    vectorStoreId: str
    uploadedFileIds: list[str] = Field(default_factory=list)


__all__ = [
    "VectorStoreCreateResponse",
    "VectorStoreFilesResponse",
    "VectorStoreListResponse",
    "VectorStoreUploadResponse",
]
