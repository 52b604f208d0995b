"""
Vector store endpoints (v1).

Knowledge bases for the RAG agent: create a store (optionally ingesting
files in the same request), list stores, list and add a store's files.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File as FastAPIFile, Form, Path, Query, UploadFile

from api.dependencies import VectorStoresDep
from api.middleware.request_context import update_request_context
from integrations.vector_stores import UploadedDocument
from models.schemas.vector_stores import (
    VectorStoreCreateResponse,
    VectorStoreFilesResponse,
    VectorStoreListResponse,
    VectorStoreUploadResponse,
)

router = APIRouter()

VectorStoreIdPath = Annotated[
    str,
    Path(
        ...,
        description="Vector store identifier",
        examples=["vs_abc123"],
    ),
]


async def _documents(files: list[UploadFile] | None) -> list[UploadedDocument]:
    return [
        UploadedDocument(
            filename=upload.filename or "upload",
            content=await upload.read(),
            content_type=upload.content_type,
        )
        for upload in files or []
    ]


@router.post(
    "",
    response_model=VectorStoreCreateResponse,
    summary="Create vector store",
    description="Create a vector store and ingest any uploaded files into it.",
    responses={
        422: {"description": "Missing name"},
        502: {"description": "Provider rejected the request"},
    },
)
async def create_vector_store(
    vector_stores: VectorStoresDep,
    name: Annotated[str, Form(min_length=1, description="Vector store name")],
    files: Annotated[list[UploadFile] | None, FastAPIFile(description="Files to ingest")] = None,
) -> VectorStoreCreateResponse:
    vector_store = await vector_stores.create(name)
    uploaded = await vector_stores.upload_and_attach(vector_store["id"], await _documents(files))
    return VectorStoreCreateResponse(vectorStore=vector_store, uploadedFileIds=uploaded)


@router.get(
    "",
    response_model=VectorStoreListResponse,
    summary="List vector stores",
)
async def list_vector_stores(
    vector_stores: VectorStoresDep,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum stores to return")] = 20,
) -> VectorStoreListResponse:
    return VectorStoreListResponse(data=await vector_stores.list_stores(limit=limit))


@router.get(
    "/{vector_store_id}/files",
    response_model=VectorStoreFilesResponse,
    summary="List vector store files",
)
async def list_vector_store_files(
    vector_store_id: VectorStoreIdPath,
    vector_stores: VectorStoresDep,
) -> VectorStoreFilesResponse:
    update_request_context(vector_store_id=vector_store_id)
    return VectorStoreFilesResponse(
        vectorStoreId=vector_store_id,
        data=await vector_stores.list_files(vector_store_id),
    )


@router.post(
    "/{vector_store_id}/files",
    response_model=VectorStoreUploadResponse,
    summary="Add files to vector store",
    responses={502: {"description": "Provider rejected an upload"}},
)
async def add_vector_store_files(
    vector_store_id: VectorStoreIdPath,
    vector_stores: VectorStoresDep,
    files: Annotated[list[UploadFile], FastAPIFile(description="Files to ingest")],
) -> VectorStoreUploadResponse:
    update_request_context(vector_store_id=vector_store_id)
    uploaded = await vector_stores.upload_and_attach(vector_store_id, await _documents(files))
    return VectorStoreUploadResponse(vectorStoreId=vector_store_id, uploadedFileIds=uploaded)
