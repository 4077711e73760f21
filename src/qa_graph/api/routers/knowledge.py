from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List, Tuple

from fastapi import APIRouter, Depends, File, UploadFile

from qa_graph.api.deps import get_knowledge_service
from qa_graph.api.errors import APIError
from qa_graph.api.schemas import (
    FileIngestResult,
    IngestResponse,
    IngestUrlRequest,
    SearchRequest,
    SearchResponse,
    UploadPdfResponse,
)
from qa_graph.rag.knowledge import KnowledgeService

router = APIRouter(prefix="/knowledge", tags=["knowledge"])

MAX_FILES = 10
MAX_FILE_BYTES = 10 * 1024 * 1024
PDF_CONTENT_TYPE = "application/pdf"


async def _read_upload(upload: UploadFile) -> Tuple[str, bytes]:
    if upload.content_type != PDF_CONTENT_TYPE:
        raise APIError("Only PDF files are allowed", status_code=400, code="unsupported_file_type")
    data = await upload.read()
    if not data:
        raise APIError(f"File is empty: {upload.filename}", status_code=400, code="empty_file")
    if len(data) > MAX_FILE_BYTES:
        raise APIError(f"File exceeds 10 MB: {upload.filename}", status_code=413, code="file_too_large")
    return upload.filename or "upload.pdf", data


async def _ingest_upload(knowledge: KnowledgeService, name: str, data: bytes) -> FileIngestResult:
    fd, tmp_path = tempfile.mkstemp(suffix=".pdf")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        try:
            report = await knowledge.ingest_file(Path(tmp_path), original_name=name)
        except (ValueError, RuntimeError, OSError) as exc:
            raise APIError(f"Failed to process PDF {name}: {exc}", status_code=400, code="pdf_ingest_failed") from exc
    finally:
        Path(tmp_path).unlink(missing_ok=True)
    return FileIngestResult(file_name=name, size=len(data), **report.to_dict())


@router.post("/upload-pdf", response_model=UploadPdfResponse, summary="Ingest PDF files into the knowledge base")
async def upload_pdfs(
    files: List[UploadFile] = File(...),
    knowledge: KnowledgeService = Depends(get_knowledge_service),
) -> UploadPdfResponse:
    if not files:
        raise APIError("No file provided", status_code=400, code="no_files")
    if len(files) > MAX_FILES:
        raise APIError(f"At most {MAX_FILES} files per request", status_code=400, code="too_many_files")

    # the whole batch is rejected before anything reaches the index
    uploads = [await _read_upload(upload) for upload in files]
    results = [await _ingest_upload(knowledge, name, data) for name, data in uploads]
    return UploadPdfResponse(
        message=f"{len(files)} PDF file(s) processed",
        total_files=len(files),
        results=results,
    )


@router.post("/ingest-url", response_model=IngestResponse, summary="Ingest a web page into the knowledge base")
async def ingest_url(
    payload: IngestUrlRequest,
    knowledge: KnowledgeService = Depends(get_knowledge_service),
) -> IngestResponse:
    try:
        report = await knowledge.ingest_url(payload.url)
    except ValueError as exc:
        raise APIError(str(exc), status_code=400, code="invalid_url") from exc
    except Exception as exc:
        raise APIError(f"Failed to load {payload.url}: {exc}", status_code=400, code="url_ingest_failed") from exc
    return IngestResponse(**report.to_dict())


@router.post("/search", response_model=SearchResponse, summary="Similarity search over the knowledge base")
async def search(
    payload: SearchRequest,
    knowledge: KnowledgeService = Depends(get_knowledge_service),
) -> SearchResponse:
    try:
        result = await knowledge.search(payload.query)
    except ValueError as exc:
        raise APIError(str(exc), status_code=400, code="empty_query") from exc
    return SearchResponse(**result)
