from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class RunRequest(BaseModel):
    question: str = Field(..., description="User question to answer.", examples=["What is the capital of France?"])
    timeout_s: Optional[float] = Field(default=None, gt=0, description="Overall deadline of the Run in seconds.")


class RunResponse(BaseModel):
    content: str
    trace_id: str
    steps: int


class SearchRequest(BaseModel):
    query: str


class SearchHit(BaseModel):
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    score: float


class SearchResponse(BaseModel):
    message: str
    results: List[SearchHit] = Field(default_factory=list)


class IngestUrlRequest(BaseModel):
    url: str = Field(..., examples=["https://en.wikipedia.org/wiki/Paris"])


class DocumentPreview(BaseModel):
    page: int
    page_content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class IngestResponse(BaseModel):
    source: str
    chunks: int
    pages: int
    documents: List[DocumentPreview] = Field(default_factory=list)


class FileIngestResult(IngestResponse):
    file_name: str
    size: int


class UploadPdfResponse(BaseModel):
    message: str
    total_files: int
    results: List[FileIngestResult]
