from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)


class HighlightSpan(BaseModel):
    begin: int = Field(ge=0)
    end: int = Field(ge=0)
    text: str


class SearchHit(BaseModel):
    collection_id: str
    document_id: str
    title: str
    score: float | None = None
    source: Any = None
    uri: Any = None
    language: Any = None
    timestamp: Any = None
    highlights: list[HighlightSpan] = Field(default_factory=list)


class SearchResponse(BaseModel):
    results: list[SearchHit]
    diagnostics: dict[str, int] = Field(default_factory=dict)
    request_id: str


class DocumentResponse(BaseModel):
    collection_id: str
    document_id: str
    format: str
    text: str


class BackendHealthResponse(BaseModel):
    backend: str
    ok: bool
    detail: str | None = None
    index: str | None = None
