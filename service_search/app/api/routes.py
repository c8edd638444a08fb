"""API routes for the search service.

Handlers stay thin and delegate to ``SearchManager``. Store and provider
exceptions are not caught here; the handlers registered in ``main`` turn them
into ``{"error": ...}`` responses with a non-2xx status.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import structlog

from ..hybrid.search_manager import SearchManager

logger = structlog.get_logger("search_service.api")

router = APIRouter()


class SearchRequest(BaseModel):
    """Request model for both search endpoints."""
    query: str = Field(..., description="Raw search query")


class DocumentResult(BaseModel):
    """A keyword search result."""
    id: str = Field(..., description="Document ID")
    title: str = Field(..., description="Document title")
    body: str = Field(..., description="Document body")
    text_score: float = Field(..., description="Full-text relevance rank")


class ScoredDocumentResult(BaseModel):
    """A hybrid search result with its score breakdown."""
    id: str = Field(..., description="Document ID")
    title: str = Field(..., description="Document title")
    body: str = Field(..., description="Document body")
    hybrid_score: float = Field(..., description="Weighted blend of both signals")
    text_score: float = Field(..., description="Normalised text relevance")
    vector_score: float = Field(..., description="Vector similarity in [0, 1]")


class FulltextSearchResponse(BaseModel):
    results: List[DocumentResult]


class SemanticSearchResponse(BaseModel):
    results: List[ScoredDocumentResult]


class DocumentRequest(BaseModel):
    """Request model for creating or replacing a document."""
    id: Optional[str] = Field(None, description="Existing document ID to replace")
    title: str = Field(..., description="Document title")
    body: str = Field("", description="Document body")


class DocumentResponse(BaseModel):
    id: str
    title: str
    body: str
    has_embedding: bool


def get_search_manager(request: Request) -> SearchManager:
    """Get search manager from application state."""
    return request.app.state.search_manager


@router.post("/search/fulltext", response_model=FulltextSearchResponse)
async def fulltext_search(
    request: SearchRequest,
    search_manager: SearchManager = Depends(get_search_manager)
):
    """Rank documents by keyword relevance alone."""
    results = await search_manager.keyword_search(request.query)

    logger.info("Fulltext search completed", query=request.query, results_count=len(results))

    return FulltextSearchResponse(results=[
        DocumentResult(id=r.id, title=r.title, body=r.body, text_score=r.text_score)
        for r in results
    ])


@router.post("/search/semantic", response_model=SemanticSearchResponse)
async def semantic_search(
    request: SearchRequest,
    search_manager: SearchManager = Depends(get_search_manager)
):
    """Rank documents by the weighted hybrid score."""
    results = await search_manager.semantic_search(request.query)

    logger.info("Semantic search completed", query=request.query, results_count=len(results))

    return SemanticSearchResponse(results=[
        ScoredDocumentResult(**r.to_dict()) for r in results
    ])


@router.post("/documents", response_model=DocumentResponse)
async def index_document(
    request: DocumentRequest,
    search_manager: SearchManager = Depends(get_search_manager)
):
    """Create or replace a document."""
    document = await search_manager.index_document(request.title, request.body, request.id)
    return DocumentResponse(has_embedding=document.has_embedding, **document.to_dict())


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    search_manager: SearchManager = Depends(get_search_manager)
):
    """Point read of a single document."""
    document = await search_manager.get_document(document_id)
    if document is None:
        return JSONResponse(status_code=404, content={"error": f"Document {document_id} not found"})
    return DocumentResponse(has_embedding=document.has_embedding, **document.to_dict())


@router.get("/index/stats")
async def get_index_stats(
    search_manager: SearchManager = Depends(get_search_manager)
):
    """Document and embedding counts."""
    return await search_manager.get_index_stats()
