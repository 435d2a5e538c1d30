"""Search endpoint: level-aware semantic search with hierarchical context."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from src.api.models import SearchRequest, SearchResponse
from src.ingestion.embeddings import EmbeddingError
from src.retrieval.search import search_transcripts

router = APIRouter()


@router.post("/api/search-transcripts", response_model=SearchResponse)
async def search(request: SearchRequest) -> SearchResponse:
    """Classify the query, search the preferred levels and attach context.

    Explicit ``levels`` in the request override the query classification.
    """
    query = request.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query is required")

    try:
        result = search_transcripts(
            query,
            levels=request.levels,
            max_results=request.max_results,
            min_similarity=request.min_similarity,
            podcast_id=request.podcast_id,
            restrict_levels=request.restrict_levels,
        )
    except EmbeddingError as exc:
        raise HTTPException(status_code=502, detail=f"Embedding service failed: {exc}") from exc

    return SearchResponse.model_validate(result)
