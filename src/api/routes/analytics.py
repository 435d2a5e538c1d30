"""Analytics endpoint: corpus-wide statistics over the stored chunk tree."""

from __future__ import annotations

from fastapi import APIRouter

from src.api.models import AnalyticsResponse
from src.ingestion.storage import get_chunk_stats_rows, get_episode_rows, get_supabase_client
from src.retrieval.analytics import corpus_analytics

router = APIRouter()


@router.get("/api/analytics", response_model=AnalyticsResponse)
async def get_analytics() -> AnalyticsResponse:
    """Episode, level, speaker, topic and upload statistics for the whole index."""
    client = get_supabase_client()
    return AnalyticsResponse(
        **corpus_analytics(get_chunk_stats_rows(client), get_episode_rows(client))
    )
