"""Episode endpoints: list podcasts and browse one episode by level."""

from __future__ import annotations

from collections import Counter

from fastapi import APIRouter, HTTPException

from src.api.models import ChunkResult, EpisodeDetail, EpisodeSummary
from src.ingestion.storage import (
    get_podcast,
    get_podcast_chunks,
    get_supabase_client,
    list_podcasts,
)
from src.pipeline_config import ChunkLevel
from src.retrieval.analytics import episode_breakdown, text_metrics

router = APIRouter()


@router.get("/api/episodes", response_model=list[EpisodeSummary])
async def list_episodes() -> list[EpisodeSummary]:
    """List all podcasts ordered by creation date (newest first)."""
    client = get_supabase_client()
    return [
        EpisodeSummary(
            id=str(p["id"]),
            title=p["title"],
            guest_name=p.get("guest_name"),
            source_file=p.get("source_file"),
            transcript_format=p.get("transcript_format"),
            created_at=p.get("created_at"),
        )
        for p in list_podcasts(client)
    ]


@router.get("/api/episodes/{podcast_id}", response_model=EpisodeDetail)
async def get_episode(podcast_id: str) -> EpisodeDetail:
    """Episode summary, full text, chunks by level and speaker analysis for one podcast."""
    client = get_supabase_client()
    chunks = get_podcast_chunks(client, podcast_id)
    if not chunks:
        raise HTTPException(status_code=404, detail="Episode not found")

    episode = next((c for c in chunks if c["chunk_level"] == ChunkLevel.EPISODE), None)
    if episode is None:
        raise HTTPException(status_code=404, detail="Episode not found")

    podcast = get_podcast(client, podcast_id) or {}
    breakdown = episode_breakdown(chunks)
    grouped = {
        level: [ChunkResult(**c) for c in rows] for level, rows in breakdown["chunks"].items()
    }

    return EpisodeDetail(
        id=podcast_id,
        title=podcast.get("title", "Untitled Episode"),
        guest_name=episode.get("guest_name"),
        summary=episode.get("summary"),
        full_text=episode.get("full_text"),
        created_at=episode.get("created_at"),
        **text_metrics(episode.get("full_text")),
        topics=grouped.get(ChunkLevel.TOPIC, []),
        chunks=grouped,
        chunk_counts=dict(Counter(c["chunk_level"] for c in chunks)),
        level_stats=breakdown["level_stats"],
        speakers=breakdown["speakers"],
        total_chunks=breakdown["total_chunks"],
    )
