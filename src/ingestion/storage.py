"""Supabase storage helpers for podcasts and their chunk trees."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, cast

from supabase import Client, create_client

from src.pipeline_config import ChunkLevel

if TYPE_CHECKING:
    from src.ingestion.models import Chunk

logger = logging.getLogger(__name__)

BATCH_SIZE = 50
# PostgREST caps a single select at 1000 rows by default.
PAGE_SIZE = 1000


def get_supabase_client() -> Client:
    """Create and return a Supabase client from environment variables."""
    return create_client(
        os.getenv("SUPABASE_URL", ""),
        os.getenv("SUPABASE_KEY", ""),
    )


def store_podcast(
    client: Client,
    title: str,
    source_file: str | None = None,
    transcript_format: str | None = None,
    guest_name: str | None = None,
) -> str:
    """Store podcast metadata and return the generated podcast ID."""
    result = (
        client.table("podcasts")
        .insert(
            {
                "title": title,
                "source_file": source_file,
                "transcript_format": transcript_format,
                "guest_name": guest_name,
            }
        )
        .execute()
    )
    return str(result.data[0]["id"])


def delete_podcast(client: Client, podcast_id: str) -> None:
    """Delete a podcast and every chunk stored for it."""
    client.table("podcast_chunks").delete().eq("podcast_id", podcast_id).execute()
    client.table("podcasts").delete().eq("id", podcast_id).execute()


def chunk_to_row(
    podcast_id: str,
    chunk: Chunk,
    embedding: list[float],
    parent_id: int | None,
) -> dict[str, Any]:
    """Map a chunk onto a ``podcast_chunks`` row."""
    return {
        "podcast_id": podcast_id,
        "chunk_index": chunk.sequence_index,
        "chunk_level": chunk.level.value,
        "parent_chunk_id": parent_id,
        "text_content": chunk.text,
        "embedding": embedding,
        "timestamp_start": chunk.time_range.start,
        "timestamp_end": chunk.time_range.end,
        "speaker": chunk.speaker,
        "topic_boundary": chunk.topic_boundary,
        "summary": chunk.summary,
        "guest_name": chunk.guest_name,
        "full_text": chunk.full_text,
        "chapter_title": chunk.metadata.get("chapter_title"),
        "chapter_theme": chunk.metadata.get("chapter_theme"),
        "chapter_index": chunk.metadata.get("chapter_index"),
        "metadata": chunk.metadata,
    }


def store_chunk_tree(
    client: Client,
    podcast_id: str,
    chunks_with_embeddings: list[tuple[Chunk, list[float]]],
) -> dict[int, int]:
    """Insert a chunk tree level by level and resolve parent references.

    Parents are always inserted before their children, so each child's
    provisional ``parent_ref`` can be rewritten to the durable id returned
    for its parent. Rows within a batch come back in insertion order.

    Returns:
        Mapping of ``sequence_index`` to durable chunk id.
    """
    durable_ids: dict[int, int] = {}

    for level in ChunkLevel:
        level_items = [(c, e) for c, e in chunks_with_embeddings if c.level is level]
        for i in range(0, len(level_items), BATCH_SIZE):
            batch = level_items[i : i + BATCH_SIZE]
            rows = [
                chunk_to_row(
                    podcast_id,
                    chunk,
                    embedding,
                    durable_ids[chunk.parent_ref] if chunk.parent_ref is not None else None,
                )
                for chunk, embedding in batch
            ]
            result = client.table("podcast_chunks").insert(rows).execute()
            inserted = cast(list[dict[str, Any]], result.data)
            for (chunk, _), row in zip(batch, inserted, strict=True):
                durable_ids[chunk.sequence_index] = int(row["id"])

    logger.info("Stored %d chunks for podcast %s", len(durable_ids), podcast_id)
    return durable_ids


def match_chunks(
    client: Client,
    query_embedding: list[float],
    levels: list[ChunkLevel],
    min_similarity: float,
    match_count: int,
    podcast_id: str | None = None,
) -> list[dict[str, Any]]:
    """Vector similarity search restricted to *levels*, most similar first."""
    result = client.rpc(
        "match_podcast_chunks",
        {
            "query_embedding": query_embedding,
            "match_threshold": min_similarity,
            "match_count": match_count,
            "filter_levels": [level.value for level in levels],
            "filter_podcast_id": podcast_id,
        },
    ).execute()
    # Supabase .data is typed as JSON (broad union); cast to concrete type.
    return cast(list[dict[str, Any]], result.data)


def get_podcast(client: Client, podcast_id: str) -> dict[str, Any] | None:
    """One podcast record, or None if it does not exist."""
    result = client.table("podcasts").select("*").eq("id", podcast_id).execute()
    rows = cast(list[dict[str, Any]], result.data)
    return rows[0] if rows else None


def list_podcasts(client: Client) -> list[dict[str, Any]]:
    """All podcasts, newest first."""
    result = client.table("podcasts").select("*").order("created_at", desc=True).execute()
    return cast(list[dict[str, Any]], result.data)


def get_podcast_chunks(
    client: Client,
    podcast_id: str,
    level: ChunkLevel | None = None,
) -> list[dict[str, Any]]:
    """Stored chunks of one podcast in creation order, optionally for one level."""
    query = (
        client.table("podcast_chunks")
        .select(
            "id,chunk_index,chunk_level,parent_chunk_id,text_content,summary,speaker,"
            "topic_boundary,timestamp_start,timestamp_end,chapter_title,chapter_theme,"
            "chapter_index,guest_name,full_text,metadata,created_at"
        )
        .eq("podcast_id", podcast_id)
    )
    if level is not None:
        query = query.eq("chunk_level", level.value)
    result = query.order("chunk_index").execute()
    return cast(list[dict[str, Any]], result.data)


def _select_all_chunks(
    client: Client, columns: str, level: ChunkLevel | None = None
) -> list[dict[str, Any]]:
    """Every ``podcast_chunks`` row for *columns*, fetched page by page."""
    rows: list[dict[str, Any]] = []
    start = 0
    while True:
        query = client.table("podcast_chunks").select(columns)
        if level is not None:
            query = query.eq("chunk_level", level.value)
        result = query.order("id").range(start, start + PAGE_SIZE - 1).execute()
        page = cast(list[dict[str, Any]], result.data)
        rows.extend(page)
        if len(page) < PAGE_SIZE:
            return rows
        start += PAGE_SIZE


def get_chunk_stats_rows(client: Client) -> list[dict[str, Any]]:
    """Lightweight columns of every stored chunk, for corpus analytics."""
    return _select_all_chunks(client, "podcast_id,chunk_level,speaker,topic_boundary,created_at")


def get_episode_rows(client: Client) -> list[dict[str, Any]]:
    """Episode-level chunks with their full text, for corpus analytics."""
    return _select_all_chunks(
        client,
        "podcast_id,summary,full_text,metadata,created_at",
        level=ChunkLevel.EPISODE,
    )
