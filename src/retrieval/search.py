"""Multi-level search: classify, vector search by level, re-rank, add context."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from src.config import settings
from src.ingestion.embeddings import embed_texts
from src.ingestion.storage import get_supabase_client, match_chunks
from src.pipeline_config import ChunkLevel
from src.retrieval.context import assemble_context
from src.retrieval.ranking import OVERFETCH_FACTOR, rerank
from src.retrieval.router import classify_query

logger = logging.getLogger(__name__)


def get_query_embedding(query: str) -> list[float]:
    """Generate an embedding vector for the given query string."""
    return embed_texts([query])[0]


def search_transcripts(
    query: str,
    levels: list[ChunkLevel] | None = None,
    max_results: int | None = None,
    min_similarity: float | None = None,
    podcast_id: str | None = None,
    restrict_levels: bool = True,
) -> dict[str, Any]:
    """Search the index at the granularity best suited to *query*.

    Args:
        query: The user's question.
        levels: Explicit preferred levels; classified from the query if omitted.
        max_results: Number of results to return after re-ranking.
        min_similarity: Raw cosine similarity floor for candidates.
        podcast_id: Optional podcast filter.
        restrict_levels: Only fetch candidates at the preferred levels. When
            False, every level is fetched and non-preferred ones are
            discounted instead.

    Returns:
        Dictionary with the preferred levels, ranked results (each with its
        ``context``), a per-level breakdown and the search parameters.
    """
    max_results = max_results or settings.search_max_results
    min_similarity = settings.search_min_similarity if min_similarity is None else min_similarity
    preferred = levels or classify_query(query)
    logger.info("Query %r -> preferred levels %s", query, [lvl.value for lvl in preferred])

    embedding = get_query_embedding(query)
    client = get_supabase_client()
    pool = match_chunks(
        client,
        embedding,
        levels=preferred if restrict_levels else list(ChunkLevel),
        min_similarity=min_similarity,
        match_count=max_results * OVERFETCH_FACTOR,
        podcast_id=podcast_id,
    )

    ranked = rerank(pool, preferred, max_results)
    results = [{**hit, "context": assemble_context(hit, pool)} for hit in ranked]

    return {
        "query": query,
        "preferred_levels": [lvl.value for lvl in preferred],
        "results": results,
        "count": len(results),
        "level_breakdown": dict(Counter(r["chunk_level"] for r in results)),
        "search_strategy": {
            "min_similarity": min_similarity,
            "max_results": max_results,
            "restrict_levels": restrict_levels,
        },
    }
