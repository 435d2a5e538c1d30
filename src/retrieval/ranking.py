"""Level-weighted re-ranking of raw vector similarity scores."""

from __future__ import annotations

from collections.abc import Collection
from typing import Any

from src.pipeline_config import ChunkLevel

# Episode chunks are too broad and sentences too narrow for typical queries.
BASE_LEVEL_WEIGHTS: dict[ChunkLevel, float] = {
    ChunkLevel.EPISODE: 0.8,
    ChunkLevel.TOPIC: 1.0,
    ChunkLevel.PARAGRAPH: 1.0,
    ChunkLevel.SENTENCE: 0.9,
}

PREFERRED_BOOST = 1.2
NON_PREFERRED_PENALTY = 0.8

# How many raw candidates to fetch per requested result
OVERFETCH_FACTOR = 2


def level_weight(level: ChunkLevel | str, preferred_levels: Collection[ChunkLevel]) -> float:
    """Multiplier for a chunk of *level* given the query's preferred levels."""
    level = ChunkLevel(level)
    preference = PREFERRED_BOOST if level in preferred_levels else NON_PREFERRED_PENALTY
    return BASE_LEVEL_WEIGHTS[level] * preference


def adjusted_score(
    similarity: float,
    level: ChunkLevel | str,
    preferred_levels: Collection[ChunkLevel],
) -> float:
    """Raw similarity rescaled by :func:`level_weight`, rounded to 4 places."""
    return round(similarity * level_weight(level, preferred_levels), 4)


def rerank(
    candidates: list[dict[str, Any]],
    preferred_levels: Collection[ChunkLevel],
    limit: int,
) -> list[dict[str, Any]]:
    """Re-sort candidates by level-adjusted score and keep the top *limit*.

    Each returned row is a copy carrying ``score`` (adjusted) next to the
    untouched raw ``similarity``. Equal scores keep their incoming order.
    """
    scored = [
        {
            **row,
            "score": adjusted_score(float(row["similarity"]), row["chunk_level"], preferred_levels),
        }
        for row in candidates
    ]
    scored.sort(key=lambda row: row["score"], reverse=True)
    return scored[:limit]
