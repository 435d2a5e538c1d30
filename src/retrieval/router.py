"""Query router: classify questions to the chunk levels most likely to answer them."""

from __future__ import annotations

from src.pipeline_config import ChunkLevel

# Broad discovery: which episodes cover something
_BROAD_INDICATORS: tuple[str, ...] = (
    "episodes about",
    "podcasts about",
    "which episode",
    "find episodes",
    "discusses",
    "talks about",
    "covers",
    "mentions",
)

# Specific detail: a precise statement or definition
_SPECIFIC_INDICATORS: tuple[str, ...] = (
    "what does",
    "how does",
    "explain",
    "definition",
    "example",
    "quote",
    "exact",
    "precisely",
    "specifically",
)

# Exploratory: a subject in general
_EXPLORATORY_INDICATORS: tuple[str, ...] = (
    "tell me about",
    "learn about",
    "understand",
    "overview",
)

# Evaluated in order; the first category with a matching phrase wins.
_RULES: list[tuple[tuple[str, ...], list[ChunkLevel]]] = [
    (_BROAD_INDICATORS, [ChunkLevel.EPISODE, ChunkLevel.TOPIC]),
    (_SPECIFIC_INDICATORS, [ChunkLevel.PARAGRAPH, ChunkLevel.SENTENCE]),
    (_EXPLORATORY_INDICATORS, [ChunkLevel.EPISODE, ChunkLevel.TOPIC, ChunkLevel.PARAGRAPH]),
]

DEFAULT_LEVELS: list[ChunkLevel] = [ChunkLevel.TOPIC, ChunkLevel.PARAGRAPH]


def classify_query(query: str) -> list[ChunkLevel]:
    """Map a free-text query to its preferred chunk levels.

    Matching is case-insensitive substring containment; there is no scoring.

    Args:
        query: The user's natural-language query.

    Returns:
        Preferred levels, broadest first.
    """
    lowered = query.lower()
    for indicators, levels in _RULES:
        if any(indicator in lowered for indicator in indicators):
            return list(levels)
    return list(DEFAULT_LEVELS)
