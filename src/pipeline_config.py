"""Pipeline configuration: chunk levels and the PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from src.config import Settings, settings


class ChunkLevel(StrEnum):
    """Granularity levels of the transcript index, broadest first."""

    EPISODE = "episode"
    TOPIC = "topic"
    PARAGRAPH = "paragraph"
    SENTENCE = "sentence"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable parameters for the hierarchical chunking pipeline.

    Defaults mirror the production behaviour. The chapter matching
    thresholds are heuristics and can be tuned through ``Settings``.
    """

    # Paragraph level
    chunk_size: int = 1000
    chunk_overlap: int = 200
    separators: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")

    # Sentence level: (min, max) candidate window, then the emission floor
    sentence_min_chars: int = 20
    sentence_max_chars: int = 500
    sentence_emit_min_chars: int = 30

    # Topic level
    topic_min_chars: int = 200
    boundary_timestamp_gap: int = 1000
    boundary_speaker_gap: int = 800
    boundary_blank_line_gap: int = 1500
    boundary_next_line_min_chars: int = 50

    # Episode level
    episode_text_cap: int = 8000
    summary_prefix_chars: int = 6000
    summary_fallback_chars: int = 500
    guest_prefix_chars: int = 2000

    # Chapters
    chapter_prefix_chars: int = 12000
    chapter_match_threshold: float = 0.7
    chapter_fuzzy_threshold: float = 0.4
    fallback_chapter_count: int = 4
    fallback_min_block_lines: int = 10

    @classmethod
    def from_settings(cls, app_settings: Settings | None = None) -> PipelineConfig:
        """Build a config from the env-tunable values in ``Settings``."""
        s = app_settings or settings
        return cls(
            chunk_size=s.chunk_size,
            chunk_overlap=s.chunk_overlap,
            chapter_match_threshold=s.chapter_match_threshold,
            chapter_fuzzy_threshold=s.chapter_fuzzy_threshold,
        )
