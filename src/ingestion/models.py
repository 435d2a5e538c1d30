"""Data models for the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.pipeline_config import ChunkLevel

SENTINEL_TIMESTAMP = "00:00:00"


@dataclass(frozen=True)
class TimeRange:
    """Best-effort (start, end) timestamps; ``end=None`` means unresolved."""

    start: str = SENTINEL_TIMESTAMP
    end: str | None = None

    @property
    def is_sentinel(self) -> bool:
        return self.start == SENTINEL_TIMESTAMP and self.end is None


@dataclass(frozen=True)
class TimestampAnchor:
    """A normalised ``HH:MM:SS`` timestamp pinned to a clean-text offset."""

    char_offset: int
    timestamp: str
    text: str = ""


@dataclass
class AlignedTranscript:
    """Timestamp-free text plus the anchors stripped out of it."""

    clean_text: str
    anchors: list[TimestampAnchor] = field(default_factory=list)


@dataclass
class Chapter:
    """A transient topic segment between chapter detection and splitting."""

    title: str
    theme: str
    first_sentence: str
    start_char: int | None = None
    end_char: int | None = None
    start_timestamp: str = SENTINEL_TIMESTAMP
    end_timestamp: str | None = None


@dataclass
class ChapterSegmentation:
    """Chapters for one transcript; ``degraded`` when the oracle was bypassed."""

    chapters: list[Chapter]
    degraded: bool = False


@dataclass
class Chunk:
    """A node of the chunk tree, ready for embedding and storage.

    ``parent_ref`` holds the parent's provisional ``sequence_index``; storage
    rewrites it into a durable id after the parent has been inserted.
    """

    level: ChunkLevel
    sequence_index: int
    text: str
    char_range: tuple[int, int]
    parent_ref: int | None = None
    time_range: TimeRange = field(default_factory=TimeRange)
    speaker: str | None = None
    topic_boundary: bool = False
    summary: str | None = None
    guest_name: str | None = None
    full_text: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def chunks_at_level(chunks: list[Chunk], level: ChunkLevel) -> list[Chunk]:
    """Return the chunks of one level, in creation order."""
    return [c for c in chunks if c.level is level]


def level_counts(chunks: list[Chunk]) -> dict[str, int]:
    """Count chunks per level (every level present, zero included)."""
    return {level.value: len(chunks_at_level(chunks, level)) for level in ChunkLevel}
