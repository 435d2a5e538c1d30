"""Pydantic request/response schemas for the Podcast Index API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.pipeline_config import ChunkLevel


class SearchRequest(BaseModel):
    """Request body for the /api/search-transcripts endpoint."""

    query: str
    levels: list[ChunkLevel] | None = None
    max_results: int = Field(default=10, ge=1, le=100)
    min_similarity: float = Field(default=0.25, ge=0.0, le=1.0)
    podcast_id: str | None = None
    restrict_levels: bool = True


class ChunkResult(BaseModel):
    """A stored chunk as returned by search and browse endpoints."""

    id: int
    podcast_id: str | None = None
    chunk_index: int | None = None
    chunk_level: ChunkLevel
    parent_chunk_id: int | None = None
    text_content: str
    summary: str | None = None
    speaker: str | None = None
    topic_boundary: bool | None = None
    guest_name: str | None = None
    chapter_title: str | None = None
    chapter_theme: str | None = None
    chapter_index: int | None = None
    timestamp_start: str | None = None
    timestamp_end: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: str | None = None
    similarity: float | None = None


class SearchResult(ChunkResult):
    """A ranked search hit with its adjusted score and tree context."""

    score: float
    context: list[ChunkResult] = []


class SearchResponse(BaseModel):
    """Response body for the /api/search-transcripts endpoint."""

    query: str
    preferred_levels: list[ChunkLevel]
    results: list[SearchResult]
    count: int
    level_breakdown: dict[str, int]
    search_strategy: dict[str, Any]


class UploadResponse(BaseModel):
    """Response body for the /api/upload-transcript endpoint."""

    podcast_id: str
    title: str
    guest_name: str | None = None
    chunks_created: int
    chunk_counts: dict[str, int]


class EpisodeSummary(BaseModel):
    """Summary representation of a podcast for list views."""

    id: str
    title: str
    guest_name: str | None = None
    source_file: str | None = None
    transcript_format: str | None = None
    created_at: str | None = None


class LevelStats(BaseModel):
    """Chunk and speaker counts for one level of an episode."""

    count: int
    unique_speakers: int


class EpisodeSpeaker(BaseModel):
    """A speaker within one episode and the levels their chunks occupy."""

    name: str
    chunk_count: int
    levels: list[ChunkLevel]


class EpisodeDetail(BaseModel):
    """A podcast with its episode summary, full text and chunks by level."""

    id: str
    title: str
    guest_name: str | None = None
    summary: str | None = None
    full_text: str | None = None
    created_at: str | None = None
    character_count: int = 0
    word_count: int = 0
    reading_time: int = 0
    topics: list[ChunkResult] = []
    chunks: dict[str, list[ChunkResult]] = {}
    chunk_counts: dict[str, int] = {}
    level_stats: dict[str, LevelStats] = {}
    speakers: list[EpisodeSpeaker] = []
    total_chunks: int = 0


class CorpusStats(BaseModel):
    """Headline numbers across the whole index."""

    total_episodes: int
    total_chunks: int
    episode_chunks: int
    topic_chunks: int
    paragraph_chunks: int
    sentence_chunks: int
    avg_episode_length: float | None = None
    unique_speakers: int


class EpisodeMetrics(BaseModel):
    """An episode summary with its length and reading time in minutes."""

    podcast_id: str
    summary: str | None = None
    created_at: str | None = None
    metadata: dict[str, Any] | None = None
    character_count: int
    word_count: int
    reading_time: int


class SpeakerStats(BaseModel):
    name: str
    chunk_count: int
    episode_count: int


class TopicStats(BaseModel):
    podcast_id: str
    topic_segments: int
    total_chunks: int


class DailyActivity(BaseModel):
    date: str
    episodes_uploaded: int
    total_characters: int


class AnalyticsResponse(BaseModel):
    """Response body for the /api/analytics endpoint."""

    stats: CorpusStats
    episodes: list[EpisodeMetrics]
    chunk_distribution: dict[str, dict[str, int]]
    speakers: list[SpeakerStats]
    topics: list[TopicStats]
    activity: list[DailyActivity]
