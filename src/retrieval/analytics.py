"""Corpus and per-episode analytics over stored chunk rows.

Functions here are pure: storage fetches the rows, these aggregate them
into plain dicts that the API validates into response models.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import UTC, datetime, timedelta
from typing import Any

from src.pipeline_config import ChunkLevel

WORDS_PER_MINUTE = 200
MAX_EPISODES = 50
MAX_SPEAKERS = 20
ACTIVITY_DAYS = 30


def text_metrics(text: str | None) -> dict[str, int]:
    """Character count, word count and reading time in minutes for *text*."""
    text = text or ""
    words = len(text.split())
    return {
        "character_count": len(text),
        "word_count": words,
        # Half-up rounding, so 100 words reads as one minute.
        "reading_time": int(words / WORDS_PER_MINUTE + 0.5),
    }


def _parse_created_at(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def corpus_stats(
    chunk_rows: list[dict[str, Any]], episode_rows: list[dict[str, Any]]
) -> dict[str, Any]:
    """Headline numbers: episodes, chunks per level, average length, speakers."""
    levels = Counter(r["chunk_level"] for r in chunk_rows)
    lengths = [len(r["full_text"]) for r in episode_rows if r.get("full_text") is not None]
    return {
        "total_episodes": len({r["podcast_id"] for r in chunk_rows}),
        "total_chunks": len(chunk_rows),
        "episode_chunks": levels[ChunkLevel.EPISODE],
        "topic_chunks": levels[ChunkLevel.TOPIC],
        "paragraph_chunks": levels[ChunkLevel.PARAGRAPH],
        "sentence_chunks": levels[ChunkLevel.SENTENCE],
        "avg_episode_length": sum(lengths) / len(lengths) if lengths else None,
        "unique_speakers": len({r["speaker"] for r in chunk_rows if r.get("speaker")}),
    }


def recent_episodes(
    episode_rows: list[dict[str, Any]], limit: int = MAX_EPISODES
) -> list[dict[str, Any]]:
    """Newest episodes first, each with its text metrics."""
    newest = sorted(episode_rows, key=lambda r: r.get("created_at") or "", reverse=True)
    return [
        {
            "podcast_id": r["podcast_id"],
            "summary": r.get("summary"),
            "created_at": r.get("created_at"),
            "metadata": r.get("metadata"),
            **text_metrics(r.get("full_text")),
        }
        for r in newest[:limit]
    ]


def chunk_distribution(chunk_rows: list[dict[str, Any]]) -> dict[str, dict[str, int]]:
    """Chunk counts per level for each podcast."""
    distribution: dict[str, dict[str, int]] = defaultdict(dict)
    counts = Counter((r["podcast_id"], r["chunk_level"]) for r in chunk_rows)
    for (podcast_id, level), count in sorted(counts.items()):
        distribution[podcast_id][level] = count
    return dict(distribution)


def speaker_stats(
    chunk_rows: list[dict[str, Any]], limit: int = MAX_SPEAKERS
) -> list[dict[str, Any]]:
    """Most frequent speakers with the number of episodes they appear in."""
    chunk_counts: Counter[str] = Counter()
    episodes: dict[str, set[str]] = defaultdict(set)
    for row in chunk_rows:
        speaker = row.get("speaker")
        if not speaker:
            continue
        chunk_counts[speaker] += 1
        episodes[speaker].add(row["podcast_id"])
    return [
        {"name": name, "chunk_count": count, "episode_count": len(episodes[name])}
        for name, count in chunk_counts.most_common(limit)
    ]


def topic_stats(chunk_rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Topic chunks per podcast and how many of them open a new topic."""
    totals: Counter[str] = Counter()
    segments: Counter[str] = Counter()
    for row in chunk_rows:
        if row["chunk_level"] != ChunkLevel.TOPIC:
            continue
        totals[row["podcast_id"]] += 1
        if row.get("topic_boundary"):
            segments[row["podcast_id"]] += 1
    topics = [
        {"podcast_id": podcast_id, "topic_segments": segments[podcast_id], "total_chunks": total}
        for podcast_id, total in totals.items()
    ]
    return sorted(topics, key=lambda t: t["topic_segments"], reverse=True)


def upload_activity(
    chunk_rows: list[dict[str, Any]],
    episode_rows: list[dict[str, Any]],
    now: datetime | None = None,
    days: int = ACTIVITY_DAYS,
) -> list[dict[str, Any]]:
    """Per-day uploads and transcript characters over the last *days* days, newest first."""
    cutoff = (now or datetime.now(UTC)) - timedelta(days=days)
    podcasts: dict[str, set[str]] = defaultdict(set)
    characters: Counter[str] = Counter()

    for row in chunk_rows:
        created = _parse_created_at(row.get("created_at"))
        if created is not None and created >= cutoff:
            podcasts[created.date().isoformat()].add(row["podcast_id"])

    for row in episode_rows:
        created = _parse_created_at(row.get("created_at"))
        if created is not None and created >= cutoff and row.get("full_text"):
            characters[created.date().isoformat()] += len(row["full_text"])

    return [
        {
            "date": day,
            "episodes_uploaded": len(podcasts[day]),
            "total_characters": characters[day],
        }
        for day in sorted(podcasts, reverse=True)
    ]


def corpus_analytics(
    chunk_rows: list[dict[str, Any]],
    episode_rows: list[dict[str, Any]],
    now: datetime | None = None,
) -> dict[str, Any]:
    """All corpus-wide analytics sections in one dict."""
    return {
        "stats": corpus_stats(chunk_rows, episode_rows),
        "episodes": recent_episodes(episode_rows),
        "chunk_distribution": chunk_distribution(chunk_rows),
        "speakers": speaker_stats(chunk_rows),
        "topics": topic_stats(chunk_rows),
        "activity": upload_activity(chunk_rows, episode_rows, now=now),
    }


def episode_breakdown(chunks: list[dict[str, Any]]) -> dict[str, Any]:
    """Group one episode's chunks by level, with per-level and per-speaker stats.

    Levels appear broadest first; chunks keep their stored order.
    """
    grouped: dict[str, list[dict[str, Any]]] = {}
    for level in ChunkLevel:
        rows = [c for c in chunks if c["chunk_level"] == level]
        if rows:
            grouped[level.value] = rows

    level_stats = {
        level: {
            "count": len(rows),
            "unique_speakers": len({r["speaker"] for r in rows if r.get("speaker")}),
        }
        for level, rows in grouped.items()
    }

    speaker_counts: Counter[str] = Counter()
    speaker_levels: dict[str, set[str]] = defaultdict(set)
    for chunk in chunks:
        speaker = chunk.get("speaker")
        if speaker:
            speaker_counts[speaker] += 1
            speaker_levels[speaker].add(chunk["chunk_level"])
    order = list(ChunkLevel)
    speakers = [
        {
            "name": name,
            "chunk_count": count,
            "levels": sorted(speaker_levels[name], key=lambda lv: order.index(ChunkLevel(lv))),
        }
        for name, count in speaker_counts.most_common()
    ]

    return {
        "chunks": grouped,
        "level_stats": level_stats,
        "speakers": speakers,
        "total_chunks": len(chunks),
    }
