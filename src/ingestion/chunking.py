"""Hierarchical chunking: episode, topic, paragraph and sentence levels.

Every chunk records its character range in the clean transcript text, and
child chunks point at their parent's provisional ``sequence_index``. The
tree is built once per transcript and never mutated afterwards.
"""

from __future__ import annotations

import itertools
import logging
import re
from collections.abc import Iterator

from langchain_text_splitters import RecursiveCharacterTextSplitter

from src.ingestion.models import (
    AlignedTranscript,
    ChapterSegmentation,
    Chunk,
    TimeRange,
    TimestampAnchor,
    level_counts,
)
from src.ingestion.timestamps import resolve_span, resolve_time_range
from src.pipeline_config import ChunkLevel, PipelineConfig

logger = logging.getLogger(__name__)

_SPEAKER_RE = re.compile(r"^([A-Z][a-zA-Z\s]+):")
_TIME_RE = re.compile(r"\d{2}:\d{2}:\d{2}")
_SENTENCE_RE = re.compile(r"[^.!?]+")


def extract_speaker(text: str) -> str | None:
    """Return the speaker of a leading ``Name:`` label in the first 3 lines."""
    for line in text.split("\n")[:3]:
        match = _SPEAKER_RE.match(line)
        if match:
            return match.group(1).strip()
    return None


def detect_topic_boundaries(
    text: str,
    anchor_offsets: frozenset[int] = frozenset(),
    config: PipelineConfig | None = None,
) -> list[int]:
    """Heuristic topic boundaries (line start offsets), always starting at 0.

    A line opens a new topic when, measured from the previous boundary:

    - it carries a timestamp and at least 1000 characters have passed,
    - it starts a different speaker's turn and at least 800 have passed, or
    - it is blank, the next line is substantial, and at least 1500 have passed.

    A line "carries a timestamp" when it contains an ``HH:MM:SS`` pattern or
    begins at one of *anchor_offsets* (timestamps already stripped out).
    """
    cfg = config or PipelineConfig()
    lines = text.split("\n")
    boundaries = [0]
    position = 0
    current_speaker = extract_speaker(lines[0]) if lines else None

    for i in range(1, len(lines)):
        position += len(lines[i - 1]) + 1  # +1 for newline
        line = lines[i].strip()
        since_boundary = position - boundaries[-1]

        speaker_match = _SPEAKER_RE.match(line)
        speaker = speaker_match.group(1).strip() if speaker_match else None
        speaker_changed = speaker is not None and speaker != current_speaker
        if speaker is not None:
            current_speaker = speaker

        is_time_line = position in anchor_offsets or bool(_TIME_RE.search(line))
        is_blank_break = (
            not line
            and i < len(lines) - 1
            and len(lines[i + 1].strip()) > cfg.boundary_next_line_min_chars
        )

        if (
            (is_time_line and since_boundary >= cfg.boundary_timestamp_gap)
            or (speaker_changed and since_boundary >= cfg.boundary_speaker_gap)
            or (is_blank_break and since_boundary >= cfg.boundary_blank_line_gap)
        ):
            boundaries.append(position)

    return boundaries


def build_episode_chunk(
    sequence_index: int,
    text: str,
    summary: str,
    guest_name: str,
    anchors: list[TimestampAnchor],
    segmentation: ChapterSegmentation,
    config: PipelineConfig,
) -> Chunk:
    """The single root chunk holding the full transcript and its summary."""
    cap = config.episode_text_cap
    display = text if len(text) <= cap else text[:cap] + "..."
    time_range = TimeRange(end=anchors[-1].timestamp) if anchors else TimeRange()
    return Chunk(
        level=ChunkLevel.EPISODE,
        sequence_index=sequence_index,
        text=display,
        char_range=(0, len(text)),
        time_range=time_range,
        summary=summary,
        guest_name=guest_name,
        full_text=text,
        metadata={
            "total_length": len(text),
            "word_count": len(text.split()),
            "has_summary": bool(summary),
            "has_full_text": True,
            "anchor_count": len(anchors),
            "chapters": [c.title for c in segmentation.chapters],
            "chapters_degraded": segmentation.degraded,
        },
    )


def build_topic_chunks(
    counter: Iterator[int],
    text: str,
    episode: Chunk,
    anchors: list[TimestampAnchor],
    segmentation: ChapterSegmentation,
    config: PipelineConfig,
) -> list[Chunk]:
    """Topic chunks from resolved chapters, or from the boundary detector when degraded.

    Segments shorter than ``topic_min_chars`` are dropped, not merged.
    """
    topics: list[Chunk] = []

    if not segmentation.degraded:
        for chapter_index, chapter in enumerate(segmentation.chapters):
            start = chapter.start_char or 0
            end = chapter.end_char if chapter.end_char is not None else len(text)
            topic_text = text[start:end].strip()
            if len(topic_text) < config.topic_min_chars:
                continue
            topics.append(
                Chunk(
                    level=ChunkLevel.TOPIC,
                    sequence_index=next(counter),
                    text=topic_text,
                    char_range=(start, end),
                    parent_ref=episode.sequence_index,
                    time_range=TimeRange(start=chapter.start_timestamp, end=chapter.end_timestamp),
                    speaker=extract_speaker(topic_text),
                    topic_boundary=True,
                    metadata={
                        "chapter_index": chapter_index,
                        "chapter_title": chapter.title,
                        "chapter_theme": chapter.theme,
                        "segment_start": start,
                        "segment_end": end,
                    },
                )
            )
        return topics

    anchor_offsets = frozenset(a.char_offset for a in anchors)
    boundaries = detect_topic_boundaries(text, anchor_offsets, config)
    ends = boundaries[1:] + [len(text)]
    for segment, (start, end) in enumerate(zip(boundaries, ends, strict=True), 1):
        topic_text = text[start:end].strip()
        if len(topic_text) < config.topic_min_chars:
            continue
        topics.append(
            Chunk(
                level=ChunkLevel.TOPIC,
                sequence_index=next(counter),
                text=topic_text,
                char_range=(start, end),
                parent_ref=episode.sequence_index,
                time_range=resolve_span(anchors, start, end),
                speaker=extract_speaker(topic_text),
                topic_boundary=True,
                metadata={
                    "topic_segment": segment,
                    "segment_start": start,
                    "segment_end": end,
                },
            )
        )
    return topics


def split_paragraphs(
    counter: Iterator[int],
    text: str,
    episode: Chunk,
    topics: list[Chunk],
    anchors: list[TimestampAnchor],
    config: PipelineConfig,
) -> list[Chunk]:
    """Fixed-size recursive splitting with overlap over the full text.

    Each paragraph's parent is the first topic whose range contains the
    paragraph's start offset, else the episode.
    """
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=config.chunk_size,
        chunk_overlap=config.chunk_overlap,
        separators=list(config.separators),
        add_start_index=True,
    )
    documents = splitter.create_documents([text])

    paragraphs: list[Chunk] = []
    for paragraph_index, doc in enumerate(documents):
        content = doc.page_content
        start = doc.metadata.get("start_index", -1)
        if start < 0:
            start = max(text.find(content), 0)

        parent = next(
            (t for t in topics if t.char_range[0] <= start < t.char_range[1]),
            episode,
        )
        paragraphs.append(
            Chunk(
                level=ChunkLevel.PARAGRAPH,
                sequence_index=next(counter),
                text=content,
                char_range=(start, start + len(content)),
                parent_ref=parent.sequence_index,
                time_range=resolve_time_range(anchors, start),
                speaker=extract_speaker(content),
                metadata={
                    "paragraph_index": paragraph_index,
                    "char_start": start,
                    "parent_topic": parent.sequence_index if parent is not episode else None,
                },
            )
        )
    return paragraphs


def _sentence_parent(
    body: str,
    start: int,
    paragraphs: list[Chunk],
    episode: Chunk,
) -> Chunk:
    """First paragraph containing *body* verbatim, preferring one that spans its offset."""
    end = start + len(body)
    for paragraph in paragraphs:
        if paragraph.char_range[0] <= start and end <= paragraph.char_range[1]:
            return paragraph
    for paragraph in paragraphs:
        if body in paragraph.text:
            return paragraph
    return episode


def split_sentences(
    counter: Iterator[int],
    text: str,
    episode: Chunk,
    paragraphs: list[Chunk],
    anchors: list[TimestampAnchor],
    config: PipelineConfig,
) -> list[Chunk]:
    """Punctuation-delimited sentence chunks.

    Candidates outside (20, 500) characters are discarded; the remaining
    ones still advance ``sentence_index`` but only those above the 30
    character floor are emitted.
    """
    sentences: list[Chunk] = []
    candidate_index = 0

    for match in _SENTENCE_RE.finditer(text):
        raw = match.group()
        body = raw.strip()
        if not (config.sentence_min_chars < len(body) < config.sentence_max_chars):
            continue
        sentence_index = candidate_index
        candidate_index += 1
        if len(body) <= config.sentence_emit_min_chars:
            continue

        start = match.start() + (len(raw) - len(raw.lstrip()))
        terminator = text[match.end()] if match.end() < len(text) else "."
        parent = _sentence_parent(body, start, paragraphs, episode)
        sentences.append(
            Chunk(
                level=ChunkLevel.SENTENCE,
                sequence_index=next(counter),
                text=body + terminator,
                char_range=(start, start + len(body)),
                parent_ref=parent.sequence_index,
                time_range=resolve_time_range(anchors, start),
                speaker=extract_speaker(body),
                metadata={
                    "sentence_index": sentence_index,
                    "char_start": start,
                    "parent_paragraph": parent.sequence_index if parent is not episode else None,
                },
            )
        )
    return sentences


def build_chunk_tree(
    aligned: AlignedTranscript,
    segmentation: ChapterSegmentation,
    summary: str,
    guest_name: str,
    config: PipelineConfig | None = None,
) -> list[Chunk]:
    """Build the four-level chunk tree for one transcript, in creation order."""
    cfg = config or PipelineConfig()
    text = aligned.clean_text
    anchors = aligned.anchors
    counter = itertools.count()

    episode = build_episode_chunk(
        next(counter), text, summary, guest_name, anchors, segmentation, cfg
    )
    topics = build_topic_chunks(counter, text, episode, anchors, segmentation, cfg)
    paragraphs = split_paragraphs(counter, text, episode, topics, anchors, cfg)
    sentences = split_sentences(counter, text, episode, paragraphs, anchors, cfg)

    chunks = [episode, *topics, *paragraphs, *sentences]
    logger.info("Created %d chunks across all levels: %s", len(chunks), level_counts(chunks))
    return chunks


def parent_chain(chunks: list[Chunk], chunk: Chunk) -> list[Chunk]:
    """Ancestors of *chunk*, nearest first, following provisional parent refs."""
    by_index = {c.sequence_index: c for c in chunks}
    chain: list[Chunk] = []
    current = chunk
    while current.parent_ref is not None:
        current = by_index[current.parent_ref]
        chain.append(current)
    return chain

