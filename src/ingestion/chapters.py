"""Chapter detection and fuzzy alignment of chapters to timestamp anchors."""

from __future__ import annotations

import logging
from collections.abc import Callable

from src.ingestion.models import Chapter, ChapterSegmentation, TimestampAnchor
from src.ingestion.oracles import OracleError, identify_chapters
from src.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)

ChapterOracle = Callable[[str], list[Chapter]]


def match_score(sentence1: str, sentence2: str) -> float:
    """Similarity between two short texts in ``[0, 1]``.

    Exact match (case-folded, trimmed) scores 1.0, containment either way
    0.9, otherwise the share of significant words (longer than two
    characters) that appear in the other text.
    """
    s1 = sentence1.lower().strip()
    s2 = sentence2.lower().strip()
    if not s1 or not s2:
        return 0.0

    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.9

    words1 = s1.split()
    words2 = s2.split()
    common = [w for w in words1 if len(w) > 2 and any(w2 in w or w in w2 for w2 in words2)]
    return (len(common) * 2) / (len(words1) + len(words2))


def fuzzy_match(
    target: str,
    anchors: list[TimestampAnchor],
    threshold: float = 0.4,
) -> int | None:
    """Lower-confidence pass: share of the target's significant words found in an anchor.

    Returns the index of the best anchor scoring above *threshold*.
    """
    target_words = [w for w in target.lower().split() if len(w) > 2]
    if not target_words:
        return None

    best_idx: int | None = None
    best_score = 0.0
    for idx, anchor in enumerate(anchors):
        if not anchor.text:
            continue
        line_words = anchor.text.lower().split()
        matching = [w for w in target_words if any(lw in w or w in lw for lw in line_words)]
        score = len(matching) / len(target_words)
        if score > best_score and score > threshold:
            best_score = score
            best_idx = idx
    return best_idx


def best_anchor(
    first_sentence: str,
    anchors: list[TimestampAnchor],
    config: PipelineConfig,
) -> int | None:
    """Index of the anchor where a chapter starts, or None if nothing matches."""
    best_idx: int | None = None
    best_score = 0.0
    for idx, anchor in enumerate(anchors):
        if not anchor.text:
            continue
        score = match_score(first_sentence, anchor.text)
        if score > best_score and score > config.chapter_match_threshold:
            best_score = score
            best_idx = idx

    if best_idx is None and len(first_sentence) > 10:
        best_idx = fuzzy_match(first_sentence, anchors, config.chapter_fuzzy_threshold)
    return best_idx


def fallback_chapters(clean_text: str, config: PipelineConfig | None = None) -> list[Chapter]:
    """Deterministic chapters: ~4 equal blocks of substantial lines."""
    cfg = config or PipelineConfig()
    lines = [line.strip() for line in clean_text.split("\n") if len(line.strip()) > 10]
    if not lines:
        return []

    block = max(len(lines) // cfg.fallback_chapter_count, cfg.fallback_min_block_lines)
    chapters: list[Chapter] = []
    for number, start in enumerate(range(0, len(lines), block), 1):
        chapters.append(
            Chapter(
                title=f"Chapter {number}",
                theme=f"Content segment {number}",
                first_sentence=lines[start],
            )
        )
    return chapters


def match_chapters_to_anchors(
    chapters: list[Chapter],
    anchors: list[TimestampAnchor],
    clean_text: str,
    config: PipelineConfig | None = None,
) -> list[Chapter]:
    """Resolve start/end offsets and timestamps for each chapter.

    Starts are the first literal occurrence of ``first_sentence`` (searched
    from the previous chapter's start), else the matched anchor's offset.
    Ends are the next chapter's start, so chapters are contiguous and never
    overlap; the first chapter always begins at offset 0. Chapters are put
    in transcript order first, so an oracle listing them out of order does
    not shift titles onto other chapters.
    """
    cfg = config or PipelineConfig()
    matched: list[int | None] = [best_anchor(c.first_sentence, anchors, cfg) for c in chapters]

    # Unlocated chapters sort right after the chapter listed before them.
    keys: list[int] = []
    for chapter, anchor_idx in zip(chapters, matched, strict=True):
        position = clean_text.find(chapter.first_sentence) if chapter.first_sentence else -1
        if position == -1 and anchor_idx is not None:
            position = anchors[anchor_idx].char_offset
        keys.append(position if position != -1 else (keys[-1] if keys else 0))
    order = sorted(range(len(chapters)), key=lambda i: keys[i])
    chapters = [chapters[i] for i in order]
    matched = [matched[i] for i in order]

    resolved: list[Chapter] = []
    previous_start = 0
    for chapter, anchor_idx in zip(chapters, matched, strict=True):
        start: int | None = None
        if chapter.first_sentence:
            found = clean_text.find(chapter.first_sentence, previous_start)
            if found != -1:
                start = found
        if start is None and anchor_idx is not None:
            start = anchors[anchor_idx].char_offset
        if start is None or start < previous_start:
            start = previous_start
        if not resolved:
            start = 0

        resolved.append(
            Chapter(
                title=chapter.title,
                theme=chapter.theme,
                first_sentence=chapter.first_sentence,
                start_char=start,
                start_timestamp=(
                    anchors[anchor_idx].timestamp
                    if anchor_idx is not None
                    else chapter.start_timestamp
                ),
            )
        )
        previous_start = start

    for idx, chapter in enumerate(resolved):
        if idx + 1 < len(resolved):
            chapter.end_char = resolved[idx + 1].start_char
            next_anchor = matched[idx + 1]
            chapter.end_timestamp = (
                anchors[next_anchor].timestamp if next_anchor is not None else None
            )
        else:
            chapter.end_char = len(clean_text)
            chapter.end_timestamp = None

    return resolved


def segment_chapters(
    clean_text: str,
    anchors: list[TimestampAnchor],
    identify: ChapterOracle = identify_chapters,
    config: PipelineConfig | None = None,
) -> ChapterSegmentation:
    """Ask the titling oracle for chapters and align them to the transcript.

    Any oracle failure (transport error, malformed JSON, empty answer) falls
    back to :func:`fallback_chapters` and marks the result as degraded.
    """
    cfg = config or PipelineConfig()
    prefix = clean_text
    if len(prefix) > cfg.chapter_prefix_chars:
        prefix = prefix[: cfg.chapter_prefix_chars] + "..."

    degraded = False
    try:
        chapters = identify(prefix)
        if not chapters:
            raise OracleError("Titling oracle returned no chapters")
    except OracleError:
        logger.exception("Chapter identification failed; using fallback chapters")
        chapters = fallback_chapters(clean_text, cfg)
        degraded = True

    resolved = match_chapters_to_anchors(chapters, anchors, clean_text, cfg)
    logger.info("Resolved %d chapters (degraded=%s)", len(resolved), degraded)
    return ChapterSegmentation(chapters=resolved, degraded=degraded)
