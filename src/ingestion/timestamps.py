"""Timestamp extraction: strip subtitle/bracketed markers and keep them as anchors."""

from __future__ import annotations

import bisect
import re

from src.ingestion.models import SENTINEL_TIMESTAMP, AlignedTranscript, TimeRange, TimestampAnchor

# Optional cue index, then one of:
#   HH:MM:SS[,mmm][ --> HH:MM:SS[,mmm]]   (SRT / VTT cue timing)
#   [HH:MM:SS]                            (bracketed)
#   (HH:MM:SS)                            (parenthesised)
_TIME = r"\d{1,2}:\d{1,2}:\d{1,2}"
_TIMESTAMP_LINE_RE = re.compile(
    rf"^(?:\d+\s+)?("
    rf"{_TIME}(?:[,.]\d{{3}})?(?:\s*-->\s*{_TIME}(?:[,.]\d{{3}})?)?"
    rf"|\[{_TIME}\]"
    rf"|\({_TIME}\)"
    rf")"
)

# Lines shorter than this (after trimming) are treated as artifacts
_MIN_LINE_CHARS = 10


def normalize_timestamp(timestamp: str) -> str:
    """Normalise a matched timestamp to ``HH:MM:SS``.

    Brackets, milliseconds and the end of a ``-->`` range are dropped and
    every component is zero-padded, so ``"1:2:3"`` becomes ``"01:02:03"``.
    """
    cleaned = re.sub(r"[\[\]()]", "", timestamp).split("-->")[0].strip()
    time_only = re.split(r"[,.]", cleaned)[0]
    parts = time_only.split(":")
    if len(parts) == 3:
        return ":".join(p.zfill(2) for p in parts)
    return time_only


def extract_timestamps(transcript: str) -> AlignedTranscript:
    """Strip timestamp markers from *transcript* and record them as anchors.

    Each anchor points at the clean-text offset where the text that follows
    the timestamp begins. When a timestamp sits alone on its line (SRT/VTT
    cue timing), the next emitted line is the text it anchors.

    A transcript without any timestamps yields an empty anchor list; that
    is a degraded mode, not an error.
    """
    clean_lines: list[str] = []
    anchors: list[TimestampAnchor] = []
    pending: tuple[int, str] | None = None
    char_offset = 0

    def emit(text: str) -> None:
        nonlocal char_offset, pending
        if pending is not None:
            anchors.append(TimestampAnchor(char_offset=pending[0], timestamp=pending[1], text=text))
            pending = None
        clean_lines.append(text)
        char_offset += len(text) + 1  # +1 for newline

    for line in transcript.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue

        match = _TIMESTAMP_LINE_RE.match(trimmed)
        if match:
            if pending is not None:
                # Previous cue never received text; keep it as a bare anchor.
                anchors.append(TimestampAnchor(char_offset=pending[0], timestamp=pending[1]))
            pending = (char_offset, normalize_timestamp(match.group(1)))
            remainder = trimmed[match.end() :].strip()
            if remainder:
                emit(remainder)
        elif len(trimmed) > _MIN_LINE_CHARS:
            emit(trimmed)

    if pending is not None:
        anchors.append(TimestampAnchor(char_offset=pending[0], timestamp=pending[1]))

    return AlignedTranscript(clean_text="\n".join(clean_lines), anchors=anchors)


def anchor_at_or_before(anchors: list[TimestampAnchor], offset: int) -> int | None:
    """Return the index of the latest anchor at or before *offset*."""
    offsets = [a.char_offset for a in anchors]
    idx = bisect.bisect_right(offsets, offset) - 1
    return idx if idx >= 0 else None


def resolve_time_range(anchors: list[TimestampAnchor], offset: int) -> TimeRange:
    """Interpolate a time range for text starting at *offset*.

    The start is the latest anchor at or before the offset, the end is the
    anchor that follows it. Missing ends stay unresolved; with no anchors at
    all the sentinel range is returned.
    """
    if not anchors:
        return TimeRange()

    idx = anchor_at_or_before(anchors, offset)
    if idx is None:
        return TimeRange(start=SENTINEL_TIMESTAMP, end=anchors[0].timestamp)

    end = anchors[idx + 1].timestamp if idx + 1 < len(anchors) else None
    return TimeRange(start=anchors[idx].timestamp, end=end)


def resolve_span(anchors: list[TimestampAnchor], start: int, end: int) -> TimeRange:
    """Time range for the text span ``[start, end)``.

    The start is resolved as in :func:`resolve_time_range`; the end is the
    first anchor at or after *end*, or unresolved when none follows.
    """
    if not anchors:
        return TimeRange()

    start_timestamp = resolve_time_range(anchors, start).start
    offsets = [a.char_offset for a in anchors]
    idx = bisect.bisect_left(offsets, end)
    end_timestamp = anchors[idx].timestamp if idx < len(anchors) else None
    return TimeRange(start=start_timestamp, end=end_timestamp)
