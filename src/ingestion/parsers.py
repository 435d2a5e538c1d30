"""Transcript input conversion for plain-text and Markdown uploads."""

from __future__ import annotations

import re
from collections.abc import Callable

# (pattern, replacement) pairs applied in order; order matters because the
# emphasis rules must run before the single-character variants.
_MARKDOWN_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"__([^_]+)__"), r"\1"),
    (re.compile(r"_([^_]+)_"), r"\1"),
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"^---+$", re.MULTILINE), ""),
    (re.compile(r"^>\s+", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*[-*+]\s+", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*\d+\.\s+", re.MULTILINE), ""),
    (re.compile(r"\n\s*\n"), "\n\n"),
]


def markdown_to_plain_text(content: str) -> str:
    """Strip Markdown syntax, keeping the readable text.

    Headers, emphasis, inline code, links and images keep their text; fenced
    code blocks and horizontal rules are removed; runs of blank lines
    collapse to a single paragraph break.
    """
    text = content
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def parse_plain_text(content: str) -> str:
    """Normalise line endings of a plain-text transcript."""
    return content.replace("\r\n", "\n").replace("\r", "\n")


def prepare_transcript(content: str, format: str) -> str:
    """Dispatch to the correct converter based on *format*.

    Args:
        content: Raw uploaded transcript.
        format: One of ``"md"`` / ``"markdown"`` or ``"txt"`` / ``"text"``.

    Returns:
        Plain transcript text (timestamps, if any, are left in place).

    Raises:
        ValueError: If *format* is not recognized.
    """
    dispatch: dict[str, Callable[[str], str]] = {
        "md": lambda c: markdown_to_plain_text(parse_plain_text(c)),
        "markdown": lambda c: markdown_to_plain_text(parse_plain_text(c)),
        "txt": parse_plain_text,
        "text": parse_plain_text,
    }

    converter = dispatch.get(format)
    if converter is None:
        msg = f"Unknown transcript format: {format!r}. Supported: {list(dispatch.keys())}"
        raise ValueError(msg)

    return converter(content)
