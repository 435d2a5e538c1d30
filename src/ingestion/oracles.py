"""Claude-powered text oracles: chapter titling, episode summary, guest name.

Every oracle raises :class:`OracleError` on any failure so callers can
fall back to a deterministic default without knowing which SDK error
occurred.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from anthropic import Anthropic, APIError
from anthropic.types import TextBlock

from src.config import settings
from src.ingestion.models import Chapter

logger = logging.getLogger(__name__)

GUEST_PLACEHOLDER = "Guest Interview"


class OracleError(RuntimeError):
    """A text oracle failed or returned an unusable answer."""


class MissingCredentialError(OracleError):
    """The oracle cannot be called because no API key is configured."""


# Tool definition for Claude structured output
CHAPTER_TOOL: dict[str, Any] = {
    "name": "store_chapters",
    "description": (
        "Store the chapters identified in a podcast transcript. "
        "Call this once with every chapter, in transcript order."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "chapters": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {
                            "type": "string",
                            "description": "Concise chapter title (3-8 words).",
                        },
                        "theme": {
                            "type": "string",
                            "description": "One-sentence theme description.",
                        },
                        "first_sentence": {
                            "type": "string",
                            "description": "The exact first sentence of the chapter, verbatim.",
                        },
                    },
                    "required": ["title", "theme", "first_sentence"],
                },
            },
        },
        "required": ["chapters"],
    },
}

CHAPTER_PROMPT = (
    "Analyze this podcast transcript and identify distinct chapters/segments "
    "based on topic changes, speaker transitions, or thematic shifts.\n\n"
    "Rules:\n"
    "- Use EXACT sentences from the transcript for first_sentence.\n"
    "- Aim for 3-8 chapters depending on content length.\n"
    "- Focus on meaningful topic/speaker transitions.\n"
    "- Keep titles concise and descriptive.\n\n"
    "Use the store_chapters tool to return your results."
)


def _client() -> Anthropic:
    if not settings.anthropic_api_key:
        raise MissingCredentialError("ANTHROPIC_API_KEY is not set")
    return Anthropic(api_key=settings.anthropic_api_key, timeout=settings.oracle_timeout_seconds)


def _first_text(response: Any) -> str:
    """Return the text of the first content block, or raise OracleError."""
    if not response.content:
        raise OracleError("Empty response from Claude")
    block = response.content[0]
    if not isinstance(block, TextBlock):
        raise OracleError(f"Expected TextBlock from Claude, got {type(block).__name__}")
    return block.text.strip()


def _parse_chapter_response(response: Any) -> list[Chapter]:
    """Parse the Claude tool_use response into a Chapter list."""
    for block in response.content:
        if block.type != "tool_use" or block.name != "store_chapters":
            continue

        data = block.input
        try:
            if isinstance(data, str):
                data = json.loads(data)
            entries = data["chapters"]
            return [
                Chapter(
                    title=str(entry["title"]).strip(),
                    theme=str(entry.get("theme", "")).strip(),
                    first_sentence=str(entry["first_sentence"]).strip(),
                )
                for entry in entries
            ]
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
            raise OracleError(f"Malformed chapter JSON: {exc}") from exc

    raise OracleError("No store_chapters tool call in response")


def identify_chapters(text: str) -> list[Chapter]:
    """Ask Claude for chapter titles, themes and first sentences."""
    client = _client()
    try:
        response = client.messages.create(
            model=settings.llm_model,
            max_tokens=1500,
            temperature=0.3,
            system=CHAPTER_PROMPT,
            tools=[CHAPTER_TOOL],
            tool_choice={"type": "tool", "name": "store_chapters"},
            messages=[{"role": "user", "content": f"Transcript:\n\n{text}"}],
        )
    except APIError as exc:
        raise OracleError(f"Chapter identification failed: {exc}") from exc
    return _parse_chapter_response(response)


def summarize(text: str) -> str:
    """Summarise a transcript prefix in 2-3 sentences."""
    client = _client()
    try:
        response = client.messages.create(
            model=settings.llm_model,
            max_tokens=200,
            temperature=0.3,
            messages=[
                {
                    "role": "user",
                    "content": (
                        "Please provide a concise summary of this podcast transcript in "
                        "2-3 sentences, focusing on the main topics discussed:\n\n"
                        f"{text}\n\nSummary:"
                    ),
                }
            ],
        )
    except APIError as exc:
        raise OracleError(f"Summary generation failed: {exc}") from exc

    summary = _first_text(response)
    if not summary:
        raise OracleError("Claude returned an empty summary")
    return summary


def extract_guest(text: str) -> str:
    """Return the full name of the interviewed guest."""
    client = _client()
    try:
        response = client.messages.create(
            model=settings.llm_model,
            max_tokens=50,
            temperature=0.0,
            messages=[
                {
                    "role": "user",
                    "content": (
                        "Who is the guest being interviewed in this podcast transcript? "
                        "Reply with the guest's full name only, or UNKNOWN if there is "
                        f"no identifiable guest.\n\n{text}"
                    ),
                }
            ],
        )
    except APIError as exc:
        raise OracleError(f"Guest extraction failed: {exc}") from exc

    name = _first_text(response).strip().strip('."')
    if not name or name.upper() == "UNKNOWN":
        raise OracleError("No guest name identified")
    return name


def summarize_or_truncate(text: str, prefix_chars: int = 6000, fallback_chars: int = 500) -> str:
    """Episode summary with a truncation fallback.

    A missing credential propagates: the episode cannot be indexed without
    a configured summariser. Any other oracle failure degrades to the first
    *fallback_chars* characters of the transcript.
    """
    prefix = text if len(text) <= prefix_chars else text[:prefix_chars] + "..."
    try:
        return summarize(prefix)
    except MissingCredentialError:
        raise
    except OracleError:
        logger.exception("Episode summary generation failed; using truncated transcript")
        return text[:fallback_chars] + "..."


def guest_or_placeholder(text: str, prefix_chars: int = 2000) -> str:
    """Guest name, or :data:`GUEST_PLACEHOLDER` on any failure."""
    try:
        return extract_guest(text[:prefix_chars])
    except OracleError:
        logger.warning("Guest name extraction failed; using placeholder", exc_info=True)
        return GUEST_PLACEHOLDER
