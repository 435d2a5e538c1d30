"""Shared transcript fixtures (no external services required)."""

from __future__ import annotations

import pytest


def make_dialogue(turns: int = 30) -> str:
    """Alternating two-speaker transcript, ~200 characters per turn."""
    lines = []
    for i in range(turns):
        speaker = "Alice" if i % 2 == 0 else "Bob"
        lines.append(
            f"{speaker}: This is turn number {i} of the conversation about topic {i // 10}. "
            "We keep talking to make the line long enough for chunking purposes. "
            "Every turn adds a few more sentences to the transcript!"
        )
    return "\n".join(lines)


def make_timestamped_dialogue(turns: int = 30) -> str:
    """The same dialogue with a bracketed timestamp in front of every turn."""
    lines = []
    for i, line in enumerate(make_dialogue(turns).split("\n")):
        minutes, seconds = divmod(i * 30, 60)
        lines.append(f"[00:{minutes:02d}:{seconds:02d}] {line}")
    return "\n".join(lines)


@pytest.fixture
def dialogue() -> str:
    return make_dialogue()


@pytest.fixture
def timestamped_dialogue() -> str:
    return make_timestamped_dialogue()
