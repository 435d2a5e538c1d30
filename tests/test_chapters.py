"""Tests for chapter matching, fallback chapters and segmentation."""

from __future__ import annotations

import pytest

from src.ingestion.chapters import (
    best_anchor,
    fallback_chapters,
    fuzzy_match,
    match_chapters_to_anchors,
    match_score,
    segment_chapters,
)
from src.ingestion.models import Chapter, TimestampAnchor
from src.ingestion.oracles import OracleError
from src.ingestion.timestamps import extract_timestamps
from src.pipeline_config import PipelineConfig


def _line(i: int) -> str:
    speaker = "Alice" if i % 2 == 0 else "Bob"
    return f"{speaker}: This is turn number {i} of the conversation about topic {i // 10}."


class TestMatchScore:
    def test_exact_match_ignores_case_and_whitespace(self) -> None:
        assert match_score("Hello World", "  hello world ") == 1.0

    def test_containment(self) -> None:
        assert match_score("welcome back", "Welcome back to the show everyone") == 0.9

    def test_word_overlap(self) -> None:
        # quick and brown are shared: 2 * 2 / (4 + 4)
        assert match_score("the quick brown fox", "a quick brown dog") == pytest.approx(0.5)

    def test_empty_input_scores_zero(self) -> None:
        assert match_score("", "anything") == 0.0
        assert match_score("anything", "   ") == 0.0


class TestFuzzyMatch:
    anchors = [
        TimestampAnchor(0, "00:00:10", "purple monkeys sing loudly tonight"),
        TimestampAnchor(
            40,
            "00:01:00",
            "renewable energy investments across europe have grown quickly during "
            "the last decade according to several reports",
        ),
    ]

    def test_picks_anchor_with_most_target_words(self) -> None:
        assert fuzzy_match("europe energy investments growth", self.anchors) == 1

    def test_nothing_above_threshold(self) -> None:
        assert fuzzy_match("quantum chromodynamics lectures", self.anchors) is None

    def test_best_anchor_falls_back_to_fuzzy_pass(self) -> None:
        config = PipelineConfig()
        target = "europe energy investments growth"
        assert match_score(target, self.anchors[1].text) < config.chapter_match_threshold
        assert best_anchor(target, self.anchors, config) == 1

    def test_short_targets_skip_fuzzy_pass(self) -> None:
        assert best_anchor("grown fast", self.anchors, PipelineConfig()) is None

    def test_anchors_without_text_are_ignored(self) -> None:
        anchors = [TimestampAnchor(0, "00:00:01")]
        assert best_anchor("anything at all here", anchors, PipelineConfig()) is None


class TestFallbackChapters:
    def test_four_blocks_of_lines(self) -> None:
        text = "\n".join(f"This is transcript line number {i:02d}." for i in range(40))
        chapters = fallback_chapters(text)

        assert [c.title for c in chapters] == ["Chapter 1", "Chapter 2", "Chapter 3", "Chapter 4"]
        assert chapters[1].theme == "Content segment 2"
        assert chapters[1].first_sentence == "This is transcript line number 10."

    def test_minimum_block_of_ten_lines(self) -> None:
        text = "\n".join(f"This is transcript line number {i:02d}." for i in range(12))
        chapters = fallback_chapters(text)
        assert len(chapters) == 2
        assert chapters[1].first_sentence == "This is transcript line number 10."

    def test_short_lines_are_ignored(self) -> None:
        assert fallback_chapters("hi\nok\n\n") == []


class TestMatchChaptersToAnchors:
    def setup_method(self) -> None:
        transcript = "\n".join(
            f"[00:{(i * 30) // 60:02d}:{(i * 30) % 60:02d}] {_line(i)} More talk follows here."
            for i in range(30)
        )
        self.aligned = extract_timestamps(transcript)

    def _chapter(self, title: str, first_sentence: str) -> Chapter:
        return Chapter(title=title, theme=f"About {title}", first_sentence=first_sentence)

    def test_offsets_timestamps_and_contiguity(self) -> None:
        text = self.aligned.clean_text
        chapters = [
            self._chapter("Opening", _line(0)),
            self._chapter("Middle", _line(10)),
            self._chapter("Closing", _line(20)),
        ]
        resolved = match_chapters_to_anchors(chapters, self.aligned.anchors, text)

        assert [c.start_char for c in resolved] == [0, text.index(_line(10)), text.index(_line(20))]
        assert [c.start_timestamp for c in resolved] == ["00:00:00", "00:05:00", "00:10:00"]
        assert [c.end_timestamp for c in resolved] == ["00:05:00", "00:10:00", None]
        assert resolved[0].end_char == resolved[1].start_char
        assert resolved[1].end_char == resolved[2].start_char
        assert resolved[-1].end_char == len(text)

    def test_out_of_order_chapters_keep_their_titles(self) -> None:
        text = self.aligned.clean_text
        chapters = [
            self._chapter("Opening", _line(0)),
            self._chapter("Late", _line(20)),
            self._chapter("Middle", _line(10)),
        ]
        resolved = match_chapters_to_anchors(chapters, self.aligned.anchors, text)

        assert [c.title for c in resolved] == ["Opening", "Middle", "Late"]
        assert resolved[1].start_char == text.index(_line(10))
        assert resolved[2].start_char == text.index(_line(20))
        assert resolved[1].end_timestamp == "00:10:00"

    def test_first_chapter_starts_at_zero(self) -> None:
        text = self.aligned.clean_text
        resolved = match_chapters_to_anchors(
            [self._chapter("Late start", _line(5))], self.aligned.anchors, text
        )
        assert resolved[0].start_char == 0
        assert resolved[0].end_char == len(text)

    def test_unmatched_chapter_inherits_previous_start(self) -> None:
        text = self.aligned.clean_text
        chapters = [
            self._chapter("Opening", _line(0)),
            self._chapter("Middle", _line(10)),
            self._chapter("Lost", "Purple monkeys sing loudly"),
        ]
        resolved = match_chapters_to_anchors(chapters, self.aligned.anchors, text)

        assert resolved[2].start_char == resolved[1].start_char
        assert resolved[2].start_timestamp == "00:00:00"
        assert resolved[1].end_timestamp is None
        for current, following in zip(resolved, resolved[1:]):
            assert current.end_char == following.start_char


class TestSegmentChapters:
    text = "\n".join(f"This is transcript line number {i:02d}." for i in range(40))

    def test_oracle_failure_degrades_to_fallback(self) -> None:
        def failing(prefix: str) -> list[Chapter]:
            raise OracleError("boom")

        segmentation = segment_chapters(self.text, [], identify=failing)

        assert segmentation.degraded is True
        assert segmentation.chapters[0].title == "Chapter 1"
        assert segmentation.chapters[-1].end_char == len(self.text)

    def test_empty_oracle_answer_degrades(self) -> None:
        segmentation = segment_chapters(self.text, [], identify=lambda prefix: [])
        assert segmentation.degraded is True
        assert len(segmentation.chapters) == 4

    def test_oracle_chapters_are_resolved(self) -> None:
        chapters = [
            Chapter("Intro", "Start", "This is transcript line number 00."),
            Chapter("Later", "More", "This is transcript line number 20."),
        ]
        segmentation = segment_chapters(self.text, [], identify=lambda prefix: chapters)

        assert segmentation.degraded is False
        assert [c.title for c in segmentation.chapters] == ["Intro", "Later"]
        expected = self.text.index("This is transcript line number 20.")
        assert segmentation.chapters[1].start_char == expected

    def test_oracle_receives_truncated_prefix(self) -> None:
        seen: list[str] = []

        def recording(prefix: str) -> list[Chapter]:
            seen.append(prefix)
            return [Chapter("Only", "All", "This is transcript line number 00.")]

        config = PipelineConfig(chapter_prefix_chars=50)
        segment_chapters(self.text, [], identify=recording, config=config)

        assert seen == [self.text[:50] + "..."]
