"""End-to-end ingestion pipeline: align -> segment -> split -> embed -> store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from src.ingestion.chapters import ChapterOracle, segment_chapters
from src.ingestion.chunking import build_chunk_tree
from src.ingestion.embeddings import embed_chunks
from src.ingestion.models import Chunk, level_counts
from src.ingestion.oracles import guest_or_placeholder, identify_chapters, summarize_or_truncate
from src.ingestion.parsers import prepare_transcript
from src.ingestion.storage import (
    delete_podcast,
    get_supabase_client,
    store_chunk_tree,
    store_podcast,
)
from src.ingestion.timestamps import extract_timestamps
from src.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Outcome of indexing one transcript."""

    podcast_id: str
    title: str
    guest_name: str | None
    chunk_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_chunks(self) -> int:
        return sum(self.chunk_counts.values())


def episode_summary_and_guest(
    text: str,
    config: PipelineConfig,
    summarizer: Callable[[str, int, int], str] = summarize_or_truncate,
    guest_extractor: Callable[[str, int], str] = guest_or_placeholder,
) -> tuple[str, str]:
    """Run the two independent episode-level oracle calls concurrently."""
    with ThreadPoolExecutor(max_workers=2) as executor:
        summary_future = executor.submit(
            summarizer, text, config.summary_prefix_chars, config.summary_fallback_chars
        )
        guest_future = executor.submit(guest_extractor, text, config.guest_prefix_chars)
        return summary_future.result(), guest_future.result()


def build_index(
    content: str,
    format: str = "text",
    config: PipelineConfig | None = None,
    identify: ChapterOracle = identify_chapters,
    summarizer: Callable[[str, int, int], str] = summarize_or_truncate,
    guest_extractor: Callable[[str, int], str] = guest_or_placeholder,
) -> list[Chunk]:
    """Build the chunk tree for one transcript without embedding or storing it.

    Args:
        content: Raw transcript text.
        format: Transcript format (``"text"``, ``"txt"``, ``"md"``, ``"markdown"``).
        config: Chunking parameters (defaults to the env-tuned configuration).
        identify: Chapter titling oracle.
        summarizer: Episode summariser with truncation fallback.
        guest_extractor: Guest-name oracle with placeholder fallback.

    Returns:
        All chunks in creation order, episode first.
    """
    cfg = config or PipelineConfig.from_settings()

    # 1. Convert and strip timestamps
    text = prepare_transcript(content, format)
    aligned = extract_timestamps(text)
    if not aligned.anchors:
        logger.warning("No timestamps found; time ranges will use the sentinel value")

    # 2. Chapters
    segmentation = segment_chapters(aligned.clean_text, aligned.anchors, identify, cfg)

    # 3. Episode oracles + split
    summary, guest_name = episode_summary_and_guest(
        aligned.clean_text, cfg, summarizer, guest_extractor
    )
    return build_chunk_tree(aligned, segmentation, summary, guest_name, cfg)


def ingest_transcript(
    content: str,
    format: str,
    title: str,
    source_file: str | None = None,
    config: PipelineConfig | None = None,
) -> IngestResult:
    """Full ingestion pipeline: build the chunk tree, embed it, store it.

    Embedding failures propagate before anything is written. A storage
    failure removes whatever was already written for the podcast, so a
    transcript is either fully indexed or not at all.

    Returns:
        An :class:`IngestResult` with the new podcast ID.
    """
    chunks = build_index(content, format, config)

    # 4. Embed (fatal on failure)
    chunks_with_embeddings = embed_chunks(chunks)

    # 5. Store
    client = get_supabase_client()
    guest_name = chunks[0].guest_name
    podcast_id = store_podcast(
        client,
        title,
        source_file=source_file,
        transcript_format=format,
        guest_name=guest_name,
    )
    try:
        store_chunk_tree(client, podcast_id, chunks_with_embeddings)
    except Exception:
        logger.exception("Storing chunks failed for podcast %s; rolling back", podcast_id)
        try:
            delete_podcast(client, podcast_id)
        except Exception:
            logger.exception("Rollback of podcast %s failed", podcast_id)
        raise

    return IngestResult(
        podcast_id=podcast_id,
        title=title,
        guest_name=guest_name,
        chunk_counts=level_counts(chunks),
    )
