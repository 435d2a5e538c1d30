"""Embedding helpers for any OpenAI-compatible embeddings endpoint."""

from __future__ import annotations

import logging

from openai import APIError, APIStatusError, OpenAI

from src.config import settings
from src.ingestion.models import Chunk

logger = logging.getLogger(__name__)


class EmbeddingError(RuntimeError):
    """Embedding generation failed; the transcript or query cannot be indexed."""


def get_embedding_client() -> OpenAI:
    """Create an OpenAI client pointed at the configured embeddings endpoint."""
    return OpenAI(api_key=settings.openai_api_key, base_url=settings.embedding_base_url)


def _is_server_error(exc: APIError) -> bool:
    return isinstance(exc, APIStatusError) and exc.status_code >= 500


def _embed_batch(client: OpenAI, texts: list[str], model: str) -> list[list[float]]:
    """Embed one batch, bisecting it on server-side errors.

    A failing batch with more than one item is split in half and each half
    retried independently; single items and client-side errors surface as
    :class:`EmbeddingError`.
    """
    try:
        response = client.embeddings.create(input=texts, model=model, encoding_format="float")
    except APIError as exc:
        if _is_server_error(exc) and len(texts) > 1:
            middle = len(texts) // 2
            logger.warning(
                "Embedding batch of %d failed with a server error; retrying as %d + %d",
                len(texts),
                middle,
                len(texts) - middle,
            )
            return _embed_batch(client, texts[:middle], model) + _embed_batch(
                client, texts[middle:], model
            )
        raise EmbeddingError(f"Embedding request failed: {exc}") from exc

    embeddings = [item.embedding for item in response.data]
    if len(embeddings) != len(texts):
        msg = f"Embedding response has {len(embeddings)} vectors for {len(texts)} inputs"
        raise EmbeddingError(msg)
    return embeddings


def embed_texts(
    texts: list[str],
    model: str | None = None,
    batch_size: int | None = None,
    max_chars: int | None = None,
) -> list[list[float]]:
    """Embed a list of texts, preserving input order.

    Args:
        texts: Strings to embed.
        model: Embedding model name (defaults to ``settings.embedding_model``).
        batch_size: Inputs per request, kept below the provider's hard cap.
        max_chars: Per-input character cap to avoid context overflow.

    Returns:
        A list of embedding vectors (one per input text).

    Raises:
        EmbeddingError: If any batch cannot be embedded.
    """
    if not texts:
        return []

    model = model or settings.embedding_model
    batch_size = batch_size or settings.embedding_batch_size
    max_chars = max_chars or settings.embedding_max_chars

    capped = [t[:max_chars] for t in texts]
    client = get_embedding_client()

    embeddings: list[list[float]] = []
    for i in range(0, len(capped), batch_size):
        embeddings.extend(_embed_batch(client, capped[i : i + batch_size], model))
    return embeddings


def embed_chunks(chunks: list[Chunk]) -> list[tuple[Chunk, list[float]]]:
    """Embed chunks and return ``(chunk, embedding)`` pairs.

    Args:
        chunks: Chunks whose ``text`` will be embedded.

    Returns:
        List of ``(Chunk, embedding_vector)`` tuples.
    """
    texts = [c.text for c in chunks]
    embeddings = embed_texts(texts)
    logger.info("Embedded %d chunks", len(embeddings))
    return list(zip(chunks, embeddings, strict=True))
