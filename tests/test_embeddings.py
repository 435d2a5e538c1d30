"""Tests for batched embedding with bisection on server errors."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from src.ingestion.embeddings import EmbeddingError, embed_chunks, embed_texts
from src.ingestion.models import Chunk
from src.pipeline_config import ChunkLevel


def _status_error(cls: type[openai.APIStatusError], status: int) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://embeddings.test/v1/embeddings")
    return cls("failed", response=httpx.Response(status, request=request), body=None)


def _fake_response(texts: list[str]) -> MagicMock:
    """One single-value vector per input: its length."""
    return MagicMock(data=[MagicMock(embedding=[float(len(t))]) for t in texts])


@pytest.fixture
def client() -> Iterator[MagicMock]:
    with patch("src.ingestion.embeddings.get_embedding_client") as mock_get:
        mock_client = MagicMock()
        mock_get.return_value = mock_client
        yield mock_client


class TestEmbedTexts:
    def test_empty_input_makes_no_request(self, client: MagicMock) -> None:
        assert embed_texts([]) == []
        client.embeddings.create.assert_not_called()

    def test_batches_preserve_order(self, client: MagicMock) -> None:
        client.embeddings.create.side_effect = lambda input, **kw: _fake_response(input)
        texts = ["a", "bb", "ccc", "dddd", "eeeee"]

        result = embed_texts(texts, model="test-model", batch_size=2)

        assert result == [[1.0], [2.0], [3.0], [4.0], [5.0]]
        assert client.embeddings.create.call_count == 3
        assert client.embeddings.create.call_args.kwargs["model"] == "test-model"

    def test_inputs_are_capped(self, client: MagicMock) -> None:
        client.embeddings.create.side_effect = lambda input, **kw: _fake_response(input)
        assert embed_texts(["x" * 50], max_chars=5) == [[5.0]]

    def test_server_error_bisects_batch(self, client: MagicMock) -> None:
        def create(input: list[str], **kw: Any) -> MagicMock:
            if len(input) > 2:
                raise _status_error(openai.InternalServerError, 500)
            return _fake_response(input)

        client.embeddings.create.side_effect = create
        texts = ["a", "bb", "ccc", "dddd", "eeeee"]

        assert embed_texts(texts, batch_size=8) == [[1.0], [2.0], [3.0], [4.0], [5.0]]
        # 5 fails -> 2 ok, 3 fails -> 1 ok, 2 ok
        assert client.embeddings.create.call_count == 5

    def test_single_item_server_error_is_fatal(self, client: MagicMock) -> None:
        client.embeddings.create.side_effect = _status_error(openai.InternalServerError, 503)
        with pytest.raises(EmbeddingError):
            embed_texts(["only one"])

    def test_client_error_is_not_retried(self, client: MagicMock) -> None:
        client.embeddings.create.side_effect = _status_error(openai.BadRequestError, 400)
        with pytest.raises(EmbeddingError):
            embed_texts(["a", "b", "c", "d"])
        assert client.embeddings.create.call_count == 1

    def test_vector_count_mismatch(self, client: MagicMock) -> None:
        client.embeddings.create.return_value = _fake_response(["only one"])
        with pytest.raises(EmbeddingError, match="2 inputs"):
            embed_texts(["first", "second"])


class TestEmbedChunks:
    def test_pairs_chunks_with_vectors(self, client: MagicMock) -> None:
        client.embeddings.create.side_effect = lambda input, **kw: _fake_response(input)
        chunks = [
            Chunk(level=ChunkLevel.EPISODE, sequence_index=0, text="episode", char_range=(0, 7)),
            Chunk(level=ChunkLevel.TOPIC, sequence_index=1, text="topic", char_range=(0, 5)),
        ]

        pairs = embed_chunks(chunks)

        assert [(c.sequence_index, v) for c, v in pairs] == [(0, [7.0]), (1, [5.0])]
