"""Tests for the FastAPI endpoints (pipeline and storage mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from src.api.main import app, run
from src.api.routes.upload import MAX_UPLOAD_BYTES
from src.config import settings
from src.ingestion.embeddings import EmbeddingError
from src.ingestion.oracles import MissingCredentialError
from src.ingestion.pipeline import IngestResult

client = TestClient(app, raise_server_exceptions=False)

_COUNTS = {"episode": 1, "topic": 3, "paragraph": 8, "sentence": 40}


def _ingest_result(title: str = "Episode 1") -> IngestResult:
    return IngestResult(
        podcast_id="pod-1", title=title, guest_name="Jane Doe", chunk_counts=dict(_COUNTS)
    )


class TestHealth:
    def test_health(self) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @patch("src.api.main.uvicorn.run")
    def test_run_serves_configured_address(self, mock_run: MagicMock) -> None:
        run()
        mock_run.assert_called_once_with(app, host=settings.api_host, port=settings.api_port)


class TestUploadTranscript:
    @patch("src.api.routes.upload.ingest_transcript")
    def test_text_upload(self, mock_ingest: MagicMock) -> None:
        mock_ingest.return_value = _ingest_result("ep1")

        response = client.post(
            "/api/upload-transcript",
            files={"file": ("ep1.txt", b"Host: Welcome to the show everyone.", "text/plain")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["podcast_id"] == "pod-1"
        assert body["chunks_created"] == 52
        assert body["chunk_counts"] == _COUNTS
        content, fmt, title, source = mock_ingest.call_args.args
        assert (fmt, title, source) == ("text", "ep1", "ep1.txt")
        assert content == "Host: Welcome to the show everyone."

    @patch("src.api.routes.upload.ingest_transcript")
    def test_markdown_upload_with_title(self, mock_ingest: MagicMock) -> None:
        mock_ingest.return_value = _ingest_result("Solar Special")

        response = client.post(
            "/api/upload-transcript",
            files={"file": ("notes.md", b"# Solar\n\nHost: hello there", "text/markdown")},
            data={"title": "Solar Special"},
        )

        assert response.status_code == 200
        _, fmt, title, _ = mock_ingest.call_args.args
        assert (fmt, title) == ("md", "Solar Special")

    def test_unsupported_extension(self) -> None:
        response = client.post(
            "/api/upload-transcript",
            files={"file": ("ep1.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert response.status_code == 400

    def test_too_large(self) -> None:
        response = client.post(
            "/api/upload-transcript",
            files={"file": ("big.txt", b"x" * (MAX_UPLOAD_BYTES + 1), "text/plain")},
        )
        assert response.status_code == 413

    def test_not_utf8(self) -> None:
        response = client.post(
            "/api/upload-transcript",
            files={"file": ("ep1.txt", b"\xff\xfe\xfa invalid", "text/plain")},
        )
        assert response.status_code == 400

    def test_empty_file(self) -> None:
        response = client.post(
            "/api/upload-transcript",
            files={"file": ("ep1.txt", b"   \n", "text/plain")},
        )
        assert response.status_code == 400

    @patch("src.api.routes.upload.ingest_transcript", side_effect=EmbeddingError("down"))
    def test_embedding_failure(self, mock_ingest: MagicMock) -> None:
        response = client.post(
            "/api/upload-transcript",
            files={"file": ("ep1.txt", b"Host: Welcome to the show.", "text/plain")},
        )
        assert response.status_code == 502

    @patch(
        "src.api.routes.upload.ingest_transcript",
        side_effect=MissingCredentialError("ANTHROPIC_API_KEY is not set"),
    )
    def test_missing_credentials(self, mock_ingest: MagicMock) -> None:
        response = client.post(
            "/api/upload-transcript",
            files={"file": ("ep1.txt", b"Host: Welcome to the show.", "text/plain")},
        )
        assert response.status_code == 503


class TestSearchTranscripts:
    def test_blank_query(self) -> None:
        response = client.post("/api/search-transcripts", json={"query": "   "})
        assert response.status_code == 400

    def test_missing_query(self) -> None:
        response = client.post("/api/search-transcripts", json={})
        assert response.status_code == 422

    def test_invalid_level(self) -> None:
        response = client.post(
            "/api/search-transcripts", json={"query": "x", "levels": ["chapter"]}
        )
        assert response.status_code == 422

    @patch("src.api.routes.search.search_transcripts")
    def test_search_results(self, mock_search: MagicMock) -> None:
        parent = {"id": 1, "chunk_level": "episode", "text_content": "Full episode"}
        mock_search.return_value = {
            "query": "which episodes discuss solar",
            "preferred_levels": ["episode", "topic"],
            "results": [
                {
                    "id": 10,
                    "podcast_id": "pod-1",
                    "chunk_index": 1,
                    "chunk_level": "topic",
                    "parent_chunk_id": 1,
                    "text_content": "Solar power segment",
                    "timestamp_start": "00:05:00",
                    "timestamp_end": None,
                    "similarity": 0.6,
                    "score": 0.72,
                    "context": [parent],
                }
            ],
            "count": 1,
            "level_breakdown": {"topic": 1},
            "search_strategy": {"min_similarity": 0.25, "max_results": 10, "restrict_levels": True},
        }

        response = client.post(
            "/api/search-transcripts",
            json={"query": "which episodes discuss solar", "levels": ["episode", "topic"]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["results"][0]["score"] == 0.72
        assert body["results"][0]["context"][0]["id"] == 1
        kwargs = mock_search.call_args.kwargs
        assert [lvl.value for lvl in kwargs["levels"]] == ["episode", "topic"]
        assert kwargs["max_results"] == 10

    @patch("src.api.routes.search.search_transcripts", side_effect=EmbeddingError("down"))
    def test_embedding_failure(self, mock_search: MagicMock) -> None:
        response = client.post("/api/search-transcripts", json={"query": "solar"})
        assert response.status_code == 502


@patch("src.api.routes.episodes.get_supabase_client")
class TestEpisodes:
    @patch("src.api.routes.episodes.list_podcasts")
    def test_list(self, mock_list: MagicMock, mock_client: MagicMock) -> None:
        mock_list.return_value = [
            {
                "id": "pod-1",
                "title": "Episode 1",
                "guest_name": "Jane Doe",
                "created_at": "2026-01-01",
            }
        ]
        response = client.get("/api/episodes")
        assert response.status_code == 200
        assert response.json()[0]["title"] == "Episode 1"

    @patch("src.api.routes.episodes.get_podcast_chunks", return_value=[])
    def test_unknown_episode(self, mock_chunks: MagicMock, mock_client: MagicMock) -> None:
        response = client.get("/api/episodes/missing")
        assert response.status_code == 404

    @patch("src.api.routes.episodes.get_podcast")
    @patch("src.api.routes.episodes.get_podcast_chunks")
    def test_detail(
        self, mock_chunks: MagicMock, mock_podcast: MagicMock, mock_client: MagicMock
    ) -> None:
        mock_chunks.return_value = [
            {
                "id": 1,
                "chunk_index": 0,
                "chunk_level": "episode",
                "text_content": "Everything",
                "summary": "An episode about solar.",
                "guest_name": "Jane Doe",
                "full_text": "Alice: solar panels are cheap now",
                "created_at": "2026-01-01T00:00:00+00:00",
            },
            {
                "id": 2,
                "chunk_index": 1,
                "chunk_level": "topic",
                "parent_chunk_id": 1,
                "text_content": "Solar basics",
                "chapter_title": "Basics",
                "speaker": "Alice",
                "metadata": {"chapter_index": 0},
            },
        ]
        mock_podcast.return_value = {"id": "pod-1", "title": "Solar Special"}

        response = client.get("/api/episodes/pod-1")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Solar Special"
        assert body["summary"] == "An episode about solar."
        assert [t["chapter_title"] for t in body["topics"]] == ["Basics"]
        assert body["chunk_counts"] == {"episode": 1, "topic": 1}
        assert body["word_count"] == 6
        assert body["reading_time"] == 0
        assert body["full_text"].startswith("Alice:")
        assert [c["id"] for c in body["chunks"]["topic"]] == [2]
        assert body["level_stats"]["topic"] == {"count": 1, "unique_speakers": 1}
        assert body["speakers"] == [{"name": "Alice", "chunk_count": 1, "levels": ["topic"]}]
        assert body["total_chunks"] == 2


@patch("src.api.routes.analytics.get_supabase_client")
@patch("src.api.routes.analytics.get_episode_rows")
@patch("src.api.routes.analytics.get_chunk_stats_rows")
class TestAnalytics:
    def test_analytics(
        self, mock_rows: MagicMock, mock_episodes: MagicMock, mock_client: MagicMock
    ) -> None:
        created = "2026-01-01T00:00:00+00:00"
        mock_rows.return_value = [
            {"podcast_id": "pod-1", "chunk_level": "episode", "created_at": created},
            {
                "podcast_id": "pod-1",
                "chunk_level": "topic",
                "speaker": "Alice",
                "topic_boundary": True,
                "created_at": created,
            },
        ]
        mock_episodes.return_value = [
            {
                "podcast_id": "pod-1",
                "summary": "Solar",
                "full_text": "one two three",
                "metadata": {},
                "created_at": created,
            }
        ]

        response = client.get("/api/analytics")

        assert response.status_code == 200
        body = response.json()
        assert body["stats"]["total_episodes"] == 1
        assert body["stats"]["topic_chunks"] == 1
        assert body["episodes"][0]["word_count"] == 3
        assert body["chunk_distribution"] == {"pod-1": {"episode": 1, "topic": 1}}
        assert body["speakers"] == [{"name": "Alice", "chunk_count": 1, "episode_count": 1}]
        assert body["topics"] == [{"podcast_id": "pod-1", "topic_segments": 1, "total_chunks": 1}]

    def test_storage_error_is_a_server_error(
        self, mock_rows: MagicMock, mock_episodes: MagicMock, mock_client: MagicMock
    ) -> None:
        mock_rows.side_effect = RuntimeError("database unavailable")
        response = client.get("/api/analytics")
        assert response.status_code == 500
