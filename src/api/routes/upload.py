"""Upload endpoint: index a podcast transcript at every chunk level."""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from src.api.models import UploadResponse
from src.ingestion.embeddings import EmbeddingError
from src.ingestion.oracles import MissingCredentialError
from src.ingestion.pipeline import ingest_transcript

router = APIRouter()

# 10 MB upload limit
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# Extension -> transcript format understood by prepare_transcript
FORMAT_BY_EXTENSION = {"txt": "text", "md": "md", "markdown": "md"}


@router.post("/api/upload-transcript", response_model=UploadResponse)
async def upload_transcript(
    file: Annotated[UploadFile, File(...)],
    title: Annotated[str | None, Form()] = None,
) -> UploadResponse:
    """Upload a .txt or .md transcript and build its multi-level index.

    - 400: unsupported extension or undecodable file.
    - 413: file larger than 10 MB.
    - 502: embedding service failure (nothing is stored).
    - 503: summariser credentials not configured.
    """
    raw = await file.read()
    if len(raw) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)} MB.",
        )

    filename = file.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    transcript_format = FORMAT_BY_EXTENSION.get(ext)
    if transcript_format is None:
        raise HTTPException(status_code=400, detail="Only .txt and .md files are supported")

    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="Transcript must be UTF-8 text") from exc

    if not content.strip():
        raise HTTPException(status_code=400, detail="Transcript is empty")

    episode_title = title or filename.rsplit(".", 1)[0] or "Untitled Episode"

    # The pipeline makes blocking SDK calls; keep them off the event loop.
    try:
        result = await asyncio.to_thread(
            ingest_transcript, content, transcript_format, episode_title, filename
        )
    except EmbeddingError as exc:
        raise HTTPException(status_code=502, detail=f"Embedding service failed: {exc}") from exc
    except MissingCredentialError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return UploadResponse(
        podcast_id=result.podcast_id,
        title=result.title,
        guest_name=result.guest_name,
        chunks_created=result.total_chunks,
        chunk_counts=result.chunk_counts,
    )
