"""Index a directory of podcast transcripts (.txt / .md) into Supabase."""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.ingestion.models import level_counts
from src.ingestion.pipeline import build_index, ingest_transcript

FORMAT_BY_SUFFIX = {".txt": "text", ".md": "md", ".markdown": "md"}


def load_transcripts(
    data_dir: str = "data/transcripts",
    max_files: int | None = None,
    dry_run: bool = False,
) -> None:
    """Index every transcript file in *data_dir*.

    With ``dry_run`` the chunk tree is built and its level counts printed,
    but nothing is embedded or stored.
    """
    data_path = Path(data_dir)

    if not data_path.exists():
        print(f"Data directory {data_dir} not found.")
        return

    files = sorted(p for p in data_path.iterdir() if p.suffix.lower() in FORMAT_BY_SUFFIX)
    if max_files:
        files = files[:max_files]

    print(f"Indexing {len(files)} transcripts{' (dry run)' if dry_run else ''}...")

    loaded = 0
    errors = 0

    for i, filepath in enumerate(files):
        transcript_format = FORMAT_BY_SUFFIX[filepath.suffix.lower()]
        try:
            content = filepath.read_text(encoding="utf-8")
            if not content.strip():
                print(f"  [{i + 1}] SKIP {filepath.name} -- empty file")
                continue

            if dry_run:
                chunks = build_index(content, transcript_format)
                print(f"  [{i + 1}/{len(files)}] {filepath.name} -- {level_counts(chunks)}")
            else:
                result = ingest_transcript(
                    content,
                    transcript_format,
                    title=filepath.stem,
                    source_file=filepath.name,
                )
                print(
                    f"  [{i + 1}/{len(files)}] Loaded {filepath.stem} -- "
                    f"{result.total_chunks} chunks ({result.podcast_id})"
                )
            loaded += 1

        except Exception as e:
            errors += 1
            print(f"  [{i + 1}] ERROR {filepath.name}: {e}")

    print(f"\nDone! Indexed {loaded} transcripts, {errors} errors.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--dir", default="data/transcripts")
    parser.add_argument("--max", type=int, default=None)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()
    load_transcripts(args.dir, args.max, args.dry_run)
