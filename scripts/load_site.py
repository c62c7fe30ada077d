"""Crawl one or more sites and load them into the vector index from the command line."""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.api.deps import get_ingestion_pipeline
from src.errors import PipelineError


def load_sites(urls: list[str], max_depth: int | None) -> int:
    """Ingest each URL in turn; returns the number of failures."""
    pipeline = get_ingestion_pipeline()
    errors = 0
    with pipeline.crawler:
        for i, url in enumerate(urls, 1):
            try:
                result = pipeline.ingest(url, max_depth=max_depth)
            except PipelineError as e:
                errors += 1
                print(f"  [{i}/{len(urls)}] ERROR {url}: {e}")
                continue
            print(
                f"  [{i}/{len(urls)}] Loaded {url} -- "
                f"{result.page_count} pages, {result.chunk_count} chunks"
            )

    print(f"\nDone! Loaded {len(urls) - errors} sites, {errors} errors.")
    return errors


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("urls", nargs="+")
    parser.add_argument("--max-depth", type=int, default=None)
    args = parser.parse_args()
    sys.exit(1 if load_sites(args.urls, args.max_depth) else 0)
