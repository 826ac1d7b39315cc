"""CLI script to ingest markdown reference material into the knowledge base.

Usage (with the package installed, e.g. ``pip install -e .``):
    python scripts/ingest_knowledge.py --directory data/guidelines/ --category cardiovascular
    python scripts/ingest_knowledge.py --file data/guidelines/hfpef.md --category hfpef \\
        --source "Clinical Guidelines 2024 - HFpEF"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import get_args

from rag_backend.config import settings
from rag_backend.dependencies import AppServices
from rag_backend.models.rag import KnowledgeCategory
from rag_backend.services.vector_store import KnowledgeBaseStore


def _source_name(path: Path) -> str:
    return path.stem.replace("-", " ").replace("_", " ").title()


async def ingest_file(
    store: KnowledgeBaseStore, path: Path, category: str, source: str | None
) -> int:
    """Ingest a single markdown file. Returns number of chunks stored."""
    content = path.read_text(encoding="utf-8")
    if not content.strip():
        print(f"  Skipped {path.name} (empty)")
        return 0

    report = await store.store_knowledge_base_chunks(
        content,
        source or _source_name(path),
        category,
        chunk_size=settings.chunk_size,
        overlap=settings.chunk_overlap,
    )
    print(f"  Stored {path.name} -> {report.stored} chunks")
    if report.failed:
        print(f"  Warning: {len(report.failed)} chunks failed to embed: {report.failed}")
    return report.stored


async def run(args: argparse.Namespace) -> int:
    if args.file:
        if not args.file.exists():
            print(f"Error: File not found: {args.file}")
            return 1
        files = [args.file]
    else:
        if not args.directory.exists():
            print(f"Error: Directory not found: {args.directory}")
            return 1
        files = sorted(args.directory.glob("*.md"))
        if not files:
            print(f"No .md files found in {args.directory}")
            return 1
        print(f"Found {len(files)} markdown files")

    services = AppServices.from_settings(settings)
    try:
        print("Ensuring Qdrant collection exists...")
        await services.knowledge_store.ensure_collection()
        total_chunks = 0
        for path in files:
            print(f"\nIngesting {path.name}...")
            total_chunks += await ingest_file(
                services.knowledge_store, path, args.category, args.source
            )
    finally:
        await services.shutdown()

    print(f"\nDone! Ingested {total_chunks} total chunks.")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Ingest reference material into the knowledge base")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--directory", type=Path, help="Directory of markdown files to ingest")
    group.add_argument("--file", type=Path, help="Single markdown file to ingest")
    parser.add_argument(
        "--category",
        required=True,
        choices=get_args(KnowledgeCategory),
        help="Knowledge category the material is filed under",
    )
    parser.add_argument(
        "--source",
        type=str,
        default=None,
        help="Source label shown in citations (defaults to the file name)",
    )
    sys.exit(asyncio.run(run(parser.parse_args())))


if __name__ == "__main__":
    main()
