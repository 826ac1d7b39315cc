"""Seed the medical knowledge base. Drop-and-recreate the collection on each run."""

from __future__ import annotations

import asyncio

from rag_backend.config import settings
from rag_backend.dependencies import AppServices
from rag_backend.knowledge.medical_knowledge import KNOWLEDGE_SOURCES


async def main() -> None:
    services = AppServices.from_settings(settings)
    store = services.knowledge_store
    try:
        await store.drop_collection()
        await store.ensure_collection()

        total = 0
        for entry in KNOWLEDGE_SOURCES:
            report = await store.store_knowledge_base_chunks(
                entry.content,
                entry.source,
                entry.category,
                chunk_size=settings.chunk_size,
                overlap=settings.chunk_overlap,
            )
            total += report.stored
            suffix = f" ({len(report.failed)} failed)" if report.failed else ""
            print(f"  {entry.category}: {report.stored} chunks{suffix}")

        print(f"Seeded {total} knowledge chunks across {len(KNOWLEDGE_SOURCES)} categories.")
    finally:
        await services.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
