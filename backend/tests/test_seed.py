"""Knowledge-base seeding script tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

import seed
from rag_backend.dependencies import AppServices
from rag_backend.knowledge.medical_knowledge import KNOWLEDGE_SOURCES


@pytest.fixture
def seeded_services(services: AppServices, mocker) -> AppServices:
    mocker.patch.object(seed.AppServices, "from_settings", return_value=services)
    mocker.patch.object(services, "shutdown", new=AsyncMock())
    return services


async def test_seeds_every_category(seeded_services: AppServices) -> None:
    await seed.main()

    assert await seeded_services.knowledge_store.count() > 0
    seeded_services.shutdown.assert_awaited_once()


async def test_shuts_down_when_seeding_fails(seeded_services: AppServices, mocker) -> None:
    mocker.patch.object(
        seeded_services.knowledge_store,
        "store_knowledge_base_chunks",
        side_effect=RuntimeError("embedding quota exhausted"),
    )
    with pytest.raises(RuntimeError):
        await seed.main()

    seeded_services.shutdown.assert_awaited_once()


async def test_reseeding_replaces_the_collection(seeded_services: AppServices) -> None:
    await seed.main()
    first = await seeded_services.knowledge_store.count()
    await seed.main()

    assert await seeded_services.knowledge_store.count() == first
    assert first >= len(KNOWLEDGE_SOURCES)
