"""Tests for search index maintenance endpoints."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from prompt_commons.api.app import app as fastapi_app
from prompt_commons.deps import get_app_config, get_engine_factory


@pytest.fixture(scope="function")
def app(app_config, engine_factory, config_manager) -> FastAPI:
    app = fastapi_app
    app.dependency_overrides[get_app_config] = lambda: app_config
    app.dependency_overrides[get_engine_factory] = lambda: engine_factory
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(client: AsyncClient, sample_experiments):
    response = await client.get("/search/health")

    assert response.status_code == 200
    assert response.json() == {
        "connected": True,
        "index_name": "experiments",
        "document_count": 5,
        "semantic_enabled": False,
        "error": None,
    }


@pytest.mark.asyncio
async def test_resync_rebuilds_index(
    client: AsyncClient, sample_experiments, search_repository, experiment_repository
):
    await search_repository.delete_document("1")
    await experiment_repository.delete(5)

    response = await client.post("/search/resync")

    assert response.status_code == 200
    report = response.json()
    assert report["success"] is True
    assert report["total_count"] == 4
    assert report["synced_count"] == 4
    assert report["batch_sizes"] == [4]
    assert await search_repository.count() == 4
    assert await search_repository.get_document("1") is not None


@pytest.mark.asyncio
async def test_consistency_after_drift(
    client: AsyncClient, sample_experiments, experiment_repository
):
    await experiment_repository.add_version(
        2, "2.0", prompt_text="Rewritten", ai_model="Claude", reproduction_rate=70
    )

    response = await client.get("/search/consistency", params={"sample_size": 5})

    assert response.status_code == 200
    report = response.json()
    assert report["counts_match"] is True
    assert report["passed"] is False
    failed = [sample for sample in report["samples"] if not sample["consistent"]]
    assert failed == [{"id": "2", "consistent": False, "errors": ["prompt_text mismatch"]}]


@pytest.mark.asyncio
async def test_consistency_passes_when_in_sync(client: AsyncClient, sample_experiments):
    response = await client.get("/search/consistency", params={"sample_size": 3})

    report = response.json()
    assert report["passed"] is True
    assert len(report["samples"]) == 3


@pytest.mark.asyncio
async def test_consistency_rejects_bad_sample_size(client: AsyncClient):
    response = await client.get("/search/consistency", params={"sample_size": 0})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reindex_document_picks_up_new_version(
    client: AsyncClient, sample_experiments, experiment_repository, search_repository
):
    await experiment_repository.add_version(
        2, "2.0", prompt_text="Rewritten", ai_model="Claude", reproduction_rate=70
    )

    response = await client.put("/search/documents/2")

    assert response.status_code == 200
    assert response.json() == {"id": "2", "embedded_count": 0}
    stored = await search_repository.get_document("2")
    assert stored.prompt_text == "Rewritten"


@pytest.mark.asyncio
async def test_reindex_missing_experiment_is_404(client: AsyncClient, sample_experiments):
    response = await client.put("/search/documents/999")

    assert response.status_code == 404
    assert "999" in response.json()["detail"]


@pytest.mark.asyncio
async def test_delete_document(client: AsyncClient, sample_experiments, search_repository):
    response = await client.delete("/search/documents/3")

    assert response.status_code == 200
    assert response.json() == {"id": "3", "deleted": True}
    assert await search_repository.get_document("3") is None
    assert await search_repository.count() == 4


@pytest.mark.asyncio
async def test_delete_document_not_indexed_succeeds(client: AsyncClient, sample_experiments):
    response = await client.delete("/search/documents/999")

    assert response.status_code == 200
    assert response.json() == {"id": "999", "deleted": True}
