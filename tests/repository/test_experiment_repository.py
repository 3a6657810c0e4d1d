"""Tests for the experiment repository (system of record)."""

import pytest

from prompt_commons.models import Experiment
from prompt_commons import db


@pytest.mark.asyncio
async def test_create_returns_active_record(experiment_repository):
    record = await experiment_repository.create(
        title="Fix memory leak",
        prompt_text="Find the leak",
        ai_model="GPT-4",
        description="Leaky loop",
        tags=["debugging", "python"],
        reproduction_rate=75,
    )

    assert record.id == 1
    assert record.document_id == "1"
    assert record.tags == ["debugging", "python"]
    assert record.version_number == "1.0"

    loaded = await experiment_repository.get_record(record.id)
    assert loaded.title == "Fix memory leak"
    assert loaded.description == "Leaky loop"
    assert loaded.tags == ["debugging", "python"]
    assert loaded.reproduction_rate == 75


@pytest.mark.asyncio
async def test_add_version_switches_active_version(experiment_repository):
    record = await experiment_repository.create(title="Prompt", prompt_text="v1", tags=["old"])

    updated = await experiment_repository.add_version(
        record.id, "2.0", prompt_text="v2", tags=["new"], reproduction_rate=88
    )

    assert updated.prompt_text == "v2"
    assert updated.tags == ["new"]
    assert updated.version_number == "2.0"


@pytest.mark.asyncio
async def test_inactive_version_is_not_projected(experiment_repository):
    record = await experiment_repository.create(title="Prompt", prompt_text="v1")

    await experiment_repository.add_version(record.id, "2.0", prompt_text="draft", activate=False)

    assert (await experiment_repository.get_record(record.id)).prompt_text == "v1"


@pytest.mark.asyncio
async def test_add_version_to_missing_experiment(experiment_repository):
    assert await experiment_repository.add_version(999, "2.0", prompt_text="x") is None


@pytest.mark.asyncio
async def test_count_ignores_experiments_without_active_version(
    experiment_repository, session_maker
):
    await experiment_repository.create(title="Visible", prompt_text="a")
    async with db.scoped_session(session_maker) as session:
        session.add(Experiment(title="Draft only"))

    assert await experiment_repository.count() == 1
    assert await experiment_repository.find_ids() == [1]


@pytest.mark.asyncio
async def test_find_batch_after_walks_by_ascending_id(experiment_repository):
    for number in range(7):
        await experiment_repository.create(title=f"Experiment {number}", prompt_text="x")

    first = await experiment_repository.find_batch_after(None, 3)
    second = await experiment_repository.find_batch_after(first[-1].id, 3)
    third = await experiment_repository.find_batch_after(second[-1].id, 3)
    done = await experiment_repository.find_batch_after(third[-1].id, 3)

    assert [record.id for record in first] == [1, 2, 3]
    assert [record.id for record in second] == [4, 5, 6]
    assert [record.id for record in third] == [7]
    assert done == []


@pytest.mark.asyncio
async def test_find_by_ids_skips_missing(experiment_repository):
    await experiment_repository.create(title="One", prompt_text="x")
    await experiment_repository.create(title="Two", prompt_text="x")

    records = await experiment_repository.find_by_ids([2, 1, 50])

    assert set(records) == {1, 2}
    assert records[2].title == "Two"


@pytest.mark.asyncio
async def test_delete(experiment_repository):
    record = await experiment_repository.create(title="Gone", prompt_text="x", tags=["t"])

    assert await experiment_repository.delete(record.id) is True
    assert await experiment_repository.delete(record.id) is False
    assert await experiment_repository.get_record(record.id) is None
