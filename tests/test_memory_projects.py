"""Tests for the SQLite project store (horizons/memory)."""

import pytest
import pytest_asyncio

from horizons.exceptions import StorageError
from horizons.memory.database import DatabaseManager
from horizons.memory.projects import ProjectStore


@pytest_asyncio.fixture
async def db(tmp_path):
    """Create a temporary database for testing."""
    db = DatabaseManager(str(tmp_path / "test.db"))
    await db.init()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def store(db):
    return ProjectStore(db)


@pytest.mark.asyncio
async def test_init_is_idempotent(db):
    """Re-running migrations on an existing schema is harmless."""
    await db.close()
    await db.init()
    async with db.get_connection() as conn:
        cursor = await conn.execute("PRAGMA table_info(tasks)")
        columns = {row["name"] for row in await cursor.fetchall()}
    assert {"duration", "min_chunk", "location"} <= columns


@pytest.mark.asyncio
async def test_uninitialised_manager_raises(tmp_path):
    with pytest.raises(StorageError):
        async with DatabaseManager(str(tmp_path / "never.db")).get_connection():
            pass


@pytest.mark.asyncio
async def test_create_project_and_tasks(store):
    project = await store.create_project("Garden", "Spring work")
    first = await store.add_task(project.id, "Prune roses")
    await store.add_task(project.id, "Order seeds", status="Done", duration=30)

    projects = await store.get_all_projects()
    assert len(projects) == 1
    assert projects[0].body == "Spring work"
    assert [t.title for t in projects[0].tasks] == ["Prune roses", "Order seeds"]
    assert first.status == "To Do"
    assert projects[0].tasks[1].duration == 30


@pytest.mark.asyncio
async def test_create_project_with_tasks_in_one_write(store):
    project = await store.create_project_with_tasks("Garden", "Spring work", [
        {"title": "Prune roses"},
        {"title": "Order seeds", "status": "Done", "body": "from the catalogue"},
    ])

    assert [t.title for t in project.tasks] == ["Prune roses", "Order seeds"]
    projects = await store.get_all_projects()
    assert projects[0].id == project.id
    assert [t.status for t in projects[0].tasks] == ["To Do", "Done"]
    assert projects[0].tasks[1].body == "from the catalogue"


@pytest.mark.asyncio
async def test_create_project_with_tasks_rolls_back_on_bad_task(store):
    with pytest.raises(KeyError):
        await store.create_project_with_tasks("Garden", None, [
            {"title": "Prune roses"},
            {"body": "no title"},
        ])
    assert await store.get_all_projects() == []

    # the connection is usable again afterwards
    project = await store.create_project("Shed")
    assert [p.id for p in await store.get_all_projects()] == [project.id]


@pytest.mark.asyncio
async def test_add_task_to_missing_project(store):
    with pytest.raises(StorageError):
        await store.add_task("no-such-project", "Orphan")


@pytest.mark.asyncio
async def test_update_task_partial(store):
    project = await store.create_project("Garden")
    task = await store.add_task(project.id, "Prune roses", body="before May")

    updated = await store.update_task(task.id, {"status": "In Progress", "id": "ignored"})

    assert updated.id == task.id
    assert updated.status == "In Progress"
    assert updated.body == "before May"


@pytest.mark.asyncio
async def test_update_task_rejects_unknown_fields(store):
    project = await store.create_project("Garden")
    task = await store.add_task(project.id, "Prune roses")
    with pytest.raises(ValueError):
        await store.update_task(task.id, {"colour": "red"})


@pytest.mark.asyncio
async def test_update_missing_task(store):
    with pytest.raises(StorageError):
        await store.update_task("nope", {"title": "x"})


@pytest.mark.asyncio
async def test_delete_task(store):
    project = await store.create_project("Garden")
    task = await store.add_task(project.id, "Prune roses")
    assert await store.delete_task(task.id) is True
    assert await store.delete_task(task.id) is False
    assert (await store.get_all_projects())[0].tasks == []


@pytest.mark.asyncio
async def test_as_context(store):
    assert await store.as_context() == ""
    project = await store.create_project("Garden", "Spring work")
    await store.add_task(project.id, "Prune roses")
    context = await store.as_context()
    assert f"Project: Garden (id={project.id})" in context
    assert "- [To Do] Prune roses" in context
