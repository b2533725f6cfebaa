"""Tests for the bulk document import in horizons/agent/extraction.py."""

from __future__ import annotations

import logging

import pytest
import pytest_asyncio

from horizons.agent.cancellation import CancellationToken
from horizons.agent.extraction import DETAILS_TOOL, TITLES_TOOL, ExtractionPipeline
from horizons.ai.claude_client import ClaudeClient
from horizons.exceptions import CancelledError, ExtractionError, ServiceUnavailableError
from horizons.memory.database import DatabaseManager
from horizons.memory.projects import ProjectStore
from horizons.models import ModelReply, ToolCall

DOCUMENT = """\
Alpha
  already imported
Beta
  - call the plumber
Gamma
  Notes about gamma
  - draft outline
  - send to editor
"""


def titles(*names):
    return ModelReply(tool_call=ToolCall(name=TITLES_TOOL, args={"titles": list(names)}))


def details(title, body=None, tasks=()):
    return ModelReply(tool_call=ToolCall(name=DETAILS_TOOL, args={
        "title": title, "body": body, "tasks": [{"title": t} for t in tasks],
    }))


@pytest_asyncio.fixture
async def store(tmp_path):
    db = DatabaseManager(str(tmp_path / "extract.db"))
    await db.init()
    yield ProjectStore(db)
    await db.close()


@pytest.mark.asyncio
async def test_existing_projects_are_skipped(scripted_client, store, caplog):
    await store.create_project("Alpha")
    client = scripted_client(
        titles("Alpha", "Beta"),
        details("Beta", tasks=["call the plumber"]),
    )
    lines = []

    with caplog.at_level(logging.INFO, logger="horizons.agent.extraction"):
        report = await ExtractionPipeline(client, store, log=lines.append).run(DOCUMENT)

    assert report.skipped == ["Alpha"]
    assert report.created == ["Beta"]
    assert "Skipping existing project: Alpha" in caplog.text
    assert "Skipping existing project: Alpha" in lines
    # one titles call plus one details call; Alpha never extracted
    assert len(client.requests) == 2
    assert all(r["tool_choice"]["type"] == "tool" for r in client.requests)
    projects = await store.get_all_projects()
    assert [p.title for p in projects] == ["Alpha", "Beta"]
    assert [t.title for t in projects[1].tasks] == ["call the plumber"]


@pytest.mark.asyncio
async def test_failed_project_does_not_stop_the_rest(scripted_client, store, caplog):
    client = scripted_client(
        titles("Beta", "Gamma"),
        # Beta: three bad attempts
        ModelReply(text="I could not find it."),
        RuntimeError("connection dropped"),
        ModelReply(tool_call=ToolCall(name=DETAILS_TOOL, args={"title": "Beta", "tasks": [{"title": ""}]})),
        # Gamma: first attempt works
        details("Gamma", body="Notes about gamma", tasks=["draft outline", "send to editor"]),
    )

    report = await ExtractionPipeline(client, store, max_attempts=3).run(DOCUMENT)

    assert report.failed == ["Beta"]
    assert report.created == ["Gamma"]
    assert "Failed to extract project Beta after 3 attempts" in caplog.text
    assert "Attempt 3/3 for project Beta failed" in caplog.text
    projects = await store.get_all_projects()
    assert [p.title for p in projects] == ["Gamma"]
    assert projects[0].body == "Notes about gamma"
    assert [t.status for t in projects[0].tasks] == ["To Do", "To Do"]


@pytest.mark.asyncio
async def test_details_prompt_names_the_title(scripted_client, store):
    client = scripted_client(titles("Gamma"), details("Gamma"))
    await ExtractionPipeline(client, store).run(DOCUMENT)
    prompt = client.requests[1]["history"][0].content
    assert '"Gamma"' in prompt
    assert client.requests[1]["tool_choice"] == {"type": "tool", "name": DETAILS_TOOL}


@pytest.mark.asyncio
async def test_titles_are_trimmed_and_deduplicated(scripted_client, store):
    client = scripted_client(titles(" Beta ", "Beta", ""), details("Beta"))
    report = await ExtractionPipeline(client, store).run(DOCUMENT)
    assert report.created == ["Beta"]


@pytest.mark.asyncio
async def test_title_enumeration_failure_raises(scripted_client, store):
    client = scripted_client(*[ModelReply(text="no") for _ in range(2)])
    with pytest.raises(ExtractionError):
        await ExtractionPipeline(client, store, max_attempts=2).run(DOCUMENT)


@pytest.mark.asyncio
async def test_empty_document(scripted_client, store):
    client = scripted_client()
    report = await ExtractionPipeline(client, store).run("   \n")
    assert report.created == report.skipped == report.failed == []
    assert client.requests == []


@pytest.mark.asyncio
async def test_cancellation_stops_import(scripted_client, store):
    token = CancellationToken()
    token.cancel()
    client = scripted_client(titles("Beta"))
    with pytest.raises(CancelledError):
        await ExtractionPipeline(client, store).run(DOCUMENT, cancel=token)
    assert await store.get_all_projects() == []


@pytest.mark.asyncio
async def test_unconfigured_client_refuses_to_start(store):
    pipeline = ExtractionPipeline(ClaudeClient(api_key=""), store)
    with pytest.raises(ServiceUnavailableError):
        await pipeline.run(DOCUMENT)
    assert await store.get_all_projects() == []


@pytest.mark.asyncio
async def test_not_ready_client_is_never_called(scripted_client, store):
    client = scripted_client(titles("Beta"), ready=False)
    with pytest.raises(ServiceUnavailableError):
        await ExtractionPipeline(client, store).run(DOCUMENT)
    assert client.requests == []


@pytest.mark.asyncio
async def test_unavailable_model_aborts_without_retrying(scripted_client, store):
    client = scripted_client(
        titles("Beta", "Gamma"),
        ServiceUnavailableError("Anthropic request failed after retries"),
        details("Beta"),
        details("Gamma"),
    )
    with pytest.raises(ServiceUnavailableError):
        await ExtractionPipeline(client, store, max_attempts=3).run(DOCUMENT)
    # titles call plus the single failing details call
    assert len(client.requests) == 2
    assert await store.get_all_projects() == []


@pytest.mark.asyncio
async def test_failed_save_leaves_nothing_and_rerun_retries(scripted_client, store, monkeypatch):
    real_save = store.create_project_with_tasks

    async def save_with_broken_second_task(title, body=None, tasks=()):
        tasks = list(tasks)
        tasks[1] = {"body": "lost its title"}
        return await real_save(title, body, tasks)

    monkeypatch.setattr(store, "create_project_with_tasks", save_with_broken_second_task)
    client = scripted_client(titles("Beta"), details("Beta", tasks=["a", "b"]))
    report = await ExtractionPipeline(client, store).run(DOCUMENT)

    assert report.failed == ["Beta"]
    assert report.created == []
    # the project row was rolled back along with the first task
    assert await store.get_all_projects() == []

    monkeypatch.setattr(store, "create_project_with_tasks", real_save)
    client = scripted_client(titles("Beta"), details("Beta", tasks=["a", "b"]))
    report = await ExtractionPipeline(client, store).run(DOCUMENT)

    assert report.created == ["Beta"]
    assert report.skipped == []
    projects = await store.get_all_projects()
    assert [p.title for p in projects] == ["Beta"]
    assert [t.title for t in projects[0].tasks] == ["a", "b"]
