"""Tests for AssistantSession, the UI-facing boundary (horizons/agent/session.py)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from horizons.agent.cancellation import CancellationToken
from horizons.agent.session import AI_UNAVAILABLE_REPLY, TURN_FAILED_REPLY, AssistantSession
from horizons.ai.claude_client import ClaudeClient
from horizons.exceptions import CancelledError, ServiceUnavailableError, StorageError
from horizons.models import (
    CalendarActionPlan,
    CalendarRef,
    CalendarSelectionRequest,
    EventProposal,
    Message,
    ModelReply,
    ToolCall,
)


def make_session(client, **kwargs) -> AssistantSession:
    kwargs.setdefault("system", "test system")
    return AssistantSession(client, **kwargs)


@pytest.mark.asyncio
async def test_unavailable_client_gets_fixed_reply(scripted_client):
    client = scripted_client(ready=False)
    reply = await make_session(client).run_turn([Message(role="user", content="hi")])
    assert reply.role == "model"
    assert reply.content == AI_UNAVAILABLE_REPLY
    assert client.requests == []


@pytest.mark.asyncio
async def test_orchestration_errors_become_fixed_reply(scripted_client, calendar, no_mutations):
    client = scripted_client(ModelReply(tool_call=ToolCall(name="delete_everything")))
    reply = await make_session(client, calendar_client=calendar).run_turn(
        [Message(role="user", content="hi")]
    )
    assert reply.content == TURN_FAILED_REPLY
    assert reply.plan is None
    no_mutations(calendar)


@pytest.mark.asyncio
async def test_progress_updates_reach_callback(scripted_client, calendar):
    seen = []

    async def on_update(update):
        seen.append((update.status, update.tool_name))

    client = scripted_client(
        ModelReply(tool_call=ToolCall(name="list_calendars")),
        ModelReply(text="You have two calendars."),
    )
    session = make_session(client, calendar_client=calendar, on_update=on_update)
    reply = await session.run_turn([Message(role="user", content="Which calendars?")])
    assert reply.content == "You have two calendars."
    assert seen == [("tool_call", "list_calendars"), ("done", None)]


@pytest.mark.asyncio
async def test_execute_plan_once_after_approval(scripted_client, calendar):
    plan = CalendarActionPlan(
        action="create", target_calendar_id="cal-work", summary="s",
        events=[EventProposal(summary="Gym", start_time="a", end_time="b")],
    )
    result = await make_session(scripted_client(), calendar_client=calendar).execute_plan(plan)
    assert result.success
    calendar.create_event.assert_awaited_once()


@pytest.mark.asyncio
async def test_execute_plan_reports_plan_errors(scripted_client):
    plan = CalendarActionPlan(action="create", target_calendar_id="cal-work", summary="s")
    result = await make_session(scripted_client()).execute_plan(plan)
    assert not result.success
    assert "not configured" in result.error


@pytest.mark.asyncio
async def test_continue_after_selection(scripted_client, calendar):
    selection = CalendarSelectionRequest(
        summary="Which calendar?", calendars=[CalendarRef(id="cal-work", summary="Work")],
    )
    client = scripted_client(ModelReply(text="Added to Work."))
    history = [
        Message(role="user", content="Add gym"),
        Message(role="model", content=selection.summary, plan=selection),
    ]
    reply = await make_session(client, calendar_client=calendar).continue_after_selection(
        history, selection, "cal-work"
    )
    assert reply.content == "Added to Work."


@pytest.mark.asyncio
async def test_turns_are_serialised(calendar):
    """A second turn waits until the first has finished."""
    gate = asyncio.Event()
    order = []

    class GatedClient:
        def is_ready(self):
            return True

        async def send_turn(self, history, tools, system=None, tool_choice=None, model=None):
            text = history[-1].content
            order.append(f"start {text}")
            if text == "first":
                await gate.wait()
            order.append(f"end {text}")
            return ModelReply(text=text)

    session = make_session(GatedClient(), calendar_client=calendar)
    first = asyncio.create_task(session.run_turn([Message(role="user", content="first")]))
    await asyncio.sleep(0)
    assert session.busy
    second = asyncio.create_task(session.run_turn([Message(role="user", content="second")]))
    await asyncio.sleep(0)
    gate.set()
    await asyncio.gather(first, second)
    assert order == ["start first", "end first", "start second", "end second"]
    assert not session.busy


@pytest.mark.asyncio
async def test_extract_document_requires_store(scripted_client):
    with pytest.raises(StorageError):
        await make_session(scripted_client()).extract_document("Alpha")


@pytest.mark.asyncio
async def test_extract_document_uses_store(scripted_client):
    store = AsyncMock()
    store.get_all_projects = AsyncMock(return_value=[])
    client = scripted_client(
        ModelReply(tool_call=ToolCall(name="save_project_titles", args={"titles": ["Alpha"]})),
        ModelReply(tool_call=ToolCall(name="save_project_details", args={"title": "Alpha", "tasks": []})),
    )
    report = await make_session(client, project_store=store).extract_document("Alpha\n  - x")
    assert report.created == ["Alpha"]
    store.create_project_with_tasks.assert_awaited_once_with("Alpha", None, [])


@pytest.mark.asyncio
async def test_extract_document_without_api_key():
    store = AsyncMock()
    session = make_session(ClaudeClient(api_key=""), project_store=store)
    with pytest.raises(ServiceUnavailableError) as exc_info:
        await session.extract_document("Alpha")
    assert str(exc_info.value) == AI_UNAVAILABLE_REPLY
    store.get_all_projects.assert_not_called()


@pytest.mark.asyncio
async def test_cancel_stops_before_next_tool(calendar, no_mutations):
    """Cancelling mid-turn aborts at the next suspend point; no tool runs."""
    gate = asyncio.Event()

    class GatedClient:
        def is_ready(self):
            return True

        async def send_turn(self, history, tools, system=None, tool_choice=None, model=None):
            await gate.wait()
            return ModelReply(tool_call=ToolCall(name="list_calendars"))

    session = make_session(GatedClient(), calendar_client=calendar)
    turn = asyncio.create_task(session.run_turn([Message(role="user", content="hi")]))
    await asyncio.sleep(0)
    session.cancel()
    gate.set()
    with pytest.raises(CancelledError):
        await turn
    calendar.list_calendars.assert_not_called()
    no_mutations(calendar)
    assert not session.busy


def test_cancellation_token():
    token = CancellationToken()
    assert not token.cancelled
    token.raise_if_cancelled()
    token.cancel("user pressed stop")
    assert token.cancelled
    with pytest.raises(CancelledError, match="user pressed stop"):
        token.raise_if_cancelled()
