"""Shared fixtures for horizons tests."""

from unittest.mock import AsyncMock

import pytest

from horizons.config import reset_settings


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch, tmp_path):
    """Prevent tests from reading real .env or touching real data."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("MAX_TOOL_ITERATIONS", "10")
    monkeypatch.setenv("MODEL_TIMEOUT", "0")
    monkeypatch.setenv("EXTRACTION_ATTEMPT_TIMEOUT", "0")
    reset_settings()
    yield
    reset_settings()


class ScriptedClient:
    """
    Stand-in for ClaudeClient.send_turn that replays canned ModelReply
    objects (or raises canned exceptions) and records every request.
    """

    def __init__(self, replies, ready: bool = True):
        self._replies = list(replies)
        self._ready = ready
        self.requests: list[dict] = []

    def is_ready(self) -> bool:
        return self._ready

    async def send_turn(self, history, tools, system=None, tool_choice=None, model=None):
        self.requests.append({
            "history": list(history),
            "tools": [t["name"] for t in tools],
            "system": system,
            "tool_choice": tool_choice,
        })
        if not self._replies:
            raise AssertionError("ScriptedClient ran out of replies")
        reply = self._replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def scripted_client():
    """Factory: scripted_client(reply1, reply2, ..., ready=True)."""
    def _make(*replies, ready: bool = True) -> ScriptedClient:
        return ScriptedClient(replies, ready=ready)
    return _make


@pytest.fixture
def calendar():
    """Mock calendar collaborator with two calendars and two events tomorrow."""
    cal = AsyncMock()
    cal.list_calendars = AsyncMock(return_value=[
        {"id": "cal-personal", "summary": "Personal", "primary": True},
        {"id": "cal-work", "summary": "Work"},
    ])
    cal.list_events = AsyncMock(return_value=[
        {
            "id": "evt-1",
            "summary": "Standup",
            "start": {"dateTime": "2026-10-19T09:00:00+00:00"},
            "end": {"dateTime": "2026-10-19T09:15:00+00:00"},
            "calendarId": "cal-work",
        },
        {
            "id": "evt-2",
            "summary": "Design review",
            "start": {"dateTime": "2026-10-19T14:00:00+00:00"},
            "end": {"dateTime": "2026-10-19T15:00:00+00:00"},
            "calendarId": "cal-work",
        },
    ])
    cal.create_event = AsyncMock(return_value={"id": "new-evt"})
    cal.delete_event = AsyncMock(return_value=None)
    cal.update_event = AsyncMock(return_value={"id": "evt-1"})
    return cal


def assert_no_calendar_mutations(cal) -> None:
    cal.create_event.assert_not_called()
    cal.delete_event.assert_not_called()
    cal.update_event.assert_not_called()


@pytest.fixture
def no_mutations():
    return assert_no_calendar_mutations
