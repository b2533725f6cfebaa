"""
Argument models for the auto-executed information tools.

The model sends untyped JSON; each tool name maps to one model here and
arguments are validated before any collaborator is touched. A validation
failure becomes an ``{"error": ...}`` tool result the model can correct.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class _Args(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ListCalendarsArgs(_Args):
    pass


class GetCalendarEventsArgs(_Args):
    start_date: str = Field(alias="startDate", min_length=1)
    end_date: str = Field(alias="endDate", min_length=1)
    calendar_ids: list[str] = Field(default_factory=list, alias="calendarIds")


class GetFreeBusyArgs(GetCalendarEventsArgs):
    """Same date range and calendar filter as get_calendar_events."""


class GetProjectsArgs(_Args):
    title_contains: Optional[str] = Field(default=None, alias="titleContains")


TOOL_ARGS: dict[str, type[_Args]] = {
    "list_calendars": ListCalendarsArgs,
    "get_calendar_events": GetCalendarEventsArgs,
    "get_free_busy": GetFreeBusyArgs,
    "get_projects": GetProjectsArgs,
}


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into one line the model can act on."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "Invalid arguments: " + "; ".join(parts)
