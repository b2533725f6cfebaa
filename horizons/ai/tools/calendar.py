"""Calendar tool executors."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .args import GetCalendarEventsArgs, GetFreeBusyArgs, ListCalendarsArgs

if TYPE_CHECKING:
    from .registry import ToolRegistry

logger = logging.getLogger(__name__)

_NOT_CONFIGURED = "Google Calendar not configured. Authorise a Google account first."


def _event_time(value: dict | None) -> str:
    if not value:
        return ""
    # All-day events only carry a date
    return value.get("dateTime") or value.get("date", "")


async def exec_list_calendars(registry: ToolRegistry, args: ListCalendarsArgs) -> dict:
    """List the user's calendars."""
    if registry._calendar is None:
        return {"error": _NOT_CONFIGURED}
    calendars = await registry._calendar.list_calendars()
    return {
        "calendars": [
            {
                "id": c.get("id", ""),
                "summary": c.get("summary", ""),
                "primary": bool(c.get("primary", False)),
            }
            for c in calendars
        ]
    }


async def exec_get_calendar_events(registry: ToolRegistry, args: GetCalendarEventsArgs) -> dict:
    """List events in a date range, across all calendars unless restricted."""
    if registry._calendar is None:
        return {"error": _NOT_CONFIGURED}
    events = await registry._calendar.list_events(
        args.start_date, args.end_date, args.calendar_ids
    )
    logger.debug(
        "get_calendar_events %s → %s returned %d events",
        args.start_date, args.end_date, len(events),
    )
    return {
        "events": [
            {
                "id": e.get("id", ""),
                "summary": e.get("summary", "(no title)"),
                "start": _event_time(e.get("start")),
                "end": _event_time(e.get("end")),
                "calendarId": e.get("calendarId", ""),
            }
            for e in events
        ]
    }


async def exec_get_free_busy(registry: ToolRegistry, args: GetFreeBusyArgs) -> dict:
    """Busy intervals per calendar in a date range."""
    if registry._calendar is None:
        return {"error": _NOT_CONFIGURED}
    calendars = await registry._calendar.free_busy(
        args.start_date, args.end_date, args.calendar_ids
    )
    result = []
    for calendar_id, info in calendars.items():
        entry = {
            "id": calendar_id,
            "busy": [
                {"start": b.get("start", ""), "end": b.get("end", "")}
                for b in info.get("busy", [])
            ],
        }
        # e.g. notFound for a calendar the account cannot see
        if info.get("errors"):
            entry["errors"] = [e.get("reason", "unknown") for e in info["errors"]]
        result.append(entry)
    return {"calendars": result}
