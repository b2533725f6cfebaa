"""
Tool schemas for native Anthropic tool use (function calling).

Tools are grouped per conversation mode. Each mode exposes two kinds:

  Information tools (auto-executed, read-only)
    list_calendars               → calendars the user can act on
    get_calendar_events          → events in an ISO date range
    get_free_busy                → busy intervals per calendar in a range
    get_projects                 → project backlog with tasks

  Plan-terminal tools (intercepted, never dispatched)
    propose_calendar_action_plan → create/delete/update events, pending approval
    request_calendar_selection   → ask the user which calendar to use
    propose_project_action_plan  → add/update backlog tasks, pending approval
    save_project_titles          → extraction pass 1: section titles
    save_project_details         → extraction pass 2: one project + tasks

Mutations are only ever expressed through a plan-terminal tool.
"""

from __future__ import annotations

import copy
from enum import Enum


class ToolMode(str, Enum):
    CALENDAR = "calendar"
    PROJECTS = "projects"
    EXTRACTION = "extraction"


PLAN_TERMINAL_TOOLS = frozenset({
    "propose_calendar_action_plan",
    "request_calendar_selection",
    "propose_project_action_plan",
    "save_project_titles",
    "save_project_details",
})


# --------------------------------------------------------------------------- #
# Information tools                                                           #
# --------------------------------------------------------------------------- #

_LIST_CALENDARS = {
    "name": "list_calendars",
    "description": (
        "Get a list of all calendars available to the user. "
        "Use this to let the user choose which calendar to act on."
    ),
    "input_schema": {"type": "object", "properties": {}, "required": []},
}

_GET_CALENDAR_EVENTS = {
    "name": "get_calendar_events",
    "description": (
        "Get calendar events for a date range across the user's calendars. "
        "Use this to answer schedule questions and to find event IDs before "
        "proposing deletions or updates."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "startDate": {"type": "string", "description": "Start date in ISO 8601 format."},
            "endDate": {"type": "string", "description": "End date in ISO 8601 format."},
            "calendarIds": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Restrict to these calendar IDs. Omit for all calendars.",
            },
        },
        "required": ["startDate", "endDate"],
    },
}

_GET_FREE_BUSY = {
    "name": "get_free_busy",
    "description": (
        "Get the busy time intervals of the user's calendars in a date range. "
        "Use this to find free slots before proposing new events."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "startDate": {"type": "string", "description": "Start of the range in ISO 8601 format."},
            "endDate": {"type": "string", "description": "End of the range in ISO 8601 format."},
            "calendarIds": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Restrict to these calendar IDs. Omit for all calendars.",
            },
        },
        "required": ["startDate", "endDate"],
    },
}

_GET_PROJECTS = {
    "name": "get_projects",
    "description": (
        "Get the user's project backlog: every project with its ID, body and tasks "
        "(task ID, title, status). Use this before proposing task changes."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "titleContains": {
                "type": "string",
                "description": "Only return projects whose title contains this text (case-insensitive).",
            },
        },
        "required": [],
    },
}


# --------------------------------------------------------------------------- #
# Plan-terminal tools                                                         #
# --------------------------------------------------------------------------- #

_EVENT_ITEM = {
    "type": "object",
    "properties": {
        "eventId": {
            "type": "string",
            "description": "ID of an existing event. Required for 'delete' and 'update', omitted for 'create'.",
        },
        "summary": {"type": "string", "description": "The title of the event."},
        "startTime": {"type": "string", "description": "Start time in ISO 8601 format."},
        "endTime": {"type": "string", "description": "End time in ISO 8601 format."},
        "description": {"type": "string", "description": "Optional description for the event."},
    },
    "required": ["summary", "startTime", "endTime"],
}

_PROPOSE_CALENDAR_ACTION_PLAN = {
    "name": "propose_calendar_action_plan",
    "description": (
        "Once all information is gathered, propose a plan to create, delete or update "
        "calendar events. The user must approve this plan before any action is taken."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": ["create", "delete", "update"],
                "description": "The type of action to perform.",
            },
            "targetCalendarId": {
                "type": "string",
                "description": "The ID of the calendar on which to perform the action.",
            },
            "summary": {
                "type": "string",
                "description": "A human-readable summary, e.g. 'I will create 3 events on your Work calendar.'",
            },
            "events": {
                "type": "array",
                "description": "The events to create, delete or update.",
                "items": _EVENT_ITEM,
            },
        },
        "required": ["action", "targetCalendarId", "summary", "events"],
    },
}

_REQUEST_CALENDAR_SELECTION = {
    "name": "request_calendar_selection",
    "description": (
        "Ask the user to pick a calendar when the request is ambiguous between "
        "several calendars. The conversation resumes with their choice."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "summary": {
                "type": "string",
                "description": "The question to show the user, e.g. 'Which calendar should I delete from?'",
            },
            "calendars": {
                "type": "array",
                "description": "The candidate calendars.",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "summary": {"type": "string"},
                    },
                    "required": ["id", "summary"],
                },
            },
        },
        "required": ["summary", "calendars"],
    },
}

_PROPOSE_PROJECT_ACTION_PLAN = {
    "name": "propose_project_action_plan",
    "description": (
        "Propose adding tasks to a project or updating existing tasks. "
        "The user must approve this plan before anything is saved."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "action": {"type": "string", "enum": ["add_task", "update_task"]},
            "projectId": {
                "type": "string",
                "description": "Project to add tasks to. Required for 'add_task'.",
            },
            "summary": {"type": "string", "description": "A human-readable summary of the change."},
            "tasks": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "taskId": {
                            "type": "string",
                            "description": "Existing task ID. Required for 'update_task'.",
                        },
                        "title": {"type": "string"},
                        "body": {"type": "string"},
                        "status": {"type": "string", "enum": ["To Do", "In Progress", "Done"]},
                    },
                    "required": ["title"],
                },
            },
        },
        "required": ["action", "summary", "tasks"],
    },
}

_SAVE_PROJECT_TITLES = {
    "name": "save_project_titles",
    "description": "Record the title of every project section found in the document, in document order.",
    "input_schema": {
        "type": "object",
        "properties": {
            "titles": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["titles"],
    },
}

_SAVE_PROJECT_DETAILS = {
    "name": "save_project_details",
    "description": (
        "Record one project from the document: its notes as the body, and its "
        "actionable items as tasks."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "The project title exactly as requested."},
            "body": {"type": "string", "description": "Non-task notes for the project."},
            "tasks": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        "body": {"type": "string"},
                        "status": {"type": "string", "enum": ["To Do", "In Progress", "Done"]},
                    },
                    "required": ["title"],
                },
            },
        },
        "required": ["title", "tasks"],
    },
}


_MODE_TOOLS: dict[ToolMode, tuple[dict, ...]] = {
    ToolMode.CALENDAR: (
        _LIST_CALENDARS,
        _GET_CALENDAR_EVENTS,
        _GET_FREE_BUSY,
        _GET_PROJECTS,
        _PROPOSE_CALENDAR_ACTION_PLAN,
        _REQUEST_CALENDAR_SELECTION,
    ),
    ToolMode.PROJECTS: (
        _GET_PROJECTS,
        _GET_CALENDAR_EVENTS,
        _GET_FREE_BUSY,
        _PROPOSE_PROJECT_ACTION_PLAN,
    ),
    ToolMode.EXTRACTION: (
        _SAVE_PROJECT_TITLES,
        _SAVE_PROJECT_DETAILS,
    ),
}

# Flat list of every declared tool, for tests and diagnostics
TOOL_SCHEMAS: list[dict] = list({
    schema["name"]: schema for tools in _MODE_TOOLS.values() for schema in tools
}.values())


def get_tools(mode: ToolMode | str) -> list[dict]:
    """Return the tool declarations for *mode*. Callers get their own copies."""
    return copy.deepcopy(list(_MODE_TOOLS[ToolMode(mode)]))


def get_tool(mode: ToolMode | str, name: str) -> dict:
    for schema in _MODE_TOOLS[ToolMode(mode)]:
        if schema["name"] == name:
            return schema
    raise KeyError(name)


def is_plan_terminal(name: str) -> bool:
    return name in PLAN_TERMINAL_TOOLS
