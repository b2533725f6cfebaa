"""
Tool registry class and dispatch logic.

This module contains the ToolRegistry class which holds references to the
collaborators the information tools read from and dispatches tool calls
coming back from the model.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from ...exceptions import UnrecognizedToolError
from ...models import ToolResult
from .args import TOOL_ARGS, describe_validation_error
from .schemas import ToolMode, get_tools, is_plan_terminal

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Holds references to the calendar and project collaborators and
    dispatches information-tool calls from the model.

    Dependencies are injected at construction time; a missing collaborator
    turns its tools into recoverable "not configured" results.
    """

    def __init__(
        self,
        *,
        calendar_client=None,
        project_store=None,
    ) -> None:
        self._calendar = calendar_client
        self._project_store = project_store

    def schemas(self, mode: ToolMode | str) -> list[dict]:
        """Return the Anthropic tool schemas for *mode*."""
        return get_tools(mode)

    async def execute(
        self, tool_name: str, tool_input: dict[str, Any] | None, tool_call_id: str = ""
    ) -> ToolResult:
        """
        Execute the named information tool with the given input.

        Collaborator failures and invalid arguments come back as
        ``{"error": ...}`` results. An unknown name, or a plan-terminal name
        that should have been intercepted, raises UnrecognizedToolError.
        """
        args_model = TOOL_ARGS.get(tool_name)
        if args_model is None or is_plan_terminal(tool_name):
            raise UnrecognizedToolError(tool_name)

        try:
            args = args_model.model_validate(tool_input or {})
        except ValidationError as exc:
            logger.info("Tool %s rejected arguments: %s", tool_name, exc)
            return ToolResult(
                tool_call_id=tool_call_id,
                name=tool_name,
                response={"error": describe_validation_error(exc)},
            )

        try:
            response = await self._dispatch(tool_name, args)
        except Exception as exc:
            logger.error("Tool %s failed: %s", tool_name, exc, exc_info=True)
            response = {"error": str(exc) or type(exc).__name__}

        # Collaborators may hand back datetimes or other non-JSON values
        response = json.loads(json.dumps(response, default=str))
        return ToolResult(tool_call_id=tool_call_id, name=tool_name, response=response)

    async def _dispatch(self, tool_name: str, args) -> dict:
        match tool_name:
            # Calendar
            case "list_calendars":
                from .calendar import exec_list_calendars
                return await exec_list_calendars(self, args)
            case "get_calendar_events":
                from .calendar import exec_get_calendar_events
                return await exec_get_calendar_events(self, args)
            case "get_free_busy":
                from .calendar import exec_get_free_busy
                return await exec_get_free_busy(self, args)

            # Projects
            case "get_projects":
                from .projects import exec_get_projects
                return await exec_get_projects(self, args)

            case _:
                raise UnrecognizedToolError(tool_name)
