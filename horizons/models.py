"""
Pydantic v2 data models for horizons.

Wire-facing fields use the camelCase names the model emits in tool arguments
(``targetCalendarId``, ``startTime``, …); Python code uses snake_case.
"""

import uuid
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def _new_tool_call_id() -> str:
    return f"toolu_{uuid.uuid4().hex[:24]}"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# --------------------------------------------------------------------------- #
# Tool calls                                                                  #
# --------------------------------------------------------------------------- #

class ToolCall(BaseModel):
    id: str = Field(default_factory=_new_tool_call_id)
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    tool_call_id: str
    name: str
    response: dict[str, Any]

    @property
    def is_error(self) -> bool:
        return "error" in self.response


class ModelReply(BaseModel):
    """What one model round trip produced: text, a tool call, or both."""
    text: Optional[str] = None
    tool_call: Optional[ToolCall] = None


# --------------------------------------------------------------------------- #
# Plans                                                                       #
# --------------------------------------------------------------------------- #

class EventProposal(_WireModel):
    event_id: Optional[str] = Field(default=None, alias="eventId")
    summary: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    description: Optional[str] = None


class CalendarRef(_WireModel):
    id: str
    summary: str = ""


class TaskProposal(_WireModel):
    task_id: Optional[str] = Field(default=None, alias="taskId")
    title: str
    body: Optional[str] = None
    status: Optional[str] = None


class CalendarActionPlan(_WireModel):
    type: Literal["calendar_plan"] = "calendar_plan"
    action: Literal["create", "delete", "update"]
    target_calendar_id: str = Field(alias="targetCalendarId")
    summary: str
    events: list[EventProposal] = Field(default_factory=list)
    original_prompt: str = Field(default="", alias="originalPrompt")


class CalendarSelectionRequest(_WireModel):
    type: Literal["calendar_selection_request"] = "calendar_selection_request"
    summary: str
    calendars: list[CalendarRef] = Field(default_factory=list)
    original_prompt: str = Field(default="", alias="originalPrompt")


class ProjectActionPlan(_WireModel):
    type: Literal["project_plan"] = "project_plan"
    action: Literal["add_task", "update_task"]
    project_id: Optional[str] = Field(default=None, alias="projectId")
    summary: str
    tasks: list[TaskProposal] = Field(default_factory=list)
    original_prompt: str = Field(default="", alias="originalPrompt")


Plan = Annotated[
    Union[CalendarActionPlan, CalendarSelectionRequest, ProjectActionPlan],
    Field(discriminator="type"),
]


# --------------------------------------------------------------------------- #
# Conversation                                                                #
# --------------------------------------------------------------------------- #

class Message(BaseModel):
    role: Literal["user", "model", "system"]
    content: str = ""
    plan: Optional[Plan] = None
    # Recorded tool-call cycle turns; never shown to the user
    tool_call: Optional[ToolCall] = None
    tool_result: Optional[ToolResult] = None

    @property
    def is_tool_turn(self) -> bool:
        return self.tool_call is not None or self.tool_result is not None


class TurnUpdate(BaseModel):
    status: Literal["tool_call", "plan_generated", "done"]
    tool_name: Optional[str] = None


class ExecutionResult(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    succeeded: int = 0
    failed: int = 0


# --------------------------------------------------------------------------- #
# Projects                                                                    #
# --------------------------------------------------------------------------- #

class Task(BaseModel):
    id: str
    project_id: str
    title: str
    body: str = ""
    status: str = "To Do"
    duration: Optional[int] = None  # minutes
    min_chunk: Optional[int] = None  # minutes
    location: Optional[str] = None


class Project(BaseModel):
    id: str
    title: str
    body: str = ""
    tasks: list[Task] = Field(default_factory=list)


class ExtractionReport(BaseModel):
    created: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
