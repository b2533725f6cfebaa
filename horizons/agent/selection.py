"""
Resume a conversation after the user answers a calendar selection request.

The visible chat only shows the model's question and the plan. To the model
the dialogue must look unbroken, so two synthetic turns are replayed before
re-entering the turn loop:

    model: request_calendar_selection(summary, calendars)
    user:  tool result {"selectedCalendarId": <answer>}
"""

from __future__ import annotations

import logging

from ..exceptions import MissingPromptError, PlanError
from ..models import CalendarSelectionRequest, Message, ToolCall, ToolResult
from .cancellation import CancellationToken
from .conversation import ConversationState
from .loop import AgentTurnLoop, UpdateCallback

logger = logging.getLogger(__name__)

SELECTION_TOOL = "request_calendar_selection"


def replay_selection(
    history: list[Message], plan: CalendarSelectionRequest, selected_id: str
) -> list[Message]:
    """Return *history* with the synthetic selection call and answer appended."""
    state = ConversationState(history)
    call = ToolCall(
        name=SELECTION_TOOL,
        args={
            "summary": plan.summary,
            "calendars": [c.model_dump() for c in plan.calendars],
        },
    )
    state.begin_tool_call(call)
    state.complete_tool_call(
        ToolResult(
            tool_call_id=call.id,
            name=SELECTION_TOOL,
            response={"selectedCalendarId": selected_id},
        )
    )
    return state.messages


class SelectionResumer:
    """Feeds an out-of-band calendar choice back into the turn loop."""

    def __init__(self, loop: AgentTurnLoop) -> None:
        self._loop = loop

    async def resume(
        self,
        history: list[Message],
        plan: CalendarSelectionRequest,
        selected_id: str,
        *,
        on_update: UpdateCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> Message:
        """
        Continue the turn that asked for a calendar. Any plan produced keeps
        the conversation's first user message as its original prompt.
        """
        if not isinstance(plan, CalendarSelectionRequest):
            raise PlanError(f"Cannot resume from a {getattr(plan, 'type', type(plan).__name__)} plan")

        first = ConversationState(history).first_user_message()
        if first is None:
            raise MissingPromptError("History contains no user message to resume")

        known = {c.id for c in plan.calendars}
        if known and selected_id not in known:
            logger.warning("Selected calendar %s was not among the offered calendars", selected_id)

        logger.info("Resuming conversation with calendar %s", selected_id)
        return await self._loop.run(
            replay_selection(history, plan, selected_id),
            original_prompt=first.content,
            on_update=on_update,
            cancel=cancel,
        )
