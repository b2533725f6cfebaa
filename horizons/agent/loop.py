"""
AgentTurnLoop — drives one user utterance to a terminal model output.

States:
    AWAITING_MODEL   → the history has been sent, waiting for a reply
    ToolCallReceived → an information tool: dispatch, record, send again
    PlanReceived     → a plan-terminal tool: build a Plan, stop
    TextReceived     → plain text: stop

Side effects only happen in ToolCallReceived, and only through the read-only
information tools. The loop never executes a plan.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime
from typing import Awaitable, Callable, Union

from ..ai.tools.schemas import ToolMode, is_plan_terminal
from ..config import settings
from ..exceptions import MissingPromptError, ServiceUnavailableError, ToolLoopExceededError, UnrecognizedToolError
from ..models import Message, ModelReply, TurnUpdate
from .cancellation import CancellationToken, check
from .conversation import ConversationState
from .plans import build_plan

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[TurnUpdate], Union[None, Awaitable[None]]]

_SYSTEM_PROMPTS = {
    ToolMode.CALENDAR: (
        "You are a personal assistant managing the user's calendar. "
        "Use the information tools to look things up, and get_free_busy to find open "
        "slots. Never claim to have changed "
        "the calendar: propose changes with propose_calendar_action_plan, and if it "
        "is unclear which calendar to use, call request_calendar_selection."
    ),
    ToolMode.PROJECTS: (
        "You are a personal assistant managing the user's project backlog. "
        "Use get_projects to look things up. Propose backlog changes with "
        "propose_project_action_plan; nothing is saved until the user approves."
    ),
    ToolMode.EXTRACTION: (
        "You convert outline-style documents into projects and tasks. "
        "Always answer by calling the requested tool."
    ),
}


def default_system_prompt(mode: ToolMode | str, now: datetime | None = None) -> str:
    now = now or datetime.now().astimezone()
    return f"{_SYSTEM_PROMPTS[ToolMode(mode)]}\nThe current date and time is {now.isoformat()}."


async def notify(on_update: UpdateCallback | None, update: TurnUpdate) -> None:
    """Invoke a sync or async progress callback."""
    if on_update is None:
        return
    result = on_update(update)
    if inspect.isawaitable(result):
        await result


class AgentTurnLoop:
    """
    Sends the conversation to the model and dispatches information tools
    until the model answers with text or a plan-terminal call.
    """

    def __init__(
        self,
        client,
        registry,
        *,
        mode: ToolMode | str = ToolMode.CALENDAR,
        system: str | None = None,
        max_iterations: int | None = None,
        model_timeout: float | None = None,
    ) -> None:
        self._client = client
        self._registry = registry
        self._mode = ToolMode(mode)
        self._system = system
        self._max_iterations = max_iterations or settings.max_tool_iterations
        self._model_timeout = settings.model_timeout if model_timeout is None else model_timeout

    async def run(
        self,
        history: list[Message],
        *,
        original_prompt: str | None = None,
        on_update: UpdateCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> Message:
        """
        Run one turn over *history* and return the model's message.

        The returned message carries a Plan when the model proposed one; the
        plan's ``original_prompt`` is *original_prompt* if given, else the
        last user message.
        """
        state = ConversationState(history)
        trigger = state.last_user_message()
        if trigger is None:
            raise MissingPromptError("History contains no user message")
        prompt = original_prompt if original_prompt is not None else trigger.content

        reply = await self.drive(state, on_update=on_update, cancel=cancel)

        if reply.tool_call is not None:
            plan = build_plan(reply.tool_call, prompt)
            logger.info("Turn produced %s plan", plan.type, extra={"plan_type": plan.type})
            await notify(on_update, TurnUpdate(status="plan_generated", tool_name=reply.tool_call.name))
            await notify(on_update, TurnUpdate(status="done"))
            return Message(role="model", content=plan.summary, plan=plan)

        await notify(on_update, TurnUpdate(status="done"))
        return Message(role="model", content=reply.text or "")

    async def drive(
        self,
        state: ConversationState,
        *,
        tool_choice: dict | None = None,
        on_update: UpdateCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ModelReply:
        """
        Loop until a terminal reply: text, or a plan-terminal tool call.

        Information-tool cycles are appended to *state* as they happen.
        """
        tools = self._registry.schemas(self._mode)
        declared = {t["name"] for t in tools}
        system = self._system or default_system_prompt(self._mode)

        for iteration in range(self._max_iterations):
            check(cancel)
            logger.debug(
                "Turn loop iteration %d/%d, messages=%d",
                iteration + 1, self._max_iterations, len(state),
            )
            reply = await self._send(state, tools, system, tool_choice)

            call = reply.tool_call
            if call is None:
                return reply
            if call.name not in declared:
                raise UnrecognizedToolError(call.name)
            if is_plan_terminal(call.name):
                return reply

            logger.info("Executing tool %s (id=%s)", call.name, call.id, extra={"tool": call.name})
            await notify(on_update, TurnUpdate(status="tool_call", tool_name=call.name))
            state.begin_tool_call(call, reply.text)
            check(cancel)
            result = await self._registry.execute(call.name, call.args, call.id)
            if result.is_error:
                logger.info("Tool %s returned error: %s", call.name, result.response["error"])
            state.complete_tool_call(result)

        logger.warning("Turn loop hit max iterations (%d)", self._max_iterations)
        raise ToolLoopExceededError(self._max_iterations)

    async def _send(self, state, tools, system, tool_choice) -> ModelReply:
        request = self._client.send_turn(
            state.for_model(), tools, system=system, tool_choice=tool_choice,
        )
        if not self._model_timeout:
            return await request
        try:
            return await asyncio.wait_for(request, timeout=self._model_timeout)
        except asyncio.TimeoutError as exc:
            raise ServiceUnavailableError(
                f"Model did not respond within {self._model_timeout:.0f}s"
            ) from exc
