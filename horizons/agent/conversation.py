"""
ConversationState — ordered history plus the single pending tool-call cycle.

A tool cycle is recorded as two turns: a ``model`` message carrying the
ToolCall, then a ``user`` message carrying the matching ToolResult. Only one
cycle may be open at a time.
"""

from __future__ import annotations

from typing import Iterable

from ..exceptions import MissingPromptError, OrchestrationError
from ..models import Message, ToolCall, ToolResult


class ConversationState:
    def __init__(self, history: Iterable[Message] = ()) -> None:
        # Own list; the caller's history is never mutated
        self._messages: list[Message] = list(history)
        self._pending: ToolCall | None = None

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def pending_tool_call(self) -> ToolCall | None:
        return self._pending

    def append(self, message: Message) -> None:
        if self._pending is not None:
            raise OrchestrationError(
                f"Cannot append a message while tool call {self._pending.name} is pending"
            )
        self._messages.append(message)

    def begin_tool_call(self, call: ToolCall, text: str | None = None) -> None:
        """Record the model turn that asked for *call*."""
        if self._pending is not None:
            raise OrchestrationError(
                f"Tool call {self._pending.name} is still pending; cannot start {call.name}"
            )
        self._messages.append(Message(role="model", content=text or "", tool_call=call))
        self._pending = call

    def complete_tool_call(self, result: ToolResult) -> None:
        """Record the tool's response and close the open cycle."""
        call = self._pending
        if call is None:
            raise OrchestrationError(f"No pending tool call for result {result.name}")
        if result.name != call.name:
            raise OrchestrationError(
                f"Tool result {result.name} does not answer pending call {call.name}"
            )
        if result.tool_call_id != call.id:
            result = result.model_copy(update={"tool_call_id": call.id})
        self._messages.append(Message(role="user", tool_result=result))
        self._pending = None

    def last_user_message(self) -> Message | None:
        """The most recent plain user turn (tool results excluded)."""
        for msg in reversed(self._messages):
            if msg.role == "user" and not msg.is_tool_turn:
                return msg
        return None

    def first_user_message(self) -> Message | None:
        for msg in self._messages:
            if msg.role == "user" and not msg.is_tool_turn:
                return msg
        return None

    def for_model(self) -> list[Message]:
        """
        The history to send. It must not end with a model turn and must not
        have an unanswered tool call.
        """
        if self._pending is not None:
            raise OrchestrationError(f"Tool call {self._pending.name} has no result yet")
        if not self._messages or self._messages[-1].role == "model":
            raise MissingPromptError("Conversation has no trailing prompt to respond to")
        return list(self._messages)
