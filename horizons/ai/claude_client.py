"""
Anthropic Claude API client for the tool-calling turn loop.
Includes exponential backoff on rate-limit and overload errors.

send_turn() is stateless: the caller hands over the whole conversation each
time and gets back either text or a single tool call.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import anthropic

from ..config import settings
from ..exceptions import ServiceUnavailableError
from ..models import Message, ModelReply, ToolCall

logger = logging.getLogger(__name__)

# Rate-limit retries use longer delays since the window resets every 60s
_RATE_LIMIT_RETRY_DELAYS = [30.0, 60.0]  # seconds between attempts 1→2 and 2→3


def _blocks_for(msg: Message) -> list[dict]:
    """Anthropic content blocks for one history message."""
    if msg.tool_result is not None:
        result = msg.tool_result
        block: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": result.tool_call_id,
            "content": json.dumps(result.response),
        }
        if result.is_error:
            block["is_error"] = True
        return [block]

    blocks: list[dict] = []
    if msg.content.strip():
        blocks.append({"type": "text", "text": msg.content})
    if msg.tool_call is not None:
        blocks.append({
            "type": "tool_use",
            "id": msg.tool_call.id,
            "name": msg.tool_call.name,
            "input": msg.tool_call.args,
        })
    return blocks


def to_anthropic_messages(history: list[Message]) -> list[dict]:
    """
    Convert horizons messages to the Anthropic messages format.

    ``system`` turns are sent as ``user`` turns; consecutive turns with the
    same role are merged; turns before the first user turn are dropped since
    the API requires the conversation to open with the user.
    """
    out: list[dict] = []
    for msg in history:
        role = "assistant" if msg.role == "model" else "user"
        blocks = _blocks_for(msg)
        if not blocks:
            continue
        if not out and role != "user":
            logger.debug("Dropping leading %s turn before first user turn", msg.role)
            continue
        if out and out[-1]["role"] == role:
            out[-1]["content"].extend(blocks)
        else:
            out.append({"role": role, "content": blocks})
    return out


def parse_reply(content: list[Any]) -> ModelReply:
    """
    Reduce a response's content blocks to text plus at most one tool call.

    Only the first tool_use block is honoured; any others are dropped so the
    recorded history keeps exactly one tool_use per tool_result.
    """
    texts: list[str] = []
    tool_call: ToolCall | None = None
    for block in content:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            texts.append(block.text)
        elif block_type == "tool_use":
            if tool_call is None:
                tool_call = ToolCall(id=block.id, name=block.name, args=dict(block.input or {}))
            else:
                logger.warning(
                    "Model emitted extra tool call %s in one response; only %s is processed",
                    block.name, tool_call.name,
                )
    text = "".join(texts) if texts else None
    return ModelReply(text=text, tool_call=tool_call)


class ClaudeClient:
    def __init__(self, api_key: str | None = None) -> None:
        key = api_key if api_key is not None else settings.anthropic_api_key
        self._client = anthropic.AsyncAnthropic(api_key=key) if key else None

    def is_ready(self) -> bool:
        """True when an API key is configured."""
        return self._client is not None

    async def send_turn(
        self,
        history: list[Message],
        tools: list[dict],
        system: str | None = None,
        tool_choice: dict | None = None,
        model: str | None = None,
    ) -> ModelReply:
        """
        Send the conversation and return the model's reply.

        Retries rate limits and 5xx overloads; other API errors propagate.
        """
        if self._client is None:
            raise ServiceUnavailableError("Anthropic API key not configured")

        max_retries = settings.claude_max_retries
        base_delay = settings.claude_retry_base_delay
        kwargs: dict[str, Any] = {
            "model": model or settings.model_complex,
            "max_tokens": settings.anthropic_max_tokens,
            "messages": to_anthropic_messages(history),
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = tools
            if tool_choice is not None:
                kwargs["tool_choice"] = tool_choice

        for attempt in range(max_retries):
            try:
                response = await self._client.messages.create(**kwargs)
                reply = parse_reply(response.content or [])
                logger.debug(
                    "send_turn stop_reason=%s tool=%s",
                    getattr(response, "stop_reason", None),
                    reply.tool_call.name if reply.tool_call else None,
                )
                return reply
            except anthropic.RateLimitError:
                if attempt >= max_retries - 1:
                    raise
                delay = _RATE_LIMIT_RETRY_DELAYS[min(attempt, len(_RATE_LIMIT_RETRY_DELAYS) - 1)]
                logger.warning(
                    "Rate limited (attempt %d/%d). Retrying in %.0fs",
                    attempt + 1, max_retries, delay,
                )
                await asyncio.sleep(delay)
            except anthropic.APIStatusError as e:
                if e.status_code < 500 or attempt >= max_retries - 1:
                    raise
                delay = base_delay * (2**attempt)
                logger.warning(
                    "Anthropic overload %d (attempt %d/%d). Retrying in %.1fs",
                    e.status_code, attempt + 1, max_retries, delay,
                )
                await asyncio.sleep(delay)

        raise ServiceUnavailableError("Anthropic request failed after retries")

