"""
AssistantSession: the boundary the UI talks to.

One session owns one conversation. Turns are serialised with a lock so a new
user message cannot start while the previous turn is still in flight.
Sessions share nothing but their collaborators, so many can run at once.
"""

from __future__ import annotations

import asyncio
import logging

from ..ai.tools.registry import ToolRegistry
from ..ai.tools.schemas import ToolMode
from ..exceptions import CancelledError, PlanError, ServiceUnavailableError, StorageError
from ..models import CalendarSelectionRequest, ExecutionResult, ExtractionReport, Message, Plan
from .cancellation import CancellationToken
from .extraction import ExtractionPipeline
from .loop import AgentTurnLoop, UpdateCallback
from .plans import PlanExecutor
from .selection import SelectionResumer

logger = logging.getLogger(__name__)

AI_UNAVAILABLE_REPLY = "The AI is not available. Please check your API key in the settings."
TURN_FAILED_REPLY = "An error occurred while processing your request."


class AssistantSession:
    """run_turn / execute_plan / continue_after_selection for one conversation."""

    def __init__(
        self,
        client,
        *,
        calendar_client=None,
        project_store=None,
        mode: ToolMode | str = ToolMode.CALENDAR,
        system: str | None = None,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self._client = client
        self._project_store = project_store
        self._loop = AgentTurnLoop(
            client,
            ToolRegistry(calendar_client=calendar_client, project_store=project_store),
            mode=mode,
            system=system,
        )
        self._resumer = SelectionResumer(self._loop)
        self._executor = PlanExecutor(calendar_client=calendar_client, project_store=project_store)
        self._on_update = on_update
        self._lock = asyncio.Lock()
        self._cancel: CancellationToken | None = None

    @property
    def busy(self) -> bool:
        """True while a turn is in flight; the UI should disable input."""
        return self._lock.locked()

    def cancel(self) -> None:
        """Ask the in-flight turn to stop at its next suspend point."""
        if self._cancel is not None:
            self._cancel.cancel()

    async def run_turn(self, history: list[Message]) -> Message:
        """Answer the last user message in *history*. The reply may carry a Plan."""
        if not self._client.is_ready():
            return Message(role="model", content=AI_UNAVAILABLE_REPLY)
        async with self._lock:
            return await self._guarded(self._loop.run, history)

    async def continue_after_selection(
        self, history: list[Message], plan: CalendarSelectionRequest, selected_id: str
    ) -> Message:
        """Resume the turn that asked which calendar to use."""
        if not self._client.is_ready():
            return Message(role="model", content=AI_UNAVAILABLE_REPLY)
        async with self._lock:
            return await self._guarded(self._resumer.resume, history, plan, selected_id)

    async def execute_plan(self, plan: Plan) -> ExecutionResult:
        """Carry out a plan the user approved. Call once per approval."""
        async with self._lock:
            try:
                return await self._executor.execute(plan)
            except PlanError as exc:
                logger.warning("Plan rejected: %s", exc)
                return ExecutionResult(success=False, error=str(exc))

    async def extract_document(self, document: str, log=None) -> ExtractionReport:
        """Import projects from a pasted outline document."""
        if not self._client.is_ready():
            raise ServiceUnavailableError(AI_UNAVAILABLE_REPLY)
        if self._project_store is None:
            raise StorageError("Project store not available")
        pipeline = ExtractionPipeline(self._client, self._project_store, log=log)
        async with self._lock:
            self._cancel = CancellationToken()
            try:
                return await pipeline.run(document, cancel=self._cancel)
            finally:
                self._cancel = None

    async def _guarded(self, fn, *args) -> Message:
        self._cancel = CancellationToken()
        try:
            return await fn(*args, on_update=self._on_update, cancel=self._cancel)
        except CancelledError:
            raise
        except Exception as exc:
            logger.error("Turn failed: %s", exc, exc_info=True)
            return Message(role="model", content=TURN_FAILED_REPLY)
        finally:
            self._cancel = None
