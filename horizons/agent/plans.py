"""
Two-phase mutation protocol.

Phase one happens inside the turn loop: a plan-terminal tool call is turned
into a Plan by build_plan() and handed back to the caller unexecuted.
Phase two is PlanExecutor.execute(), called later and separately once a human
has approved the plan.

execute() is not idempotent. Running a ``create`` plan twice creates the
events twice; the caller must only invoke it once per approval.
"""

from __future__ import annotations

import logging

from pydantic import TypeAdapter, ValidationError

from ..exceptions import MalformedPlanError, PlanError, UnrecognizedToolError
from ..models import (
    CalendarActionPlan,
    CalendarSelectionRequest,
    EventProposal,
    ExecutionResult,
    Plan,
    ProjectActionPlan,
    TaskProposal,
    ToolCall,
)

logger = logging.getLogger(__name__)

# Plan-terminal tool name → plan ``type`` tag
PLAN_TYPES = {
    "propose_calendar_action_plan": "calendar_plan",
    "request_calendar_selection": "calendar_selection_request",
    "propose_project_action_plan": "project_plan",
}

_plan_adapter: TypeAdapter[Plan] = TypeAdapter(Plan)

_PAST_TENSE = {
    "create": "created",
    "delete": "deleted",
    "update": "updated",
    "add_task": "added",
    "update_task": "updated",
}


def build_plan(call: ToolCall, original_prompt: str) -> Plan:
    """
    Build the Plan for an intercepted plan-terminal call.

    ``original_prompt`` is stamped onto the plan; anything the model put in
    that field is overwritten.
    """
    plan_type = PLAN_TYPES.get(call.name)
    if plan_type is None:
        raise UnrecognizedToolError(call.name)
    payload = {
        **call.args,
        "type": plan_type,
        "originalPrompt": original_prompt,
    }
    payload.pop("original_prompt", None)
    try:
        return _plan_adapter.validate_python(payload)
    except ValidationError as exc:
        raise MalformedPlanError(f"Invalid arguments for {call.name}: {exc}") from exc


def _aggregate(verb: str, noun: str, total: int, errors: list[str]) -> ExecutionResult:
    succeeded = total - len(errors)
    if not errors:
        return ExecutionResult(
            success=True,
            message=f"Successfully {verb} {succeeded} {noun}(s).",
            succeeded=succeeded,
        )
    return ExecutionResult(
        success=False,
        error=(
            f"{verb.capitalize()} {succeeded} of {total} {noun}(s); "
            f"{len(errors)} failed: {'; '.join(errors)}"
        ),
        succeeded=succeeded,
        failed=len(errors),
    )


class PlanExecutor:
    """Performs an approved plan against the calendar and project collaborators."""

    def __init__(self, *, calendar_client=None, project_store=None) -> None:
        self._calendar = calendar_client
        self._project_store = project_store

    async def execute(self, plan: Plan) -> ExecutionResult:
        """
        Apply *plan*. Every item is attempted even if an earlier one fails;
        partial failure is reported as overall failure, nothing is rolled back.
        """
        if isinstance(plan, CalendarActionPlan):
            return await self._execute_calendar(plan)
        if isinstance(plan, ProjectActionPlan):
            return await self._execute_project(plan)
        if isinstance(plan, CalendarSelectionRequest):
            raise PlanError("A calendar selection request is resumed with a choice, not executed")
        raise PlanError(f"Unsupported plan: {type(plan).__name__}")

    async def _execute_calendar(self, plan: CalendarActionPlan) -> ExecutionResult:
        if self._calendar is None:
            raise PlanError("Google Calendar not configured")

        verb = _PAST_TENSE[plan.action]
        errors: list[str] = []
        for index, event in enumerate(plan.events, start=1):
            try:
                await self._apply_event(plan.action, event, plan.target_calendar_id)
            except Exception as exc:
                logger.warning(
                    "Calendar %s failed for event %d (%s): %s",
                    plan.action, index, event.summary, exc,
                )
                errors.append(f"{event.summary}: {exc}")

        result = _aggregate(verb, "event", len(plan.events), errors)
        logger.info(
            "Executed calendar plan action=%s calendar=%s succeeded=%d failed=%d",
            plan.action, plan.target_calendar_id, result.succeeded, result.failed,
        )
        return result

    async def _apply_event(self, action: str, event: EventProposal, calendar_id: str) -> None:
        if action == "create":
            await self._calendar.create_event(event, calendar_id)
            return
        if not event.event_id:
            raise ValueError(f"eventId is required to {action} an event")
        if action == "delete":
            await self._calendar.delete_event(event.event_id, calendar_id)
        else:
            await self._calendar.update_event(event.event_id, event, calendar_id)

    async def _execute_project(self, plan: ProjectActionPlan) -> ExecutionResult:
        if self._project_store is None:
            raise PlanError("Project store not available")

        verb = _PAST_TENSE[plan.action]
        errors: list[str] = []
        for task in plan.tasks:
            try:
                await self._apply_task(plan, task)
            except Exception as exc:
                logger.warning("Project %s failed for task %s: %s", plan.action, task.title, exc)
                errors.append(f"{task.title}: {exc}")

        result = _aggregate(verb, "task", len(plan.tasks), errors)
        logger.info(
            "Executed project plan action=%s succeeded=%d failed=%d",
            plan.action, result.succeeded, result.failed,
        )
        return result

    async def _apply_task(self, plan: ProjectActionPlan, task: TaskProposal) -> None:
        if plan.action == "add_task":
            if not plan.project_id:
                raise ValueError("projectId is required to add a task")
            await self._project_store.add_task(
                plan.project_id, task.title, body=task.body, status=task.status,
            )
            return
        if not task.task_id:
            raise ValueError("taskId is required to update a task")
        partial = task.model_dump(include={"title", "body", "status"}, exclude_none=True)
        await self._project_store.update_task(task.task_id, partial)
