"""
Batch document extraction: turn a pasted outline into projects and tasks.

Two passes, both through the extraction-mode turn loop with a forced tool:

  1. save_project_titles  — enumerate the project sections in the document.
     Titles already in the store (exact, case-sensitive match) are skipped.
  2. save_project_details — once per remaining title, up to N attempts with no
     backoff. A successful extraction is persisted immediately.

One title failing never stops the others. An unavailable model stops the whole
import, since every remaining attempt would fail the same way.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from pydantic import BaseModel, Field

from ..ai.tools.registry import ToolRegistry
from ..ai.tools.schemas import ToolMode
from ..config import settings
from ..exceptions import CancelledError, ExtractionError, ServiceUnavailableError
from ..models import ExtractionReport, Message
from .cancellation import CancellationToken, check
from .conversation import ConversationState
from .loop import AgentTurnLoop

logger = logging.getLogger(__name__)

TITLES_TOOL = "save_project_titles"
DETAILS_TOOL = "save_project_details"

_TITLES_PROMPT = """\
The document below is an outline of projects. Top-level lines (no indentation)
start a new project. Call {tool} with the title of every project, in order.

---
{document}
---"""

_DETAILS_PROMPT = """\
From the document below, extract the project titled "{title}".
Indented lines under it are its notes and actionable items. Put notes in the
body and actionable items in tasks (status "To Do" unless the outline says
otherwise). Call {tool} with title exactly "{title}".

---
{document}
---"""


class ProjectTitles(BaseModel):
    titles: list[str]


class ExtractedTask(BaseModel):
    title: str = Field(min_length=1)
    body: Optional[str] = None
    status: Optional[str] = None


class ProjectDetails(BaseModel):
    title: str
    body: Optional[str] = None
    tasks: list[ExtractedTask] = Field(default_factory=list)


class ExtractionPipeline:
    """Non-interactive specialisation of the turn loop for bulk import."""

    def __init__(
        self,
        client,
        project_store,
        *,
        max_attempts: int | None = None,
        attempt_timeout: float | None = None,
        log: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._store = project_store
        self._loop = AgentTurnLoop(client, ToolRegistry(), mode=ToolMode.EXTRACTION)
        self._max_attempts = max_attempts or settings.extraction_max_attempts
        self._attempt_timeout = (
            settings.extraction_attempt_timeout if attempt_timeout is None else attempt_timeout
        )
        self._log_cb = log

    def _log(self, level: int, msg: str, *args, **kwargs) -> None:
        logger.log(level, msg, *args, **kwargs)
        if self._log_cb is not None:
            self._log_cb(msg % args if args else msg)

    async def run(self, document: str, *, cancel: CancellationToken | None = None) -> ExtractionReport:
        """Extract and persist every new project in *document*."""
        if not self._client.is_ready():
            raise ServiceUnavailableError("Anthropic API key not configured")
        report = ExtractionReport()
        if not document.strip():
            self._log(logging.INFO, "Document is empty; nothing to import")
            return report

        titles = await self._enumerate_titles(document, cancel)
        existing = {p.title for p in await self._store.get_all_projects()}
        self._log(logging.INFO, "Identified %d project(s) in document", len(titles))

        pending: list[str] = []
        for title in titles:
            if title in existing:
                self._log(logging.INFO, "Skipping existing project: %s", title)
                report.skipped.append(title)
            else:
                pending.append(title)

        for index, title in enumerate(pending, start=1):
            check(cancel)
            self._log(logging.INFO, "[%d/%d] Processing project: %s", index, len(pending), title)
            details = await self._extract_details(document, title, cancel)
            if details is None:
                self._log(
                    logging.ERROR,
                    "Failed to extract project %s after %d attempts",
                    title, self._max_attempts,
                )
                report.failed.append(title)
                continue
            try:
                await self._persist(title, details)
            except Exception as exc:
                self._log(
                    logging.ERROR, "Failed to save project %s: %s", title, exc,
                    exc_info=True, extra={"project": title},
                )
                report.failed.append(title)
                continue
            self._log(
                logging.INFO,
                "Saved project %s with %d task(s)", title, len(details.tasks),
            )
            report.created.append(title)

        self._log(
            logging.INFO,
            "Import finished: %d created, %d skipped, %d failed",
            len(report.created), len(report.skipped), len(report.failed),
        )
        return report

    async def _enumerate_titles(self, document: str, cancel) -> list[str]:
        prompt = _TITLES_PROMPT.format(tool=TITLES_TOOL, document=document)
        for attempt in range(1, self._max_attempts + 1):
            try:
                args = await self._attempt(prompt, TITLES_TOOL, cancel)
                titles = ProjectTitles.model_validate(args).titles
            except (CancelledError, ServiceUnavailableError):
                raise
            except Exception as exc:
                logger.warning(
                    "Title enumeration attempt %d/%d failed: %s",
                    attempt, self._max_attempts, exc,
                )
                continue
            # Order-preserving de-duplication of trimmed, non-empty titles
            return list(dict.fromkeys(t.strip() for t in titles if t.strip()))
        raise ExtractionError(
            f"Could not enumerate project titles after {self._max_attempts} attempts"
        )

    async def _extract_details(self, document: str, title: str, cancel) -> ProjectDetails | None:
        prompt = _DETAILS_PROMPT.format(tool=DETAILS_TOOL, title=title, document=document)
        for attempt in range(1, self._max_attempts + 1):
            try:
                args = await self._attempt(prompt, DETAILS_TOOL, cancel)
                return ProjectDetails.model_validate(args)
            except (CancelledError, ServiceUnavailableError):
                raise
            except Exception as exc:
                self._log(
                    logging.WARNING,
                    "Attempt %d/%d for project %s failed: %s",
                    attempt, self._max_attempts, title, exc,
                )
        return None

    async def _attempt(self, prompt: str, tool_name: str, cancel) -> dict:
        """One forced tool call. Returns the tool's arguments."""
        check(cancel)
        state = ConversationState([Message(role="user", content=prompt)])
        drive = self._loop.drive(
            state, tool_choice={"type": "tool", "name": tool_name}, cancel=cancel,
        )
        if self._attempt_timeout:
            reply = await asyncio.wait_for(drive, timeout=self._attempt_timeout)
        else:
            reply = await drive
        if reply.tool_call is None or reply.tool_call.name != tool_name:
            got = reply.tool_call.name if reply.tool_call else "text"
            raise ExtractionError(f"Expected {tool_name}, model answered with {got}")
        return reply.tool_call.args

    async def _persist(self, title: str, details: ProjectDetails) -> None:
        # Project and tasks commit together, under the enumerated title
        await self._store.create_project_with_tasks(
            title,
            details.body,
            [task.model_dump() for task in details.tasks],
        )
