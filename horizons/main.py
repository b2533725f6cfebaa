"""
horizons entry point.

    horizons chat [--mode calendar|projects]   interactive assistant
    horizons import FILE                       bulk-import projects from an outline
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .agent.session import AssistantSession
from .ai.claude_client import ClaudeClient
from .ai.tools.schemas import ToolMode
from .config import settings
from .exceptions import ExtractionError, ServiceUnavailableError
from .logging_config import setup_logging
from .memory.database import DatabaseManager
from .memory.projects import ProjectStore
from .models import CalendarSelectionRequest, Message, TurnUpdate

logger = logging.getLogger(__name__)


def _calendar_client():
    """CalendarClient if a Google token is present, else None."""
    from .google.auth import is_configured
    from .google.calendar import CalendarClient

    if not is_configured(settings.google_token_file):
        logger.warning("Google Calendar not configured; calendar tools disabled")
        return None
    return CalendarClient(settings.google_token_file, timezone=settings.calendar_timezone)


def _print_update(update: TurnUpdate) -> None:
    if update.status == "tool_call":
        print(f"  … {update.tool_name}", flush=True)


async def _prompt(text: str) -> str:
    return (await asyncio.to_thread(input, text)).strip()


async def chat(session: AssistantSession, project_store: ProjectStore, mode: ToolMode) -> None:
    history: list[Message] = []
    if mode == ToolMode.PROJECTS:
        backlog = await project_store.as_context()
        if backlog:
            history.append(Message(role="user", content=f"Here is the current project backlog:\n\n{backlog}"))
            history.append(Message(role="model", content="I have loaded the project backlog. How can I help you?"))

    print("Type 'exit' to end the conversation.")
    while True:
        try:
            text = await _prompt("You: ")
        except EOFError:
            return
        if text.lower() == "exit":
            return
        if not text:
            continue

        history.append(Message(role="user", content=text))
        reply = await session.run_turn(history)

        # Selection requests may chain; keep resuming until a real answer
        while isinstance(reply.plan, CalendarSelectionRequest):
            print(f"AI: {reply.content}")
            for cal in reply.plan.calendars:
                print(f"   [{cal.id}] {cal.summary}")
            choice = await _prompt("Calendar id: ")
            if not choice:
                break
            history.append(reply)
            reply = await session.continue_after_selection(history, reply.plan, choice)

        history.append(reply)
        plan = reply.plan
        if isinstance(plan, CalendarSelectionRequest):
            continue
        print(f"AI: {reply.content}")
        if plan is None:
            continue
        answer = await _prompt("Approve this plan? [y/N] ")
        if answer.lower() not in ("y", "yes"):
            history.append(Message(role="system", content="The user declined the proposed plan."))
            print("Plan discarded.")
            continue
        result = await session.execute_plan(plan)
        outcome = result.message if result.success else result.error
        print(outcome)
        history.append(Message(role="system", content=f"Plan execution result: {outcome}"))


async def import_document(session: AssistantSession, path: Path) -> int:
    document = path.read_text(encoding="utf-8")
    try:
        report = await session.extract_document(document, log=print)
    except (ServiceUnavailableError, ExtractionError) as exc:
        logger.error("Import aborted: %s", exc)
        return 1
    return 1 if report.failed else 0


async def _main(args: argparse.Namespace) -> int:
    setup_logging(settings.log_level, settings.logs_dir, settings.log_json)

    db = DatabaseManager()
    await db.init()
    try:
        project_store = ProjectStore(db)
        mode = ToolMode(getattr(args, "mode", ToolMode.CALENDAR.value))
        session = AssistantSession(
            ClaudeClient(),
            calendar_client=_calendar_client(),
            project_store=project_store,
            mode=mode,
            on_update=_print_update,
        )
        if args.command == "import":
            return await import_document(session, Path(args.file))
        await chat(session, project_store, mode)
        return 0
    finally:
        await db.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="horizons", description="Calendar and project assistant")
    sub = parser.add_subparsers(dest="command", required=True)

    chat_p = sub.add_parser("chat", help="Chat with the assistant")
    chat_p.add_argument(
        "--mode",
        choices=[ToolMode.CALENDAR.value, ToolMode.PROJECTS.value],
        default=ToolMode.CALENDAR.value,
    )

    import_p = sub.add_parser("import", help="Import projects from an outline text file")
    import_p.add_argument("file")

    args = parser.parse_args(argv)
    if args.command == "import" and not Path(args.file).is_file():
        parser.error(f"file not found: {args.file}")
    try:
        return asyncio.run(_main(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
