"""
ProjectStore — CRUD for projects and their tasks.

Projects are backlog entries (title + free-form body); each owns an ordered
list of tasks with a kanban-style status ("To Do", "In Progress", "Done").
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ..exceptions import StorageError
from ..models import Project, Task
from .database import DatabaseManager

logger = logging.getLogger(__name__)

DEFAULT_TASK_STATUS = "To Do"

# Columns a caller may change through update_task()
_UPDATABLE_TASK_FIELDS = {"title", "body", "status", "duration", "min_chunk", "location"}

_INSERT_TASK = """
INSERT INTO tasks (id, project_id, title, body, status, duration, min_chunk, location)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""


def _task_params(task: Task) -> tuple:
    return (
        task.id, task.project_id, task.title, task.body, task.status,
        task.duration, task.min_chunk, task.location,
    )


def _row_to_task(row) -> Task:
    return Task(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        body=row["body"] or "",
        status=row["status"],
        duration=row["duration"],
        min_chunk=row["min_chunk"],
        location=row["location"],
    )


class ProjectStore:
    """Persistent store for projects and tasks."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_all_projects(self) -> list[Project]:
        """Return every project with its tasks embedded, oldest first."""
        async with self._db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT id, title, body FROM projects ORDER BY created_at, rowid"
            )
            project_rows = await cursor.fetchall()
            cursor = await conn.execute(
                "SELECT * FROM tasks ORDER BY created_at, rowid"
            )
            task_rows = await cursor.fetchall()

        tasks_by_project: dict[str, list[Task]] = {}
        for row in task_rows:
            tasks_by_project.setdefault(row["project_id"], []).append(_row_to_task(row))

        return [
            Project(
                id=row["id"],
                title=row["title"],
                body=row["body"] or "",
                tasks=tasks_by_project.get(row["id"], []),
            )
            for row in project_rows
        ]

    async def create_project(self, title: str, body: str | None = None) -> Project:
        """Create a project. Returns it with an empty task list."""
        project_id = str(uuid.uuid4())
        async with self._db.get_connection() as conn:
            await conn.execute(
                "INSERT INTO projects (id, title, body) VALUES (?, ?, ?)",
                (project_id, title, body or ""),
            )
            await conn.commit()
        logger.info("Created project %s (%s)", project_id, title)
        return Project(id=project_id, title=title, body=body or "")

    async def create_project_with_tasks(
        self,
        title: str,
        body: str | None = None,
        tasks: Iterable[Mapping[str, Any]] = (),
    ) -> Project:
        """
        Create a project and its tasks in a single transaction.

        Each task mapping needs ``title`` and may carry ``body``, ``status``,
        ``duration``, ``min_chunk`` and ``location``. If any insert fails the
        whole write is rolled back and the error propagates.
        """
        project = Project(id=str(uuid.uuid4()), title=title, body=body or "")
        async with self._db.get_connection() as conn:
            try:
                await conn.execute(
                    "INSERT INTO projects (id, title, body) VALUES (?, ?, ?)",
                    (project.id, project.title, project.body),
                )
                for fields in tasks:
                    task = Task(
                        id=str(uuid.uuid4()),
                        project_id=project.id,
                        title=fields["title"],
                        body=fields.get("body") or "",
                        status=fields.get("status") or DEFAULT_TASK_STATUS,
                        duration=fields.get("duration"),
                        min_chunk=fields.get("min_chunk"),
                        location=fields.get("location"),
                    )
                    await conn.execute(_INSERT_TASK, _task_params(task))
                    project.tasks.append(task)
            except Exception:
                await conn.rollback()
                raise
            await conn.commit()
        logger.info("Created project %s (%s) with %d task(s)", project.id, title, len(project.tasks))
        return project

    async def add_task(
        self,
        project_id: str,
        title: str,
        body: str | None = None,
        status: str | None = None,
        duration: int | None = None,
        min_chunk: int | None = None,
        location: str | None = None,
    ) -> Task:
        """Add a task to an existing project."""
        task = Task(
            id=str(uuid.uuid4()),
            project_id=project_id,
            title=title,
            body=body or "",
            status=status or DEFAULT_TASK_STATUS,
            duration=duration,
            min_chunk=min_chunk,
            location=location,
        )
        async with self._db.get_connection() as conn:
            cursor = await conn.execute("SELECT 1 FROM projects WHERE id = ?", (project_id,))
            if await cursor.fetchone() is None:
                raise StorageError(f"Project not found: {project_id}")
            await conn.execute(_INSERT_TASK, _task_params(task))
            await conn.commit()
        return task

    async def update_task(self, task_id: str, partial: dict[str, Any]) -> Task:
        """
        Apply a partial update to a task and return the updated row.

        ``id`` and ``project_id`` are ignored; unknown keys are rejected.
        """
        changes = {k: v for k, v in partial.items() if k not in ("id", "project_id")}
        unknown = set(changes) - _UPDATABLE_TASK_FIELDS
        if unknown:
            raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")

        now = datetime.now(timezone.utc).isoformat()
        async with self._db.get_connection() as conn:
            if changes:
                assignments = ", ".join(f"{col} = ?" for col in changes)
                cursor = await conn.execute(
                    f"UPDATE tasks SET {assignments}, updated_at = ? WHERE id = ?",
                    (*changes.values(), now, task_id),
                )
                await conn.commit()
                if cursor.rowcount == 0:
                    raise StorageError(f"Task not found: {task_id}")
            cursor = await conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
            row = await cursor.fetchone()
        if row is None:
            raise StorageError(f"Task not found: {task_id}")
        return _row_to_task(row)

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task. Returns True if a row was removed."""
        async with self._db.get_connection() as conn:
            cursor = await conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            await conn.commit()
            return cursor.rowcount > 0

    async def as_context(self) -> str:
        """
        Render the backlog as plain text for priming a conversation.
        Returns an empty string when there are no projects.
        """
        projects = await self.get_all_projects()
        if not projects:
            return ""
        lines: list[str] = []
        for p in projects:
            lines.append(f"Project: {p.title} (id={p.id})")
            if p.body:
                lines.append(f"  {p.body}")
            for t in p.tasks:
                lines.append(f"  - [{t.status}] {t.title} (id={t.id})")
        return "\n".join(lines)
