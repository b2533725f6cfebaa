"""Project backlog tool executors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .args import GetProjectsArgs

if TYPE_CHECKING:
    from .registry import ToolRegistry


async def exec_get_projects(registry: ToolRegistry, args: GetProjectsArgs) -> dict:
    """Return projects and their tasks as plain dicts."""
    if registry._project_store is None:
        return {"error": "Project store not available."}
    projects = await registry._project_store.get_all_projects()
    if args.title_contains:
        needle = args.title_contains.lower()
        projects = [p for p in projects if needle in p.title.lower()]
    return {
        "projects": [
            {
                "id": p.id,
                "title": p.title,
                "body": p.body,
                "tasks": [
                    {"id": t.id, "title": t.title, "status": t.status}
                    for t in p.tasks
                ],
            }
            for p in projects
        ]
    }
