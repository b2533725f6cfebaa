"""
Tool package for native Anthropic tool use (function calling).

The package is organised into domain-specific modules:
- schemas.py: Tool declarations per conversation mode (the tool catalog)
- args.py: Validating argument models for information tools
- registry.py: ToolRegistry class and dispatch logic
- calendar.py: Google Calendar executors
- projects.py: Project backlog executors

Re-exports:
    ToolRegistry: Dispatches information-tool calls
    ToolMode: Conversation modes with disjoint tool sets
    get_tools / is_plan_terminal: Catalog lookups
"""

from .registry import ToolRegistry
from .schemas import PLAN_TERMINAL_TOOLS, TOOL_SCHEMAS, ToolMode, get_tools, is_plan_terminal

__all__ = [
    "PLAN_TERMINAL_TOOLS",
    "TOOL_SCHEMAS",
    "ToolMode",
    "ToolRegistry",
    "get_tools",
    "is_plan_terminal",
]
