"""
Conversational orchestration.

- conversation.py: ConversationState (history + pending tool-call cycle)
- loop.py: AgentTurnLoop
- plans.py: build_plan() and PlanExecutor (two-phase mutations)
- selection.py: SelectionResumer (resume after a calendar choice)
- extraction.py: ExtractionPipeline (bulk project import)
- session.py: AssistantSession (caller boundary)
"""

from .cancellation import CancellationToken
from .conversation import ConversationState
from .extraction import ExtractionPipeline
from .loop import AgentTurnLoop
from .plans import PlanExecutor, build_plan
from .selection import SelectionResumer
from .session import AssistantSession

__all__ = [
    "AgentTurnLoop",
    "AssistantSession",
    "CancellationToken",
    "ConversationState",
    "ExtractionPipeline",
    "PlanExecutor",
    "SelectionResumer",
    "build_plan",
]
