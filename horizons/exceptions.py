"""Custom exception hierarchy for horizons."""


class HorizonsError(Exception):
    """Base exception for horizons."""
    pass


class ServiceUnavailableError(HorizonsError):
    """Raised when an external service (e.g. Anthropic) is not configured or down."""
    pass


class StorageError(HorizonsError):
    """Raised when there's an issue with the SQLite project store."""
    pass


class CancelledError(HorizonsError):
    """Raised when an operation is explicitly cancelled by the caller."""
    pass


class OrchestrationError(HorizonsError):
    """
    A catalog/caller contract violation inside a turn.

    These abort the turn; they are never fed back to the model.
    """
    pass


class UnrecognizedToolError(OrchestrationError):
    """The model asked for a tool that the dispatcher does not know."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unrecognized function call: {tool_name}")


class MalformedPlanError(OrchestrationError):
    """A plan-terminal tool call carried arguments that do not form a valid plan."""
    pass


class MissingPromptError(OrchestrationError):
    """The history handed to a turn has no user message to respond to."""
    pass


class ToolLoopExceededError(OrchestrationError):
    """The model kept calling tools past the configured iteration limit."""

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(f"Tool loop exceeded {iterations} iterations")


class PlanError(HorizonsError):
    """Raised when a plan cannot be executed (wrong type, missing collaborator)."""
    pass


class ExtractionError(HorizonsError):
    """Raised when document extraction cannot enumerate any project titles."""
    pass
