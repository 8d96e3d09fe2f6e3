"""Error types and formatting utilities for consistent error messages.

This module holds the exception taxonomy shared by the orchestration engine
and the helpers used to format user-facing messages.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Field errors use structured format: '<entity> field '<field>' <issue>'
- Use present tense: 'must be', 'is required'
- Avoid emojis in error messages (keep in progress displays only)
- Include actionable hints where helpful
- Be concise but informative

Per-task execution failures are not exceptions: they are captured as a
``Reason`` on the task's final state in the run report.
"""

from enum import Enum


class GalateaError(Exception):
    """Base class for every error raised by galatea."""


class ConfigError(GalateaError):
    """Raised when configuration or definition file loading fails."""


class NotFoundError(GalateaError):
    """Raised by lookups that miss (definitions, ledger records)."""


class DefinitionErrorKind(Enum):
    DUPLICATE_NAME = "duplicate_name"
    UNKNOWN_DEPENDENCY = "unknown_dependency"
    SELF_CYCLE = "self_cycle"


class DefinitionError(GalateaError):
    """A single task or stack definition was rejected by the store."""

    def __init__(self, kind: DefinitionErrorKind, name: str, detail: str = ""):
        self.kind = kind
        self.name = name
        self.detail = detail
        message = f"{kind.value}: '{name}'"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class ResolutionErrorKind(Enum):
    CYCLE = "cycle"
    UNKNOWN_TARGET = "unknown_target"


class ResolutionError(GalateaError):
    """Planning failed; fatal to the plan/execute call only."""

    def __init__(self, kind: ResolutionErrorKind, names: list[str]):
        self.kind = kind
        self.names = list(names)
        if kind == ResolutionErrorKind.CYCLE:
            message = "dependency cycle: " + " -> ".join(self.names)
        else:
            message = "unknown target(s): " + ", ".join(self.names)
        super().__init__(message)

    @property
    def path(self) -> list[str]:
        return self.names


class FetchError(GalateaError):
    """A source locator could not be turned into local content."""


class LedgerErrorKind(Enum):
    WRITE_FAILED = "write_failed"
    CORRUPT = "corrupt"
    LOCKED = "locked"


class LedgerError(GalateaError):
    """The installation ledger cannot be trusted; fatal to the whole run."""

    def __init__(self, kind: LedgerErrorKind, detail: str):
        self.kind = kind
        self.detail = detail
        super().__init__(f"ledger {kind.value}: {detail}")


class StateTransitionError(GalateaError):
    """An executor bug tried to move a task through an illegal transition."""


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Args:
        message: The error message to format

    Returns:
        Formatted error message with 'Error: ' prefix

    Examples:
        >>> format_error("file not found")
        'Error: file not found'

        >>> format_error("task 'foo' not found")
        "Error: task 'foo' not found"
    """
    return f"Error: {message}"


def format_field_error(entity: str, field: str, issue: str) -> str:
    """Format a field validation error with structured format.

    Args:
        entity: Name of the entity being validated (e.g., "Task 'nginx'")
        field: Name of the field that failed validation
        issue: Description of the issue (e.g., "must be a non-empty string")

    Returns:
        Formatted field error message

    Examples:
        >>> format_field_error("Task 'nginx'", "url", "must be a non-empty string")
        "Task 'nginx' field 'url' must be a non-empty string"

        >>> format_field_error("Stack 'web'", "tasks", "is required")
        "Stack 'web' field 'tasks' is required"
    """
    return f"{entity} field '{field}' {issue}"


def format_suggestion(message: str, suggestion: str) -> str:
    """Format an error message with a helpful suggestion.

    Args:
        message: The error message
        suggestion: Helpful suggestion or hint for the user

    Returns:
        Formatted error with suggestion

    Examples:
        >>> format_suggestion("task 'foo' not found", "run 'galatea list' to see available tasks")
        "Error: task 'foo' not found. Hint: run 'galatea list' to see available tasks"
    """
    return f"{format_error(message)}. Hint: {suggestion}"


__all__ = [
    "GalateaError",
    "ConfigError",
    "NotFoundError",
    "DefinitionErrorKind",
    "DefinitionError",
    "ResolutionErrorKind",
    "ResolutionError",
    "FetchError",
    "LedgerErrorKind",
    "LedgerError",
    "StateTransitionError",
    "format_error",
    "format_field_error",
    "format_suggestion",
]
