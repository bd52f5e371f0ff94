"""Error hierarchy for the context engine.

Every component raises one of these so callers can handle failures
without knowing which step produced them.
"""

from typing import Any


class TouchpointError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class MalformedInput(TouchpointError):
    """Raised when an input is missing required fields.

    Examples:
        - Business event without event_type or user_id
        - Conversation metadata without user_id
        - Conversation with no timestamp to anchor its facts

    Always raised before any store mutation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.field = field


class StoreError(TouchpointError):
    """Base exception for fact store errors."""

    def __init__(
        self,
        message: str,
        scope_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.scope_id = scope_id


class StoreInvariantViolation(StoreError):
    """Raised when a scope would hold more than one active fact of a type.

    This indicates a supersession bug. It is fatal for the running
    pipeline: nothing is committed and the run moves to the error phase.
    """

    def __init__(
        self,
        message: str,
        scope_id: str | None = None,
        fact_type: str | None = None,
        active_count: int = 0,
    ) -> None:
        super().__init__(message, scope_id)
        self.fact_type = fact_type
        self.active_count = active_count


class FactConflictError(StoreError):
    """Raised when a fact id is inserted twice into the same scope."""

    pass


class UpstreamUnavailable(TouchpointError):
    """Raised when the live backend cannot be reached or answers badly.

    Recoverable: no local state is touched. Retries belong to the caller.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: Any = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.status_code = status_code
        self.details = details


class InvalidPhaseTransition(TouchpointError):
    """Raised when the pipeline tracker is asked to move backwards."""

    pass
