"""Per-submission pipeline state machine."""

from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from touchpoint.errors import InvalidPhaseTransition


class PipelinePhase(str, Enum):
    """Phase of one submission run."""

    IDLE = "idle"
    INGESTING = "ingesting"  # Validate inputs, resolve scope
    EXTRACTING = "extracting"  # Candidate facts from inputs
    RESOLVING = "resolving"  # Commit facts, project state
    CONTEXT_BUILDING = "context_building"  # Graph and context text
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_PHASES = frozenset({PipelinePhase.COMPLETE, PipelinePhase.ERROR})

TRANSITIONS: dict[PipelinePhase, frozenset[PipelinePhase]] = {
    PipelinePhase.IDLE: frozenset({PipelinePhase.INGESTING}),
    PipelinePhase.INGESTING: frozenset({PipelinePhase.EXTRACTING, PipelinePhase.ERROR}),
    PipelinePhase.EXTRACTING: frozenset({PipelinePhase.RESOLVING, PipelinePhase.ERROR}),
    PipelinePhase.RESOLVING: frozenset({PipelinePhase.CONTEXT_BUILDING, PipelinePhase.ERROR}),
    PipelinePhase.CONTEXT_BUILDING: frozenset({PipelinePhase.COMPLETE, PipelinePhase.ERROR}),
    PipelinePhase.COMPLETE: frozenset({PipelinePhase.IDLE}),
    PipelinePhase.ERROR: frozenset({PipelinePhase.IDLE}),
}


class PhaseChange(BaseModel):
    """One recorded transition."""

    phase: PipelinePhase
    at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PipelineTracker:
    """Tracks the phase of a submission and enforces forward-only moves.

    A tracker can be shared with an observer (a UI, a test) that wants to
    follow the run. ``on_change`` is called after every transition.
    """

    def __init__(self, on_change: Callable[[PipelinePhase], None] | None = None):
        self._phase = PipelinePhase.IDLE
        self._history: list[PhaseChange] = [PhaseChange(phase=PipelinePhase.IDLE)]
        self._error: str | None = None
        self._on_change = on_change

    @property
    def phase(self) -> PipelinePhase:
        return self._phase

    @property
    def error(self) -> str | None:
        """Message of the error that ended the last run, if any."""
        return self._error

    @property
    def history(self) -> list[PipelinePhase]:
        return [change.phase for change in self._history]

    def can_advance(self, phase: PipelinePhase) -> bool:
        return phase in TRANSITIONS[self._phase]

    def advance(self, phase: PipelinePhase) -> None:
        """Move to the next phase.

        Raises:
            InvalidPhaseTransition: If the table does not allow the move
        """
        if not self.can_advance(phase):
            raise InvalidPhaseTransition(
                f"Cannot move from {self._phase.value} to {phase.value}"
            )
        self._phase = phase
        self._history.append(PhaseChange(phase=phase))
        if self._on_change is not None:
            self._on_change(phase)

    def begin(self) -> None:
        """Start a new submission, returning to idle after a finished run."""
        if self._phase in TERMINAL_PHASES:
            self.reset()
        self._error = None
        self.advance(PipelinePhase.INGESTING)

    def fail(self, error: Exception) -> None:
        """Move to the error phase from any running phase."""
        self._error = str(error)
        if self.can_advance(PipelinePhase.ERROR):
            self.advance(PipelinePhase.ERROR)

    def reset(self) -> None:
        """Return to idle after a finished run.

        Raises:
            InvalidPhaseTransition: If a run is still in progress
        """
        if self._phase == PipelinePhase.IDLE:
            return
        self.advance(PipelinePhase.IDLE)
