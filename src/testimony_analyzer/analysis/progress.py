"""Progress tracking utilities.

The analysis makes a single blocking model call, so progress is not measured
from tokens. It advances through fixed checkpoints looked up in a static
table, which is a UX approximation of the work done.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional


@dataclass(frozen=True)
class AnalysisPhase:
    """A contiguous slice of the 0-100 progress range."""
    id: str
    progress_start: int
    progress_end: int

    def contains(self, progress: int) -> bool:
        return self.progress_start <= progress <= self.progress_end


@dataclass(frozen=True)
class ProgressMessage:
    phase: str
    progress: int
    message: str


ANALYSIS_PHASES: List[AnalysisPhase] = [
    AnalysisPhase("extraction", 0, 40),
    AnalysisPhase("classification", 40, 75),
    AnalysisPhase("evaluation", 75, 100),
]

PROGRESS_MESSAGES: List[ProgressMessage] = [
    ProgressMessage("extraction", 5, "Preparing analysis..."),
    ProgressMessage("extraction", 10, "Sending transcript to the model..."),
    ProgressMessage("extraction", 30, "Identifying deponents and statements..."),
    ProgressMessage("classification", 50, "Response received, extracting JSON..."),
    ProgressMessage("classification", 65, "Grouping statements by topic..."),
    ProgressMessage("evaluation", 85, "Normalizing legal analysis..."),
    ProgressMessage("evaluation", 100, "Done!"),
]

ProgressCallback = Callable[[int, str], None]


def get_phase(progress: int) -> AnalysisPhase:
    """
    Phase a progress value falls into.

    Boundaries belong to the earlier phase, so 40 is still extraction.

    Raises:
        ValueError: If progress is outside 0-100
    """
    for phase in ANALYSIS_PHASES:
        if phase.contains(progress):
            return phase
    raise ValueError(f"Progress out of range: {progress}")


def get_progress_message(progress: int) -> str:
    """Message of the last checkpoint at or below the given progress."""
    message = PROGRESS_MESSAGES[0].message
    for entry in PROGRESS_MESSAGES:
        if entry.progress > progress:
            break
        message = entry.message
    return message


class ProgressTracker:
    """Tracks progress for one analysis and forwards it to a callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        """Initialize progress tracker.

        Args:
            callback: Receives (percent, message) on every update
        """
        self.callback = callback
        self.current = 0
        self.message = ""

    def update(self, progress: int, message: Optional[str] = None) -> None:
        """Advance to a checkpoint.

        Args:
            progress: New progress value (0-100)
            message: Override for the table message

        Raises:
            ValueError: If progress would move backwards or leave 0-100
        """
        if not 0 <= progress <= 100:
            raise ValueError(f"Progress out of range: {progress}")
        if progress < self.current:
            raise ValueError(f"Progress cannot go backwards ({self.current} -> {progress})")

        self.current = progress
        self.message = message or get_progress_message(progress)
        if self.callback:
            self.callback(self.current, self.message)

    def finish(self) -> None:
        """Mark progress as finished."""
        self.update(100)

    @property
    def phase(self) -> AnalysisPhase:
        return get_phase(self.current)
