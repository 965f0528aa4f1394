"""
Data models for oral-evidence analysis.

The result keys mirror the JSON the model is asked to produce (Portuguese,
camelCase); Python attributes use snake_case.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# JSON key -> attribute name, in the order they appear in the result
RESULT_LIST_FIELDS = {
    "depoentes": "depoentes",
    "sinteses": "sinteses",
    "sintesesCondensadas": "sinteses_condensadas",
    "sintesesPorTema": "sinteses_por_tema",
    "analises": "analises",
    "contradicoes": "contradicoes",
    "confissoes": "confissoes",
    "credibilidade": "credibilidade",
}


@dataclass
class AnalysisResult:
    """
    Normalized oral-evidence analysis.

    Every list field is always a list, even when the model omitted it.

    Attributes:
        processo: Case metadata (number, parties, court)
        depoentes: Deponents with id, name and qualification
        sinteses: Per-deponent timestamped statements
        sinteses_condensadas: Per-deponent condensed narrative
        sinteses_por_tema: Statements grouped by topic
        analises: Per-topic legal analysis (positions, oral evidence, conclusion)
        contradicoes: Internal/external contradictions with severity
        confissoes: Admissions by party, with severity
        credibilidade: Credibility score and criteria per deponent
    """
    processo: Dict[str, Any] = field(default_factory=dict)
    depoentes: List[Any] = field(default_factory=list)
    sinteses: List[Any] = field(default_factory=list)
    sinteses_condensadas: List[Any] = field(default_factory=list)
    sinteses_por_tema: List[Any] = field(default_factory=list)
    analises: List[Any] = field(default_factory=list)
    contradicoes: List[Any] = field(default_factory=list)
    confissoes: List[Any] = field(default_factory=list)
    credibilidade: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase JSON shape consumed by the UI layer"""
        data: Dict[str, Any] = {"processo": self.processo}
        for key, attr in RESULT_LIST_FIELDS.items():
            data[key] = getattr(self, attr)
        return data

    def section_counts(self) -> Dict[str, int]:
        """Number of entries per list section"""
        return {key: len(getattr(self, attr)) for key, attr in RESULT_LIST_FIELDS.items()}


class AnalysisState(Enum):
    """Lifecycle of a single analysis run."""
    IDLE = "idle"
    PREPARING = "preparing"
    SENT = "sent"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisState.DONE, AnalysisState.ERROR)


ALLOWED_TRANSITIONS = {
    AnalysisState.IDLE: {AnalysisState.PREPARING},
    AnalysisState.PREPARING: {AnalysisState.SENT, AnalysisState.ERROR},
    AnalysisState.SENT: {AnalysisState.PROCESSING, AnalysisState.ERROR},
    AnalysisState.PROCESSING: {AnalysisState.DONE, AnalysisState.ERROR},
    AnalysisState.DONE: {AnalysisState.PREPARING},
    AnalysisState.ERROR: {AnalysisState.PREPARING},
}


class AnalysisError(Exception):
    """Base exception for analysis pipeline failures."""
    pass


class ValidationError(AnalysisError):
    """Raised when the analysis input is rejected before any network call."""
    pass


class GenerationError(AnalysisError):
    """Raised when the provider gateway failed to produce a response."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedOutputError(AnalysisError):
    """Raised when the model response cannot be parsed as JSON.

    Keeps the raw response and the extracted candidate for diagnostics.
    """
    def __init__(self, message: str, raw_response: str, extracted: str):
        super().__init__(message)
        self.raw_response = raw_response
        self.extracted = extracted
