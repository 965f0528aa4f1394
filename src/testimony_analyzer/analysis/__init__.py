"""
Oral-evidence analysis module.

This module turns a hearing transcript into a validated, schema-complete
analysis using the provider gateway, reporting progress along the way.
"""

from .models import (
    AnalysisResult, AnalysisState, AnalysisError, ValidationError,
    GenerationError, MalformedOutputError
)
from .extraction import extract_json, parse_response, normalize_result, build_condensed_narratives
from .progress import (
    AnalysisPhase, ProgressMessage, ANALYSIS_PHASES, PROGRESS_MESSAGES,
    ProgressTracker, get_phase, get_progress_message
)
from .pipeline import OralEvidenceAnalyzer, AnalysisSession
from .schema import validate_result
from .helpers import check_consistency, validate_analyses_coverage

__all__ = [
    # Models
    "AnalysisResult", "AnalysisState",

    # Exceptions
    "AnalysisError", "ValidationError", "GenerationError", "MalformedOutputError",

    # Extraction
    "extract_json", "parse_response", "normalize_result", "build_condensed_narratives",

    # Progress
    "AnalysisPhase", "ProgressMessage", "ANALYSIS_PHASES", "PROGRESS_MESSAGES",
    "ProgressTracker", "get_phase", "get_progress_message",

    # Pipeline
    "OralEvidenceAnalyzer", "AnalysisSession",

    # Diagnostics
    "validate_result", "check_consistency", "validate_analyses_coverage"
]
