"""Cross-section checks and lookups over a normalized analysis."""

import re
import unicodedata
from typing import Any, Dict, List, Tuple

from .models import AnalysisResult

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize_theme_name(tema: Any) -> str:
    """Lower-case, strip accents and punctuation for topic comparison.

    Non-string values (numbers from a sloppy model reply) are compared by
    their string form; None counts as empty.
    """
    text = tema if isinstance(tema, str) else ("" if tema is None else str(tema))
    decomposed = unicodedata.normalize("NFD", text.lower())
    without_accents = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _NON_ALNUM.sub("", without_accents).strip()


def _themes_overlap(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a in b or b in a


def validate_analyses_coverage(
    analises: List[Dict[str, Any]],
    sinteses_por_tema: List[Dict[str, Any]]
) -> Tuple[bool, List[str]]:
    """
    Check that every topic in the grouped statements has an analysis.

    Returns:
        Tuple of (is_complete, missing_topics)
    """
    titles = {normalize_theme_name(a.get("titulo", "")) for a in analises if isinstance(a, dict)}
    missing = [
        str(s.get("tema", ""))
        for s in sinteses_por_tema
        if isinstance(s, dict) and normalize_theme_name(s.get("tema", "")) not in titles
    ]
    return not missing, missing


def find_confissoes_for_tema(confissoes: List[Dict[str, Any]], tema: Any) -> List[Dict[str, Any]]:
    """Admissions whose topic matches (or contains) the given topic."""
    target = normalize_theme_name(tema)
    return [
        c for c in confissoes
        if isinstance(c, dict) and _themes_overlap(normalize_theme_name(c.get("tema", "")), target)
    ]


def find_contradicoes_for_tema(contradicoes: List[Dict[str, Any]], tema: Any) -> List[Dict[str, Any]]:
    """Contradictions tagged with the topic or mentioning it in the description."""
    target = normalize_theme_name(tema)
    matches = []
    for c in contradicoes:
        if not isinstance(c, dict):
            continue
        if _themes_overlap(normalize_theme_name(c.get("tema", "")), target):
            matches.append(c)
        elif target and target in normalize_theme_name(c.get("descricao", "")):
            matches.append(c)
    return matches


def check_consistency(result: AnalysisResult) -> Tuple[bool, List[str]]:
    """
    Look for gaps between sections of a normalized analysis.

    Checks:
    - Every topic in sinteses_por_tema has an analysis
    - Every analysis has a probatory conclusion
    - Every analysis cites at least one deponent in provaOral

    Returns:
        Tuple of (is_consistent, warnings)
    """
    warnings = []

    is_complete, missing = validate_analyses_coverage(result.analises, result.sinteses_por_tema)
    if not is_complete:
        warnings.append(f"Topics without analysis: {', '.join(missing)}")

    for analise in result.analises:
        if not isinstance(analise, dict):
            continue
        titulo = analise.get("titulo") or analise.get("tema") or "(untitled)"
        if not str(analise.get("conclusao") or "").strip():
            warnings.append(f"Analysis '{titulo}' has no conclusion")
        if not analise.get("provaOral"):
            warnings.append(f"Analysis '{titulo}' cites no oral evidence")

    return not warnings, warnings
