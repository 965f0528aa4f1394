"""JSON extraction and normalization of model responses."""

import json
import logging
import re
from typing import Any, Dict, List

from .models import RESULT_LIST_FIELDS, AnalysisResult, MalformedOutputError

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE_ANY = re.compile(r"```\s*")

QUALIFICATION_LABELS = {
    "autor": "AUTOR",
    "preposto": "PREPOSTO",
    "testemunha-autor": "TESTEMUNHA DO AUTOR",
    "testemunha-re": "TESTEMUNHA DA RÉ",
}
DEFAULT_QUALIFICATION_LABEL = "DEPOENTE"


def extract_json(text: str) -> str:
    """
    Extract a JSON object from text that may contain markdown or prose.

    Strips code fences, then keeps everything between the first ``{`` and
    the last ``}``. Without such a pair the cleaned text is returned as is.

    Args:
        text: Raw model response

    Returns:
        Candidate JSON string
    """
    cleaned = _FENCE_ANY.sub("", _FENCE_OPEN.sub("", text))

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        cleaned = cleaned[start:end + 1]

    return cleaned.strip()


def parse_response(raw_response: str) -> Any:
    """
    Extract and parse the JSON payload of a model response.

    Raises:
        MalformedOutputError: If the extracted text is not valid JSON
    """
    extracted = extract_json(raw_response)
    try:
        return json.loads(extracted)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse model response as JSON: {e}")
        logger.debug(f"Raw response: {raw_response!r}")
        logger.debug(f"Extracted JSON candidate: {extracted!r}")
        raise MalformedOutputError(
            f"Could not parse the analysis returned by the model: {e}",
            raw_response=raw_response,
            extracted=extracted
        ) from e


def build_condensed_narratives(sinteses: List[Any], depoentes: List[Any]) -> List[Dict[str, str]]:
    """
    Build one running-text narrative per deponent from detailed statements.

    Each narrative joins ``texto (timestamp)`` pairs with ``; `` and labels
    the deponent by qualification plus upper-cased name. Fields of the wrong
    type are treated as missing.
    """
    by_id = {
        d["id"]: d for d in depoentes
        if isinstance(d, dict) and isinstance(d.get("id"), str)
    }
    narratives = []

    for sintese in sinteses:
        if not isinstance(sintese, dict):
            continue
        deponent_id = sintese.get("deponenteId")
        deponent = by_id.get(deponent_id, {}) if isinstance(deponent_id, str) else {}
        qualificacao = deponent.get("qualificacao")
        if not isinstance(qualificacao, str) or not qualificacao:
            qualificacao = "desconhecido"
        label = QUALIFICATION_LABELS.get(qualificacao, DEFAULT_QUALIFICATION_LABEL)
        nome = deponent.get("nome")

        conteudo = sintese.get("conteudo")
        statements = [
            f"{item.get('texto', '')} ({item.get('timestamp', '')})"
            for item in (conteudo if isinstance(conteudo, list) else [])
            if isinstance(item, dict)
        ]

        narratives.append({
            "deponente": f"{label} {nome.upper()}" if isinstance(nome, str) and nome else label,
            "qualificacao": qualificacao,
            "textoCorrente": "; ".join(statements)
        })

    return narratives


def normalize_result(data: Any) -> AnalysisResult:
    """
    Coerce parsed model output into the fixed result schema.

    Every list section becomes a list (``[]`` when missing or of the wrong
    type) and ``processo`` is kept when it is an object, ``{}`` otherwise.
    Condensed narratives are rebuilt from the detailed statements when the
    model left them out.

    Args:
        data: Parsed JSON (any type)

    Returns:
        Schema-complete AnalysisResult
    """
    source = data if isinstance(data, dict) else {}

    sections = {}
    for key, attr in RESULT_LIST_FIELDS.items():
        value = source.get(key)
        sections[attr] = value if isinstance(value, list) else []

    if not sections["sinteses_condensadas"] and sections["sinteses"]:
        sections["sinteses_condensadas"] = build_condensed_narratives(
            sections["sinteses"], sections["depoentes"]
        )

    processo = source.get("processo")
    return AnalysisResult(
        processo=processo if isinstance(processo, dict) else {},
        **sections
    )
