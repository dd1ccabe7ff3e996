import json
import logging
from typing import Any, Dict, Iterator, Optional

from ..errors import InvalidAIResponseError
from ..prompts import ANALYSIS_KEYS

logger = logging.getLogger(__name__)


def _balanced_object_spans(text: str) -> Iterator[str]:
    """
    Liefert jeden Abschnitt, der mit "{" beginnt und an der passenden "}" endet.
    Klammern innerhalb von JSON-Strings (inklusive Escapes) werden übersprungen.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = None
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    end = index
                    break
        if end is not None:
            yield text[start:end + 1]
        start = text.find("{", start + 1)


def extract_json_object(raw_text: Optional[str]) -> Dict[str, Any]:
    """
    Extrahiert ein JSON-Objekt aus einem beliebigen Text, auch wenn das Modell es in Prosa einbettet.
    """
    if not raw_text or not isinstance(raw_text, str):
        raise InvalidAIResponseError(detail="Leere Antwort des Modells")

    cleaned = raw_text.strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    for candidate in _balanced_object_spans(cleaned):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.warning("JSON-Extraktion fehlgeschlagen: %s...", cleaned[:100])
    raise InvalidAIResponseError(detail="Kein JSON-Objekt in der Antwort gefunden")


def normalize_analysis(result: Dict[str, Any]) -> Dict[str, Any]:
    for key in ANALYSIS_KEYS:
        result.setdefault(key, "")
    return result


def normalize_comparison(result: Dict[str, Any]) -> Dict[str, Any]:
    # Aufnahmedaten der Fotos sind nicht bekannt
    result["daysApart"] = 0
    result.setdefault("overallSummary", "")
    result.setdefault("focusAreas", [])
    result.setdefault("muscles", [])
    result.setdefault("recommendations", [])
    return result
