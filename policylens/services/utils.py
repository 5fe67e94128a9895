"""Utility functions for parsing extractor responses and text normalization."""
import json
import logging
import re

import json_repair

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_NON_ALNUM_SPACE_RE = re.compile(r"[^a-z0-9\s]")
_WS_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to a single space and trim."""
    if not text:
        return ""
    return _WS_RE.sub(" ", str(text)).strip()


def normalize_key(text: str) -> str:
    """Dedup key: lowercase, punctuation stripped, whitespace collapsed.

    Two texts with the same key are treated as the same item everywhere in the
    pipeline (Collected, the Normalizer, the rule engine).
    """
    if not text:
        return ""
    lowered = str(text).lower()
    return normalize_whitespace(_NON_ALNUM_SPACE_RE.sub("", lowered))


def compact_key(text: str) -> str:
    """Alphanumerics only (used for rule-engine buffer dedup)."""
    if not text:
        return ""
    return re.sub(r"[^a-z0-9]", "", str(text).lower())


def _preprocess_response(response: str) -> str:
    """Strip markdown fences and surrounding prose; keep first '{' .. last '}'."""
    cleaned = _FENCE_RE.sub("", response or "").strip()
    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first == -1 or last <= first:
        return ""
    return cleaned[first:last + 1]


def parse_json_response(response: str) -> dict | None:
    """Parse the JSON object out of an extractor response.

    Tolerates markdown code fences and leading/trailing prose. Tries strict
    parsing of the whole cleaned response, then the span between the first '{'
    and the last '}', then json_repair on that span. Returns None (never
    raises) when nothing usable is found.
    """
    if not response or not str(response).strip():
        return None

    whole = _FENCE_RE.sub("", response).strip()
    try:
        obj = json.loads(whole)
        if isinstance(obj, dict):
            return obj
    except json.JSONDecodeError:
        pass

    span = _preprocess_response(response)
    if not span:
        logger.debug("No JSON object in response: %s", response[:200])
        return None

    try:
        obj = json.loads(span)
        if isinstance(obj, dict):
            return obj
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse JSON span: %s", e)

    try:
        obj = json_repair.loads(span)
        if isinstance(obj, dict) and obj:
            logger.warning("Recovered JSON using json_repair after strict parse failed")
            return obj
    except Exception as repair_err:
        logger.debug("json_repair failed: %s", repair_err)

    return None
