"""Confidence scoring for accepted items.

AI-derived items start at 0.70 and move with additive signals; the result is
clamped to [0.50, 0.95] and rounded to two decimals. Rule-engine items carry
their own confidence (0.99 when none is set). Items under the review
threshold are flagged ``needs_review`` but always kept.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from policylens.domain import AcceptedItem, ChunkHint, DefinitionItem, ItemSource, RuleItem

logger = logging.getLogger(__name__)

AI_BASE_CONFIDENCE = 0.70
RULE_ENGINE_CONFIDENCE = 0.99
MIN_CONFIDENCE = 0.50
MAX_AI_CONFIDENCE = 0.95
REVIEW_THRESHOLD = 0.85

# --- positive signals ---
_STRUCTURE_PATTERNS = (
    re.compile(r"^[\s]*[•\-\*]", re.MULTILINE),
    re.compile(r"^[\s]*\d+\.", re.MULTILINE),
    re.compile(r"^[\s]*[a-z]\)", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^[\s]*\([a-z]\)", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^[\s]*[ivx]+\.", re.MULTILINE | re.IGNORECASE),
    re.compile(r"\|.*\|"),
    re.compile(r"^[\s]*-{3,}", re.MULTILINE),
)
_NUMBER_PATTERNS = (
    re.compile(r"\d+\s*(?:day|month|year)s?", re.IGNORECASE),
    re.compile(r"(?:₹|Rs\.?|\$)\s*[\d,]+"),
    re.compile(r"\d+\s*%"),
    re.compile(r"\d+\s*(?:lakhs?|crores?)", re.IGNORECASE),
)
_SENTENCE_END_RE = re.compile(r"[.!?]$")
_SENTENCE_VERB_RE = re.compile(r"\b(?:is|are|will|shall|must|may|can|be)\b", re.IGNORECASE)
_FORMAL_PATTERNS = (
    re.compile(r"\bshall\b", re.IGNORECASE),
    re.compile(r"\bmust\b", re.IGNORECASE),
    re.compile(r"\bexcluded?\b", re.IGNORECASE),
    re.compile(r"\bcovered?\b", re.IGNORECASE),
    re.compile(r"\blimited?\b", re.IGNORECASE),
    re.compile(r"\bsubject to\b", re.IGNORECASE),
    re.compile(r"\bin case of\b", re.IGNORECASE),
    re.compile(r"\bprovided that\b", re.IGNORECASE),
    re.compile(r"\bwhereas\b", re.IGNORECASE),
)

# --- negative signals ---
_VAGUE_RE = re.compile(
    r"\b(?:may|might|could|typically|generally|usually|sometimes|possibly|in some cases)\b",
    re.IGNORECASE,
)


def has_structured_formatting(text: str) -> bool:
    return any(p.search(text) for p in _STRUCTURE_PATTERNS)


def contains_specific_numbers(text: str) -> bool:
    return any(p.search(text) for p in _NUMBER_PATTERNS)


def is_complete_sentence(text: str) -> bool:
    t = text.strip()
    return bool(_SENTENCE_END_RE.search(t)) and len(t) > 15 and bool(_SENTENCE_VERB_RE.search(t))


def uses_formal_language(text: str) -> bool:
    return any(p.search(text) for p in _FORMAL_PATTERNS)


def contains_vague_language(text: str) -> bool:
    return bool(_VAGUE_RE.search(text))


def is_question(text: str) -> bool:
    return text.strip().endswith("?")


def is_too_short(text: str) -> bool:
    return len(text.strip()) < 10


def calculate_confidence(
    text: str,
    *,
    hint: ChunkHint | str | None = None,
    source: ItemSource = ItemSource.AI_EXTRACTION,
    uncertain: bool = False,
    own_confidence: float | None = None,
) -> float:
    """Score one item's text.

    ``uncertain`` is the extractor's own uncertainty signal (unknown category
    or a "none" type) and costs 0.25.
    """
    if source == ItemSource.RULE_ENGINE:
        return own_confidence if own_confidence is not None else RULE_ENGINE_CONFIDENCE

    if not text or not isinstance(text, str):
        logger.warning("calculate_confidence: invalid text %r", text)
        return MIN_CONFIDENCE

    confidence = AI_BASE_CONFIDENCE
    signals = []
    if has_structured_formatting(text):
        confidence += 0.10
        signals.append("structure+0.10")
    if contains_specific_numbers(text):
        confidence += 0.08
        signals.append("numbers+0.08")
    if is_complete_sentence(text):
        confidence += 0.05
        signals.append("sentence+0.05")
    if uses_formal_language(text):
        confidence += 0.07
        signals.append("formal+0.07")
    if hint is not None and ChunkHint(hint) == ChunkHint.RULES:
        confidence += 0.05
        signals.append("rules_hint+0.05")
    if contains_vague_language(text):
        confidence -= 0.15
        signals.append("vague-0.15")
    if is_question(text):
        confidence -= 0.20
        signals.append("question-0.20")
    if is_too_short(text):
        confidence -= 0.10
        signals.append("short-0.10")
    if uncertain:
        confidence -= 0.25
        signals.append("uncertain-0.25")

    confidence = round(max(MIN_CONFIDENCE, min(confidence, MAX_AI_CONFIDENCE)), 2)
    logger.debug("confidence %.2f [%s] for %r", confidence, ", ".join(signals), text[:60])
    return confidence


def should_flag_for_review(confidence: float, threshold: float = REVIEW_THRESHOLD) -> bool:
    return confidence < threshold


def score_item(
    item: DefinitionItem | RuleItem,
    *,
    hint: ChunkHint | str | None = None,
    chunk_id: int | None = None,
    review_threshold: float = REVIEW_THRESHOLD,
) -> AcceptedItem:
    """Wrap an accepted item with its confidence and review flag."""
    if isinstance(item, DefinitionItem):
        conf = calculate_confidence(item.definition, hint=hint, source=item.source)
    else:
        conf = calculate_confidence(
            item.text,
            hint=hint,
            source=item.source,
            uncertain=item.uncertain,
            own_confidence=item.confidence,
        )
    return AcceptedItem(
        item=item,
        confidence=conf,
        needs_review=should_flag_for_review(conf, review_threshold),
        chunk_id=chunk_id,
    )


def score_batch(
    items: Iterable[DefinitionItem | RuleItem],
    *,
    hint: ChunkHint | str | None = None,
    chunk_id: int | None = None,
) -> list[AcceptedItem]:
    return [score_item(i, hint=hint, chunk_id=chunk_id) for i in items]


def confidence_level(confidence: float) -> str:
    if confidence >= 0.95:
        return "Very High"
    if confidence >= 0.85:
        return "High"
    if confidence >= 0.70:
        return "Medium"
    if confidence >= 0.50:
        return "Low"
    return "Very Low"


def confidence_stats(items: Iterable[AcceptedItem]) -> dict[str, Any]:
    """Band counts and average over accepted items."""
    confidences = [i.confidence for i in items]
    if not confidences:
        return {
            "total": 0, "average": 0, "very_high": 0, "high": 0,
            "medium": 0, "low": 0, "needs_review": 0,
        }
    medium = sum(1 for c in confidences if 0.70 <= c < 0.85)
    low = sum(1 for c in confidences if c < 0.70)
    return {
        "total": len(confidences),
        "average": round(sum(confidences) / len(confidences), 2),
        "very_high": sum(1 for c in confidences if c >= 0.95),
        "high": sum(1 for c in confidences if 0.85 <= c < 0.95),
        "medium": medium,
        "low": low,
        "needs_review": medium + low,
    }
