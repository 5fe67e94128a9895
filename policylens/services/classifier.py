"""Cheap chunk hinting: definitions vs rules vs mixed.

Only used to pick a prompt mode and token budget; misclassification is
corrected downstream by the quality gate.
"""
import re

from policylens.domain import ChunkHint

_DEF_SIGNAL_RE = re.compile(r"means")
_RULE_SIGNAL_RE = re.compile(r"cover|exclude|limit")

HIGH_SIGNAL_RULE_PHRASES = (
    "we will cover",
    "excluded",
    "waiting period",
    "deductible",
    "limit",
    "sum insured",
)


def classify_chunk_hint(text: str) -> ChunkHint:
    """Count definition vs rule signal words and pick a hint."""
    t = (text or "").lower()
    def_score = len(_DEF_SIGNAL_RE.findall(t))
    rule_score = len(_RULE_SIGNAL_RE.findall(t))

    if def_score >= 2 and def_score >= rule_score:
        return ChunkHint.DEFINITIONS
    if rule_score >= 2:
        return ChunkHint.RULES
    return ChunkHint.MIXED


def is_definition_text(text: str) -> bool:
    """Finer per-text definition detector (overrides a non-definitions hint)."""
    t = (text or "").lower()
    early = t[:150]
    return " means " in early or " is defined as " in early or "definitions" in t


def is_high_signal_rule_text(text: str) -> bool:
    """True when the text contains strong rule phrasing."""
    t = (text or "").lower()
    return any(s in t for s in HIGH_SIGNAL_RULE_PHRASES)
