"""Quality gate for extracted items.

Rejections are not errors: a rejected item is simply not stored.
"""
import re

from policylens.domain import DefinitionItem, RuleItem

# Phrases from the upload UI / viewer chrome that leak into extracted text.
UI_LEAKAGE_PHRASES = frozenset({
    "upload pdf",
    "drag and drop",
    "click here",
    "choose file",
    "analysis complete",
})

# Repeated-token artefacts produced by broken OCR layers.
CORRUPT_OCR_PATTERNS = (
    re.compile(r"accident\s+accident", re.IGNORECASE),
    re.compile(r"\b(\w{3,})\s+\1\s+\1\b", re.IGNORECASE),
    re.compile(r"[�]"),
    re.compile(r"(?:\S\s){6,}\S"),  # s p a c e d - o u t letters
)

_DIGITS_PUNCT_RE = re.compile(r"^[\d\W_]+$")


def is_junk_rule(text: str) -> bool:
    """True when a rule text should be rejected."""
    t = str(text or "").strip()
    if len(t) < 10:
        return True
    if _DIGITS_PUNCT_RE.match(t):
        return True
    lower = t.lower()
    return any(p in lower for p in UI_LEAKAGE_PHRASES)


def _looks_corrupt(text: str) -> bool:
    return any(p.search(text) for p in CORRUPT_OCR_PATTERNS)


def is_good_definition_pair(term: str, definition: str) -> bool:
    """True when a (term, definition) pair should be accepted."""
    t = str(term or "").strip()
    d = str(definition or "").strip()
    if len(t) < 3 or len(d) < 10:
        return False
    return not (_looks_corrupt(t) or _looks_corrupt(d))


def passes_quality_gate(item: DefinitionItem | RuleItem) -> bool:
    if isinstance(item, DefinitionItem):
        return is_good_definition_pair(item.term, item.definition)
    if isinstance(item, RuleItem):
        return not is_junk_rule(item.text)
    raise TypeError(f"Quality gate cannot judge {type(item).__name__}")
