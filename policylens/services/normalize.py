"""Deterministic post-extraction cleanup.

No extractor calls, no side effects: the same input always yields the same
output, and normalizing an already-normalized snapshot changes nothing.
"""
from typing import Any, Callable, Iterable, List, Optional

from policylens.domain import RULE_CATEGORIES, AcceptedItem, PolicySnapshot
from policylens.services.utils import normalize_key

MIN_TEXT_LENGTH = 3


def dedup_strings(values: Iterable, text_of: Optional[Callable[[Any], Any]] = None) -> List:
    """
    Keep the first literal occurrence per normalized key; drop non-strings and <3 chars.

    Plain strings come back stripped. With *text_of*, each value is keyed by
    ``text_of(value)`` and the values themselves are returned.
    """
    seen = set()
    result = []
    for value in values:
        text = text_of(value) if text_of is not None else value
        if not isinstance(text, str):
            continue
        cleaned = text.strip()
        if len(cleaned) < MIN_TEXT_LENGTH:
            continue
        key = normalize_key(cleaned)
        if key not in seen:
            seen.add(key)
            result.append(value if text_of is not None else cleaned)
    return result


def dedup_items(items: Iterable[AcceptedItem]) -> List[AcceptedItem]:
    return dedup_strings(items, text_of=lambda item: item.text)


def normalize_policy(snapshot: PolicySnapshot) -> PolicySnapshot:
    """Return a new snapshot with per-category and per-term duplicates removed."""
    definitions = {}
    seen_terms = set()
    for term, item in snapshot.definitions.items():
        key = normalize_key(term)
        if not key or key in seen_terms:
            continue
        seen_terms.add(key)
        definitions[term] = item

    rules = {category: dedup_items(snapshot.rules.get(category, [])) for category in RULE_CATEGORIES}
    return PolicySnapshot(definitions=definitions, rules=rules)
