"""Canonical definition registry.

Maps raw definition terms onto stable keys using the curated alias table in
``policylens/registry/canonical_definitions.yaml``. Terms with no alias get an
auto-slug key and are also reported as unmapped. The table is loaded once per
process and never mutated.
"""
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from policylens.domain import CanonicalDefinition, DefinitionSource
from policylens.services.utils import normalize_key, normalize_whitespace

logger = logging.getLogger(__name__)

_REGISTRY_PATH = Path(__file__).resolve().parent.parent / "registry" / "canonical_definitions.yaml"

MIN_DEFINITION_LENGTH = 5

# normalized alias -> registry entry
_alias_index: Optional[Dict[str, Dict[str, Any]]] = None


def normalize_term_for_matching(term: str) -> str:
    """'ICU (Intensive Care Unit) Charges' -> 'icu intensive care unit charges'."""
    return normalize_key(normalize_whitespace(term))


def slugify_key(term: str) -> str:
    """'Room Rent' -> 'room_rent'."""
    return re.sub(r"_+", "_", re.sub(r"\s+", "_", normalize_term_for_matching(term))).strip("_")


def load_registry(path: Path | None = None) -> List[Dict[str, Any]]:
    """Read the curated table; entries need key, canonical_term and aliases."""
    with open(path or _REGISTRY_PATH, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    entries = data.get("definitions") or []
    valid = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("key") or not entry.get("canonical_term"):
            logger.warning("Skipping malformed registry entry: %r", entry)
            continue
        valid.append(entry)
    return valid


def build_alias_index(entries: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        for alias in entry.get("aliases") or [entry["canonical_term"]]:
            index[normalize_term_for_matching(str(alias))] = entry
    return index


def get_alias_index() -> Dict[str, Dict[str, Any]]:
    global _alias_index
    if _alias_index is None:
        _alias_index = build_alias_index(load_registry())
        logger.debug("Loaded %d definition aliases", len(_alias_index))
    return _alias_index


def lookup(term: str) -> Optional[Dict[str, Any]]:
    return get_alias_index().get(normalize_term_for_matching(term))


def _merge(existing: CanonicalDefinition, term: str, definition: str) -> None:
    existing.add_raw_term(term)
    if len(definition) > len(existing.definition):
        existing.definition = definition


def canonicalize_definitions(
    definitions: Mapping[str, str],
    alias_index: Dict[str, Dict[str, Any]] | None = None,
) -> Tuple[Dict[str, CanonicalDefinition], List[Dict[str, str]]]:
    """Group raw term -> definition pairs under canonical keys.

    Returns ``(by_key, unmapped)``. Nothing is dropped except definitions
    shorter than five characters; the longest definition wins per key.
    """
    index = alias_index if alias_index is not None else get_alias_index()
    by_key: Dict[str, CanonicalDefinition] = {}
    unmapped: List[Dict[str, str]] = []

    for raw_term, raw_definition in definitions.items():
        term = normalize_whitespace(raw_term)
        definition = normalize_whitespace(raw_definition)
        if not term or len(definition) < MIN_DEFINITION_LENGTH:
            continue

        entry = index.get(normalize_term_for_matching(term))
        if entry:
            key = entry["key"]
            if key not in by_key:
                by_key[key] = CanonicalDefinition(
                    key=key,
                    canonical_term=entry["canonical_term"],
                    definition=definition,
                    source=DefinitionSource.REGISTRY,
                )
            _merge(by_key[key], term, definition)
            continue

        key = slugify_key(term)
        if not key:
            continue
        if key not in by_key:
            by_key[key] = CanonicalDefinition(
                key=key,
                canonical_term=term,
                definition=definition,
                source=DefinitionSource.AUTO_SLUG,
                raw_terms=[term],
            )
            unmapped.append({"term": term, "key": key, "definition": definition})
        else:
            _merge(by_key[key], term, definition)

    return by_key, unmapped
