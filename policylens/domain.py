"""
Pipeline value types.

Chunks, extraction tasks, the tagged-union item schema returned by the
Extractor / rule engine, accepted (scored) items, canonical definitions and
reconciliation conflicts.  Everything here is a plain dataclass or enum; no
behaviour beyond small conversions.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ChunkHint(str, Enum):
    DEFINITIONS = "definitions"
    RULES = "rules"
    MIXED = "mixed"


class PromptMode(str, Enum):
    DEFINITION_SINGLE = "definition_single"
    DEFINITION_BATCH = "definition_batch"
    RULE_SINGLE = "rule_single"
    RULE_BATCH = "rule_batch"

    @classmethod
    def select(cls, definition_mode: bool, batch: bool) -> "PromptMode":
        if definition_mode:
            return cls.DEFINITION_BATCH if batch else cls.DEFINITION_SINGLE
        return cls.RULE_BATCH if batch else cls.RULE_SINGLE

    @property
    def is_definition(self) -> bool:
        return self in (PromptMode.DEFINITION_SINGLE, PromptMode.DEFINITION_BATCH)

    @property
    def is_batch(self) -> bool:
        return self in (PromptMode.DEFINITION_BATCH, PromptMode.RULE_BATCH)


class RuleCategory(str, Enum):
    COVERAGE = "coverage"
    EXCLUSION = "exclusion"
    WAITING_PERIOD = "waiting_period"
    FINANCIAL_LIMIT = "financial_limit"
    CLAIM_REJECTION = "claim_rejection"

    @classmethod
    def parse(cls, value: Any) -> "RuleCategory | None":
        """Map a wire category string to a RuleCategory; None when unknown."""
        if isinstance(value, RuleCategory):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


# Output order of categories in job results.
RULE_CATEGORIES: tuple[RuleCategory, ...] = tuple(RuleCategory)


class ItemSource(str, Enum):
    AI_EXTRACTION = "ai_extraction"
    RULE_ENGINE = "rule_engine"


# ---------------------------------------------------------------------------
# Segmenter output / scheduler input
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Chunk:
    """One overlapping window of document text.  Identity is ``id``."""

    id: int
    hint: ChunkHint
    raw_text: str
    cleaned_text: str


@dataclass(frozen=True)
class ExtractionTask:
    chunk: Chunk
    prompt_mode: PromptMode
    token_budget: int


# ---------------------------------------------------------------------------
# Structured items (tagged union)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DefinitionItem:
    term: str
    definition: str
    source: ItemSource = ItemSource.AI_EXTRACTION


@dataclass(frozen=True)
class RuleItem:
    """A single rule.

    ``uncertain`` is set when the extractor returned a category outside the
    known five (the item is routed to coverage and penalised when scored).
    ``confidence`` is only set for rule-engine items, which carry their own.
    """

    category: RuleCategory
    text: str
    source: ItemSource = ItemSource.AI_EXTRACTION
    uncertain: bool = False
    confidence: float | None = None
    rule_name: str | None = None
    structured: dict | None = field(default=None, compare=False, hash=False)


@dataclass(frozen=True)
class DefinitionBatch:
    definitions: tuple[DefinitionItem, ...] = ()


@dataclass(frozen=True)
class RuleBatch:
    rules: tuple[RuleItem, ...] = ()


@dataclass(frozen=True)
class NoneItem:
    """The extractor found nothing (or its response could not be parsed)."""


StructuredItem = Union[DefinitionItem, RuleItem, DefinitionBatch, RuleBatch, NoneItem]


@dataclass(frozen=True)
class AcceptedItem:
    """An item that passed the quality gate, with its trust score."""

    item: DefinitionItem | RuleItem
    confidence: float
    needs_review: bool
    chunk_id: int | None = None

    @property
    def is_definition(self) -> bool:
        return isinstance(self.item, DefinitionItem)

    @property
    def text(self) -> str:
        if isinstance(self.item, DefinitionItem):
            return self.item.definition
        return self.item.text

    @property
    def source(self) -> ItemSource:
        return self.item.source

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.item, DefinitionItem):
            out: dict[str, Any] = {"term": self.item.term, "definition": self.item.definition}
        else:
            out = {"category": self.item.category.value, "text": self.item.text}
        out["source"] = self.item.source.value
        out["confidence"] = self.confidence
        out["needs_review"] = self.needs_review
        return out


@dataclass(frozen=True)
class PolicySnapshot:
    """A finished view of Collected: definitions by raw term, rules per category."""

    definitions: dict[str, AcceptedItem] = field(default_factory=dict)
    rules: dict[RuleCategory, list[AcceptedItem]] = field(
        default_factory=lambda: {c: [] for c in RuleCategory}
    )

    def rule_texts(self, category: RuleCategory) -> list[str]:
        return [a.text for a in self.rules.get(category, [])]

    def all_rules(self) -> list[AcceptedItem]:
        return [a for c in RULE_CATEGORIES for a in self.rules.get(c, [])]

    def all_items(self) -> list[AcceptedItem]:
        return list(self.definitions.values()) + self.all_rules()


# ---------------------------------------------------------------------------
# Canonical definitions
# ---------------------------------------------------------------------------

class DefinitionSource(str, Enum):
    REGISTRY = "canonical_registry"
    AUTO_SLUG = "auto_slug"


@dataclass
class CanonicalDefinition:
    key: str
    canonical_term: str
    definition: str
    source: DefinitionSource
    raw_terms: list[str] = field(default_factory=list)

    def add_raw_term(self, term: str) -> None:
        if term not in self.raw_terms:
            self.raw_terms.append(term)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "canonical_term": self.canonical_term,
            "raw_terms": list(self.raw_terms),
            "definition": self.definition,
            "source": self.source.value,
        }


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

class ConflictType(str, Enum):
    COVERAGE_VS_EXCLUSION = "coverage_vs_exclusion"
    DUPLICATE_WAITING_PERIOD = "duplicate_waiting_period"
    CONFLICTING_FINANCIAL_LIMIT = "conflicting_financial_limit"


class Severity(str, Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RecommendedAction(str, Enum):
    KEEP_BOTH = "keep_both"
    KEEP_BOTH_ADD_NOTE = "keep_both_add_note"
    FLAG_FOR_HUMAN_REVIEW = "flag_for_human_review"


@dataclass(frozen=True)
class AutoResolution:
    resolvable: bool
    explanation: str
    recommended_action: RecommendedAction
    resolution: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "resolvable": self.resolvable,
            "explanation": self.explanation,
            "recommended_action": self.recommended_action.value,
        }
        if self.resolution:
            out["resolution"] = self.resolution
        return out


@dataclass(frozen=True)
class Conflict:
    type: ConflictType
    items: tuple[str, ...]
    severity: Severity
    overlap_score: float | None = None
    resolution: AutoResolution | None = None
    explanation: str = ""

    @property
    def resolvable(self) -> bool:
        return bool(self.resolution and self.resolution.resolvable)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "items": list(self.items),
            "overlap_score": self.overlap_score,
            "severity": self.severity.value,
            "resolution": self.resolution.to_dict() if self.resolution else None,
            "explanation": self.explanation,
        }
