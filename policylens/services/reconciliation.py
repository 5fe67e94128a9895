"""Reconciliation: find contradictions inside a normalized rule set.

Three independent detectors:

1. coverage vs exclusion - pairwise Jaccard overlap of keyword sets; pairs at or
   above the threshold become conflicts, then an ordered list of heuristics
   decides whether each one is a genuine contradiction.
2. duplicate waiting periods - two waiting-period texts with the same keyword
   signature.
3. conflicting financial limits - two limits sharing their first three keywords
   but carrying different amounts.

The input snapshot is never mutated.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from policylens.domain import (
    AutoResolution,
    Conflict,
    ConflictType,
    PolicySnapshot,
    RecommendedAction,
    RuleCategory,
    Severity,
)

logger = logging.getLogger(__name__)

OVERLAP_THRESHOLD = 0.40

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
    "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
    "to", "was", "will", "with", "shall", "may", "can", "this", "these",
    "those", "not", "been", "have", "but", "or", "if", "into", "all",
    "any", "per", "such", "only", "own", "same", "so", "than", "too",
    "very", "well", "also",
})

# Stems that only say which side of the coverage/exclusion line a text is on.
POLARITY_STEMS = frozenset({
    "cover", "coverage", "exclud", "exclusion", "includ", "include", "payable",
})

_AMOUNT_RE = re.compile(r"\d[\d,]*")


def _stem(word: str) -> str:
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 4 and word.endswith("ed"):
        return word[:-2]
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def extract_keywords(text: str) -> list[str]:
    """Ordered keyword list: lowercase, punctuation stripped, >=3 chars, no stop words, stemmed."""
    words = (re.sub(r"[^a-z0-9]", "", w) for w in (text or "").lower().split())
    return [_stem(w) for w in words if len(w) >= 3 and w not in STOP_WORDS]


def semantic_overlap(text1: str, text2: str, ignore: frozenset = frozenset()) -> float:
    """Jaccard similarity of the two keyword sets (0.0 when either is empty)."""
    k1 = set(extract_keywords(text1)) - ignore
    k2 = set(extract_keywords(text2)) - ignore
    if not k1 or not k2:
        return 0.0
    return len(k1 & k2) / len(k1 | k2)


def categorize_severity(overlap: float) -> Severity:
    if overlap >= 0.70:
        return Severity.CRITICAL
    if overlap >= 0.55:
        return Severity.HIGH
    return Severity.MEDIUM


# ---------------------------------------------------------------------------
# Auto-resolution: first matching rule wins
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolutionRule:
    name: str
    applies: Callable[[str, str], bool]
    resolution: AutoResolution


AUTO_RESOLUTION_RULES: tuple[ResolutionRule, ...] = (
    ResolutionRule(
        "pre_existing_condition",
        lambda cov, exc: "pre-existing" in exc.lower() or "pre existing" in exc.lower(),
        AutoResolution(
            resolvable=True,
            resolution="exclusion_is_more_specific",
            explanation="Exclusion applies only to pre-existing conditions, not a contradiction",
            recommended_action=RecommendedAction.KEEP_BOTH,
        ),
    ),
    ResolutionRule(
        "temporary_exclusion",
        lambda cov, exc: "waiting" in exc.lower() or "first" in exc.lower(),
        AutoResolution(
            resolvable=True,
            resolution="temporary_exclusion",
            explanation="Exclusion is temporary (waiting period), coverage applies after",
            recommended_action=RecommendedAction.KEEP_BOTH_ADD_NOTE,
        ),
    ),
    ResolutionRule(
        "specific_exception",
        lambda cov, exc: len(exc) > len(cov) * 1.5,
        AutoResolution(
            resolvable=True,
            resolution="exclusion_is_more_specific",
            explanation="Exclusion provides specific exception to general coverage",
            recommended_action=RecommendedAction.KEEP_BOTH,
        ),
    ),
)

UNRESOLVED = AutoResolution(
    resolvable=False,
    explanation="Cannot determine relationship automatically",
    recommended_action=RecommendedAction.FLAG_FOR_HUMAN_REVIEW,
)


def attempt_auto_resolution(coverage: str, exclusion: str) -> AutoResolution:
    for rule in AUTO_RESOLUTION_RULES:
        if rule.applies(coverage, exclusion):
            return rule.resolution
    return UNRESOLVED


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------

def detect_coverage_exclusion_conflicts(
    coverage: Sequence[str],
    exclusions: Sequence[str],
    threshold: float = OVERLAP_THRESHOLD,
) -> list[Conflict]:
    conflicts = []
    for covered in coverage:
        for excluded in exclusions:
            overlap = semantic_overlap(covered, excluded, ignore=POLARITY_STEMS)
            if overlap < threshold:
                continue
            conflicts.append(Conflict(
                type=ConflictType.COVERAGE_VS_EXCLUSION,
                items=(covered, excluded),
                severity=categorize_severity(overlap),
                overlap_score=round(overlap, 2),
                resolution=attempt_auto_resolution(covered, excluded),
                explanation="Covered item overlaps an exclusion",
            ))
    return conflicts


def detect_waiting_period_conflicts(waiting_periods: Sequence[str]) -> list[Conflict]:
    conflicts = []
    seen: dict[str, str] = {}
    for period in waiting_periods:
        signature = " ".join(extract_keywords(period))
        if signature in seen:
            conflicts.append(Conflict(
                type=ConflictType.DUPLICATE_WAITING_PERIOD,
                items=(seen[signature], period),
                severity=Severity.HIGH,
                explanation="Same condition has multiple waiting periods mentioned",
            ))
        else:
            seen[signature] = period
    return conflicts


def first_amount(text: str) -> Optional[str]:
    m = _AMOUNT_RE.search(text or "")
    return m.group(0) if m else None


def detect_financial_limit_conflicts(limits: Sequence[str]) -> list[Conflict]:
    conflicts = []
    seen: dict[str, str] = {}
    for limit in limits:
        limit_type = " ".join(extract_keywords(limit)[:3])
        if limit_type not in seen:
            seen[limit_type] = limit
            continue
        existing = seen[limit_type]
        amount, existing_amount = first_amount(limit), first_amount(existing)
        if amount and existing_amount and amount != existing_amount:
            conflicts.append(Conflict(
                type=ConflictType.CONFLICTING_FINANCIAL_LIMIT,
                items=(existing, limit),
                severity=Severity.CRITICAL,
                explanation="Same limit type has different amounts",
            ))
    return conflicts


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReconciliationResult:
    policy: PolicySnapshot
    conflicts: tuple[Conflict, ...] = field(default_factory=tuple)

    @property
    def critical(self) -> int:
        return sum(1 for c in self.conflicts if c.severity == Severity.CRITICAL)

    @property
    def auto_resolvable(self) -> int:
        return sum(1 for c in self.conflicts if c.resolvable)

    @property
    def needs_review(self) -> int:
        return len(self.conflicts) - self.auto_resolvable

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def has_critical_conflicts(self) -> bool:
        return self.critical > 0

    @property
    def requires_human_review(self) -> bool:
        return self.needs_review > 0 or self.critical > 0

    def summary(self) -> dict[str, int]:
        return {
            "total": len(self.conflicts),
            "critical": self.critical,
            "auto_resolvable": self.auto_resolvable,
            "needs_review": self.needs_review,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "conflicts": [c.to_dict() for c in self.conflicts],
            "conflict_summary": self.summary(),
            "has_conflicts": self.has_conflicts,
            "has_critical_conflicts": self.has_critical_conflicts,
            "requires_human_review": self.requires_human_review,
        }


def reconcile_policy(policy: PolicySnapshot, overlap_threshold: float = OVERLAP_THRESHOLD) -> ReconciliationResult:
    """Run all three detectors over a normalized snapshot."""
    coverage_conflicts = detect_coverage_exclusion_conflicts(
        policy.rule_texts(RuleCategory.COVERAGE),
        policy.rule_texts(RuleCategory.EXCLUSION),
        threshold=overlap_threshold,
    )
    waiting_conflicts = detect_waiting_period_conflicts(policy.rule_texts(RuleCategory.WAITING_PERIOD))
    limit_conflicts = detect_financial_limit_conflicts(policy.rule_texts(RuleCategory.FINANCIAL_LIMIT))

    result = ReconciliationResult(
        policy=policy,
        conflicts=tuple(coverage_conflicts + waiting_conflicts + limit_conflicts),
    )
    logger.info(
        "Reconciliation: %d conflicts (coverage/exclusion=%d, waiting=%d, limits=%d); "
        "critical=%d auto_resolvable=%d needs_review=%d",
        len(result.conflicts), len(coverage_conflicts), len(waiting_conflicts), len(limit_conflicts),
        result.critical, result.auto_resolvable, result.needs_review,
    )
    return result


def format_conflict_report(conflicts: Sequence[Conflict]) -> str:
    """Plain-text report for logs and review queues."""
    if not conflicts:
        return "No conflicts detected. Policy data is internally consistent."
    lines = ["CONFLICT REPORT", "=" * 60, ""]
    for i, conflict in enumerate(conflicts, start=1):
        lines.append(f"{i}. {conflict.type.value.upper()}")
        lines.append(f"   Severity: {conflict.severity.value}")
        if conflict.type == ConflictType.COVERAGE_VS_EXCLUSION:
            lines.append(f'   Coverage: "{conflict.items[0]}"')
            lines.append(f'   Exclusion: "{conflict.items[1]}"')
            lines.append(f"   Overlap: {(conflict.overlap_score or 0) * 100:.0f}%")
        else:
            for text in conflict.items:
                lines.append(f'   Item: "{text}"')
            if conflict.explanation:
                lines.append(f"   Explanation: {conflict.explanation}")
        if conflict.resolution:
            res = conflict.resolution
            lines.append(f"   Auto-resolve: {'YES' if res.resolvable else 'NO'}")
            lines.append(f"   Explanation: {res.explanation}")
            lines.append(f"   Action: {res.recommended_action.value}")
        lines.append("")
    return "\n".join(lines)
