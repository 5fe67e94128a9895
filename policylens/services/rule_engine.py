"""Deterministic, AI-free rule extraction over raw document text.

Two scanners share one dedup set per document:

* a line state machine that tracks the active section header and reassembles
  rules broken across lines by the layout;
* the named regex library in :mod:`policylens.services.rule_patterns`.

Line-scan items get a fixed confidence of 0.95; pattern items carry the
confidence of the pattern that produced them.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from policylens.domain import RULE_CATEGORIES, ItemSource, RuleCategory, RuleItem
from policylens.services.rule_patterns import MAX_MATCHES_PER_PATTERN, RULE_PATTERNS
from policylens.services.utils import compact_key, normalize_whitespace

logger = logging.getLogger(__name__)

LINE_SCAN_CONFIDENCE = 0.95
LINE_SCAN_RULE_NAME = "line_scan"
MIN_RULE_LENGTH = 15
MAX_HEADER_LENGTH = 60
MIN_PATTERN_TEXT_LENGTH = 50

# Header vocabulary, matched against the compacted line (letters/digits only),
# so spacing and hyphenation noise from OCR does not matter.
_HEADER_VOCABULARY: tuple[tuple[Optional[RuleCategory], re.Pattern], ...] = (
    (None, re.compile(
        r"(?:standard|specific|general)?definitions?"
        r"|(?:general|special|standard)?(?:termsand)?conditions"
    )),
    (RuleCategory.EXCLUSION, re.compile(
        r"(?:standard|specific|general|permanent|other)?exclusions?(?:list)?|whatisnotcovered|notcovered"
    )),
    (RuleCategory.WAITING_PERIOD, re.compile(r"(?:initial|specific|general)?waitingperiods?")),
    (RuleCategory.FINANCIAL_LIMIT, re.compile(
        r"(?:financial)?(?:sub)?limits?(?:andsublimits?)?(?:ofcover(?:age)?|ofliability)?"
        r"|copay(?:ment)?s?|deductibles?"
    )),
    (RuleCategory.COVERAGE, re.compile(
        r"coverage|covers?|(?:policy)?benefits?|whatiscovered|scopeofcover(?:age)?|basiccover(?:age)?"
    )),
    (RuleCategory.CLAIM_REJECTION, re.compile(
        r"claims?(?:procedure|process|settlement|rejection)?|howtoclaim"
    )),
)

_ENUMERATOR_RE = re.compile(
    r"^\s*(?:(?:section|part|chapter)\s+)?(?:[\dA-Za-z]{1,3}[.):]|\d+)?\s*[-–:]?\s*",
    re.IGNORECASE,
)
_BULLET_START_RE = re.compile(
    r"^\s*(?:[•\-\*–·▪●◦]|\(?\d+(?:\.\d+)*[.)]|\(?[a-z][.)]|\(?[ivx]+[.)])\s+",
    re.IGNORECASE,
)
_BULLET_MARKER_RE = _BULLET_START_RE
_CAPITALIZED_RE = re.compile(r"^\s*[A-Z]")

_GARBAGE_PATTERNS = (
    re.compile(r"\bpage\s*\d+", re.IGNORECASE),
    re.compile(r"\bUIN\b"),
    re.compile(r"\birdai\b", re.IGNORECASE),
    re.compile(r"\bregistration\s*(?:no|number)\b", re.IGNORECASE),
    re.compile(r"\bCIN\b"),
    re.compile(r"www\.", re.IGNORECASE),
    re.compile(r"\S+@\S+\.\w+"),
    re.compile(r"\b(?:registered|corporate|head)\s+office\b", re.IGNORECASE),
    re.compile(r"\btoll[- ]?free\b", re.IGNORECASE),
)

# Keyword fallback when no section is active, evaluated in order.
_KEYWORD_FALLBACK: tuple[tuple[RuleCategory, re.Pattern], ...] = (
    (RuleCategory.WAITING_PERIOD, re.compile(
        r"waiting\s*period|\b\d+\s*(?:days?|months?|years?)\b", re.IGNORECASE)),
    (RuleCategory.FINANCIAL_LIMIT, re.compile(
        r"\blimit(?:ed|s)?\b|\bcap(?:ped)?\b|co[- ]?pay|sub[- ]?limit|deductible", re.IGNORECASE)),
    (RuleCategory.EXCLUSION, re.compile(r"\bexclu(?:ded|sion)|not\s+covered", re.IGNORECASE)),
    (RuleCategory.CLAIM_REJECTION, re.compile(r"\bnotif|\bclaim|\bdocument", re.IGNORECASE)),
)


@dataclass
class RuleEngineResult:
    items: dict[RuleCategory, list[RuleItem]] = field(
        default_factory=lambda: {c: [] for c in RULE_CATEGORIES}
    )
    rules_applied: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0

    def add(self, item: RuleItem) -> None:
        self.items[item.category].append(item)
        if item.rule_name and item.rule_name not in self.rules_applied:
            self.rules_applied.append(item.rule_name)

    def all_items(self) -> Iterator[RuleItem]:
        for category in RULE_CATEGORIES:
            yield from self.items[category]

    @property
    def rules_matched(self) -> int:
        return sum(len(v) for v in self.items.values())

    def stats(self) -> dict[str, Any]:
        return {
            "rules_matched": self.rules_matched,
            "rules_applied": list(self.rules_applied),
            "processing_time_ms": self.processing_time_ms,
            "breakdown": {c.value: len(self.items[c]) for c in RULE_CATEGORIES},
        }


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------

def match_section_header(line: str) -> tuple[bool, Optional[RuleCategory]]:
    """Return (is_header, category). A header with category None resets the section."""
    stripped = line.strip()
    if not stripped or len(stripped) > MAX_HEADER_LENGTH:
        return False, None
    body = _ENUMERATOR_RE.sub("", stripped, count=1)
    compact = re.sub(r"[^a-z0-9]", "", body.lower()).replace("0", "o")
    if not compact:
        return False, None
    for category, pattern in _HEADER_VOCABULARY:
        if pattern.fullmatch(compact):
            return True, category
    return False, None


def starts_new_item(line: str) -> bool:
    return bool(_BULLET_START_RE.match(line) or _CAPITALIZED_RE.match(line))


def is_garbage(text: str) -> bool:
    return any(p.search(text) for p in _GARBAGE_PATTERNS)


def classify_by_keywords(text: str) -> Optional[RuleCategory]:
    for category, pattern in _KEYWORD_FALLBACK:
        if pattern.search(text):
            return category
    return None


# ---------------------------------------------------------------------------
# Scanners
# ---------------------------------------------------------------------------

class _LineScanner:
    """State: the active section (None means no active section) and the open buffer."""

    def __init__(self, result: RuleEngineResult, seen: set[str]):
        self.result = result
        self.seen = seen
        self.section: Optional[RuleCategory] = None
        self.buffer: list[str] = []

    def feed(self, line: str) -> None:
        if not line.strip():
            return
        is_header, category = match_section_header(line)
        if is_header:
            self.flush()
            self.section = category
            return
        if starts_new_item(line):
            self.flush()
        self.buffer.append(line.strip())

    def flush(self) -> None:
        if not self.buffer:
            return
        raw = " ".join(self.buffer)
        self.buffer = []

        text = normalize_whitespace(_BULLET_MARKER_RE.sub("", raw, count=1))
        if len(text) < MIN_RULE_LENGTH or is_garbage(text):
            return
        key = compact_key(text)
        if key in self.seen:
            return
        category = self.section or classify_by_keywords(text)
        if category is None:
            return
        self.seen.add(key)
        self.result.add(RuleItem(
            category=category,
            text=text,
            source=ItemSource.RULE_ENGINE,
            confidence=LINE_SCAN_CONFIDENCE,
            rule_name=LINE_SCAN_RULE_NAME,
        ))


def scan_lines(text: str, result: RuleEngineResult, seen: set[str]) -> None:
    scanner = _LineScanner(result, seen)
    for line in (text or "").splitlines():
        scanner.feed(line)
    scanner.flush()


def apply_patterns(text: str, result: RuleEngineResult, seen: set[str]) -> None:
    if not text or len(text) < MIN_PATTERN_TEXT_LENGTH:
        return
    for rule in RULE_PATTERNS:
        for n, match in enumerate(rule.pattern.finditer(text)):
            if n >= MAX_MATCHES_PER_PATTERN:
                break
            try:
                extracted = rule.extract(match, text)
            except (ValueError, IndexError, AttributeError) as e:
                logger.warning("Rule pattern %s failed on match %r: %s", rule.name, match.group(0)[:80], e)
                continue
            if not extracted:
                continue
            rule_text, structured = extracted
            key = compact_key(rule_text)
            if not key or key in seen:
                continue
            seen.add(key)
            result.add(RuleItem(
                category=rule.category,
                text=rule_text,
                source=ItemSource.RULE_ENGINE,
                confidence=rule.confidence,
                rule_name=rule.name,
                structured=structured,
            ))


def run_rule_engine(text: str) -> RuleEngineResult:
    """Run the line scan then the pattern library over raw text."""
    start = time.perf_counter()
    result = RuleEngineResult()
    seen: set[str] = set()
    scan_lines(text, result, seen)
    apply_patterns(text, result, seen)
    result.processing_time_ms = round((time.perf_counter() - start) * 1000, 2)
    logger.info(
        "Rule engine: %d rules (%s) in %.2fms",
        result.rules_matched,
        ", ".join(f"{c.value}={len(result.items[c])}" for c in RULE_CATEGORIES),
        result.processing_time_ms,
    )
    return result
