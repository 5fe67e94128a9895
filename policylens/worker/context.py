"""
Pipeline run context: the shared arena for one job.

Holds the at-most-once claim counter used by the scheduler's worker pool,
the synchronized :class:`Collected` accumulator that both extraction paths
append to, run metrics, and per-chunk outcomes.
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from policylens.domain import (
    RULE_CATEGORIES,
    AcceptedItem,
    DefinitionItem,
    PolicySnapshot,
    RuleCategory,
)
from policylens.services.utils import normalize_key
from policylens.worker.config import WorkerConfig

logger = logging.getLogger(__name__)


class ClaimCounter:
    """Atomic fetch-and-increment over task indexes; no index is handed out twice."""

    def __init__(self, limit: int):
        self.limit = limit
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def claim(self) -> int | None:
        """Next unclaimed index, or None when the task list is exhausted."""
        with self._lock:
            i = next(self._counter)
        return i if i < self.limit else None


class Collected:
    """Append-only accumulator of accepted items.

    Definitions are keyed by raw term (first term per normalized form wins);
    rules keep first-occurrence order per category. Each category has its own
    lock so concurrent workers serialize per-category appends only.
    """

    def __init__(self):
        self.definitions: dict[str, AcceptedItem] = {}
        self.rules: dict[RuleCategory, list[AcceptedItem]] = {c: [] for c in RULE_CATEGORIES}
        self._definition_keys: set[str] = set()
        self._rule_keys: dict[RuleCategory, set[str]] = {c: set() for c in RULE_CATEGORIES}
        self._definition_lock = threading.Lock()
        self._rule_locks: dict[RuleCategory, threading.Lock] = {c: threading.Lock() for c in RULE_CATEGORIES}

    def add(self, accepted: AcceptedItem) -> bool:
        """Store an accepted item; False when it duplicates one already stored."""
        item = accepted.item
        if isinstance(item, DefinitionItem):
            key = normalize_key(item.term)
            if not key:
                return False
            with self._definition_lock:
                if key in self._definition_keys:
                    return False
                self._definition_keys.add(key)
                self.definitions[item.term] = accepted
            return True

        key = normalize_key(item.text)
        if not key:
            return False
        category = item.category
        with self._rule_locks[category]:
            if key in self._rule_keys[category]:
                return False
            self._rule_keys[category].add(key)
            self.rules[category].append(accepted)
        return True

    def snapshot(self) -> PolicySnapshot:
        """Copy of the current contents (call after the scheduler has joined)."""
        return PolicySnapshot(
            definitions=dict(self.definitions),
            rules={c: list(self.rules[c]) for c in RULE_CATEGORIES},
        )

    def counts(self) -> dict[str, int]:
        out = {"definitions": len(self.definitions)}
        out.update({c.value: len(self.rules[c]) for c in RULE_CATEGORIES})
        return out


@dataclass
class ExtractionMetrics:
    total_chunks: int = 0
    parsed_chunks: int = 0
    failed_chunks: int = 0
    timed_out_chunks: int = 0
    pass2_candidates: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalChunks": self.total_chunks,
            "parsedChunks": self.parsed_chunks,
            "failedChunks": self.failed_chunks,
            "timedOutChunks": self.timed_out_chunks,
            "pass2Candidates": self.pass2_candidates,
        }


@dataclass
class JobRunContext:
    """Run-scoped state for one document."""

    job_id: str
    worker_cfg: WorkerConfig = field(default_factory=WorkerConfig)
    collected: Collected = field(default_factory=Collected)
    metrics: ExtractionMetrics = field(default_factory=ExtractionMetrics)
    # "<pass>:<chunk_id>" -> outcome entry
    results_chunks: dict[str, dict[str, Any]] = field(default_factory=dict)

    def record_chunk_result(
        self,
        chunk_id: int,
        *,
        pass_label: str,
        status: str,
        stored: int | None = None,
        error: str | None = None,
    ) -> None:
        """Store a chunk's outcome for one pass (in-memory)."""
        entry: dict[str, Any] = {"chunk_id": chunk_id, "pass": pass_label, "status": status}
        if stored is not None:
            entry["stored"] = stored
        if error is not None:
            entry["error"] = error
        self.results_chunks[f"{pass_label}:{chunk_id}"] = entry

    @property
    def completed_count(self) -> int:
        return len(self.results_chunks)

    def failed_results(self) -> list[dict[str, Any]]:
        return [r for r in self.results_chunks.values() if r["status"] in ("failed", "timeout")]
