"""Pytest fixtures for policylens tests."""
from __future__ import annotations

import asyncio
import json

import pytest

from policylens.domain import AcceptedItem, Chunk, ChunkHint, PolicySnapshot, RuleCategory, RuleItem
from policylens.services.extraction import Extractor
from policylens.worker.config import WorkerConfig
from policylens.worker.context import JobRunContext

NONE_RESPONSE = json.dumps({"type": "none"})

POLICY_DOCUMENT = """Star Health Gold Plan | UIN: ABC123
Star Health and Allied Insurance Company Limited
Terms & Conditions 2023

Definitions
Hospital means any institution established for in-patient care and day care treatment of illness and injuries.
Room Rent means the amount charged by a hospital towards room and boarding expenses for one day of stay.
Accident means a sudden, unforeseen and involuntary event caused by external, visible and violent means.

Coverage
1. We will cover in-patient hospitalization expenses up to the sum insured stated in the schedule.
2. Maternity expenses are covered.
3. Ambulance charges are payable up to Rs. 2000 per hospitalization.

Exclusions
1. Maternity expenses excluded for first 9 months.
2. War is excluded from coverage due to hostilities.
3. Cosmetic or aesthetic treatment of any description is not payable.

Waiting Period
1. A 30 days initial waiting period applies to all illnesses except accidents.
2. Cataract: 24 months waiting period from the policy start date.

Limits
1. Room rent limited to Rs. 5000 per day of admission.
2. Room rent limit: Rs. 10,000 per day for the single private room.
"""


class FakeExtractor(Extractor):
    """Scripted Extractor: ``responder(mode, text)`` returns raw text or an exception to raise."""

    def __init__(self, responder=None, delay=0.0):
        self.responder = responder or (lambda mode, text: NONE_RESPONSE)
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def call(self, mode, text, max_tokens):
        self.calls.append((mode, text, max_tokens))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delay(mode, text) if callable(self.delay) else self.delay
            if delay:
                await asyncio.sleep(delay)
            result = self.responder(mode, text)
        finally:
            self.in_flight -= 1
        if isinstance(result, Exception):
            raise result
        return result


def rule_response(category: str, text: str) -> str:
    return json.dumps({"type": category, "rule": text})


def make_chunk(chunk_id: int, text: str, hint: ChunkHint = ChunkHint.RULES) -> Chunk:
    return Chunk(id=chunk_id, hint=hint, raw_text=text, cleaned_text=text)


def make_snapshot(definitions=None, **rules) -> PolicySnapshot:
    """PolicySnapshot from plain strings, e.g. ``make_snapshot(coverage=["..."])``."""
    from policylens.domain import DefinitionItem

    defs = {
        term: AcceptedItem(DefinitionItem(term=term, definition=text), confidence=0.9, needs_review=False)
        for term, text in (definitions or {}).items()
    }
    by_category = {c: [] for c in RuleCategory}
    for name, texts in rules.items():
        category = RuleCategory(name)
        by_category[category] = [
            AcceptedItem(RuleItem(category=category, text=t), confidence=0.9, needs_review=False)
            for t in texts
        ]
    return PolicySnapshot(definitions=defs, rules=by_category)


@pytest.fixture
def fast_cfg() -> WorkerConfig:
    """Worker config with no pacing delay and a short call timeout."""
    return WorkerConfig(inter_call_delay_seconds=0.0, call_timeout_seconds=1.0, concurrency=3)


@pytest.fixture
def ctx(fast_cfg) -> JobRunContext:
    return JobRunContext(job_id="test-job", worker_cfg=fast_cfg)
