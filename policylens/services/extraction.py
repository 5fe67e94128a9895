"""Extractor capability: prompt building, the LLM-backed extractor, and response parsing.

The Extractor is a black box to the scheduler: ``call(mode, text, max_tokens)``
returns raw response text (or raises). Parsing that text into a
:data:`~policylens.domain.StructuredItem` never raises; anything unusable
becomes :class:`~policylens.domain.NoneItem`.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from policylens.domain import (
    DefinitionBatch,
    DefinitionItem,
    NoneItem,
    PromptMode,
    RuleBatch,
    RuleCategory,
    RuleItem,
    StructuredItem,
)
from policylens.services.utils import parse_json_response

logger = logging.getLogger(__name__)


DEFINITION_SINGLE_PROMPT = (
    'Extract ONE definition. JSON ONLY. '
    '{{"type":"definition","term":"...","definition":"..."}}. '
    'If there is no definition return {{"type":"none"}}. TEXT: {text}'
)

DEFINITION_BATCH_PROMPT = (
    'Extract up to 4 definitions. JSON ONLY. '
    '{{"type":"definition_batch","definitions":[{{"term":"...","definition":"..."}}]}}. '
    'If there are no definitions return {{"type":"none"}}. TEXT: {text}'
)

RULE_INSTRUCTIONS = """Extract insurance rules. Return valid JSON.
VALID CATEGORIES:
- "coverage" (What is covered)
- "exclusion" (What is NOT covered)
- "waiting_period" (Time before cover starts)
- "financial_limit" (Sub-limits, Co-pay, Deductibles, Sum Insured reduction)
- "claim_rejection" (Reasons for claim denial, fraud, documentation)
If there is no rule return {{"type":"none"}}."""

RULE_SINGLE_PROMPT = RULE_INSTRUCTIONS + """
Extract ONE rule. Format: {{"type":"CATEGORY","rule":"FULL RULE TEXT"}}
TEXT: {text}"""

RULE_BATCH_PROMPT = RULE_INSTRUCTIONS + """
Extract up to 4 rules.
Format: {{"type":"rule_batch","rules":[{{"type":"CATEGORY","text":"FULL RULE TEXT"}}]}}
TEXT: {text}"""

_PROMPTS = {
    PromptMode.DEFINITION_SINGLE: DEFINITION_SINGLE_PROMPT,
    PromptMode.DEFINITION_BATCH: DEFINITION_BATCH_PROMPT,
    PromptMode.RULE_SINGLE: RULE_SINGLE_PROMPT,
    PromptMode.RULE_BATCH: RULE_BATCH_PROMPT,
}


def build_prompt(mode: PromptMode, text: str) -> str:
    return _PROMPTS[PromptMode(mode)].format(text=text)


class Extractor(ABC):
    """Abstract extraction capability consumed by the scheduler."""

    @abstractmethod
    async def call(self, mode: PromptMode, text: str, max_tokens: int) -> str:
        """Return the raw response text for one extraction task."""


class LLMExtractor(Extractor):
    """Extractor backed by an :class:`~policylens.services.llm_provider.LLMProvider`."""

    def __init__(self, llm=None):
        if llm is None:
            from policylens.services.llm_provider import get_llm_provider
            llm = get_llm_provider()
        self.llm = llm

    async def call(self, mode: PromptMode, text: str, max_tokens: int) -> str:
        prompt = build_prompt(mode, text)
        return await self.llm.generate(prompt, max_tokens=max_tokens)


# ---------------------------------------------------------------------------
# Response -> StructuredItem
# ---------------------------------------------------------------------------

def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _rule_item(category_raw: Any, text: Any) -> RuleItem:
    category = RuleCategory.parse(category_raw)
    return RuleItem(
        category=category or RuleCategory.COVERAGE,
        text=_clean(text),
        uncertain=category is None,
    )


def to_structured_item(obj: dict | None) -> StructuredItem:
    """Map a parsed wire object onto the item union."""
    if not isinstance(obj, dict):
        return NoneItem()
    item_type = _clean(obj.get("type")).lower()
    if item_type == "none":
        return NoneItem()

    definitions = obj.get("definitions")
    if isinstance(definitions, list):
        return DefinitionBatch(tuple(
            DefinitionItem(term=_clean(d.get("term")), definition=_clean(d.get("definition")))
            for d in definitions
            if isinstance(d, dict)
        ))
    if obj.get("term") is not None:
        return DefinitionItem(term=_clean(obj.get("term")), definition=_clean(obj.get("definition")))

    rules = obj.get("rules")
    if isinstance(rules, list):
        return RuleBatch(tuple(
            _rule_item(r.get("type") or r.get("category"), r.get("text") or r.get("rule"))
            for r in rules
            if isinstance(r, dict)
        ))
    if obj.get("rule") is not None:
        return _rule_item(item_type, obj.get("rule"))

    return NoneItem()


def parse_extractor_response(raw: str | None) -> StructuredItem:
    """Raw extractor text -> StructuredItem (NoneItem when unparseable)."""
    obj = parse_json_response(raw or "")
    if obj is None:
        logger.debug("Unparseable extractor response: %s", (raw or "")[:200])
    return to_structured_item(obj)
