"""
Path B: deterministic rule-engine extraction.

Runs the line scanner and pattern library over the raw document text and
feeds the results through the same quality gate and Collected accumulator as
Path A. Rule-engine items keep their own confidence.
"""
from __future__ import annotations

import logging

from policylens.services.confidence import score_item
from policylens.services.quality import passes_quality_gate
from policylens.services.rule_engine import RuleEngineResult, run_rule_engine
from policylens.worker.context import JobRunContext

logger = logging.getLogger(__name__)


def run_rule_path(ctx: JobRunContext, text: str) -> RuleEngineResult:
    """Extract rules without the Extractor and store them in ``ctx.collected``."""
    result = run_rule_engine(text)
    stored = 0
    rejected = 0
    for item in result.all_items():
        if not passes_quality_gate(item):
            rejected += 1
            continue
        accepted = score_item(item, review_threshold=ctx.worker_cfg.review_threshold)
        if ctx.collected.add(accepted):
            stored += 1
    logger.info(
        "[%s] Path B: %s rule-engine items stored (%s matched, %s rejected by gate)",
        ctx.job_id, stored, result.rules_matched, rejected,
    )
    return result
