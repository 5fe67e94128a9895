"""
Pipeline coordinator.

The single orchestration function that:
1. Rejects unusable input (:class:`FatalInputError`).
2. Extracts document metadata and segments the text into chunks.
3. Runs Path B (rule engine) so deterministic rules are stored first, then
   Path A (two-pass extraction) over the chunks.
4. Normalizes, canonicalizes definitions and reconciles the finished snapshot.
5. Assembles the job output dict.

Everything after the scheduler's final join runs single-threaded over the
snapshot.
"""
from __future__ import annotations

import logging
from typing import Any

from policylens.domain import RULE_CATEGORIES
from policylens.services.confidence import confidence_stats
from policylens.services.definition_registry import canonicalize_definitions
from policylens.services.extraction import Extractor
from policylens.services.metadata import extract_policy_metadata
from policylens.services.normalize import normalize_policy
from policylens.services.reconciliation import format_conflict_report, reconcile_policy
from policylens.services.segmenter import create_chunks
from policylens.worker.config import WorkerConfig
from policylens.worker.context import JobRunContext
from policylens.worker.errors import FatalInputError
from policylens.worker import path_a, path_b

logger = logging.getLogger(__name__)


async def run_pipeline(
    text: str,
    extractor: Extractor,
    *,
    job_id: str = "local",
    worker_cfg: WorkerConfig | None = None,
) -> dict[str, Any]:
    """Top-level pipeline over one document's text. Returns the job output (without jobId/fileUrl)."""
    if worker_cfg is None:
        from policylens.worker.config import load_worker_config
        worker_cfg = load_worker_config()

    if not text or not text.strip():
        raise FatalInputError("Document has no text")

    ctx = JobRunContext(job_id=job_id, worker_cfg=worker_cfg)

    # --- Metadata + segmentation ---
    policy_meta = extract_policy_metadata(text)
    chunks = create_chunks(
        text,
        window_size=worker_cfg.window_size,
        window_overlap=worker_cfg.window_overlap,
        min_section_length=worker_cfg.min_section_length,
        min_chunk_length=worker_cfg.min_chunk_length,
        min_cleaned_length=worker_cfg.min_cleaned_length,
    )
    logger.info("[%s] Coordinator: %s chars, %s chunks", job_id, len(text), len(chunks))

    # --- Path B first: deterministic text wins first-occurrence dedup ---
    rule_engine_stats = None
    if worker_cfg.rule_engine_enabled:
        rule_engine_stats = path_b.run_rule_path(ctx, text).stats()

    # --- Path A ---
    await path_a.run_extraction(ctx, chunks, extractor)

    # --- Post-processing over the joined snapshot ---
    normalized = normalize_policy(ctx.collected.snapshot())
    canonical, unmapped = canonicalize_definitions(
        {term: item.item.definition for term, item in normalized.definitions.items()}
    )
    reconciliation = reconcile_policy(normalized, overlap_threshold=worker_cfg.overlap_threshold)
    if reconciliation.requires_human_review:
        logger.warning("[%s] Conflicts need review:\n%s", job_id, format_conflict_report(reconciliation.conflicts))

    metrics = ctx.metrics.to_dict()
    meta = {
        **policy_meta,
        "totalChunks": metrics["totalChunks"],
        "parsedChunks": metrics["parsedChunks"],
        "failedChunks": metrics["failedChunks"],
    }
    result = {
        "meta": meta,
        "definitions": [item.to_dict() for item in normalized.definitions.values()],
        "rules": [item.to_dict() for item in normalized.all_rules()],
        "metrics": metrics,
        "canonical_definitions": {key: d.to_dict() for key, d in canonical.items()},
        "unmapped_definitions": unmapped,
        "reconciliation": reconciliation.to_dict(),
        "confidence_stats": confidence_stats(normalized.all_items()),
        "rule_engine_stats": rule_engine_stats,
    }
    logger.info(
        "[%s] Done: %s definitions, rules %s, %s conflicts",
        job_id,
        len(result["definitions"]),
        {c.value: len(normalized.rules[c]) for c in RULE_CATEGORIES},
        len(reconciliation.conflicts),
    )
    return result
