"""
Pipeline entry-point.

Thin shell: process_document() -> store the blob and job record ->
extract text -> coordinator.run_pipeline() -> complete the job.
All business logic lives in ``policylens.worker.{path_a, path_b, coordinator}``.
Store access is via ``policylens.worker.db``. Configuration via ``policylens.worker.config``.
"""
import logging
import time
from typing import Any

from policylens.services.extract_text import extract_text
from policylens.services.extraction import Extractor, LLMExtractor
from policylens.services.store import JobStore, default_store
from policylens.worker.config import WorkerConfig, load_worker_config
from policylens.worker.coordinator import run_pipeline
from policylens.worker.db import safe_complete_job, safe_create_job, safe_fail_job, safe_put_blob
from policylens.worker.errors import FatalInputError

logger = logging.getLogger(__name__)


def configure_logging(cfg: WorkerConfig | None = None) -> None:
    """Apply the configured level/format to the root logger (call once, from the host process)."""
    cfg = cfg or load_worker_config()
    level = getattr(logging, str(cfg.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format=cfg.log_format)


def _job_stats(result: dict[str, Any]) -> dict[str, Any]:
    return {
        **result["metrics"],
        "confidence_stats": result["confidence_stats"],
        "rule_engine_stats": result["rule_engine_stats"],
        "conflict_summary": result["reconciliation"]["conflict_summary"],
    }


async def process_document(
    data: bytes,
    filename: str,
    *,
    extractor: Extractor | None = None,
    store: JobStore | None = None,
    worker_cfg: WorkerConfig | None = None,
) -> dict[str, Any]:
    """Run one uploaded document through the pipeline.

    Without an explicit *store*, ``default_store()`` picks one from the environment.
    Returns the job output. Fatal input problems and unexpected errors come
    back as ``{"error", "status": "failed", "jobId"}`` instead of raising.
    """
    if worker_cfg is None:
        worker_cfg = load_worker_config()
    if store is None:
        store = default_store()
    start = time.perf_counter()

    file_url = await safe_put_blob(store, data, filename)
    job_id = await safe_create_job(store, filename, file_url)
    logger.info("[JOB %s] Starting for %s (url=%s)", job_id, filename, file_url or "local")

    try:
        text = extract_text(data, filename)
        if extractor is None:
            extractor = LLMExtractor()
        result = await run_pipeline(text, extractor, job_id=job_id, worker_cfg=worker_cfg)
    except FatalInputError as e:
        logger.error("[JOB %s] Unreadable input: %s", job_id, e)
        await safe_fail_job(store, job_id, str(e))
        return {"error": str(e), "status": "failed", "jobId": job_id}
    except Exception as e:
        logger.error("[JOB %s] Error after %.2fs: %s", job_id, time.perf_counter() - start, e, exc_info=True)
        await safe_fail_job(store, job_id, str(e))
        return {"error": str(e), "status": "failed", "jobId": job_id}

    output = {"jobId": job_id, "fileUrl": file_url, **result}
    await safe_complete_job(store, job_id, output, result["meta"], _job_stats(result))
    logger.info("[JOB %s] Completed in %.2fs", job_id, time.perf_counter() - start)
    return output
