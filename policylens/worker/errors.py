"""
Pipeline error taxonomy and helpers.

Centralises the "classify -> log -> count -> record chunk as failed" pattern so
both scheduler passes use one function. Quality-gate rejections are not
errors and never come through here.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from policylens.worker.context import JobRunContext

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ExtractorTimeout(PipelineError):
    """An extractor call exceeded its deadline. Counted as a failed chunk, never retried."""


class UnparseableResponse(PipelineError):
    """The extractor answered but nothing usable could be parsed. Handled like "none"."""


class PersistenceFailure(PipelineError):
    """A store call failed. The pipeline continues with a local job id."""


class FatalInputError(PipelineError):
    """The source document is unreadable or empty. Aborts the job."""


def classify_error(error_type: str, error: Exception | str | None = None) -> tuple[str, str]:
    """Return (severity, stage) for an error type."""
    severity_map = {
        "extractor_timeout": "warning",
        "llm_failure": "critical",
        "json_parse_error": "warning",
        "persistence_error": "critical",
        "other": "warning",
    }
    stage_map = {
        "extractor_timeout": "extraction",
        "llm_failure": "extraction",
        "json_parse_error": "extraction",
        "persistence_error": "persistence",
        "other": "other",
    }
    return severity_map.get(error_type, "warning"), stage_map.get(error_type, "other")


def error_type_for(error: Exception | str) -> str:
    if isinstance(error, (ExtractorTimeout, asyncio.TimeoutError)):
        return "extractor_timeout"
    if isinstance(error, (UnparseableResponse, json.JSONDecodeError)):
        return "json_parse_error"
    if isinstance(error, PersistenceFailure):
        return "persistence_error"
    if isinstance(error, Exception):
        return "llm_failure"
    return "other"


def record_chunk_error(
    ctx: "JobRunContext",
    chunk_id: int,
    error: Exception | str,
    *,
    pass_label: str,
) -> None:
    """Classify, log, count, and record a chunk-level failure. Never raises."""
    error_type = error_type_for(error)
    severity, stage = classify_error(error_type, error)
    err_str = str(error) or type(error).__name__
    timed_out = error_type == "extractor_timeout"

    log = logger.error if severity == "critical" else logger.warning
    log("[%s] [%s] chunk %s failed (%s/%s/%s): %s",
        ctx.job_id, pass_label, chunk_id, error_type, severity, stage, err_str[:200])

    ctx.metrics.failed_chunks += 1
    if timed_out:
        ctx.metrics.timed_out_chunks += 1
    ctx.record_chunk_result(
        chunk_id,
        pass_label=pass_label,
        status="timeout" if timed_out else "failed",
        error=err_str[:500],
    )
