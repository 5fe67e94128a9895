"""
Pipeline persistence handler.

All store access from the worker goes through this module. Every call logs
and degrades instead of raising: a failed upload yields no URL, a failed job
creation yields a synthetic ``local-<ms>`` id, and completion is skipped for
local ids.
"""
from __future__ import annotations

import logging
import time

from policylens.services.store import JobStore

logger = logging.getLogger(__name__)

LOCAL_JOB_PREFIX = "local-"


def local_job_id() -> str:
    return f"{LOCAL_JOB_PREFIX}{int(time.time() * 1000)}"


def is_local_job_id(job_id: str | None) -> bool:
    return not job_id or str(job_id).startswith(LOCAL_JOB_PREFIX)


async def safe_put_blob(store: JobStore | None, data: bytes, filename: str) -> str | None:
    """Upload the source document; None on failure or when no store is configured."""
    if store is None:
        return None
    try:
        return await store.put_blob(data, filename)
    except Exception as exc:
        logger.error("[db] put_blob failed for %s: %s", filename, exc, exc_info=True)
        return None


async def safe_create_job(store: JobStore | None, name: str, file_url: str | None) -> str:
    """Create the job record; falls back to a local id."""
    if store is None:
        return local_job_id()
    try:
        return str(await store.create_job(name, file_url))
    except Exception as exc:
        job_id = local_job_id()
        logger.error("[db] create_job failed, continuing as %s: %s", job_id, exc, exc_info=True)
        return job_id


async def safe_complete_job(store: JobStore | None, job_id: str, result: dict, meta: dict, stats: dict) -> bool:
    """Persist the final result. Returns True when stored."""
    if store is None or is_local_job_id(job_id):
        logger.info("[%s] Local job; skipping complete_job", job_id)
        return False
    try:
        await store.complete_job(job_id, result, meta, stats)
        return True
    except Exception as exc:
        logger.error("[%s] complete_job failed: %s", job_id, exc, exc_info=True)
        return False


async def safe_fail_job(store: JobStore | None, job_id: str, error_message: str) -> bool:
    if store is None or is_local_job_id(job_id):
        return False
    try:
        await store.fail_job(job_id, error_message)
        return True
    except Exception as exc:
        logger.error("[%s] fail_job failed: %s", job_id, exc, exc_info=True)
        return False
