"""Unit tests for policylens.worker.db: store wrappers that never raise."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from policylens.worker.db import (
    is_local_job_id,
    local_job_id,
    safe_complete_job,
    safe_create_job,
    safe_fail_job,
    safe_put_blob,
)


def _store(**overrides):
    store = MagicMock()
    store.put_blob = AsyncMock(return_value="gs://bucket/1_policy.pdf")
    store.create_job = AsyncMock(return_value="job-123")
    store.complete_job = AsyncMock()
    store.fail_job = AsyncMock()
    for name, value in overrides.items():
        setattr(store, name, value)
    return store


def test_local_job_ids():
    job_id = local_job_id()
    assert job_id.startswith("local-")
    assert is_local_job_id(job_id)
    assert is_local_job_id(None)
    assert not is_local_job_id("job-123")


# ---------------------------------------------------------------------------
# safe_put_blob / safe_create_job
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_safe_put_blob():
    assert await safe_put_blob(None, b"x", "policy.pdf") is None
    assert await safe_put_blob(_store(), b"x", "policy.pdf") == "gs://bucket/1_policy.pdf"
    failing = _store(put_blob=AsyncMock(side_effect=RuntimeError("bucket missing")))
    assert await safe_put_blob(failing, b"x", "policy.pdf") is None


@pytest.mark.asyncio
async def test_safe_create_job_falls_back_to_local_id():
    assert await safe_create_job(_store(), "policy.pdf", None) == "job-123"
    assert (await safe_create_job(None, "policy.pdf", None)).startswith("local-")
    failing = _store(create_job=AsyncMock(side_effect=RuntimeError("db down")))
    assert (await safe_create_job(failing, "policy.pdf", None)).startswith("local-")


# ---------------------------------------------------------------------------
# safe_complete_job / safe_fail_job
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_safe_complete_job_skips_local_ids():
    store = _store()
    assert await safe_complete_job(store, "local-1", {}, {}, {}) is False
    store.complete_job.assert_not_awaited()


@pytest.mark.asyncio
async def test_safe_complete_job_persists():
    store = _store()
    assert await safe_complete_job(store, "job-123", {"r": 1}, {"m": 1}, {"s": 1}) is True
    store.complete_job.assert_awaited_once_with("job-123", {"r": 1}, {"m": 1}, {"s": 1})


@pytest.mark.asyncio
async def test_safe_complete_job_swallows_store_errors():
    store = _store(complete_job=AsyncMock(side_effect=RuntimeError("db down")))
    assert await safe_complete_job(store, "job-123", {}, {}, {}) is False


@pytest.mark.asyncio
async def test_safe_fail_job():
    store = _store()
    assert await safe_fail_job(store, "job-123", "Empty document") is True
    store.fail_job.assert_awaited_once_with("job-123", "Empty document")
    assert await safe_fail_job(store, "local-1", "Empty document") is False
    assert await safe_fail_job(None, "job-123", "Empty document") is False
    failing = _store(fail_job=AsyncMock(side_effect=RuntimeError("db down")))
    assert await safe_fail_job(failing, "job-123", "boom") is False
