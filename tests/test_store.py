"""Tests for policylens.services.store."""
import uuid
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.dialects import postgresql

from policylens.config import GCS_BUCKET
from policylens.services.store import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PROCESSING,
    InMemoryJobStore,
    SqlJobStore,
    default_store,
    safe_blob_name,
)


def test_safe_blob_name_replaces_unusual_characters():
    name = safe_blob_name("my policy (1).pdf")
    prefix, rest = name.split("_", 1)
    assert prefix.isdigit()
    assert rest == "my_policy__1_.pdf"


# ---------------------------------------------------------------------------
# InMemoryJobStore
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_in_memory_store_job_lifecycle():
    store = InMemoryJobStore()
    url = await store.put_blob(b"data", "policy.pdf")
    assert url.startswith("memory://")
    assert list(store.blobs.values()) == [b"data"]

    job_id = await store.create_job("policy.pdf", url)
    assert store.jobs[job_id]["status"] == STATUS_PROCESSING

    await store.complete_job(job_id, {"rules": []}, {"policy_name": "X"}, {"totalChunks": 0})
    job = store.jobs[job_id]
    assert job["status"] == STATUS_COMPLETED
    assert job["result"] == {"rules": []}
    assert job["completed_at"] is not None


@pytest.mark.asyncio
async def test_in_memory_store_fail_job():
    store = InMemoryJobStore()
    job_id = await store.create_job("policy.pdf", None)
    await store.fail_job(job_id, "Empty document")
    assert store.jobs[job_id]["status"] == STATUS_FAILED
    assert store.jobs[job_id]["error_message"] == "Empty document"
    # Unknown ids are ignored.
    await store.fail_job("missing", "boom")


# ---------------------------------------------------------------------------
# SqlJobStore blob upload
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sql_store_put_blob_without_bucket_returns_none():
    store = SqlJobStore(session_factory=MagicMock(), bucket_name=None)
    assert await store.put_blob(b"data", "policy.pdf") is None


@pytest.mark.asyncio
async def test_sql_store_put_blob_uploads_to_bucket():
    store = SqlJobStore(session_factory=MagicMock(), bucket_name="raw-docs")
    with patch("google.cloud.storage.Client") as mock_client:
        blob = mock_client.return_value.bucket.return_value.blob.return_value
        url = await store.put_blob(b"%PDF-1.4", "my policy.pdf")

    assert url.startswith("gs://raw-docs/")
    assert url.endswith("_my_policy.pdf")
    mock_client.return_value.bucket.assert_called_once_with("raw-docs")
    blob.upload_from_string.assert_called_once_with(b"%PDF-1.4", content_type="application/pdf")


# ---------------------------------------------------------------------------
# SqlJobStore job rows
# ---------------------------------------------------------------------------

class _FakeSession:
    def __init__(self):
        self.added = []
        self.executed = []
        self.commits = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        self.commits += 1

    async def refresh(self, obj):
        obj.id = uuid.UUID(int=1)

    async def execute(self, stmt):
        self.executed.append(stmt)


@pytest.mark.asyncio
async def test_sql_store_create_job_adds_processing_row():
    session = _FakeSession()
    store = SqlJobStore(session_factory=lambda: session)

    job_id = await store.create_job("policy.pdf", "gs://raw-docs/1_policy.pdf")

    assert job_id == str(uuid.UUID(int=1))
    (row,) = session.added
    assert row.status == STATUS_PROCESSING
    assert row.file_url == "gs://raw-docs/1_policy.pdf"
    assert session.commits == 1


@pytest.mark.asyncio
async def test_sql_store_complete_and_fail_update_row():
    session = _FakeSession()
    store = SqlJobStore(session_factory=lambda: session)
    job_id = str(uuid.UUID(int=1))

    await store.complete_job(job_id, {"rules": []}, {"uin": "X"}, {"totalChunks": 1})
    await store.fail_job(job_id, "boom")

    completed, failed = (s.compile(dialect=postgresql.dialect()).params for s in session.executed)
    assert completed["status"] == STATUS_COMPLETED
    assert completed["meta"] == {"uin": "X"}
    assert failed["status"] == STATUS_FAILED
    assert failed["error_message"] == "boom"
    assert session.commits == 2


# ---------------------------------------------------------------------------
# default_store
# ---------------------------------------------------------------------------

def test_default_store_outside_prod_is_none():
    assert default_store("dev") is None


def test_default_store_in_prod_uses_configured_bucket():
    factory = MagicMock()
    store = default_store("prod", session_factory=factory)
    assert isinstance(store, SqlJobStore)
    assert store.session_factory is factory
    assert store.bucket_name == (GCS_BUCKET or None)
