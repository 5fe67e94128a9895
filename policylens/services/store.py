"""Job store adapters: where source documents and finished jobs are kept.

The pipeline only talks to :class:`JobStore`. Failures raise; the worker's
``db`` module decides how to degrade.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

STATUS_PROCESSING = "PROCESSING"
STATUS_COMPLETED = "COMPLETED"
STATUS_FAILED = "FAILED"


def _utc_now_naive() -> datetime:
    """Naive UTC datetime for DB (TIMESTAMP WITHOUT TIME ZONE)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def safe_blob_name(filename: str) -> str:
    """Timestamp-prefixed object name with anything unusual replaced by '_'."""
    base = re.sub(r"[^A-Za-z0-9._-]", "_", filename or "document") or "document"
    return f"{int(time.time() * 1000)}_{base}"


class JobStore(ABC):
    """Persistence collaborator for source blobs and job records."""

    @abstractmethod
    async def put_blob(self, data: bytes, filename: str) -> str | None:
        """Store the source document; return its URL (None if not stored)."""

    @abstractmethod
    async def create_job(self, name: str, file_url: str | None) -> str:
        """Create a job record in PROCESSING state; return its id."""

    @abstractmethod
    async def complete_job(self, job_id: str, result: dict, meta: dict, stats: dict) -> None:
        """Attach the final result and mark the job COMPLETED."""

    async def fail_job(self, job_id: str, error_message: str) -> None:
        """Mark the job FAILED. Stores without a failure state may ignore this."""


class InMemoryJobStore(JobStore):
    """Keeps everything in dicts. Used for local runs and tests."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.jobs: dict[str, dict[str, Any]] = {}

    async def put_blob(self, data: bytes, filename: str) -> str | None:
        name = safe_blob_name(filename)
        self.blobs[name] = data
        return f"memory://{name}"

    async def create_job(self, name: str, file_url: str | None) -> str:
        job_id = str(uuid.uuid4())
        self.jobs[job_id] = {
            "id": job_id,
            "name": name,
            "file_url": file_url,
            "status": STATUS_PROCESSING,
            "created_at": _utc_now_naive(),
        }
        return job_id

    async def complete_job(self, job_id: str, result: dict, meta: dict, stats: dict) -> None:
        job = self.jobs[job_id]
        job.update(result=result, meta=meta, stats=stats, status=STATUS_COMPLETED, completed_at=_utc_now_naive())

    async def fail_job(self, job_id: str, error_message: str) -> None:
        job = self.jobs.get(job_id)
        if job is not None:
            job.update(status=STATUS_FAILED, error_message=error_message, completed_at=_utc_now_naive())


class SqlJobStore(JobStore):
    """PolicyJob rows via SQLAlchemy; blobs in a Google Cloud Storage bucket when one is configured."""

    def __init__(self, session_factory=None, bucket_name: str | None = None):
        if session_factory is None:
            from policylens.database import AsyncSessionLocal
            session_factory = AsyncSessionLocal
        self.session_factory = session_factory
        self.bucket_name = bucket_name

    def _upload_sync(self, data: bytes, blob_name: str, content_type: str) -> str:
        from google.cloud import storage
        client = storage.Client()
        bucket = client.bucket(self.bucket_name)
        blob = bucket.blob(blob_name)
        blob.upload_from_string(data, content_type=content_type)
        return f"gs://{self.bucket_name}/{blob_name}"

    async def put_blob(self, data: bytes, filename: str) -> str | None:
        if not self.bucket_name:
            return None
        content_type = "text/plain" if filename.lower().endswith(".txt") else "application/pdf"
        blob_name = safe_blob_name(filename)
        logger.info("Uploading %s to GCS bucket: %s", blob_name, self.bucket_name)
        return await asyncio.to_thread(self._upload_sync, data, blob_name, content_type)

    async def create_job(self, name: str, file_url: str | None) -> str:
        from policylens.models import PolicyJob
        async with self.session_factory() as db:
            job = PolicyJob(name=name[:255], file_url=file_url, status=STATUS_PROCESSING)
            db.add(job)
            await db.commit()
            await db.refresh(job)
            return str(job.id)

    async def _update(self, job_id: str, **values) -> None:
        from sqlalchemy import update
        from policylens.models import PolicyJob
        async with self.session_factory() as db:
            await db.execute(
                update(PolicyJob)
                .where(PolicyJob.id == uuid.UUID(job_id))
                .values(completed_at=_utc_now_naive(), **values)
            )
            await db.commit()

    async def complete_job(self, job_id: str, result: dict, meta: dict, stats: dict) -> None:
        await self._update(job_id, result=result, meta=meta, stats=stats, status=STATUS_COMPLETED)

    async def fail_job(self, job_id: str, error_message: str) -> None:
        await self._update(job_id, status=STATUS_FAILED, error_message=error_message[:2000])


def default_store(env: str | None = None, session_factory=None) -> JobStore | None:
    """SQL + GCS store when running in prod; None elsewhere so local runs keep ``local-`` job ids."""
    from policylens.config import ENV, GCS_BUCKET
    if (env or ENV) != "prod":
        return None
    return SqlJobStore(session_factory=session_factory, bucket_name=GCS_BUCKET or None)
