from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from datetime import datetime
import uuid
from policylens.database import Base


class PolicyJob(Base):
    """One processed policy document and its final result."""
    __tablename__ = "policy_jobs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)  # original filename
    file_url = Column(String(500), nullable=True)  # gs:// path, NULL when blob upload failed
    status = Column(String(20), default="PROCESSING", nullable=False)  # PROCESSING, COMPLETED, FAILED
    result = Column(JSONB, nullable=True)  # full job output
    meta = Column(JSONB, nullable=True)  # policy metadata + chunk counts
    stats = Column(JSONB, nullable=True)  # confidence / rule engine / reconciliation stats
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
