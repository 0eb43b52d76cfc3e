"""
SQLAlchemy Models for the linkdesk call log

Orders and submissions live in the Order API; this database only keeps
an audit trail of the calls the review backend makes against it:
1. Every reviewer mutation (assign, switch, approve, reject...)
2. Every refetch and bulk-analysis lookup
3. Timing and failure details for debugging
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, Index, JSON
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in dev and tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid_str() -> str:
    return str(uuid4())


class APICallLog(Base):
    """One outbound call to the Order API."""
    __tablename__ = "api_calls"

    id = Column(String(36), primary_key=True, default=_uuid_str)

    # What was called
    order_id = Column(String(64), nullable=True)
    operation = Column(String(50), nullable=False)  # assign_target_page, switch_pool, ...
    method = Column(String(10), nullable=False)
    endpoint = Column(String(500), nullable=False)
    request_payload = Column(JSONType, nullable=True)

    # Outcome
    http_status = Column(Integer)
    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text)
    response_time_ms = Column(Integer)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_api_calls_order", "order_id", "created_at"),
        Index("idx_api_calls_operation", "operation"),
    )

    def __repr__(self):
        return f"<APICallLog {self.method} {self.endpoint} ({self.http_status})>"
