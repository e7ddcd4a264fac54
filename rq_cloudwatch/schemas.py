"""Pydantic schemas (DTOs) for the operator API"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from rq_cloudwatch.models import LifecycleState


class PublisherStatus(BaseModel):
    """Publisher state as seen by operators."""
    state: LifecycleState
    running: bool
    namespace: str
    last_publish_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @classmethod
    def from_publisher(cls, publisher):
        """Convert a live Publisher to a status snapshot."""
        error = publisher.last_error
        return cls(
            state=publisher.state,
            running=publisher.running,
            namespace=publisher.config.namespace,
            last_publish_at=publisher.last_publish_at,
            last_error=f"{type(error).__name__}: {error}" if error else None
        )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    publisher: PublisherStatus
