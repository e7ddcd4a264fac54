"""Pydantic models for stats snapshots and CloudWatch metric records"""
import enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class MetricUnit(str, enum.Enum):
    """CloudWatch units used by the publisher."""
    COUNT = "Count"
    SECONDS = "Seconds"
    PERCENT = "Percent"


class LifecycleState(str, enum.Enum):
    """Publisher lifecycle state."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    QUIESCING = "quiescing"  # Stop requested, loop still finishing
    STOPPED = "stopped"


class ProcessDescriptor(BaseModel):
    """A worker process as reported by the host."""
    model_config = ConfigDict(frozen=True)

    hostname: str
    tag: Optional[str] = None
    busy: int = Field(ge=0)
    concurrency: int = Field(ge=0)


class QueueDescriptor(BaseModel):
    """A queue as reported by the host."""
    model_config = ConfigDict(frozen=True)

    name: str
    size: int = Field(ge=0)
    latency_seconds: float = Field(ge=0)


class StatsSnapshot(BaseModel):
    """Point-in-time stats for one publish cycle."""
    model_config = ConfigDict(frozen=True)

    processed: int = Field(ge=0)
    failed: int = Field(ge=0)
    enqueued: int = Field(ge=0)
    scheduled_size: int = Field(ge=0)
    retry_size: int = Field(ge=0)
    dead_size: int = Field(ge=0)
    workers_size: int = Field(ge=0)
    processes_size: int = Field(ge=0)
    default_queue_latency_seconds: float = Field(default=0.0, ge=0)
    processes: Tuple[ProcessDescriptor, ...] = ()
    queues: Tuple[QueueDescriptor, ...] = ()


class Dimension(BaseModel):
    """Name/value tag attached to a metric."""
    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class MetricRecord(BaseModel):
    """A single CloudWatch data point."""
    metric_name: str
    timestamp: datetime
    value: float
    unit: MetricUnit
    dimensions: List[Dimension] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the metrics-service call contract.

        Timestamps are rendered as ISO-8601 UTC instants.
        """
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return {
            "metric_name": self.metric_name,
            "timestamp": timestamp.astimezone(timezone.utc).isoformat(),
            "value": float(self.value),
            "unit": self.unit.value,
            "dimensions": [{"name": d.name, "value": d.value} for d in self.dimensions],
        }
