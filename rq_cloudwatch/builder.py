"""Metrics builder - turns a stats snapshot into CloudWatch metric records

Record order is stable: scalar counters, capacity, utilization (fleet,
per tag, per process), per-queue size and latency.
"""
import math
from datetime import datetime
from typing import Dict, List, Optional

from rq_cloudwatch import utilization
from rq_cloudwatch.config import PublisherConfig
from rq_cloudwatch.models import (
    Dimension,
    MetricRecord,
    MetricUnit,
    ProcessDescriptor,
    StatsSnapshot,
)


def _record(
    name: str,
    value: float,
    unit: MetricUnit,
    now: datetime,
    dimensions: Optional[List[Dimension]] = None
) -> MetricRecord:
    return MetricRecord(
        metric_name=name,
        timestamp=now,
        value=value,
        unit=unit,
        dimensions=dimensions or [],
    )


def build_metrics(snapshot: StatsSnapshot, config: PublisherConfig, now: datetime) -> List[MetricRecord]:
    """Build every metric record for one publish cycle.

    Args:
        snapshot: Stats collected from the host for this cycle
        config: Publisher configuration
        now: Cycle start instant, shared by every record

    Returns:
        Ordered list of metric records
    """
    processes = list(snapshot.processes)

    metrics = [
        _record("ProcessedJobs", snapshot.processed, MetricUnit.COUNT, now),
        _record("FailedJobs", snapshot.failed, MetricUnit.COUNT, now),
        _record("EnqueuedJobs", snapshot.enqueued, MetricUnit.COUNT, now),
        _record("ScheduledJobs", snapshot.scheduled_size, MetricUnit.COUNT, now),
        _record("RetryJobs", snapshot.retry_size, MetricUnit.COUNT, now),
        _record("DeadJobs", snapshot.dead_size, MetricUnit.COUNT, now),
        _record("Workers", snapshot.workers_size, MetricUnit.COUNT, now),
        _record("Processes", snapshot.processes_size, MetricUnit.COUNT, now),
        _record("DefaultQueueLatency", snapshot.default_queue_latency_seconds, MetricUnit.SECONDS, now),
        _record("Capacity", utilization.capacity(processes), MetricUnit.COUNT, now),
    ]

    fleet_utilization = utilization.mean(processes) * 100.0
    if not math.isnan(fleet_utilization):
        metrics.append(_record("Utilization", fleet_utilization, MetricUnit.PERCENT, now))

    for tag, tag_processes in _group_by_tag(processes).items():
        tag_utilization = utilization.mean(tag_processes) * 100.0
        if math.isnan(tag_utilization):
            continue
        metrics.append(_record(
            "Utilization", tag_utilization, MetricUnit.PERCENT, now,
            [Dimension(name="Tag", value=tag)],
        ))

    if config.process_metrics:
        for process in processes:
            process_utilization = utilization.ratio(process) * 100.0
            if math.isnan(process_utilization):
                continue

            process_dimensions = [Dimension(name="Hostname", value=process.hostname)]
            if process.tag:
                process_dimensions.append(Dimension(name="Tag", value=process.tag))

            metrics.append(_record(
                "Utilization", process_utilization, MetricUnit.PERCENT, now, process_dimensions,
            ))

    for queue in snapshot.queues:
        queue_dimension = Dimension(name="QueueName", value=queue.name)
        metrics.append(_record("QueueSize", queue.size, MetricUnit.COUNT, now, [queue_dimension]))
        metrics.append(_record("QueueLatency", queue.latency_seconds, MetricUnit.SECONDS, now, [queue_dimension]))

    additional = config.dimension_list()
    if additional:
        for metric in metrics:
            metric.dimensions.extend(additional)

    return metrics


def _group_by_tag(processes: List[ProcessDescriptor]) -> Dict[str, List[ProcessDescriptor]]:
    """Group processes by tag in first-seen order, skipping untagged ones."""
    groups: Dict[str, List[ProcessDescriptor]] = {}
    for process in processes:
        if not process.tag:
            continue
        groups.setdefault(process.tag, []).append(process)
    return groups
