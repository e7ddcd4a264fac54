"""RQ host adapter - collects queue and worker stats from Redis

RQ workers run one job at a time, so workers are grouped into process
descriptors by (hostname, queues): concurrency is the number of workers in
the group and busy is how many of them are running a job. The tag is the
comma-joined queue list, so utilization can be tracked per queue set.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from redis import Redis
from rq import Queue, Worker

from rq_cloudwatch.host import Host
from rq_cloudwatch.models import ProcessDescriptor, QueueDescriptor, StatsSnapshot

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class RQHost(Host):
    """Host adapter for an RQ deployment."""

    def __init__(
        self,
        connection: Redis,
        logger: Optional[logging.Logger] = None,
        default_queue: str = "default"
    ):
        """Initialize the adapter.

        Args:
            connection: Redis connection shared with the RQ workers
            logger: Logger for lifecycle and crash messages
            default_queue: Queue whose latency is reported as DefaultQueueLatency
        """
        super().__init__(logger or logging.getLogger(__name__))
        self.connection = connection
        self.default_queue = default_queue

    @classmethod
    def from_env(cls, logger: Optional[logging.Logger] = None) -> "RQHost":
        redis_url = os.getenv("REDIS_URL", DEFAULT_REDIS_URL)
        return cls(Redis.from_url(redis_url), logger=logger)

    def fetch_stats(self) -> StatsSnapshot:
        """Collect a snapshot of queues, registries and workers."""
        now = datetime.now(timezone.utc)
        queues = Queue.all(connection=self.connection)
        workers = Worker.all(connection=self.connection)

        queue_descriptors = [
            QueueDescriptor(name=q.name, size=q.count, latency_seconds=queue_latency(q, now))
            for q in queues
        ]

        default_latency = next(
            (q.latency_seconds for q in queue_descriptors if q.name == self.default_queue),
            0.0,
        )

        busy_workers = sum(1 for w in workers if _is_busy(w))
        processes = tuple(group_workers(workers))

        return StatsSnapshot(
            processed=sum(w.successful_job_count or 0 for w in workers),
            failed=sum(w.failed_job_count or 0 for w in workers),
            enqueued=sum(q.size for q in queue_descriptors),
            scheduled_size=sum(len(q.scheduled_job_registry) for q in queues),
            retry_size=0,  # RQ folds retries into the scheduled registry
            dead_size=sum(len(q.failed_job_registry) for q in queues),
            workers_size=busy_workers,
            processes_size=len(processes),
            default_queue_latency_seconds=default_latency,
            processes=processes,
            queues=tuple(queue_descriptors),
        )


def queue_latency(queue: Queue, now: datetime) -> float:
    """Seconds the oldest job in the queue has been waiting.

    Returns 0.0 for an empty queue or if the oldest job has vanished.
    """
    job_ids = queue.get_job_ids(0, 1)
    if not job_ids:
        return 0.0

    job = queue.fetch_job(job_ids[0])
    if job is None or job.enqueued_at is None:
        return 0.0

    enqueued_at = job.enqueued_at
    if enqueued_at.tzinfo is None:
        enqueued_at = enqueued_at.replace(tzinfo=timezone.utc)

    return max(0.0, (now - enqueued_at).total_seconds())


def group_workers(workers: List[Worker]) -> List[ProcessDescriptor]:
    """Group workers into process descriptors by hostname and queue set."""
    groups: Dict[Tuple[str, str], List[Worker]] = {}
    for worker in workers:
        hostname = worker.hostname or worker.name
        tag = ",".join(worker.queue_names())
        groups.setdefault((hostname, tag), []).append(worker)

    return [
        ProcessDescriptor(
            hostname=hostname,
            tag=tag or None,
            busy=sum(1 for w in members if _is_busy(w)),
            concurrency=len(members),
        )
        for (hostname, tag), members in groups.items()
    ]


def _is_busy(worker: Worker) -> bool:
    return worker.get_state() == "busy"
