"""Test doubles for the host, the CloudWatch client and loggers."""
import os
import sys
import threading
import time

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from botocore.exceptions import ClientError  # noqa: E402

from rq_cloudwatch.host import Host  # noqa: E402
from rq_cloudwatch.models import ProcessDescriptor, QueueDescriptor, StatsSnapshot  # noqa: E402


def make_snapshot(**overrides) -> StatsSnapshot:
    """Snapshot matching the documented end-to-end example."""
    values = dict(
        processed=100,
        failed=5,
        enqueued=10,
        scheduled_size=0,
        retry_size=2,
        dead_size=1,
        workers_size=3,
        processes_size=2,
        default_queue_latency_seconds=0.5,
        processes=(
            ProcessDescriptor(hostname="a", busy=0, concurrency=10),
            ProcessDescriptor(hostname="b", busy=5, concurrency=10),
        ),
        queues=(QueueDescriptor(name="default", size=7, latency_seconds=1.2),),
    )
    values.update(overrides)
    return StatsSnapshot(**values)


def expired_token_error() -> ClientError:
    return ClientError(
        {"Error": {"Code": "ExpiredToken", "Message": "The security token included in the request is expired"}},
        "PutMetricData",
    )


def throttling_error() -> ClientError:
    return ClientError(
        {"Error": {"Code": "Throttling", "Message": "Rate exceeded"}},
        "PutMetricData",
    )


class FakeHost(Host):
    """Host returning a fixed snapshot; counts fetches."""

    def __init__(self, snapshot=None, supports_leader_election=False, on_fetch=None):
        super().__init__()
        self.snapshot = snapshot or make_snapshot()
        self.supports_leader_election = supports_leader_election
        self.on_fetch = on_fetch
        self.fetch_count = 0
        self.fetched = threading.Event()

    def fetch_stats(self):
        self.fetch_count += 1
        if self.on_fetch:
            self.on_fetch(self.fetch_count)
        self.fetched.set()
        return self.snapshot


class FakeCloudWatch:
    """Records put_metric_data calls; raises queued failures in order.

    Each entry in `failures` is consumed by one call: an exception is raised,
    None lets that call succeed.
    """

    def __init__(self, failures=None):
        self.calls = []
        self.failures = list(failures or [])
        self.refreshes = 0

    def put_metric_data(self, namespace, metric_data):
        self.calls.append({"namespace": namespace, "metric_data": metric_data})
        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure

    def refresh_credentials(self):
        self.refreshes += 1


class RecordingLogger:
    """Structured logger stand-in capturing (level, message, fields)."""

    def __init__(self):
        self.events = []

    def __getattr__(self, level):
        def log(message, **fields):
            self.events.append((level, message, fields))
        return log


def wait_for(predicate, timeout=5.0):
    """Poll until predicate() is true or the timeout expires."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
