"""CloudWatch metrics publisher - periodic collect/build/send loop

Lifecycle:
- start() launches the loop in a background thread and returns immediately
- quiet() asks the loop to exit after the current cycle (no early wake-up)
- stop() asks the loop to exit, wakes it if sleeping and waits for it

A fatal transport error ends the loop for good; the host has to start the
publisher again.
"""
import time
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from rq_cloudwatch.builder import build_metrics
from rq_cloudwatch.config import PublisherConfig
from rq_cloudwatch.host import Host
from rq_cloudwatch.models import LifecycleState
from rq_cloudwatch.observability.metrics import last_publish_timestamp, publish_cycles, publish_failures
from rq_cloudwatch.transport import BatchTransport

INTERVAL = 60  # seconds

THREAD_NAME = "cloudwatch metrics publisher"


def next_tick(previous_tick: float, now: float, interval: float = INTERVAL) -> float:
    """Next publish time: one interval after the last, never in the past."""
    return max(previous_tick + interval, now)


class Publisher:
    """Publishes host stats to CloudWatch every INTERVAL seconds."""

    def __init__(
        self,
        host: Host,
        client: Any,
        config: Optional[PublisherConfig] = None,
        external_logger: Optional[Any] = None,
        interval: float = INTERVAL,
        clock: Callable[[], float] = time.time
    ):
        """Initialize the publisher.

        Args:
            host: Host adapter to collect stats from
            client: CloudWatch client wrapper shared with the transport
            config: Publisher configuration (defaults apply if not provided)
            external_logger: Optional structured logger for credential events
            interval: Seconds between publish cycles
            clock: Time source for scheduling
        """
        self.host = host
        self.client = client
        self.config = config or PublisherConfig()
        self.interval = interval
        self.clock = clock
        self.transport = BatchTransport(client, self.config.namespace, external_logger=external_logger)

        self.last_publish_at: Optional[datetime] = None
        self.last_error: Optional[BaseException] = None

        self._stop = False
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def logger(self):
        return self.host.logger

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def state(self) -> LifecycleState:
        if self._thread is None:
            return LifecycleState.NOT_STARTED
        if not self._thread.is_alive():
            return LifecycleState.STOPPED
        if self._stop:
            return LifecycleState.QUIESCING
        return LifecycleState.RUNNING

    def start(self):
        if self.running:
            return

        self.logger.debug("Starting CloudWatch Metrics Publisher")
        self._stop = False
        self._wake.clear()
        self._thread = self.host.safe_spawn(THREAD_NAME, self.run)

    def run(self):
        """Publish every interval until asked to stop.

        Runs on the publisher thread; errors from publish() propagate and
        end the loop.
        """
        self.logger.info("Started CloudWatch Metrics Publisher")

        tick = self.clock()
        while not self._stop:
            self.logger.debug("Publishing CloudWatch Metrics")
            self.publish()

            now = self.clock()
            tick = next_tick(tick, now, self.interval)
            if tick > now:
                self._wake.wait(tick - now)

        self.logger.debug("Stopped CloudWatch Metrics Publisher")

    def publish(self) -> int:
        """Run one collect/build/send cycle.

        Returns:
            Number of PutMetricData calls made
        """
        now = datetime.now(timezone.utc)
        try:
            snapshot = self.host.fetch_stats()
            metrics = build_metrics(snapshot, self.config, now)
            calls = self.transport.send(metrics)
        except Exception as e:
            self.last_error = e
            publish_failures.inc()
            raise

        self.last_publish_at = now
        self.last_error = None
        publish_cycles.inc()
        last_publish_timestamp.set(now.timestamp())
        return calls

    def quiet(self):
        self.logger.debug("Quieting CloudWatch Metrics Publisher")
        self._stop = True

    def stop(self):
        """Stop the loop and wait for the thread to exit.

        Safe to call repeatedly, before start(), or after the loop died.
        """
        self.logger.debug("Stopping CloudWatch Metrics Publisher")
        self._stop = True
        self._wake.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
