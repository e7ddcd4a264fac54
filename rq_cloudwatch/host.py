"""Host interface - the job-processing system the publisher reports on

The publisher only needs three things from a host: a stats snapshot, a way
to spawn its background loop, and a logger. Lifecycle hooks let the host's
controller drive start/quiet/stop.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from rq_cloudwatch.exceptions import UnknownLifecycleEventError
from rq_cloudwatch.models import StatsSnapshot

LIFECYCLE_EVENTS = ("startup", "leader", "quiet", "shutdown")


class LifecycleHooks:
    """Registry of lifecycle callbacks keyed by event name."""

    def __init__(self):
        self._callbacks: Dict[str, List[Callable[[], None]]] = {event: [] for event in LIFECYCLE_EVENTS}

    def register(self, event: str, callback: Callable[[], None]):
        """Register a callback for a lifecycle event.

        Args:
            event: One of startup, leader, quiet, shutdown
            callback: Zero-argument callable

        Raises:
            UnknownLifecycleEventError: If event is not a lifecycle event
        """
        self._get(event).append(callback)

    def fire(self, event: str):
        """Run callbacks for an event in registration order."""
        for callback in list(self._get(event)):
            callback()

    def registered(self, event: str) -> List[Callable[[], None]]:
        return list(self._get(event))

    def _get(self, event: str) -> List[Callable[[], None]]:
        if event not in self._callbacks:
            raise UnknownLifecycleEventError(event)
        return self._callbacks[event]


class Host(ABC):
    """Base class for host adapters.

    Subclasses implement fetch_stats(). Hosts with a cluster-wide leader set
    supports_leader_election and fire "leader" on the elected node.
    """

    supports_leader_election = False

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.hooks = LifecycleHooks()

    @abstractmethod
    def fetch_stats(self) -> StatsSnapshot:
        """Return a fresh snapshot of the host's queues and workers."""

    def on(self, event: str, callback: Callable[[], None]):
        self.hooks.register(event, callback)

    def fire(self, event: str):
        self.logger.debug(f"Firing lifecycle event: {event}")
        self.hooks.fire(event)

    def safe_spawn(self, name: str, fn: Callable[[], None]) -> threading.Thread:
        """Run fn in a named daemon thread.

        An exception escaping fn is logged with its traceback and ends the
        thread; nothing restarts it.
        """
        def watchdog():
            try:
                fn()
            except Exception:
                self.logger.exception(f"Thread '{name}' crashed")

        thread = threading.Thread(target=watchdog, name=name, daemon=True)
        thread.start()
        return thread
