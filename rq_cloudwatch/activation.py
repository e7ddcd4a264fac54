"""Wire a Publisher into a host's lifecycle."""
import logging
from typing import Any, Dict, Optional

from rq_cloudwatch.config import DEFAULT_NAMESPACE, PublisherConfig
from rq_cloudwatch.host import Host
from rq_cloudwatch.publisher import Publisher

logger = logging.getLogger(__name__)


def enable(
    client: Optional[Any] = None,
    namespace: str = DEFAULT_NAMESPACE,
    process_metrics: bool = True,
    additional_dimensions: Optional[Dict[str, Any]] = None,
    external_logger: Optional[Any] = None,
    host: Optional[Host] = None,
    config: Optional[PublisherConfig] = None
) -> Publisher:
    """Create a publisher and register it with the host's lifecycle hooks.

    Hosts with leader election publish from the leader only. Otherwise every
    node publishes, which is redundant but harmless.

    Args:
        client: CloudWatch client wrapper (built from the environment if not provided)
        namespace: CloudWatch namespace
        process_metrics: Emit per-process utilization
        additional_dimensions: Dimensions appended to every metric
        external_logger: Optional structured logger for credential events
        host: Host adapter (RQHost from the environment if not provided)
        config: Full configuration; overrides the individual settings above

    Returns:
        The registered Publisher
    """
    if host is None:
        from rq_cloudwatch.rq_host import RQHost
        host = RQHost.from_env()

    if client is None:
        from rq_cloudwatch.aws import CloudWatchClient
        client = CloudWatchClient.from_config()

    if config is None:
        config = PublisherConfig(
            namespace=namespace,
            process_metrics=process_metrics,
            additional_dimensions=additional_dimensions or {},
        )

    publisher = Publisher(host, client, config=config, external_logger=external_logger)

    def on_quiet():
        if publisher.running:
            publisher.quiet()

    def on_shutdown():
        if publisher.running:
            publisher.stop()

    start_event = "leader" if host.supports_leader_election else "startup"
    host.on(start_event, publisher.start)
    host.on("quiet", on_quiet)
    host.on("shutdown", on_shutdown)

    logger.info(f"Enabled CloudWatch metrics publisher (namespace={config.namespace}, start_on={start_event})")
    return publisher
