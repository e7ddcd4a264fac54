"""Prometheus metrics about the publisher itself.

Design principles:
- Low-cardinality: no namespace, queue or hostname labels
- Updated from the publish loop only
"""
from prometheus_client import Counter, Gauge

# Publish cycle health
publish_cycles = Counter(
    "rq_cloudwatch_publish_cycles_total",
    "Publish cycles completed successfully"
)

publish_failures = Counter(
    "rq_cloudwatch_publish_failures_total",
    "Publish cycles aborted by a transport or collection error"
)

last_publish_timestamp = Gauge(
    "rq_cloudwatch_last_publish_timestamp_seconds",
    "Unix time of the last successful publish cycle"
)

# Transport
metrics_sent = Counter(
    "rq_cloudwatch_metrics_sent_total",
    "Metric records accepted by CloudWatch"
)

batches_sent = Counter(
    "rq_cloudwatch_batches_sent_total",
    "PutMetricData calls that succeeded"
)

credential_refreshes = Counter(
    "rq_cloudwatch_credential_refreshes_total",
    "Client credential refreshes after an expired token"
)
