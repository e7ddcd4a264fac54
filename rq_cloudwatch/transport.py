"""Batch transport - sends metric records to CloudWatch in bounded chunks

PutMetricData accepts at most 20 data points per call. Chunks are sent
strictly in order; an expired security token is retried with a credential
refresh, anything else aborts the remaining chunks.
"""
import enum
import logging
from typing import Any, Iterator, List, Optional, Sequence

from botocore.exceptions import ClientError

from rq_cloudwatch.models import MetricRecord
from rq_cloudwatch.observability.metrics import batches_sent, credential_refreshes, metrics_sent

logger = logging.getLogger(__name__)

BATCH_SIZE = 20
MAX_TOKEN_RETRIES = 3
EXPIRED_TOKEN_CODES = frozenset({"ExpiredToken", "ExpiredTokenException"})
EXTERNAL_LOG_TOPIC = "aws_credentials"


class RetryDecision(str, enum.Enum):
    """What to do after a failed send."""
    RETRY_WITH_REFRESH = "retry_with_refresh"
    FATAL = "fatal"


def classify(error: BaseException) -> RetryDecision:
    """Classify a send failure.

    Only an expired security token is worth retrying, and only after the
    client credentials have been refreshed.
    """
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code")
        if code in EXPIRED_TOKEN_CODES:
            return RetryDecision.RETRY_WITH_REFRESH
    return RetryDecision.FATAL


def chunked(records: Sequence[MetricRecord], size: int = BATCH_SIZE) -> Iterator[List[MetricRecord]]:
    """Yield consecutive chunks of at most `size` records."""
    for start in range(0, len(records), size):
        yield list(records[start:start + size])


class BatchTransport:
    """Sends metric records through a shared CloudWatch client.

    The client must provide `put_metric_data(namespace=..., metric_data=...)`
    and `refresh_credentials()`. It is only ever touched from the publish loop.
    """

    def __init__(self, client: Any, namespace: str, external_logger: Optional[Any] = None):
        """Initialize the transport.

        Args:
            client: CloudWatch client wrapper (see rq_cloudwatch.aws.CloudWatchClient)
            namespace: CloudWatch namespace
            external_logger: Optional structured logger that also receives
                credential retry events
        """
        self.client = client
        self.namespace = namespace
        self.external_logger = external_logger

    def send(self, records: Sequence[MetricRecord]) -> int:
        """Send all records, one PutMetricData call per chunk.

        Returns:
            Number of calls that succeeded

        Raises:
            Exception: The send error, for fatal failures or after retries
                are exhausted. Later chunks are not attempted.
        """
        calls = 0
        for chunk in chunked(records):
            self._send_chunk(chunk)
            calls += 1
        return calls

    def _send_chunk(self, chunk: List[MetricRecord]):
        metric_data = [record.to_wire() for record in chunk]
        retry_count = 0

        while True:
            try:
                self.client.put_metric_data(namespace=self.namespace, metric_data=metric_data)
            except Exception as e:
                if classify(e) is RetryDecision.FATAL:
                    raise

                if retry_count >= MAX_TOKEN_RETRIES:
                    self._log(
                        logging.ERROR,
                        f"Exceeded retry limit for {self._client_name} security token refresh. Error: {e}"
                    )
                    raise

                retry_count += 1
                self._log(
                    logging.WARNING,
                    f"{self._client_name} security token expired. "
                    f"Refreshing client and retrying... (attempt {retry_count})"
                )
                self.refresh_client_credentials()
                continue

            batches_sent.inc()
            metrics_sent.inc(len(chunk))
            return

    def refresh_client_credentials(self):
        """Refresh credentials on the shared client before a resend."""
        self._log(logging.INFO, f"Refreshing {self._client_name} credentials...")
        self.client.refresh_credentials()
        credential_refreshes.inc()

    @property
    def _client_name(self) -> str:
        return type(self.client).__name__

    def _log(self, level: int, message: str):
        logger.log(level, message)
        if self.external_logger is not None:
            method = getattr(self.external_logger, logging.getLevelName(level).lower())
            method(message, topic=EXTERNAL_LOG_TOPIC)
