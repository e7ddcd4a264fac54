"""Publish RQ queue and worker stats to Amazon CloudWatch."""
__version__ = "0.1.0"

from rq_cloudwatch.activation import enable  # noqa: E402
from rq_cloudwatch.config import PublisherConfig  # noqa: E402
from rq_cloudwatch.publisher import Publisher  # noqa: E402

__all__ = ["enable", "Publisher", "PublisherConfig", "__version__"]
