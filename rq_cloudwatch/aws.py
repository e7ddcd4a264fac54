"""AWS configuration and the CloudWatch client used by the publisher.

Credentials come from the standard boto3 chain (environment variables
including AWS_SESSION_TOKEN, shared config, container and instance roles)
unless keys are set explicitly on AWSConfig. The client wrapper owns its
boto3 session so credentials can be re-resolved after a security token
expires.
"""
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import boto3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AWSConfig:
    """AWS client settings.

    Attributes:
        region: AWS region
        access_key_id: Explicit access key ID (None resolves via the boto3 chain)
        secret_access_key: Explicit secret access key
        session_token: Explicit session token for temporary credentials
        endpoint_url: Custom endpoint for LocalStack/testing
    """

    region: str
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    endpoint_url: Optional[str] = None

    def session_kwargs(self) -> Dict[str, str]:
        """Build kwargs for boto3.Session creation."""
        kwargs = {"region_name": self.region}
        if self.access_key_id:
            kwargs["aws_access_key_id"] = self.access_key_id
        if self.secret_access_key:
            kwargs["aws_secret_access_key"] = self.secret_access_key
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        return kwargs


def get_aws_config() -> AWSConfig:
    """Load AWS configuration from environment variables.

    Credentials are not read here; boto3 resolves them on every
    session build, so a refresh picks up rotated keys and tokens.

    Environment variables (checked in order):
        - RQ_CLOUDWATCH_AWS_REGION / AWS_DEFAULT_REGION / AWS_REGION → region
        - RQ_CLOUDWATCH_ENDPOINT_URL / AWS_ENDPOINT_URL → endpoint_url
    """
    region = (
        os.environ.get("RQ_CLOUDWATCH_AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
        or os.environ.get("AWS_REGION")
        or "us-east-1"
    )

    return AWSConfig(
        region=region,
        endpoint_url=os.environ.get("RQ_CLOUDWATCH_ENDPOINT_URL")
        or os.environ.get("AWS_ENDPOINT_URL"),
    )


def to_cloudwatch_datum(record: Dict[str, Any]) -> Dict[str, Any]:
    """Map a wire record to the PutMetricData MetricDatum shape."""
    datum = {
        "MetricName": record["metric_name"],
        "Timestamp": record["timestamp"],
        "Value": record["value"],
        "Unit": record["unit"],
    }
    if record.get("dimensions"):
        datum["Dimensions"] = [
            {"Name": d["name"], "Value": d["value"]} for d in record["dimensions"]
        ]
    return datum


class CloudWatchClient:
    """Thin wrapper around a boto3 CloudWatch client.

    With no explicit config the environment is re-read on every rebuild.
    """

    def __init__(self, config: Optional[AWSConfig] = None, session_factory=boto3.Session):
        self._explicit_config = config
        self._session_factory = session_factory
        self.config = None
        self.session = None
        self._client = self._build_client()

    @classmethod
    def from_config(cls, config: Optional[AWSConfig] = None) -> "CloudWatchClient":
        return cls(config)

    def _build_client(self) -> Any:
        self.config = self._explicit_config or get_aws_config()
        self.session = self._session_factory(**self.config.session_kwargs())
        kwargs = {}
        if self.config.endpoint_url:
            kwargs["endpoint_url"] = self.config.endpoint_url
        return self.session.client("cloudwatch", **kwargs)

    def put_metric_data(self, namespace: str, metric_data: List[Dict[str, Any]]) -> Any:
        return self._client.put_metric_data(
            Namespace=namespace,
            MetricData=[to_cloudwatch_datum(record) for record in metric_data],
        )

    def refresh_credentials(self):
        """Re-resolve credentials by rebuilding the session and client."""
        self._client = self._build_client()
        logger.debug(f"Rebuilt CloudWatch client (region={self.config.region})")
