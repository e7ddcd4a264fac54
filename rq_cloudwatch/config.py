"""Publisher configuration."""
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from rq_cloudwatch.exceptions import InvalidDimensionError
from rq_cloudwatch.models import Dimension

DEFAULT_NAMESPACE = "RQ"

_TRUTHY = ("true", "1", "yes")


class PublisherConfig(BaseModel):
    """Settings for a Publisher instance.

    Attributes:
        namespace: CloudWatch namespace for every data point
        process_metrics: Emit a Utilization metric per worker process
        additional_dimensions: Fixed dimensions appended to every record
    """
    namespace: str = DEFAULT_NAMESPACE
    process_metrics: bool = True
    additional_dimensions: Dict[str, str] = Field(default_factory=dict)

    @field_validator("additional_dimensions", mode="before")
    @classmethod
    def _stringify_dimensions(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value

    def dimension_list(self) -> List[Dimension]:
        """Additional dimensions as Dimension pairs, in mapping order."""
        return [Dimension(name=k, value=v) for k, v in self.additional_dimensions.items()]

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "PublisherConfig":
        """Build configuration from environment variables.

        Environment variables:
            - RQ_CLOUDWATCH_NAMESPACE → namespace
            - RQ_CLOUDWATCH_PROCESS_METRICS → process_metrics (true/1/yes)
            - RQ_CLOUDWATCH_DIMENSIONS → additional_dimensions ("k=v,k2=v2")
        """
        env = os.environ if environ is None else environ

        return cls(
            namespace=env.get("RQ_CLOUDWATCH_NAMESPACE", DEFAULT_NAMESPACE),
            process_metrics=env.get("RQ_CLOUDWATCH_PROCESS_METRICS", "true").lower() in _TRUTHY,
            additional_dimensions=parse_dimensions(env.get("RQ_CLOUDWATCH_DIMENSIONS", "")),
        )


def parse_dimensions(raw: str) -> Dict[str, str]:
    """Parse "name=value,name2=value2" into an ordered mapping.

    Blank entries are ignored.

    Raises:
        InvalidDimensionError: If an entry has no "=" or an empty name
    """
    dimensions: Dict[str, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, value = entry.partition("=")
        if not sep or not name.strip():
            raise InvalidDimensionError(entry, source="RQ_CLOUDWATCH_DIMENSIONS")
        dimensions[name.strip()] = value.strip()
    return dimensions
