"""Domain exceptions for rq-cloudwatch"""
from typing import Optional


class UnknownLifecycleEventError(ValueError):
    """Raised when a hook is registered or fired for an unsupported event."""

    def __init__(self, event: str):
        super().__init__(f"Unknown lifecycle event: {event}")
        self.event = event


class InvalidDimensionError(ValueError):
    """Raised when an additional dimension entry cannot be parsed."""

    def __init__(self, entry: str, source: Optional[str] = None):
        message = f"Invalid dimension entry '{entry}' (expected name=value)"
        if source:
            message = f"{message} in {source}"
        super().__init__(message)
        self.entry = entry
        self.source = source
