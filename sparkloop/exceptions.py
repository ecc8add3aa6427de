"""Exception types raised inside the agent loop."""

from typing import Optional


class SparkloopError(Exception):
    """Base class for all agent errors."""


class UnparseableResponse(SparkloopError):
    """A completion response could not be decoded into the expected schema."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class InvalidTransition(SparkloopError):
    """A pending outcome was asked to make a lifecycle move it cannot make."""


class PlatformError(SparkloopError):
    """The social platform rejected or failed a request."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
