"""Social platform clients."""

from .client import MockPlatformClient, PlatformClient, PostResult
from .x_client import RateLimiter, XClient

__all__ = [
    "MockPlatformClient",
    "PlatformClient",
    "PostResult",
    "RateLimiter",
    "XClient",
]
