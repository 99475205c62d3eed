"""Device access for the sand table dashboard."""

from .client import DeviceClient
from .mock import MockSandTable

__all__ = ["DeviceClient", "MockSandTable"]
