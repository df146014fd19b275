"""
Platform reachability providers.

- ReachabilityProvider / ReachabilityHandle: the protocol a backend implements
- InterfacePollingProvider: host backend deriving flags from interface state
- MemoryProvider: scriptable in-memory backend
"""

from typing import TYPE_CHECKING, Optional

from netreach.providers.base import (
    DEFAULT_ROUTE_ADDRESS,
    BaseHandle,
    ReachabilityHandle,
    ReachabilityProvider,
    is_valid_hostname,
)
from netreach.providers.interface_poller import InterfacePollingProvider
from netreach.providers.memory import MemoryProvider

if TYPE_CHECKING:
    from netreach.core.config import Config


def default_provider(config: Optional["Config"] = None) -> ReachabilityProvider:
    """Host provider, tuned from the configuration when one is given."""
    if config is None:
        return InterfacePollingProvider()

    return InterfacePollingProvider(
        poll_interval=config.get_poll_interval(),
        cellular_patterns=config.get_interface_patterns("cellular"),
        transient_patterns=config.get_interface_patterns("transient"),
    )


__all__ = [
    "DEFAULT_ROUTE_ADDRESS",
    "BaseHandle",
    "InterfacePollingProvider",
    "MemoryProvider",
    "ReachabilityHandle",
    "ReachabilityProvider",
    "default_provider",
    "is_valid_hostname",
]
