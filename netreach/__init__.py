"""netreach - Reachability monitoring for hostnames and the default route."""

__version__ = "0.1.0"
__author__ = "netreach contributors"
__description__ = "Classifies target reachability as unreachable, wifi or wwan and reports changes"

from netreach.core import (
    ReachabilityFlags,
    ReachabilityMonitor,
    Status,
    TargetResolver,
    new_monitor,
)
from netreach.core.errors import (
    CalloutRegistrationFailedError,
    CreationFailedError,
    DispatchBindingFailedError,
    InitFailedError,
    MonitorError,
    ResolveError,
)

__all__ = [
    "CalloutRegistrationFailedError",
    "CreationFailedError",
    "DispatchBindingFailedError",
    "InitFailedError",
    "MonitorError",
    "ReachabilityFlags",
    "ReachabilityMonitor",
    "ResolveError",
    "Status",
    "TargetResolver",
    "new_monitor",
    "__version__",
]
