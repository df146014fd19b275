"""Core functionality for netreach."""

from netreach.core.dispatch import SerialQueue
from netreach.core.errors import (
    CalloutRegistrationFailedError,
    CreationFailedError,
    DispatchBindingFailedError,
    InitFailedError,
    MonitorError,
    ReachabilityError,
    ResolveError,
)
from netreach.core.flags import ReachabilityFlags
from netreach.core.status import Status, derive_status
from netreach.core.resolver import TargetResolver
from netreach.core.monitor import ReachabilityMonitor, new_monitor

__all__ = [
    "CalloutRegistrationFailedError",
    "CreationFailedError",
    "DispatchBindingFailedError",
    "InitFailedError",
    "MonitorError",
    "ReachabilityError",
    "ReachabilityFlags",
    "ReachabilityMonitor",
    "ResolveError",
    "SerialQueue",
    "Status",
    "TargetResolver",
    "derive_status",
    "new_monitor",
]
