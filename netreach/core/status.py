"""Connectivity status derived from reachability flags."""

from enum import Enum
from typing import Optional

from netreach.core.flags import ReachabilityFlags


class Status(Enum):
    """Classified connectivity of a target."""

    UNREACHABLE = "unreachable"
    WIFI = "wifi"
    WWAN = "wwan"

    def __str__(self):
        return self.value


def _coerce(flags: Optional[ReachabilityFlags]) -> ReachabilityFlags:
    return flags if flags is not None else ReachabilityFlags(0)


def is_connected_to_network(flags: Optional[ReachabilityFlags], allow_cellular: bool = True) -> bool:
    """
    Whether the target counts as reachable right now.

    A target behind a transient link that still requires setup is not
    connected, and neither is a cellular-only target when the caller does
    not accept metered connections.
    """
    flags = _coerce(flags)
    return (
        flags.is_reachable
        and not flags.is_connection_required_and_transient_connection
        and not (flags.is_wwan and not allow_cellular)
    )


def is_reachable_via_wifi(flags: Optional[ReachabilityFlags]) -> bool:
    flags = _coerce(flags)
    return flags.is_reachable and not flags.is_wwan


def derive_status(flags: Optional[ReachabilityFlags], allow_cellular: bool = True) -> Status:
    """
    Classify a flag snapshot.

    Args:
        flags: Snapshot to classify. None means no snapshot is available.
        allow_cellular: Whether a metered connection counts as reachable

    Returns:
        Status.UNREACHABLE, Status.WIFI or Status.WWAN
    """
    if not is_connected_to_network(flags, allow_cellular):
        return Status.UNREACHABLE
    if is_reachable_via_wifi(flags):
        return Status.WIFI
    return Status.WWAN
