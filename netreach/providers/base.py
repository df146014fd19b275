"""Reachability Provider - Protocol and shared handle bookkeeping for platform backends."""

import ipaddress
import re
import threading
from typing import Callable, Optional, Protocol

from loguru import logger

from netreach.core.dispatch import SerialQueue
from netreach.core.flags import ReachabilityFlags

DEFAULT_ROUTE_ADDRESS = "0.0.0.0"
MAX_HOSTNAME_LENGTH = 253

_LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")

Callout = Callable[[ReachabilityFlags], None]


def is_ip_literal(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def is_valid_hostname(name: Optional[str]) -> bool:
    """Accept IP literals and RFC 1123 host names (a trailing dot is allowed)."""
    if not name or not isinstance(name, str):
        return False
    if is_ip_literal(name):
        return True
    if name.endswith("."):
        name = name[:-1]
    if not name or len(name) > MAX_HOSTNAME_LENGTH:
        return False
    return all(_LABEL_RE.match(label) for label in name.split("."))


class ReachabilityHandle(Protocol):
    """Platform handle bound to one target."""

    def get_flags(self) -> Optional[ReachabilityFlags]:
        """Current flags, or None if they cannot be read."""
        ...

    def set_callback(self, callback: Optional[Callout]) -> bool:
        """Register (or with None, clear) the change callout."""
        ...

    def set_dispatch_queue(self, dispatch_queue: Optional[SerialQueue]) -> bool:
        """Bind (or with None, unbind) the queue callouts are delivered on."""
        ...

    def release(self) -> None:
        ...


class ReachabilityProvider(Protocol):
    """Platform reachability service - creates handles for targets."""

    def create_with_name(self, hostname: str) -> Optional[ReachabilityHandle]:
        """Handle bound to a hostname. None if the platform refuses."""
        ...

    def create_with_address(self, address: str) -> Optional[ReachabilityHandle]:
        """Handle bound to an address. None if the platform refuses."""
        ...


class BaseHandle:
    """
    Callback/queue bookkeeping shared by the shipped providers.

    Subclasses implement get_flags() and call _deliver() when the flags
    change. Delivery only happens while both a callback and a queue are
    set, and never after release().
    """

    def __init__(self, target: str):
        self.target = target
        self._callback: Optional[Callout] = None
        self._dispatch_queue: Optional[SerialQueue] = None
        self._released = False
        self._handle_lock = threading.Lock()

    @property
    def released(self) -> bool:
        with self._handle_lock:
            return self._released

    @property
    def is_scheduled(self) -> bool:
        """True while callouts would be delivered."""
        with self._handle_lock:
            return not self._released and self._callback is not None and self._dispatch_queue is not None

    def get_flags(self) -> Optional[ReachabilityFlags]:
        raise NotImplementedError

    def set_callback(self, callback: Optional[Callout]) -> bool:
        with self._handle_lock:
            if self._released:
                return False
            self._callback = callback
        self._schedule_changed()
        return True

    def set_dispatch_queue(self, dispatch_queue: Optional[SerialQueue]) -> bool:
        with self._handle_lock:
            if self._released:
                return False
            self._dispatch_queue = dispatch_queue
        self._schedule_changed()
        return True

    def release(self) -> None:
        with self._handle_lock:
            if self._released:
                return
            self._released = True
            self._callback = None
            self._dispatch_queue = None
        self._schedule_changed()
        logger.debug(f"[{type(self).__name__}] Released handle for {self.target}")

    def _deliver(self, flags: ReachabilityFlags) -> bool:
        """Hand the flags to the registered callout on its queue."""
        with self._handle_lock:
            if self._released or self._callback is None or self._dispatch_queue is None:
                return False
            callback = self._callback
            dispatch_queue = self._dispatch_queue
        return dispatch_queue.submit(callback, flags)

    def _schedule_changed(self) -> None:
        """Hook for subclasses that start or stop delivery machinery."""
        pass
