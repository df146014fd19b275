"""
Interface Poller - Host reachability provider built on local interface state.

Flags are derived from psutil's view of the network interfaces: which are
up, which addresses and subnets they carry, and whether their names mark
them as cellular or transient (PPP-style) links. No packets are sent and
no names are looked up.

A handle with both a callout and a dispatch queue polls in a daemon thread
and delivers only when the derived flags change.
"""

import fnmatch
import ipaddress
import socket
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Union

import psutil
from loguru import logger

from netreach.core.constants import (
    CELLULAR_INTERFACE_PATTERNS,
    DEFAULT_POLL_INTERVAL,
    POLLER_JOIN_TIMEOUT,
    TRANSIENT_INTERFACE_PATTERNS,
)
from netreach.core.flags import ReachabilityFlags
from netreach.providers.base import BaseHandle, is_ip_literal, is_valid_hostname

IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

LOCALHOST_NAMES = {"localhost", "localhost.", "localhost.localdomain"}


@dataclass
class InterfaceState:
    """One network interface as seen at a point in time."""

    name: str
    is_up: bool
    addresses: List[IPInterface] = field(default_factory=list)
    cellular: bool = False
    transient: bool = False

    @property
    def is_loopback(self) -> bool:
        if self.name in ("lo", "lo0"):
            return True
        return bool(self.addresses) and all(a.ip.is_loopback for a in self.addresses)

    @property
    def routable_addresses(self) -> List[IPInterface]:
        return [a for a in self.addresses if not a.ip.is_loopback and not a.ip.is_link_local]


def _matches(name: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def _parse_address(address: str, netmask: Optional[str]) -> Optional[IPInterface]:
    # IPv6 addresses may carry a zone suffix ("fe80::1%eth0")
    address = address.split("%", 1)[0]
    try:
        if netmask:
            # IPv6 interfaces only accept a prefix length, not a mask
            prefix = bin(int(ipaddress.ip_address(netmask))).count("1")
            return ipaddress.ip_interface(f"{address}/{prefix}")
        return ipaddress.ip_interface(address)
    except ValueError:
        return None


def read_interfaces(
    cellular_patterns: Sequence[str] = tuple(CELLULAR_INTERFACE_PATTERNS),
    transient_patterns: Sequence[str] = tuple(TRANSIENT_INTERFACE_PATTERNS),
) -> List[InterfaceState]:
    """
    Snapshot the host's interfaces.

    Raises:
        psutil.Error, OSError: The interface tables could not be read
    """
    stats = psutil.net_if_stats()
    addrs = psutil.net_if_addrs()

    interfaces = []
    for name in sorted(set(stats) | set(addrs)):
        addresses = []
        for snic in addrs.get(name, []):
            if snic.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            parsed = _parse_address(snic.address, snic.netmask)
            if parsed is not None:
                addresses.append(parsed)

        stat = stats.get(name)
        interfaces.append(
            InterfaceState(
                name=name,
                is_up=bool(stat and stat.isup),
                addresses=addresses,
                cellular=_matches(name, cellular_patterns),
                transient=_matches(name, transient_patterns),
            )
        )
    return interfaces


def _link_flags(interface: InterfaceState) -> ReachabilityFlags:
    flags = ReachabilityFlags(0)
    if interface.cellular:
        flags |= ReachabilityFlags.IS_WWAN
    if interface.transient:
        flags |= ReachabilityFlags.TRANSIENT_CONNECTION
    return flags


def _route_flags(interfaces: Sequence[InterfaceState]) -> ReachabilityFlags:
    candidates = [i for i in interfaces if i.is_up and not i.is_loopback and i.routable_addresses]
    if candidates:
        # Standing non-metered links first, cellular last
        chosen = min(candidates, key=lambda i: (i.cellular, i.transient))
        return ReachabilityFlags.REACHABLE | _link_flags(chosen)

    dormant = [i for i in interfaces if not i.is_up and i.transient]
    if dormant:
        return (
            ReachabilityFlags.REACHABLE
            | ReachabilityFlags.CONNECTION_REQUIRED
            | ReachabilityFlags.TRANSIENT_CONNECTION
            | _link_flags(dormant[0])
        )

    return ReachabilityFlags(0)


def _target_address(target: str) -> Optional[IPAddress]:
    if target.lower() in LOCALHOST_NAMES:
        return ipaddress.ip_address("127.0.0.1")
    if is_ip_literal(target):
        return ipaddress.ip_address(target)
    return None


def compute_flags(target: str, interfaces: Sequence[InterfaceState]) -> ReachabilityFlags:
    """
    Derive reachability flags for a target from an interface snapshot.

    Args:
        target: Hostname, IP literal or the unspecified address (default route)
        interfaces: Snapshot from read_interfaces()

    Returns:
        Flags for the target. Names that are not IP literals are judged by
        the default route, since resolving them is out of scope.
    """
    address = _target_address(target)
    if address is None or address.is_unspecified:
        return _route_flags(interfaces)

    local = ReachabilityFlags.REACHABLE | ReachabilityFlags.IS_LOCAL_ADDRESS | ReachabilityFlags.IS_DIRECT
    if address.is_loopback:
        return local

    up = [i for i in interfaces if i.is_up]
    for interface in up:
        if any(a.ip == address for a in interface.addresses):
            return local

    for interface in up:
        for a in interface.routable_addresses:
            if a.version == address.version and address in a.network:
                return ReachabilityFlags.REACHABLE | ReachabilityFlags.IS_DIRECT | _link_flags(interface)

    return _route_flags(interfaces)


class InterfacePollingHandle(BaseHandle):
    """Handle that re-derives its target's flags on every poll."""

    def __init__(self, provider: "InterfacePollingProvider", target: str):
        super().__init__(target)
        self._provider = provider
        self._poll_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def get_flags(self) -> Optional[ReachabilityFlags]:
        if self.released:
            return None
        try:
            interfaces = self._provider.read_interfaces()
        except (psutil.Error, OSError) as e:
            logger.debug(f"[InterfacePoller] Failed to read interfaces: {e}")
            return None
        return compute_flags(self.target, interfaces)

    def _schedule_changed(self) -> None:
        if self.is_scheduled:
            self._start_polling()
        else:
            self._stop_polling()

    def _start_polling(self):
        with self._poll_lock:
            if self._thread and self._thread.is_alive():
                return

            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._poll_loop,
                args=(self._stop_event,),
                daemon=True,
                name=f"InterfacePoller[{self.target}]",
            )
            self._thread.start()
            logger.debug(
                f"[InterfacePoller] Polling {self.target} every {self._provider.poll_interval}s"
            )

    def _stop_polling(self):
        with self._poll_lock:
            thread, stop_event = self._thread, self._stop_event
            self._thread = None
            self._stop_event = None

        if stop_event is None:
            return

        stop_event.set()
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=POLLER_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning(f"[InterfacePoller] Poller for {self.target} did not stop cleanly")

    def _poll_loop(self, stop_event: threading.Event):
        # No baseline: the first successful read is always delivered and
        # the receiving monitor discards it if nothing changed
        last: Optional[ReachabilityFlags] = None
        while not stop_event.is_set():
            flags = self.get_flags()
            if flags is not None and flags != last:
                last = flags
                self._deliver(flags)
            stop_event.wait(self._provider.poll_interval)


class InterfacePollingProvider:
    """Reachability provider for the local host, backed by psutil."""

    def __init__(
        self,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cellular_patterns: Optional[Sequence[str]] = None,
        transient_patterns: Optional[Sequence[str]] = None,
    ):
        self.poll_interval = poll_interval
        self.cellular_patterns = list(cellular_patterns or CELLULAR_INTERFACE_PATTERNS)
        self.transient_patterns = list(transient_patterns or TRANSIENT_INTERFACE_PATTERNS)

    def read_interfaces(self) -> List[InterfaceState]:
        return read_interfaces(self.cellular_patterns, self.transient_patterns)

    def create_with_name(self, hostname: str) -> Optional[InterfacePollingHandle]:
        if not is_valid_hostname(hostname):
            logger.debug(f"[InterfacePoller] Rejected hostname {hostname!r}")
            return None
        return InterfacePollingHandle(self, hostname)

    def create_with_address(self, address: str) -> Optional[InterfacePollingHandle]:
        if not is_ip_literal(address):
            logger.debug(f"[InterfacePoller] Rejected address {address!r}")
            return None
        return InterfacePollingHandle(self, address)
