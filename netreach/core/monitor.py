"""Reachability Monitor - Detects reachability flag changes for one target."""

import threading
import weakref
from typing import Callable, List, Optional

from loguru import logger

from netreach.core.dispatch import SerialQueue
from netreach.core.errors import CalloutRegistrationFailedError, DispatchBindingFailedError
from netreach.core.flags import ReachabilityFlags
from netreach.core.resolver import TargetResolver, describe_target
from netreach.core.status import Status, derive_status, is_connected_to_network, is_reachable_via_wifi
from netreach.providers.base import ReachabilityHandle, ReachabilityProvider

Observer = Callable[["ReachabilityMonitor"], None]


class ReachabilityMonitor:
    """
    Watches one target and notifies observers when its flags change.

    The monitor owns its platform handle. Flag updates are processed on a
    dedicated SerialQueue, one at a time and in arrival order, so the
    snapshot has a single writer. Observers receive the monitor itself and
    re-read whatever they need (status, predicates) from it.

    Lifecycle:
        monitor = ReachabilityMonitor(TargetResolver(provider), "example.com")
        monitor.subscribe(lambda m: print(m.status))
        monitor.start()
        ...
        monitor.stop()

    The monitor is also a context manager; leaving the block stops it, and
    a monitor that is garbage collected releases its handle.
    """

    def __init__(
        self,
        resolver: TargetResolver,
        hostname: Optional[str] = None,
        allow_cellular: bool = True,
        on_change: Optional[Observer] = None,
    ):
        """
        Resolve the target and create a stopped monitor.

        Args:
            resolver: Resolver producing platform handles
            hostname: Host to watch. None or "" watches the default route.
            allow_cellular: Whether a metered (WWAN) connection counts as reachable
            on_change: Observer registered before any event can fire

        Raises:
            ResolveError: The platform refused to create a handle
        """
        self._lock = threading.Lock()
        self._handle: Optional[ReachabilityHandle] = None
        self._queue: Optional[SerialQueue] = None
        self._running = False

        self.hostname = hostname or None
        self.allow_cellular = allow_cellular
        self._resolver = resolver
        self._reachability_flags: Optional[ReachabilityFlags] = None
        self._observers: List[Observer] = []
        self._observers_lock = threading.Lock()
        # Held across compare, update and notify; spans queues of successive runs
        self._processing_lock = threading.Lock()

        if on_change is not None:
            self._observers.append(on_change)

        self._handle = resolver.resolve(self.hostname)

    def __repr__(self):
        state = "running" if self._running else "stopped"
        return f"<ReachabilityMonitor {describe_target(self.hostname)} {state}>"

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    def __del__(self):
        # Constructor may have failed before the lifecycle state existed
        if getattr(self, "_lock", None) is not None:
            self.stop()

    # Lifecycle

    def start(self):
        """
        Start delivering flag changes.

        No-op if already running. After stop() the target is resolved again.

        Raises:
            ResolveError: Re-resolving a released handle failed
            CalloutRegistrationFailedError: The platform refused the callout
            DispatchBindingFailedError: The platform refused the queue binding
        """
        with self._lock:
            if self._running:
                return

            if self._handle is None:
                self._handle = self._resolver.resolve(self.hostname)

            handle = self._handle
            target = describe_target(self.hostname)
            dispatch_queue = SerialQueue(label=f"ReachabilityQueue[{target}]")
            self._queue = dispatch_queue

            monitor_ref = weakref.ref(self)

            def callout(flags: ReachabilityFlags):
                monitor = monitor_ref()
                if monitor is not None:
                    monitor._evaluate(dispatch_queue)

            if not handle.set_callback(callout):
                self._teardown()
                logger.error(f"[ReachabilityMonitor] Callout registration failed for {target}")
                raise CalloutRegistrationFailedError()

            if not handle.set_dispatch_queue(self._queue):
                self._teardown()
                logger.error(f"[ReachabilityMonitor] Dispatch queue binding failed for {target}")
                raise DispatchBindingFailedError()

            self._running = True
            dispatch_queue.submit(self._evaluate, dispatch_queue, True)

        logger.info(f"[ReachabilityMonitor] Started ({target})")

    def stop(self):
        """
        Detach from the platform and release the handle.

        Safe to call repeatedly and on a monitor that never started. Work
        already queued may still run, but no new callouts are delivered.
        """
        with self._lock:
            was_running = self._running
            self._teardown()

        if was_running:
            logger.info(f"[ReachabilityMonitor] Stopped ({describe_target(self.hostname)})")

    def _teardown(self):
        """Unwind registrations. Caller holds self._lock."""
        handle, dispatch_queue = self._handle, self._queue
        self._handle = None
        self._queue = None
        self._running = False

        if handle is not None:
            handle.set_callback(None)
            handle.set_dispatch_queue(None)
            handle.release()
        if dispatch_queue is not None:
            dispatch_queue.close()

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every flag update queued so far has been processed.

        Returns:
            True when idle (or not running), False on timeout
        """
        with self._lock:
            dispatch_queue = self._queue
        if dispatch_queue is None:
            return True
        return dispatch_queue.join(timeout)

    # Change detection

    def flags_changed(self):
        """
        Compare the current flags with the last snapshot and notify on change.

        Normally runs on the monitor's queue. A failed flag read leaves the
        snapshot untouched and emits nothing.
        """
        self._evaluate(None)

    def _evaluate(self, source: Optional[SerialQueue], initial: bool = False):
        """
        Evaluate flags for the run that owns ``source``.

        Tasks left on the queue of an earlier run are dropped. Evaluations
        never overlap, even across a stop/start while an observer is still
        busy on the previous run's queue.

        Args:
            source: Queue the task was delivered on, None for a direct call
            initial: First evaluation of a run; forgets the previous snapshot
        """
        with self._processing_lock:
            if not self._running:
                return
            if source is not None and source is not self._queue:
                return
            if initial:
                self._reachability_flags = None

            flags = self.flags
            if flags is None:
                logger.debug(f"[ReachabilityMonitor] Flags unavailable for {describe_target(self.hostname)}")
                return
            if flags == self._reachability_flags:
                return

            self._reachability_flags = flags
            logger.debug(
                f"[ReachabilityMonitor] Flags changed for {describe_target(self.hostname)}: "
                f"{flags.describe()} -> {derive_status(flags, self.allow_cellular)}"
            )
            self._notify()

    def subscribe(self, observer: Observer) -> None:
        with self._observers_lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        with self._observers_lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _notify(self):
        with self._observers_lock:
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(self)
            except Exception as e:
                logger.error(f"[ReachabilityMonitor] Error in change observer: {e}")

    # Queries

    @property
    def flags(self) -> Optional[ReachabilityFlags]:
        """Current flags read from the platform, or None without a handle."""
        handle = self._handle
        if handle is None:
            return None
        return handle.get_flags()

    @property
    def reachability_flags(self) -> Optional[ReachabilityFlags]:
        """Last snapshot that produced a change event."""
        return self._reachability_flags

    def _flag(self, name: str) -> bool:
        flags = self.flags
        return flags is not None and getattr(flags, name)

    @property
    def is_reachable(self) -> bool:
        return self._flag("is_reachable")

    @property
    def connection_required(self) -> bool:
        return self._flag("connection_required")

    @property
    def transient_connection(self) -> bool:
        return self._flag("transient_connection")

    @property
    def connection_on_traffic(self) -> bool:
        return self._flag("connection_on_traffic")

    @property
    def intervention_required(self) -> bool:
        return self._flag("intervention_required")

    @property
    def connection_on_demand(self) -> bool:
        return self._flag("connection_on_demand")

    @property
    def is_local_address(self) -> bool:
        return self._flag("is_local_address")

    @property
    def is_direct(self) -> bool:
        return self._flag("is_direct")

    @property
    def is_wwan(self) -> bool:
        return self._flag("is_wwan")

    @property
    def is_connection_required_and_transient_connection(self) -> bool:
        return self._flag("is_connection_required_and_transient_connection")

    @property
    def is_connected_to_network(self) -> bool:
        return is_connected_to_network(self.flags, self.allow_cellular)

    @property
    def is_reachable_via_wifi(self) -> bool:
        return is_reachable_via_wifi(self.flags)

    @property
    def status(self) -> Status:
        return derive_status(self.flags, self.allow_cellular)


def new_monitor(
    hostname: Optional[str] = None,
    provider: Optional[ReachabilityProvider] = None,
    allow_cellular: bool = True,
    on_change: Optional[Observer] = None,
) -> ReachabilityMonitor:
    """
    Build a stopped monitor for a hostname or the default route.

    Args:
        hostname: Host to watch, None for the default route
        provider: Platform provider; the host interface poller when None
        allow_cellular: Whether a metered connection counts as reachable
        on_change: Optional change observer

    Raises:
        ResolveError: The platform refused the target
    """
    if provider is None:
        from netreach.providers import default_provider

        provider = default_provider()

    return ReachabilityMonitor(
        TargetResolver(provider),
        hostname=hostname,
        allow_cellular=allow_cellular,
        on_change=on_change,
    )
