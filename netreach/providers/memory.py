"""In-memory reachability provider with scriptable flags and failures."""

import threading
from typing import Dict, List, Optional

from loguru import logger

from netreach.core.flags import ReachabilityFlags
from netreach.providers.base import BaseHandle, is_ip_literal, is_valid_hostname


class MemoryHandle(BaseHandle):
    """Handle whose flags are set by its MemoryProvider."""

    def __init__(self, provider: "MemoryProvider", target: str):
        super().__init__(target)
        self._provider = provider

    def get_flags(self) -> Optional[ReachabilityFlags]:
        if self.released or self._provider.fail_flag_fetch:
            return None
        return self._provider.flags_for(self.target)

    def set_callback(self, callback) -> bool:
        if callback is not None and self._provider.fail_callout:
            return False
        return super().set_callback(callback)

    def set_dispatch_queue(self, dispatch_queue) -> bool:
        if dispatch_queue is not None and self._provider.fail_dispatch:
            return False
        return super().set_dispatch_queue(dispatch_queue)

    def release(self) -> None:
        if not self.released:
            self._provider._on_release(self)
        super().release()


class MemoryProvider:
    """
    Reachability provider backed by flags held in memory.

    Flags are global (seen by every handle) unless overridden per target
    with set_flags(..., target=...). Failure switches simulate a platform
    that refuses handle creation, callout registration, queue binding or
    flag reads.
    """

    def __init__(self, flags: ReachabilityFlags = ReachabilityFlags(0)):
        self._lock = threading.Lock()
        self._flags = ReachabilityFlags(flags)
        self._target_flags: Dict[str, ReachabilityFlags] = {}
        self._handles: List[MemoryHandle] = []
        self.released = 0

        self.refuse_creation = False
        self.fail_callout = False
        self.fail_dispatch = False
        self.fail_flag_fetch = False

    @property
    def handles(self) -> List[MemoryHandle]:
        """Handles that have not been released."""
        with self._lock:
            return list(self._handles)

    def create_with_name(self, hostname: str) -> Optional[MemoryHandle]:
        if self.refuse_creation or not is_valid_hostname(hostname):
            logger.debug(f"[MemoryProvider] Refused handle for name {hostname!r}")
            return None
        return self._create(hostname)

    def create_with_address(self, address: str) -> Optional[MemoryHandle]:
        if self.refuse_creation or not is_ip_literal(address):
            logger.debug(f"[MemoryProvider] Refused handle for address {address!r}")
            return None
        return self._create(address)

    def flags_for(self, target: str) -> ReachabilityFlags:
        with self._lock:
            return self._target_flags.get(target, self._flags)

    def set_flags(self, flags: ReachabilityFlags, target: Optional[str] = None) -> None:
        """
        Change the flags and fire the callout of every affected handle.

        Args:
            flags: New flags
            target: Only affect handles for this target. None sets the
                    flags seen by every target without an override.
        """
        flags = ReachabilityFlags(flags)
        with self._lock:
            if target is None:
                self._flags = flags
            else:
                self._target_flags[target] = flags
            handles = list(self._handles)

        for handle in handles:
            if target is None or handle.target == target:
                handle._deliver(self.flags_for(handle.target))

    def _create(self, target: str) -> MemoryHandle:
        handle = MemoryHandle(self, target)
        with self._lock:
            self._handles.append(handle)
        return handle

    def _on_release(self, handle: MemoryHandle) -> None:
        with self._lock:
            if handle in self._handles:
                self._handles.remove(handle)
                self.released += 1
