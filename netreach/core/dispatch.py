"""Serial Queue - Strictly ordered, single-worker processing context."""

import queue
import threading
from typing import Any, Callable, Optional

from loguru import logger

_CLOSE = object()


class SerialQueue:
    """
    Runs submitted callables one at a time, in submission order, on a
    dedicated daemon thread.

    Everything that touches a monitor's flag snapshot is funneled through
    one of these, so comparison-and-update never runs concurrently.
    """

    def __init__(self, label: str = "SerialQueue"):
        self.label = label
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._worker, daemon=True, name=label)
        self._thread.start()

    def submit(self, fn: Callable[..., Any], *args, **kwargs) -> bool:
        """
        Queue a callable for execution.

        Returns:
            True if queued, False if the queue has been closed
        """
        with self._lock:
            if self._closed:
                logger.debug(f"[SerialQueue] {self.label}: dropped task after close")
                return False
            self._queue.put((fn, args, kwargs))
        return True

    def is_current(self) -> bool:
        """True when called from this queue's worker thread."""
        return threading.current_thread() is self._thread

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every task submitted so far has run.

        Returns immediately when called from the worker itself.

        Returns:
            True if the queue drained, False on timeout
        """
        if self.is_current():
            return True

        drained = threading.Event()
        with self._lock:
            if self._closed:
                return self._wait_worker(timeout)
            self._queue.put((drained.set, (), {}))
        return drained.wait(timeout)

    def close(self, wait: bool = False, timeout: Optional[float] = 2.0) -> None:
        """
        Stop accepting tasks. Already queued tasks still run.

        Args:
            wait: Block until the worker has finished the remaining tasks
            timeout: Maximum seconds to wait when wait is True
        """
        with self._lock:
            if not self._closed:
                self._closed = True
                self._queue.put(_CLOSE)

        if wait:
            self._wait_worker(timeout)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def _wait_worker(self, timeout: Optional[float]) -> bool:
        if self.is_current():
            return True
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning(f"[SerialQueue] {self.label}: worker did not finish in time")
            return False
        return True

    def _worker(self):
        while True:
            item = self._queue.get()
            if item is _CLOSE:
                break

            fn, args, kwargs = item
            try:
                fn(*args, **kwargs)
            except Exception as e:
                logger.exception(f"[SerialQueue] {self.label}: task failed: {e}")
            # Idle worker must not keep the last task's owner alive
            del item, fn, args, kwargs
