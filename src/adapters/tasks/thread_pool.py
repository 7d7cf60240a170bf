"""
Thread pool task runner - Implements TaskRunner protocol.

Fire-and-forget hand-off for best-effort background work such as the
first confirmation email after sign-up. Tasks run on a bounded
ThreadPoolExecutor; their outcome is never reported to the caller that
spawned them. Failures are logged, not retried.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

logger = logging.getLogger(__name__)


class ThreadPoolTaskRunner:
    """
    Implements TaskRunner protocol on a ThreadPoolExecutor.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Call shutdown() on application exit to let queued tasks finish.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tasks")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def spawn(self, name: str, fn: Callable[..., Any], *args: Any) -> None:
        """
        Submit fn(*args) and return immediately.

        If the pool is already shut down the task is dropped with a warning.
        """
        try:
            future = self._executor.submit(self._run, name, fn, *args)
        except RuntimeError:
            logger.warning("Task runner is shut down, dropping task: %s", name)
            return

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def join(self, timeout: float | None = None) -> None:
        """Wait for every task spawned so far. Intended for tests and shutdown."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(self, name: str, fn: Callable[..., Any], *args: Any) -> None:
        logger.debug("Background task started: %s", name)
        try:
            fn(*args)
        except Exception:
            logger.exception("Background task failed: %s", name)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
