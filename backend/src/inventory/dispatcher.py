"""Best-effort background queue for stock side effects.

Status writes hand stock adjustments to this queue and return at once.
The outcome of each job is logged; a failing job never reaches the caller.
"""

import contextvars
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class BestEffortDispatcher:
    """Fire-and-forget executor for side effects that must not block callers.

    Example:
        dispatcher = BestEffortDispatcher(max_workers=2)
        dispatcher.dispatch("stock-decrement", apply_effect, row_id="12")
    """

    def __init__(self, max_workers: int = 2, name: str = "stock"):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._pending = 0
        self._idle = threading.Condition(self._lock)
        self._closed = False

    def dispatch(self, label: str, fn: Callable, *args, **kwargs) -> Optional[Future]:
        """Queue fn(*args, **kwargs) and return without waiting.

        The current context (request id) is carried into the worker thread.

        Returns:
            The job's Future, or None if the dispatcher is shut down
        """
        with self._lock:
            if self._closed:
                logger.warning(f"Dispatcher closed, dropping job {label}")
                return None
            self._pending += 1

        context = contextvars.copy_context()
        try:
            future = self._executor.submit(context.run, fn, *args, **kwargs)
        except RuntimeError:
            self._job_finished()
            logger.warning(f"Executor refused job {label}", exc_info=True)
            return None

        future.add_done_callback(lambda f: self._log_outcome(label, f))
        return future

    def _log_outcome(self, label: str, future: Future) -> None:
        try:
            exc = future.exception()
            if exc is not None:
                logger.error(
                    f"Background job {label} failed: {exc}",
                    exc_info=(type(exc), exc, exc.__traceback__),
                )
            else:
                logger.debug(f"Background job {label} finished: {future.result()!r}")
        finally:
            self._job_finished()

    def _job_finished(self) -> None:
        with self._idle:
            self._pending -= 1
            if self._pending == 0:
                self._idle.notify_all()

    @property
    def pending(self) -> int:
        with self._lock:
            return self._pending

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued job has finished.

        Returns:
            True if the queue drained within the timeout
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
