"""Fire-and-forget background execution for dispatcher and worker runs."""

import concurrent.futures
from collections.abc import Callable

from docimport.core.utils import get_logger

logger = get_logger("doc-import.queue")


class TaskQueue:
    """Runs submitted callables on a thread pool; ``submit`` returns as soon as the task is queued.

    With ``inline=True`` tasks run synchronously inside ``submit``.
    """

    def __init__(self, max_workers: int = 6, inline: bool = False) -> None:
        """Initialize the queue with the size of its thread pool."""
        self.inline = inline
        self._executor = (
            None
            if inline
            else concurrent.futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="doc-import")
        )

    def submit(self, fn: Callable[..., object], *args: object) -> None:
        """Schedule ``fn(*args)`` and return without waiting for it."""
        name = getattr(fn, "__qualname__", repr(fn))
        if self._executor is None:
            fn(*args)
            return
        future = self._executor.submit(fn, *args)
        future.add_done_callback(lambda f: self._log_failure(name, f))

    @staticmethod
    def _log_failure(name: str, future: concurrent.futures.Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error(f"Background task {name} failed", exc_info=exc)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks and optionally wait for running ones."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
