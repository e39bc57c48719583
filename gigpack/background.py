"""Fire-and-forget helpers for work that must not block or fail a save."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="gigpack-bg")


def _log_failure(name: str) -> Callable[[Future], None]:
    def _cb(fut: Future) -> None:
        exc = fut.exception()
        if exc is not None:
            logger.error("Background task %s failed: %s", name, exc)

    return _cb


def submit(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
    """Run ``func`` on the background pool; failures are logged, never raised."""
    future = _executor.submit(func, *args, **kwargs)
    future.add_done_callback(_log_failure(getattr(func, "__name__", "task")))
    return future
