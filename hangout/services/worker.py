"""Fire-and-forget execution of side effects that must not slow a request down."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from loguru import logger


class BackgroundWorker:
    def __init__(self, max_workers: int = 4, inline: bool = False):
        # inline runs jobs on the caller's thread; tests use it to observe side effects
        self.inline = inline
        self._executor: Optional[ThreadPoolExecutor] = None
        if not inline:
            self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="hangout-worker")

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[Future]:
        if self.inline:
            self._run(name, fn, *args, **kwargs)
            return None

        if self._executor is None:
            logger.warning(f"Worker shut down, dropping job {name}")
            return None

        return self._executor.submit(self._run, name, fn, *args, **kwargs)

    @staticmethod
    def _run(name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        try:
            fn(*args, **kwargs)
            logger.debug(f"Background job done | {name}")
        except Exception:
            logger.exception(f"Background job failed | {name}")

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
