"""Bounded-time execution of bot decisions."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

TIMEOUT = "timeout"
BOT_ERROR = "bot-error"


@dataclass(frozen=True)
class DispatchResult:
    value: Any = None
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class DecisionDispatcher:
    """Run bot callbacks on a worker pool and wait at most ``timeout`` seconds.

    With ``timeout=None`` the callback runs inline on the calling thread.
    A timed-out callback keeps running in its worker; its late answer is
    discarded.
    """

    def __init__(self, timeout: Optional[float] = 5.0, *, max_workers: int = 8) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive or None.")
        self.timeout = timeout
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="ddz-decision"
                )
            return self._executor

    def call(self, label: str, fn: Callable[..., Any], *args: Any) -> DispatchResult:
        if self.timeout is None:
            try:
                return DispatchResult(value=fn(*args))
            except Exception:
                logger.warning("Decision %s raised", label, exc_info=True)
                return DispatchResult(failure=BOT_ERROR)

        future = self._pool().submit(fn, *args)
        try:
            return DispatchResult(value=future.result(timeout=self.timeout))
        except FutureTimeout:
            future.cancel()
            logger.warning("Decision %s timed out after %.2fs", label, self.timeout)
            return DispatchResult(failure=TIMEOUT)
        except Exception:
            logger.warning("Decision %s raised", label, exc_info=True)
            return DispatchResult(failure=BOT_ERROR)

    def close(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    def __enter__(self) -> "DecisionDispatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


INLINE = DecisionDispatcher(timeout=None)
