"""Retry/backoff executor for external model calls.

Every completion and embedding request goes through one
:class:`ResilientInvoker`. It runs operations on a single worker thread so at
most one request is ever in flight, bounds each attempt with a timeout, and
retries only failures tagged :attr:`FailureKind.RATE_LIMIT`.

Backoff for the failed attempt ``n`` (0-based) is ``min(base * 2**n, cap)``
with ``base = 1s`` and ``cap = 60s``.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TypeVar

from .errors import FailureKind, ModelCallError, RateLimitExceededError
from .llm import CALL_TIMEOUT_S
from .logging_setup import get_logger

T = TypeVar("T")

BACKOFF_BASE_S: float = 1.0
BACKOFF_CAP_S: float = 60.0
DEFAULT_MAX_ATTEMPTS: int = 5
_START_POLL_S = 0.05

_logger = get_logger("expense_tracker.retry")


def backoff_delay(attempt: int, *, base: float = BACKOFF_BASE_S, cap: float = BACKOFF_CAP_S) -> float:
    """Delay before retrying after failed attempt ``attempt`` (0-based)."""

    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    # Avoid float overflow on absurd attempt counts; the cap wins long before.
    if attempt >= 64:
        return cap
    return min(base * (2**attempt), cap)


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, ModelCallError) and exc.kind is FailureKind.RATE_LIMIT


class ResilientInvoker:
    """Serialize, time-bound and retry zero-argument model calls."""

    def __init__(
        self,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float = CALL_TIMEOUT_S,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be a positive integer")
        self.max_attempts = max_attempts
        self.timeout = timeout
        self._sleep = sleep
        # One worker: the endpoint accepts a single concurrent request.
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="model-call")

    def _run_once(self, operation: Callable[[], T]) -> T:
        started = threading.Event()

        def _run() -> T:
            started.set()
            return operation()

        future = self._executor.submit(_run)
        # A call abandoned after its own timeout may still hold the worker; the
        # deadline for this call starts only once it is actually running.
        while not started.wait(_START_POLL_S):
            if future.done():
                break
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise ModelCallError(
                f"model call exceeded {self.timeout:g}s timeout", kind=FailureKind.TIMEOUT
            ) from e

    def invoke(self, operation: Callable[[], T], max_attempts: int | None = None) -> T:
        """Run ``operation`` until it succeeds or stops being rate limited.

        Raises :class:`RateLimitExceededError` after ``max_attempts`` rate
        limited attempts; any other error propagates on first occurrence.
        """

        attempts = max_attempts if max_attempts is not None else self.max_attempts
        if attempts <= 0:
            raise ValueError("max_attempts must be a positive integer")

        last_error: BaseException | None = None
        for attempt in range(attempts):
            t0 = time.perf_counter()
            try:
                return self._run_once(operation)
            except Exception as e:
                dt_ms = (time.perf_counter() - t0) * 1000.0
                if not _is_rate_limited(e):
                    _logger.error(
                        "invoke:failed_terminal attempt=%d latency_ms=%.2f error=%s",
                        attempt + 1,
                        dt_ms,
                        e.__class__.__name__,
                    )
                    raise
                last_error = e
                if attempt + 1 >= attempts:
                    break
                delay = backoff_delay(attempt)
                _logger.warning(
                    "invoke:retry attempt=%d latency_ms=%.2f delay_s=%.2f",
                    attempt + 1,
                    dt_ms,
                    delay,
                )
                self._sleep(delay)

        assert last_error is not None
        _logger.error("invoke:rate_limit_exhausted attempts=%d", attempts)
        raise RateLimitExceededError(
            f"rate limited on all {attempts} attempts: {last_error}",
            attempts=attempts,
            last_error=last_error,
        ) from last_error

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


__all__ = [
    "BACKOFF_BASE_S",
    "BACKOFF_CAP_S",
    "DEFAULT_MAX_ATTEMPTS",
    "ResilientInvoker",
    "backoff_delay",
]
