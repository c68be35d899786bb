"""Run controller: produce requests, drain the pool, summarise.

The producer loop stops on whichever comes first: the count is exhausted, the
deadline passes, or the cancel token is set. Queued requests always drain
before the summary is computed.
"""

import contextlib
import signal
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from hyperbench.aggregator import Aggregator, Stats
from hyperbench.pool import TransportFactory, WorkerPool
from hyperbench.work_queue import WorkQueue

logger = structlog.get_logger()


@dataclass(frozen=True)
class CountLimit:
    count: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"count must not be negative, got {self.count}")


@dataclass(frozen=True)
class Deadline:
    duration_s: float

    def __post_init__(self) -> None:
        if self.duration_s < 0:
            raise ValueError(f"duration must not be negative, got {self.duration_s}")


Termination = CountLimit | Deadline


class StopReason(StrEnum):
    COUNT_EXHAUSTED = "count_exhausted"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    INTERRUPTED = "interrupted"


class CancelToken:
    """Cooperative cancellation flag checked by the producer loop."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@contextlib.contextmanager
def interrupt_on_sigint(token: CancelToken) -> Iterator[CancelToken]:
    """Map SIGINT/SIGTERM to ``token.cancel()`` for the duration of the block.

    Signal handlers can only be installed from the main thread; elsewhere this
    is a no-op and the caller cancels the token directly.
    """
    if threading.current_thread() is not threading.main_thread():
        yield token
        return

    def _handler(signum: int, _frame: Any) -> None:
        logger.warning("interrupt_received", signal=signal.Signals(signum).name)
        token.cancel()

    signums = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        signums.append(signal.SIGTERM)
    previous = {signum: signal.signal(signum, _handler) for signum in signums}
    try:
        yield token
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


@dataclass(frozen=True)
class RunResult:
    stats: Stats | None
    enqueued: int
    elapsed_s: float
    stop_reason: StopReason


class RunController:
    """Owns one run: its queue, its pool and its aggregator."""

    def __init__(
        self,
        parallel: int,
        termination: Termination,
        build_request: Callable[[], Any],
        transport_factory: TransportFactory,
        aggregator: Aggregator | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        if parallel < 1:
            raise ValueError(f"parallel must be >= 1, got {parallel}")
        self.parallel = parallel
        self.termination = termination
        self.build_request = build_request
        self.transport_factory = transport_factory
        self.aggregator = aggregator or Aggregator()
        self.cancel = cancel or CancelToken()
        self.enqueued = 0

    def run(self) -> RunResult:
        queue: WorkQueue[Any] = WorkQueue(self.parallel)
        pool = WorkerPool.spawn(self.parallel, queue, self.aggregator, self.transport_factory)

        logger.info(
            "run_started",
            parallel=self.parallel,
            termination=type(self.termination).__name__,
        )
        start = time.monotonic()
        self.enqueued = 0
        try:
            reason = self._produce(queue, start)
        finally:
            queue.close()
            logger.info("draining_workers", enqueued=self.enqueued, queued=len(queue))
            pool.join()
        elapsed = time.monotonic() - start

        logger.info(
            "run_finished",
            enqueued=self.enqueued,
            recorded=len(self.aggregator),
            stop_reason=str(reason),
            elapsed_s=round(elapsed, 3),
        )
        return RunResult(self.aggregator.summarize(), self.enqueued, elapsed, reason)

    def _produce(self, queue: WorkQueue, start: float) -> StopReason:
        term = self.termination
        while True:
            if self.cancel.cancelled:
                return StopReason.INTERRUPTED
            if isinstance(term, CountLimit):
                if self.enqueued >= term.count:
                    return StopReason.COUNT_EXHAUSTED
            elif time.monotonic() - start > term.duration_s:
                return StopReason.DEADLINE_EXCEEDED

            queue.put(self.build_request())
            self.enqueued += 1
