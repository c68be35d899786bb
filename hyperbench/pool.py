"""Fixed-size worker pool draining a shared :class:`WorkQueue`.

Workers are transport-agnostic: each owns one :class:`Transport` obtained from
a factory and reports every attempt to a sink exposing ``record(duration_ns,
success)``.
"""

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from hyperbench.work_queue import QueueClosed, WorkQueue

logger = structlog.get_logger()


@dataclass(frozen=True)
class Attempt:
    duration_ns: int
    success: bool
    error: str | None = None


class Transport(Protocol):
    def perform(self, request: Any) -> Attempt: ...

    def close(self) -> None: ...


class Sink(Protocol):
    def record(self, duration_ns: int, success: bool) -> None: ...


class BaseTransport(ABC):
    """Timer discipline shared by every transport.

    Only :meth:`send` is timed. Decoding and classification happen after the
    clock stops, and any failure in either step yields an unsuccessful
    :class:`Attempt` instead of an exception.
    """

    name = "transport"

    @abstractmethod
    def send(self, request: Any) -> Any:
        """Perform the blocking network operation and return the raw response."""
        ...

    @abstractmethod
    def is_success(self, response: Any) -> bool:
        """Decode *response* and decide whether the write landed."""
        ...

    def perform(self, request: Any) -> Attempt:
        start = time.perf_counter_ns()
        try:
            response = self.send(request)
        except Exception as exc:
            duration = time.perf_counter_ns() - start
            logger.warning(
                "request_send_failed",
                transport=self.name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return Attempt(duration, False, error=str(exc))
        duration = time.perf_counter_ns() - start

        try:
            ok = self.is_success(response)
        except Exception as exc:
            logger.warning(
                "response_decode_failed",
                transport=self.name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return Attempt(duration, False, error=str(exc))
        return Attempt(duration, ok)

    def close(self) -> None:
        pass


TransportFactory = Callable[[int], Transport]


class WorkerPool:
    """``n`` threads sharing one queue; faster workers simply pull more items."""

    def __init__(
        self,
        size: int,
        queue: WorkQueue,
        sink: Sink,
        transport_factory: TransportFactory,
    ) -> None:
        if size < 1:
            raise ValueError(f"pool size must be >= 1, got {size}")
        self.size = size
        self._queue = queue
        self._sink = sink
        self._factory = transport_factory
        self._transports: list[Transport] = []
        self._threads: list[threading.Thread] = []
        self._started = False

    @classmethod
    def spawn(
        cls,
        n: int,
        queue: WorkQueue,
        sink: Sink,
        transport_factory: TransportFactory,
    ) -> "WorkerPool":
        pool = cls(n, queue, sink, transport_factory)
        pool.start()
        return pool

    def start(self) -> None:
        """Build every transport, then start the threads.

        Transports are created up front so a connection failure aborts the run
        before any work is dispatched.
        """
        if self._started:
            raise RuntimeError("pool already started")
        try:
            for index in range(self.size):
                self._transports.append(self._factory(index))
        except Exception:
            self._close_transports()
            raise

        for index, transport in enumerate(self._transports):
            thread = threading.Thread(
                target=self._work,
                args=(index, transport),
                name=f"hyperbench-worker-{index}",
            )
            self._threads.append(thread)
            thread.start()
        self._started = True
        logger.debug("worker_pool_started", size=self.size)

    def _work(self, index: int, transport: Transport) -> None:
        performed = 0
        while True:
            try:
                request = self._queue.get()
            except QueueClosed:
                break
            start = time.perf_counter_ns()
            try:
                attempt = transport.perform(request)
            except Exception:
                # perform() contains its own errors; this is a transport bug
                logger.exception("worker_perform_crashed", worker=index)
                attempt = Attempt(time.perf_counter_ns() - start, False, error="crashed")
            try:
                self._sink.record(attempt.duration_ns, attempt.success)
            except Exception:
                logger.exception("outcome_record_failed", worker=index)
            performed += 1
        logger.debug("worker_finished", worker=index, performed=performed)

    def join(self) -> None:
        """Block until every worker has seen the closed, drained queue."""
        for thread in self._threads:
            thread.join()
        self._close_transports()

    def _close_transports(self) -> None:
        for transport in self._transports:
            try:
                transport.close()
            except Exception:
                logger.warning("transport_close_failed", exc_info=True)
        self._transports = []
