"""Thread-safe outcome recorder with host resource snapshots.

Every worker funnels through :meth:`Aggregator.record`; a single lock guards
both the snapshot and the append so concurrent callers never lose an update.
Statistics are computed once, after the pool has drained.
"""

import threading
from dataclasses import dataclass

import psutil
import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class Outcome:
    """One completed unit of work."""

    duration_ns: int
    success: bool
    ram_used: int
    cpu_percent: float


@dataclass(frozen=True)
class Stats:
    """min/max/mean summary over all recorded outcomes."""

    count: int

    total_duration_ns: int
    mean_duration_ns: int
    max_duration_ns: int
    min_duration_ns: int

    total_cpu_percent: float
    mean_cpu_percent: float
    max_cpu_percent: float
    min_cpu_percent: float

    total_ram_used: int
    mean_ram_used: int
    max_ram_used: int
    min_ram_used: int

    total_error: int


class ResourceMonitor:
    """Best-effort host CPU/RAM sampler.

    CPU is the system-wide utilisation since the previous call (``0.0`` on the
    very first call). Failures degrade to zero; telemetry must never block the
    measured workload.
    """

    def __init__(self) -> None:
        self._warned = False

    def cpu_percent(self) -> float:
        try:
            return float(psutil.cpu_percent(interval=None))
        except Exception:
            self._note_failure("cpu")
            return 0.0

    def ram_used(self) -> int:
        try:
            return int(psutil.virtual_memory().used)
        except Exception:
            self._note_failure("ram")
            return 0

    def _note_failure(self, resource: str) -> None:
        if not self._warned:
            self._warned = True
            logger.debug("resource_sample_failed", resource=resource, exc_info=True)


class Aggregator:
    """Owns the ordered-by-arrival list of outcomes for one run."""

    def __init__(self, monitor: ResourceMonitor | None = None) -> None:
        self._monitor = monitor or ResourceMonitor()
        self._lock = threading.Lock()
        self._outcomes: list[Outcome] = []

    def record(self, duration_ns: int, success: bool) -> None:
        """Snapshot host resources and append one outcome."""
        with self._lock:
            ram = self._monitor.ram_used()
            cpu = self._monitor.cpu_percent()
            self._outcomes.append(Outcome(duration_ns, success, ram, cpu))

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)

    @property
    def outcomes(self) -> list[Outcome]:
        with self._lock:
            return list(self._outcomes)

    def summarize(self) -> Stats | None:
        """Single-pass count/total/mean/max/min, or ``None`` if empty."""
        with self._lock:
            if not self._outcomes:
                return None

            first = self._outcomes[0]
            total_duration = 0
            max_duration = min_duration = first.duration_ns
            total_cpu = 0.0
            max_cpu = min_cpu = first.cpu_percent
            total_ram = 0
            max_ram = min_ram = first.ram_used
            total_error = 0

            for o in self._outcomes:
                total_duration += o.duration_ns
                total_cpu += o.cpu_percent
                total_ram += o.ram_used
                if not o.success:
                    total_error += 1

                if o.duration_ns > max_duration:
                    max_duration = o.duration_ns
                if o.duration_ns < min_duration:
                    min_duration = o.duration_ns
                if o.cpu_percent > max_cpu:
                    max_cpu = o.cpu_percent
                if o.cpu_percent < min_cpu:
                    min_cpu = o.cpu_percent
                if o.ram_used > max_ram:
                    max_ram = o.ram_used
                if o.ram_used < min_ram:
                    min_ram = o.ram_used

            n = len(self._outcomes)

        mean_cpu = total_cpu / n
        # float summation can land a hair outside the observed bounds
        mean_cpu = min(max(mean_cpu, min_cpu), max_cpu)

        return Stats(
            count=n,
            total_duration_ns=total_duration,
            mean_duration_ns=total_duration // n,
            max_duration_ns=max_duration,
            min_duration_ns=min_duration,
            total_cpu_percent=total_cpu,
            mean_cpu_percent=mean_cpu,
            max_cpu_percent=max_cpu,
            min_cpu_percent=min_cpu,
            total_ram_used=total_ram,
            mean_ram_used=total_ram // n,
            max_ram_used=max_ram,
            min_ram_used=min_ram,
            total_error=total_error,
        )
