"""Human-readable run summary."""

import sys
from dataclasses import asdict
from typing import TextIO

import structlog

from hyperbench.aggregator import Stats
from hyperbench.controller import RunResult

logger = structlog.get_logger()

BYTES_PER_MIB = 1 << 20


def _fraction(value: int, unit: int, digits: int) -> str:
    whole, rem = divmod(value, unit)
    if not rem:
        return str(whole)
    return f"{whole}.{str(rem).rjust(digits, '0').rstrip('0')}"


def format_duration(ns: int) -> str:
    """Render nanoseconds like ``1.5ms``, ``2.25s`` or ``1m30s``."""
    if ns < 0:
        return "-" + format_duration(-ns)
    if ns == 0:
        return "0s"
    if ns < 1_000:
        return f"{ns}ns"
    if ns < 1_000_000:
        return _fraction(ns, 1_000, 3) + "µs"
    if ns < 1_000_000_000:
        return _fraction(ns, 1_000_000, 6) + "ms"

    hours, rem = divmod(ns, 3_600 * 10**9)
    minutes, rem = divmod(rem, 60 * 10**9)
    seconds = _fraction(rem, 10**9, 9) + "s"
    if hours:
        return f"{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{minutes}m{seconds}"
    return seconds


def render_summary(stats: Stats) -> str:
    return f"""
Total Duration: {format_duration(stats.total_duration_ns)}
Total Request: {stats.count}

Average Duration: {format_duration(stats.mean_duration_ns)}
Highest Duration: {format_duration(stats.max_duration_ns)}
Lowest Duration: {format_duration(stats.min_duration_ns)}

Average CPU: {stats.mean_cpu_percent:f} %
Highest CPU: {stats.max_cpu_percent:f} %
Lowest CPU: {stats.min_cpu_percent:f} %

Average RAM: {stats.mean_ram_used // BYTES_PER_MIB} MiB
Highest RAM: {stats.max_ram_used // BYTES_PER_MIB} MiB
Lowest RAM: {stats.min_ram_used // BYTES_PER_MIB} MiB

Total Error: {stats.total_error}"""


def report(result: RunResult, transport: str, out: TextIO | None = None) -> bool:
    """Print the summary; returns False when nothing was recorded."""
    if result.stats is None:
        logger.warning(
            "no_outcomes_recorded",
            transport=transport,
            stop_reason=str(result.stop_reason),
        )
        return False

    stream = out or sys.stdout
    print(render_summary(result.stats), file=stream, flush=True)

    logger.info(
        "run_summary",
        transport=transport,
        enqueued=result.enqueued,
        stop_reason=str(result.stop_reason),
        wall_time_s=round(result.elapsed_s, 3),
        throughput_rps=round(result.stats.count / max(result.elapsed_s, 0.001), 2),
        **asdict(result.stats),
    )
    return True
