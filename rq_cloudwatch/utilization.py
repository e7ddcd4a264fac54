"""Capacity and utilization math over worker processes."""
import math
from typing import Iterable

from rq_cloudwatch.models import ProcessDescriptor


def ratio(process: ProcessDescriptor) -> float:
    """Busy fraction of one process; NaN when it has no concurrency."""
    if process.concurrency == 0:
        return math.nan
    return process.busy / float(process.concurrency)


def mean(processes: Iterable[ProcessDescriptor]) -> float:
    """Busy fraction averaged across processes (for scaling).

    Processes not yet running any threads (concurrency 0) are left out.
    Returns NaN when nothing is left to average.
    """
    ratios = [r for r in (ratio(p) for p in processes) if not math.isnan(r)]
    if not ratios:
        return math.nan
    return sum(ratios) / len(ratios)


def capacity(processes: Iterable[ProcessDescriptor]) -> int:
    """Total concurrency across all processes."""
    return sum(p.concurrency for p in processes)
