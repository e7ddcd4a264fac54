#!/usr/bin/env python3
"""Tests for capacity and utilization math."""
import math
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from rq_cloudwatch import utilization  # noqa: E402
from rq_cloudwatch.models import ProcessDescriptor  # noqa: E402


def process(busy, concurrency, hostname="h", tag=None):
    return ProcessDescriptor(hostname=hostname, tag=tag, busy=busy, concurrency=concurrency)


def test_ratio_is_busy_over_concurrency():
    assert utilization.ratio(process(5, 10)) == 0.5
    assert utilization.ratio(process(0, 4)) == 0.0


def test_ratio_without_concurrency_is_nan():
    assert math.isnan(utilization.ratio(process(0, 0)))


def test_mean_skips_processes_without_concurrency():
    processes = [process(0, 10), process(5, 10), process(0, 0)]
    assert utilization.mean(processes) == 0.25


def test_mean_of_nothing_is_nan():
    assert math.isnan(utilization.mean([]))
    assert math.isnan(utilization.mean([process(0, 0), process(0, 0)]))


def test_capacity_sums_concurrency():
    assert utilization.capacity([process(1, 3), process(0, 0), process(2, 7)]) == 10
    assert utilization.capacity([]) == 0


if __name__ == "__main__":
    test_ratio_is_busy_over_concurrency()
    test_ratio_without_concurrency_is_nan()
    test_mean_skips_processes_without_concurrency()
    test_mean_of_nothing_is_nan()
    test_capacity_sums_concurrency()
    print("ok - test_utilization")
