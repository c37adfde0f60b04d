# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Spin helpers for driving the engine run loop.

Test entry points are synchronous; these helpers let them block on
asynchronous engine activity with a bounded timeout.
"""

import time
from typing import Callable, Optional

from selftest_harness.engine.runloop import CancellationToken, RunLoop


def spin_for_duration(
    loop: RunLoop,
    duration_sec: float,
    spin_interval_sec: float = 0.01
) -> None:
    """
    Spin the loop for a specified duration.

    Args:
        loop: Run loop to drive
        duration_sec: How long to spin (seconds)
        spin_interval_sec: Interval between spin_once calls (seconds)
    """
    start = time.monotonic()
    while time.monotonic() - start < duration_sec:
        loop.spin_once(spin_interval_sec)


def spin_until_condition(
    loop: RunLoop,
    condition: Callable[[], bool],
    timeout_sec: float,
    spin_interval_sec: float = 0.01,
    token: Optional[CancellationToken] = None
) -> bool:
    """
    Spin until a condition is met, the token is cancelled or timeout occurs.

    A cancellation seen here is consumed.

    Args:
        loop: Run loop to drive
        condition: Function returning True when condition is met
        timeout_sec: Maximum time to wait (seconds)
        spin_interval_sec: Interval between spin_once calls (seconds)
        token: Optional cancellation token that ends the wait early

    Returns:
        True if condition was met, False on timeout or cancellation
    """
    if condition():
        return True
    start = time.monotonic()
    while time.monotonic() - start < timeout_sec:
        if token is not None and token.consume():
            return condition()
        loop.spin_once(spin_interval_sec)
        if condition():
            return True
    return False


def spin_until_events_received(
    loop: RunLoop,
    get_count: Callable[[], int],
    min_count: int,
    timeout_sec: float,
    spin_interval_sec: float = 0.01
) -> bool:
    """
    Spin until a minimum number of events are received.

    Args:
        loop: Run loop to drive
        get_count: Function returning current event count
        min_count: Minimum number of events required
        timeout_sec: Maximum time to wait (seconds)
        spin_interval_sec: Interval between spin_once calls (seconds)

    Returns:
        True if minimum count reached, False if timeout occurred
    """
    return spin_until_condition(
        loop,
        lambda: get_count() >= min_count,
        timeout_sec,
        spin_interval_sec
    )
