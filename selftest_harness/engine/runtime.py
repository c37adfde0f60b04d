# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Process-level runtime underneath the engine.

Owns the allocation tracker, the run loop and the async worker pool.
Allocation statistics outlive close() so they can be inspected after
full teardown.
"""

import logging
from typing import List, Optional

from selftest_harness.engine.memory import MemoryTracker, ResourceSnapshot
from selftest_harness.engine.runloop import RunLoop
from selftest_harness.engine.workers import AsyncWorkerPool

logger = logging.getLogger(__name__)


class Runtime:
    """Run loop, worker pool and allocator for one harness invocation."""

    def __init__(self):
        self.mem = MemoryTracker()
        self.loop: Optional[RunLoop] = None
        self.pool: Optional[AsyncWorkerPool] = None

    def init(self) -> None:
        if self.loop is None:
            self.loop = RunLoop(self.mem)

    def async_init(self, workers: int) -> AsyncWorkerPool:
        if self.loop is None:
            raise RuntimeError("runtime not initialised")
        if self.pool is None:
            self.pool = AsyncWorkerPool(self.loop, workers)
        return self.pool

    def async_close(self) -> None:
        if self.pool is not None:
            self.pool.close()
            self.pool = None

    def close(self) -> None:
        if self.loop is not None:
            self.loop.close()

    def timer_debug(self) -> List[str]:
        if self.loop is None:
            return ["Timers: run loop not started"]
        return self.loop.debug_lines()

    def mem_stat(self) -> ResourceSnapshot:
        return self.mem.stat()

    def mem_debug(self) -> List[str]:
        return self.mem.debug_lines()
