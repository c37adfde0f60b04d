# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Post-teardown resource leak check.

Any live allocation left after the engine and runtime are fully closed
turns an otherwise successful invocation into a failure.
"""

import logging
from typing import List, Optional

from selftest_harness.engine.memory import ResourceSnapshot
from selftest_harness.engine.runtime import Runtime
from selftest_harness.test_runner.bridge import RunLoopBridge
from selftest_harness.test_runner.errors import EXIT_LEAK, EXIT_SUCCESS

logger = logging.getLogger(__name__)


class LeakGate:
    """Takes the single post-teardown snapshot and gates the exit code."""

    def __init__(self, runtime: Runtime, bridge: Optional[RunLoopBridge] = None):
        self._runtime = runtime
        self._bridge = bridge
        self._snapshot: Optional[ResourceSnapshot] = None

    @property
    def taken(self) -> Optional[ResourceSnapshot]:
        return self._snapshot

    def snapshot(self) -> ResourceSnapshot:
        """
        Capture live allocation counts.

        Raises:
            RuntimeError: If teardown has not finished or a snapshot was
                already taken
        """
        if self._bridge is not None and not self._bridge.torn_down:
            raise RuntimeError("leak snapshot requested before engine teardown")
        if self._snapshot is not None:
            raise RuntimeError("leak snapshot already taken")
        self._snapshot = self._runtime.mem_stat()
        if self._snapshot.leaked:
            for line in self._runtime.mem_debug():
                logger.debug(line)
        return self._snapshot

    def details(self) -> List[str]:
        return self._runtime.mem_debug()

    def apply(self, exit_code: int) -> int:
        """Force EXIT_LEAK over a success code when the snapshot shows leaks."""
        snapshot = self._snapshot if self._snapshot is not None else self.snapshot()
        if exit_code == EXIT_SUCCESS and snapshot.leaked:
            return EXIT_LEAK
        return exit_code
