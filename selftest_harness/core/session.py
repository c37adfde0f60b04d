# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Per-invocation harness session.

The session carries everything one selftest invocation owns: console,
verbosity, runtime, engine and the run-loop cancellation token. Only
one session may be active in a process at a time, because the engine
and its network bindings are process-wide.
"""

import threading
from typing import Callable, Optional

from selftest_harness.core.spin_helpers import spin_until_condition
from selftest_harness.engine.engine_interface import EngineInterface
from selftest_harness.engine.runloop import CancellationToken, RunLoop
from selftest_harness.engine.runtime import Runtime
from selftest_harness.output.console import Console

DEFAULT_TIMEOUT_SEC = 5.0


class HarnessSession:
    """
    Context object threaded through registry, runner and bridge.

    Example:
        with HarnessSession(console=Console()) as session:
            with RunLoopBridge(session):
                outcome = TestRunner(session).run(cases)
    """

    _lock = threading.Lock()
    _active: Optional['HarnessSession'] = None

    def __init__(self,
                 console: Optional[Console] = None,
                 verbosity: int = 0,
                 timeout_sec: float = DEFAULT_TIMEOUT_SEC):
        self.console = console or Console()
        self.verbosity = verbosity
        self.timeout_sec = timeout_sec
        self.token = CancellationToken()
        self.runtime: Optional[Runtime] = None
        self.engine: Optional[EngineInterface] = None

    def __enter__(self) -> 'HarnessSession':
        with HarnessSession._lock:
            if HarnessSession._active is not None:
                raise RuntimeError("another selftest session owns the engine")
            HarnessSession._active = self
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        with HarnessSession._lock:
            if HarnessSession._active is self:
                HarnessSession._active = None

    @classmethod
    def active(cls) -> Optional['HarnessSession']:
        return cls._active

    @property
    def loop(self) -> RunLoop:
        if self.runtime is None or self.runtime.loop is None:
            raise RuntimeError("engine runtime not started")
        return self.runtime.loop

    def request_cancel(self) -> None:
        """Cancel the current run-loop wait. Callable from any thread."""
        self.token.cancel()
        if self.runtime is not None and self.runtime.loop is not None \
                and not self.runtime.loop.closed:
            self.runtime.loop.call_soon_threadsafe(lambda: None)

    def run_loop(self, timeout_sec: Optional[float] = None) -> bool:
        """
        Drive the loop until cancelled or timeout.

        Returns:
            True if cancelled, False on timeout
        """
        if timeout_sec is None:
            timeout_sec = self.timeout_sec
        return self.loop.run(self.token, timeout_sec)

    def wait_until(self, condition: Callable[[], bool],
                   timeout_sec: Optional[float] = None) -> bool:
        """
        Drive the loop until condition() holds.

        Returns:
            True if the condition was met, False on timeout or cancellation
        """
        if timeout_sec is None:
            timeout_sec = self.timeout_sec
        return spin_until_condition(self.loop, condition, timeout_sec,
                                    token=self.token)
