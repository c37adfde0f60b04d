# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Fixed-size worker pool for blocking engine work.

Work runs on a pool thread; its completion callback always runs on the
run-loop thread, so engine state is only touched from one thread.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from selftest_harness.engine.runloop import RunLoop

logger = logging.getLogger(__name__)

# callback(err, result): err is None on success
CompletionHandler = Callable[[Optional[BaseException], Any], None]


class AsyncWorkerPool:
    """Thread pool whose completions are delivered through the run loop."""

    def __init__(self, loop: RunLoop, workers: int = 4):
        if workers < 1:
            raise ValueError("worker pool needs at least one thread")
        self._loop = loop
        self._workers = workers
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix='engine-async')
        self._mem = loop.mem.alloc(self, tag='async_pool')

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def closed(self) -> bool:
        return self._executor is None

    def submit(self, work: Callable[[], Any], callback: CompletionHandler) -> Future:
        """
        Run work() on a pool thread and post callback(err, result) to the loop.

        Raises:
            RuntimeError: If the pool has been closed
        """
        if self._executor is None:
            raise RuntimeError("async worker pool is closed")

        def _done(future: Future) -> None:
            err = future.exception()
            result = None if err is not None else future.result()
            if self._loop.closed:
                logger.debug("dropping async completion: loop closed")
                return
            self._loop.call_soon_threadsafe(callback, err, result)

        future = self._executor.submit(work)
        future.add_done_callback(_done)
        return future

    def close(self) -> None:
        """Wait for running work to finish and stop the threads."""
        if self._executor is None:
            return
        self._executor.shutdown(wait=True)
        self._executor = None
        self._loop.mem.free(self._mem)
        self._mem = None
