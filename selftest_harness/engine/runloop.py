# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Cooperative single-threaded run loop for the engine.

All engine callbacks (socket reads, timers, worker-pool completions)
are dispatched from whichever thread drives the loop. Other threads
hand work over with call_soon_threadsafe().
"""

import heapq
import itertools
import logging
import selectors
import socket
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from selftest_harness.engine.memory import MemoryTracker

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Thread-safe cancellation flag for one run-loop activation.

    The loop consumes the token when an activation returns because of
    it, so a single cancel() stops at most one activation.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def consume(self) -> bool:
        """Reset the token. Returns True if it had been cancelled."""
        was_set = self._event.is_set()
        self._event.clear()
        return was_set


class Timer:
    """Handle for a callback scheduled with RunLoop.call_later()."""

    def __init__(self, loop: 'RunLoop', when: float, callback: Callable, args: tuple):
        self._loop = loop
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self._mem = loop.mem.alloc(self, tag='timer')

    def cancel(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._release()

    @property
    def pending(self) -> bool:
        return self._mem is not None

    def _release(self) -> None:
        self._loop.mem.free(self._mem)
        self._mem = None

    def __repr__(self) -> str:
        name = getattr(self.callback, '__qualname__', repr(self.callback))
        remaining = max(0.0, self.when - time.monotonic())
        return f"<Timer {name} in {remaining * 1000:.0f} ms>"


class RunLoop:
    """
    Selector-based event loop driven explicitly by its owner.

    Example:
        loop = RunLoop(mem)
        token = CancellationToken()
        loop.call_later(0.1, token.cancel)
        loop.run(token, timeout_sec=1.0)   # returns True once cancelled
    """

    def __init__(self, mem: Optional[MemoryTracker] = None):
        self.mem = mem or MemoryTracker()
        self._selector = selectors.DefaultSelector()
        self._ready: Deque = deque()
        self._ready_lock = threading.Lock()
        self._timers: List = []
        self._seq = itertools.count()
        self._readers: Dict[int, Callable] = {}
        self._active_token: Optional[CancellationToken] = None
        self._closed = False
        self._wakeup_r, self._wakeup_w = socket.socketpair()
        self._wakeup_r.setblocking(False)
        self._wakeup_w.setblocking(False)
        self._selector.register(self._wakeup_r, selectors.EVENT_READ)

    @property
    def closed(self) -> bool:
        return self._closed

    def call_soon(self, callback: Callable, *args) -> None:
        """Queue callback for the next spin of the loop."""
        with self._ready_lock:
            self._ready.append((callback, args))

    def call_soon_threadsafe(self, callback: Callable, *args) -> None:
        """Queue callback from any thread and wake the loop."""
        self.call_soon(callback, *args)
        try:
            self._wakeup_w.send(b'\0')
        except (BlockingIOError, OSError):
            # Wakeup pipe full or already closed; the callback is queued
            pass

    def call_later(self, delay_sec: float, callback: Callable, *args) -> Timer:
        """Schedule callback after delay_sec seconds."""
        timer = Timer(self, time.monotonic() + delay_sec, callback, args)
        heapq.heappush(self._timers, (timer.when, next(self._seq), timer))
        return timer

    def add_reader(self, sock: socket.socket, callback: Callable) -> None:
        """Invoke callback(sock) whenever sock becomes readable."""
        self._selector.register(sock, selectors.EVENT_READ)
        self._readers[sock.fileno()] = callback

    def remove_reader(self, sock: socket.socket) -> None:
        fd = sock.fileno()
        if fd in self._readers:
            self._selector.unregister(sock)
            del self._readers[fd]

    def pending_timers(self) -> List[Timer]:
        return sorted(
            (t for _, _, t in self._timers if not t.cancelled),
            key=lambda t: t.when,
        )

    def spin_once(self, timeout_sec: float = 0.0) -> None:
        """
        Wait for I/O or timers for at most timeout_sec, then dispatch
        everything that is due.
        """
        if self._closed:
            raise RuntimeError("run loop is closed")

        with self._ready_lock:
            has_ready = bool(self._ready)
        if has_ready:
            timeout_sec = 0.0
        elif self._timers:
            timeout_sec = min(timeout_sec,
                              max(0.0, self._timers[0][0] - time.monotonic()))

        for key, _ in self._selector.select(timeout_sec):
            if key.fileobj is self._wakeup_r:
                self._drain_wakeup()
                continue
            callback = self._readers.get(key.fd)
            if callback is not None:
                self.call_soon(callback, key.fileobj)

        now = time.monotonic()
        while self._timers and self._timers[0][0] <= now:
            _, _, timer = heapq.heappop(self._timers)
            if not timer.cancelled:
                self.call_soon(self._fire_timer, timer)

        with self._ready_lock:
            batch = deque(self._ready)
            self._ready.clear()
        while batch:
            callback, args = batch.popleft()
            try:
                callback(*args)
            except BaseException:
                # Undispatched callbacks run on the next spin
                with self._ready_lock:
                    self._ready.extendleft(reversed(batch))
                raise

    def run(self,
            token: CancellationToken,
            timeout_sec: Optional[float] = None,
            spin_interval_sec: float = 0.05) -> bool:
        """
        Drive the loop until token is cancelled or timeout_sec elapses.

        Returns:
            True if the activation ended by cancellation, False on timeout
        """
        deadline = None if timeout_sec is None else time.monotonic() + timeout_sec
        previous = self._active_token
        self._active_token = token
        try:
            while not token.cancelled:
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return False
                    self.spin_once(min(spin_interval_sec, remaining))
                else:
                    self.spin_once(spin_interval_sec)
            return token.consume()
        finally:
            self._active_token = previous

    def cancel(self) -> None:
        """Stop the activation currently inside run(), if any."""
        token = self._active_token
        if token is not None:
            token.cancel()
            self.call_soon_threadsafe(lambda: None)

    def close(self) -> None:
        """
        Release loop resources.

        Timers still pending stay allocated and show up as leaks.
        Safe to call multiple times.
        """
        if self._closed:
            return
        for timer in self.pending_timers():
            logger.debug("run loop closed with pending %r", timer)
        self._closed = True
        self._selector.close()
        self._wakeup_r.close()
        self._wakeup_w.close()
        with self._ready_lock:
            self._ready.clear()
        self._readers.clear()

    def debug_lines(self) -> List[str]:
        """Describe the pending timers."""
        timers = self.pending_timers()
        lines = [f"Timers ({len(timers)}):"]
        lines.extend(f"  {timer!r}" for timer in timers)
        return lines

    @staticmethod
    def _fire_timer(timer: Timer) -> None:
        # A timer cancelled after it fell due but before dispatch stays silent
        if timer.cancelled:
            return
        timer._release()
        timer.callback(*timer.args)

    def _drain_wakeup(self) -> None:
        try:
            while self._wakeup_r.recv(4096):
                pass
        except (BlockingIOError, InterruptedError):
            pass
