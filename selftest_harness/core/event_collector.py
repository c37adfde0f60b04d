# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Thread-safe collector for engine user-agent events.

Provides event subscription and storage for asserting on asynchronous
engine behaviour.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from selftest_harness.engine.local_engine import LocalEngine
from selftest_harness.engine.runloop import RunLoop
from selftest_harness.engine.user_agent import UaEvent, UserAgent


@dataclass(frozen=True)
class EngineEvent:
    """One event delivered by the engine."""

    ua: UserAgent
    event: UaEvent
    call: Any = None
    text: str = ''


class EventCollector:
    """
    Thread-safe event collector for a LocalEngine.

    Registers an event handler and stores all received events for later
    inspection during tests.

    Example:
        collector = EventCollector(engine)
        ua.register()
        collector.wait_for(UaEvent.REGISTER_OK, 1, 5.0, loop)
        collector.destroy()
    """

    def __init__(
        self,
        engine: LocalEngine,
        callback: Optional[Callable[[EngineEvent], None]] = None
    ):
        """
        Create an event collector.

        Args:
            engine: Engine to subscribe to
            callback: Optional callback invoked on each event
        """
        self._engine = engine
        self._callback = callback
        self._events: List[EngineEvent] = []
        self._lock = threading.Lock()
        self._registered = True
        engine.register_event_handler(self._on_event)

    def _on_event(self, ua: UserAgent, event: UaEvent, call: Any, text: str) -> None:
        """Handle an incoming event."""
        record = EngineEvent(ua, event, call, text)
        with self._lock:
            self._events.append(record)

        if self._callback is not None:
            self._callback(record)

    def get_events(self, event: Optional[UaEvent] = None,
                   ua: Optional[UserAgent] = None) -> List[EngineEvent]:
        """
        Get collected events, optionally filtered.

        Returns:
            Copy of the matching events in arrival order
        """
        with self._lock:
            return [e for e in self._events
                    if (event is None or e.event == event)
                    and (ua is None or e.ua is ua)]

    def get_latest(self) -> Optional[EngineEvent]:
        with self._lock:
            return self._events[-1] if self._events else None

    def count(self, event: Optional[UaEvent] = None,
              ua: Optional[UserAgent] = None) -> int:
        return len(self.get_events(event, ua))

    def clear(self) -> None:
        """Clear all collected events."""
        with self._lock:
            self._events.clear()

    def wait_for(
        self,
        event: UaEvent,
        min_count: int,
        timeout_sec: float,
        loop: RunLoop,
        ua: Optional[UserAgent] = None
    ) -> bool:
        """
        Drive the loop until min_count events of the given kind arrived.

        Returns:
            True if minimum count reached, False if timeout
        """
        from selftest_harness.core.spin_helpers import spin_until_events_received
        return spin_until_events_received(
            loop,
            lambda: self.count(event, ua),
            min_count,
            timeout_sec
        )

    def destroy(self) -> None:
        """
        Unregister from the engine.

        Safe to call multiple times; subsequent calls are no-ops.
        Does not clear collected events.
        """
        if self._registered:
            self._engine.unregister_event_handler(self._on_event)
            self._registered = False
