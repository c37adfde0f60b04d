# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Core harness infrastructure: session context and run-loop helpers."""

from selftest_harness.core.spin_helpers import (
    spin_for_duration,
    spin_until_condition,
    spin_until_events_received,
)
from selftest_harness.core.session import HarnessSession, DEFAULT_TIMEOUT_SEC
from selftest_harness.core.event_collector import EventCollector, EngineEvent

__all__ = [
    'spin_for_duration',
    'spin_until_condition',
    'spin_until_events_received',
    'HarnessSession',
    'DEFAULT_TIMEOUT_SEC',
    'EventCollector',
    'EngineEvent',
]
