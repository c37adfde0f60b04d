# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
selftest_harness - Self-test runner for a communications engine.

Runs a registry of named selftest cases against an in-process engine,
one at a time and fail-fast, driving the engine's run loop so cases can
wait on asynchronous network events. After teardown, any allocation
still live fails the run.

Example usage:
    from selftest_harness.test_runner import RegistryBuilder
    from selftest_harness.test_runner.cli import main

    builder = RegistryBuilder()

    @builder.case
    def test_nothing(session):
        return 0

    raise SystemExit(main([], registry=builder.build()))
"""

__version__ = '1.0.0'

from selftest_harness.core.session import HarnessSession
from selftest_harness.core.event_collector import EventCollector
from selftest_harness.core.spin_helpers import (
    spin_for_duration,
    spin_until_condition,
)
from selftest_harness.engine.errors import EngineError, describe_error
from selftest_harness.engine.local_engine import LocalEngine
from selftest_harness.engine.runtime import Runtime
from selftest_harness.test_runner.test_registry import (
    RegistryBuilder,
    TestCase,
    TestRegistry,
)
from selftest_harness.test_runner.runner import RunOutcome, TestRunner
from selftest_harness.test_runner.bridge import RunLoopBridge
from selftest_harness.test_runner.leak_gate import LeakGate

__all__ = [
    '__version__',
    'HarnessSession',
    'EventCollector',
    'spin_for_duration',
    'spin_until_condition',
    'EngineError',
    'describe_error',
    'LocalEngine',
    'Runtime',
    'RegistryBuilder',
    'TestCase',
    'TestRegistry',
    'RunOutcome',
    'TestRunner',
    'RunLoopBridge',
    'LeakGate',
]
