# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Test runner: registry, selection, fail-fast execution and leak gating.

Usage:
    # List all selftest cases
    selftest -l

    # Run specific cases
    selftest test_ua_alloc test_call_answer

    # Run everything
    selftest
"""

from selftest_harness.test_runner.test_registry import (
    TestRegistry,
    TestCase,
    RegistryBuilder,
)
from selftest_harness.test_runner.runner import (
    TestRunner,
    TestResult,
    TestStatus,
    RunOutcome,
)
from selftest_harness.test_runner.errors import (
    HarnessError,
    UsageError,
    SelectionError,
    StartupError,
    TestFailure,
    EXIT_SUCCESS,
    EXIT_LEAK,
    EXIT_USAGE,
    EXIT_NOT_FOUND,
)
from selftest_harness.test_runner.selector import Options, parse_args, resolve
from selftest_harness.test_runner.bridge import RunLoopBridge
from selftest_harness.test_runner.leak_gate import LeakGate

__all__ = [
    'TestRegistry',
    'TestCase',
    'RegistryBuilder',
    'TestRunner',
    'TestResult',
    'TestStatus',
    'RunOutcome',
    'HarnessError',
    'UsageError',
    'SelectionError',
    'StartupError',
    'TestFailure',
    'EXIT_SUCCESS',
    'EXIT_LEAK',
    'EXIT_USAGE',
    'EXIT_NOT_FOUND',
    'Options',
    'parse_args',
    'resolve',
    'RunLoopBridge',
    'LeakGate',
]
