# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""In-process communications engine exercised by the self-tests."""

from selftest_harness.engine.errors import EngineError, describe_error
from selftest_harness.engine.memory import MemoryTracker, ResourceSnapshot
from selftest_harness.engine.runloop import CancellationToken, RunLoop, Timer
from selftest_harness.engine.workers import AsyncWorkerPool
from selftest_harness.engine.runtime import Runtime
from selftest_harness.engine.conf import Config, parse_conf_buf
from selftest_harness.engine.engine_interface import EngineInterface
from selftest_harness.engine.local_engine import LocalEngine
from selftest_harness.engine.user_agent import Call, CallState, UaEvent, UserAgent

__all__ = [
    'EngineError',
    'describe_error',
    'MemoryTracker',
    'ResourceSnapshot',
    'CancellationToken',
    'RunLoop',
    'Timer',
    'AsyncWorkerPool',
    'Runtime',
    'Config',
    'parse_conf_buf',
    'EngineInterface',
    'LocalEngine',
    'Call',
    'CallState',
    'UaEvent',
    'UserAgent',
]
