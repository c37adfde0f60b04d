# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Command-line interface for the selftest runner.

    selftest [-h] [-l] [-v [-v]] [testcase ...]

With no test names every registered case runs in registration order.
"""

import logging
import sys
from typing import Callable, List, Optional

from selftest_harness import __version__
from selftest_harness.core.session import HarnessSession
from selftest_harness.engine.errors import describe_error
from selftest_harness.engine.local_engine import LocalEngine
from selftest_harness.engine.runtime import Runtime
from selftest_harness.output.console import Console
from selftest_harness.test_runner.bridge import EngineFactory, RunLoopBridge
from selftest_harness.test_runner.errors import (
    EXIT_SUCCESS,
    EXIT_USAGE,
    SelectionError,
    StartupError,
    UsageError,
    select_exit_code,
)
from selftest_harness.test_runner.leak_gate import LeakGate
from selftest_harness.test_runner.runner import RunOutcome, TestRunner
from selftest_harness.test_runner.selector import Options, parse_args, resolve
from selftest_harness.test_runner.test_registry import TestRegistry

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_log_handler: Optional[logging.Handler] = None


def configure_logging(verbosity: int, stream=None) -> logging.Logger:
    """
    Route package logging to stderr at a level chosen by -v count.

    0 -> WARNING, 1 -> INFO, 2 or more -> DEBUG. Calling again replaces
    the handler installed by the previous call.
    """
    global _log_handler

    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logger = logging.getLogger('selftest_harness')
    if _log_handler is not None:
        logger.removeHandler(_log_handler)
    _log_handler = logging.StreamHandler(stream or sys.stderr)
    _log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_log_handler)
    logger.setLevel(level)
    return logger


def run_selftest(registry: TestRegistry,
                 options: Options,
                 console: Console,
                 engine_factory: EngineFactory = LocalEngine,
                 runtime_factory: Callable[[], Runtime] = Runtime) -> int:
    """
    Start the engine, run the selected cases, tear down and gate on leaks.

    Returns:
        Process exit code
    """
    not_found = False
    failure_code = None
    outcome: Optional[RunOutcome] = None

    with HarnessSession(console=console, verbosity=options.verbosity) as session:
        bridge = RunLoopBridge(session, engine_factory=engine_factory,
                               runtime_factory=runtime_factory)
        try:
            with bridge:
                cases = resolve(registry, options.names)
                outcome = TestRunner(session).run(cases)
                if outcome.first_failure is not None:
                    failure = outcome.first_failure
                    failure_code = failure.code
                    console.summary_failed(failure.description,
                                           session.engine.debug())
        except SelectionError as e:
            not_found = True
            console.not_found(e.name)
        except StartupError as e:
            failure_code = e.code
            console.summary_failed(describe_error(e.code), bridge.startup_dump)

        if bridge.teardown_error is not None and failure_code is None:
            failure_code = bridge.teardown_error.code
            console.teardown_failed(describe_error(failure_code))

        gate = LeakGate(session.runtime, bridge)
        snapshot = gate.snapshot()

    if outcome is not None and outcome.passed and failure_code is None:
        console.summary_passed(len(outcome.executed))

    if snapshot.leaked:
        if outcome is not None:
            outcome.leak_detected = True
        console.leak_detected(str(snapshot), gate.details())

    exit_code = select_exit_code(not_found=not_found, failure_code=failure_code)
    return gate.apply(exit_code)


def main(argv: Optional[List[str]] = None,
         registry: Optional[TestRegistry] = None,
         console: Optional[Console] = None,
         engine_factory: EngineFactory = LocalEngine,
         runtime_factory: Callable[[], Runtime] = Runtime) -> int:
    """Entry point for the selftest command."""
    console = console or Console()

    try:
        options = parse_args(argv)
    except UsageError as e:
        console.print_err(f"selftest: {e}")
        console.usage()
        return EXIT_USAGE

    if options.show_help:
        console.usage()
        return EXIT_USAGE

    configure_logging(options.verbosity)

    if registry is None:
        from selftest_harness.cases import build_registry
        registry = build_registry()

    if options.list_only:
        console.test_list(registry.names())
        return EXIT_SUCCESS

    ntests = len(options.names) if options.names else len(registry)
    console.run_header(__version__, ntests)

    return run_selftest(registry, options, console,
                        engine_factory=engine_factory,
                        runtime_factory=runtime_factory)


if __name__ == "__main__":
    sys.exit(main())
