# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Sequential fail-fast runner for selftest cases.

Cases run one at a time in request order on the calling thread. The
first non-zero result stops the run; later cases are never invoked.
Engine state is shared across cases and is not reset between them.
"""

import errno
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from selftest_harness.core.session import HarnessSession
from selftest_harness.engine.errors import describe_error
from selftest_harness.test_runner.errors import TestFailure
from selftest_harness.test_runner.test_registry import TestCase

logger = logging.getLogger(__name__)

# Result code recorded when an entry point raises instead of returning
UNHANDLED_EXCEPTION_CODE = errno.EIO


class TestStatus(Enum):
    """Status of a test execution."""
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class TestResult:
    """Result of one test case."""

    __test__ = False

    name: str
    status: TestStatus
    code: int = 0
    description: str = ""
    duration: float = 0.0

    @property
    def passed(self) -> bool:
        return self.status == TestStatus.PASSED


@dataclass
class RunOutcome:
    """Everything one invocation executed."""

    executed: List[TestResult] = field(default_factory=list)
    first_failure: Optional[TestFailure] = None
    leak_detected: bool = False

    @property
    def passed(self) -> bool:
        return self.first_failure is None

    @property
    def sequence(self) -> List[Tuple[str, int]]:
        """(name, result code) pairs in execution order."""
        return [(r.name, r.code) for r in self.executed]


class TestRunner:
    """Runs test cases against the session's engine."""

    __test__ = False

    def __init__(self, session: HarnessSession):
        self.session = session
        self.console = session.console

    def run_one(self, case: TestCase) -> TestResult:
        """Run a single case, reporting RUN and OK or the failure."""
        self.console.test_run(case.name)
        start = time.monotonic()

        try:
            code = case.entry(self.session)
            description = describe_error(code) if code else ""
        except Exception as e:
            logger.exception("%s: unhandled exception", case.name)
            code = UNHANDLED_EXCEPTION_CODE
            description = f"{type(e).__name__}: {e}"

        duration = time.monotonic() - start

        if code:
            self.console.test_failed(case.name, description)
            return TestResult(case.name, TestStatus.FAILED, code,
                              description, duration)

        self.console.test_ok()
        logger.info("%s passed in %.3fs", case.name, duration)
        return TestResult(case.name, TestStatus.PASSED, 0, "", duration)

    def run(self, cases: Sequence[TestCase]) -> RunOutcome:
        """Run cases in order, stopping at the first failure."""
        outcome = RunOutcome()
        for case in cases:
            result = self.run_one(case)
            outcome.executed.append(result)
            if not result.passed:
                outcome.first_failure = TestFailure(
                    result.name, result.code, result.description)
                break
        return outcome
