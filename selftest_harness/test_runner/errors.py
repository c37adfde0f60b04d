# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Harness error taxonomy and process exit codes.

Exit code precedence, highest first: usage error, test not found,
first test failure (engine code verbatim), resource leak, success.
"""

from dataclasses import dataclass
from typing import Optional

EXIT_SUCCESS = 0
EXIT_LEAK = 2
EXIT_USAGE = 64
EXIT_NOT_FOUND = 66


class HarnessError(Exception):
    """Base class for errors that end a selftest invocation."""

    exit_code = 1


class UsageError(HarnessError):
    """Bad or unknown command-line option."""

    exit_code = EXIT_USAGE


class SelectionError(HarnessError):
    """A requested test name is not registered."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"testcase not found: `{name}'")


class StartupError(HarnessError):
    """Engine or runtime startup failed; carries the engine error code."""

    def __init__(self, code: int, reason: str):
        self.code = code
        self.reason = reason
        self.exit_code = code
        super().__init__(reason)


@dataclass(frozen=True)
class TestFailure:
    """First failing test of a run."""

    __test__ = False

    name: str
    code: int
    description: str


def select_exit_code(usage_error: bool = False,
                     not_found: bool = False,
                     failure_code: Optional[int] = None) -> int:
    """
    Pick the process exit code from what went wrong, by precedence.

    The leak gate is applied afterwards and may only replace
    EXIT_SUCCESS.
    """
    if usage_error:
        return EXIT_USAGE
    if not_found:
        return EXIT_NOT_FOUND
    if failure_code:
        return failure_code
    return EXIT_SUCCESS
