# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Console reporter for selftest runs.

Progress goes to stdout, warnings and failures to stderr. Colour is
only used when the stream is a terminal.
"""

import sys
from typing import List, Optional, Sequence, Tuple

USAGE = (
    "Usage: selftest [options] <testcases..>\n"
    "options:\n"
    "\t-h               Show this help and exit\n"
    "\t-l               List all testcases and exit\n"
    "\t-v               Verbose output (INFO level, twice for DEBUG)\n"
)


def listing_rows(names: Sequence[str]) -> List[Tuple[str, str]]:
    """
    Pair names into two columns.

    Row i holds names[i] and names[i + (n+1)//2]; the right column is
    empty when that index runs past the end.
    """
    n = len(names)
    half = (n + 1) // 2
    return [
        (names[i], names[i + half] if i + half < n else '')
        for i in range(half)
    ]


class Console:
    """
    Colored console output for test results.

    Provides formatted output with optional color support for terminal output.
    """

    # ANSI color codes
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'

    def __init__(self, color: bool = True, file=None, err_file=None):
        """
        Initialize console output.

        Args:
            color: Whether to use colored output.
            file: Output file (defaults to sys.stdout).
            err_file: Warning/error file (defaults to sys.stderr).
        """
        self._file = file or sys.stdout
        self._err_file = err_file or sys.stderr
        self._color = color

    def _supports_color(self, stream) -> bool:
        """Check if the output supports color."""
        if not self._color or not hasattr(stream, 'isatty'):
            return False
        return stream.isatty()

    def _colorize(self, text: str, color: str, stream=None) -> str:
        """Apply color to text if color is enabled."""
        if self._supports_color(stream or self._file):
            return f"{color}{text}{self.RESET}"
        return text

    def print(self, message: str = '', end: str = '\n') -> None:
        """Print a message."""
        print(message, end=end, file=self._file, flush=True)

    def print_err(self, message: str = '', end: str = '\n') -> None:
        """Print a message to the error stream."""
        print(message, end=end, file=self._err_file, flush=True)

    def success(self, message: str) -> None:
        """Print a success message in green."""
        self.print(self._colorize(message, self.GREEN))

    def warning(self, message: str) -> None:
        """Print a warning message in yellow on the error stream."""
        self.print_err(self._colorize(message, self.YELLOW, self._err_file))

    def error(self, message: str) -> None:
        """Print an error message in red on the error stream."""
        self.print_err(self._colorize(message, self.RED, self._err_file))

    def usage(self) -> None:
        self.print_err(USAGE, end='')

    def run_header(self, version: str, count: int) -> None:
        self.print(f"running selftest version {version} with {count} tests")

    def test_list(self, names: Sequence[str]) -> None:
        """Print the two-column test listing."""
        self.print()
        self.print(f"{len(names)} test cases:")
        for left, right in listing_rows(names):
            self.print(f"    {left:<32}    {right}".rstrip())
        self.print()

    def test_run(self, name: str) -> None:
        self.print(f"[ RUN      ] {name}")

    def test_ok(self) -> None:
        self.print("[       OK ]")

    def test_failed(self, name: str, description: str) -> None:
        self.warning(f"{name}: test failed ({description})")

    def not_found(self, name: str) -> None:
        self.print_err(f"testcase not found: `{name}'")

    def summary_passed(self, count: int) -> None:
        self.success(f"OK. {count} tests passed successfully")

    def summary_failed(self, description: str, debug_dump: Optional[str] = None) -> None:
        """Print the failure summary followed by the engine state dump."""
        self.warning(f"test failed ({description})")
        if debug_dump:
            self.print(debug_dump)

    def teardown_failed(self, description: str) -> None:
        self.warning(f"engine teardown failed ({description})")

    def leak_detected(self, summary: str, details: Optional[List[str]] = None) -> None:
        self.error(f"resource leak detected: {summary}")
        for line in details or []:
            self.print_err(line)
