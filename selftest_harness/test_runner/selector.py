# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Command-line parsing and test selection.

Turns argv into Options, and Options plus a registry into the ordered
list of cases to run.
"""

import argparse
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from selftest_harness.test_runner.errors import SelectionError, UsageError
from selftest_harness.test_runner.test_registry import TestCase, TestRegistry


@dataclass
class Options:
    """Parsed command line."""

    show_help: bool = False
    list_only: bool = False
    verbosity: int = 0
    names: List[str] = field(default_factory=list)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="selftest",
        description="Run engine selftest cases",
        add_help=False,
    )
    parser.add_argument(
        "-h",
        dest="show_help",
        action="store_true",
        help="Show usage and exit",
    )
    parser.add_argument(
        "-l",
        dest="list_only",
        action="store_true",
        help="List all testcases and exit",
    )
    parser.add_argument(
        "-v",
        dest="verbosity",
        action="count",
        default=0,
        help="Verbose output (INFO level, twice for DEBUG)",
    )
    parser.add_argument(
        "names",
        nargs="*",
        metavar="TESTCASE",
        help="Test cases to run (default: all)",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> Options:
    """
    Parse selftest arguments.

    Options and test names may be interleaved.

    Raises:
        UsageError: For an unknown option
    """
    parsed = _build_parser().parse_intermixed_args(argv)
    return Options(
        show_help=parsed.show_help,
        list_only=parsed.list_only,
        verbosity=parsed.verbosity,
        names=list(parsed.names),
    )


def resolve(registry: TestRegistry, names: Sequence[str]) -> List[TestCase]:
    """
    Build the run request.

    With no names every registered case is selected in registration
    order; otherwise each name is looked up in the given order.

    Raises:
        SelectionError: On the first name that is not registered
    """
    if not names:
        return registry.all()

    selected = []
    for name in names:
        case = registry.find(name)
        if case is None:
            raise SelectionError(name)
        selected.append(case)
    return selected
