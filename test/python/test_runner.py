#!/usr/bin/env python3
# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the fail-fast test runner."""

import errno

import pytest

from selftest_harness.core.session import HarnessSession
from selftest_harness.test_runner.runner import (
    UNHANDLED_EXCEPTION_CODE,
    TestRunner,
)
from selftest_harness.test_runner.test_registry import RegistryBuilder


@pytest.fixture
def runner(captured_console):
    return TestRunner(HarnessSession(console=captured_console))


class TestTestRunner:
    """Tests for TestRunner."""

    def test_all_pass(self, runner, make_registry, call_log, captured_console):
        """Every case runs in order and the outcome passes."""
        registry = make_registry(('alpha', 0), ('beta', 0), ('gamma', 0))

        outcome = runner.run(registry.all())

        assert outcome.passed
        assert outcome.first_failure is None
        assert call_log == ['alpha', 'beta', 'gamma']
        assert outcome.sequence == [('alpha', 0), ('beta', 0), ('gamma', 0)]
        assert captured_console.stdout_lines() == [
            '[ RUN      ] alpha', '[       OK ]',
            '[ RUN      ] beta', '[       OK ]',
            '[ RUN      ] gamma', '[       OK ]',
        ]

    def test_stops_at_first_failure(self, runner, make_registry, call_log,
                                    captured_console):
        """A failing case ends the run; later cases are never invoked."""
        registry = make_registry(('alpha', 0), ('beta', errno.EINVAL), ('gamma', 0))

        outcome = runner.run(registry.all())

        assert not outcome.passed
        assert call_log == ['alpha', 'beta']
        assert outcome.sequence == [('alpha', 0), ('beta', errno.EINVAL)]
        assert outcome.first_failure.name == 'beta'
        assert outcome.first_failure.code == errno.EINVAL
        assert f"[{errno.EINVAL}]" in outcome.first_failure.description
        assert captured_console.stdout_lines()[-1] == '[ RUN      ] beta'
        assert captured_console.stderr_lines() == [
            f"beta: test failed ({outcome.first_failure.description})"]

    def test_exception_becomes_failure(self, runner):
        """An entry point that raises fails with the unhandled-exception code."""
        builder = RegistryBuilder()

        def boom(session):
            raise KeyError('missing')

        builder.add('boom', boom)
        builder.add('after', lambda session: 0)

        outcome = runner.run(builder.build().all())

        assert len(outcome.executed) == 1
        result = outcome.executed[0]
        assert not result.passed
        assert result.code == UNHANDLED_EXCEPTION_CODE
        assert 'KeyError' in result.description

    def test_run_one_records_duration(self, runner, make_registry):
        registry = make_registry(('alpha', 0))

        result = runner.run_one(registry.find('alpha'))

        assert result.passed
        assert result.duration >= 0.0
        assert result.description == ''

    def test_empty_request(self, runner):
        """Nothing to run is a pass with nothing executed."""
        outcome = runner.run([])

        assert outcome.passed
        assert outcome.executed == []

    def test_same_case_twice(self, runner, make_registry, call_log):
        """Duplicated requests run the case each time."""
        registry = make_registry(('alpha', 0))
        case = registry.find('alpha')

        outcome = runner.run([case, case])

        assert call_log == ['alpha', 'alpha']
        assert len(outcome.executed) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
