#!/usr/bin/env python3
# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for argument parsing and test selection."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from selftest_harness.test_runner.errors import SelectionError, UsageError
from selftest_harness.test_runner.selector import parse_args, resolve
from selftest_harness.test_runner.test_registry import RegistryBuilder


def _registry(*names):
    builder = RegistryBuilder()
    for name in names:
        builder.add(name, lambda session: 0)
    return builder.build()


class TestParseArgs:
    """Tests for parse_args."""

    def test_defaults(self):
        """No arguments selects everything quietly."""
        options = parse_args([])

        assert not options.show_help
        assert not options.list_only
        assert options.verbosity == 0
        assert options.names == []

    def test_flags(self):
        """-h and -l are recognised."""
        assert parse_args(['-h']).show_help
        assert parse_args(['-l']).list_only

    def test_verbosity_counts(self):
        """Each -v raises the verbosity."""
        assert parse_args(['-v']).verbosity == 1
        assert parse_args(['-v', '-v']).verbosity == 2
        assert parse_args(['-vv']).verbosity == 2

    def test_names_and_options_interleaved(self):
        """Options may appear between test names."""
        options = parse_args(['test_b', '-v', 'test_a'])

        assert options.names == ['test_b', 'test_a']
        assert options.verbosity == 1

    def test_unknown_option(self):
        """An unknown flag is a usage error, not a process exit."""
        with pytest.raises(UsageError):
            parse_args(['-x'])

    def test_long_help_is_unknown(self):
        """Only the short options exist."""
        with pytest.raises(UsageError):
            parse_args(['--help'])


class TestResolve:
    """Tests for resolve."""

    def test_no_names_selects_all(self):
        """An empty request means every case in registration order."""
        registry = _registry('alpha', 'beta', 'gamma')

        assert [c.name for c in resolve(registry, [])] == ['alpha', 'beta', 'gamma']

    def test_request_order_kept(self):
        """Named cases run in the order given, not registration order."""
        registry = _registry('alpha', 'beta', 'gamma')

        selected = resolve(registry, ['gamma', 'alpha'])
        assert [c.name for c in selected] == ['gamma', 'alpha']

    def test_case_insensitive(self):
        """Names match regardless of case."""
        registry = _registry('test_ua_alloc')

        assert resolve(registry, ['TEST_UA_ALLOC'])[0].name == 'test_ua_alloc'

    def test_duplicates_run_twice(self):
        """Naming a case twice selects it twice."""
        registry = _registry('alpha')

        assert len(resolve(registry, ['alpha', 'ALPHA'])) == 2

    def test_first_unknown_reported(self):
        """The first unknown name is the one reported."""
        registry = _registry('alpha', 'beta')

        with pytest.raises(SelectionError) as excinfo:
            resolve(registry, ['beta', 'nope', 'also_nope'])
        assert excinfo.value.name == 'nope'


_NAMES = ['alpha', 'beta', 'gamma', 'delta', 'epsilon']


class TestResolveProperties:
    """Property-based checks on selection."""

    @given(st.lists(st.sampled_from(_NAMES), max_size=10))
    def test_selection_matches_request(self, wanted):
        """Selected cases follow the request exactly."""
        registry = _registry(*_NAMES)

        selected = resolve(registry, wanted)
        if wanted:
            assert [c.name for c in selected] == wanted
        else:
            assert [c.name for c in selected] == _NAMES

    @given(st.lists(st.sampled_from(_NAMES), min_size=1, max_size=5),
           st.data())
    def test_case_folding(self, wanted, data):
        """Randomly re-cased names resolve to the same cases."""
        registry = _registry(*_NAMES)
        recased = [
            ''.join(c.upper() if data.draw(st.booleans()) else c for c in name)
            for name in wanted
        ]

        assert [c.name for c in resolve(registry, recased)] == wanted


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
