#!/usr/bin/env python3
# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the test case registry."""

import pytest

from selftest_harness.cases import BUILTIN_CASES, build_registry
from selftest_harness.test_runner.test_registry import (
    RegistryBuilder,
    TestCase,
    TestRegistry,
)


def _entry(session):
    return 0


class TestRegistryBuilder:
    """Tests for RegistryBuilder."""

    def test_preserves_registration_order(self):
        """Cases come back in the order they were added."""
        registry = (RegistryBuilder()
                    .add('test_b', _entry)
                    .add('test_a', _entry)
                    .add('test_c', _entry)
                    .build())

        assert registry.names() == ['test_b', 'test_a', 'test_c']
        assert [c.name for c in registry.all()] == ['test_b', 'test_a', 'test_c']
        assert len(registry) == 3

    def test_duplicate_name_rejected(self):
        """Names must be unique ignoring case."""
        builder = RegistryBuilder().add('test_a', _entry)

        with pytest.raises(ValueError):
            builder.add('TEST_A', _entry)

    def test_empty_name_rejected(self):
        """A case needs a name."""
        with pytest.raises(ValueError):
            RegistryBuilder().add('', _entry)

    def test_case_decorator_uses_function_name(self):
        """The decorator registers under __name__ and returns the function."""
        builder = RegistryBuilder()

        @builder.case
        def test_decorated(session):
            return 0

        registry = builder.build()
        assert registry.names() == ['test_decorated']
        assert registry.find('test_decorated').entry is test_decorated

    def test_extend(self):
        """extend() adds (name, entry) pairs in order."""
        registry = RegistryBuilder().extend(
            [('test_x', _entry), ('test_y', _entry)]).build()

        assert registry.names() == ['test_x', 'test_y']


class TestTestRegistry:
    """Tests for TestRegistry lookup."""

    def test_find_is_case_insensitive(self):
        """Lookup ignores case but returns the registered name."""
        registry = RegistryBuilder().add('test_Mixed', _entry).build()

        assert registry.find('TEST_MIXED').name == 'test_Mixed'
        assert registry.find('test_mixed').name == 'test_Mixed'

    def test_find_unknown(self):
        """Unknown names return None."""
        registry = RegistryBuilder().add('test_a', _entry).build()

        assert registry.find('test_b') is None
        assert registry.find('test_') is None

    def test_constructor_rejects_duplicates(self):
        """A registry built directly still enforces unique names."""
        cases = (TestCase('test_a', _entry), TestCase('Test_A', _entry))

        with pytest.raises(ValueError):
            TestRegistry(cases)

    def test_iteration(self):
        """Iterating yields TestCase objects in order."""
        registry = RegistryBuilder().add('one', _entry).add('two', _entry).build()

        assert [case.name for case in registry] == ['one', 'two']

    def test_all_returns_copy(self):
        """Mutating all() does not affect the registry."""
        registry = RegistryBuilder().add('one', _entry).build()

        registry.all().clear()
        assert len(registry) == 1


class TestBuiltinRegistry:
    """Tests for the built-in case table."""

    def test_builtin_names_unique_and_ordered(self):
        """Every built-in case is registered once, in table order."""
        registry = build_registry()

        assert len(registry) == len(BUILTIN_CASES)
        assert registry.names() == [entry.__name__ for entry in BUILTIN_CASES]
        assert registry.names()[0] == 'test_account'

    def test_builtin_after_existing(self):
        """Built-ins are appended after cases already in the builder."""
        builder = RegistryBuilder().add('custom_first', _entry)
        registry = build_registry(builder)

        assert registry.names()[0] == 'custom_first'
        assert len(registry) == len(BUILTIN_CASES) + 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
