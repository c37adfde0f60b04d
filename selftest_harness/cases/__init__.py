# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Built-in selftest cases for the local engine.

build_registry() returns them in their canonical run and listing order.
"""

from selftest_harness.cases import (
    account_cases,
    call_cases,
    cmd_cases,
    ua_cases,
    util_cases,
)
from selftest_harness.test_runner.test_registry import RegistryBuilder, TestRegistry

BUILTIN_CASES = (
    account_cases.test_account,
    account_cases.test_account_uri_complete,
    call_cases.test_call_answer,
    call_cases.test_call_answer_hangup_b,
    call_cases.test_call_reject,
    call_cases.test_call_max,
    cmd_cases.test_cmd,
    cmd_cases.test_cmd_long,
    ua_cases.test_message,
    ua_cases.test_network,
    util_cases.test_stunuri,
    ua_cases.test_ua_alloc,
    ua_cases.test_ua_register,
    ua_cases.test_uag_find_param,
    ua_cases.test_ua_stop_all,
    util_cases.test_clean_number,
    util_cases.test_clean_number_only_numeric,
)


def build_registry(builder: RegistryBuilder = None) -> TestRegistry:
    """Register the built-in cases (after any already in builder)."""
    builder = builder or RegistryBuilder()
    for entry in BUILTIN_CASES:
        builder.case(entry)
    return builder.build()
