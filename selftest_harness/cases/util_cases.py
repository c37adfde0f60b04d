# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Pure helpers: STUN URIs and dial-string cleanup."""

import errno

from selftest_harness.cases.helpers import (
    expect_engine_error,
    expect_equals,
    selftest_case,
)
from selftest_harness.engine.util import StunUri, clean_number, decode_stun_uri


@selftest_case
def test_stunuri(session):
    for text, expected in (
        ('stun:example.com', StunUri('stun', 'example.com', 3478, 'udp')),
        ('stun:127.0.0.1:7000', StunUri('stun', '127.0.0.1', 7000, 'udp')),
        ('stuns:example.com', StunUri('stuns', 'example.com', 5349, 'tcp')),
        ('turn:example.com?transport=tcp', StunUri('turn', 'example.com', 3478, 'tcp')),
        ('turns:[::1]:5000', StunUri('turns', '[::1]', 5000, 'tcp')),
    ):
        expect_equals(expected, decode_stun_uri(text), f"decode {text!r}")

    expect_engine_error(errno.ENOTSUP, decode_stun_uri, 'http:example.com')
    expect_engine_error(errno.EINVAL, decode_stun_uri, 'stun')
    expect_engine_error(errno.EINVAL, decode_stun_uri, 'stun:host?transport=sctp')


@selftest_case
def test_clean_number(session):
    for dial, expected in (
        ('+49 (0) 30 12345-678', '+493012345678'),
        ('0049 (0)30 12345678', '00493012345678'),
        ('030/123.456', '030123456'),
        ('(030) 123 456', '030123456'),
        ('+1-555-0100', '+15550100'),
    ):
        expect_equals(expected, clean_number(dial), f"clean {dial!r}")


@selftest_case
def test_clean_number_only_numeric(session):
    # Anything with letters is taken as typed
    for dial in ('sip:+49 30 123@example.com', 'alice', '0800-FLOWERS'):
        expect_equals(dial, clean_number(dial), f"clean {dial!r}")
