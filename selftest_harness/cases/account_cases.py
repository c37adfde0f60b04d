# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Account line parsing and URI completion."""

import errno

from selftest_harness.cases.helpers import (
    expect_engine_error,
    expect_equals,
    selftest_case,
)
from selftest_harness.engine.account import parse_account, uri_complete


@selftest_case
def test_account(session):
    account = parse_account(
        '"Mr User" <sip:user@127.0.0.1:5080;transport=udp>'
        ';answermode=auto;auth_user=xuser;regint=600')

    expect_equals('Mr User', account.display_name, 'display name')
    expect_equals('sip:user@127.0.0.1:5080', account.aor, 'aor')
    expect_equals('user', account.uri.user, 'user')
    expect_equals(5080, account.uri.port, 'port')
    expect_equals('udp', account.uri.params.get('transport'), 'transport')
    expect_equals('auto', account.answermode, 'answermode')
    expect_equals('xuser', account.auth_user, 'auth_user')
    expect_equals(600, account.regint, 'regint')

    plain = parse_account('sip:bob@example.com')
    expect_equals('', plain.display_name, 'display name')
    expect_equals('manual', plain.answermode, 'default answermode')
    expect_equals('bob', plain.auth_user, 'default auth_user')

    expect_engine_error(errno.EINVAL, parse_account, '<sip:a@b>;answermode=maybe')
    expect_engine_error(errno.EINVAL, parse_account, '<sip:a@b>;regint=-1')
    expect_engine_error(errno.EINVAL, parse_account, '<sip:host-only>')
    expect_engine_error(errno.EINVAL, parse_account, '"Unterminated <sip:a@b>')


@selftest_case
def test_account_uri_complete(session):
    host = '127.0.0.1'
    for dial, expected in (
        ('bob', 'sip:bob@127.0.0.1'),
        ('sip:bob', 'sip:bob@127.0.0.1'),
        ('bob@example.com', 'sip:bob@example.com'),
        ('sip:bob@example.com', 'sip:bob@example.com'),
        ('sips:bob@example.com', 'sips:bob@example.com'),
        ('+4930123456', 'sip:+4930123456@127.0.0.1'),
    ):
        expect_equals(expected, uri_complete(dial, host), f"complete {dial!r}")

    expect_engine_error(errno.EINVAL, uri_complete, '  ', host)
