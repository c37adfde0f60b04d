# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Command interface: key commands, long commands and errors."""

import errno

from selftest_harness.cases.helpers import (
    expect_engine_error,
    expect_equals,
    expect_true,
    local_engine,
    selftest_case,
)
from selftest_harness.engine.commands import Command


@selftest_case
def test_cmd(session):
    commands = local_engine(session).commands
    calls = []

    def handler(args):
        calls.append(args)
        return f"got {args!r}"

    commands.register(Command('selftest', handler, 'Selftest command', key='@'))
    try:
        expect_equals("got ''", commands.execute('@'), 'key command output')
        expect_equals("got 'x y'", commands.execute('/selftest x y'),
                      'long command output')
        expect_equals(['', 'x y'], calls, 'handler arguments')

        expect_engine_error(errno.EALREADY, commands.register,
                            Command('selftest', handler))
        expect_engine_error(errno.EALREADY, commands.register,
                            Command('other', handler, key='@'))
        expect_engine_error(errno.ENOENT, commands.execute, '/nonexistent')
        expect_engine_error(errno.ENOENT, commands.execute, '~')
    finally:
        commands.unregister('selftest')

    expect_engine_error(errno.ENOENT, commands.execute, '@')


@selftest_case
def test_cmd_long(session):
    engine = local_engine(session)
    commands = engine.commands

    expect_true(engine.VERSION in commands.execute('/about'), "about text")
    expect_true('/dial' in commands.execute('h'), "help lists /dial")

    before = len(engine.uas)
    output = commands.execute('/uanew sip:cmdtest@127.0.0.1')
    expect_equals('created sip:cmdtest@127.0.0.1', output, 'uanew output')
    expect_equals(before + 1, len(engine.uas), 'user agents after uanew')
    expect_true('sip:cmdtest@127.0.0.1 --' in commands.execute('r'),
                "reginfo lists new user agent")

    expect_equals('deleted sip:cmdtest@127.0.0.1', commands.execute('/uadel cmdtest'),
                  'uadel output')
    expect_equals(before, len(engine.uas), 'user agents after uadel')

    expect_engine_error(errno.ENOENT, commands.execute, '/uadel cmdtest')
    expect_engine_error(errno.EINVAL, commands.execute, '/uanew not-an-account')
