# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Call setup and teardown between two local user agents.

Every exchange travels over the engine's loopback socket, so each step
waits on the run loop.
"""

import errno

from selftest_harness.cases.helpers import (
    collecting_events,
    dial_uri,
    drain_transactions,
    expect_engine_error,
    expect_equals,
    expect_true,
    expect_within,
    local_engine,
    selftest_case,
    temporary_ua,
)
from selftest_harness.engine.user_agent import CallState, UaEvent


def _closed_reason(events, ua):
    closed = events.get_events(UaEvent.CALL_CLOSED, ua)
    return closed[-1].text if closed else None


@selftest_case
def test_call_answer(session):
    with temporary_ua(session, 'sip:a@127.0.0.1') as a, \
            temporary_ua(session, 'sip:b@127.0.0.1') as b, \
            collecting_events(session) as events:

        call = a.connect(dial_uri(session, 'b'))
        expect_within(session, lambda: events.count(UaEvent.CALL_INCOMING, b) == 1,
                      "incoming call at b")
        expect_within(session, lambda: call.state == CallState.RINGING,
                      "ringing at a")

        b.calls[0].answer()
        expect_within(session, lambda: call.state == CallState.ESTABLISHED,
                      "call established at a")
        expect_equals(1, events.count(UaEvent.CALL_ESTABLISHED, a), 'a established')
        expect_equals(1, events.count(UaEvent.CALL_ESTABLISHED, b), 'b established')

        call.hangup()
        expect_within(session, lambda: not b.calls, "call closed at b")
        expect_equals('Connection reset by peer', _closed_reason(events, b),
                      'b close reason')
        expect_equals('Connection reset by user', _closed_reason(events, a),
                      'a close reason')
        drain_transactions(session)


@selftest_case
def test_call_answer_hangup_b(session):
    with temporary_ua(session, 'sip:a@127.0.0.1') as a, \
            temporary_ua(session, 'sip:b@127.0.0.1;answermode=auto') as b, \
            collecting_events(session) as events:

        call = a.connect(dial_uri(session, 'b'))
        expect_within(session, lambda: call.state == CallState.ESTABLISHED,
                      "auto-answered call")
        expect_equals(1, len(b.calls), 'calls at b')

        b.calls[0].hangup()
        expect_within(session, lambda: call.closed, "call closed at a")
        expect_equals('Connection reset by peer', call.reason, 'a close reason')
        expect_equals(0, len(a.calls), 'calls at a')
        expect_equals(1, events.count(UaEvent.CALL_CLOSED, a), 'closed events at a')
        drain_transactions(session)


@selftest_case
def test_call_reject(session):
    with temporary_ua(session, 'sip:a@127.0.0.1') as a, \
            temporary_ua(session, 'sip:b@127.0.0.1') as b, \
            collecting_events(session) as events:

        call = a.connect(dial_uri(session, 'b'))
        expect_within(session, lambda: len(b.calls) == 1, "incoming call at b")

        b.calls[0].reject()
        expect_within(session, lambda: call.closed, "rejected call closed at a")
        expect_equals('486 Busy Here', call.reason, 'reject reason')
        expect_equals(0, events.count(UaEvent.CALL_ESTABLISHED), 'established events')
        expect_equals(0, len(b.calls), 'calls at b')
        drain_transactions(session)


@selftest_case
def test_call_max(session):
    config = local_engine(session).config
    saved = config.call.max_calls
    config.call.max_calls = 1
    try:
        with temporary_ua(session, 'sip:a@127.0.0.1') as a, \
                temporary_ua(session, 'sip:b@127.0.0.1;answermode=auto') as b, \
                temporary_ua(session, 'sip:c@127.0.0.1') as c:

            first = a.connect(dial_uri(session, 'b'))
            expect_within(session, lambda: first.state == CallState.ESTABLISHED,
                          "first call established")

            # local limit: a already has its one call
            expect_engine_error(errno.EOVERFLOW, a.connect, dial_uri(session, 'c'))

            # remote limit: b refuses a second call
            second = c.connect(dial_uri(session, 'b'))
            expect_within(session, lambda: second.closed, "second call refused")
            expect_equals('486 Max Calls', second.reason, 'refusal reason')
            expect_true(first.state == CallState.ESTABLISHED,
                        "first call survived the refused one")

            first.hangup()
            expect_within(session, lambda: not b.calls, "first call closed at b")
            drain_transactions(session)
    finally:
        config.call.max_calls = saved
