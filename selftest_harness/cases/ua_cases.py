# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""User agent lifecycle, registration, messaging and network setup."""

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
from selftest_harness.engine.user_agent import UaEvent


@selftest_case
def test_network(session):
    engine = local_engine(session)
    addresses = engine.network.addresses
    expect_true(addresses, "no local address bound")
    host, port = addresses[0]
    expect_equals('127.0.0.1', host, 'bound host')
    expect_true(port != 0, "ephemeral port not assigned")

    config = engine.config
    expect_equals('0.0.0.0:0', config.sip.local, 'sip listen address')
    expect_equals(False, config.sip.verify_server, 'verify_server')
    expect_equals('s16', config.audio.src_format, 'ausrc_format')


@selftest_case
def test_ua_alloc(session):
    engine = local_engine(session)
    before = len(engine.uas)

    with temporary_ua(session, '"Alloc" <sip:alloc@127.0.0.1>;regint=0') as ua:
        expect_equals(before + 1, len(engine.uas), 'user agents')
        expect_true(engine.find_ua('sip:alloc@127.0.0.1') is ua, "find by aor")
        expect_true(engine.find_ua('alloc') is ua, "find by user")
        expect_equals(False, ua.registered, 'registered')
        expect_equals(0, len(ua.calls), 'calls')

        expect_engine_error(errno.EALREADY, engine.ua_alloc, 'sip:alloc@127.0.0.1')
        expect_engine_error(errno.EINVAL, engine.ua_alloc, 'garbage')

    expect_equals(before, len(engine.uas), 'user agents after destroy')
    expect_true(engine.find_ua('alloc') is None, "destroyed ua still found")


@selftest_case
def test_ua_register(session):
    with temporary_ua(session, 'sip:reg@127.0.0.1;regint=600') as ua, \
            collecting_events(session) as events:

        ua.register()
        expect_true(events.wait_for(UaEvent.REGISTER_OK, 1, session.timeout_sec,
                                    session.loop, ua),
                    "no REGISTER_OK", errno.ETIMEDOUT)
        expect_equals(True, ua.registered, 'registered')
        expect_equals(1, events.count(UaEvent.REGISTERING, ua), 'REGISTERING events')
        expect_equals(0, events.count(UaEvent.REGISTER_FAIL, ua), 'REGISTER_FAIL events')

        done = []
        ua.unregister(on_done=lambda: done.append(True))
        expect_within(session, lambda: done, "unregister")
        expect_equals(False, ua.registered, 'registered after unregister')
        drain_transactions(session)


@selftest_case
def test_message(session):
    with temporary_ua(session, 'sip:alice@127.0.0.1') as alice, \
            temporary_ua(session, 'sip:bob@127.0.0.1') as bob, \
            collecting_events(session) as events:

        responses = []
        alice.send_message(dial_uri(session, 'bob'), 'hello bob',
                           on_response=lambda status, reason: responses.append(status))

        expect_within(session, lambda: events.count(UaEvent.MESSAGE_RECEIVED, bob),
                      "message at bob")
        expect_equals('hello bob',
                      events.get_events(UaEvent.MESSAGE_RECEIVED, bob)[0].text,
                      'message text')
        expect_within(session, lambda: responses, "message response")
        expect_equals([200], responses, 'message responses')

        responses.clear()
        alice.send_message(dial_uri(session, 'nobody'), 'anyone?',
                           on_response=lambda status, reason: responses.append(status))
        expect_within(session, lambda: responses, "response for unknown user")
        expect_equals([404], responses, 'unknown user response')


@selftest_case
def test_uag_find_param(session):
    engine = local_engine(session)
    with temporary_ua(session, 'sip:x@127.0.0.1;abc=123;regint=0') as ua1, \
            temporary_ua(session, 'sip:y@127.0.0.1;abc;def=456;regint=0') as ua2:

        expect_true(engine.find_ua_param('abc') is ua1, "first ua with abc")
        expect_true(engine.find_ua_param('abc', '123') is ua1, "abc=123")
        expect_true(engine.find_ua_param('abc', '') is ua2, "bare abc")
        expect_true(engine.find_ua_param('def', '456') is ua2, "def=456")
        expect_true(engine.find_ua_param('def', '789') is None, "def=789")
        expect_true(engine.find_ua_param('xyz') is None, "xyz")


@selftest_case
def test_ua_stop_all(session):
    engine = local_engine(session)
    expect_equals(0, len(engine.uas), 'user agents before test')

    a = engine.ua_alloc('sip:stop1@127.0.0.1;regint=600')
    engine.ua_alloc('sip:stop2@127.0.0.1;regint=0')
    with collecting_events(session) as events:
        a.register()
        expect_within(session, lambda: a.registered, "registration")

        # unregistration is asynchronous; the exit hook ends the wait
        engine.ua_stop_all(forced=False)
        expect_true(session.run_loop(), "exit hook did not stop the run loop",
                    errno.ETIMEDOUT)
        expect_equals(0, len(engine.uas), 'user agents after stop')
        expect_equals(1, events.count(UaEvent.UNREGISTERING, a), 'UNREGISTERING events')

    drain_transactions(session)
