# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Helpers for writing selftest cases.

A case is a plain function ``case(session) -> int``. Inside a case the
``expect_*`` helpers raise CaseFailure; the ``selftest_case`` decorator
turns that (or an EngineError) into the returned error code.
"""

import errno
import functools
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from selftest_harness.core.event_collector import EventCollector
from selftest_harness.core.session import HarnessSession
from selftest_harness.engine.errors import EngineError
from selftest_harness.engine.local_engine import LocalEngine
from selftest_harness.engine.user_agent import UserAgent

logger = logging.getLogger(__name__)


class CaseFailure(Exception):
    """Raised inside a case body when a check fails."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


def expect_true(condition: Any, message: str, code: int = errno.EINVAL) -> None:
    if not condition:
        raise CaseFailure(code, message)


def expect_equals(expected: Any, actual: Any, what: str = 'value',
                  code: int = errno.EINVAL) -> None:
    if expected != actual:
        raise CaseFailure(code, f"{what}: expected {expected!r}, got {actual!r}")


def expect_engine_error(code: int, func: Callable, *args, **kwargs) -> EngineError:
    """Call func and require it to raise EngineError with the given code."""
    try:
        func(*args, **kwargs)
    except EngineError as e:
        expect_equals(code, e.code, f"{getattr(func, '__name__', func)} error")
        return e
    raise CaseFailure(errno.EINVAL,
                      f"{getattr(func, '__name__', func)}: expected error {code}")


def expect_within(session: HarnessSession, condition: Callable[[], bool],
                  what: str) -> None:
    """Drive the loop until condition holds, failing with ETIMEDOUT."""
    if not session.wait_until(condition):
        raise CaseFailure(errno.ETIMEDOUT, f"timeout waiting for {what}")


def selftest_case(func: Callable[[HarnessSession], Any]) -> Callable[[HarnessSession], int]:
    """Convert CaseFailure/EngineError raised by a case into its error code."""

    @functools.wraps(func)
    def wrapper(session: HarnessSession) -> int:
        try:
            func(session)
        except CaseFailure as e:
            logger.warning("%s: %s", func.__name__, e.message)
            return e.code
        except EngineError as e:
            logger.warning("%s: %s", func.__name__, e)
            return e.code
        return 0

    return wrapper


def local_engine(session: HarnessSession) -> LocalEngine:
    engine = session.engine
    if not isinstance(engine, LocalEngine):
        raise CaseFailure(errno.ENOTSUP, "case needs the local engine")
    return engine


def dial_uri(session: HarnessSession, user: str) -> str:
    """Full URI of a local user, including the engine's bound port."""
    host, port = local_engine(session).network.local_address
    return f"sip:{user}@{host}:{port}"


@contextmanager
def temporary_ua(session: HarnessSession, account_line: str) -> Iterator[UserAgent]:
    """Allocate a user agent and destroy it on exit.

    Example::

        with temporary_ua(session, "sip:alice@127.0.0.1") as alice:
            alice.register()
    """
    engine = local_engine(session)
    ua = engine.ua_alloc(account_line)
    try:
        yield ua
    finally:
        engine.destroy_ua(ua)


@contextmanager
def collecting_events(session: HarnessSession) -> Iterator[EventCollector]:
    """Collect engine events for the duration of the block."""
    collector = EventCollector(local_engine(session))
    try:
        yield collector
    finally:
        collector.destroy()


def drain_transactions(session: HarnessSession) -> None:
    """Wait until every outstanding request has its final response."""
    engine = local_engine(session)
    expect_within(session, lambda: engine.transaction_count == 0,
                  "outstanding transactions")
