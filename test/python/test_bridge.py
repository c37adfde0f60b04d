#!/usr/bin/env python3
# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for engine startup/teardown and the leak gate."""

import errno

import pytest

from selftest_harness.core.session import HarnessSession
from selftest_harness.engine.runtime import Runtime
from selftest_harness.test_runner.bridge import (
    MODCONFIG,
    SIP_LISTEN_ANY,
    RunLoopBridge,
)
from selftest_harness.test_runner.errors import EXIT_LEAK, EXIT_SUCCESS, StartupError
from selftest_harness.test_runner.leak_gate import LeakGate

TEARDOWN = ['ua_stop_all(True)', 'ua_close', 'conf_close', 'close']


@pytest.fixture
def session(captured_console):
    with HarnessSession(console=captured_console, timeout_sec=1.0) as session:
        yield session


class TestRunLoopBridge:
    """Tests for RunLoopBridge."""

    def test_startup_and_teardown_order(self, session, fake_engine_factory):
        """Startup configures, binds and hooks; teardown runs once in order."""
        with RunLoopBridge(session, engine_factory=fake_engine_factory) as bridge:
            assert fake_engine_factory.log == [
                'configure_buf', 'init', 'add_address', 'set_exit_handler']
            engine = fake_engine_factory.engines[0]
            assert engine.buf == MODCONFIG
            assert engine.config.sip.local == SIP_LISTEN_ANY
            assert engine.config.sip.verify_server is False
            assert session.runtime.pool.workers == 4
            assert not bridge.torn_down

        assert bridge.torn_down
        assert fake_engine_factory.log[4:] == TEARDOWN
        assert session.runtime.pool is None
        assert session.runtime.loop.closed

    def test_teardown_on_exception(self, session, fake_engine_factory):
        """An exception inside the block still tears everything down once."""
        bridge = RunLoopBridge(session, engine_factory=fake_engine_factory)

        with pytest.raises(KeyError):
            with bridge:
                raise KeyError('boom')

        bridge.teardown()
        assert fake_engine_factory.log[4:] == TEARDOWN

    def test_startup_failure_tears_down(self, session, fake_engine_factory):
        """A failing engine call surfaces as StartupError after teardown."""
        fake_engine_factory.fail_on = 'add_address'
        bridge = RunLoopBridge(session, engine_factory=fake_engine_factory)

        with pytest.raises(StartupError) as excinfo:
            bridge.start()

        assert excinfo.value.code == errno.EADDRINUSE
        assert excinfo.value.exit_code == errno.EADDRINUSE
        assert bridge.torn_down
        assert fake_engine_factory.log == [
            'configure_buf', 'init', 'add_address'] + TEARDOWN
        assert not session.runtime.mem_stat().leaked

    def test_startup_failure_keeps_engine_dump(self, session, fake_engine_factory):
        fake_engine_factory.fail_on = 'add_address'
        bridge = RunLoopBridge(session, engine_factory=fake_engine_factory)

        with pytest.raises(StartupError):
            bridge.start()

        assert bridge.startup_dump == '--- fake engine ---'

    def test_teardown_error_does_not_skip_later_steps(self, session,
                                                      fake_engine_factory):
        """A failing shutdown step is recorded and the rest still run."""
        fake_engine_factory.fail_on = 'conf_close'

        with RunLoopBridge(session, engine_factory=fake_engine_factory) as bridge:
            pass

        assert fake_engine_factory.log[4:] == TEARDOWN
        assert bridge.teardown_error.code == errno.EADDRINUSE
        assert session.runtime.loop.closed
        assert not session.runtime.mem_stat().leaked

    def test_startup_failure_in_init(self, session, fake_engine_factory):
        fake_engine_factory.fail_on = 'init'

        with pytest.raises(StartupError):
            with RunLoopBridge(session, engine_factory=fake_engine_factory):
                pytest.fail("block must not run")

        assert fake_engine_factory.log.count('close') == 1

    def test_start_twice(self, session, fake_engine_factory):
        with RunLoopBridge(session, engine_factory=fake_engine_factory) as bridge:
            with pytest.raises(RuntimeError):
                bridge.start()

    def test_exit_hook_cancels_run_loop(self, session, fake_engine_factory):
        """The engine exit hook ends the session's run-loop wait."""
        with RunLoopBridge(session, engine_factory=fake_engine_factory):
            engine = fake_engine_factory.engines[0]
            session.loop.call_later(0.01, engine.fire_exit)

            assert session.run_loop(timeout_sec=2.0) is True
            # the cancel was consumed by that activation
            assert session.run_loop(timeout_sec=0.05) is False

    def test_exit_hook_before_wait(self, session, fake_engine_factory):
        """A cancel that lands before the wait ends the next activation."""
        with RunLoopBridge(session, engine_factory=fake_engine_factory):
            fake_engine_factory.engines[0].fire_exit()

            assert session.run_loop(timeout_sec=2.0) is True

    def test_custom_modconfig(self, session, fake_engine_factory):
        with RunLoopBridge(session, engine_factory=fake_engine_factory,
                           workers=1, modconfig="ausrc_format s32\n"):
            assert fake_engine_factory.engines[0].buf == "ausrc_format s32\n"
            assert session.runtime.pool.workers == 1


class TestHarnessSession:
    """Tests for HarnessSession exclusivity."""

    def test_single_active_session(self, session, captured_console):
        assert HarnessSession.active() is session

        with pytest.raises(RuntimeError):
            with HarnessSession(console=captured_console):
                pass

        assert HarnessSession.active() is session

    def test_loop_before_start(self, session):
        with pytest.raises(RuntimeError):
            session.loop


class TestLeakGate:
    """Tests for LeakGate."""

    def test_clean_teardown(self, session, fake_engine_factory):
        bridge = RunLoopBridge(session, engine_factory=fake_engine_factory)
        with bridge:
            pass

        gate = LeakGate(session.runtime, bridge)
        snapshot = gate.snapshot()

        assert not snapshot.leaked
        assert gate.taken is snapshot
        assert gate.apply(EXIT_SUCCESS) == EXIT_SUCCESS

    def test_leak_overrides_success_only(self, session, fake_engine_factory):
        """A leftover block turns success into EXIT_LEAK but keeps failure codes."""
        bridge = RunLoopBridge(session, engine_factory=fake_engine_factory)
        with bridge:
            session.runtime.mem.alloc(object(), tag='leftover', size=16)

        gate = LeakGate(session.runtime, bridge)
        snapshot = gate.snapshot()

        assert snapshot.blocks_live == 1
        assert snapshot.bytes_live == 16
        assert gate.apply(EXIT_SUCCESS) == EXIT_LEAK
        assert gate.apply(errno.EINVAL) == errno.EINVAL
        assert any('leftover' in line for line in gate.details())

    def test_pending_timer_is_a_leak(self, session, fake_engine_factory):
        bridge = RunLoopBridge(session, engine_factory=fake_engine_factory)
        with bridge:
            session.loop.call_later(60.0, lambda: None)

        assert LeakGate(session.runtime, bridge).apply(EXIT_SUCCESS) == EXIT_LEAK

    def test_snapshot_before_teardown(self, session, fake_engine_factory):
        with RunLoopBridge(session, engine_factory=fake_engine_factory) as bridge:
            with pytest.raises(RuntimeError):
                LeakGate(session.runtime, bridge).snapshot()

    def test_snapshot_once(self):
        gate = LeakGate(Runtime())
        gate.snapshot()

        with pytest.raises(RuntimeError):
            gate.snapshot()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
