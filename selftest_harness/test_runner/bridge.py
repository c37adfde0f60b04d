# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Engine startup and teardown around a selftest run.

Startup brings up the runtime, the async worker pool and the engine,
applies the test-environment configuration and installs the exit hook
that cancels the session's run-loop wait. Teardown runs exactly once on
every exit path, including a failed startup.
"""

import errno
import logging
from typing import Any, Callable, Optional

from selftest_harness.core.session import HarnessSession
from selftest_harness.engine.engine_interface import EngineInterface
from selftest_harness.engine.errors import EngineError
from selftest_harness.engine.local_engine import LocalEngine
from selftest_harness.engine.runtime import Runtime
from selftest_harness.test_runner.errors import StartupError

logger = logging.getLogger(__name__)

ASYNC_WORKERS = 4

# Module configuration injected at startup
MODCONFIG = (
    "ausrc_format    s16\n"
)

# SIP traffic stays on localhost
LOOPBACK_ADDRESS = "127.0.0.1"
SIP_LISTEN_ANY = "0.0.0.0:0"

EngineFactory = Callable[[Runtime], EngineInterface]


class RunLoopBridge:
    """
    Owns the engine for the duration of one run.

    Example:
        with RunLoopBridge(session):
            outcome = TestRunner(session).run(cases)
        snapshot = LeakGate(session.runtime).snapshot()
    """

    def __init__(self,
                 session: HarnessSession,
                 engine_factory: EngineFactory = LocalEngine,
                 runtime_factory: Callable[[], Runtime] = Runtime,
                 workers: int = ASYNC_WORKERS,
                 modconfig: str = MODCONFIG):
        self.session = session
        self._engine_factory = engine_factory
        self._runtime_factory = runtime_factory
        self.workers = workers
        self.modconfig = modconfig
        self._started = False
        self._torn_down = False
        self.startup_dump: Optional[str] = None
        self.teardown_error: Optional[EngineError] = None

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def __enter__(self) -> 'RunLoopBridge':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.teardown()
        return False

    def start(self) -> None:
        """
        Bring up runtime and engine.

        Raises:
            StartupError: If the engine reports an error; whatever was
                started has been torn down already
        """
        if self._started:
            raise RuntimeError("bridge already started")
        self._started = True
        session = self.session
        try:
            runtime = self._runtime_factory()
            session.runtime = runtime
            runtime.init()
            runtime.async_init(self.workers)

            engine = self._engine_factory(runtime)
            session.engine = engine
            engine.configure_buf(self.modconfig)
            config = engine.config
            if config is None:
                raise EngineError(errno.ENOENT, "no configuration")
            engine.init(config)

            host, port = engine.add_address(LOOPBACK_ADDRESS, 0)
            config.sip.local = SIP_LISTEN_ANY
            config.sip.verify_server = False

            engine.set_exit_handler(self._on_engine_exit, session)
            logger.info("engine started on %s:%d with %d async workers",
                        host, port, self.workers)
        except EngineError as e:
            logger.error("engine startup failed: %s", e)
            if session.engine is not None:
                self.startup_dump = session.engine.debug()
            self.teardown()
            raise StartupError(e.code, str(e)) from e
        except BaseException:
            self.teardown()
            raise

    def teardown(self) -> None:
        """
        Stop and close everything that was started. Idempotent.

        An EngineError from one shutdown step does not skip the later
        ones; the first is kept in teardown_error.
        """
        if self._torn_down:
            return
        self._torn_down = True
        engine = self.session.engine
        runtime = self.session.runtime
        try:
            if engine is not None:
                for step in (lambda: engine.ua_stop_all(True), engine.ua_close,
                             engine.conf_close, engine.close):
                    try:
                        step()
                    except EngineError as e:
                        logger.error("engine teardown failed: %s", e)
                        if self.teardown_error is None:
                            self.teardown_error = e
        finally:
            if runtime is not None:
                runtime.async_close()
                for line in runtime.timer_debug():
                    logger.debug(line)
                runtime.close()
        logger.info("engine teardown complete")

    @staticmethod
    def _on_engine_exit(arg: Any) -> None:
        logger.debug("ua exited -- stopping main runloop")
        session: Optional[HarnessSession] = arg
        if session is not None:
            session.request_cancel()
