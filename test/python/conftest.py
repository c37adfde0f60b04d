# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures: captured console and a scriptable fake engine."""

import errno
import io
from typing import Any, List, Optional

import pytest

from selftest_harness.engine.conf import Config
from selftest_harness.engine.engine_interface import EngineInterface
from selftest_harness.engine.errors import EngineError
from selftest_harness.output.console import Console
from selftest_harness.test_runner.test_registry import RegistryBuilder


class CapturedConsole(Console):
    """Console writing into string buffers."""

    def __init__(self):
        self.out = io.StringIO()
        self.err = io.StringIO()
        super().__init__(color=False, file=self.out, err_file=self.err)

    def stdout_lines(self) -> List[str]:
        return self.out.getvalue().splitlines()

    def stderr_lines(self) -> List[str]:
        return self.err.getvalue().splitlines()


class FakeEngine(EngineInterface):
    """Engine that records every lifecycle call."""

    VERSION = "0.0.1"

    def __init__(self, runtime, log: List[str], fail_on: Optional[str] = None):
        self.runtime = runtime
        self.log = log
        self.fail_on = fail_on
        self._config: Optional[Config] = None
        self.exit_handler = None
        self.exit_arg: Any = None
        self._mem = None

    def _record(self, name: str) -> None:
        self.log.append(name)
        if name == self.fail_on:
            raise EngineError(errno.EADDRINUSE, f"{name} failed")

    def configure_buf(self, buf: str) -> None:
        self._record('configure_buf')
        self._config = Config()
        self.buf = buf

    @property
    def config(self) -> Optional[Config]:
        return self._config

    def init(self, config: Config) -> None:
        self._record('init')
        self._mem = self.runtime.mem.alloc(self, tag='fake_engine')

    def add_address(self, host: str, port: int = 0):
        self._record('add_address')
        return (host, 40000)

    def set_exit_handler(self, handler, arg=None) -> None:
        self.log.append('set_exit_handler')
        self.exit_handler = handler
        self.exit_arg = arg

    def fire_exit(self) -> None:
        self.exit_handler(self.exit_arg)

    def ua_stop_all(self, forced: bool) -> None:
        self.log.append(f'ua_stop_all({forced})')

    def ua_close(self) -> None:
        self.log.append('ua_close')

    def conf_close(self) -> None:
        self._record('conf_close')

    def close(self) -> None:
        self.runtime.mem.free(self._mem)
        self._mem = None
        self._record('close')

    def debug(self) -> str:
        return "--- fake engine ---"


class FakeEngineFactory:
    """Callable passed as engine_factory; remembers what it built."""

    def __init__(self):
        self.log: List[str] = []
        self.fail_on: Optional[str] = None
        self.engines: List[FakeEngine] = []

    def __call__(self, runtime) -> FakeEngine:
        engine = FakeEngine(runtime, self.log, self.fail_on)
        self.engines.append(engine)
        return engine


@pytest.fixture
def captured_console():
    return CapturedConsole()


@pytest.fixture
def fake_engine_factory():
    return FakeEngineFactory()


@pytest.fixture
def call_log():
    """Names of test entry points in the order they were invoked."""
    return []


@pytest.fixture
def make_registry(call_log):
    """Build a registry from (name, result_code) pairs that log their calls."""

    def _make(*specs):
        builder = RegistryBuilder()
        for name, code in specs:
            def entry(session, name=name, code=code):
                call_log.append(name)
                return code
            builder.add(name, entry)
        return builder.build()

    return _make
