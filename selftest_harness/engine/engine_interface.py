# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Abstract interface the harness uses to drive an engine.

The harness only ever configures, binds, stops and closes an engine
through these calls; what the engine does in between belongs to the
test cases.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Tuple

from selftest_harness.engine.conf import Config

ExitHandler = Callable[[Any], None]


class EngineInterface(ABC):
    """
    Lifecycle boundary between the harness and an engine.

    Usage:
        engine.configure_buf("ausrc_format s16\\n")
        engine.init(engine.config)
        engine.add_address("127.0.0.1", 0)
        engine.set_exit_handler(on_exit, None)
        # Run tests...
        engine.ua_stop_all(forced=True)
        engine.ua_close()
        engine.conf_close()
        engine.close()
    """

    VERSION: str = "0.0.0"

    @abstractmethod
    def configure_buf(self, buf: str) -> None:
        """Load configuration from a key-value buffer."""
        pass

    @property
    @abstractmethod
    def config(self) -> Optional[Config]:
        """The loaded configuration, or None before configure_buf()."""
        pass

    @abstractmethod
    def init(self, config: Config) -> None:
        """Initialise the engine with config."""
        pass

    @abstractmethod
    def add_address(self, host: str, port: int = 0) -> Tuple[str, int]:
        """Bind a local network address; returns the bound (host, port)."""
        pass

    @abstractmethod
    def set_exit_handler(self, handler: Optional[ExitHandler], arg: Any = None) -> None:
        """
        Install the handler fired once all user agents have stopped.

        Replaces any previously installed handler.
        """
        pass

    @abstractmethod
    def ua_stop_all(self, forced: bool) -> None:
        """Stop every user agent; forced skips unregistration."""
        pass

    @abstractmethod
    def ua_close(self) -> None:
        """Release whatever user agent state is left."""
        pass

    @abstractmethod
    def conf_close(self) -> None:
        """Release the configuration."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Shut the engine down. Safe to call on a partially started engine."""
        pass

    @abstractmethod
    def debug(self) -> str:
        """Multi-line dump of the engine's internal state."""
        pass
