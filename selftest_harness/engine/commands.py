# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Engine command interface.

Commands have a long name, invoked as ``/name args``, and optionally a
single-character key, invoked by sending just that character.
"""

import errno
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from selftest_harness.engine.errors import EngineError
from selftest_harness.engine.memory import MemoryTracker

logger = logging.getLogger(__name__)

CommandHandler = Callable[[str], str]


@dataclass(frozen=True)
class Command:
    """A registered command."""

    name: str
    handler: CommandHandler
    description: str = ''
    key: Optional[str] = None


class CommandRegistry:
    """Name- and key-indexed command table."""

    def __init__(self, mem: MemoryTracker):
        self._mem = mem
        self._commands: Dict[str, Command] = {}
        self._handles: Dict[str, int] = {}

    def register(self, command: Command) -> None:
        """
        Add a command.

        Raises:
            EngineError: EALREADY if the name or key is taken
        """
        if command.name in self._commands:
            raise EngineError(errno.EALREADY, f"command exists: {command.name}")
        if command.key is not None:
            if len(command.key) != 1:
                raise EngineError(errno.EINVAL, "command key must be one character")
            if self._find_key(command.key) is not None:
                raise EngineError(errno.EALREADY, f"key in use: {command.key!r}")
        self._commands[command.name] = command
        self._handles[command.name] = self._mem.alloc(command, tag='cmd')

    def unregister(self, name: str) -> None:
        if self._commands.pop(name, None) is not None:
            self._mem.free(self._handles.pop(name))

    def unregister_all(self) -> None:
        for name in list(self._commands):
            self.unregister(name)

    def names(self) -> List[str]:
        return sorted(self._commands)

    def execute(self, line: str) -> str:
        """
        Run a command line.

        Returns:
            The command's output

        Raises:
            EngineError: ENOENT for an unknown command
        """
        line = line.strip()
        if line.startswith('/'):
            name, _, args = line[1:].partition(' ')
            command = self._commands.get(name)
            args = args.strip()
        elif len(line) == 1:
            command = self._find_key(line)
            args = ''
        else:
            command = None
        if command is None:
            raise EngineError(errno.ENOENT, f"command not found: {line!r}")
        logger.debug("cmd: %s %r", command.name, args)
        return command.handler(args)

    def help_text(self) -> str:
        lines = []
        for name in self.names():
            cmd = self._commands[name]
            key = cmd.key or ' '
            lines.append(f"  {key}  /{name:<20} {cmd.description}")
        return '\n'.join(lines)

    def _find_key(self, key: str) -> Optional[Command]:
        for command in self._commands.values():
            if command.key == key:
                return command
        return None
