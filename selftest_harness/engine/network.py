# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Datagram network layer of the engine.

Each bound address is a UDP socket registered with the run loop.
Datagrams carry one JSON object; malformed input is logged and dropped.
"""

import errno
import json
import logging
import socket
from typing import Any, Callable, Dict, List, Optional, Tuple

from selftest_harness.engine.errors import EngineError
from selftest_harness.engine.runloop import RunLoop

logger = logging.getLogger(__name__)

Address = Tuple[str, int]
ReceiveHandler = Callable[[Dict[str, Any], Address], None]

MAX_DATAGRAM = 65535


class Network:
    """Set of bound local addresses plus send/receive plumbing."""

    def __init__(self, loop: RunLoop, on_receive: ReceiveHandler):
        self._loop = loop
        self._on_receive = on_receive
        self._sockets: List[Tuple[socket.socket, int]] = []

    def add_address(self, host: str, port: int = 0) -> Address:
        """
        Bind a UDP socket on host:port (port 0 picks an ephemeral port).

        Returns:
            The bound (host, port)

        Raises:
            EngineError: If the address cannot be bound
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((host, port))
        except OSError as e:
            sock.close()
            raise EngineError(e.errno or errno.EADDRNOTAVAIL,
                              f"bind {host}:{port} failed")
        sock.setblocking(False)
        self._loop.add_reader(sock, self._readable)
        handle = self._loop.mem.alloc(sock, tag='udp_socket')
        self._sockets.append((sock, handle))
        bound = sock.getsockname()
        logger.debug("network: bound %s:%d", *bound)
        return bound

    @property
    def addresses(self) -> List[Address]:
        return [sock.getsockname() for sock, _ in self._sockets]

    @property
    def local_address(self) -> Optional[Address]:
        """First bound address, or None before add_address()."""
        if not self._sockets:
            return None
        return self._sockets[0][0].getsockname()

    def send(self, dst: Address, message: Dict[str, Any]) -> None:
        """Send one message from the primary socket."""
        if not self._sockets:
            raise EngineError(errno.ENOTCONN, "no local address bound")
        data = json.dumps(message).encode('utf-8')
        self._sockets[0][0].sendto(data, dst)
        logger.debug("network: sent %s to %s:%d",
                     message.get('method'), dst[0], dst[1])

    def close(self) -> None:
        for sock, handle in self._sockets:
            self._loop.remove_reader(sock)
            sock.close()
            self._loop.mem.free(handle)
        self._sockets.clear()

    def _readable(self, sock: socket.socket) -> None:
        while True:
            try:
                data, src = sock.recvfrom(MAX_DATAGRAM)
            except (BlockingIOError, InterruptedError):
                return
            try:
                message = json.loads(data.decode('utf-8'))
            except (UnicodeDecodeError, ValueError):
                logger.warning("network: dropping malformed datagram from %s:%d",
                               src[0], src[1])
                continue
            if not isinstance(message, dict):
                logger.warning("network: dropping non-object datagram")
                continue
            self._on_receive(message, src)
