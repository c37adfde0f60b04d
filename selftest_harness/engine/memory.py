# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Allocation tracking for engine-owned resources.

Every object the engine creates (user agents, calls, sockets, timers)
registers a block here and releases it when closed. After teardown the
live counts must be zero; anything else is a leak.
"""

import sys
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ResourceSnapshot:
    """Live allocation counts captured at a single point in time."""

    bytes_live: int
    """Bytes still held by live blocks."""

    blocks_live: int
    """Number of live blocks."""

    @property
    def leaked(self) -> bool:
        return self.bytes_live != 0 or self.blocks_live != 0

    def __str__(self) -> str:
        return f"{self.blocks_live} blocks / {self.bytes_live} bytes live"


class MemoryTracker:
    """
    Thread-safe registry of live engine allocations.

    Example:
        mem = MemoryTracker()
        handle = mem.alloc(sock, tag='udp')
        ...
        mem.free(handle)
        assert not mem.stat().leaked
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._blocks: Dict[int, Tuple[str, int]] = {}
        self._next_handle = 1

    def alloc(self, obj: object, tag: str = '', size: Optional[int] = None) -> int:
        """
        Register a live block for obj.

        Args:
            obj: The object being allocated (used for sizing)
            tag: Short label shown in debug output
            size: Explicit size in bytes (default: sys.getsizeof(obj))

        Returns:
            Handle to pass to free()
        """
        if size is None:
            size = sys.getsizeof(obj)
        label = tag or type(obj).__name__
        with self._lock:
            handle = self._next_handle
            self._next_handle += 1
            self._blocks[handle] = (label, size)
        return handle

    def free(self, handle: Optional[int]) -> None:
        """Release a block. Freeing None or an unknown handle is a no-op."""
        if handle is None:
            return
        with self._lock:
            self._blocks.pop(handle, None)

    def stat(self) -> ResourceSnapshot:
        """Return the current live counts."""
        with self._lock:
            return ResourceSnapshot(
                bytes_live=sum(size for _, size in self._blocks.values()),
                blocks_live=len(self._blocks),
            )

    def debug_lines(self) -> List[str]:
        """Describe every live block, oldest first."""
        with self._lock:
            items = sorted(self._blocks.items())
        lines = [f"Memory status: {len(items)} live block(s)"]
        for handle, (label, size) in items:
            lines.append(f"  #{handle:<6} {label:<16} {size} bytes")
        return lines
