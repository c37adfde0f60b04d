# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Engine configuration.

The engine reads a minimal key-value buffer: one ``key value`` pair per
line, ``#`` starts a comment. Known keys map onto the Config tree;
anything else is kept in Config.extra for modules to read.
"""

import errno
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from selftest_harness.engine.errors import EngineError


@dataclass
class SipConfig:
    """SIP stack settings."""

    local: str = "0.0.0.0:5060"
    """Listen address (host:port). Port 0 picks an ephemeral port."""

    verify_server: bool = True
    """Verify TLS server certificates."""


@dataclass
class AudioConfig:
    """Audio pipeline settings."""

    src_format: str = "s16"
    play_format: str = "s16"


@dataclass
class NetConfig:
    """Network settings."""

    interface: str = ""


@dataclass
class CallConfig:
    """Call handling limits."""

    max_calls: int = 4


_BOOL_VALUES = {'yes': True, 'true': True, '1': True,
                'no': False, 'false': False, '0': False}


def _parse_bool(key: str, value: str) -> bool:
    try:
        return _BOOL_VALUES[value.lower()]
    except KeyError:
        raise EngineError(errno.EINVAL, f"{key}: not a boolean: {value!r}")


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise EngineError(errno.EINVAL, f"{key}: not an integer: {value!r}")


@dataclass
class Config:
    """Complete engine configuration."""

    sip: SipConfig = field(default_factory=SipConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    net: NetConfig = field(default_factory=NetConfig)
    call: CallConfig = field(default_factory=CallConfig)
    extra: Dict[str, str] = field(default_factory=dict)

    def apply(self, pairs: List[Tuple[str, str]]) -> None:
        """Apply parsed key-value pairs on top of the current values."""
        for key, value in pairs:
            if key == 'sip_listen':
                self.sip.local = value
            elif key == 'sip_verify_server':
                self.sip.verify_server = _parse_bool(key, value)
            elif key == 'ausrc_format':
                self.audio.src_format = value
            elif key == 'auplay_format':
                self.audio.play_format = value
            elif key == 'net_interface':
                self.net.interface = value
            elif key == 'call_max_calls':
                self.call.max_calls = _parse_int(key, value)
            else:
                self.extra[key] = value


def parse_conf_buf(text: str) -> List[Tuple[str, str]]:
    """
    Parse a configuration buffer into ordered (key, value) pairs.

    Raises:
        EngineError: EINVAL for a key without a value
    """
    pairs = []
    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.split('#', 1)[0].strip()
        if not line:
            continue
        parts = line.split(None, 1)
        if len(parts) != 2:
            raise EngineError(errno.EINVAL,
                              f"line {lineno}: missing value for {parts[0]!r}")
        pairs.append((parts[0], parts[1].strip()))
    return pairs
