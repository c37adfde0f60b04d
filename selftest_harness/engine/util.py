# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Dial-string and STUN URI helpers."""

import errno
import re
from dataclasses import dataclass

from selftest_harness.engine.errors import EngineError

_NUMBER_SEPARATORS = ' .-/()'

_STUN_DEFAULT_PORTS = {
    'stun': 3478,
    'turn': 3478,
    'stuns': 5349,
    'turns': 5349,
}

_STUN_RE = re.compile(
    r'^(?P<scheme>stuns?|turns?):(?P<host>\[[^\]]+\]|[^:?]+)'
    r'(?::(?P<port>\d+))?(?:\?transport=(?P<transport>udp|tcp))?$'
)


def clean_number(text: str) -> str:
    """
    Strip formatting from a telephone number.

    Input containing letters is trusted as-is. For international
    numbers a ``(0)`` trunk prefix followed by a space or digit is
    dropped. Separators (space . - / parentheses) are removed.

    >>> clean_number('+49 (0) 30 12345-678')
    '+493012345678'
    """
    if re.search(r'[A-Za-z]', text):
        return text

    if text.startswith('+') or text.startswith('00'):
        text = re.sub(r'\(0\)(?=[ 0-9])', ' ', text, count=1)

    return ''.join(c for c in text if c not in _NUMBER_SEPARATORS)


@dataclass(frozen=True)
class StunUri:
    """Parsed ``stun:``/``turn:`` URI."""

    scheme: str
    host: str
    port: int
    transport: str

    @property
    def secure(self) -> bool:
        return self.scheme.endswith('s')


def decode_stun_uri(text: str) -> StunUri:
    """
    Decode a STUN/TURN URI.

    Raises:
        EngineError: ENOTSUP for an unknown scheme, EINVAL otherwise
    """
    scheme, sep, _ = text.partition(':')
    if not sep:
        raise EngineError(errno.EINVAL, f"invalid STUN URI: {text!r}")
    if scheme.lower() not in _STUN_DEFAULT_PORTS:
        raise EngineError(errno.ENOTSUP, f"unsupported scheme: {scheme!r}")

    match = _STUN_RE.match(text)
    if match is None:
        raise EngineError(errno.EINVAL, f"invalid STUN URI: {text!r}")

    scheme = match.group('scheme')
    port = match.group('port')
    transport = match.group('transport')
    if transport is None:
        transport = 'tcp' if scheme.endswith('s') else 'udp'

    return StunUri(
        scheme=scheme,
        host=match.group('host'),
        port=int(port) if port else _STUN_DEFAULT_PORTS[scheme],
        transport=transport,
    )
