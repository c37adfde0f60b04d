# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
User agent account lines.

An account line looks like::

    "Alice" <sip:alice@127.0.0.1:5060;transport=udp>;answermode=auto;regint=0

The part inside angle brackets is the address-of-record; parameters
after the closing bracket belong to the account.
"""

import errno
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from selftest_harness.engine.errors import EngineError

ANSWERMODES = ('manual', 'auto')

DEFAULT_REGINT = 3600

_URI_RE = re.compile(
    r'^(?P<scheme>sips?):(?:(?P<user>[^@;:]+)@)?'
    r'(?P<host>\[[^\]]+\]|[^:;>]+)(?::(?P<port>\d+))?(?P<params>;.*)?$'
)


def _parse_params(text: str) -> Dict[str, str]:
    params = {}
    for item in text.split(';'):
        item = item.strip()
        if not item:
            continue
        key, _, value = item.partition('=')
        params[key.strip().lower()] = value.strip()
    return params


@dataclass
class SipUri:
    """Parsed SIP URI."""

    scheme: str
    user: str
    host: str
    port: Optional[int] = None
    params: Dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        user = f"{self.user}@" if self.user else ""
        port = f":{self.port}" if self.port else ""
        return f"{self.scheme}:{user}{self.host}{port}"


def parse_uri(text: str) -> SipUri:
    """
    Parse ``sip:user@host[:port][;params]``.

    Raises:
        EngineError: EINVAL if text is not a SIP URI
    """
    match = _URI_RE.match(text.strip())
    if match is None:
        raise EngineError(errno.EINVAL, f"invalid SIP URI: {text!r}")
    port = match.group('port')
    return SipUri(
        scheme=match.group('scheme'),
        user=match.group('user') or '',
        host=match.group('host'),
        port=int(port) if port else None,
        params=_parse_params(match.group('params') or ''),
    )


def uri_complete(uri: str, host: str) -> str:
    """
    Complete a partial dial string into a full SIP URI.

    ``bob`` becomes ``sip:bob@<host>``; ``sip:bob`` becomes
    ``sip:bob@<host>``; complete URIs are returned unchanged.
    """
    uri = uri.strip()
    if not uri:
        raise EngineError(errno.EINVAL, "empty URI")
    if not uri.startswith(('sip:', 'sips:')):
        uri = f"sip:{uri}"
    if '@' not in uri:
        uri = f"{uri}@{host}"
    return uri


@dataclass
class Account:
    """A parsed account line."""

    display_name: str
    uri: SipUri
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def aor(self) -> str:
        return str(self.uri)

    @property
    def answermode(self) -> str:
        return self.params.get('answermode', 'manual')

    @property
    def regint(self) -> int:
        return int(self.params.get('regint', DEFAULT_REGINT))

    @property
    def auth_user(self) -> str:
        return self.params.get('auth_user', self.uri.user)


def parse_account(line: str) -> Account:
    """
    Parse an account line.

    Raises:
        EngineError: EINVAL on malformed input or bad parameter values
    """
    text = line.strip()
    display_name = ''

    if text.startswith('"'):
        end = text.find('"', 1)
        if end < 0:
            raise EngineError(errno.EINVAL, "unterminated display name")
        display_name = text[1:end]
        text = text[end + 1:].strip()

    if text.startswith('<'):
        end = text.find('>')
        if end < 0:
            raise EngineError(errno.EINVAL, "missing '>' in account")
        uri = parse_uri(text[1:end])
        params = _parse_params(text[end + 1:])
    else:
        # Without brackets the trailing parameters belong to the account
        uri_text, _, param_text = text.partition(';')
        uri = parse_uri(uri_text)
        params = _parse_params(param_text)

    if not uri.user:
        raise EngineError(errno.EINVAL, "account has no user part")

    account = Account(display_name=display_name, uri=uri, params=params)

    if account.answermode not in ANSWERMODES:
        raise EngineError(errno.EINVAL,
                          f"invalid answermode: {account.answermode!r}")
    try:
        if account.regint < 0:
            raise ValueError
    except ValueError:
        raise EngineError(errno.EINVAL,
                          f"invalid regint: {params.get('regint')!r}")

    return account
