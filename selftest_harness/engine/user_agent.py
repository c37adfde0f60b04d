# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
User agents and calls.

A UserAgent owns its calls. All state changes happen on the run-loop
thread and are reported through the engine's event handlers.
"""

import errno
import logging
import uuid
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from selftest_harness.engine.account import Account, parse_uri
from selftest_harness.engine.errors import EngineError

if TYPE_CHECKING:
    from selftest_harness.engine.local_engine import LocalEngine

logger = logging.getLogger(__name__)

# callback(status, reason) for a request's final response
ResponseHandler = Callable[[int, str], None]


class UaEvent(Enum):
    """Events reported to engine event handlers."""
    REGISTERING = auto()
    REGISTER_OK = auto()
    REGISTER_FAIL = auto()
    UNREGISTERING = auto()
    CALL_OUTGOING = auto()
    CALL_INCOMING = auto()
    CALL_RINGING = auto()
    CALL_ESTABLISHED = auto()
    CALL_CLOSED = auto()
    MESSAGE_RECEIVED = auto()


class CallState(Enum):
    """Lifecycle of a call."""
    OUTGOING = auto()
    INCOMING = auto()
    RINGING = auto()
    ESTABLISHED = auto()
    CLOSED = auto()


class Call:
    """One call leg owned by a user agent."""

    def __init__(self, ua: 'UserAgent', peer_uri: str, outgoing: bool,
                 call_id: Optional[str] = None):
        self.ua = ua
        self.peer_uri = peer_uri
        self.outgoing = outgoing
        self.id = call_id or uuid.uuid4().hex
        self.state = CallState.OUTGOING if outgoing else CallState.INCOMING
        self.reason = ''
        self.peer_addr = None
        self._invite: Optional[Dict[str, Any]] = None
        self._mem = ua.engine.mem.alloc(self, tag='call')

    @property
    def closed(self) -> bool:
        return self.state == CallState.CLOSED

    def answer(self) -> None:
        """
        Accept an incoming call.

        Raises:
            EngineError: EPROTO if the call is not an unanswered incoming call
        """
        if self.outgoing or self.state not in (CallState.INCOMING, CallState.RINGING):
            raise EngineError(errno.EPROTO, f"cannot answer call in state {self.state.name}")
        self.ua.engine.send_response(self.peer_addr, self._invite, 200, 'OK')
        self._set_established()

    def reject(self, status: int = 486, reason: str = 'Busy Here') -> None:
        """Refuse an incoming call with a final error response."""
        if self.outgoing or self.state not in (CallState.INCOMING, CallState.RINGING):
            raise EngineError(errno.EPROTO, f"cannot reject call in state {self.state.name}")
        self.ua.engine.send_response(self.peer_addr, self._invite, status, reason)
        self._close(f"{status} {reason}")

    def hangup(self, reason: str = 'Connection reset by user') -> None:
        """End the call, notifying the peer where a dialog exists."""
        if self.closed:
            return
        if not self.outgoing and self.state in (CallState.INCOMING, CallState.RINGING):
            self.ua.engine.send_response(self.peer_addr, self._invite, 486, 'Busy Here')
        elif self.peer_addr is not None:
            self.ua.engine.send_request(
                self.peer_addr, 'BYE', self.ua.aor, self.peer_uri,
                call_id=self.id)
        self._close(reason)

    def on_invite_response(self, status: int, reason: str) -> None:
        if self.closed:
            return
        if status < 200:
            if status == 180 and self.state == CallState.OUTGOING:
                self.state = CallState.RINGING
                self.ua.engine.emit(self.ua, UaEvent.CALL_RINGING, self)
        elif status < 300:
            self._set_established()
        else:
            self._close(f"{status} {reason}")

    def on_bye(self) -> None:
        self._close('Connection reset by peer')

    def _set_established(self) -> None:
        self.state = CallState.ESTABLISHED
        self.ua.engine.emit(self.ua, UaEvent.CALL_ESTABLISHED, self)

    def _close(self, reason: str) -> None:
        if self.closed:
            return
        self.state = CallState.CLOSED
        self.reason = reason
        logger.debug("call %s closed: %s", self.id[:8], reason)
        self.ua.remove_call(self)
        self.ua.engine.mem.free(self._mem)
        self._mem = None
        self.ua.engine.emit(self.ua, UaEvent.CALL_CLOSED, self, reason)

    def __repr__(self) -> str:
        direction = 'out' if self.outgoing else 'in'
        return f"<Call {self.id[:8]} {direction} {self.peer_uri} {self.state.name}>"


class UserAgent:
    """A SIP user agent bound to one account."""

    def __init__(self, engine: 'LocalEngine', account: Account):
        self.engine = engine
        self.account = account
        self.calls: List[Call] = []
        self.registered = False
        self.closed = False
        self._mem = engine.mem.alloc(self, tag='ua')

    @property
    def aor(self) -> str:
        return self.account.aor

    @property
    def user(self) -> str:
        return self.account.uri.user

    def param(self, name: str) -> Optional[str]:
        return self.account.params.get(name.lower())

    def register(self) -> None:
        """Start (re-)registration with the account's registrar."""
        self._check_open()
        self.engine.emit(self, UaEvent.REGISTERING)
        self.engine.send_to_uri(
            self.aor, 'REGISTER', self.aor, self.aor,
            body=str(self.account.regint), on_response=self._on_register_response)

    def unregister(self, on_done: Optional[Callable[[], None]] = None) -> None:
        """Remove the registration; on_done runs once the registrar answers."""
        self._check_open()
        self.engine.emit(self, UaEvent.UNREGISTERING)

        def _done(status: int, reason: str) -> None:
            self.registered = False
            if on_done is not None:
                on_done()

        self.engine.send_to_uri(self.aor, 'REGISTER', self.aor, self.aor,
                                body='0', on_response=_done)

    def connect(self, uri: str) -> Call:
        """
        Place an outgoing call.

        Raises:
            EngineError: EOVERFLOW if the call limit is reached
        """
        self._check_open()
        self._check_call_limit()
        peer = str(parse_uri(uri))
        call = Call(self, peer, outgoing=True)
        self.calls.append(call)
        self.engine.emit(self, UaEvent.CALL_OUTGOING, call)

        def _resolved(addr) -> None:
            call.peer_addr = addr

        self.engine.send_to_uri(uri, 'INVITE', self.aor, peer, call_id=call.id,
                                on_response=call.on_invite_response,
                                on_resolved=_resolved)
        return call

    def send_message(self, uri: str, text: str,
                     on_response: Optional[ResponseHandler] = None) -> None:
        """Send an instant message to uri."""
        self._check_open()
        self.engine.send_to_uri(uri, 'MESSAGE', self.aor, str(parse_uri(uri)),
                                body=text, on_response=on_response)

    def call_by_id(self, call_id: str) -> Optional[Call]:
        for call in self.calls:
            if call.id == call_id:
                return call
        return None

    def remove_call(self, call: Call) -> None:
        if call in self.calls:
            self.calls.remove(call)

    def handle_request(self, msg: Dict[str, Any], src) -> None:
        method = msg.get('method')
        engine = self.engine

        if method == 'INVITE':
            if len(self.calls) >= engine.max_calls:
                engine.send_response(src, msg, 486, 'Max Calls')
                return
            call = Call(self, msg.get('from', ''), outgoing=False,
                        call_id=msg.get('call_id'))
            call.peer_addr = src
            call._invite = msg
            self.calls.append(call)
            engine.send_response(src, msg, 180, 'Ringing')
            engine.emit(self, UaEvent.CALL_INCOMING, call)
            if self.account.answermode == 'auto':
                engine.loop.call_soon(self._auto_answer, call)
        elif method == 'BYE':
            call = self.call_by_id(msg.get('call_id', ''))
            if call is None:
                engine.send_response(src, msg, 481, 'Call Does Not Exist')
                return
            engine.send_response(src, msg, 200, 'OK')
            call.on_bye()
        elif method == 'MESSAGE':
            engine.send_response(src, msg, 200, 'OK')
            engine.emit(self, UaEvent.MESSAGE_RECEIVED, None, msg.get('body', ''))
        else:
            engine.send_response(src, msg, 405, 'Method Not Allowed')

    def close(self) -> None:
        """Hang up all calls and release the user agent."""
        if self.closed:
            return
        for call in list(self.calls):
            call.hangup()
        self.closed = True
        self.engine.mem.free(self._mem)
        self._mem = None

    def _auto_answer(self, call: Call) -> None:
        if call.state in (CallState.INCOMING, CallState.RINGING):
            call.answer()

    def _on_register_response(self, status: int, reason: str) -> None:
        if self.closed:
            return
        if 200 <= status < 300:
            self.registered = True
            self.engine.emit(self, UaEvent.REGISTER_OK, None, f"{status} {reason}")
        else:
            self.registered = False
            self.engine.emit(self, UaEvent.REGISTER_FAIL, None, f"{status} {reason}")

    def _check_open(self) -> None:
        if self.closed:
            raise EngineError(errno.ESHUTDOWN, f"user agent closed: {self.aor}")

    def _check_call_limit(self) -> None:
        if len(self.calls) >= self.engine.max_calls:
            raise EngineError(errno.EOVERFLOW,
                              f"{self.aor}: max {self.engine.max_calls} calls")

    def __repr__(self) -> str:
        reg = 'registered' if self.registered else 'unregistered'
        return f"<UserAgent {self.aor} {reg} calls={len(self.calls)}>"
