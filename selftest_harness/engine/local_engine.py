# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
In-process engine used by the built-in self-test cases.

User agents talk to each other over real UDP sockets on loopback, so
every exchange only completes while the run loop is being driven. The
engine also acts as registrar for its own user agents.
"""

import errno
import itertools
import logging
import socket
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from selftest_harness.engine.account import parse_account, parse_uri
from selftest_harness.engine.commands import Command, CommandRegistry
from selftest_harness.engine.conf import Config, parse_conf_buf
from selftest_harness.engine.engine_interface import EngineInterface, ExitHandler
from selftest_harness.engine.errors import EngineError
from selftest_harness.engine.network import Address, Network
from selftest_harness.engine.runtime import Runtime
from selftest_harness.engine.runloop import Timer
from selftest_harness.engine.user_agent import UaEvent, UserAgent

logger = logging.getLogger(__name__)

AUDIO_FORMATS = ('s16', 's24_3le', 's32', 'float')

TRANSACTION_TIMEOUT_SEC = 2.0

# Fields that must be strings when present
_STRING_FIELDS = ('method', 'call_id', 'from', 'to', 'body', 'reason')

# handler(ua, event, call, text)
EventHandler = Callable[[UserAgent, UaEvent, Any, str], None]


@dataclass
class _Transaction:
    timer: Timer
    on_response: Optional[Callable[[int, str], None]]
    method: str
    handle: int


class LocalEngine(EngineInterface):
    """Loopback communications engine on top of a Runtime."""

    VERSION = "1.0.0"

    def __init__(self, runtime: Runtime):
        self.runtime = runtime
        self._config: Optional[Config] = None
        self._conf_mem: Optional[int] = None
        self._mem: Optional[int] = None
        self.network: Optional[Network] = None
        self.commands: Optional[CommandRegistry] = None
        self._uas: List[UserAgent] = []
        self._handlers: List[EventHandler] = []
        self._transactions: Dict[Tuple[str, int], _Transaction] = {}
        self._cseq = itertools.count(1)
        self._bindings: Dict[str, Address] = {}
        self._exit_handler: Optional[ExitHandler] = None
        self._exit_arg: Any = None
        self._stopping = False

    @property
    def mem(self):
        return self.runtime.mem

    @property
    def loop(self):
        return self.runtime.loop

    @property
    def config(self) -> Optional[Config]:
        return self._config

    @property
    def max_calls(self) -> int:
        return self._config.call.max_calls if self._config else 1

    @property
    def initialised(self) -> bool:
        return self._mem is not None

    @property
    def transaction_count(self) -> int:
        return len(self._transactions)

    # Lifecycle

    def configure_buf(self, buf: str) -> None:
        config = Config()
        config.apply(parse_conf_buf(buf))
        self._config = config
        if self._conf_mem is None:
            self._conf_mem = self.mem.alloc(config, tag='conf')

    def init(self, config: Config) -> None:
        if self.loop is None:
            raise EngineError(errno.EINVAL, "runtime not initialised")
        if config.audio.src_format not in AUDIO_FORMATS:
            raise EngineError(errno.ENOTSUP,
                              f"unsupported ausrc_format: {config.audio.src_format}")
        self._config = config
        self._mem = self.mem.alloc(self, tag='engine')
        self.network = Network(self.loop, self._on_receive)
        self.commands = CommandRegistry(self.mem)
        self._register_builtin_commands()
        logger.debug("engine %s initialised", self.VERSION)

    def add_address(self, host: str, port: int = 0) -> Address:
        if self.network is None:
            raise EngineError(errno.EINVAL, "engine not initialised")
        return self.network.add_address(host, port)

    def set_exit_handler(self, handler: Optional[ExitHandler], arg: Any = None) -> None:
        self._exit_handler = handler
        self._exit_arg = arg

    def ua_stop_all(self, forced: bool) -> None:
        self._stopping = True
        uas = list(self._uas)
        if not uas:
            self._post_exit()
            return
        for ua in uas:
            for call in list(ua.calls):
                call.hangup()
            if ua.registered and not forced:
                ua.unregister(on_done=lambda ua=ua: self._destroy_ua(ua))
            else:
                self._destroy_ua(ua)

    def ua_close(self) -> None:
        for ua in list(self._uas):
            ua.close()
        self._uas.clear()
        self._handlers.clear()
        self._stopping = False

    def conf_close(self) -> None:
        self.mem.free(self._conf_mem)
        self._conf_mem = None

    def close(self) -> None:
        for key in list(self._transactions):
            self._end_transaction(key).timer.cancel()
        if self.network is not None:
            self.network.close()
            self.network = None
        if self.commands is not None:
            self.commands.unregister_all()
            self.commands = None
        self._bindings.clear()
        self._exit_handler = None
        self.mem.free(self._mem)
        self._mem = None

    def debug(self) -> str:
        lines = [f"--- engine {self.VERSION} ---"]
        if self.network is not None:
            for host, port in self.network.addresses:
                lines.append(f"network: {host}:{port}")
        lines.append(f"user agents ({len(self._uas)}):")
        for ua in self._uas:
            lines.append(f"  {ua!r}")
            lines.extend(f"    {call!r}" for call in ua.calls)
        lines.append(f"transactions ({len(self._transactions)}):")
        for (call_id, cseq), tx in self._transactions.items():
            lines.append(f"  {tx.method} {call_id[:8]} cseq={cseq}")
        lines.append(f"registrar bindings ({len(self._bindings)}):")
        for aor, (host, port) in sorted(self._bindings.items()):
            lines.append(f"  {aor} -> {host}:{port}")
        return '\n'.join(lines)

    # User agents

    def ua_alloc(self, account_line: str) -> UserAgent:
        """
        Create a user agent from an account line.

        Raises:
            EngineError: EINVAL for a bad account, EALREADY for a duplicate AOR
        """
        if not self.initialised:
            raise EngineError(errno.EINVAL, "engine not initialised")
        account = parse_account(account_line)
        if self.find_ua(account.aor) is not None:
            raise EngineError(errno.EALREADY, f"user agent exists: {account.aor}")
        if self.network.local_address is None:
            host, _, port = self._config.sip.local.rpartition(':')
            self.network.add_address(host or '0.0.0.0', int(port or 0))
        ua = UserAgent(self, account)
        self._uas.append(ua)
        logger.debug("ua: allocated %s", ua.aor)
        return ua

    @property
    def uas(self) -> List[UserAgent]:
        return list(self._uas)

    def find_ua(self, aor_or_user: str) -> Optional[UserAgent]:
        for ua in self._uas:
            if ua.aor == aor_or_user or ua.user == aor_or_user:
                return ua
        return None

    def find_ua_param(self, name: str, value: Optional[str] = None) -> Optional[UserAgent]:
        """First user agent whose account has param name (and value, if given)."""
        for ua in self._uas:
            actual = ua.param(name)
            if actual is None:
                continue
            if value is None or actual == value:
                return ua
        return None

    def destroy_ua(self, ua: UserAgent) -> None:
        self._destroy_ua(ua)

    def register_event_handler(self, handler: EventHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unregister_event_handler(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, ua: UserAgent, event: UaEvent, call=None, text: str = '') -> None:
        logger.debug("event: %s %s %s", ua.aor, event.name, text)
        for handler in list(self._handlers):
            handler(ua, event, call, text)

    # Messaging

    def send_to_uri(self, uri: str, method: str, from_aor: str, to_aor: str,
                    call_id: Optional[str] = None, body: str = '',
                    on_response: Optional[Callable[[int, str], None]] = None,
                    on_resolved: Optional[Callable[[Address], None]] = None) -> None:
        """
        Resolve uri and send a request to it.

        URIs with an explicit port are resolved on the worker pool;
        anything else is routed to this engine's own address.
        """
        target = parse_uri(uri)

        def _send(addr: Address) -> None:
            if on_resolved is not None:
                on_resolved(addr)
            self.send_request(addr, method, from_aor, to_aor, call_id=call_id,
                              body=body, on_response=on_response)

        if target.port is None or self.runtime.pool is None:
            addr = self._resolve(target.host, target.port)
            self.loop.call_soon(_send, addr)
            return

        def _resolved(err, addr) -> None:
            if err is not None:
                logger.warning("resolve %s failed: %s", target.host, err)
                if on_response is not None:
                    on_response(503, 'Service Unavailable')
                return
            _send(addr)

        self.runtime.pool.submit(lambda: self._resolve(target.host, target.port),
                                 _resolved)

    def send_request(self, dst: Address, method: str, from_aor: str, to_aor: str,
                     call_id: Optional[str] = None, body: str = '',
                     on_response: Optional[Callable[[int, str], None]] = None) -> None:
        if self.network is None:
            raise EngineError(errno.ESHUTDOWN, "engine closed")
        msg = {
            'method': method,
            'call_id': call_id or uuid.uuid4().hex,
            'cseq': next(self._cseq),
            'from': from_aor,
            'to': to_aor,
            'body': body,
        }
        key = (msg['call_id'], msg['cseq'])
        timer = self.loop.call_later(TRANSACTION_TIMEOUT_SEC, self._on_timeout, key)
        self._transactions[key] = _Transaction(
            timer=timer, on_response=on_response, method=method,
            handle=self.mem.alloc(msg, tag='transaction'))
        self.network.send(dst, msg)

    def send_response(self, dst: Address, request: Dict[str, Any],
                      status: int, reason: str) -> None:
        if self.network is None:
            raise EngineError(errno.ESHUTDOWN, "engine closed")
        self.network.send(dst, {
            'method': 'RESPONSE',
            'status': status,
            'reason': reason,
            'request': request.get('method'),
            'call_id': request.get('call_id'),
            'cseq': request.get('cseq'),
        })

    def _resolve(self, host: str, port: Optional[int]) -> Address:
        if port is None:
            return self.network.local_address
        info = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_DGRAM)
        return info[0][4][:2]

    def _on_receive(self, msg: Dict[str, Any], src: Address) -> None:
        problem = _malformed_field(msg)
        if problem is not None:
            logger.warning("dropping message from %s:%d with bad %s field",
                           src[0], src[1], problem)
            return
        method = msg['method']
        if method == 'RESPONSE':
            self._on_response(msg)
        elif method == 'REGISTER':
            self._on_register(msg, src)
        else:
            try:
                user = parse_uri(msg.get('to', '')).user
            except EngineError:
                self.send_response(src, msg, 400, 'Bad Request')
                return
            ua = self.find_ua(user)
            if ua is None:
                self.send_response(src, msg, 404, 'Not Found')
                return
            ua.handle_request(msg, src)

    def _on_register(self, msg: Dict[str, Any], src: Address) -> None:
        aor = msg.get('from', '')
        try:
            expires = int(msg.get('body') or 0)
        except ValueError:
            self.send_response(src, msg, 400, 'Bad Expires')
            return
        if expires > 0:
            self._bindings[aor] = src
        else:
            self._bindings.pop(aor, None)
        self.send_response(src, msg, 200, 'OK')

    def _on_response(self, msg: Dict[str, Any]) -> None:
        key = (msg['call_id'], msg['cseq'])
        status = msg['status']
        reason = msg.get('reason', '')
        tx = self._transactions.get(key)
        if tx is None:
            logger.debug("stray response %d for %s", status, key)
            return
        if status >= 200:
            self._end_transaction(key).timer.cancel()
        if tx.on_response is not None:
            tx.on_response(status, reason)

    def _on_timeout(self, key) -> None:
        if key not in self._transactions:
            return
        tx = self._end_transaction(key)
        logger.info("%s transaction timed out", tx.method)
        if tx.on_response is not None:
            tx.on_response(408, 'Request Timeout')

    def _end_transaction(self, key) -> _Transaction:
        tx = self._transactions.pop(key)
        self.mem.free(tx.handle)
        return tx

    def _destroy_ua(self, ua: UserAgent) -> None:
        if ua in self._uas:
            ua.close()
            self._uas.remove(ua)
            self._bindings.pop(ua.aor, None)
            logger.debug("ua: destroyed %s", ua.aor)
        if self._stopping and not self._uas:
            self._stopping = False
            self._post_exit()

    def _post_exit(self) -> None:
        if self._exit_handler is None or self.loop is None or self.loop.closed:
            return
        self.loop.call_soon(self._fire_exit)

    def _fire_exit(self) -> None:
        if self._exit_handler is not None:
            self._exit_handler(self._exit_arg)

    def _register_builtin_commands(self) -> None:
        for command in (
            Command('about', lambda args: f"engine version {self.VERSION}",
                    'About box', key='a'),
            Command('help', lambda args: self.commands.help_text(), 'Help', key='h'),
            Command('uanew', self._cmd_uanew, 'Create user agent'),
            Command('uadel', self._cmd_uadel, 'Delete user agent'),
            Command('dial', self._cmd_dial, 'Dial'),
            Command('hangup', self._cmd_hangup, 'Hangup call', key='b'),
            Command('reginfo', self._cmd_reginfo, 'Registration info', key='r'),
        ):
            self.commands.register(command)

    def _cmd_uanew(self, args: str) -> str:
        return f"created {self.ua_alloc(args).aor}"

    def _cmd_uadel(self, args: str) -> str:
        ua = self.find_ua(args)
        if ua is None:
            raise EngineError(errno.ENOENT, f"no user agent {args!r}")
        self._destroy_ua(ua)
        return f"deleted {ua.aor}"

    def _cmd_dial(self, args: str) -> str:
        if not self._uas:
            raise EngineError(errno.ENOENT, "no user agent")
        if not args:
            raise EngineError(errno.EINVAL, "dial: missing URI")
        call = self._uas[0].connect(args)
        return f"calling {call.peer_uri}"

    def _cmd_hangup(self, args: str) -> str:
        for ua in self._uas:
            if ua.calls:
                ua.calls[0].hangup()
                return "hung up"
        raise EngineError(errno.ENOENT, "no active call")

    def _cmd_reginfo(self, args: str) -> str:
        lines = [f"{ua.aor} {'OK' if ua.registered else '--'}" for ua in self._uas]
        return '\n'.join(lines) or "no user agents"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _malformed_field(msg: Dict[str, Any]) -> Optional[str]:
    """Name of the first field that makes msg unusable, or None."""
    for field in ('method', 'call_id'):
        if field not in msg:
            return field
    for field in _STRING_FIELDS:
        if field in msg and not isinstance(msg[field], str):
            return field
    if not _is_int(msg.get('cseq')):
        return 'cseq'
    if msg['method'] == 'RESPONSE':
        status = msg.get('status')
        if not _is_int(status) or not 100 <= status <= 699:
            return 'status'
    return None
