#!/usr/bin/env python3
# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for configuration, account, dial-string and command parsing."""

import errno

import pytest

from selftest_harness.engine.account import parse_account, parse_uri, uri_complete
from selftest_harness.engine.commands import Command, CommandRegistry
from selftest_harness.engine.conf import Config, parse_conf_buf
from selftest_harness.engine.errors import EngineError, describe_error
from selftest_harness.engine.memory import MemoryTracker
from selftest_harness.engine.util import clean_number, decode_stun_uri


class TestErrors:
    """Tests for engine error codes."""

    def test_describe(self):
        assert describe_error(0) == "Success"
        assert describe_error(errno.EINVAL).endswith(f"[{errno.EINVAL}]")

    def test_engine_error_message(self):
        err = EngineError(errno.ENOENT, "no such thing")

        assert err.code == errno.ENOENT
        assert str(err).startswith("no such thing: ")


class TestConf:
    """Tests for the configuration buffer."""

    def test_parse_pairs(self):
        pairs = parse_conf_buf(
            "# comment\n"
            "ausrc_format    s16\n"
            "\n"
            "sip_listen 0.0.0.0:5070   # trailing\n"
            "module_path  /usr/lib/engine modules\n")

        assert pairs == [
            ('ausrc_format', 's16'),
            ('sip_listen', '0.0.0.0:5070'),
            ('module_path', '/usr/lib/engine modules'),
        ]

    def test_missing_value(self):
        with pytest.raises(EngineError) as excinfo:
            parse_conf_buf("ausrc_format\n")
        assert excinfo.value.code == errno.EINVAL

    def test_apply(self):
        config = Config()
        config.apply([
            ('sip_verify_server', 'no'),
            ('auplay_format', 's32'),
            ('net_interface', 'lo'),
            ('call_max_calls', '2'),
            ('unknown_key', 'kept'),
        ])

        assert config.sip.verify_server is False
        assert config.audio.play_format == 's32'
        assert config.audio.src_format == 's16'
        assert config.net.interface == 'lo'
        assert config.call.max_calls == 2
        assert config.extra == {'unknown_key': 'kept'}

    @pytest.mark.parametrize('key,value', [
        ('sip_verify_server', 'maybe'),
        ('call_max_calls', 'many'),
    ])
    def test_apply_bad_values(self, key, value):
        with pytest.raises(EngineError):
            Config().apply([(key, value)])


class TestAccount:
    """Tests for URI and account parsing."""

    def test_parse_uri(self):
        uri = parse_uri('sip:alice@127.0.0.1:5080;transport=udp')

        assert uri.user == 'alice'
        assert uri.host == '127.0.0.1'
        assert uri.port == 5080
        assert uri.params == {'transport': 'udp'}
        assert str(uri) == 'sip:alice@127.0.0.1:5080'

    def test_parse_uri_invalid(self):
        with pytest.raises(EngineError):
            parse_uri('mailto:alice@example.com')

    def test_unbracketed_params_belong_to_account(self):
        account = parse_account('sip:x@127.0.0.1;abc=123;regint=0')

        assert account.aor == 'sip:x@127.0.0.1'
        assert account.params == {'abc': '123', 'regint': '0'}
        assert account.regint == 0

    def test_defaults(self):
        account = parse_account('<sip:bob@example.com>')

        assert account.regint == 3600
        assert account.answermode == 'manual'

    def test_non_numeric_regint(self):
        with pytest.raises(EngineError):
            parse_account('<sip:a@b>;regint=soon')

    def test_uri_complete_keeps_port(self):
        assert uri_complete('bob@10.0.0.1:5070', '127.0.0.1') == 'sip:bob@10.0.0.1:5070'


class TestUtil:
    """Tests for dial-string and STUN helpers."""

    @pytest.mark.parametrize('dial,expected', [
        ('+44 (0)20 7946 0000', '+442079460000'),
        ('0 30 / 12 34', '0301234'),
        ('(0)30 1234', '0301234'),
    ])
    def test_clean_number(self, dial, expected):
        assert clean_number(dial) == expected

    def test_clean_number_letters(self):
        assert clean_number('bob (0) 123') == 'bob (0) 123'

    def test_stun_secure(self):
        uri = decode_stun_uri('stuns:example.com:443')

        assert uri.secure
        assert uri.port == 443
        assert uri.transport == 'tcp'

    def test_stun_unknown_scheme(self):
        with pytest.raises(EngineError) as excinfo:
            decode_stun_uri('sip:example.com')
        assert excinfo.value.code == errno.ENOTSUP


class TestCommandRegistry:
    """Tests for CommandRegistry."""

    def setup_method(self):
        self.mem = MemoryTracker()
        self.commands = CommandRegistry(self.mem)

    def test_register_tracks_allocation(self):
        self.commands.register(Command('one', lambda args: 'ok', key='1'))
        assert self.mem.stat().blocks_live == 1

        self.commands.unregister_all()
        assert not self.mem.stat().leaked
        assert self.commands.names() == []

    def test_execute_long_and_key(self):
        self.commands.register(Command('echo', lambda args: args, key='e'))

        assert self.commands.execute('/echo  hello world ') == 'hello world'
        assert self.commands.execute('e') == ''

    def test_bad_key(self):
        with pytest.raises(EngineError) as excinfo:
            self.commands.register(Command('two', lambda args: '', key='ab'))
        assert excinfo.value.code == errno.EINVAL

    def test_plain_text_is_not_a_command(self):
        with pytest.raises(EngineError) as excinfo:
            self.commands.execute('echo hello')
        assert excinfo.value.code == errno.ENOENT

    def test_help_text(self):
        self.commands.register(Command('zeta', lambda args: '', 'Last'))
        self.commands.register(Command('alpha', lambda args: '', 'First', key='a'))

        lines = self.commands.help_text().splitlines()
        assert '/alpha' in lines[0]
        assert 'First' in lines[0]
        assert '/zeta' in lines[1]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
