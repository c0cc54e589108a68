"""
Unit tests for the attribute gateway.
"""

import base64
import json
import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import yaml

from fieldcrypt.errors import (
    DecryptionFailed,
    KeyResolutionFailed,
    MalformedEnvelope,
    UnknownAttribute,
)
from fieldcrypt.gateway import Gateway, owner_type
from fieldcrypt.models.options import ContextCallable, ContextMethod
from fieldcrypt.utils.cryptography import EnvelopeCodec


class User:
    def __init__(self, secret_key='k', encrypt_enabled=True):
        self.secret_key_value = secret_key
        self.encrypt_enabled = encrypt_enabled

    def secret_key(self):
        return self.secret_key_value

    def should_encrypt(self):
        return self.encrypt_enabled


class TestEndToEnd:

    def test_email_roundtrip(self, registry, gateway):
        registry.register(User, 'email', prefix='encrypted_', key='k')
        user = User()

        stored = gateway.encrypt('email', 'a@b.com', user)

        assert isinstance(stored, str)
        assert len(stored) >= 36
        assert len(base64.b64decode(stored)) == 24 + 16
        assert gateway.storage_name('email', user) == 'encrypted_email'
        assert gateway.decrypt('email', stored, user) == 'a@b.com'

    def test_wrong_key_fails(self, registry, gateway):
        registry.register(User, 'email', key='k')
        stored = gateway.encrypt('email', 'a@b.com', User())
        with pytest.raises(DecryptionFailed):
            gateway.decrypt('email', stored, User(), key='different')

    def test_per_instance_key(self, registry, gateway):
        registry.register(User, 'email', key=ContextMethod('secret_key'))
        alice, bob = User('alice-key'), User('bob-key')
        stored = gateway.encrypt('email', 'alice@example.com', alice)
        assert gateway.decrypt('email', stored, alice) == 'alice@example.com'
        assert gateway.decrypt('email', stored, User('alice-key')) == 'alice@example.com'
        with pytest.raises(DecryptionFailed):
            gateway.decrypt('email', stored, bob)

    def test_callable_key(self, registry, gateway):
        registry.register(User, 'email', key=ContextCallable(lambda u: u.secret_key_value * 2))
        stored = gateway.encrypt('email', 'x@y.z', User('ab'))
        assert EnvelopeCodec().open(stored, 'abab') == b'x@y.z'

    def test_class_level_encrypt(self, registry, gateway):
        registry.register(User, 'email', key='class-key')
        stored = gateway.encrypt('email', 'test@example.com', User)
        assert gateway.decrypt('email', stored, User) == 'test@example.com'
        assert gateway.decrypt('email', stored, User()) == 'test@example.com'

    def test_non_string_values_are_stringified(self, registry, gateway):
        registry.register(User, 'age', key='k')
        stored = gateway.encrypt('age', 42, User())
        assert gateway.decrypt('age', stored, User()) == '42'

    def test_bytes_value(self, registry, gateway):
        registry.register(User, 'token', key='k')
        stored = gateway.encrypt('token', b'raw-token', User())
        assert gateway.decrypt('token', stored, User()) == 'raw-token'

    def test_non_utf8_bytes_require_marshal(self, registry):
        codec = MagicMock(spec=EnvelopeCodec)
        gateway = Gateway(registry=registry, codec=codec)
        registry.register(User, 'token', key='k')
        with pytest.raises(ValueError, match='marshal=True'):
            gateway.encrypt('token', b'\xff\xfe\x00', User())
        codec.seal.assert_not_called()

    def test_inherited_attribute(self, registry, gateway):
        class Admin(User):
            pass

        registry.register(User, 'email', key='k')
        stored = gateway.encrypt('email', 'admin@example.com', Admin())
        assert gateway.decrypt('email', stored, Admin()) == 'admin@example.com'

    def test_unknown_attribute(self, gateway):
        with pytest.raises(UnknownAttribute):
            gateway.encrypt('email', 'a@b.com', User())


class TestPassThrough:

    @pytest.mark.parametrize('empty', [None, ''])
    def test_empty_values(self, registry, empty):
        registry.register(User, 'email', key='k')
        mock_codec = MagicMock(spec=EnvelopeCodec)
        gateway = Gateway(registry=registry, codec=mock_codec)
        assert gateway.encrypt('email', empty, User()) is empty
        assert gateway.decrypt('email', empty, User()) is empty
        mock_codec.seal.assert_not_called()
        mock_codec.open.assert_not_called()

    def test_if_false_bypasses_codec(self, registry):
        registry.register(User, 'email', key='k', if_=ContextMethod('should_encrypt'))
        mock_codec = MagicMock(spec=EnvelopeCodec)
        gateway = Gateway(registry=registry, codec=mock_codec)

        assert gateway.encrypt('email', 'a@b.com', User(encrypt_enabled=False)) == 'a@b.com'
        assert gateway.decrypt('email', 'a@b.com', User(encrypt_enabled=False)) == 'a@b.com'
        assert mock_codec.seal.call_count == 0
        assert mock_codec.open.call_count == 0

    def test_if_true_uses_codec(self, registry):
        registry.register(User, 'email', key='k', if_=ContextMethod('should_encrypt'))
        mock_codec = MagicMock(spec=EnvelopeCodec)
        mock_codec.seal.return_value = 'sealed'
        gateway = Gateway(registry=registry, codec=mock_codec)

        assert gateway.encrypt('email', 'a@b.com', User()) == 'sealed'
        mock_codec.seal.assert_called_once_with(b'a@b.com', 'k')

    def test_unless_true_skips(self, registry):
        registry.register(User, 'email', key='k', unless=ContextCallable(lambda u: u.secret_key_value == 'skip'))
        mock_codec = MagicMock(spec=EnvelopeCodec)
        gateway = Gateway(registry=registry, codec=mock_codec)
        assert gateway.encrypt('email', 'a@b.com', User('skip')) == 'a@b.com'
        mock_codec.seal.assert_not_called()


class TestMarshalAndEncode:

    def test_marshal_json(self, registry, gateway):
        registry.register(User, 'configuration', key='k', marshal=True)
        value = {'time_zone': 'UTC', 'tags': [1, 2]}
        stored = gateway.encrypt('configuration', value, User())
        assert gateway.decrypt('configuration', stored, User()) == value

    def test_marshal_yaml(self, registry, gateway):
        registry.register(User, 'configuration', key='k', marshal=True,
                          marshaler=yaml, dump_method='safe_dump', load_method='safe_load')
        value = {'time_zone': 'UTC', 'enabled': True}
        stored = gateway.encrypt('configuration', value, User())
        assert gateway.decrypt('configuration', stored, User()) == value

    def test_marshal_happens_before_encryption(self, registry):
        registry.register(User, 'configuration', key='k', marshal=True)
        mock_codec = MagicMock(spec=EnvelopeCodec)
        mock_codec.seal.return_value = 'sealed'
        Gateway(registry=registry, codec=mock_codec).encrypt('configuration', {'a': 1}, User())
        mock_codec.seal.assert_called_once_with(json.dumps({'a': 1}).encode('utf-8'), 'k')

    def test_unloadable_payload(self, registry, gateway, codec):
        registry.register(User, 'configuration', key='k', marshal=True)
        stored = codec.seal(b'not json {', 'k')
        with pytest.raises(DecryptionFailed, match='could not be loaded'):
            gateway.decrypt('configuration', stored, User())

    def test_encode_default(self, registry, gateway, codec):
        registry.register(User, 'email', key='k', encode=True)
        stored = gateway.encrypt('email', 'a@b.com', User())
        envelope = base64.b64decode(stored).decode('ascii')
        assert codec.open(envelope, 'k') == b'a@b.com'
        assert gateway.decrypt('email', stored, User()) == 'a@b.com'

    def test_encode_named(self, registry, gateway):
        registry.register(User, 'email', key='k', encode='hex')
        stored = gateway.encrypt('email', 'a@b.com', User())
        assert set(stored) <= set('0123456789abcdef')
        assert gateway.decrypt('email', stored, User()) == 'a@b.com'

    def test_encode_with_default_encoding(self, registry, gateway):
        registry.register(User, 'email', key='k', encode=True, default_encoding='base32')
        stored = gateway.encrypt('email', 'a@b.com', User())
        assert gateway.decrypt('email', stored, User()) == 'a@b.com'

    def test_undecodable_value(self, registry, gateway):
        registry.register(User, 'email', key='k', encode='hex')
        with pytest.raises(MalformedEnvelope):
            gateway.decrypt('email', 'zz-not-hex', User())


class TestCustomEncryptor:

    class ReversingEncryptor:
        def encrypt(self, value, key):
            return value[::-1].decode('utf-8')

        def decrypt(self, value, key):
            return value[::-1].encode('utf-8')

    def test_custom_encryptor_and_methods(self, registry, gateway):
        registry.register(User, 'email', encryptor=self.ReversingEncryptor(),
                          encrypt_method='encrypt', decrypt_method='decrypt')
        stored = gateway.encrypt('email', 'abc', User())
        assert stored == 'cba'
        assert gateway.decrypt('email', stored, User()) == 'abc'

    def test_unknown_options_reach_the_encryptor(self, registry, gateway):
        seen = []

        class ShiftingEncryptor:
            def encrypt(self, value, key, shift=0, **options):
                seen.append(('encrypt', shift, options))
                return ''.join(chr(ord(c) + shift) for c in value.decode('utf-8'))

            def decrypt(self, value, key, shift=0, **options):
                seen.append(('decrypt', shift, options))
                return ''.join(chr(ord(c) - shift) for c in value).encode('utf-8')

        registry.register(User, 'email', encryptor=ShiftingEncryptor(),
                          encrypt_method='encrypt', decrypt_method='decrypt',
                          shift=1, realm=ContextCallable(lambda user: user.secret_key_value))
        stored = gateway.encrypt('email', 'abc', User(secret_key='tenant-a'))
        assert stored == 'bcd'
        assert gateway.decrypt('email', stored, User(secret_key='tenant-a')) == 'abc'
        assert seen == [
            ('encrypt', 1, {'realm': 'tenant-a'}),
            ('decrypt', 1, {'realm': 'tenant-a'}),
        ]

    def test_default_codec_gets_no_extra_options(self, registry):
        codec = MagicMock(spec=EnvelopeCodec)
        codec.seal.return_value = 'sealed'
        gateway = Gateway(registry=registry, codec=codec)
        registry.register(User, 'email', key='k', shift=1)
        assert gateway.encrypt('email', 'abc', User()) == 'sealed'
        codec.seal.assert_called_once_with(b'abc', 'k')


class TestKeys:

    def test_missing_key(self, registry, gateway, caplog):
        registry.register(User, 'email')
        with caplog.at_level(logging.INFO, logger='security_events'):
            with pytest.raises(KeyResolutionFailed, match='No encryption key') as excinfo:
                gateway.encrypt('email', 'a@b.com', User())
        assert excinfo.value.option == 'key'
        records = [r for r in caplog.records if r.name == 'security_events']
        event = json.loads(records[-1].getMessage())
        assert event['action'] == 'resolve_option'
        assert event['success'] is False
        assert event['additional_data']['option_name'] == 'key'
        assert event['additional_data']['owner'] == 'User'

    def test_non_text_key_is_rejected(self, registry, gateway, caplog):
        class Account(User):
            def record_key(self):
                return 7

        registry.register(Account, 'email', key=ContextMethod('record_key'))
        with caplog.at_level(logging.INFO, logger='security_events'):
            with pytest.raises(KeyResolutionFailed, match='expected str or bytes') as excinfo:
                gateway.encrypt('email', 'a@b.com', Account())
            with pytest.raises(KeyResolutionFailed):
                gateway.decrypt('email', 'AAAA', Account())
        assert excinfo.value.option == 'key'
        records = [r for r in caplog.records if r.name == 'security_events']
        event = json.loads(records[0].getMessage())
        assert event['action'] == 'resolve_option'
        assert event['additional_data']['option_name'] == 'key'
        assert 'a@b.com' not in caplog.text

    def test_fallback_key_from_config(self, registry, codec):
        config = SimpleNamespace(ENCRYPTION_KEY='configured-key', TRACE=False)
        gateway = Gateway(registry=registry, codec=codec, config=config)
        registry.register(User, 'email')
        stored = gateway.encrypt('email', 'a@b.com', User())
        assert codec.open(stored, 'configured-key') == b'a@b.com'

    def test_attribute_key_beats_fallback(self, registry, codec):
        gateway = Gateway(registry=registry, codec=codec, config=SimpleNamespace(ENCRYPTION_KEY='fallback'))
        registry.register(User, 'email', key='own')
        stored = gateway.encrypt('email', 'a@b.com', User())
        assert codec.open(stored, 'own') == b'a@b.com'

    def test_resolution_failure_is_logged_without_secrets(self, registry, gateway, caplog):
        registry.register(User, 'email', key=ContextMethod('missing_method'))
        with caplog.at_level(logging.INFO, logger='security_events'):
            with pytest.raises(KeyResolutionFailed):
                gateway.encrypt('email', 'a@b.com', User())
        assert 'resolve_option' in caplog.text
        assert 'a@b.com' not in caplog.text


class TestFailureLogging:

    def test_decryption_failure_is_logged(self, registry, gateway, caplog):
        registry.register(User, 'email', key='the-real-key')
        with caplog.at_level(logging.INFO, logger='security_events'):
            with pytest.raises(MalformedEnvelope):
                gateway.decrypt('email', 'AAAA', User())
        records = [r for r in caplog.records if r.name == 'security_events']
        event = json.loads(records[-1].getMessage())
        assert event['action'] == 'decrypt'
        assert event['success'] is False
        assert event['additional_data']['attribute'] == 'email'
        assert event['additional_data']['owner'] == 'User'
        assert event['additional_data']['error_type'] == 'MalformedEnvelope'
        assert 'the-real-key' not in caplog.text


class TestPresence:

    def test_present_from_storage(self, registry, gateway):
        registry.register(User, 'email', key='k')
        user = User()
        user.encrypted_email = gateway.encrypt('email', 'a@b.com', user)
        assert gateway.presence('email', user) is True

    def test_absent(self, registry, gateway):
        registry.register(User, 'email', key='k')
        user = User()
        assert gateway.presence('email', user) is False
        user.encrypted_email = ''
        assert gateway.presence('email', user) is False

    def test_uses_cached_plaintext(self, registry):
        registry.register(User, 'email', key='k')
        mock_codec = MagicMock(spec=EnvelopeCodec)
        gateway = Gateway(registry=registry, codec=mock_codec)
        user = User()
        user.email = 'cached@example.com'
        user.encrypted_email = 'irrelevant'
        assert gateway.presence('email', user) is True
        user.email = ''
        assert gateway.presence('email', user) is False
        mock_codec.open.assert_not_called()

    def test_non_sized_values_use_truthiness(self, registry):
        registry.register(User, 'flag', key='k')
        gateway = Gateway(registry=registry, codec=MagicMock(spec=EnvelopeCodec))
        user = User()
        user.flag = 0
        assert gateway.presence('flag', user) is False
        user.flag = 7
        assert gateway.presence('flag', user) is True


class TestTracing:

    def test_trace_names_attribute_only(self, registry, codec, trace_config, caplog):
        registry.register(User, 'email', key='super-secret-key')
        gateway = Gateway(registry=registry, codec=codec, config=trace_config)
        with caplog.at_level(logging.DEBUG, logger='fieldcrypt.trace'):
            stored = gateway.encrypt('email', 'a@b.com', User())
            gateway.decrypt('email', stored, User())
        assert "fieldcrypt.gateway.encrypt({'attribute': 'email'})" in caplog.text
        assert "fieldcrypt.gateway.decrypt({'attribute': 'email'})" in caplog.text
        assert 'super-secret-key' not in caplog.text
        assert 'a@b.com' not in caplog.text


def test_owner_type():
    assert owner_type(User()) is User
    assert owner_type(User) is User
