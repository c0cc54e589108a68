"""
fieldcrypt - transparent per-attribute encryption.

    from fieldcrypt import ContextMethod, create_gateway, registry

    class User:
        def __init__(self, secret_key):
            self.secret_key_value = secret_key

        def secret_key(self):
            return self.secret_key_value

    registry.register(User, 'email', key=ContextMethod('secret_key'))
    gateway = create_gateway()
    user = User('some-secret-key')
    user.encrypted_email = gateway.encrypt('email', 'test@example.com', user)
"""

from fieldcrypt.app import create_gateway
from fieldcrypt.errors import (
    DecryptionFailed,
    FieldCryptError,
    KeyResolutionFailed,
    MalformedEnvelope,
    UnknownAttribute,
)
from fieldcrypt.extensions import registry
from fieldcrypt.gateway import Gateway
from fieldcrypt.models.attribute_spec import AttributeSpec
from fieldcrypt.models.options import ContextCallable, ContextMethod, Literal, OptionSet
from fieldcrypt.models.registry import Registry
from fieldcrypt.utils.cryptography import EnvelopeCodec, KdfProfile, KDF_PROFILES

__all__ = [
    'AttributeSpec',
    'ContextCallable',
    'ContextMethod',
    'DecryptionFailed',
    'EnvelopeCodec',
    'FieldCryptError',
    'Gateway',
    'KDF_PROFILES',
    'KdfProfile',
    'KeyResolutionFailed',
    'Literal',
    'MalformedEnvelope',
    'OptionSet',
    'Registry',
    'UnknownAttribute',
    'create_gateway',
    'registry',
]
