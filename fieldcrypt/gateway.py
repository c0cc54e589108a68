"""
Encrypts and decrypts attribute values for their owning objects.

The gateway ties the registry, the option resolver and the envelope codec
together:

    encrypt: resolve options -> gates -> marshal -> seal -> encode
    decrypt: resolve options -> gates -> decode -> open -> unmarshal

``None`` and empty strings pass through both directions untouched.
"""

import logging
from typing import Any

from fieldcrypt import extensions
from fieldcrypt.errors import DecryptionFailed, KeyResolutionFailed, MalformedEnvelope
from fieldcrypt.models.options import OptionSet, normalize_options
from fieldcrypt.models.registry import Registry
from fieldcrypt.utils.cryptography import EnvelopeCodec, get_codec
from fieldcrypt.utils.encoding import DECODE_ERRORS, get_encoder
from fieldcrypt.utils.resolver import resolve
from fieldcrypt.utils.security_logging import security_logger
from fieldcrypt.utils.tracing import trace

logger = logging.getLogger(__name__)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, (str, bytes)) and len(value) == 0)


def _is_present(value) -> bool:
    try:
        return len(value) > 0
    except TypeError:
        return bool(value)


def owner_type(ctx) -> type:
    """The type whose registry applies to ``ctx``; a class is its own owner."""
    return ctx if isinstance(ctx, type) else type(ctx)


class Gateway:

    def __init__(self, registry: Registry = None, codec: EnvelopeCodec = None, config=None):
        self.registry = registry if registry is not None else extensions.registry
        self.config = config
        self.codec = codec if codec is not None else get_codec(config)
        self._fallback_key = getattr(config, 'ENCRYPTION_KEY', None) or None

        if getattr(config, 'USING_DEVELOPMENT_KEY', False):
            logger.critical(
                'You are using the published development encryption key. '
                'You MUST set FIELDCRYPT_ENCRYPTION_KEY before using this in production'
            )
            security_logger.log_insecure_key_in_use(config.ENVIRONMENT)

    def storage_name(self, logical_name: str, ctx) -> str:
        return self.registry.lookup(owner_type(ctx), logical_name).storage_name

    def options_for(self, logical_name: str, ctx, overrides=None) -> OptionSet:
        """Look up ``logical_name`` for the owner of ``ctx`` and resolve its options."""
        owner = owner_type(ctx)
        spec = self.registry.lookup(owner, logical_name)
        try:
            return resolve(spec, ctx, normalize_options(overrides))
        except KeyResolutionFailed as e:
            security_logger.log_option_resolution_failure(owner.__name__, spec.logical_name, e.option)
            raise

    def _key(self, opts: OptionSet, logical_name: str, owner: type):
        key = opts.key if not _is_blank(opts.key) else self._fallback_key
        if key is None and opts.encryptor is None:
            reason = f"No encryption key available for attribute '{logical_name}'"
        elif opts.encryptor is None and not isinstance(key, (str, bytes, bytearray)):
            reason = (f"Key for attribute '{logical_name}' resolved to {type(key).__name__}, "
                      f"expected str or bytes")
        else:
            return key
        security_logger.log_option_resolution_failure(owner.__name__, logical_name, 'key')
        raise KeyResolutionFailed(reason, logical_name=logical_name, option='key')

    def _call_encryptor(self, opts: OptionSet, method_name: str, payload, key):
        if opts.encryptor is None:
            return getattr(self.codec, method_name)(payload, key)
        # Options the gateway does not know about are meant for the custom encryptor
        return getattr(opts.encryptor, method_name)(payload, key, **opts.extra)

    def encrypt(self, logical_name: str, value: Any, ctx, **overrides):
        """
        Return the storable form of ``value`` for attribute ``logical_name`` of ``ctx``.

        ``value`` comes back unchanged when a gate disables encryption or when
        it is ``None`` or empty.
        """
        trace(self.config, 'fieldcrypt.gateway.encrypt', {'attribute': logical_name})
        opts = self.options_for(logical_name, ctx, overrides)
        if not opts.enabled or _is_blank(value):
            return value

        if opts.marshal:
            payload = getattr(opts.marshaler, opts.dump_method)(value)
        elif isinstance(value, bytes):
            # Without marshal, decrypt hands back text
            try:
                value.decode('utf-8')
            except UnicodeDecodeError:
                raise ValueError(
                    f"Attribute '{logical_name}' received bytes that are not UTF-8 text; "
                    f"register it with marshal=True to store binary values"
                ) from None
            payload = value
        elif isinstance(value, str):
            payload = value
        else:
            payload = str(value)
        if isinstance(payload, str):
            payload = payload.encode('utf-8')

        key = self._key(opts, logical_name, owner_type(ctx))
        sealed = self._call_encryptor(opts, opts.encrypt_method, payload, key)

        encoder = get_encoder(opts.encode, opts.default_encoding)
        if encoder is not None:
            if isinstance(sealed, str):
                sealed = sealed.encode('utf-8')
            sealed = encoder.encode(sealed)
        return sealed

    def decrypt(self, logical_name: str, stored_value: Any, ctx, **overrides):
        """
        Return the plaintext of ``stored_value`` for attribute ``logical_name`` of ``ctx``.

        Raises:
            MalformedEnvelope: the stored value cannot be decoded into an envelope
            DecryptionFailed: wrong key, corrupted data or an unloadable payload
        """
        trace(self.config, 'fieldcrypt.gateway.decrypt', {'attribute': logical_name})
        opts = self.options_for(logical_name, ctx, overrides)
        if not opts.enabled or _is_blank(stored_value):
            return stored_value

        try:
            return self._open(opts, logical_name, stored_value, owner_type(ctx))
        except (MalformedEnvelope, DecryptionFailed) as e:
            security_logger.log_decryption_failure(owner_type(ctx).__name__, logical_name, type(e).__name__)
            raise

    def _open(self, opts: OptionSet, logical_name: str, stored_value, owner: type):
        envelope = stored_value
        encoder = get_encoder(opts.encode, opts.default_encoding)
        if encoder is not None:
            try:
                envelope = encoder.decode(stored_value).decode('utf-8')
            except DECODE_ERRORS:
                raise MalformedEnvelope('Stored value could not be decoded') from None

        key = self._key(opts, logical_name, owner)
        plaintext = self._call_encryptor(opts, opts.decrypt_method, envelope, key)

        if opts.marshal:
            try:
                return getattr(opts.marshaler, opts.load_method)(plaintext)
            except Exception:
                # The payload may be garbage from a wrong key; keep it out of the traceback
                raise DecryptionFailed('Decrypted value could not be loaded') from None
        if isinstance(plaintext, bytes):
            try:
                return plaintext.decode('utf-8')
            except UnicodeDecodeError:
                raise DecryptionFailed('Unable to decrypt value: wrong key or corrupted data') from None
        return plaintext

    def presence(self, logical_name: str, ctx) -> bool:
        """
        Whether attribute ``logical_name`` of ``ctx`` holds a non-empty value.

        A plaintext already cached on the instance under ``logical_name`` is
        used as-is; otherwise the stored value is decrypted.
        """
        value = getattr(ctx, '__dict__', {}).get(str(logical_name))
        if value is None:
            stored = getattr(ctx, self.storage_name(logical_name, ctx), None)
            value = self.decrypt(logical_name, stored, ctx)
        return _is_present(value)
