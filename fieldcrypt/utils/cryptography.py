"""
Envelope cryptography for encrypted attribute values.

An envelope is ``salt (8 bytes) || iv (16 bytes) || ciphertext`` encoded as
strict base64. The AES-256 key is derived from the caller's key material
with PBKDF2 using the embedded salt, so every envelope carries everything
needed to open it apart from the key itself.
"""

import base64
import binascii
import logging
import os
from dataclasses import dataclass
from typing import Optional, Type, Union

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from fieldcrypt.errors import DecryptionFailed, MalformedEnvelope

logger = logging.getLogger(__name__)

SALT_SIZE = 8
IV_SIZE = 16
HEADER_SIZE = SALT_SIZE + IV_SIZE
BLOCK_SIZE = 16


@dataclass(frozen=True)
class KdfProfile:
    """Versioned PBKDF2 parameters."""
    name: str
    algorithm: Type[hashes.HashAlgorithm]
    iterations: int
    length: int = 32


KDF_PROFILES = {
    # Wire compatible with envelopes written by earlier releases
    'v1': KdfProfile('v1', hashes.SHA1, 1024),
    'v2': KdfProfile('v2', hashes.SHA256, 600_000),
}
DEFAULT_KDF_PROFILE = 'v1'


def _to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        return value.encode('utf-8')
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f'expected str or bytes, not {type(value).__name__}')


class EnvelopeCodec:
    """
    Seals plaintext into envelopes and opens them again.

    The codec holds no key material; a key is passed to every call and is
    dropped as soon as the call returns.
    """

    def __init__(self, kdf_profile: Union[str, KdfProfile] = DEFAULT_KDF_PROFILE):
        if isinstance(kdf_profile, str):
            try:
                kdf_profile = KDF_PROFILES[kdf_profile]
            except KeyError:
                raise ValueError(f"Unknown KDF profile: {kdf_profile}")
        self.kdf_profile = kdf_profile

    def derive_key(self, key_material: Union[str, bytes], salt: bytes) -> bytes:
        """Derive the 32-byte AES key for ``salt`` from ``key_material``."""
        kdf = PBKDF2HMAC(
            algorithm=self.kdf_profile.algorithm(),
            length=self.kdf_profile.length,
            salt=salt,
            iterations=self.kdf_profile.iterations,
        )
        return kdf.derive(_to_bytes(key_material))

    def seal(self, plaintext: Optional[Union[str, bytes]], key_material: Union[str, bytes]):
        """
        Encrypt ``plaintext`` into a base64 envelope string.

        ``None`` and empty values are returned unchanged without touching the
        cipher.
        """
        if plaintext is None or len(plaintext) == 0:
            return plaintext

        salt = os.urandom(SALT_SIZE)
        iv = os.urandom(IV_SIZE)
        key = self.derive_key(key_material, salt)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(_to_bytes(plaintext)) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return base64.b64encode(salt + iv + ciphertext).decode('ascii')

    def open(self, blob: Optional[Union[str, bytes]], key_material: Union[str, bytes]):
        """
        Decrypt an envelope produced by :meth:`seal` and return the plaintext bytes.

        Raises:
            MalformedEnvelope: ``blob`` is not base64 or is shorter than the header
            DecryptionFailed: wrong key, corrupted ciphertext or bad padding
        """
        if blob is None or len(blob) == 0:
            return blob

        salt, iv, ciphertext = self.split(blob)
        if not ciphertext or len(ciphertext) % BLOCK_SIZE:
            raise DecryptionFailed('Ciphertext length is not a multiple of the cipher block size')

        key = self.derive_key(key_material, salt)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError:
            # Padding errors say nothing about the key or the plaintext
            raise DecryptionFailed('Unable to decrypt value: wrong key or corrupted data') from None

    @staticmethod
    def split(blob: Union[str, bytes]):
        """Return ``(salt, iv, ciphertext)`` from an encoded envelope."""
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError):
            raise MalformedEnvelope('Envelope is not valid base64') from None
        if len(raw) < HEADER_SIZE:
            raise MalformedEnvelope(
                f'Envelope is {len(raw)} bytes, expected at least {HEADER_SIZE}'
            )
        return raw[:SALT_SIZE], raw[SALT_SIZE:HEADER_SIZE], raw[HEADER_SIZE:]


def get_codec(config=None) -> EnvelopeCodec:
    """
    Build the envelope codec for ``config``.

    The codec is cached on the config object so every gateway built from the
    same configuration shares one instance.
    """
    if config is None:
        return EnvelopeCodec()
    codec = getattr(config, '_codec_instance', None)
    if codec is None:
        profile = getattr(config, 'KDF_PROFILE', DEFAULT_KDF_PROFILE)
        codec = EnvelopeCodec(profile)
        config._codec_instance = codec
        if profile != DEFAULT_KDF_PROFILE:
            logger.info(f'Envelope codec using KDF profile {profile}')
    return codec
