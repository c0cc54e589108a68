"""
Encoders applied to sealed envelopes when the ``encode`` option is set.

An encoder is any object with ``encode(bytes) -> str`` and
``decode(str) -> bytes``. Named encoders are looked up in ``ENCODERS``.
"""

import base64
import binascii


class Base64Encoder:
    """Standard alphabet, no line breaks."""

    def encode(self, data: bytes) -> str:
        return base64.b64encode(data).decode('ascii')

    def decode(self, text) -> bytes:
        return base64.b64decode(text, validate=True)


class UrlSafeBase64Encoder:

    def encode(self, data: bytes) -> str:
        return base64.urlsafe_b64encode(data).decode('ascii')

    def decode(self, text) -> bytes:
        return base64.urlsafe_b64decode(text)


class Base32Encoder:

    def encode(self, data: bytes) -> str:
        return base64.b32encode(data).decode('ascii')

    def decode(self, text) -> bytes:
        return base64.b32decode(text)


class HexEncoder:

    def encode(self, data: bytes) -> str:
        return binascii.hexlify(data).decode('ascii')

    def decode(self, text) -> bytes:
        return binascii.unhexlify(text)


ENCODERS = {
    'base64': Base64Encoder(),
    'm': Base64Encoder(),
    'urlsafe_base64': UrlSafeBase64Encoder(),
    'base32': Base32Encoder(),
    'hex': HexEncoder(),
}

DECODE_ERRORS = (binascii.Error, ValueError)


def get_encoder(encode, default_encoding='base64'):
    """
    Return the encoder selected by an ``encode`` option value, or ``None``.

    ``True`` selects ``default_encoding``, a string selects a named encoder
    and any other truthy object is used as the encoder itself.
    """
    if not encode:
        return None
    if encode is True:
        encode = default_encoding
    if isinstance(encode, str):
        try:
            return ENCODERS[encode]
        except KeyError:
            raise ValueError(f'Unknown encoding: {encode}') from None
    return encode
