"""
Exception hierarchy for fieldcrypt.

Messages raised from here name attributes and owning types only. Key
material, plaintext and envelope contents never appear in them.
"""


class FieldCryptError(Exception):
    """Base class for every error raised by fieldcrypt."""


class UnknownAttribute(FieldCryptError, KeyError):
    """Raised when an attribute was never registered for a type or its ancestors."""

    def __init__(self, owner_type, logical_name):
        self.owner_type = owner_type
        self.logical_name = logical_name
        owner = getattr(owner_type, '__name__', str(owner_type))
        super().__init__(f"Attribute '{logical_name}' is not registered for {owner}")

    def __str__(self):
        # KeyError quotes its argument; keep the plain message
        return self.args[0]


class MalformedEnvelope(FieldCryptError, ValueError):
    """Raised when a stored value does not decode to a salt, IV and ciphertext."""


class DecryptionFailed(FieldCryptError, ValueError):
    """Raised on a wrong key, corrupted ciphertext or bad padding."""


class KeyResolutionFailed(FieldCryptError):
    """Raised when a dynamic option cannot be resolved, or no key is available."""

    def __init__(self, message, logical_name=None, option=None):
        self.logical_name = logical_name
        self.option = option
        super().__init__(message)
