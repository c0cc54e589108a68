"""
Option values and resolved option sets.

Option values stored on an attribute are either plain literals or one of the
tagged variants below. The variant decides how the value is turned into a
concrete one at call time; nothing is inferred from what the value happens
to look like.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping


class OptionValue:
    """Base class for option values resolved against a runtime context."""

    def resolve(self, ctx):
        raise NotImplementedError


@dataclass(frozen=True)
class Literal(OptionValue):
    value: Any

    def resolve(self, ctx):
        return self.value


@dataclass(frozen=True)
class ContextMethod(OptionValue):
    """Calls the zero-argument operation ``name`` on the context."""
    name: str

    def resolve(self, ctx):
        return getattr(ctx, self.name)()


@dataclass(frozen=True)
class ContextCallable(OptionValue):
    """Calls ``fn(ctx)``."""
    fn: Callable[[Any], Any]

    def resolve(self, ctx):
        return self.fn(ctx)


DEFAULT_OPTIONS = {
    'attribute': None,
    'prefix': 'encrypted_',
    'suffix': '',
    'key': None,
    'encode': False,
    'default_encoding': 'base64',
    'marshal': False,
    'marshaler': json,
    'dump_method': 'dumps',
    'load_method': 'loads',
    'encryptor': None,
    'encrypt_method': 'seal',
    'decrypt_method': 'open',
    'if': True,
    'unless': False,
}


GATE_ALIASES = {'if_': 'if', 'unless_': 'unless'}


def normalize_options(options: Mapping[str, Any] = None, **kwargs) -> Dict[str, Any]:
    """
    Merge ``options`` and ``kwargs`` into a plain dict with canonical names.

    Keyword arguments cannot be called ``if``, so ``if_`` and ``unless_``
    are accepted for the gate options. Other names are kept as given.
    """
    merged = {}
    for source in (options or {}), kwargs:
        for name, value in source.items():
            merged[GATE_ALIASES.get(name, name)] = value
    return merged


@dataclass(frozen=True)
class OptionSet:
    """Concrete, instance-bound options for a single encrypt or decrypt call."""
    key: Any = None
    encode: Any = False
    default_encoding: str = 'base64'
    marshal: bool = False
    marshaler: Any = json
    dump_method: str = 'dumps'
    load_method: str = 'loads'
    encryptor: Any = None
    encrypt_method: str = 'seal'
    decrypt_method: str = 'open'
    if_: Any = True
    unless: Any = False
    storage_name: str = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, resolved: Mapping[str, Any], storage_name: str = None) -> 'OptionSet':
        known = {}
        extra = {}
        for name, value in resolved.items():
            if name == 'if':
                known['if_'] = value
            elif name in ('attribute', 'prefix', 'suffix'):
                # Naming options are consumed at registration
                continue
            elif name in cls.__dataclass_fields__ and name not in ('extra', 'storage_name'):
                known[name] = value
            else:
                extra[name] = value
        return cls(storage_name=storage_name, extra=extra, **known)

    @property
    def enabled(self) -> bool:
        """True when the ``if``/``unless`` gates allow encryption."""
        return bool(self.if_) and not self.unless

    def __repr__(self):
        # Never render key material
        return (f'OptionSet(storage_name={self.storage_name!r}, encode={self.encode!r}, '
                f'marshal={self.marshal!r}, enabled={self.enabled!r})')
