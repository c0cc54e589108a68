"""
Per-type registry of encrypted attributes and their default options.

Every table the registry hands out is an immutable snapshot. Writers build a
new snapshot from the current one and publish it under a lock, so readers on
other threads never observe a half-built table and never need the lock.

Types inherit from their ancestors by lookup along the MRO until they write
for the first time; at that point the nearest ancestor's snapshot is copied
and the type owns its own table from then on.
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

from fieldcrypt.errors import UnknownAttribute
from fieldcrypt.models.attribute_spec import AttributeSpec
from fieldcrypt.models.options import DEFAULT_OPTIONS, normalize_options

logger = logging.getLogger(__name__)

_EMPTY = MappingProxyType({})


class Registry:

    def __init__(self, defaults: Mapping[str, Any] = None):
        self._lock = threading.RLock()
        self._base_defaults = MappingProxyType({**DEFAULT_OPTIONS, **normalize_options(defaults)})
        self._defaults: Dict[type, Mapping[str, Any]] = {}
        self._attributes: Dict[type, Mapping[str, AttributeSpec]] = {}

    def configure(self, **defaults) -> None:
        """Replace the registry-wide defaults that sit below every type's own."""
        with self._lock:
            self._base_defaults = MappingProxyType({**DEFAULT_OPTIONS, **normalize_options(defaults)})

    @staticmethod
    def _nearest(table: Mapping[type, Any], owner_type: type):
        for klass in owner_type.__mro__:
            if klass in table:
                return table[klass]
        return None

    def defaults_for(self, owner_type: type) -> Mapping[str, Any]:
        found = self._nearest(self._defaults, owner_type)
        return found if found is not None else self._base_defaults

    def set_defaults(self, owner_type: type, options: Mapping[str, Any] = None, **kwargs) -> Mapping[str, Any]:
        """
        Merge default options for ``owner_type`` and its subtypes.

        Only attributes registered afterwards pick the new defaults up.
        """
        with self._lock:
            merged = {**self.defaults_for(owner_type), **normalize_options(options, **kwargs)}
            snapshot = MappingProxyType(merged)
            self._defaults[owner_type] = snapshot
        return snapshot

    def attributes_for(self, owner_type: type) -> Mapping[str, AttributeSpec]:
        found = self._nearest(self._attributes, owner_type)
        return found if found is not None else _EMPTY

    def register(self, owner_type: type, logical_name: str,
                 options: Mapping[str, Any] = None, **kwargs) -> AttributeSpec:
        """
        Register (or re-register) ``logical_name`` as an encrypted attribute of ``owner_type``.

        Options merge over the type's defaults; on a collision the value given
        here wins. Other attributes of the type are left untouched.
        """
        with self._lock:
            merged = {**self.defaults_for(owner_type), **normalize_options(options, **kwargs)}
            spec = AttributeSpec.build(logical_name, merged)
            table = dict(self.attributes_for(owner_type))
            table[spec.logical_name] = spec
            self._attributes[owner_type] = MappingProxyType(table)
        logger.debug(f'Registered encrypted attribute {owner_type.__name__}.{spec.logical_name} '
                     f'stored as {spec.storage_name}')
        return spec

    def register_all(self, owner_type: type, *logical_names: str, **options) -> List[AttributeSpec]:
        """Register several attributes sharing the same options."""
        return [self.register(owner_type, name, **options) for name in logical_names]

    def lookup(self, owner_type: type, logical_name: str) -> AttributeSpec:
        try:
            return self.attributes_for(owner_type)[str(logical_name)]
        except KeyError:
            raise UnknownAttribute(owner_type, logical_name) from None

    def is_registered(self, owner_type: type, logical_name: str) -> bool:
        try:
            return str(logical_name) in self.attributes_for(owner_type)
        except (AttributeError, TypeError):
            return False
