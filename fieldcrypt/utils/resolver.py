"""
Resolves attribute options against the instance being encrypted.

Options are resolved independently of one another, in no guaranteed order;
a context method or callable must not rely on another option of the same
call having been resolved first.
"""

from typing import Any, Mapping

from fieldcrypt.errors import KeyResolutionFailed
from fieldcrypt.models.attribute_spec import AttributeSpec
from fieldcrypt.models.options import ContextMethod, OptionSet, OptionValue


def resolve_option(value: Any, ctx: Any) -> Any:
    """Return the concrete value of a single option."""
    if isinstance(value, OptionValue):
        return value.resolve(ctx)
    return value


def resolve(spec: AttributeSpec, ctx: Any, overrides: Mapping[str, Any] = None) -> OptionSet:
    """
    Resolve every option of ``spec`` against ``ctx``.

    Raises:
        KeyResolutionFailed: a context method is missing or a resolver raised
    """
    options = dict(spec.options)
    if overrides:
        options.update(overrides)

    resolved = {}
    for name, value in options.items():
        try:
            resolved[name] = resolve_option(value, ctx)
        except Exception as e:
            if isinstance(value, ContextMethod) and not callable(getattr(ctx, value.name, None)):
                reason = f"context has no operation '{value.name}'"
            else:
                reason = type(e).__name__
            raise KeyResolutionFailed(
                f"Could not resolve option '{name}' for attribute '{spec.logical_name}': {reason}",
                logical_name=spec.logical_name,
                option=name,
            ) from e
    return OptionSet.from_mapping(resolved, storage_name=spec.storage_name)
