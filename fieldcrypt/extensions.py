from fieldcrypt.models.registry import Registry

# Shared registry that owning types register their attributes against
registry = Registry()


def init_extensions(config, target: Registry = None):
    """Apply configured registry-wide defaults. Attributes registered earlier keep their options."""
    target = target if target is not None else registry
    if config.DEFAULT_OPTIONS:
        target.configure(**config.DEFAULT_OPTIONS)
    return target
