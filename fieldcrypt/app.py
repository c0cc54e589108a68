from typing import Optional

from fieldcrypt.config import get_config
from fieldcrypt.extensions import init_extensions
from fieldcrypt.gateway import Gateway
from fieldcrypt.models.registry import Registry
from fieldcrypt.utils.cryptography import get_codec


def create_gateway(config_name: Optional[str] = None, registry: Optional[Registry] = None,
                   configure_logging: bool = True) -> Gateway:
    """
    Build a gateway from the environment.

    ``config_name`` is ``production`` or ``development``; it defaults to the
    ``ENVIRONMENT`` variable. Without ``registry`` the shared registry from
    :mod:`fieldcrypt.extensions` is used.
    """
    config = get_config(config_name)

    if configure_logging:
        from fieldcrypt.utils.logging_config import setup_logging
        setup_logging(vars(config))

    registry = init_extensions(config, registry)
    gateway = Gateway(registry=registry, codec=get_codec(config), config=config)

    from fieldcrypt.utils.security_logging import security_logger
    security_logger.log_system_startup(
        version='1.0',
        config_details={
            'environment': config.ENVIRONMENT,
            'debug': config.DEBUG,
            'trace': config.TRACE,
            'kdf_profile': config.KDF_PROFILE,
            'default_options': sorted(config.DEFAULT_OPTIONS),
        }
    )
    return gateway
