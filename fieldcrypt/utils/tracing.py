import logging

logger = logging.getLogger('fieldcrypt.trace')


def trace(config, in_function: str, variables: dict = None):
    """Log a debug line for ``in_function`` when the config enables TRACE. Never pass key material."""
    if config is None or not getattr(config, 'TRACE', False):
        return
    if variables:
        logger.debug(f'{in_function}({variables})')
    else:
        logger.debug(f'{in_function}()')
