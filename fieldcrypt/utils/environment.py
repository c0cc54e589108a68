import os
import logging

import yaml

logger = logging.getLogger(__name__)

FALSE_STRINGS = ['false', 'no', 'off', '0']
TRUE_STRINGS = ['true', 'yes', 'on', '1']


def loadConfigValueFromFileOrEnvironment(key: str, default_value: str = '', default_path: str = '') -> str:
    """
    Load configuration values, by preference from a variable file (e.g. FIELDCRYPT_ENCRYPTION_KEY_FILE).
    The whole file is read and leading/trailing whitespace stripped. An empty
    file falls through to the environment variable itself.
    """
    value_file = os.environ.get(f'{key}_FILE', None)
    if value_file is None:
        value_file = default_path

    if value_file != '':
        if not os.path.exists(value_file):
            raise FileNotFoundError(f'{key}_FILE is set to {value_file} but the path does not exist.')
        if not os.path.isfile(value_file):
            raise FileNotFoundError(f'{key}_FILE is set to {value_file} but the path is not a file.')

        logger.debug(f'Reading {value_file}')
        with open(value_file, 'r') as file:
            file_content = file.read().strip()

        if file_content:
            # Content may be key material; only the length is logged
            logger.debug(f'File content loaded, length: {len(file_content)} characters')
            return file_content

        logger.debug(f'{value_file} is empty')

    value = os.environ.get(key, None)
    if value is None:
        logger.debug(f'{key} is not set. Using {"default" if default_value else "None-as-defined"}')
        value = default_value

    return value


def loadBoolConfigValue(key: str, default: str, prefer: bool = False) -> bool:
    if prefer:
        return str(os.environ.get(key, default)).lower() in TRUE_STRINGS
    return str(os.environ.get(key, default)).lower() not in FALSE_STRINGS


def loadYamlOptionsFile(path: str) -> dict:
    """
    Read a YAML mapping of default attribute options.

    Raises:
        RuntimeError: the file is missing, unparseable or not a mapping
    """
    try:
        with open(path, 'r') as f:
            options = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise RuntimeError(f'Options file {path} does not exist.') from e
    except yaml.YAMLError as e:
        raise RuntimeError(f'Options file {path} is not valid YAML.') from e

    if options is None:
        return {}
    if not isinstance(options, dict):
        raise RuntimeError(f'Options file {path} must contain a mapping of option names to values.')
    logger.debug(f'Loaded {len(options)} default options from {path}')
    return options
