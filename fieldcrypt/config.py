import os

from fieldcrypt.utils.cryptography import DEFAULT_KDF_PROFILE, KDF_PROFILES
from fieldcrypt.utils.environment import (
    loadBoolConfigValue,
    loadConfigValueFromFileOrEnvironment,
    loadYamlOptionsFile,
)

# Published development key. Refused in production.
DEVELOPMENT_ENCRYPTION_KEY = 'fieldcrypt-development-key-do-not-use-in-production'


class Config:
    """
    Base configuration
    """

    def __init__(self):
        self.DEBUG = False
        self.TRACE = False
        self.ENVIRONMENT = os.environ.get('ENVIRONMENT', 'production')

        # Fallback key for attributes that do not resolve one of their own
        self.ENCRYPTION_KEY = loadConfigValueFromFileOrEnvironment('FIELDCRYPT_ENCRYPTION_KEY')

        self.KDF_PROFILE = os.environ.get('FIELDCRYPT_KDF_PROFILE', DEFAULT_KDF_PROFILE)
        if self.KDF_PROFILE not in KDF_PROFILES:
            raise RuntimeError(
                f"FIELDCRYPT_KDF_PROFILE must be one of {', '.join(sorted(KDF_PROFILES))}, "
                f"got {self.KDF_PROFILE!r}"
            )

        # Registry-wide default attribute options
        self.DEFAULT_OPTIONS = {}
        self.DEFAULT_OPTIONS_PATH = os.environ.get('FIELDCRYPT_OPTIONS_PATH')
        if self.DEFAULT_OPTIONS_PATH:
            self.DEFAULT_OPTIONS = loadYamlOptionsFile(self.DEFAULT_OPTIONS_PATH)

        self.check_key_safety()

    @property
    def USING_DEVELOPMENT_KEY(self) -> bool:
        return self.ENCRYPTION_KEY == DEVELOPMENT_ENCRYPTION_KEY

    def check_key_safety(self):
        if self.USING_DEVELOPMENT_KEY and self.ENVIRONMENT == 'production':
            raise RuntimeError(
                "Cannot start in production with the development FIELDCRYPT_ENCRYPTION_KEY. "
                "Set FIELDCRYPT_ENCRYPTION_KEY or FIELDCRYPT_ENCRYPTION_KEY_FILE to a private value."
            )


class DevelopmentConfig(Config):
    """
    Development overrides
    """

    def __init__(self):
        super().__init__()
        self.DEBUG = True
        self.TRACE = loadBoolConfigValue('TRACE', 'false')
        self.ENVIRONMENT = 'development'

        if not self.ENCRYPTION_KEY:
            self.ENCRYPTION_KEY = DEVELOPMENT_ENCRYPTION_KEY


def get_config(config_name: str = None) -> Config:
    if config_name is None:
        config_name = os.environ.get('ENVIRONMENT', 'production')
    if config_name == 'production':
        return Config()
    return DevelopmentConfig()
