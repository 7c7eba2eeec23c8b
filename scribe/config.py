import os
import tempfile
from dataclasses import dataclass, field
from typing import Mapping, Optional


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


# Environment variable names for each storage setting
ACCESS_KEY_ENV = 'STORAGE_ACCESS_KEY_ID'
SECRET_KEY_ENV = 'SECRET_ACCESS_KEY'
ENDPOINT_ENV = 'ENDPOINT'
REGION_ENV = 'REGION'

DEFAULT_ENDPOINT = 'https://storage.yandexcloud.net'
DEFAULT_REGION = 'ru-central1'


class Config:
    """Base configuration"""

    # Transport retries and timeouts (handled by botocore, not the executor)
    STORAGE_MAX_ATTEMPTS = int(os.environ.get('STORAGE_MAX_ATTEMPTS', 3))
    STORAGE_CONNECT_TIMEOUT = int(os.environ.get('STORAGE_CONNECT_TIMEOUT', 10))
    STORAGE_READ_TIMEOUT = int(os.environ.get('STORAGE_READ_TIMEOUT', 60))

    # Archives
    TEMP_DIR = os.environ.get('TEMP_DIR') or tempfile.gettempdir()
    DEFAULT_PREFIX = 'backups/'
    ARCHIVE_NAME = 'backup'

    # Logging
    DEBUG = False
    LOG_FILE = os.environ.get('SCRIBE_LOG_FILE')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}


def get_config(config_name: Optional[str] = None):
    """
    Resolve a configuration class by name.

    Args:
        config_name: Key into the config dictionary (default: $SCRIBE_ENV or 'production')

    Returns:
        Configuration class

    Raises:
        ConfigurationError: If the name is unknown
    """
    if config_name is None:
        config_name = os.environ.get('SCRIBE_ENV', 'production')

    if config_name not in config:
        raise ConfigurationError(
            f"Unknown configuration: {config_name}. "
            f"Valid options: {list(config.keys())}"
        )

    return config[config_name]


@dataclass(frozen=True)
class StorageSettings:
    """
    Location and credentials for an S3-compatible object store.

    Every field is required; a missing value fails at construction time
    instead of on the first request.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    endpoint_url: str
    region: str

    def __post_init__(self):
        required = (
            ('access_key_id', ACCESS_KEY_ENV),
            ('secret_access_key', SECRET_KEY_ENV),
            ('endpoint_url', ENDPOINT_ENV),
            ('region', REGION_ENV),
        )
        for field_name, env_name in required:
            value = getattr(self, field_name)
            if not value or not str(value).strip():
                raise ConfigurationError(
                    f"Storage setting '{field_name}' is not set ({env_name} environment variable)"
                )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'StorageSettings':
        """
        Build settings from environment variables.

        Endpoint and region fall back to the Yandex Object Storage defaults;
        both credentials must be present.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            Validated StorageSettings

        Raises:
            ConfigurationError: If a required variable is missing
        """
        if environ is None:
            environ = os.environ

        return cls(
            access_key_id=environ.get(ACCESS_KEY_ENV, ''),
            secret_access_key=environ.get(SECRET_KEY_ENV, ''),
            endpoint_url=environ.get(ENDPOINT_ENV) or DEFAULT_ENDPOINT,
            region=environ.get(REGION_ENV) or DEFAULT_REGION,
        )
