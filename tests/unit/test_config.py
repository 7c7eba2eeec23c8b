"""
Unit tests for configuration (scribe/config.py).
"""

import pytest

from scribe.config import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    ConfigurationError,
    StorageSettings,
    get_config,
    DEFAULT_ENDPOINT,
    DEFAULT_REGION
)


FULL_ENV = {
    'STORAGE_ACCESS_KEY_ID': 'key-id',
    'SECRET_ACCESS_KEY': 'secret',
    'ENDPOINT': 'https://minio.local:9000',
    'REGION': 'eu-west-1',
}


class TestStorageSettings:
    """Test StorageSettings validation and environment loading."""

    def test_from_env_complete(self):
        """Test every variable is picked up."""
        settings = StorageSettings.from_env(FULL_ENV)

        assert settings.access_key_id == 'key-id'
        assert settings.secret_access_key == 'secret'
        assert settings.endpoint_url == 'https://minio.local:9000'
        assert settings.region == 'eu-west-1'

    def test_from_env_defaults_endpoint_and_region(self):
        """Test endpoint and region default to Yandex Object Storage."""
        settings = StorageSettings.from_env({
            'STORAGE_ACCESS_KEY_ID': 'key-id',
            'SECRET_ACCESS_KEY': 'secret',
        })

        assert settings.endpoint_url == DEFAULT_ENDPOINT == 'https://storage.yandexcloud.net'
        assert settings.region == DEFAULT_REGION == 'ru-central1'

    @pytest.mark.parametrize("missing", ['STORAGE_ACCESS_KEY_ID', 'SECRET_ACCESS_KEY'])
    def test_from_env_missing_credential(self, missing):
        """Test each credential is independently required."""
        environ = dict(FULL_ENV)
        del environ[missing]

        with pytest.raises(ConfigurationError, match=missing):
            StorageSettings.from_env(environ)

    @pytest.mark.parametrize("field_name", ['access_key_id', 'secret_access_key', 'endpoint_url', 'region'])
    def test_blank_values_rejected(self, field_name):
        """Test every field is validated at construction."""
        values = {
            'access_key_id': 'key-id',
            'secret_access_key': 'secret',
            'endpoint_url': 'https://storage.yandexcloud.net',
            'region': 'ru-central1',
        }
        values[field_name] = '   '

        with pytest.raises(ConfigurationError, match=field_name):
            StorageSettings(**values)

    def test_secret_not_in_repr(self):
        """Test the secret key never appears in logs via repr."""
        settings = StorageSettings.from_env(FULL_ENV)

        assert 'secret' not in repr(settings)
        assert 'key-id' in repr(settings)

    def test_settings_are_immutable(self):
        settings = StorageSettings.from_env(FULL_ENV)

        with pytest.raises(AttributeError):
            settings.region = 'elsewhere'


class TestGetConfig:
    """Test get_config lookup."""

    def test_named_configs(self):
        assert get_config('development') is DevelopmentConfig
        assert get_config('production') is ProductionConfig
        assert get_config('default') is ProductionConfig

    def test_env_selects_config(self, monkeypatch):
        monkeypatch.setenv('SCRIBE_ENV', 'development')

        assert get_config() is DevelopmentConfig

    def test_unknown_config(self):
        with pytest.raises(ConfigurationError, match="Unknown configuration"):
            get_config('staging')

    def test_defaults(self):
        """Test the base configuration values."""
        assert Config.DEFAULT_PREFIX == 'backups/'
        assert Config.STORAGE_MAX_ATTEMPTS >= 1
        assert DevelopmentConfig.DEBUG is True
        assert ProductionConfig.DEBUG is False

    def test_config_holds_no_credentials(self):
        """Test storage credentials are only reachable through StorageSettings."""
        for name in ('STORAGE_ACCESS_KEY_ID', 'STORAGE_SECRET_ACCESS_KEY',
                     'STORAGE_ENDPOINT', 'STORAGE_REGION'):
            assert not hasattr(Config, name)
