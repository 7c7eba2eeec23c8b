"""
Unit tests for logging setup (scribe/__init__.py).
"""

import logging
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

from scribe import configure_logging
from scribe.config import DevelopmentConfig, ProductionConfig


def _configured_handlers(config, **kwargs):
    with patch('logging.basicConfig') as basic_config:
        configure_logging(config, **kwargs)

    _, call_kwargs = basic_config.call_args
    return call_kwargs['level'], call_kwargs['handlers']


class TestConfigureLogging:
    """Test configure_logging handler setup."""

    def test_production_logs_at_info(self):
        level, handlers = _configured_handlers(ProductionConfig)

        assert level == logging.INFO
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)

    def test_debug_levels(self):
        """Test DEBUG config and the verbose flag both enable debug output."""
        level, _ = _configured_handlers(DevelopmentConfig)
        assert level == logging.DEBUG

        level, _ = _configured_handlers(ProductionConfig, verbose=True)
        assert level == logging.DEBUG

    def test_log_file_adds_rotating_handler(self, tmp_path):
        log_file = tmp_path / 'logs' / 'scribe.log'

        class FileConfig(ProductionConfig):
            LOG_FILE = str(log_file)

        _, handlers = _configured_handlers(FileConfig)

        file_handlers = [h for h in handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 10485760
        assert log_file.parent.is_dir()

        for handler in handlers:
            handler.close()

    def test_sdk_loggers_quiet(self):
        _configured_handlers(ProductionConfig, verbose=True)

        for name in ('boto3', 'botocore', 's3transfer', 'urllib3'):
            assert logging.getLogger(name).level == logging.WARNING
