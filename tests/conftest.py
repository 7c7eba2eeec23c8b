"""
Shared pytest fixtures for Scribe tests.

This module provides fixtures for:
- Source directory trees to archive
- Storage settings and a moto-backed S3Storage
- Mock storage handlers for executor tests
"""

from unittest.mock import MagicMock

import pytest
import boto3
from moto import mock_aws

from scribe.config import StorageSettings
from scribe.backup.storage import S3Storage


TEST_ENDPOINT = 'https://s3.us-east-1.amazonaws.com'
TEST_REGION = 'us-east-1'
TEST_BUCKET = 'test-bucket'


@pytest.fixture
def data_dir(tmp_path):
    """
    Create the canonical small source tree.

    Creates:
    - data/a.txt (content "hi")
    - data/empty/ (empty directory)
    """
    source = tmp_path / 'src' / 'data'
    source.mkdir(parents=True)
    (source / 'a.txt').write_text('hi')
    (source / 'empty').mkdir()
    return source


@pytest.fixture
def nested_dir(tmp_path):
    """
    Create a deeper source tree with binary content and empty directories.

    Creates:
    - project/README.md
    - project/src/main.py
    - project/src/pkg/__init__.py (empty file)
    - project/assets/logo.bin (binary)
    - project/build/ (empty directory)
    - project/docs/drafts/ (empty nested directory)
    """
    source = tmp_path / 'src' / 'project'
    (source / 'src' / 'pkg').mkdir(parents=True)
    (source / 'assets').mkdir()
    (source / 'build').mkdir()
    (source / 'docs' / 'drafts').mkdir(parents=True)

    (source / 'README.md').write_text('# Project\n')
    (source / 'src' / 'main.py').write_text('print("hello")\n' * 50)
    (source / 'src' / 'pkg' / '__init__.py').write_bytes(b'')
    (source / 'assets' / 'logo.bin').write_bytes(bytes(range(256)) * 40)

    return source


@pytest.fixture
def archive_dir(tmp_path):
    """Directory for archives, outside every source tree."""
    directory = tmp_path / 'out'
    directory.mkdir()
    return directory


@pytest.fixture
def storage_settings():
    """Storage settings pointing at an endpoint moto intercepts."""
    return StorageSettings(
        access_key_id='test_access_key',
        secret_access_key='test_secret_key',
        endpoint_url=TEST_ENDPOINT,
        region=TEST_REGION
    )


@pytest.fixture
def mock_s3(storage_settings):
    """
    Mock S3 service using moto.

    Creates the 'test-bucket' bucket and yields (s3 resource, S3Storage).
    """
    with mock_aws():
        s3 = boto3.resource('s3', region_name=TEST_REGION)
        s3.create_bucket(Bucket=TEST_BUCKET)

        storage = S3Storage(storage_settings)

        yield s3, storage


@pytest.fixture
def mock_storage():
    """MagicMock storage handler whose bucket always exists."""
    storage = MagicMock(spec=S3Storage)
    storage.bucket_exists.return_value = True
    return storage
