"""
Storage handler for backup archives.

S3Storage talks to any S3-compatible object store (Yandex Object Storage by
default) and supports:
- Bucket existence checks that tell "not found" apart from other failures
- Single-request uploads, optionally reporting progress as the body is read
"""

import os
import logging
from enum import Enum
from typing import Callable, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError, BotoCoreError

from scribe.config import Config, StorageSettings


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class StorageErrorKind(Enum):
    """Classification of storage failures."""
    CONFIGURATION = 'configuration'
    INVALID_ARGUMENT = 'invalid_argument'
    LOCAL_FILE = 'local_file'
    NOT_FOUND = 'not_found'
    ACCESS_DENIED = 'access_denied'
    REMOTE = 'remote'
    TRANSPORT = 'transport'


class StorageError(Exception):
    """Raised when storage operation fails."""

    def __init__(self, message: str, kind: StorageErrorKind = StorageErrorKind.REMOTE):
        super().__init__(message)
        self.kind = kind


_NOT_FOUND_CODES = {'404', 'NoSuchBucket', 'NotFound'}
_ACCESS_DENIED_CODES = {'401', '403', 'AccessDenied', 'Forbidden', 'InvalidAccessKeyId', 'SignatureDoesNotMatch'}


def classify_client_error(error: ClientError) -> StorageErrorKind:
    """
    Map a botocore ClientError to a StorageErrorKind.

    Uses the HTTP status and error code from the parsed response.
    """
    status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    code = error.response.get('Error', {}).get('Code', '')

    if status == 404 or code in _NOT_FOUND_CODES:
        return StorageErrorKind.NOT_FOUND
    if status in (401, 403) or code in _ACCESS_DENIED_CODES:
        return StorageErrorKind.ACCESS_DENIED
    return StorageErrorKind.REMOTE


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', 'Unknown')


def build_object_key(prefix: str, filename: str) -> str:
    """
    Join an object key prefix and a filename.

    Args:
        prefix: Key prefix such as 'backups/' (may be empty)
        filename: Archive filename

    Returns:
        Object key, e.g. 'backups/backup-2024-01-15-12-00-00.zip'
    """
    prefix = (prefix or '').strip('/')
    filename = filename.lstrip('/')
    if not prefix:
        return filename
    return f"{prefix}/{filename}"


class ProgressReader:
    """
    File wrapper that reports how many bytes have been read.

    After every non-empty read the callback receives (bytes_read, size).
    Seeking moves the counter to the new absolute position, so when botocore
    rewinds the body to retry a request (or after computing a checksum) the
    reported progress follows the stream instead of growing past the size.
    """

    def __init__(self, fileobj, size: int, progress_callback: Optional[ProgressCallback] = None):
        self._fileobj = fileobj
        self.size = size
        self.progress_callback = progress_callback
        self.bytes_read = fileobj.tell()

    def read(self, amt: int = -1) -> bytes:
        data = self._fileobj.read(amt)
        if data:
            self.bytes_read += len(data)
            if self.progress_callback:
                self.progress_callback(self.bytes_read, self.size)
        return data

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        position = self._fileobj.seek(offset, whence)
        self.bytes_read = position
        return position

    def tell(self) -> int:
        return self._fileobj.tell()

    def seekable(self) -> bool:
        return True

    def readable(self) -> bool:
        return True


class S3Storage:
    """
    Handler for uploading backups to an S3-compatible object store.
    """

    def __init__(self, settings: StorageSettings, app_config=Config):
        """
        Initialize S3 storage handler.

        Args:
            settings: Validated endpoint, region and credentials
            app_config: Configuration class providing retry and timeout settings

        Raises:
            StorageError: If the client cannot be created
        """
        self.settings = settings

        boto_config = BotoConfig(
            region_name=settings.region,
            s3={'addressing_style': 'path'},
            retries={'max_attempts': app_config.STORAGE_MAX_ATTEMPTS, 'mode': 'standard'},
            connect_timeout=app_config.STORAGE_CONNECT_TIMEOUT,
            read_timeout=app_config.STORAGE_READ_TIMEOUT
        )

        try:
            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.access_key_id,
                aws_secret_access_key=settings.secret_access_key,
                endpoint_url=settings.endpoint_url,
                region_name=settings.region,
                config=boto_config
            )
        except (BotoCoreError, ValueError) as e:
            raise StorageError(f"Failed to initialize S3 client: {e}", StorageErrorKind.CONFIGURATION) from e

        logger.debug(f"S3 client ready for {settings.endpoint_url} ({settings.region})")

    @classmethod
    def from_env(cls, environ=None, app_config=Config) -> 'S3Storage':
        """
        Create a storage handler from environment variables.

        Raises:
            ConfigurationError: If a required setting is missing
            StorageError: If the client cannot be created
        """
        return cls(StorageSettings.from_env(environ), app_config=app_config)

    def bucket_exists(self, bucket_name: str) -> bool:
        """
        Check whether a bucket exists.

        Args:
            bucket_name: Bucket to probe

        Returns:
            True if the bucket exists, False if the store reports it missing

        Raises:
            StorageError: For any failure other than "not found" (access denied,
                network errors, invalid name, ...)
        """
        if not bucket_name:
            raise StorageError("Bucket name cannot be empty", StorageErrorKind.INVALID_ARGUMENT)

        try:
            self.s3_client.head_bucket(Bucket=bucket_name)
            return True
        except ClientError as e:
            kind = classify_client_error(e)
            if kind is StorageErrorKind.NOT_FOUND:
                return False
            raise StorageError(
                f"Failed to check bucket {bucket_name} ({_error_code(e)}): {e}", kind
            ) from e
        except BotoCoreError as e:
            raise StorageError(
                f"Failed to check bucket {bucket_name}: {e}", StorageErrorKind.TRANSPORT
            ) from e

    def upload_file(self, local_path: str, bucket_name: str, object_key: str):
        """
        Upload a file as a single object.

        Args:
            local_path: Path to local file
            bucket_name: Destination bucket
            object_key: Destination object key

        Raises:
            StorageError: If upload fails
        """
        self._upload(local_path, bucket_name, object_key, None)

    def upload_file_with_progress(
        self,
        local_path: str,
        bucket_name: str,
        object_key: str,
        progress_callback: ProgressCallback
    ):
        """
        Upload a file as a single object, reporting progress.

        Args:
            local_path: Path to local file
            bucket_name: Destination bucket
            object_key: Destination object key
            progress_callback: Called with (bytes_transferred, total_bytes) on every read

        Raises:
            StorageError: If upload fails
        """
        self._upload(local_path, bucket_name, object_key, progress_callback)

    def _upload(
        self,
        local_path: str,
        bucket_name: str,
        object_key: str,
        progress_callback: Optional[ProgressCallback]
    ):
        if not local_path or not bucket_name or not object_key:
            raise StorageError(
                "File path, bucket, and object key cannot be empty",
                StorageErrorKind.INVALID_ARGUMENT
            )

        try:
            f = open(local_path, 'rb')
        except OSError as e:
            raise StorageError(f"Failed to open file {local_path}: {e}", StorageErrorKind.LOCAL_FILE) from e

        with f:
            try:
                file_size = os.fstat(f.fileno()).st_size
            except OSError as e:
                raise StorageError(f"Failed to stat file {local_path}: {e}", StorageErrorKind.LOCAL_FILE) from e

            logger.info(f"Uploading {local_path} ({file_size} bytes) to s3://{bucket_name}/{object_key}")

            body = f
            if progress_callback:
                body = ProgressReader(f, file_size, progress_callback)

            try:
                self.s3_client.put_object(
                    Bucket=bucket_name,
                    Key=object_key,
                    Body=body
                )
            except ClientError as e:
                raise StorageError(
                    f"S3 upload to s3://{bucket_name}/{object_key} failed ({_error_code(e)}): {e}",
                    classify_client_error(e)
                ) from e
            except BotoCoreError as e:
                raise StorageError(
                    f"S3 upload to s3://{bucket_name}/{object_key} failed: {e}",
                    StorageErrorKind.TRANSPORT
                ) from e

        logger.info(f"Uploaded s3://{bucket_name}/{object_key}")
