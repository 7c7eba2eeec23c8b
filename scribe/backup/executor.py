"""
Backup executor - orchestrates the complete backup workflow.

Workflow:
1. Validate the source directory (and upload target, when uploading)
2. Create the ZIP archive
3. Check that the destination bucket exists
4. Upload the archive with progress reporting
5. Remove the temporary archive (always, whatever happened before)

Without a storage handler, steps 3 and 4 are skipped and the run still
succeeds; the result records that the upload was skipped.
"""

import os
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from scribe.config import ConfigurationError
from .compression import create_archive, get_archive_size, CompressionError, EntryCallback
from .storage import S3Storage, StorageError, ProgressCallback


logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when the backup source is unusable."""
    pass


class FailureKind(Enum):
    """Which class of problem stopped a backup."""
    CONFIGURATION = 'configuration'
    VALIDATION = 'validation'
    ARCHIVE = 'archive'
    REMOTE = 'remote'


@dataclass
class BackupJob:
    """A resolved backup request."""
    source_path: str
    archive_path: str
    bucket: str
    object_key: str


@dataclass
class BackupResult:
    """Outcome of one backup run."""
    status: str = 'running'
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_kind: Optional[FailureKind] = None
    error_message: Optional[str] = None
    file_size_bytes: Optional[int] = None
    s3_key: Optional[str] = None
    uploaded: bool = False
    upload_skipped: bool = False
    logs: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 'success'


class BackupExecutor:
    """
    Orchestrates the complete backup workflow for a job.
    """

    def __init__(
        self,
        storage: Optional[S3Storage] = None,
        progress_callback: Optional[ProgressCallback] = None,
        entry_callback: Optional[EntryCallback] = None
    ):
        """
        Initialize backup executor.

        Args:
            storage: Storage handler, or None to only build the archive
            progress_callback: Receives (bytes_transferred, total_bytes) during upload
            entry_callback: Receives each ArchiveEntry as it is archived
        """
        self.storage = storage
        self.progress_callback = progress_callback
        self.entry_callback = entry_callback
        self.job = None
        self.result = None
        self.archive_path = None
        self.logs = []

    def execute(self, job: BackupJob) -> BackupResult:
        """
        Execute a backup job.

        Failures of any stage are recorded on the returned result. Errors that
        do not belong to a stage (programming errors) propagate after cleanup.

        Args:
            job: What to archive and where to upload it

        Returns:
            BackupResult with execution results
        """
        self.job = job
        self.archive_path = None
        self.logs = []
        self.result = BackupResult(started_at=datetime.now(timezone.utc))

        self._log(f"Starting backup of {job.source_path}")

        try:
            self._execute_workflow()

            self.result.status = 'success'
            self._log("Backup completed successfully")

        except ConfigurationError as e:
            self._fail(FailureKind.CONFIGURATION, e)
        except ValidationError as e:
            self._fail(FailureKind.VALIDATION, e)
        except CompressionError as e:
            self._fail(FailureKind.ARCHIVE, e)
        except StorageError as e:
            self._fail(FailureKind.REMOTE, e)

        finally:
            self._cleanup()
            self.result.completed_at = datetime.now(timezone.utc)
            self.result.logs = list(self.logs)

        return self.result

    def _execute_workflow(self):
        """Execute the main backup workflow steps."""
        # Step 1: Validate inputs
        source_path = self._validate_source()
        if self.storage is not None:
            self._validate_target()

        # Step 2: Create archive
        self._log(f"Creating archive from: {source_path}")
        # Only an archive this run created is ever cleaned up
        self.archive_path = create_archive(source_path, self.job.archive_path, self.entry_callback)
        file_size = get_archive_size(self.archive_path)
        self.result.file_size_bytes = file_size
        self._log(f"Archive created: {os.path.basename(self.archive_path)} (size: {file_size} bytes)")

        if self.storage is None:
            self.result.upload_skipped = True
            self._log(f"Archive saved locally: {self.archive_path}")
            self._log("Cloud upload skipped (no credentials available)")
            return

        # Step 3: Check bucket
        bucket = self.job.bucket
        self._log(f"Checking bucket: {bucket}")
        try:
            exists = self.storage.bucket_exists(bucket)
        except StorageError as e:
            raise StorageError(f"Bucket check failed: {e}", e.kind) from e
        if not exists:
            raise ConfigurationError(f"Bucket {bucket} does not exist")

        # Step 4: Upload
        self._log(f"Uploading to: s3://{bucket}/{self.job.object_key}")
        try:
            if self.progress_callback:
                self.storage.upload_file_with_progress(
                    self.archive_path, bucket, self.job.object_key, self.progress_callback
                )
            else:
                self.storage.upload_file(self.archive_path, bucket, self.job.object_key)
        except StorageError as e:
            raise StorageError(f"Upload failed: {e}", e.kind) from e

        self.result.uploaded = True
        self.result.s3_key = self.job.object_key
        self._log(f"Uploaded to S3: {self.job.object_key}")

    def _validate_source(self) -> str:
        """
        Resolve the source to an absolute directory path.

        Raises:
            ValidationError: If the source is missing or not a directory
        """
        if not self.job.source_path:
            raise ValidationError("Source directory is required")

        source_path = os.path.abspath(self.job.source_path)
        if not os.path.exists(source_path):
            raise ValidationError(f"Source directory does not exist: {source_path}")
        if not os.path.isdir(source_path):
            raise ValidationError(f"Source path is not a directory: {source_path}")

        return source_path

    def _validate_target(self):
        """
        Raises:
            ConfigurationError: If bucket or object key is empty
        """
        if not self.job.bucket:
            raise ConfigurationError("Bucket name is required")
        if not self.job.object_key:
            raise ConfigurationError("Object key is required")

    def _fail(self, kind: FailureKind, error: Exception):
        self.result.status = 'failed'
        self.result.error_kind = kind
        self.result.error_message = str(error)
        self._log(f"Backup failed: {error}", level=logging.ERROR)

    def _cleanup(self):
        """Remove the temporary archive."""
        if self.archive_path and os.path.exists(self.archive_path):
            try:
                os.remove(self.archive_path)
                self._log(f"Cleaned up temporary file: {self.archive_path}")
            except OSError as e:
                self._log(f"Warning: Failed to cleanup temporary file: {e}", level=logging.WARNING)

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Logging level for the module logger
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
        self.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)


def run_backup(
    source_path: str,
    archive_path: str,
    bucket: str,
    object_key: str,
    storage: Optional[S3Storage] = None,
    progress_callback: Optional[ProgressCallback] = None
) -> BackupResult:
    """
    Execute a single backup.

    Args:
        source_path: Directory to back up
        archive_path: Where to write the temporary archive
        bucket: Destination bucket
        object_key: Destination object key
        storage: Storage handler, or None to skip the upload
        progress_callback: Receives (bytes_transferred, total_bytes) during upload

    Returns:
        BackupResult with execution results
    """
    job = BackupJob(
        source_path=source_path,
        archive_path=archive_path,
        bucket=bucket,
        object_key=object_key
    )

    executor = BackupExecutor(storage, progress_callback=progress_callback)
    return executor.execute(job)
