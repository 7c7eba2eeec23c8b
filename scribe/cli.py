"""Command line interface for Scribe."""

import os
import sys
import logging
from typing import Optional

import click
from tqdm import tqdm

from scribe import __version__, configure_logging
from scribe.config import Config, ConfigurationError, get_config
from scribe.backup.compression import generate_archive_filename
from scribe.backup.executor import BackupExecutor, BackupJob, FailureKind
from scribe.backup.storage import S3Storage, StorageError, build_object_key


logger = logging.getLogger(__name__)


class UploadProgressBar:
    """tqdm byte counter fed by the storage progress callback."""

    def __init__(self, description: str = 'Uploading', file=None):
        self.description = description
        self.file = file or sys.stderr
        self.bar = None

    def __call__(self, bytes_transferred: int, total_bytes: int):
        if self.bar is None:
            self.bar = tqdm(
                total=total_bytes,
                unit='B',
                unit_scale=True,
                desc=self.description,
                file=self.file,
                leave=True
            )
        # update() honours mininterval; a negative step follows a rewind for a retry
        self.bar.update(bytes_transferred - self.bar.n)

    def close(self):
        if self.bar is not None:
            self.bar.close()
            self.bar = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def create_storage(app_config=Config) -> Optional[S3Storage]:
    """
    Build the storage handler from the environment.

    Returns:
        S3Storage, or None when credentials are missing (local-only mode)
    """
    try:
        return S3Storage.from_env(app_config=app_config)
    except (ConfigurationError, StorageError) as e:
        logger.warning(f"Cloud uploader not available: {e}")
        logger.warning("Only local backup will be available")
        return None


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name='scribe')
@click.pass_context
def cli(ctx):
    """Archiver to the cloud."""
    if ctx.invoked_subcommand is None:
        click.echo("use --help for usage.")


@cli.command()
@click.option('--source', '-s', required=True, help='Source directory to backup')
@click.option('--bucket', '-b', required=True, help='Object storage bucket name')
@click.option('--prefix', '-p', default=Config.DEFAULT_PREFIX, show_default=True,
              help='Object key prefix in bucket')
@click.option('--temp-dir', default=None, help='Directory for the temporary archive')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def backup(source, bucket, prefix, temp_dir, verbose):
    """Create a ZIP archive of a directory and upload it to object storage."""
    try:
        app_config = get_config()
    except ConfigurationError as e:
        click.echo(f"Backup failed ({FailureKind.CONFIGURATION.value}): {e}", err=True)
        sys.exit(1)
    configure_logging(app_config, verbose=verbose)

    archive_name = generate_archive_filename(app_config.ARCHIVE_NAME)
    archive_path = os.path.join(temp_dir or app_config.TEMP_DIR, archive_name)
    object_key = build_object_key(prefix, archive_name)

    storage = create_storage(app_config)

    def echo_entry(entry):
        click.echo(f"  adding: {entry.name}", err=True)

    job = BackupJob(
        source_path=source,
        archive_path=archive_path,
        bucket=bucket,
        object_key=object_key
    )

    with UploadProgressBar() as progress:
        executor = BackupExecutor(storage, progress_callback=progress,
                                  entry_callback=echo_entry if verbose else None)
        result = executor.execute(job)

    if not result.succeeded:
        click.echo(f"Backup failed ({result.error_kind.value}): {result.error_message}", err=True)
        sys.exit(1)

    if result.upload_skipped:
        click.echo("Cloud upload skipped (no credentials available)")
    else:
        click.echo(f"Uploaded to: s3://{bucket}/{result.s3_key}")
    click.echo("Backup completed successfully!")


def main():
    cli()


if __name__ == '__main__':
    main()
