"""
Archive creation for backups.

Walks a source directory and writes every file and directory into a
deflated ZIP archive. Entry names are relative to the parent of the source
directory, so extracting the archive recreates a folder with the source's
name:

    /home/me/data/a.txt   ->   data/a.txt
    /home/me/data/empty   ->   data/empty/
"""

import os
import string
import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, Optional


logger = logging.getLogger(__name__)

_SAFE_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "-_")


class CompressionError(Exception):
    """Raised when archive creation fails."""
    pass


@dataclass
class ArchiveEntry:
    """One filesystem node as stored in the archive."""

    name: str
    path: str
    is_directory: bool


EntryCallback = Callable[[ArchiveEntry], None]


def create_archive(
    source_path: str,
    output_path: str,
    entry_callback: Optional[EntryCallback] = None
) -> str:
    """
    Create a ZIP archive of a directory.

    Args:
        source_path: Directory to archive
        output_path: Path of the archive file to create (must not exist)
        entry_callback: Optional function called with each ArchiveEntry after it is written

    Returns:
        Absolute path to the created archive file

    Raises:
        CompressionError: If the inputs are invalid or archive creation fails
    """
    # Validate inputs
    if not source_path:
        raise CompressionError("Source path cannot be empty")
    if not output_path:
        raise CompressionError("Output path cannot be empty")

    source = os.path.abspath(source_path)
    output = os.path.abspath(output_path)

    if not os.path.exists(source):
        raise CompressionError(f"Source path does not exist: {source}")
    if not os.path.isdir(source):
        raise CompressionError(f"Source path is not a directory: {source}")
    if os.path.lexists(output):
        raise CompressionError(f"Output path already exists: {output}")
    if _is_within(output, source):
        raise CompressionError(f"Output path must be outside the source directory: {output}")

    # Exclusive create: never truncate a file that appeared after the check above
    try:
        zipf = zipfile.ZipFile(output, 'x', zipfile.ZIP_DEFLATED, strict_timestamps=False)
    except FileExistsError as e:
        raise CompressionError(f"Output path already exists: {output}") from e
    except OSError as e:
        raise CompressionError(f"Failed to create output file {output}: {e}") from e

    try:
        count = _write_entries(zipf, source, entry_callback)
    except BaseException as e:
        # The primary error wins over anything close() has to say
        try:
            zipf.close()
        except OSError as close_error:
            logger.debug(f"Ignoring close error after failure: {close_error}")
        _remove_partial_archive(output)
        if isinstance(e, OSError):
            raise CompressionError(f"Failed to write archive {output}: {e}") from e
        raise

    try:
        zipf.close()
    except OSError as e:
        _remove_partial_archive(output)
        raise CompressionError(f"Failed to finalize archive {output}: {e}") from e

    logger.debug(f"Archived {count} entries from {source} into {output}")
    return output


def iter_archive_entries(source_path: str) -> Iterator[ArchiveEntry]:
    """
    Yield every node under a directory exactly once, in a stable order.

    The directory itself comes first, then its children sorted by name,
    depth first. Symlinks to directories are reported as directories but
    not descended into.

    Raises:
        OSError: If a directory cannot be listed
    """
    source = os.path.abspath(source_path)
    base_path = os.path.dirname(source)
    return _walk(source, base_path)


def _walk(directory: str, base_path: str) -> Iterator[ArchiveEntry]:
    yield ArchiveEntry(_archive_name(directory, base_path) + '/', directory, True)

    with os.scandir(directory) as scanner:
        children = sorted(scanner, key=lambda child: child.name)

    for child in children:
        if child.is_dir(follow_symlinks=False):
            yield from _walk(child.path, base_path)
        elif child.is_dir():
            # Symlinked directory
            yield ArchiveEntry(_archive_name(child.path, base_path) + '/', child.path, True)
        else:
            yield ArchiveEntry(_archive_name(child.path, base_path), child.path, False)


def _write_entries(zipf: zipfile.ZipFile, source: str, entry_callback: Optional[EntryCallback]) -> int:
    """Write all entries of source into zipf and return how many were written."""
    count = 0
    entries = iter_archive_entries(source)

    while True:
        try:
            entry = next(entries)
        except StopIteration:
            break
        except OSError as e:
            raise CompressionError(f"Error walking {e.filename or source}: {e}") from e

        if not entry.is_directory and not os.path.isfile(entry.path):
            if not os.path.lexists(entry.path):
                raise CompressionError(f"File disappeared during archiving: {entry.path}")
            if os.path.islink(entry.path):
                raise CompressionError(f"Dangling symlink: {entry.path}")
            raise CompressionError(f"Unsupported file type: {entry.path}")

        try:
            zipf.write(entry.path, entry.name)
        except OSError as e:
            raise CompressionError(f"Failed to add {entry.path} to archive: {e}") from e

        count += 1
        if entry_callback:
            entry_callback(entry)

    return count


def _archive_name(path: str, base_path: str) -> str:
    """Archive names always use forward slashes."""
    relative_path = os.path.relpath(path, base_path)
    return relative_path.replace(os.sep, '/')


def _is_within(path: str, directory: str) -> bool:
    path = os.path.realpath(path)
    directory = os.path.realpath(directory)
    return os.path.commonpath([path, directory]) == directory


def _remove_partial_archive(output_path: str):
    """Delete a half-written archive; failures are logged, not raised."""
    try:
        os.remove(output_path)
        logger.debug(f"Removed partial archive: {output_path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Failed to remove partial archive {output_path}: {e}")


def generate_archive_filename(name: str = 'backup') -> str:
    """
    Generate a timestamped archive filename.

    Format: {name}-{YYYY-MM-DD-HH-MM-SS}.zip

    Args:
        name: Base name for the archive

    Returns:
        Filename (without path)
    """
    timestamp = datetime.now().strftime('%Y-%m-%d-%H-%M-%S')

    # Sanitize name (replace spaces and special chars with underscores)
    safe_name = "".join(
        c if c in _SAFE_NAME_CHARS else '_'
        for c in name
    ) or 'backup'

    return f"{safe_name}-{timestamp}.zip"


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Args:
        archive_path: Path to the archive file

    Returns:
        File size in bytes

    Raises:
        CompressionError: If file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise CompressionError(f"Archive not found: {archive_path}")
    except OSError as e:
        raise CompressionError(f"Failed to get archive size: {e}")
