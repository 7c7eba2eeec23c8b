"""
Backup module for Scribe.

This module handles the core backup functionality including:
- Compression (directory to ZIP archive)
- Storage (S3-compatible object stores)
- Execution orchestration
"""

from .executor import BackupExecutor, BackupJob, BackupResult, FailureKind, run_backup
from .compression import create_archive
from .storage import S3Storage

__all__ = [
    'BackupExecutor',
    'BackupJob',
    'BackupResult',
    'FailureKind',
    'run_backup',
    'create_archive',
    'S3Storage'
]
