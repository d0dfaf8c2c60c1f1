"""
Object storage for rendered videos.

Supports Vercel Blob and S3-compatible stores behind one contract, an
auto-fallback composite of the two, an in-memory mock for development,
and a local-disk file used when every provider fails.
"""

from .base import StorageAdapter
from .fallback import FallbackStorageAdapter
from .local_disk import LocalVideoStore
from .memory import MockStorageAdapter
from .s3 import S3Config, S3StorageAdapter
from .selector import StorageSelector
from .vercel_blob import VercelBlobAdapter

__all__ = [
    "StorageAdapter",
    "FallbackStorageAdapter",
    "LocalVideoStore",
    "MockStorageAdapter",
    "S3Config",
    "S3StorageAdapter",
    "StorageSelector",
    "VercelBlobAdapter",
]
