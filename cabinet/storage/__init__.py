"""
Storage providers for the file cabinet.

Provides the abstract provider interface and implementations for:
- Local disk storage (hierarchical, native rename)
- S3/MinIO storage (flat keys, delimiter-simulated hierarchy)
"""

from cabinet.storage.base import StorageProvider
from cabinet.storage.configs import AmazonS3CabinetConfig, CabinetConfig, FileSystemCabinetConfig
from cabinet.storage.factory import get_file_cabinet, get_storage_provider
from cabinet.storage.local import FileSystemStorageProvider
from cabinet.storage.policy import HandleExistingMethod
from cabinet.storage.progress import ProgressSink, WriteProgress
from cabinet.storage.results import (
    BackendStatus,
    DeleteResult,
    ItemInfo,
    ItemType,
    MoveResult,
    SaveResult,
)
from cabinet.storage.s3 import AmazonS3StorageProvider

__all__ = [
    "StorageProvider",
    "FileSystemStorageProvider",
    "AmazonS3StorageProvider",
    "CabinetConfig",
    "FileSystemCabinetConfig",
    "AmazonS3CabinetConfig",
    "HandleExistingMethod",
    "ProgressSink",
    "WriteProgress",
    "BackendStatus",
    "ItemInfo",
    "ItemType",
    "SaveResult",
    "MoveResult",
    "DeleteResult",
    "get_storage_provider",
    "get_file_cabinet",
]
