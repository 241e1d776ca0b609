"""File cabinet: one storage contract over local disk and S3."""

from cabinet.cabinet import FileCabinet, all_succeeded
from cabinet.exceptions import (
    BackendError,
    CabinetError,
    InvalidArgumentError,
    ItemAlreadyExistsError,
    ItemNotFoundError,
    PolicyNotImplementedError,
)
from cabinet.migrator import CabinetMigrator
from cabinet.storage import (
    AmazonS3CabinetConfig,
    AmazonS3StorageProvider,
    FileSystemCabinetConfig,
    FileSystemStorageProvider,
    HandleExistingMethod,
    ItemInfo,
    ItemType,
    StorageProvider,
    WriteProgress,
    get_file_cabinet,
    get_storage_provider,
)

__all__ = [
    "FileCabinet",
    "all_succeeded",
    "CabinetMigrator",
    "BackendError",
    "CabinetError",
    "InvalidArgumentError",
    "ItemAlreadyExistsError",
    "ItemNotFoundError",
    "PolicyNotImplementedError",
    "AmazonS3CabinetConfig",
    "AmazonS3StorageProvider",
    "FileSystemCabinetConfig",
    "FileSystemStorageProvider",
    "HandleExistingMethod",
    "ItemInfo",
    "ItemType",
    "StorageProvider",
    "WriteProgress",
    "get_file_cabinet",
    "get_storage_provider",
]
