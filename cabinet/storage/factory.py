"""Factory for creating storage providers and cabinets from configuration."""

from functools import lru_cache
from typing import TYPE_CHECKING, Any

from cabinet.exceptions import InvalidArgumentError
from cabinet.storage.base import StorageProvider
from cabinet.storage.configs import AmazonS3CabinetConfig, CabinetConfig, FileSystemCabinetConfig
from cabinet.storage.local import FileSystemStorageProvider
from cabinet.storage.s3 import AmazonS3StorageProvider

if TYPE_CHECKING:
    from cabinet.cabinet import FileCabinet
    from cabinet.config import Settings


PROVIDER_TYPES: dict[str, type[StorageProvider]] = {
    FileSystemCabinetConfig.provider_type: FileSystemStorageProvider,
    AmazonS3CabinetConfig.provider_type: AmazonS3StorageProvider,
}


def get_storage_provider(provider_type: str, **kwargs: Any) -> StorageProvider:
    """
    Create the provider registered for ``provider_type``.

    Args:
        provider_type: "FileSystem" or "AmazonS3"
        **kwargs: Passed to the provider constructor (e.g. session, chunk_size)

    Returns:
        StorageProvider instance

    Raises:
        InvalidArgumentError: If the provider type is unknown
    """
    provider_class = PROVIDER_TYPES.get(provider_type)
    if provider_class is None:
        raise InvalidArgumentError(
            "provider_type",
            f"Unknown provider type '{provider_type}'. Expected one of: {', '.join(PROVIDER_TYPES)}",
        )
    return provider_class(**kwargs)


def get_file_cabinet(config: CabinetConfig, **kwargs: Any) -> "FileCabinet":
    """Bind the provider matching ``config`` to it."""
    from cabinet.cabinet import FileCabinet

    if config is None:
        raise InvalidArgumentError("config")
    provider = get_storage_provider(config.provider_type, **kwargs)
    return FileCabinet(provider, config)


def get_config_from_settings(settings: "Settings") -> CabinetConfig:
    """
    Build a cabinet config directly from a Settings object.

    Useful for dependency injection in tests.
    """
    if settings.backend == AmazonS3CabinetConfig.provider_type:
        return AmazonS3CabinetConfig(
            bucket_name=settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            key_prefix=settings.s3_key_prefix,
            delimiter=settings.s3_delimiter,
        )
    return FileSystemCabinetConfig(
        directory=settings.local_root,
        create_if_not_exists=settings.local_create_if_not_exists,
    )


def get_file_cabinet_from_settings(settings: "Settings") -> "FileCabinet":
    """Create a FileCabinet from a Settings object."""
    return get_file_cabinet(
        get_config_from_settings(settings),
        chunk_size=settings.transfer_chunk_size,
    )


@lru_cache(maxsize=1)
def get_default_cabinet() -> "FileCabinet":
    """Cabinet for the environment-configured backend."""
    # Import settings lazily to avoid circular imports
    from cabinet.config import get_settings

    return get_file_cabinet_from_settings(get_settings())
