"""Abstract base class for cabinet storage providers."""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import BinaryIO, Generic, TypeVar

from cabinet.exceptions import BackendError, InvalidArgumentError, ItemAlreadyExistsError
from cabinet.storage.configs import CabinetConfig
from cabinet.storage.policy import (
    ExistingItemAction,
    HandleExistingMethod,
    ensure_supported,
    needs_existence_check,
    resolve_existing,
)
from cabinet.storage.progress import ProgressSink
from cabinet.storage.results import DeleteResult, ItemInfo, MoveResult, SaveResult

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT", bound=CabinetConfig)


class StorageProvider(ABC, Generic[ConfigT]):
    """
    Abstract base for storage providers.

    Every backend exposes the same operations, parameterized by its own
    config type. Providers hold no per-call state, so one instance can serve
    concurrent calls against any number of configs.
    """

    config_class: type[ConfigT]

    @property
    def provider_type(self) -> str:
        """Identifier used to select this provider (e.g. 'FileSystem', 'AmazonS3')."""
        return self.config_class.provider_type

    def validate_config(self, config: ConfigT | None) -> ConfigT:
        """Reject a missing config or one meant for another backend."""
        if config is None:
            raise InvalidArgumentError("config")
        if not isinstance(config, self.config_class):
            raise InvalidArgumentError(
                "config",
                f"Expected {self.config_class.__name__}, got {type(config).__name__}",
            )
        return config

    async def check_save_policy(
        self,
        key: str,
        handle_existing: HandleExistingMethod,
        config: ConfigT,
    ) -> SaveResult | None:
        """
        Apply the existing-item policy before a save.

        Returns:
            A SaveResult that ends the save without writing (skipped, or
            failed because the existence check failed), else None

        Raises:
            ItemAlreadyExistsError: If the key exists and THROW was requested
        """
        if not needs_existence_check(handle_existing):
            return None

        try:
            exists = await self.exists(key, config)
        except BackendError as e:
            logger.warning(f"Could not check whether '{key}' exists before saving: {e}")
            return SaveResult.failed(key, e)

        action = resolve_existing(exists, handle_existing)
        if action == ExistingItemAction.SKIP:
            logger.debug(f"Skipped saving existing key '{key}'")
            return SaveResult(key=key, success=True, already_exists=True)
        if action == ExistingItemAction.FAIL:
            raise ItemAlreadyExistsError(key)
        return None

    async def check_move_policy(
        self,
        source_key: str,
        dest_key: str,
        handle_existing: HandleExistingMethod,
        config: ConfigT,
    ) -> MoveResult | None:
        """
        Apply the existing-item policy before a move.

        Only OVERWRITE is implemented for an existing destination.

        Returns:
            A failed MoveResult if the destination check fails, else None

        Raises:
            PolicyNotImplementedError: If the destination exists and
                handle_existing is not OVERWRITE
        """
        if not needs_existence_check(handle_existing):
            return None

        try:
            exists = await self.exists(dest_key, config)
        except BackendError as e:
            logger.warning(f"Could not check whether '{dest_key}' exists before moving: {e}")
            return MoveResult.failed(source_key, dest_key, e)

        if resolve_existing(exists, handle_existing) != ExistingItemAction.PROCEED:
            ensure_supported(handle_existing, (HandleExistingMethod.OVERWRITE,), "move")
        return None

    @abstractmethod
    async def exists(self, key: str, config: ConfigT) -> bool:
        """
        Check whether an item exists.

        Returns:
            True only for a positive backend response

        Raises:
            InvalidArgumentError: If key or config is missing
            BackendError: If the backend fails in an unexpected way
        """

    @abstractmethod
    async def get_item(self, key: str, config: ConfigT) -> ItemInfo:
        """Look up a single item; a missing item yields ``exists=False``."""

    @abstractmethod
    def iter_items(
        self,
        config: ConfigT,
        key_prefix: str = "",
        recursive: bool = True,
    ) -> AsyncIterator[ItemInfo]:
        """
        Lazily list items under ``key_prefix``.

        Args:
            config: Backend config
            key_prefix: Caller-space prefix; blank means root
            recursive: All depths, or direct children plus directory markers

        Yields:
            ItemInfo in backend order with caller-space keys
        """

    async def get_items(
        self,
        config: ConfigT,
        key_prefix: str = "",
        recursive: bool = True,
    ) -> list[ItemInfo]:
        """Materialize iter_items()."""
        return [item async for item in self.iter_items(config, key_prefix, recursive)]

    async def list_keys(
        self,
        config: ConfigT,
        key_prefix: str = "",
        recursive: bool = True,
    ) -> list[str]:
        """Keys from iter_items()."""
        return [item.key async for item in self.iter_items(config, key_prefix, recursive)]

    @abstractmethod
    async def open_read_stream(self, key: str, config: ConfigT) -> BinaryIO:
        """
        Open an item for reading.

        The caller owns the returned stream and must close it.

        Raises:
            ItemNotFoundError: If the item does not exist
        """

    @abstractmethod
    async def save_file(
        self,
        key: str,
        file_path: str,
        handle_existing: HandleExistingMethod,
        progress: ProgressSink | None,
        config: ConfigT,
    ) -> SaveResult:
        """
        Save a local file under ``key``.

        Raises:
            InvalidArgumentError: If key, path or config is missing
            ItemAlreadyExistsError: If the key exists and THROW was requested
        """

    @abstractmethod
    async def save_stream(
        self,
        key: str,
        stream: BinaryIO,
        handle_existing: HandleExistingMethod,
        progress: ProgressSink | None,
        config: ConfigT,
    ) -> SaveResult:
        """
        Save the remaining content of ``stream`` under ``key``.

        Raises:
            InvalidArgumentError: If key, stream or config is missing
            ItemAlreadyExistsError: If the key exists and THROW was requested
        """

    @abstractmethod
    async def move(
        self,
        source_key: str,
        dest_key: str,
        handle_existing: HandleExistingMethod,
        config: ConfigT,
    ) -> MoveResult:
        """
        Move an item to a new key.

        Raises:
            InvalidArgumentError: If a key or config is missing
            PolicyNotImplementedError: If the destination exists and
                handle_existing is not OVERWRITE
        """

    @abstractmethod
    async def delete(self, key: str, config: ConfigT) -> DeleteResult:
        """Delete an item; deleting a missing item succeeds."""
