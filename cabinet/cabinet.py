"""
A storage provider bound to one configuration.

Usage:
    from cabinet import FileSystemCabinetConfig, HandleExistingMethod, get_file_cabinet

    cabinet = get_file_cabinet(FileSystemCabinetConfig(directory="/srv/files"))

    # Save a file
    result = await cabinet.save_file("reports/q1.pdf", "/tmp/upload-123", HandleExistingMethod.SKIP)

    # Read it back
    with await cabinet.open_read_stream("reports/q1.pdf") as stream:
        content = stream.read()
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from typing import BinaryIO, Generic

import aiofiles.os

from cabinet.exceptions import CabinetError, ItemAlreadyExistsError
from cabinet.storage.base import ConfigT, StorageProvider
from cabinet.storage.policy import HandleExistingMethod
from cabinet.storage.progress import ProgressSink
from cabinet.storage.results import DeleteResult, ItemInfo, MoveResult, SaveResult

logger = logging.getLogger(__name__)


def all_succeeded(results: Iterable[SaveResult | MoveResult | DeleteResult]) -> bool:
    """Aggregate outcome of a batch: fails if any single item failed."""
    return all(result.success for result in results)


class FileCabinet(Generic[ConfigT]):
    """Storage provider and config pair exposing config-free operations."""

    def __init__(self, provider: StorageProvider[ConfigT], config: ConfigT):
        self.provider = provider
        self.config = provider.validate_config(config)

    @property
    def provider_type(self) -> str:
        return self.provider.provider_type

    async def exists(self, key: str) -> bool:
        return await self.provider.exists(key, self.config)

    async def get_item(self, key: str) -> ItemInfo:
        return await self.provider.get_item(key, self.config)

    def iter_items(self, key_prefix: str = "", recursive: bool = True) -> AsyncIterator[ItemInfo]:
        return self.provider.iter_items(self.config, key_prefix, recursive)

    async def get_items(self, key_prefix: str = "", recursive: bool = True) -> list[ItemInfo]:
        return await self.provider.get_items(self.config, key_prefix, recursive)

    async def list_keys(self, key_prefix: str = "", recursive: bool = True) -> list[str]:
        return await self.provider.list_keys(self.config, key_prefix, recursive)

    async def open_read_stream(self, key: str) -> BinaryIO:
        return await self.provider.open_read_stream(key, self.config)

    async def save_file(
        self,
        key: str,
        file_path: str,
        handle_existing: HandleExistingMethod = HandleExistingMethod.THROW,
        progress: ProgressSink | None = None,
    ) -> SaveResult:
        return await self.provider.save_file(key, file_path, handle_existing, progress, self.config)

    async def save_stream(
        self,
        key: str,
        stream: BinaryIO,
        handle_existing: HandleExistingMethod = HandleExistingMethod.THROW,
        progress: ProgressSink | None = None,
    ) -> SaveResult:
        return await self.provider.save_stream(key, stream, handle_existing, progress, self.config)

    async def move(
        self,
        source_key: str,
        dest_key: str,
        handle_existing: HandleExistingMethod = HandleExistingMethod.OVERWRITE,
    ) -> MoveResult:
        return await self.provider.move(source_key, dest_key, handle_existing, self.config)

    async def delete(self, key: str) -> DeleteResult:
        return await self.provider.delete(key, self.config)

    async def save_files(
        self,
        files: Sequence[tuple[str, str]],
        handle_existing: HandleExistingMethod = HandleExistingMethod.THROW,
        progress: ProgressSink | None = None,
        delete_local_files: bool = True,
    ) -> list[SaveResult]:
        """
        Save several local files concurrently.

        Each file is reported independently: an argument or policy error on
        one item becomes a failed result for that item and never aborts the
        others. Succeeded items are not rolled back when another fails.

        Args:
            files: (key, local_path) pairs, e.g. temp files from an upload
            handle_existing: Policy applied to every item
            progress: Sink shared by all transfers (snapshots carry the key)
            delete_local_files: Remove every local file afterwards, whatever
                the outcome

        Returns:
            One SaveResult per input pair, in input order
        """
        try:
            outcomes = await asyncio.gather(
                *(
                    self.save_file(key, file_path, handle_existing, progress)
                    for key, file_path in files
                ),
                return_exceptions=True,
            )
        finally:
            if delete_local_files:
                await self._remove_local_files(file_path for _, file_path in files)

        results = []
        for (key, _), outcome in zip(files, outcomes):
            if isinstance(outcome, SaveResult):
                results.append(outcome)
            elif isinstance(outcome, (CabinetError, OSError)):
                logger.warning(f"Failed to save '{key}': {outcome}")
                result = SaveResult.failed(key or "", outcome)
                result.already_exists = isinstance(outcome, ItemAlreadyExistsError)
                results.append(result)
            else:
                raise outcome
        return results

    @staticmethod
    async def _remove_local_files(paths: Iterable[str]) -> None:
        for path in paths:
            if not path:
                continue
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                pass
            except OSError:
                logger.exception(f"Could not remove local file '{path}'")
