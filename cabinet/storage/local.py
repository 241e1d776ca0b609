"""Local disk storage provider."""

import asyncio
import logging
import os
import stat
import uuid
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO

import aiofiles
import aiofiles.os

from cabinet.exceptions import BackendError, InvalidArgumentError, ItemNotFoundError
from cabinet.storage.base import StorageProvider
from cabinet.storage.configs import FileSystemCabinetConfig
from cabinet.storage.keys import is_blank, validate_key
from cabinet.storage.listing import search_prefix
from cabinet.storage.policy import HandleExistingMethod
from cabinet.storage.progress import ProgressSink, ProgressTracker
from cabinet.storage.results import DeleteResult, ItemInfo, ItemType, MoveResult, SaveResult
from cabinet.storage.transfer import DEFAULT_CHUNK_SIZE, copy_stream, get_stream_size

logger = logging.getLogger(__name__)

DELIMITER = "/"
TEMP_SUFFIX = ".cabinet-tmp"


class FileSystemStorageProvider(StorageProvider[FileSystemCabinetConfig]):
    """
    Hierarchical storage on local disk.

    Keys map to paths below the configured directory; a key's delimiters
    become directory separators. Moves are native renames.
    """

    config_class = FileSystemCabinetConfig

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize local storage provider.

        Args:
            chunk_size: Read/write size in bytes for saves
        """
        self.chunk_size = chunk_size

    @staticmethod
    def _get_root(config: FileSystemCabinetConfig) -> Path:
        return Path(os.path.abspath(os.path.expanduser(config.directory)))

    async def _ensure_root(self, config: FileSystemCabinetConfig) -> Path:
        root = self._get_root(config)
        if config.create_if_not_exists:
            await aiofiles.os.makedirs(root, exist_ok=True)
        elif not await aiofiles.os.path.isdir(root):
            raise FileNotFoundError(f"Cabinet directory does not exist: {root}")
        return root

    def _get_path(self, config: FileSystemCabinetConfig, key: str, name: str = "key") -> Path:
        """
        Map a canonical key to a path under the root.

        Raises:
            InvalidArgumentError: If the key resolves outside the root
        """
        root = self._get_root(config)
        full_path = Path(os.path.normpath(root.joinpath(*key.split(DELIMITER))))
        if full_path == root or root not in full_path.parents:
            raise InvalidArgumentError(name, f"'{name}' must resolve to an item under the cabinet root")
        return full_path

    @staticmethod
    def _check_prefix(root: Path, prefix: str) -> None:
        """Reject a listing prefix that climbs out of the root."""
        if not prefix:
            return
        full_path = Path(os.path.normpath(root.joinpath(*prefix.split(DELIMITER))))
        if full_path != root and root not in full_path.parents:
            raise InvalidArgumentError("key_prefix", "'key_prefix' must stay under the cabinet root")

    @staticmethod
    def _to_item(key: str, st: os.stat_result) -> ItemInfo:
        is_dir = stat.S_ISDIR(st.st_mode)
        return ItemInfo(
            key=key,
            exists=True,
            item_type=ItemType.DIRECTORY if is_dir else ItemType.FILE,
            size=None if is_dir else st.st_size,
            last_modified_utc=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    async def exists(self, key: str, config: FileSystemCabinetConfig) -> bool:
        key = validate_key(key)
        config = self.validate_config(config)
        return await aiofiles.os.path.isfile(self._get_path(config, key))

    async def get_item(self, key: str, config: FileSystemCabinetConfig) -> ItemInfo:
        key = validate_key(key)
        config = self.validate_config(config)
        path = self._get_path(config, key)
        try:
            st = await aiofiles.os.stat(path)
        except (FileNotFoundError, NotADirectoryError, PermissionError):
            return ItemInfo(key=key, exists=False)
        return self._to_item(key, st)

    async def iter_items(
        self,
        config: FileSystemCabinetConfig,
        key_prefix: str = "",
        recursive: bool = True,
    ) -> AsyncIterator[ItemInfo]:
        config = self.validate_config(config)
        root = self._get_root(config)
        prefix = search_prefix(key_prefix, None, DELIMITER)
        self._check_prefix(root, prefix)

        if recursive:
            # Walk from the deepest directory the prefix fully names
            base_key = prefix.rpartition(DELIMITER)[0]
            async for item in self._walk(root, base_key, prefix):
                yield item
            return

        directory_key = prefix.rstrip(DELIMITER)
        async for key, st in self._scan(root, directory_key):
            yield self._to_item(key, st)

    async def _scan(self, root: Path, directory_key: str) -> AsyncIterator[tuple[str, os.stat_result]]:
        """Yield (key, stat) for the entries of one directory in name order."""
        directory = root.joinpath(*directory_key.split(DELIMITER)) if directory_key else root
        try:
            names = await aiofiles.os.listdir(directory)
        except (FileNotFoundError, NotADirectoryError):
            return
        except PermissionError as e:
            raise BackendError(f"Cannot list '{directory_key}'", key=directory_key) from e

        for name in sorted(names):
            if name.endswith(TEMP_SUFFIX):
                continue
            key = f"{directory_key}{DELIMITER}{name}" if directory_key else name
            try:
                st = await aiofiles.os.stat(directory / name)
            except FileNotFoundError:
                # Removed while listing
                continue
            yield key, st

    async def _walk(self, root: Path, directory_key: str, prefix: str) -> AsyncIterator[ItemInfo]:
        async for key, st in self._scan(root, directory_key):
            if stat.S_ISDIR(st.st_mode):
                as_dir = key + DELIMITER
                if not (as_dir.startswith(prefix) or prefix.startswith(as_dir)):
                    continue
                # Linked directories may point back up the tree
                if await aiofiles.os.path.islink(root.joinpath(*key.split(DELIMITER))):
                    continue
                async for item in self._walk(root, key, prefix):
                    yield item
            elif key.startswith(prefix):
                yield self._to_item(key, st)

    async def open_read_stream(self, key: str, config: FileSystemCabinetConfig) -> BinaryIO:
        key = validate_key(key)
        config = self.validate_config(config)
        path = self._get_path(config, key)
        try:
            return await asyncio.to_thread(path.open, "rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError, PermissionError) as e:
            raise ItemNotFoundError(key) from e

    async def save_file(
        self,
        key: str,
        file_path: str,
        handle_existing: HandleExistingMethod,
        progress: ProgressSink | None,
        config: FileSystemCabinetConfig,
    ) -> SaveResult:
        key = validate_key(key)
        if is_blank(file_path):
            raise InvalidArgumentError("file_path")
        config = self.validate_config(config)

        result = await self.check_save_policy(key, handle_existing, config)
        if result is not None:
            return result

        target = self._get_path(config, key)
        try:
            total = await aiofiles.os.path.getsize(file_path)
            tracker = ProgressTracker(key, progress, total)
            async with aiofiles.open(file_path, "rb") as source:
                await self._write(config, target, source, tracker)
        except OSError as e:
            logger.warning(f"Failed to save '{file_path}' as '{key}': {e}")
            return SaveResult.failed(key, e)

        logger.info(f"Saved {tracker.bytes_written} bytes to '{key}'")
        return SaveResult(key=key)

    async def save_stream(
        self,
        key: str,
        stream: BinaryIO,
        handle_existing: HandleExistingMethod,
        progress: ProgressSink | None,
        config: FileSystemCabinetConfig,
    ) -> SaveResult:
        key = validate_key(key)
        if stream is None:
            raise InvalidArgumentError("stream")
        config = self.validate_config(config)

        result = await self.check_save_policy(key, handle_existing, config)
        if result is not None:
            return result

        target = self._get_path(config, key)
        tracker = ProgressTracker(key, progress, get_stream_size(stream))
        try:
            await self._write(config, target, stream, tracker)
        except OSError as e:
            logger.warning(f"Failed to save stream as '{key}': {e}")
            return SaveResult.failed(key, e)

        logger.info(f"Saved {tracker.bytes_written} bytes to '{key}'")
        return SaveResult(key=key)

    async def _write(
        self,
        config: FileSystemCabinetConfig,
        target: Path,
        source: Any,
        tracker: ProgressTracker,
    ) -> None:
        """Write to a temporary sibling, then rename it over the target."""
        await self._ensure_root(config)
        await aiofiles.os.makedirs(target.parent, exist_ok=True)

        temp_path = target.with_name(f"{target.name}.{uuid.uuid4().hex[:12]}{TEMP_SUFFIX}")
        replaced = False
        try:
            async with aiofiles.open(temp_path, "wb") as dest:
                await copy_stream(source, dest, tracker, self.chunk_size)
            await aiofiles.os.replace(temp_path, target)
            replaced = True
        finally:
            if not replaced and await aiofiles.os.path.exists(temp_path):
                await aiofiles.os.remove(temp_path)

    async def move(
        self,
        source_key: str,
        dest_key: str,
        handle_existing: HandleExistingMethod,
        config: FileSystemCabinetConfig,
    ) -> MoveResult:
        source_key = validate_key(source_key, "source_key")
        dest_key = validate_key(dest_key, "dest_key")
        config = self.validate_config(config)

        result = await self.check_move_policy(source_key, dest_key, handle_existing, config)
        if result is not None:
            return result

        source = self._get_path(config, source_key, "source_key")
        dest = self._get_path(config, dest_key, "dest_key")
        try:
            await self._ensure_root(config)
            await aiofiles.os.makedirs(dest.parent, exist_ok=True)
            await aiofiles.os.replace(source, dest)
        except OSError as e:
            logger.warning(f"Failed to move '{source_key}' to '{dest_key}': {e}")
            return MoveResult.failed(source_key, dest_key, e)

        logger.info(f"Moved '{source_key}' to '{dest_key}'")
        return MoveResult(source_key=source_key, dest_key=dest_key)

    async def delete(self, key: str, config: FileSystemCabinetConfig) -> DeleteResult:
        key = validate_key(key)
        config = self.validate_config(config)
        path = self._get_path(config, key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.debug(f"Delete of missing key '{key}' is a no-op")
            return DeleteResult(key=key)
        except OSError as e:
            logger.warning(f"Failed to delete '{key}': {e}")
            return DeleteResult(key=key, success=False, exception=e)

        logger.info(f"Deleted '{key}'")
        return DeleteResult(key=key)
