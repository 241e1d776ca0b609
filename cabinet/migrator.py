"""
Move items from one cabinet to another.

The two cabinets may use different backends, e.g. draining a local upload
directory into S3:

    migrator = CabinetMigrator(local_cabinet, s3_cabinet)
    results = await migrator.migrate(key_prefix="uploads")
    if not all_succeeded(results):
        ...
"""

import logging
from collections.abc import Iterable

from cabinet.cabinet import FileCabinet
from cabinet.exceptions import BackendError, ItemAlreadyExistsError, ItemNotFoundError
from cabinet.storage.keys import validate_key
from cabinet.storage.policy import HandleExistingMethod
from cabinet.storage.results import MoveResult

logger = logging.getLogger(__name__)


class CabinetMigrator:
    """Streams items from a source cabinet into a destination cabinet."""

    def __init__(self, source: FileCabinet, destination: FileCabinet):
        self.source = source
        self.destination = destination

    async def move_item(
        self,
        key: str,
        handle_existing: HandleExistingMethod = HandleExistingMethod.THROW,
    ) -> MoveResult:
        """
        Copy one item to the destination under the same key, then delete it
        from the source.

        The source is only deleted after the destination save succeeds. When
        SKIP finds the key already in the destination nothing is written and
        the source is kept.

        Raises:
            InvalidArgumentError: If the key is blank
        """
        key = validate_key(key)

        try:
            stream = await self.source.open_read_stream(key)
        except (ItemNotFoundError, BackendError) as e:
            logger.warning(f"Cannot migrate '{key}': {e}")
            return MoveResult.failed(key, key, e)

        try:
            with stream:
                saved = await self.destination.save_stream(key, stream, handle_existing)
        except ItemAlreadyExistsError as e:
            logger.warning(f"Not migrating '{key}': {e}")
            result = MoveResult.failed(key, key, e)
            result.already_exists = True
            return result

        if not saved.success:
            logger.warning(f"Failed to migrate '{key}': {saved.error_message}")
            return MoveResult.failed(key, key, saved.exception, saved.message)
        if saved.already_exists:
            logger.debug(f"'{key}' already in destination, source kept")
            return MoveResult(source_key=key, dest_key=key, already_exists=True)

        deleted = await self.source.delete(key)
        if not deleted.success:
            return MoveResult.failed(
                key,
                key,
                deleted.exception,
                f"Copied '{key}' but could not delete it from the source: {deleted.error_message}",
            )

        logger.info(f"Migrated '{key}' from {self.source.provider_type} to {self.destination.provider_type}")
        return MoveResult(source_key=key, dest_key=key)

    async def migrate(
        self,
        keys: Iterable[str] | None = None,
        key_prefix: str = "",
        handle_existing: HandleExistingMethod = HandleExistingMethod.THROW,
    ) -> list[MoveResult]:
        """
        Move several items, one at a time.

        Args:
            keys: Keys to move; when None every key under ``key_prefix`` in
                the source is moved
            key_prefix: Recursive listing prefix used when ``keys`` is None
            handle_existing: Policy for keys already in the destination

        Returns:
            One MoveResult per key, in order
        """
        if keys is None:
            keys = await self.source.list_keys(key_prefix, recursive=True)

        results = [await self.move_item(key, handle_existing) for key in keys]

        failed = sum(1 for result in results if not result.success)
        logger.info(f"Migration finished: {len(results) - failed} succeeded, {failed} failed")
        return results
