"""S3/MinIO storage provider."""

import logging
import tempfile
from collections.abc import AsyncIterator, Awaitable
from typing import Any, BinaryIO

import aioboto3
import aiofiles.os
from botocore.exceptions import BotoCoreError, ClientError

from cabinet.exceptions import BackendError, InvalidArgumentError, ItemNotFoundError
from cabinet.storage.base import StorageProvider
from cabinet.storage.configs import AmazonS3CabinetConfig
from cabinet.storage.keys import as_directory_prefix, in_namespace, is_blank, normalize_key, validate_key
from cabinet.storage.listing import fold_listing, search_prefix, to_caller_item
from cabinet.storage.policy import HandleExistingMethod
from cabinet.storage.progress import ProgressSink, ProgressTracker
from cabinet.storage.results import (
    BackendStatus,
    DeleteResult,
    ItemInfo,
    ItemType,
    MoveResult,
    SaveResult,
)
from cabinet.storage.transfer import DEFAULT_CHUNK_SIZE, copy_then_delete, get_stream_size, iter_chunks

logger = logging.getLogger(__name__)

# Downloads larger than this spill from memory to a temp file
DEFAULT_SPOOL_MAX_SIZE = 8 * 1024 * 1024

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}
FORBIDDEN_CODES = {"403", "AccessDenied", "Forbidden", "AllAccessDisabled"}
UNAUTHORIZED_CODES = {"401", "Unauthorized"}


def status_from_http(status_code: int | None) -> BackendStatus:
    """Map an HTTP status code to a BackendStatus."""
    if status_code is None:
        return BackendStatus.OTHER_ERROR
    if 200 <= status_code < 300:
        return BackendStatus.OK
    if status_code == 404:
        return BackendStatus.NOT_FOUND
    if status_code == 403:
        return BackendStatus.FORBIDDEN
    if status_code == 401:
        return BackendStatus.UNAUTHORIZED
    return BackendStatus.OTHER_ERROR


def status_from_response(response: dict) -> BackendStatus:
    """Status of a successful boto response (defaults to OK without metadata)."""
    return status_from_http(response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200))


def status_from_client_error(error: ClientError) -> BackendStatus:
    """Map a botocore ClientError to a BackendStatus."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    if code in NOT_FOUND_CODES:
        return BackendStatus.NOT_FOUND
    if code in FORBIDDEN_CODES:
        return BackendStatus.FORBIDDEN
    if code in UNAUTHORIZED_CODES:
        return BackendStatus.UNAUTHORIZED
    return status_from_http(error.response.get("ResponseMetadata", {}).get("HTTPStatusCode"))


class AmazonS3StorageProvider(StorageProvider[AmazonS3CabinetConfig]):
    """
    S3/MinIO storage provider.

    S3 has a flat namespace: hierarchy is simulated with the configured
    delimiter, and a move is a server-side copy followed by a delete of the
    source.
    """

    config_class = AmazonS3CabinetConfig

    def __init__(
        self,
        session: Any = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE,
    ):
        """
        Initialize S3 storage provider.

        Args:
            session: aioboto3 Session (a new one is created if not given)
            chunk_size: Read size in bytes when downloading
            spool_max_size: In-memory limit for downloaded streams
        """
        self._session = session or aioboto3.Session()
        self.chunk_size = chunk_size
        self.spool_max_size = spool_max_size

    @staticmethod
    def _get_client_kwargs(config: AmazonS3CabinetConfig) -> dict:
        """Build kwargs for S3 client."""
        kwargs = {
            "region_name": config.region,
        }
        if config.endpoint_url:
            kwargs["endpoint_url"] = config.endpoint_url
        if config.access_key_id and config.secret_access_key:
            kwargs["aws_access_key_id"] = config.access_key_id
            kwargs["aws_secret_access_key"] = config.secret_access_key
        return kwargs

    def _client(self, config: AmazonS3CabinetConfig):
        return self._session.client("s3", **self._get_client_kwargs(config))

    def _validate(self, key: str, config: AmazonS3CabinetConfig, name: str = "key") -> str:
        return validate_key(key, name, config.delimiter)

    @staticmethod
    def _effective_key(key: str, config: AmazonS3CabinetConfig) -> str:
        return normalize_key(key, config.key_prefix, config.delimiter)

    @staticmethod
    async def _call(operation: Awaitable[dict]) -> BackendStatus:
        """Await a boto call and reduce it to a BackendStatus."""
        try:
            return status_from_response(await operation)
        except ClientError as e:
            return status_from_client_error(e)
        except BotoCoreError as e:
            logger.warning(f"S3 request failed: {e}")
            return BackendStatus.OTHER_ERROR

    async def _head(self, key: str, config: AmazonS3CabinetConfig) -> tuple[BackendStatus, dict]:
        effective_key = self._effective_key(key, config)
        async with self._client(config) as s3:
            try:
                response = await s3.head_object(Bucket=config.bucket_name, Key=effective_key)
            except ClientError as e:
                return status_from_client_error(e), {}
            except BotoCoreError as e:
                raise BackendError(
                    f"Existence check for '{key}' failed",
                    status=BackendStatus.OTHER_ERROR,
                    key=key,
                ) from e
        return status_from_response(response), response

    async def exists(self, key: str, config: AmazonS3CabinetConfig) -> bool:
        config = self.validate_config(config)
        key = self._validate(key, config)

        status, _ = await self._head(key, config)
        if status == BackendStatus.OK:
            return True
        if status.is_missing:
            return False
        raise BackendError(f"Existence check for '{key}' failed", status=status, key=key)

    async def get_item(self, key: str, config: AmazonS3CabinetConfig) -> ItemInfo:
        config = self.validate_config(config)
        key = self._validate(key, config)

        status, response = await self._head(key, config)
        if status.is_missing:
            return ItemInfo(key=key, exists=False)
        if status != BackendStatus.OK:
            raise BackendError(f"Lookup of '{key}' failed", status=status, key=key)
        return ItemInfo(
            key=key,
            exists=True,
            item_type=ItemType.FILE,
            size=response.get("ContentLength"),
            last_modified_utc=response.get("LastModified"),
        )

    @staticmethod
    def _object_to_item(obj: dict) -> ItemInfo:
        return ItemInfo(
            key=obj["Key"],
            exists=True,
            item_type=ItemType.FILE,
            size=obj.get("Size"),
            last_modified_utc=obj.get("LastModified"),
        )

    async def iter_items(
        self,
        config: AmazonS3CabinetConfig,
        key_prefix: str = "",
        recursive: bool = True,
    ) -> AsyncIterator[ItemInfo]:
        config = self.validate_config(config)
        delimiter = config.delimiter
        prefix = search_prefix(key_prefix, config.key_prefix, delimiter)

        # Without a delimiter S3 returns the whole prefix closure; with one
        # it folds deeper keys into CommonPrefixes.
        request: dict[str, Any] = {"Bucket": config.bucket_name}
        if recursive:
            request["Prefix"] = prefix
        else:
            prefix = as_directory_prefix(prefix, delimiter)
            request["Prefix"] = prefix
            request["Delimiter"] = delimiter

        seen_directories: set[str] = set()
        async with self._client(config) as s3:
            while True:
                try:
                    response = await s3.list_objects_v2(**request)
                except ClientError as e:
                    status = status_from_client_error(e)
                    if status == BackendStatus.NOT_FOUND:
                        return
                    raise BackendError(f"Listing '{prefix}' failed", status=status) from e
                except BotoCoreError as e:
                    raise BackendError(
                        f"Listing '{prefix}' failed", status=BackendStatus.OTHER_ERROR
                    ) from e

                items = [self._object_to_item(obj) for obj in response.get("Contents", [])]
                if not recursive:
                    items.extend(
                        ItemInfo(key=cp["Prefix"], exists=True, item_type=ItemType.DIRECTORY)
                        for cp in response.get("CommonPrefixes", [])
                    )
                    items.sort(key=lambda item: item.key)
                    items = list(fold_listing(items, prefix, delimiter, seen_directories))

                for item in items:
                    if in_namespace(item.key, config.key_prefix, delimiter):
                        yield to_caller_item(item, config.key_prefix, delimiter)

                if not response.get("IsTruncated"):
                    break
                request["ContinuationToken"] = response["NextContinuationToken"]

    async def open_read_stream(self, key: str, config: AmazonS3CabinetConfig) -> BinaryIO:
        config = self.validate_config(config)
        key = self._validate(key, config)
        effective_key = self._effective_key(key, config)

        async with self._client(config) as s3:
            try:
                response = await s3.get_object(Bucket=config.bucket_name, Key=effective_key)
            except ClientError as e:
                status = status_from_client_error(e)
                if status.is_missing:
                    raise ItemNotFoundError(key) from e
                raise BackendError(f"Read of '{key}' failed", status=status, key=key) from e

            spooled = tempfile.SpooledTemporaryFile(max_size=self.spool_max_size)
            try:
                async for chunk in iter_chunks(response["Body"], self.chunk_size):
                    spooled.write(chunk)
            except Exception:
                spooled.close()
                raise

        spooled.seek(0)
        return spooled

    async def save_file(
        self,
        key: str,
        file_path: str,
        handle_existing: HandleExistingMethod,
        progress: ProgressSink | None,
        config: AmazonS3CabinetConfig,
    ) -> SaveResult:
        config = self.validate_config(config)
        key = self._validate(key, config)
        if is_blank(file_path):
            raise InvalidArgumentError("file_path")

        result = await self.check_save_policy(key, handle_existing, config)
        if result is not None:
            return result

        effective_key = self._effective_key(key, config)
        try:
            total = await aiofiles.os.path.getsize(file_path)
            tracker = ProgressTracker(key, progress, total)
            async with self._client(config) as s3:
                await s3.upload_file(
                    file_path,
                    config.bucket_name,
                    effective_key,
                    Callback=tracker,
                )
        except (ClientError, BotoCoreError, OSError) as e:
            logger.warning(f"Failed to upload '{file_path}' as '{effective_key}': {e}")
            return SaveResult.failed(key, e)

        logger.info(f"Uploaded {tracker.bytes_written} bytes to s3://{config.bucket_name}/{effective_key}")
        return SaveResult(key=key)

    async def save_stream(
        self,
        key: str,
        stream: BinaryIO,
        handle_existing: HandleExistingMethod,
        progress: ProgressSink | None,
        config: AmazonS3CabinetConfig,
    ) -> SaveResult:
        config = self.validate_config(config)
        key = self._validate(key, config)
        if stream is None:
            raise InvalidArgumentError("stream")

        result = await self.check_save_policy(key, handle_existing, config)
        if result is not None:
            return result

        effective_key = self._effective_key(key, config)
        tracker = ProgressTracker(key, progress, get_stream_size(stream))
        try:
            async with self._client(config) as s3:
                await s3.upload_fileobj(
                    stream,
                    config.bucket_name,
                    effective_key,
                    Callback=tracker,
                )
        except (ClientError, BotoCoreError, OSError) as e:
            logger.warning(f"Failed to upload stream as '{effective_key}': {e}")
            return SaveResult.failed(key, e)

        logger.info(f"Uploaded {tracker.bytes_written} bytes to s3://{config.bucket_name}/{effective_key}")
        return SaveResult(key=key)

    async def move(
        self,
        source_key: str,
        dest_key: str,
        handle_existing: HandleExistingMethod,
        config: AmazonS3CabinetConfig,
    ) -> MoveResult:
        config = self.validate_config(config)
        source_key = self._validate(source_key, config, "source_key")
        dest_key = self._validate(dest_key, config, "dest_key")

        result = await self.check_move_policy(source_key, dest_key, handle_existing, config)
        if result is not None:
            return result

        bucket = config.bucket_name
        effective_source = self._effective_key(source_key, config)
        effective_dest = self._effective_key(dest_key, config)

        async with self._client(config) as s3:
            result = await copy_then_delete(
                source_key,
                dest_key,
                copy=lambda: self._call(
                    s3.copy_object(
                        Bucket=bucket,
                        Key=effective_dest,
                        CopySource={"Bucket": bucket, "Key": effective_source},
                    )
                ),
                delete=lambda: self._call(s3.delete_object(Bucket=bucket, Key=effective_source)),
            )

        if result.success:
            logger.info(f"Moved s3://{bucket}/{effective_source} to s3://{bucket}/{effective_dest}")
        return result

    async def delete(self, key: str, config: AmazonS3CabinetConfig) -> DeleteResult:
        config = self.validate_config(config)
        key = self._validate(key, config)
        effective_key = self._effective_key(key, config)

        async with self._client(config) as s3:
            status = await self._call(s3.delete_object(Bucket=config.bucket_name, Key=effective_key))

        if status in (BackendStatus.OK, BackendStatus.NOT_FOUND):
            logger.info(f"Deleted s3://{config.bucket_name}/{effective_key}")
            return DeleteResult(key=key)

        logger.warning(f"Failed to delete s3://{config.bucket_name}/{effective_key}: {status.value}")
        return DeleteResult(
            key=key,
            success=False,
            exception=BackendError(f"Delete of '{key}' failed", status=status, key=key),
        )
