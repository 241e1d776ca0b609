"""
Pytest configuration and fixtures.

Provides reusable fixtures for provider testing:
- fs_config / fs_provider: Local disk cabinet rooted in a temp directory
- mock_s3_client: AsyncMock-backed stand-in for an aioboto3 S3 client
- mock_session: aioboto3-like session whose client() yields mock_s3_client
- s3_provider / s3_config: S3 provider wired to the mock session
- make_client_error: Factory for botocore ClientError instances
"""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError

from cabinet.storage.configs import AmazonS3CabinetConfig, FileSystemCabinetConfig
from cabinet.storage.local import FileSystemStorageProvider
from cabinet.storage.s3 import AmazonS3StorageProvider

VALID_BUCKET_NAME = "bucket-name"
VALID_FILE_KEY = "key"


# =============================================================================
# Local Disk Fixtures
# =============================================================================


@pytest.fixture
def cabinet_root(tmp_path: Path) -> Path:
    """Root directory for the local cabinet."""
    return tmp_path / "cabinet"


@pytest.fixture
def fs_config(cabinet_root: Path) -> FileSystemCabinetConfig:
    return FileSystemCabinetConfig(directory=str(cabinet_root), create_if_not_exists=True)


@pytest.fixture
def fs_provider() -> FileSystemStorageProvider:
    # Small chunks so progress is reported more than once
    return FileSystemStorageProvider(chunk_size=4)


@pytest.fixture
def write_file(cabinet_root: Path) -> Callable[[str, bytes], Path]:
    """Create a file directly under the cabinet root."""

    def _write(key: str, content: bytes = b"abc") -> Path:
        path = cabinet_root.joinpath(*key.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _write


# =============================================================================
# S3 Fixtures
# =============================================================================


@pytest.fixture
def make_client_error() -> Callable[..., ClientError]:
    """Factory for botocore ClientError with a code and HTTP status."""

    def _create(code: str, http_status: int, operation: str = "HeadObject") -> ClientError:
        return ClientError(
            {
                "Error": {"Code": code, "Message": code},
                "ResponseMetadata": {"HTTPStatusCode": http_status},
            },
            operation,
        )

    return _create


@pytest.fixture
def mock_s3_client() -> MagicMock:
    """S3 client with async operations."""
    client = MagicMock()
    client.head_object = AsyncMock(
        return_value={"ResponseMetadata": {"HTTPStatusCode": 200}, "ContentLength": 3}
    )
    client.get_object = AsyncMock()
    client.list_objects_v2 = AsyncMock(
        return_value={"ResponseMetadata": {"HTTPStatusCode": 200}, "IsTruncated": False}
    )
    client.copy_object = AsyncMock(return_value={"ResponseMetadata": {"HTTPStatusCode": 200}})
    client.delete_object = AsyncMock(return_value={"ResponseMetadata": {"HTTPStatusCode": 204}})
    client.upload_file = AsyncMock(return_value=None)
    client.upload_fileobj = AsyncMock(return_value=None)
    return client


@pytest.fixture
def mock_session(mock_s3_client: MagicMock) -> MagicMock:
    """aioboto3-like session: ``async with session.client("s3") as s3``."""
    session = MagicMock()
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=mock_s3_client)
    context.__aexit__ = AsyncMock(return_value=False)
    session.client.return_value = context
    return session


@pytest.fixture
def s3_provider(mock_session: MagicMock) -> AmazonS3StorageProvider:
    return AmazonS3StorageProvider(session=mock_session, chunk_size=4)


@pytest.fixture
def s3_config() -> AmazonS3CabinetConfig:
    return AmazonS3CabinetConfig(bucket_name=VALID_BUCKET_NAME, region="ap-southeast-2")


@pytest.fixture
def make_s3_config() -> Callable[..., AmazonS3CabinetConfig]:
    """S3 config with an optional key prefix."""

    def _create(key_prefix: str | None = None, bucket_name: str = VALID_BUCKET_NAME) -> AmazonS3CabinetConfig:
        return AmazonS3CabinetConfig(
            bucket_name=bucket_name,
            region="ap-southeast-2",
            key_prefix=key_prefix,
        )

    return _create
