"""
Tests for CabinetMigrator.

Covers moves between two local cabinets and between local disk and a
mocked S3 bucket in both directions.
"""

import io

import pytest

from cabinet import CabinetMigrator, FileCabinet, all_succeeded
from cabinet.exceptions import BackendError, InvalidArgumentError, ItemAlreadyExistsError, ItemNotFoundError
from cabinet.storage.configs import FileSystemCabinetConfig
from cabinet.storage.policy import HandleExistingMethod

BUCKET = "bucket-name"


class FakeBody:
    """Async streaming body, like aiobotocore's."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


@pytest.fixture
def archive_root(tmp_path):
    return tmp_path / "archive"


@pytest.fixture
def local_cabinet(fs_provider, fs_config) -> FileCabinet:
    return FileCabinet(fs_provider, fs_config)


@pytest.fixture
def archive_cabinet(fs_provider, archive_root) -> FileCabinet:
    return FileCabinet(fs_provider, FileSystemCabinetConfig(directory=str(archive_root), create_if_not_exists=True))


@pytest.fixture
def s3_cabinet(s3_provider, make_s3_config) -> FileCabinet:
    return FileCabinet(s3_provider, make_s3_config(key_prefix="folder"))


# =============================================================================
# Test: Local To Local
# =============================================================================


class TestLocalToLocal:
    """Moves between two local directories."""

    @pytest.mark.asyncio
    async def test_migrate_prefix(self, local_cabinet, archive_cabinet, write_file, archive_root, cabinet_root):
        write_file("docs/a.txt", b"first")
        write_file("docs/sub/b.txt", b"second")
        write_file("keep.txt", b"stays")

        results = await CabinetMigrator(local_cabinet, archive_cabinet).migrate(key_prefix="docs")

        assert sorted((r.source_key, r.dest_key) for r in results) == [
            ("docs/a.txt", "docs/a.txt"),
            ("docs/sub/b.txt", "docs/sub/b.txt"),
        ]
        assert all_succeeded(results) is True
        assert (archive_root / "docs" / "a.txt").read_bytes() == b"first"
        assert (archive_root / "docs" / "sub" / "b.txt").read_bytes() == b"second"
        assert await local_cabinet.list_keys() == ["keep.txt"]

    @pytest.mark.asyncio
    async def test_migrate_explicit_keys(self, local_cabinet, archive_cabinet, write_file):
        write_file("a.txt")
        write_file("b.txt")

        results = await CabinetMigrator(local_cabinet, archive_cabinet).migrate(keys=["b.txt"])

        assert [r.source_key for r in results] == ["b.txt"]
        assert await local_cabinet.list_keys() == ["a.txt"]
        assert await archive_cabinet.list_keys() == ["b.txt"]

    @pytest.mark.asyncio
    async def test_throw_on_existing_keeps_both(self, local_cabinet, archive_cabinet, write_file, archive_root):
        write_file("a.txt", b"new")
        await archive_cabinet.save_stream("a.txt", io.BytesIO(b"old"))

        result = await CabinetMigrator(local_cabinet, archive_cabinet).move_item("a.txt")

        assert result.success is False
        assert result.already_exists is True
        assert isinstance(result.exception, ItemAlreadyExistsError)
        assert await local_cabinet.exists("a.txt") is True
        assert (archive_root / "a.txt").read_bytes() == b"old"

    @pytest.mark.asyncio
    async def test_skip_on_existing_keeps_source(self, local_cabinet, archive_cabinet, write_file, archive_root):
        write_file("a.txt", b"new")
        await archive_cabinet.save_stream("a.txt", io.BytesIO(b"old"))

        result = await CabinetMigrator(local_cabinet, archive_cabinet).move_item("a.txt", HandleExistingMethod.SKIP)

        assert result.success is True
        assert result.already_exists is True
        assert await local_cabinet.exists("a.txt") is True
        assert (archive_root / "a.txt").read_bytes() == b"old"

    @pytest.mark.asyncio
    async def test_overwrite_replaces_destination(self, local_cabinet, archive_cabinet, write_file, archive_root):
        write_file("a.txt", b"new")
        await archive_cabinet.save_stream("a.txt", io.BytesIO(b"old"))

        result = await CabinetMigrator(local_cabinet, archive_cabinet).move_item(
            "a.txt", HandleExistingMethod.OVERWRITE
        )

        assert result.success is True
        assert await local_cabinet.exists("a.txt") is False
        assert (archive_root / "a.txt").read_bytes() == b"new"

    @pytest.mark.asyncio
    async def test_missing_source_is_failed_result(self, local_cabinet, archive_cabinet):
        result = await CabinetMigrator(local_cabinet, archive_cabinet).move_item("missing.txt")

        assert result.success is False
        assert isinstance(result.exception, ItemNotFoundError)
        assert await archive_cabinet.list_keys() == []

    @pytest.mark.asyncio
    async def test_blank_key_raises(self, local_cabinet, archive_cabinet):
        with pytest.raises(InvalidArgumentError):
            await CabinetMigrator(local_cabinet, archive_cabinet).move_item(" ")

    @pytest.mark.asyncio
    async def test_empty_source(self, local_cabinet, archive_cabinet):
        assert await CabinetMigrator(local_cabinet, archive_cabinet).migrate() == []


# =============================================================================
# Test: Local To S3
# =============================================================================


class TestLocalToS3:
    """Draining a local directory into a bucket."""

    @pytest.mark.asyncio
    async def test_upload_then_delete_local(self, local_cabinet, s3_cabinet, write_file, mock_s3_client):
        write_file("uploads/a.txt", b"abc")

        results = await CabinetMigrator(local_cabinet, s3_cabinet).migrate(
            key_prefix="uploads", handle_existing=HandleExistingMethod.OVERWRITE
        )

        assert all_succeeded(results) is True
        args = mock_s3_client.upload_fileobj.await_args.args
        assert args[1:] == (BUCKET, "folder/uploads/a.txt")
        assert await local_cabinet.list_keys() == []

    @pytest.mark.asyncio
    async def test_failed_upload_keeps_local(
        self, local_cabinet, s3_cabinet, write_file, mock_s3_client, make_client_error
    ):
        write_file("a.txt")
        mock_s3_client.upload_fileobj.side_effect = make_client_error("AccessDenied", 403, "PutObject")

        result = await CabinetMigrator(local_cabinet, s3_cabinet).move_item("a.txt", HandleExistingMethod.OVERWRITE)

        assert result.success is False
        assert await local_cabinet.exists("a.txt") is True

    @pytest.mark.asyncio
    async def test_failed_destination_check_keeps_local(
        self, local_cabinet, s3_cabinet, write_file, mock_s3_client, make_client_error
    ):
        write_file("a.txt")
        mock_s3_client.head_object.side_effect = make_client_error("InternalError", 500)

        result = await CabinetMigrator(local_cabinet, s3_cabinet).move_item("a.txt", HandleExistingMethod.THROW)

        assert result.success is False
        assert isinstance(result.exception, BackendError)
        mock_s3_client.upload_fileobj.assert_not_called()
        assert await local_cabinet.exists("a.txt") is True


# =============================================================================
# Test: S3 To Local
# =============================================================================


class TestS3ToLocal:
    """Pulling bucket objects down to disk."""

    @pytest.mark.asyncio
    async def test_download_then_delete_object(self, s3_cabinet, archive_cabinet, mock_s3_client, archive_root):
        mock_s3_client.list_objects_v2.return_value = {
            "ResponseMetadata": {"HTTPStatusCode": 200},
            "IsTruncated": False,
            "Contents": [{"Key": "folder/reports/q1.csv", "Size": 5}],
        }
        mock_s3_client.get_object.return_value = {"Body": FakeBody(b"a,b,c")}

        results = await CabinetMigrator(s3_cabinet, archive_cabinet).migrate()

        assert [r.source_key for r in results] == ["reports/q1.csv"]
        assert all_succeeded(results) is True
        assert (archive_root / "reports" / "q1.csv").read_bytes() == b"a,b,c"
        mock_s3_client.get_object.assert_awaited_once_with(Bucket=BUCKET, Key="folder/reports/q1.csv")
        mock_s3_client.delete_object.assert_awaited_once_with(Bucket=BUCKET, Key="folder/reports/q1.csv")

    @pytest.mark.asyncio
    async def test_failed_source_delete_is_failed_result(
        self, s3_cabinet, archive_cabinet, mock_s3_client, make_client_error, archive_root
    ):
        mock_s3_client.get_object.return_value = {"Body": FakeBody(b"data")}
        mock_s3_client.delete_object.side_effect = make_client_error("AccessDenied", 403, "DeleteObject")

        result = await CabinetMigrator(s3_cabinet, archive_cabinet).move_item("a.txt")

        assert result.success is False
        assert "could not delete it from the source" in result.error_message
        assert (archive_root / "a.txt").read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_missing_object_is_failed_result(
        self, s3_cabinet, archive_cabinet, mock_s3_client, make_client_error
    ):
        mock_s3_client.get_object.side_effect = make_client_error("NoSuchKey", 404, "GetObject")

        result = await CabinetMigrator(s3_cabinet, archive_cabinet).move_item("gone.txt")

        assert result.success is False
        assert isinstance(result.exception, ItemNotFoundError)
        mock_s3_client.delete_object.assert_not_called()
