"""
Backend-agnostic transfer and move helpers.

Providers plug their own I/O into these functions so that chunked copying
and the copy-then-delete move sequence behave the same on every backend.
"""

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, BinaryIO

from cabinet.exceptions import BackendError
from cabinet.storage.progress import ProgressTracker
from cabinet.storage.results import BackendStatus, MoveResult

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def get_stream_size(stream: BinaryIO) -> int | None:
    """
    Bytes remaining from the current position of a seekable stream.

    Returns:
        Remaining size in bytes, or None if the stream cannot seek
    """
    try:
        if not stream.seekable():
            return None
        position = stream.tell()
        stream.seek(0, 2)  # Seek to end
        size = stream.tell() - position
        stream.seek(position)
        return size
    except (AttributeError, OSError, ValueError):
        return None


async def iter_chunks(source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield chunks from a sync or async ``read(n)`` source until EOF."""
    while True:
        chunk = source.read(chunk_size)
        if inspect.isawaitable(chunk):
            chunk = await chunk
        if not chunk:
            break
        yield chunk


async def copy_stream(
    source: Any,
    dest: Any,
    tracker: ProgressTracker,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """
    Copy ``source`` into the async writer ``dest``, reporting progress.

    Args:
        source: File-like object with a sync or async read(n)
        dest: Async file-like object (e.g. from aiofiles.open)
        tracker: Receives each chunk length
        chunk_size: Read size in bytes

    Returns:
        Total bytes copied
    """
    async for chunk in iter_chunks(source, chunk_size):
        await dest.write(chunk)
        tracker.update(len(chunk))
    return tracker.bytes_written


async def copy_then_delete(
    source_key: str,
    dest_key: str,
    copy: Callable[[], Awaitable[BackendStatus]],
    delete: Callable[[], Awaitable[BackendStatus]],
) -> MoveResult:
    """
    Move by copying to the destination, then deleting the source.

    The source is only deleted after the copy reports OK, so a failed copy
    never loses data. A delete that fails after a good copy leaves both
    items in place and is reported as a failure.

    Args:
        source_key: Caller-space source key (used in the result)
        dest_key: Caller-space destination key (used in the result)
        copy: Performs the copy, returns its status
        delete: Deletes the source, returns its status

    Returns:
        MoveResult describing the outcome
    """
    copy_status = await copy()
    if copy_status != BackendStatus.OK:
        logger.warning(f"Copy of '{source_key}' to '{dest_key}' failed: {copy_status.value}")
        return MoveResult.failed(
            source_key,
            dest_key,
            BackendError(
                f"Copy of '{source_key}' to '{dest_key}' failed",
                status=copy_status,
                key=source_key,
            ),
        )

    delete_status = await delete()
    if delete_status in (BackendStatus.OK, BackendStatus.NOT_FOUND):
        return MoveResult(source_key=source_key, dest_key=dest_key)

    logger.warning(
        f"Copied '{source_key}' to '{dest_key}' but source delete failed: {delete_status.value}"
    )
    return MoveResult.failed(
        source_key,
        dest_key,
        BackendError(
            f"Copied '{source_key}' to '{dest_key}' but could not delete the source",
            status=delete_status,
            key=source_key,
        ),
    )
