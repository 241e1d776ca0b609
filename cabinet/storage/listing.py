"""
Listing helpers.

Reconciles the hierarchical view callers expect with backends that only
know flat keys: recursive listings return every key under a prefix, direct
listings return one level and fold deeper keys into directory markers.
"""

from collections.abc import Iterable, Iterator
from dataclasses import replace

from cabinet.storage.keys import DEFAULT_DELIMITER, is_blank, normalize_key, strip_key_prefix
from cabinet.storage.results import ItemInfo, ItemType


def search_prefix(
    key_prefix: str | None,
    config_prefix: str | None = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """
    Effective backend prefix for a listing.

    A blank key prefix means "root", which is the configured prefix (or the
    whole namespace when none is configured).
    """
    key_prefix = "" if is_blank(key_prefix) else key_prefix.lstrip(delimiter)
    return normalize_key(key_prefix, config_prefix, delimiter)


def is_direct_child(key: str, directory_prefix: str, delimiter: str = DEFAULT_DELIMITER) -> bool:
    """True when no delimiter occurs between ``directory_prefix`` and the end of ``key``."""
    if not key.startswith(directory_prefix):
        return False
    remainder = key[len(directory_prefix):]
    return bool(remainder) and delimiter not in remainder


def fold_listing(
    items: Iterable[ItemInfo],
    directory_prefix: str,
    delimiter: str = DEFAULT_DELIMITER,
    seen_directories: set[str] | None = None,
) -> Iterator[ItemInfo]:
    """
    Reduce a flat listing to the direct children of ``directory_prefix``.

    Direct-child files pass through unchanged. Anything deeper, and any
    directory entry (e.g. an S3 common prefix ``bar/``), collapses into a
    single Directory item named after the first path segment below the
    prefix. Keys are effective (backend) keys.

    Args:
        items: Entries in backend order
        directory_prefix: Listing root, empty or ending with the delimiter
        delimiter: Hierarchy separator
        seen_directories: Shared across pages to avoid duplicate markers

    Yields:
        File and Directory items one level below the prefix
    """
    if seen_directories is None:
        seen_directories = set()

    for item in items:
        if not item.key.startswith(directory_prefix):
            continue
        remainder = item.key[len(directory_prefix):]
        if not remainder:
            # Placeholder object for the directory itself
            continue

        if item.item_type == ItemType.FILE and is_direct_child(item.key, directory_prefix, delimiter):
            yield item
            continue

        directory_key = directory_prefix + remainder.partition(delimiter)[0]
        if directory_key in seen_directories:
            continue
        seen_directories.add(directory_key)
        yield ItemInfo(key=directory_key, exists=True, item_type=ItemType.DIRECTORY)


def to_caller_item(
    item: ItemInfo,
    config_prefix: str | None = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> ItemInfo:
    """Re-express an item's key in the caller's key space."""
    key = strip_key_prefix(item.key, config_prefix, delimiter)
    if item.item_type == ItemType.DIRECTORY:
        key = key.rstrip(delimiter)
    return replace(item, key=key)
