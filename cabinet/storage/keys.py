"""
Key normalization.

Keys are slash-delimited logical paths. A configured key prefix acts as a
namespace root: every key a caller passes is joined onto it before hitting the
backend, and every key a backend returns has it stripped back off.
"""

from cabinet.exceptions import InvalidArgumentError

DEFAULT_DELIMITER = "/"


def is_blank(value: str | None) -> bool:
    """True for None, empty, or whitespace-only strings."""
    return value is None or not value.strip()


def validate_key(key: str | None, name: str = "key", delimiter: str = DEFAULT_DELIMITER) -> str:
    """
    Validate a key for a single-item operation.

    Args:
        key: Raw key from the caller
        name: Argument name used in the error
        delimiter: Separator stripped from the start of the key

    Returns:
        Canonical key without leading delimiters

    Raises:
        InvalidArgumentError: If the key is None, empty or whitespace-only
    """
    if is_blank(key):
        raise InvalidArgumentError(name)

    canonical = key.lstrip(delimiter)
    if is_blank(canonical):
        raise InvalidArgumentError(name, f"'{name}' must name an item, got '{key}'")
    return canonical


def normalize_key(
    key: str | None,
    key_prefix: str | None = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """
    Join a key onto the configured prefix.

    An empty key resolves to the bare prefix, which is how list operations
    address the configured root.

    Examples:
        >>> normalize_key("test-key", "folder")
        'folder/test-key'
        >>> normalize_key("test-key", "folder/")
        'folder/test-key'
        >>> normalize_key("test-key", None)
        'test-key'
    """
    key = key or ""
    if is_blank(key_prefix):
        return key

    prefix = key_prefix.rstrip(delimiter)
    key = key.lstrip(delimiter)
    if not key:
        return prefix
    if not prefix:
        return key
    return f"{prefix}{delimiter}{key}"


def strip_key_prefix(
    effective_key: str,
    key_prefix: str | None = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """Inverse of normalize_key: express a backend key in the caller's key space."""
    if is_blank(key_prefix):
        return effective_key

    prefix = key_prefix.rstrip(delimiter)
    if not prefix:
        return effective_key
    if effective_key == prefix:
        return ""
    if effective_key.startswith(prefix + delimiter):
        return effective_key[len(prefix) + len(delimiter):]
    return effective_key


def as_directory_prefix(prefix: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Terminate a non-empty prefix with exactly one delimiter."""
    if not prefix:
        return ""
    return prefix.rstrip(delimiter) + delimiter


def in_namespace(
    effective_key: str,
    key_prefix: str | None = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> bool:
    """True when a backend key names an item strictly below the configured prefix."""
    if is_blank(key_prefix):
        return True
    prefix = key_prefix.rstrip(delimiter)
    if not prefix:
        return True
    root = prefix + delimiter
    return effective_key.startswith(root) and len(effective_key) > len(root)
