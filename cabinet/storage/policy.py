"""Existing-item conflict policy shared by save and move."""

from collections.abc import Iterable
from enum import Enum

from cabinet.exceptions import PolicyNotImplementedError


class HandleExistingMethod(str, Enum):
    """What to do when a write target already exists."""

    OVERWRITE = "overwrite"
    SKIP = "skip"
    THROW = "throw"


class ExistingItemAction(str, Enum):
    """Decision for a single write."""

    PROCEED = "proceed"
    SKIP = "skip"
    FAIL = "fail"


def needs_existence_check(method: HandleExistingMethod) -> bool:
    """Overwrite never looks at the target, so it can skip the existence check."""
    return method != HandleExistingMethod.OVERWRITE


def resolve_existing(exists: bool, method: HandleExistingMethod) -> ExistingItemAction:
    """
    Decide whether a write proceeds, is skipped, or fails.

    Args:
        exists: Whether the target currently exists
        method: Requested policy

    Returns:
        ExistingItemAction for the write
    """
    if not exists or method == HandleExistingMethod.OVERWRITE:
        return ExistingItemAction.PROCEED
    if method == HandleExistingMethod.SKIP:
        return ExistingItemAction.SKIP
    if method == HandleExistingMethod.THROW:
        return ExistingItemAction.FAIL
    raise PolicyNotImplementedError(str(method), "resolve_existing")


def ensure_supported(
    method: HandleExistingMethod,
    supported: Iterable[HandleExistingMethod],
    operation: str,
) -> None:
    """Raise PolicyNotImplementedError for a branch the operation does not implement."""
    if method not in tuple(supported):
        raise PolicyNotImplementedError(HandleExistingMethod(method).value, operation)
