"""Item info and operation result types shared by all storage providers."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from cabinet.exceptions import InvalidArgumentError


class ItemType(str, Enum):
    """Kind of item returned from a listing or lookup."""

    FILE = "file"
    DIRECTORY = "directory"


class BackendStatus(str, Enum):
    """Backend-neutral outcome of a single backend call."""

    OK = "ok"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    OTHER_ERROR = "other_error"

    @property
    def is_missing(self) -> bool:
        """True for the statuses that read as "item does not exist"."""
        return self in (
            BackendStatus.NOT_FOUND,
            BackendStatus.FORBIDDEN,
            BackendStatus.UNAUTHORIZED,
        )


@dataclass(eq=False)
class ItemInfo:
    """Information about a stored item. Compared by key only."""

    key: str
    exists: bool = True
    item_type: ItemType = ItemType.FILE
    size: int | None = None
    last_modified_utc: datetime | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ItemInfo):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass
class SaveResult:
    """Outcome of a save operation."""

    key: str
    success: bool = True
    already_exists: bool = False
    exception: BaseException | None = field(default=None, repr=False)
    message: str | None = None

    @classmethod
    def failed(
        cls,
        key: str,
        exception: BaseException | None = None,
        message: str | None = None,
    ) -> "SaveResult":
        return cls(key=key, success=False, exception=exception, message=message)

    @property
    def error_message(self) -> str | None:
        if self.message:
            return self.message
        return str(self.exception) if self.exception is not None else None


@dataclass
class MoveResult:
    """Outcome of a move operation."""

    source_key: str
    dest_key: str
    success: bool = True
    already_exists: bool = False
    exception: BaseException | None = field(default=None, repr=False)
    message: str | None = None

    def __post_init__(self) -> None:
        if not self.source_key or not self.source_key.strip():
            raise InvalidArgumentError("source_key")
        if not self.dest_key or not self.dest_key.strip():
            raise InvalidArgumentError("dest_key")

    @classmethod
    def failed(
        cls,
        source_key: str,
        dest_key: str,
        exception: BaseException | None = None,
        message: str | None = None,
    ) -> "MoveResult":
        return cls(
            source_key=source_key,
            dest_key=dest_key,
            success=False,
            exception=exception,
            message=message,
        )

    @property
    def error_message(self) -> str | None:
        if self.message:
            return self.message
        return str(self.exception) if self.exception is not None else None


@dataclass
class DeleteResult:
    """Outcome of a delete operation."""

    key: str
    success: bool = True
    exception: BaseException | None = field(default=None, repr=False)
    message: str | None = None

    @property
    def error_message(self) -> str | None:
        if self.message:
            return self.message
        return str(self.exception) if self.exception is not None else None
