"""Shared exception classes for cabinet storage providers."""

from typing import Any


class CabinetError(Exception):
    """Base cabinet exception."""

    def __init__(
        self,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.detail = detail or {}
        super().__init__(self.message)


class InvalidArgumentError(CabinetError, ValueError):
    """A required argument (key, config, source) is missing or malformed."""

    def __init__(self, argument: str, message: str | None = None) -> None:
        self.argument = argument
        super().__init__(
            message=message or f"'{argument}' must not be empty",
            detail={"argument": argument},
        )


class ItemNotFoundError(CabinetError, FileNotFoundError):
    """Requested item does not exist (or is not visible to the caller)."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            message=f"Item with key '{key}' not found",
            detail={"key": key},
        )


class ItemAlreadyExistsError(CabinetError, FileExistsError):
    """Write target exists and the Throw policy was requested."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            message=f"Item with key '{key}' already exists",
            detail={"key": key},
        )


class PolicyNotImplementedError(CabinetError, NotImplementedError):
    """Existing-item policy branch is not supported for this operation."""

    def __init__(self, method: str, operation: str) -> None:
        self.method = method
        self.operation = operation
        super().__init__(
            message=f"Handle existing method '{method}' is not implemented for {operation}",
            detail={"method": method, "operation": operation},
        )


class BackendError(CabinetError):
    """Backend returned an unexpected status."""

    def __init__(
        self,
        message: str,
        status: Any = None,
        key: str | None = None,
    ) -> None:
        self.status = status
        self.key = key
        super().__init__(
            message=message,
            detail={"status": getattr(status, "value", status), "key": key},
        )

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} ({getattr(self.status, 'value', self.status)})"
        return self.message
