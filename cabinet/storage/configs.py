"""
Backend configuration objects.

Configs are immutable once created; providers receive one per call.
"""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CabinetConfig(BaseModel):
    """Common base for provider configs."""

    model_config = ConfigDict(frozen=True)

    provider_type: ClassVar[str]


class FileSystemCabinetConfig(CabinetConfig):
    """Local disk cabinet rooted at ``directory``."""

    provider_type: ClassVar[str] = "FileSystem"

    directory: str = Field(..., min_length=1, description="Root directory for all keys")
    create_if_not_exists: bool = Field(
        default=False,
        description="Create the root directory on first use",
    )

    @field_validator("directory")
    @classmethod
    def _directory_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("directory must not be blank")
        return value


class AmazonS3CabinetConfig(CabinetConfig):
    """S3 (or S3-compatible, e.g. MinIO) cabinet."""

    provider_type: ClassVar[str] = "AmazonS3"

    bucket_name: str = Field(..., min_length=1, description="S3 bucket name")
    region: str = Field(default="us-east-1", description="AWS region")
    endpoint_url: str | None = Field(
        default=None,
        description="Custom endpoint URL for MinIO (None for AWS S3)",
    )
    access_key_id: str | None = Field(
        default=None,
        description="AWS access key (optional, uses env/IAM if not set)",
    )
    secret_access_key: str | None = Field(
        default=None,
        description="AWS secret key (optional, uses env/IAM if not set)",
    )
    key_prefix: str | None = Field(
        default=None,
        description="Namespace root prepended to every key",
    )
    delimiter: str = Field(default="/", min_length=1, description="Hierarchy separator")
