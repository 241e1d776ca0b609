"""Cabinet configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Default cabinet settings loaded from environment variables.

    Environment variables use the CABINET_ prefix, e.g. CABINET_BACKEND,
    CABINET_S3_BUCKET, CABINET_LOCAL_ROOT.
    """

    model_config = SettingsConfigDict(
        env_prefix="CABINET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend selection
    backend: Literal["FileSystem", "AmazonS3"] = "FileSystem"

    # Local disk
    local_root: str = "./cabinet"
    local_create_if_not_exists: bool = True

    # S3/MinIO
    s3_bucket: str = ""
    s3_endpoint_url: str | None = None  # Set for MinIO, None for AWS S3
    s3_region: str = "us-east-1"
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_key_prefix: str | None = None
    s3_delimiter: str = "/"

    # Transfers
    transfer_chunk_size: int = Field(
        default=64 * 1024,
        description="Chunk size in bytes for streamed reads and writes",
        ge=1024,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
