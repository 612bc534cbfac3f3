"""Database models and upload descriptors for the asset vault."""
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

TITLE_MAX_LENGTH = 128
DESCRIPTION_MAX_LENGTH = 1024
UPLOADER_MAX_LENGTH = 400
TAG_MAX_LENGTH = 64


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Asset(SQLModel, table=True):
    """An uploaded image, identified by the SHA-256 of its original bytes."""
    id: str = Field(primary_key=True, max_length=64, description="SHA-256 hex digest")
    title: Optional[str] = Field(default=None, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    uploader: str = Field(max_length=UPLOADER_MAX_LENGTH)
    uploaded: datetime = Field(default_factory=utcnow)
    edited: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )


class AssetTag(SQLModel, table=True):
    """Free-form tag attached to an asset. Rows are append-only."""
    __table_args__ = (UniqueConstraint("image_id", "tag_name"),)

    tag_id: Optional[int] = Field(default=None, primary_key=True)
    image_id: str = Field(foreign_key="asset.id", index=True, max_length=64)
    tag_name: str = Field(max_length=TAG_MAX_LENGTH)


class AssetListing(SQLModel):
    """Asset row plus its tags joined with commas."""
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    uploader: str
    uploaded: datetime
    edited: datetime
    tags: Optional[str] = None


class TransportStatus(IntEnum):
    """Upload outcome reported by the transport layer."""
    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8


class UploadDescriptor(SQLModel):
    """What any transport (multipart form, CLI, RPC) hands to the validator."""
    transport_status: int = TransportStatus.OK
    temporary_path: Optional[Path] = None
    original_name: Optional[str] = None
    declared_size: Optional[int] = None
