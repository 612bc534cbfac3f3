"""Upload validation, run before any image processing."""
import hashlib
import logging
from pathlib import Path
from typing import Callable, NamedTuple

from codec import detect_mime_type
from config import VaultConfig
from errors import (
    DuplicateAssetError,
    FileTooLargeError,
    InvalidMimeTypeError,
    TransportError,
    ValidationError,
)
from models import TransportStatus, UploadDescriptor

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = (
    "image/gif",
    "image/jpeg",
    "image/png",
    "image/bmp",
    "image/webp",
)

TRANSPORT_ERRORS = {
    TransportStatus.INI_SIZE: "The uploaded file exceeds the server max file size.",
    TransportStatus.FORM_SIZE: "The uploaded file exceeds the HTML form max file size.",
    TransportStatus.PARTIAL: "The uploaded file was only partially uploaded.",
    TransportStatus.NO_FILE: "No file was uploaded.",
    TransportStatus.NO_TMP_DIR: "Missing a temporary folder.",
    TransportStatus.CANT_WRITE: "Failed to write file to disk.",
    TransportStatus.EXTENSION: "An extension stopped the file upload.",
}
UNKNOWN_TRANSPORT_ERROR = "Unknown error on file upload."


class ValidatedUpload(NamedTuple):
    content_hash: str
    mime_type: str
    path: Path
    size: int


def sha256sum(path: Path, chunk: int = 256 * 1024) -> str:
    """Calculate SHA-256 hash of a file."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            b = f.read(chunk)
            if not b:
                break
            h.update(b)
    return h.hexdigest()


def check_transport(status: int) -> None:
    if status == TransportStatus.OK:
        return
    raise TransportError(TRANSPORT_ERRORS.get(status, UNKNOWN_TRANSPORT_ERROR))


def validate_upload(
    upload: UploadDescriptor,
    config: VaultConfig,
    exists: Callable[[str], bool],
) -> ValidatedUpload:
    """Check an upload in order, failing on the first problem.

    ``exists`` answers whether an asset with the given hash is already
    stored. The duplicate check runs before MIME sniffing, so a repeated
    upload is reported as a duplicate even when its type is unsupported.
    """
    check_transport(upload.transport_status)

    if not upload.temporary_path:
        raise ValidationError("No file upload detected.")
    path = Path(upload.temporary_path)
    if not path.is_file():
        raise ValidationError("Temporary upload file not found.")

    size = path.stat().st_size
    if size == 0:
        raise ValidationError("Zero-size file uploaded.")
    if size > config.max_filesize_bytes:
        raise FileTooLargeError("File is larger than image upload limit.")

    content_hash = sha256sum(path)
    if exists(content_hash):
        raise DuplicateAssetError(content_hash)

    mime_type = detect_mime_type(path)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidMimeTypeError(mime_type)

    logger.debug(
        "validated upload %s (%s, %d bytes) as %s",
        upload.original_name, mime_type, size, content_hash,
    )
    return ValidatedUpload(content_hash, mime_type, path, size)
