"""Exceptions raised by the upload pipeline."""


class VaultError(Exception):
    """Base class for every asset vault failure."""


class TransportError(VaultError):
    """The upload failed before its bytes reached the vault."""


class ValidationError(VaultError):
    """The upload was received but is not acceptable."""


class FileTooLargeError(ValidationError):
    pass


class DuplicateAssetError(ValidationError):
    def __init__(self, asset_id: str):
        super().__init__("Duplicate image already exists.")
        self.asset_id = asset_id


class InvalidMimeTypeError(ValidationError):
    def __init__(self, mime_type: str):
        super().__init__(f"Invalid MIME type: {mime_type}")
        self.mime_type = mime_type


class InvalidMetadataError(ValidationError):
    """Title, caption, uploader or a tag does not fit its column."""


class ProcessingError(VaultError):
    """Decoding, encoding or writing a derived image failed."""


class DecodeError(ProcessingError):
    pass


class EncodeError(ProcessingError):
    pass


class WriteError(ProcessingError):
    pass


class PersistenceError(VaultError):
    """The metadata store rejected or failed a write."""
