"""Upload, lookup and serving of vault images."""
import logging
from pathlib import Path
from typing import Optional, Sequence

from sqlalchemy.engine import Engine

from codec import detect_mime_type
from config import VaultConfig
from database import (
    asset_exists,
    check_lengths,
    get_asset,
    get_session,
    get_tags,
    insert_asset,
    list_assets,
    remove_asset,
)
from deriver import THUMBNAIL_SUFFIX, stage_images, sweep_staging
from errors import ProcessingError, VaultError
from models import Asset, AssetListing, UploadDescriptor
from records import build_records
from tags import RawTags
from validator import validate_upload

logger = logging.getLogger(__name__)


class AssetVault:
    """Entry point tying the upload pipeline to the metadata store.

    Both collaborators are fixed at construction; differently configured
    vaults can share a process.
    """

    def __init__(self, config: VaultConfig, engine: Engine):
        self.config = config
        self.engine = engine

    def get_save_directory(self) -> Path:
        return self.config.image_dir

    def add_image(
        self,
        upload: UploadDescriptor,
        uploader: str,
        title: Optional[str] = None,
        caption: Optional[str] = None,
        tags: RawTags = None,
    ) -> str:
        """Validate, derive and persist an upload. Returns the content hash.

        Derived files are staged until the metadata commit succeeds and are
        discarded if it fails, so a failed upload leaves nothing behind.
        """
        with get_session(self.engine) as s:
            try:
                validated = validate_upload(
                    upload, self.config, exists=lambda h: asset_exists(s, h)
                )
                asset, tag_rows = build_records(
                    validated.content_hash, title, caption, tags, uploader
                )
                check_lengths(asset, tag_rows)
            except VaultError as e:
                logger.warning("rejected upload %s: %s", upload.original_name, e)
                raise

            content_hash = validated.content_hash
            try:
                staged = stage_images(
                    validated.path, validated.mime_type, content_hash, self.config
                )
            except ProcessingError as e:
                logger.warning("could not derive %s: %s", content_hash, e)
                raise

            try:
                insert_asset(s, asset, tag_rows)
            except VaultError as e:
                logger.warning("could not store %s: %s", content_hash, e)
                staged.discard()
                raise
            except BaseException:
                staged.discard()
                raise

            try:
                staged.publish()
            except ProcessingError as e:
                logger.warning("could not publish %s: %s", content_hash, e)
                for p in staged.final:
                    p.unlink(missing_ok=True)
                remove_asset(s, content_hash)
                raise

        logger.info(
            "stored image %s (%s, %d tags)",
            content_hash, validated.mime_type, len(tag_rows),
        )
        return content_hash

    def get_image(self, asset_id: str) -> Optional[Asset]:
        with get_session(self.engine) as s:
            return get_asset(s, asset_id)

    def select_image(self, asset_id: str) -> Optional[Asset]:
        return self.get_image(asset_id)

    def get_image_tags(self, asset_id: str) -> list[str]:
        with get_session(self.engine) as s:
            return get_tags(s, asset_id)

    def list_images(self) -> list[AssetListing]:
        with get_session(self.engine) as s:
            return list_assets(s)

    def find_image_file(self, asset_id: str, thumbnail: bool = False) -> Optional[Path]:
        """Locate a stored file by its hash stem, whatever its extension."""
        stem = f"{asset_id}{THUMBNAIL_SUFFIX}" if thumbnail else asset_id
        directory = self.config.image_dir
        if not directory.is_dir():
            return None
        matches = sorted(directory.glob(f"{stem}.*"))
        return matches[0] if matches else None

    def serve_image(
        self, asset_id: str, thumbnail: bool = False
    ) -> Optional[tuple[str, bytes]]:
        """Content type and bytes of a stored image, or None when absent."""
        if not self.get_image(asset_id):
            return None
        path = self.find_image_file(asset_id, thumbnail)
        if path is None:
            return None
        return detect_mime_type(path), path.read_bytes()

    def sweep(self, older_than: float = 3600.0) -> int:
        return sweep_staging(self.config, older_than)

    # Extension points that are not built yet. They raise instead of
    # pretending to succeed.

    def edit_image(
        self,
        asset_id: str,
        title: Optional[str] = None,
        caption: Optional[str] = None,
        tags: RawTags = None,
    ) -> Asset:
        raise NotImplementedError("Editing images is not supported yet.")

    def delete_image(self, asset_id: str) -> None:
        raise NotImplementedError("Deleting images is not supported yet.")

    def search_titles(self, title: str, exact_match: bool = True) -> list[Asset]:
        raise NotImplementedError("Title search is not supported yet.")

    def search_captions(self, caption: str, exact_match: bool = True) -> list[Asset]:
        raise NotImplementedError("Caption search is not supported yet.")

    def search_tags(self, tags: Sequence[str], match_all: bool = False) -> list[Asset]:
        raise NotImplementedError("Tag search is not supported yet.")

    def image_search(
        self,
        asset_id: str = "",
        title: str = "",
        caption: str = "",
        tags: Sequence[str] = (),
    ) -> list[Asset]:
        raise NotImplementedError("Image search is not supported yet.")

    def change_save_directory(self, new_directory: Path) -> None:
        raise NotImplementedError("Moving the image directory is not supported yet.")
