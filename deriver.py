"""Display and thumbnail derivation for validated uploads."""
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import NamedTuple

import codec
from config import VaultConfig
from errors import DecodeError, WriteError
from scaling import display_size, thumbnail_size

logger = logging.getLogger(__name__)

THUMBNAIL_SUFFIX = "_thumb"
# staged files are hidden so "<hash>.*" lookups never see them
STAGING_PREFIX = "."
STAGING_SUFFIX = ".part"


class DerivedImages(NamedTuple):
    display_path: Path
    thumbnail_path: Path


def stored_paths(content_hash: str, config: VaultConfig) -> DerivedImages:
    """Final locations of an asset's two stored files."""
    ext = config.convert_to_filetype
    return DerivedImages(
        config.image_dir / f"{content_hash}.{ext}",
        config.image_dir / f"{content_hash}{THUMBNAIL_SUFFIX}.{ext}",
    )


def _write_staged(directory: Path, final: Path, data: bytes) -> Path:
    with tempfile.NamedTemporaryFile(
        dir=directory,
        prefix=f"{STAGING_PREFIX}{final.name}.",
        suffix=STAGING_SUFFIX,
        delete=False,
    ) as f:
        staged = Path(f.name)
        try:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        except OSError:
            f.close()
            staged.unlink(missing_ok=True)
            raise
    return staged


class StagedImages:
    """Derived files written next to their final paths but not yet visible.

    ``publish`` moves them into place with ``os.replace``; ``discard`` removes
    them. The upload flow persists metadata in between.
    """

    def __init__(self, final: DerivedImages, staged: DerivedImages):
        self.final = final
        self.staged = staged

    def publish(self) -> DerivedImages:
        try:
            for staged, final in zip(self.staged, self.final):
                os.replace(staged, final)
        except OSError as e:
            self.discard()
            raise WriteError(f"Failed to publish derived images: {e}") from e
        return self.final

    def discard(self) -> None:
        for staged in self.staged:
            staged.unlink(missing_ok=True)


def stage_images(
    path: Path, mime_type: str, content_hash: str, config: VaultConfig
) -> StagedImages:
    """Decode, scale and re-encode an upload into staged display/thumbnail files."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise DecodeError(f"Failure to read uploaded file {path}.") from e
    raster = codec.decode(data, mime_type)
    width, height = raster.size

    display = codec.resize(raster, *display_size(width, height, config))
    thumbnail = codec.resize(raster, *thumbnail_size(width, height, config))

    # always re-encode, even when the source is already in the output format
    display_bytes = codec.encode(display, config.output_format)
    thumbnail_bytes = codec.encode(thumbnail, config.output_format)

    final = stored_paths(content_hash, config)
    directory = config.image_dir
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"Couldn't create image directory {directory}.") from e

    written: list[Path] = []
    try:
        for target, data in zip(final, (display_bytes, thumbnail_bytes)):
            written.append(_write_staged(directory, target, data))
    except OSError as e:
        for staged in written:
            staged.unlink(missing_ok=True)
        raise WriteError(f"Failed to save {target.name}.") from e

    logger.debug(
        "staged %s: display %sx%s, thumbnail %sx%s",
        content_hash, *display.size, *thumbnail.size,
    )
    return StagedImages(final, DerivedImages(*written))


def derive_images(
    path: Path, mime_type: str, content_hash: str, config: VaultConfig
) -> DerivedImages:
    """Write ``<hash>.<ext>`` and ``<hash>_thumb.<ext>`` into the image dir.

    Each file appears whole or not at all. Raises ``ProcessingError`` on
    decode, encode or write failure.
    """
    return stage_images(path, mime_type, content_hash, config).publish()


def sweep_staging(config: VaultConfig, older_than: float = 3600.0) -> int:
    """Remove staged files left behind by aborted uploads.

    Only files whose modification time is more than ``older_than`` seconds
    old are touched, so uploads in flight are left alone.
    """
    directory = config.image_dir
    if not directory.is_dir():
        return 0

    cutoff = time.time() - older_than
    removed = 0
    for p in directory.glob(f"{STAGING_PREFIX}*{STAGING_SUFFIX}"):
        try:
            if p.stat().st_mtime < cutoff:
                p.unlink()
                removed += 1
        except FileNotFoundError:
            continue
    if removed:
        logger.info("removed %d stale staged files from %s", removed, directory)
    return removed
