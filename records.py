"""Assemble persistence-ready rows for a validated upload."""
from typing import Optional

from models import Asset, AssetTag
from tags import RawTags, normalize_tags


def build_tag_records(content_hash: str, raw_tags: RawTags) -> list[AssetTag]:
    return [
        AssetTag(image_id=content_hash, tag_name=tag)
        for tag in normalize_tags(raw_tags)
    ]


def build_records(
    content_hash: str,
    title: Optional[str],
    caption: Optional[str],
    raw_tags: RawTags,
    uploader: str,
) -> tuple[Asset, list[AssetTag]]:
    """Combine the verified hash with caller metadata. No I/O happens here."""
    asset = Asset(
        id=content_hash,
        title=title or None,
        description=caption or None,
        uploader=uploader,
    )
    return asset, build_tag_records(content_hash, raw_tags)
