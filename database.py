"""Database configuration and storage operations."""
from contextlib import contextmanager
from typing import Iterable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, col, create_engine, select

from errors import DuplicateAssetError, InvalidMetadataError, PersistenceError
from models import (
    DESCRIPTION_MAX_LENGTH,
    TAG_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    UPLOADER_MAX_LENGTH,
    Asset,
    AssetListing,
    AssetTag,
)


def make_engine(database_url: str) -> Engine:
    """Create an engine for the configured database URL."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


@contextmanager
def get_session(engine: Engine):
    """Get a database session context manager."""
    with Session(engine) as session:
        yield session


def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    SQLModel.metadata.create_all(engine)


def asset_exists(session: Session, asset_id: str) -> bool:
    return session.get(Asset, asset_id) is not None


def get_asset(session: Session, asset_id: str) -> Optional[Asset]:
    return session.get(Asset, asset_id)


def get_tags(session: Session, asset_id: str) -> list[str]:
    """Tag names of an asset in insertion order."""
    stmt = (
        select(AssetTag.tag_name)
        .where(AssetTag.image_id == asset_id)
        .order_by(AssetTag.tag_id)
    )
    return list(session.exec(stmt).all())


def check_lengths(asset: Asset, tags: Iterable[AssetTag]) -> None:
    """Enforce the column limits before anything is written."""
    limits = (
        ("title", asset.title, TITLE_MAX_LENGTH),
        ("description", asset.description, DESCRIPTION_MAX_LENGTH),
        ("uploader", asset.uploader, UPLOADER_MAX_LENGTH),
    )
    for name, value, limit in limits:
        if value is not None and len(value) > limit:
            raise InvalidMetadataError(f"Image {name} is longer than {limit} characters.")
    if not asset.uploader:
        raise InvalidMetadataError("Image uploader is required.")
    for tag in tags:
        if len(tag.tag_name) > TAG_MAX_LENGTH:
            raise InvalidMetadataError(
                f"Tag '{tag.tag_name[:16]}...' is longer than {TAG_MAX_LENGTH} characters."
            )


def insert_asset(session: Session, asset: Asset, tags: list[AssetTag]) -> Asset:
    """Insert an asset and its tags in one transaction.

    The primary key makes this an insert-if-absent: a concurrent upload of the
    same bytes that slipped past the existence pre-check still fails here with
    ``DuplicateAssetError``. Repeated tag names for the asset are collapsed.
    """
    check_lengths(asset, tags)
    try:
        session.add(asset)
        session.flush()
        seen: set[str] = set()
        for tag in tags:
            if tag.tag_name in seen:
                continue
            seen.add(tag.tag_name)
            session.add(tag)
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if asset_exists(session, asset.id):
            raise DuplicateAssetError(asset.id) from exc
        raise PersistenceError(f"Failed to store image metadata: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceError(f"Failed to store image metadata: {exc}") from exc
    session.refresh(asset)
    return asset


def remove_asset(session: Session, asset_id: str) -> None:
    """Delete an asset row and its tags."""
    try:
        links = session.exec(select(AssetTag).where(AssetTag.image_id == asset_id)).all()
        for link in links:
            session.delete(link)
        asset = session.get(Asset, asset_id)
        if asset:
            session.delete(asset)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceError(f"Failed to remove image metadata: {exc}") from exc


def list_assets(session: Session) -> list[AssetListing]:
    """All assets ordered by title, each with its comma-joined tags."""
    assets = session.exec(select(Asset).order_by(Asset.title, Asset.id)).all()
    if not assets:
        return []

    # Load tags for all images in one query
    rows = session.exec(
        select(AssetTag)
        .where(col(AssetTag.image_id).in_([a.id for a in assets]))
        .order_by(AssetTag.tag_id)
    ).all()
    tags: dict[str, list[str]] = {}
    for row in rows:
        tags.setdefault(row.image_id, []).append(row.tag_name)

    return [
        AssetListing(
            **asset.model_dump(),
            tags=",".join(tags[asset.id]) if asset.id in tags else None,
        )
        for asset in assets
    ]
