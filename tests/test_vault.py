import hashlib
import io
import logging
import os

import pytest
from PIL import Image as PILImage

from config import VaultConfig
from database import init_db, make_engine
from errors import (
    DecodeError,
    DuplicateAssetError,
    InvalidMetadataError,
    InvalidMimeTypeError,
    PersistenceError,
)
from vault import AssetVault


def stored_files(config):
    if not config.image_dir.exists():
        return []
    return sorted(os.listdir(config.image_dir))


def test_add_image_stores_files_and_metadata(vault, config, write_upload, make_image):
    data = make_image(size=(320, 240), fmt="JPEG")

    image_id = vault.add_image(
        write_upload(data, "beach.jpg"),
        uploader="alice",
        title="Beach",
        caption="Low tide",
        tags="sea, sand",
    )

    assert image_id == hashlib.sha256(data).hexdigest()
    assert stored_files(config) == [f"{image_id}.webp", f"{image_id}_thumb.webp"]

    asset = vault.get_image(image_id)
    assert asset.title == "Beach"
    assert asset.description == "Low tide"
    assert asset.uploader == "alice"
    assert vault.select_image(image_id).id == image_id
    assert vault.get_image_tags(image_id) == ["sea", "sand"]


def test_same_bytes_under_another_name_are_rejected(vault, config, write_upload, make_image):
    data = make_image()
    vault.add_image(write_upload(data, "one.png"), uploader="alice")

    with pytest.raises(DuplicateAssetError):
        vault.add_image(write_upload(data, "two.png"), uploader="bob", title="copy")

    assert len(vault.list_images()) == 1
    assert len(stored_files(config)) == 2


def test_store_rejects_duplicate_that_passed_precheck(
    vault, config, write_upload, make_image, monkeypatch
):
    data = make_image()
    image_id = vault.add_image(write_upload(data), uploader="alice")
    before = {name: (config.image_dir / name).read_bytes() for name in stored_files(config)}

    # simulate a concurrent upload that raced past the existence check
    monkeypatch.setattr("vault.asset_exists", lambda session, content_hash: False)
    with pytest.raises(DuplicateAssetError):
        vault.add_image(write_upload(data), uploader="mallory")

    after = {name: (config.image_dir / name).read_bytes() for name in stored_files(config)}
    assert after == before
    assert vault.get_image(image_id).uploader == "alice"


def test_overlong_metadata_rejected_before_derivation(
    vault, config, write_upload, make_image, monkeypatch
):
    def fail_stage(*args, **kwargs):
        raise AssertionError("derivation should not run")

    monkeypatch.setattr("vault.stage_images", fail_stage)
    with pytest.raises(InvalidMetadataError, match="title"):
        vault.add_image(write_upload(make_image()), uploader="alice", title="t" * 200)

    assert stored_files(config) == []
    assert vault.list_images() == []


def test_failed_metadata_write_leaves_no_files(
    vault, config, write_upload, make_image, monkeypatch
):
    def broken_insert(session, asset, tags):
        raise PersistenceError("database is locked")

    monkeypatch.setattr("vault.insert_asset", broken_insert)
    with pytest.raises(PersistenceError, match="locked"):
        vault.add_image(write_upload(make_image()), uploader="alice")

    assert stored_files(config) == []
    assert vault.list_images() == []


def test_rejections_are_logged_as_warnings(
    vault, write_upload, make_image, monkeypatch, caplog
):
    def broken_insert(session, asset, tags):
        raise PersistenceError("database is locked")

    monkeypatch.setattr("vault.insert_asset", broken_insert)
    with caplog.at_level(logging.WARNING, logger="vault"):
        with pytest.raises(PersistenceError):
            vault.add_image(write_upload(make_image()), uploader="alice")
        broken = b"\x89PNG\r\n\x1a\n" + b"\0" * 40
        with pytest.raises(DecodeError):
            vault.add_image(write_upload(broken, "cut.png"), uploader="alice")

    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert any("could not store" in m and "locked" in m for m in messages)
    assert any("could not derive" in m for m in messages)


def test_failed_publish_rolls_back_metadata(
    vault, config, write_upload, make_image, monkeypatch
):
    data = make_image()
    real_replace = os.replace
    calls = []

    def flaky_replace(src, dst):
        calls.append(dst)
        if len(calls) == 2:
            raise OSError("disk full")
        real_replace(src, dst)

    monkeypatch.setattr("deriver.os.replace", flaky_replace)
    with pytest.raises(Exception, match="disk full"):
        vault.add_image(write_upload(data), uploader="alice")

    assert stored_files(config) == []
    assert vault.get_image(hashlib.sha256(data).hexdigest()) is None


def test_invalid_upload_stores_nothing(vault, config, write_upload):
    with pytest.raises(InvalidMimeTypeError, match="text/plain"):
        vault.add_image(write_upload(b"hello\n", "cat.png"), uploader="alice")

    assert stored_files(config) == []
    assert vault.list_images() == []


def test_serve_image_round_trip(tmp_path, write_upload, make_image):
    config = VaultConfig(
        image_dir=tmp_path / "images",
        database_url=f"sqlite:///{tmp_path / 'serve.db'}",
        max_width=100,
        thumbnail_max_width=50,
        thumbnail_max_height=50,
    )
    engine = make_engine(config.database_url)
    init_db(engine)
    vault = AssetVault(config, engine)
    image_id = vault.add_image(write_upload(make_image(size=(200, 100))), uploader="alice")

    content_type, data = vault.serve_image(image_id)
    assert content_type == "image/webp"
    with PILImage.open(io.BytesIO(data)) as im:
        assert im.size == (100, 50)

    content_type, data = vault.serve_image(image_id, thumbnail=True)
    with PILImage.open(io.BytesIO(data)) as im:
        assert im.size == (50, 25)
    engine.dispose()


def test_serve_missing_image_returns_none(vault, config, write_upload, make_image):
    assert vault.serve_image("f" * 64) is None

    image_id = vault.add_image(write_upload(make_image()), uploader="alice")
    (config.image_dir / f"{image_id}_thumb.webp").unlink()
    assert vault.serve_image(image_id, thumbnail=True) is None
    assert vault.serve_image(image_id) is not None


def test_list_images_includes_tags(vault, write_upload, make_image):
    first = vault.add_image(
        write_upload(make_image(color=(1, 1, 1))), uploader="a", title="B", tags=["x,y"]
    )
    second = vault.add_image(
        write_upload(make_image(color=(2, 2, 2))), uploader="a", title="A"
    )

    listing = vault.list_images()

    assert [(row.id, row.tags) for row in listing] == [(second, None), (first, "x,y")]


def test_end_to_end_large_jpeg(tmp_path, write_upload, make_image):
    config = VaultConfig(
        image_dir=tmp_path / "images",
        database_url=f"sqlite:///{tmp_path / 'large.db'}",
        max_width=1000,
        max_height=0,
        max_filesize_mb=10,
    )
    engine = make_engine(config.database_url)
    init_db(engine)
    vault = AssetVault(config, engine)

    image_id = vault.add_image(
        write_upload(make_image(size=(4000, 3000), fmt="JPEG"), "big.jpg"),
        uploader="alice",
    )

    _, display = vault.serve_image(image_id)
    _, thumb = vault.serve_image(image_id, thumbnail=True)
    with PILImage.open(io.BytesIO(display)) as im:
        assert (im.format, im.size) == ("WEBP", (1000, 750))
    with PILImage.open(io.BytesIO(thumb)) as im:
        assert (im.format, im.size) == ("WEBP", (250, 187))
    engine.dispose()


@pytest.mark.parametrize(
    "method, args",
    [
        ("edit_image", ("a" * 64,)),
        ("delete_image", ("a" * 64,)),
        ("search_titles", ("beach",)),
        ("search_captions", ("tide",)),
        ("search_tags", (["sea"],)),
        ("image_search", ()),
        ("change_save_directory", ("/tmp/elsewhere",)),
    ],
)
def test_unbuilt_extension_points_raise(vault, method, args):
    with pytest.raises(NotImplementedError):
        getattr(vault, method)(*args)


def test_save_directory_comes_from_config(vault, config):
    assert vault.get_save_directory() == config.image_dir
