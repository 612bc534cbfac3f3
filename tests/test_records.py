from records import build_records

HASH = "0f" * 32


def test_build_records_combines_hash_and_metadata():
    asset, tags = build_records(HASH, "Sunset", "Over the bay", "sea, sky ,", "alice")

    assert asset.id == HASH
    assert asset.title == "Sunset"
    assert asset.description == "Over the bay"
    assert asset.uploader == "alice"
    assert [(t.image_id, t.tag_name) for t in tags] == [(HASH, "sea"), (HASH, "sky")]


def test_optional_metadata_may_be_empty():
    asset, tags = build_records(HASH, "", None, None, "bob")

    assert asset.title is None
    assert asset.description is None
    assert tags == []
