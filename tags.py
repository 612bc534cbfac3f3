"""Tag input cleaning."""
from typing import Optional, Sequence, Union

RawTags = Optional[Union[str, Sequence[str]]]


def normalize_tags(raw: RawTags) -> list[str]:
    """Turn free-form tag input into a list of clean tag names.

    Accepts a comma-separated string or a sequence of them. Pieces are
    trimmed and empty ones dropped; first-seen order is kept. Duplicates are
    left for the storage layer to collapse.
    """
    if not raw:
        return []
    if isinstance(raw, str):
        raw = [raw]

    tags = []
    for data in raw:
        for piece in data.split(","):
            tag = piece.strip()
            if tag:
                tags.append(tag)
    return tags
