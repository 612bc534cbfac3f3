import pytest

from tags import normalize_tags


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("a, b ,, c", ["a", "b", "c"]),
        (["a,b", "c"], ["a", "b", "c"]),
        (("sunset", " beach , sea "), ["sunset", "beach", "sea"]),
        ("single", ["single"]),
        (None, []),
        ("", []),
        ([], []),
        (" , ,  ", []),
    ],
)
def test_normalize_tags(raw, expected):
    assert normalize_tags(raw) == expected


def test_duplicates_are_kept_in_first_seen_order():
    # the storage layer collapses repeats, not the normalizer
    assert normalize_tags(["b,a", "a"]) == ["b", "a", "a"]
