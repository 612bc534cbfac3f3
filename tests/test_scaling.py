import pytest

from config import VaultConfig
from scaling import display_size, resize_ratio, scaled_size, thumbnail_size


@pytest.mark.parametrize("size", [(1, 1), (250, 250), (4000, 3000), (3, 9000)])
def test_unset_limits_never_scale(size):
    assert resize_ratio(*size, 0, 0) == 1


def test_single_axis_limit():
    assert resize_ratio(200, 100, 100, 0) == 0.5
    assert resize_ratio(200, 100, 100, 5000) == 0.5


def test_image_that_fits_is_not_enlarged():
    assert resize_ratio(100, 80, 1000, 1000) == 1
    assert resize_ratio(100, 80, 100, 80) == 1


def test_tightest_axis_wins():
    assert resize_ratio(4000, 3000, 1000, 1000) == 0.25
    assert resize_ratio(4000, 3000, 250, 250) == 0.0625


def test_scaled_size_truncates():
    assert scaled_size(4000, 3000, 0.0625) == (250, 187)
    assert scaled_size(3, 3, 0.5) == (1, 1)


def test_scaled_size_never_reaches_zero():
    assert scaled_size(1000, 1, 0.1) == (100, 1)


def test_size_classes_use_their_own_limits():
    config = VaultConfig(max_width=1000, max_height=0)
    assert display_size(4000, 3000, config) == (1000, 750)
    assert thumbnail_size(4000, 3000, config) == (250, 187)


def test_default_config_keeps_display_size():
    config = VaultConfig()
    assert display_size(4000, 3000, config) == (4000, 3000)
