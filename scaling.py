"""Resize ratios for the display and thumbnail size classes."""
from config import VaultConfig


def resize_ratio(
    natural_width: int, natural_height: int, max_width: int, max_height: int
) -> float:
    """Uniform shrink factor in (0, 1] that fits the image inside the limits.

    An axis only constrains when its maximum is positive and smaller than the
    natural size. Images are never enlarged.
    """
    width_scale = (
        max_width / natural_width if 0 < max_width < natural_width else 1
    )
    height_scale = (
        max_height / natural_height if 0 < max_height < natural_height else 1
    )
    return min(width_scale, height_scale)


def scaled_size(width: int, height: int, ratio: float) -> tuple[int, int]:
    """Truncate the scaled dimensions, never going below one pixel."""
    return max(1, int(ratio * width)), max(1, int(ratio * height))


def display_size(width: int, height: int, config: VaultConfig) -> tuple[int, int]:
    ratio = resize_ratio(width, height, config.max_width, config.max_height)
    return scaled_size(width, height, ratio)


def thumbnail_size(width: int, height: int, config: VaultConfig) -> tuple[int, int]:
    ratio = resize_ratio(
        width, height, config.thumbnail_max_width, config.thumbnail_max_height
    )
    return scaled_size(width, height, ratio)
