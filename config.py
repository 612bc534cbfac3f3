"""Configuration for the asset vault."""
from pathlib import Path

from PIL import Image as PILImage
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR = Path(__file__).resolve().parent


class VaultConfig(BaseSettings):
    """Immutable settings passed explicitly into every pipeline call.

    Values come from keyword arguments first, then ``ASSET_VAULT_*``
    environment variables, then the defaults below.
    """

    model_config = SettingsConfigDict(env_prefix="ASSET_VAULT_", frozen=True)

    api_prefix: str = ""

    # display size class, 0 means "no limit"
    max_width: int = 0
    max_height: int = 0
    # thumbnail size class
    thumbnail_max_width: int = 250
    thumbnail_max_height: int = 250

    max_filesize_mb: int = 2
    convert_to_filetype: str = "webp"
    # not used by the pipeline
    virus_total_api_key: str = ""

    image_dir: Path = APP_DIR / "vault_images"
    database_url: str = f"sqlite:///{APP_DIR / 'asset_vault.db'}"

    @field_validator("convert_to_filetype", mode="before")
    @classmethod
    def check_output_format(cls, raw: str) -> str:
        ext = str(raw).strip().lower().lstrip(".")
        PILImage.init()
        fmt = PILImage.registered_extensions().get(f".{ext}")
        if fmt is None or fmt not in PILImage.SAVE:
            raise ValueError(f"Unsupported output format: {raw}")
        return ext

    @field_validator(
        "max_width", "max_height", "thumbnail_max_width", "thumbnail_max_height"
    )
    @classmethod
    def check_dimension(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Maximum dimensions must be zero or positive")
        return value

    @property
    def output_format(self) -> str:
        """Pillow format name for ``convert_to_filetype`` (e.g. ``WEBP``)."""
        return PILImage.registered_extensions()[f".{self.convert_to_filetype}"]

    @property
    def max_filesize_bytes(self) -> int:
        return self.max_filesize_mb * 1024 * 1024
