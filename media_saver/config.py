# media_saver/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MEDIA_SAVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: Literal["dev", "staging", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool | None = None  # None => JSON only in prod

    # Storage
    target_dir: str | None = None  # Output directory for saved files (required by from_settings())

    # Allow-lists (case-sensitive, compared against the extension as written)
    # Pass as JSON in env: MEDIA_SAVER_IMAGE_VALID_EXTENSIONS='["jpg","png","webp"]'
    file_valid_extensions: list[str] = []
    image_valid_extensions: list[str] = ["jpg", "png"]

    # Remote transfer
    download_timeout_seconds: float = 60.0
    download_connect_timeout_seconds: float = 15.0
    download_max_retries: int = 1  # 1 = no retry
    download_retry_backoff_seconds: float = 2.0  # linear: 2s, 4s, 6s...
    download_chunk_size: int = 64 * 1024
    max_file_size_mb: int | None = None  # None = unlimited

    # Image processing
    # Parsing limit for Pillow (decompression bomb protection)
    max_image_pixels: int = 50_000_000
    output_quality: int = 90  # JPEG/WebP quality when re-encoding in place

    # Text overlays
    overlay_font_path: str | None = None  # TTF/OTF; falls back to Pillow's bundled font
    overlay_font_size: int = 32

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"

    @property
    def use_json_logs(self) -> bool:
        if self.log_json is None:
            return self.is_production
        return self.log_json

    @property
    def max_file_size_bytes(self) -> int | None:
        if self.max_file_size_mb is None:
            return None
        return self.max_file_size_mb * 1024 * 1024


settings = Settings()
