# imager/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: Literal["dev", "staging", "prod"] = "dev"
    log_level: str = "INFO"

    # Admission control
    # SECURITY: Budget is checked against header dimensions before any full decode,
    # so a small file that declares huge dimensions never gets its pixels allocated.
    max_buffer_pixels: int = 50_000_000  # 50 megapixels
    max_dimension: int = 32_767  # Per-axis ceiling, independent of the pixel budget
    max_upload_bytes: int = 20 * 1024 * 1024  # 20 MB request body limit

    # Encoding
    jpeg_quality: int = 85
    png_optimize: bool = True
    resample_filter: Literal["lanczos", "bicubic", "bilinear", "nearest"] = "lanczos"

    # Output format policy
    # True  - opaque PNG input is re-encoded as JPEG (smaller for photographic content)
    # False - PNG input always stays PNG
    lossy_opaque_png: bool = True

    # Feature Flags
    enable_request_logging: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"


def warn_on_risky_config(s: "Settings") -> list[str]:
    warnings: list[str] = []

    # --- Admission ---
    if s.max_buffer_pixels <= 0:
        warnings.append("max_buffer_pixels <= 0: every image will be rejected as too big.")
    elif s.max_buffer_pixels > 178_956_970:
        warnings.append(
            "max_buffer_pixels exceeds Pillow's decompression-bomb limit: "
            "Pillow will refuse such images before admission control does."
        )

    if s.max_dimension < 2:
        warnings.append("max_dimension < 2: every image will be rejected.")

    # --- Encoding ---
    if not 1 <= s.jpeg_quality <= 95:
        warnings.append(f"jpeg_quality={s.jpeg_quality} is outside the useful 1..95 range.")

    return warnings


def validate_or_warn(s: "Settings") -> None:
    """Warn about settings that will make the service reject or degrade everything."""
    for msg in warn_on_risky_config(s):
        print(f"[WARN][config] {msg}")


settings = Settings()
validate_or_warn(settings)
