# tests/conftest.py
"""Pytest configuration and fixtures"""
import pytest
import sys
from pathlib import Path

from PIL import Image as PILImage

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.helpers import TrackingCodec, encode, noise_image  # noqa: E402


@pytest.fixture
def watermelon_jpeg() -> bytes:
    """398x536 photographic JPEG (213,328 pixels)"""
    return encode(noise_image(398, 536), "JPEG", quality=90)


@pytest.fixture
def flowers_png() -> bytes:
    """256x169 opaque truecolor PNG"""
    return encode(noise_image(256, 169), "PNG")


@pytest.fixture
def tiny_gif() -> bytes:
    """2x3 single-frame GIF"""
    return encode(PILImage.new("RGB", (2, 3), (10, 120, 200)).convert("P"), "GIF")


@pytest.fixture
def png_1px() -> bytes:
    return encode(PILImage.new("RGB", (1, 1), (255, 0, 0)), "PNG")


@pytest.fixture
def png_2px() -> bytes:
    return encode(PILImage.new("RGB", (2, 2), (255, 0, 0)), "PNG")


@pytest.fixture
def wide_png() -> bytes:
    """34000x16 PNG: small pixel count, absurd width"""
    return encode(PILImage.new("L", (34000, 16)), "PNG")


@pytest.fixture
def transparent_png() -> bytes:
    """40x30 RGBA PNG, left half fully transparent"""
    img = PILImage.new("RGBA", (40, 30), (255, 0, 0, 255))
    img.paste((0, 0, 0, 0), (0, 0, 20, 30))
    return encode(img, "PNG")


@pytest.fixture
def truncated_jpeg() -> bytes:
    data = encode(noise_image(64, 64), "JPEG", quality=90)
    return data[: len(data) // 2]


@pytest.fixture
def truncated_png() -> bytes:
    data = encode(noise_image(64, 64), "PNG")
    return data[: int(len(data) * 0.6)]


@pytest.fixture
def mpo_jpeg() -> bytes:
    """Two-frame MPO (JPEG with an MPF segment), 64x48 primary image"""
    primary = noise_image(64, 48, seed=2)
    return encode(primary, "MPO", save_all=True, append_images=[noise_image(64, 48, seed=3)])


@pytest.fixture
def dark_png_16bit() -> bytes:
    """32x32 16-bit grayscale PNG at 1000/65535 (about 1.5% brightness)"""
    return encode(PILImage.new("I;16", (32, 32), 1000), "PNG")


@pytest.fixture
def tracking_codec() -> TrackingCodec:
    return TrackingCodec()
