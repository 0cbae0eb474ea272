# tests/helpers.py
"""Image builders and a buffer-tracking codec shared by the test modules."""
import io
import random
import struct
import zlib

from PIL import ExifTags, Image as PILImage

from imager.infra.codec import PillowCodec


# Upright 48x80 reference: four solid quadrants so every rotation/flip is distinguishable
QUADRANT_COLORS = {
    "top_left": (220, 20, 20),
    "top_right": (20, 200, 20),
    "bottom_left": (20, 20, 220),
    "bottom_right": (240, 240, 240),
}

# Transpose that turns the upright reference into what a camera would store
# for each EXIF orientation (inverse of the display transform)
STORED_TRANSPOSE = {
    1: None,
    2: PILImage.Transpose.FLIP_LEFT_RIGHT,
    3: PILImage.Transpose.ROTATE_180,
    4: PILImage.Transpose.FLIP_TOP_BOTTOM,
    5: PILImage.Transpose.TRANSPOSE,
    6: PILImage.Transpose.ROTATE_90,
    7: PILImage.Transpose.TRANSVERSE,
    8: PILImage.Transpose.ROTATE_270,
}


def encode(img: PILImage.Image, fmt: str, **kwargs) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


def decode(data: bytes) -> PILImage.Image:
    img = PILImage.open(io.BytesIO(data))
    img.load()
    return img


def noise_image(width: int, height: int, mode: str = "RGB", seed: int = 1) -> PILImage.Image:
    """Incompressible content, so truncating the file really cuts pixel data."""
    rng = random.Random(seed)
    return PILImage.frombytes(mode, (width, height), rng.randbytes(width * height * len(mode)))


def quadrant_image(width: int = 48, height: int = 80) -> PILImage.Image:
    img = PILImage.new("RGB", (width, height))
    half_w, half_h = width // 2, height // 2
    img.paste(QUADRANT_COLORS["top_left"], (0, 0, half_w, half_h))
    img.paste(QUADRANT_COLORS["top_right"], (half_w, 0, width, half_h))
    img.paste(QUADRANT_COLORS["bottom_left"], (0, half_h, half_w, height))
    img.paste(QUADRANT_COLORS["bottom_right"], (half_w, half_h, width, height))
    return img


def oriented_jpeg(code: int) -> bytes:
    """JPEG whose stored pixels plus EXIF orientation ``code`` display as the 48x80 reference."""
    stored = quadrant_image()
    if STORED_TRANSPOSE[code] is not None:
        stored = stored.transpose(STORED_TRANSPOSE[code])
    exif = PILImage.Exif()
    exif[ExifTags.Base.Orientation] = code
    return encode(stored, "JPEG", quality=95, exif=exif.tobytes())


def closest_quadrant(rgb: tuple) -> str:
    """Name of the reference color nearest to an (r, g, b) sample."""
    return min(
        QUADRANT_COLORS,
        key=lambda name: sum((a - b) ** 2 for a, b in zip(QUADRANT_COLORS[name], rgb[:3])),
    )


def quadrant_layout(img: PILImage.Image) -> dict[str, str]:
    """Which reference color sits in each quadrant of img (sampled at quadrant centers)."""
    rgb = img.convert("RGB")
    w, h = rgb.size
    samples = {
        "top_left": (w // 4, h // 4),
        "top_right": (3 * w // 4, h // 4),
        "bottom_left": (w // 4, 3 * h // 4),
        "bottom_right": (3 * w // 4, 3 * h // 4),
    }
    return {name: closest_quadrant(rgb.getpixel(xy)) for name, xy in samples.items()}


def png_with_declared_size(width: int, height: int) -> bytes:
    """A tiny valid PNG whose IHDR claims width x height (decompression bomb shape)."""
    data = bytearray(encode(PILImage.new("L", (2, 2)), "PNG"))
    # signature(8) + length(4) + b"IHDR"(4) -> width, height at offset 16
    data[16:24] = struct.pack(">II", width, height)
    # CRC covers chunk type + 13 data bytes
    data[29:33] = struct.pack(">I", zlib.crc32(bytes(data[12:29])) & 0xFFFFFFFF)
    return bytes(data)


class TrackingCodec(PillowCodec):
    """PillowCodec that records which native buffers are still alive."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.live: dict[int, PILImage.Image] = {}
        self.decode_full_calls = 0

    def _track(self, buf):
        self.live[id(buf)] = buf
        return buf

    def decode_full(self, data):
        self.decode_full_calls += 1
        return self._track(super().decode_full(data))

    def transform(self, buf, transform):
        return self._track(super().transform(buf, transform))

    def resize(self, buf, width, height):
        return self._track(super().resize(buf, width, height))

    def crop(self, buf, box):
        return self._track(super().crop(buf, box))

    def release(self, buf):
        assert id(buf) in self.live, "released a buffer that is not live (double release?)"
        del self.live[id(buf)]
        super().release(buf)
