# imager/infra/codec.py
"""
Pillow-backed codec.

Security notes:
- Truncated images are rejected, never padded (LOAD_TRUNCATED_IMAGES = False)
- ``decode_header`` only parses container metadata; Image.open is lazy and
  does not allocate pixel data, so admission control runs before any decode
- Pillow's own decompression-bomb guard is kept as a second line of defense
- Re-encoding drops EXIF and other metadata; orientation is baked into pixels
"""
from __future__ import annotations

import io
import struct

from PIL import ExifTags, Image, ImageFile

from imager.core.domain import ImageHeader
from imager.core.errors import EncodeError, TooBigError, UnknownFormatError
from imager.core.formats import FormatTag, detect_format
from imager.core.geometry import CropBox
from imager.core.orientation import Transform
from imager.infra.logging_config import get_logger

logger = get_logger(__name__)

# IMPORTANT: Do NOT allow truncated images!
# Setting LOAD_TRUNCATED_IMAGES = True fills missing data with gray/black bands.
# Better to reject corrupted images than serve broken ones.
ImageFile.LOAD_TRUNCATED_IMAGES = False

RESAMPLE_FILTERS = {
    "lanczos": Image.Resampling.LANCZOS,
    "bicubic": Image.Resampling.BICUBIC,
    "bilinear": Image.Resampling.BILINEAR,
    "nearest": Image.Resampling.NEAREST,
}

# Pillow format names -> FormatTag
PIL_FORMATS = {
    "JPEG": FormatTag.JPEG,
    # JPEG with a multi-picture (MPF) segment; the first frame is the primary image
    "MPO": FormatTag.JPEG,
    "PNG": FormatTag.PNG,
    "GIF": FormatTag.GIF,
}

# Clockwise degrees -> Pillow transpose (Pillow rotates counter-clockwise)
ROTATIONS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}

# Modes the resize and encode paths handle without conversion
NATIVE_MODES = {"1", "L", "LA", "RGB", "RGBA", "CMYK"}
ALPHA_MODES = {"LA", "RGBA"}
JPEG_MODES = {"L", "RGB", "CMYK"}

DECODE_ERRORS = (OSError, SyntaxError, ValueError, EOFError)


def read_orientation(raw_exif: bytes | None) -> int | None:
    """
    Orientation tag from raw EXIF bytes.

    Parses the bytes captured at open time instead of calling getexif(),
    which for some formats (PNG) forces a full pixel load.
    """
    if not raw_exif:
        return None
    exif = Image.Exif()
    try:
        exif.load(raw_exif)
    except (SyntaxError, ValueError, OSError, struct.error) as e:
        logger.debug(f"Ignoring unreadable EXIF block: {e}")
        return None
    orientation = exif.get(ExifTags.Base.Orientation)
    return orientation if isinstance(orientation, int) else None


class PillowCodec:
    """Codec implementation over Pillow ``Image`` objects."""

    def __init__(
        self,
        jpeg_quality: int = 85,
        png_optimize: bool = True,
        resample_filter: str = "lanczos",
    ):
        if resample_filter not in RESAMPLE_FILTERS:
            raise ValueError(f"Unknown resample filter: {resample_filter}")
        self.jpeg_quality = jpeg_quality
        self.png_optimize = png_optimize
        self.resample = RESAMPLE_FILTERS[resample_filter]

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def sniff(self, data: bytes) -> FormatTag:
        fmt = detect_format(data)
        if fmt == FormatTag.UNKNOWN:
            raise UnknownFormatError("Unable to detect image format from file content")
        return fmt

    def decode_header(self, data: bytes) -> ImageHeader:
        try:
            with Image.open(io.BytesIO(data)) as img:
                raw_width, raw_height = img.size
                fmt = PIL_FORMATS.get(img.format, FormatTag.UNKNOWN)
                orientation = read_orientation(img.info.get("exif"))
        except Image.DecompressionBombError as e:
            raise TooBigError(f"Decompression bomb detected: {e}") from e
        except DECODE_ERRORS as e:
            logger.warning(f"Image header parsing error (possible malformed file): {e}")
            raise UnknownFormatError("Failed to decode image: corrupted or malformed") from e

        return ImageHeader(
            raw_width=raw_width,
            raw_height=raw_height,
            format=fmt,
            orientation=orientation,
        )

    def decode_full(self, data: bytes) -> Image.Image:
        # JPEG must end with EOI (End Of Image) marker; allow a little trailing padding
        if detect_format(data) == FormatTag.JPEG and b'\xff\xd9' not in data[-10:]:
            logger.warning("JPEG missing EOI marker - likely truncated")
            raise UnknownFormatError("JPEG image is truncated (missing end marker)")

        try:
            img = Image.open(io.BytesIO(data))
        except Image.DecompressionBombError as e:
            raise TooBigError(f"Decompression bomb detected: {e}") from e
        except DECODE_ERRORS as e:
            raise UnknownFormatError("Failed to decode image: corrupted or malformed") from e

        try:
            img.load()
            return self._to_native_mode(img)
        except Image.DecompressionBombError as e:
            img.close()
            raise TooBigError(f"Decompression bomb detected during load: {e}") from e
        except DECODE_ERRORS as e:
            img.close()
            logger.warning(f"Image load error (possible malformed/truncated file): {e}")
            raise UnknownFormatError("Failed to load image: corrupted, truncated, or malformed") from e
        except MemoryError as e:
            img.close()
            logger.error(f"Memory error during image load: {e}")
            raise TooBigError("Image decompression exceeded memory limit") from e

    def _to_native_mode(self, img: Image.Image) -> Image.Image:
        """Convert palette and exotic modes so resampling is not silently nearest-neighbour."""
        if img.mode in NATIVE_MODES:
            return img
        if img.mode in ("P", "PA"):
            target = "RGBA" if img.mode == "PA" or "transparency" in img.info else "RGB"
        elif img.mode.startswith("I"):
            return self._rescale_to_8bit(img)
        elif img.mode == "F":
            target = "L"
        else:
            target = "RGBA" if "A" in img.mode else "RGB"
        converted = img.convert(target)
        img.close()
        return converted

    @staticmethod
    def _rescale_to_8bit(img: Image.Image) -> Image.Image:
        """16-bit grayscale to L. A bare convert("L") clamps instead of scaling."""
        wide = img.convert("I")
        img.close()
        scaled = wide.point(lambda v: v * (1 / 256))
        wide.close()
        converted = scaled.convert("L")
        scaled.close()
        return converted

    def has_transparency(self, buf: Image.Image) -> bool:
        if buf.mode in ALPHA_MODES:
            low, _high = buf.getchannel("A").getextrema()
            return low < 255
        return "transparency" in buf.info

    # ------------------------------------------------------------------
    # Pixel operations (each returns a new image)
    # ------------------------------------------------------------------

    def transform(self, buf: Image.Image, transform: Transform) -> Image.Image:
        if not transform.flip:
            if transform.rotate:
                return buf.transpose(ROTATIONS[transform.rotate])
            return buf.copy()

        out = buf.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if transform.rotate:
            rotated = out.transpose(ROTATIONS[transform.rotate])
            out.close()
            out = rotated
        return out

    def resize(self, buf: Image.Image, width: int, height: int) -> Image.Image:
        return buf.resize((width, height), self.resample)

    def crop(self, buf: Image.Image, box: CropBox) -> Image.Image:
        return buf.crop(box.box)

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, buf: Image.Image, fmt: FormatTag) -> bytes:
        output = io.BytesIO()
        img = buf
        try:
            if fmt == FormatTag.JPEG:
                img = self._flatten_for_jpeg(buf)
                img.save(output, format="JPEG", quality=self.jpeg_quality, optimize=True)
            elif fmt == FormatTag.PNG:
                img.save(output, format="PNG", optimize=self.png_optimize)
            else:
                raise EncodeError(f"Unsupported output format: {fmt.value}")
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Encoding {fmt.value} failed: {type(e).__name__}: {e}")
            raise EncodeError(f"Failed to encode {fmt.value}: {e}") from e
        finally:
            if img is not buf:
                img.close()

        return output.getvalue()

    @staticmethod
    def _flatten_for_jpeg(img: Image.Image) -> Image.Image:
        """JPEG has no alpha: composite onto white, or convert to RGB."""
        if img.mode in JPEG_MODES:
            return img
        if img.mode in ALPHA_MODES:
            rgba = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            rgba.close()
            return background
        return img.convert("RGB")

    def release(self, buf: Image.Image) -> None:
        buf.close()
