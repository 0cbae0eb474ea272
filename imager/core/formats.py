# imager/core/formats.py
"""
Format detection from magic bytes and the output format policy.

Sniffing looks at the leading bytes only. It is more trustworthy than a
file extension or Content-Type header and costs nothing, so anything that
fails here never reaches the decoder.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FormatTag(str, Enum):
    """Image container formats understood by the decoder."""
    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    UNKNOWN = "UNKNOWN"

    def __str__(self) -> str:
        return self.value


# Magic bytes for format detection
MAGIC_BYTES = {
    b'\xff\xd8\xff': FormatTag.JPEG,
    b'\x89PNG\r\n\x1a\n': FormatTag.PNG,
    b'GIF87a': FormatTag.GIF,
    b'GIF89a': FormatTag.GIF,
}

CONTENT_TYPES = {
    FormatTag.JPEG: "image/jpeg",
    FormatTag.PNG: "image/png",
    FormatTag.GIF: "image/gif",
}


def detect_format(data: bytes) -> FormatTag:
    """Detect image format from magic bytes, UNKNOWN when nothing matches."""
    for magic, fmt in MAGIC_BYTES.items():
        if data.startswith(magic):
            return fmt
    return FormatTag.UNKNOWN


def content_type(fmt: FormatTag) -> str:
    return CONTENT_TYPES.get(fmt, "application/octet-stream")


@dataclass(frozen=True)
class OutputFormatPolicy:
    """
    Decides which format a derived image is written in.

    Rules, in order:
    - JPEG stays JPEG.
    - Anything carrying transparency becomes PNG.
    - Opaque GIF becomes PNG (palette artwork survives lossless encoding better).
    - Opaque PNG becomes JPEG when ``lossy_opaque_png`` is set, otherwise stays PNG.

    The decision is taken once per image, when it is validated.
    """
    lossy_opaque_png: bool = True

    def choose(self, input_format: FormatTag, has_transparency: bool) -> FormatTag:
        if input_format == FormatTag.JPEG:
            return FormatTag.JPEG
        if has_transparency:
            return FormatTag.PNG
        if input_format == FormatTag.PNG:
            return FormatTag.JPEG if self.lossy_opaque_png else FormatTag.PNG
        return FormatTag.PNG


DEFAULT_POLICY = OutputFormatPolicy()
