# imager/core/ports.py
from __future__ import annotations
from typing import Any, Protocol

from imager.core.domain import ImageHeader
from imager.core.formats import FormatTag
from imager.core.geometry import CropBox
from imager.core.orientation import Transform


# Opaque decoded pixel buffer owned by the codec
NativeBuffer = Any


class Codec(Protocol):
    """
    Pixel decode/resize/encode backend.

    Every method returning a NativeBuffer hands ownership of a *new* buffer
    to the caller, who must pass it to ``release`` exactly once. Input
    buffers are never modified.
    """

    def sniff(self, data: bytes) -> FormatTag:
        """Format from leading bytes; raises UnknownFormatError."""
        ...

    def decode_header(self, data: bytes) -> ImageHeader:
        """Raw size, orientation code and format without materializing pixels."""
        ...

    def decode_full(self, data: bytes) -> NativeBuffer: ...
    def has_transparency(self, buf: NativeBuffer) -> bool: ...
    def transform(self, buf: NativeBuffer, transform: Transform) -> NativeBuffer: ...
    def resize(self, buf: NativeBuffer, width: int, height: int) -> NativeBuffer: ...
    def crop(self, buf: NativeBuffer, box: CropBox) -> NativeBuffer: ...

    def encode(self, buf: NativeBuffer, fmt: FormatTag) -> bytes:
        """Raises EncodeError when no output could be produced."""
        ...

    def release(self, buf: NativeBuffer) -> None: ...
