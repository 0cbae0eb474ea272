# imager/core/image.py
"""
Image handle: validated, decoded source image plus derivation operations.

Lifecycle:
    Image(data, max_buffer_pixels)  -> validated (or raises, holding nothing)
    img.thumbnail(...) / img.crop(...)  -> new bytes, handle unchanged
    img.close()  -> released; further derivations raise ClosedError

Use it as a context manager so the decoded buffer is released on every
exit path:

    with Image(data, max_buffer_pixels=10_000_000) as img:
        thumb = img.thumbnail(200, 300)

A handle is owned by one caller. Separate handles share no state and can be
used from separate threads; calls on a single handle must be serialized.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Optional

from imager.core.admission import MAX_DIMENSION, admit
from imager.core.builder import DerivedImageBuilder, SourceImage
from imager.core.domain import CropRequest, Dimensions, ThumbnailRequest
from imager.core.errors import ClosedError, UnknownFormatError
from imager.core.formats import DEFAULT_POLICY, FormatTag, OutputFormatPolicy
from imager.core.orientation import Transform
from imager.core.ports import Codec

logger = logging.getLogger(__name__)


@dataclass
class ImageConfig:
    """Configuration for decoding and re-encoding"""
    max_dimension: int = MAX_DIMENSION
    jpeg_quality: int = 85
    png_optimize: bool = True
    resample_filter: str = "lanczos"
    format_policy: OutputFormatPolicy = field(default_factory=lambda: DEFAULT_POLICY)


def get_image_config() -> ImageConfig:
    """Build ImageConfig from application settings."""
    from imager.config import settings

    return ImageConfig(
        max_dimension=settings.max_dimension,
        jpeg_quality=settings.jpeg_quality,
        png_optimize=settings.png_optimize,
        resample_filter=settings.resample_filter,
        format_policy=OutputFormatPolicy(lossy_opaque_png=settings.lossy_opaque_png),
    )


# Default configuration (static fallback)
DEFAULT_CONFIG = ImageConfig()


def default_codec(config: ImageConfig) -> Codec:
    from imager.infra.codec import PillowCodec

    return PillowCodec(
        jpeg_quality=config.jpeg_quality,
        png_optimize=config.png_optimize,
        resample_filter=config.resample_filter,
    )


class Image:
    def __init__(
        self,
        data: bytes,
        max_buffer_pixels: int,
        config: Optional[ImageConfig] = None,
        codec: Optional[Codec] = None,
    ):
        self.image_id = uuid.uuid4().hex[:12]
        self._source: Optional[SourceImage] = None
        config = config or DEFAULT_CONFIG
        self._codec = codec or default_codec(config)

        sniffed = self._codec.sniff(data)
        header = self._codec.decode_header(data)
        if header.format != sniffed:
            raise UnknownFormatError(
                f"Image signature says {sniffed.value} but decoder found {header.format.value}"
            )
        admission = admit(header, max_buffer_pixels, config.max_dimension)

        buffer = self._codec.decode_full(data)
        try:
            output_format = config.format_policy.choose(
                admission.input_format,
                self._codec.has_transparency(buffer),
            )
        except Exception:
            self._codec.release(buffer)
            raise

        self._source = SourceImage(
            buffer=buffer,
            dimensions=admission.dimensions,
            transform=admission.transform,
            output_format=output_format,
        )
        self._builder = DerivedImageBuilder(self._codec)
        self._orientation = admission.orientation
        self._input_format = admission.input_format

        logger.debug(
            f"Image {self.image_id} opened: {admission.input_format.value} {admission.dimensions}, "
            f"orientation={admission.orientation}, output={output_format.value}"
        )

    # ------------------------------------------------------------------
    # Accessors (fixed at construction)
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._source.dimensions.width

    @property
    def height(self) -> int:
        return self._source.dimensions.height

    @property
    def dimensions(self) -> Dimensions:
        return self._source.dimensions

    @property
    def input_format(self) -> FormatTag:
        return self._input_format

    @property
    def output_format(self) -> FormatTag:
        return self._source.output_format

    @property
    def orientation(self) -> int:
        return self._orientation

    @property
    def transform(self) -> Transform:
        return self._source.transform

    @property
    def closed(self) -> bool:
        return self._source is None or self._source.buffer is None

    # ------------------------------------------------------------------
    # Derivations
    # ------------------------------------------------------------------

    def thumbnail(self, max_width: int, max_height: int, fit_inside: bool = True) -> bytes:
        """
        Scale down to fit (fit_inside=True) or fill (fit_inside=False) a
        max_width x max_height box and encode. Never upscales.
        """
        self._check_open()
        return self._builder.thumbnail(
            self._source, ThumbnailRequest(max_width, max_height, fit_inside)
        )

    def crop(self, target_width: int, target_height: int) -> bytes:
        """Centered crop; oversized requests shrink to the same aspect ratio."""
        self._check_open()
        return self._builder.crop(self._source, CropRequest(target_width, target_height))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the decoded buffer. Safe to call more than once."""
        if self.closed:
            return
        buffer = self._source.buffer
        self._source = replace(self._source, buffer=None)
        self._codec.release(buffer)

    def _check_open(self) -> None:
        if self.closed:
            raise ClosedError()

    def __enter__(self) -> "Image":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._source is None:
            return f"<Image {self.image_id} uninitialized>"
        state = "closed" if self.closed else "open"
        return f"<Image {self.image_id} {self.input_format.value} {self.dimensions} {state}>"


def validate(
    data: bytes,
    max_buffer_pixels: int,
    config: Optional[ImageConfig] = None,
    codec: Optional[Codec] = None,
) -> tuple[Dimensions, FormatTag]:
    """
    Check that data is a decodable image within the pixel budget.

    Returns display dimensions and input format. Nothing is retained: the
    decoded buffer is released before returning.
    """
    with Image(data, max_buffer_pixels, config=config, codec=codec) as img:
        return img.dimensions, img.input_format
