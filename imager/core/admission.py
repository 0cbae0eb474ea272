# imager/core/admission.py
"""
Admission control on header metadata.

Runs before any full decode. A small file can declare enormous dimensions
(decompression bomb); by the time pixels are allocated we already know the
display size fits the caller's budget.
"""
from __future__ import annotations

import logging

from imager.core.domain import Admission, Dimensions, ImageHeader
from imager.core.errors import TooBigError, UnknownFormatError
from imager.core.formats import FormatTag
from imager.core.orientation import ORIENTATION_TRANSFORMS, normalize

logger = logging.getLogger(__name__)

# Anything smaller on either axis carries no visual content
MIN_DIMENSION = 2

# Per-axis ceiling, independent of the pixel budget
MAX_DIMENSION = 32_767


def admit(
    header: ImageHeader,
    max_buffer_pixels: int,
    max_dimension: int = MAX_DIMENSION,
) -> Admission:
    """
    Check header metadata against the size floor and the pixel budget.

    Raises:
        UnknownFormatError: unsupported format or either display axis below MIN_DIMENSION
        TooBigError: display pixel count above max_buffer_pixels, or an axis above max_dimension
    """
    if header.format == FormatTag.UNKNOWN:
        raise UnknownFormatError("Unsupported image format")

    width, height, transform = normalize(header.raw_width, header.raw_height, header.orientation)
    dimensions = Dimensions(width, height)
    orientation = header.orientation if header.orientation in ORIENTATION_TRANSFORMS else 1

    if width < MIN_DIMENSION or height < MIN_DIMENSION:
        logger.info(f"Rejecting degenerate {header.format.value} image: {dimensions}")
        raise UnknownFormatError(
            f"Image dimensions {dimensions} are below the {MIN_DIMENSION}x{MIN_DIMENSION} minimum"
        )

    if width > max_dimension or height > max_dimension:
        logger.warning(f"Rejecting oversized image: {dimensions} exceeds {max_dimension}px per axis")
        raise TooBigError(f"Image dimensions {dimensions} exceed {max_dimension}px per axis")

    if dimensions.pixels > max_buffer_pixels:
        logger.warning(
            f"Rejecting image over pixel budget: {dimensions} "
            f"({dimensions.pixels:,} > {max_buffer_pixels:,} pixels)"
        )
        raise TooBigError(
            f"Image has {dimensions.pixels:,} pixels, exceeds limit of {max_buffer_pixels:,}"
        )

    logger.debug(
        f"Admitted {header.format.value} {dimensions} "
        f"(raw={header.raw_width}x{header.raw_height}, orientation={orientation})"
    )
    return Admission(
        dimensions=dimensions,
        transform=transform,
        orientation=orientation,
        input_format=header.format,
    )
