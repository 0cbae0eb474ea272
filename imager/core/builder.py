# imager/core/builder.py
"""
Derived-image builder.

Drives a codec through orient -> resize/crop -> encode for one already
validated source buffer. The source is never modified; every intermediate
buffer is released before returning, on success and on failure.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from imager.core.domain import CropRequest, Dimensions, ThumbnailRequest
from imager.core.formats import FormatTag
from imager.core.geometry import crop_box, thumbnail_size
from imager.core.orientation import Transform
from imager.core.ports import Codec, NativeBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceImage:
    """A decoded source together with what was decided about it at validation time."""
    buffer: NativeBuffer
    dimensions: Dimensions
    transform: Transform
    output_format: FormatTag


class DerivedImageBuilder:
    def __init__(self, codec: Codec):
        self.codec = codec

    def thumbnail(self, source: SourceImage, request: ThumbnailRequest) -> bytes:
        out_w, out_h = thumbnail_size(
            source.dimensions.width,
            source.dimensions.height,
            request.max_width,
            request.max_height,
            request.fit_inside,
        )

        # Resize in stored orientation, then rotate: the transform runs on the
        # small buffer instead of the full decode.
        if source.transform.swaps_axes:
            raw_target = (out_h, out_w)
            raw_size = (source.dimensions.height, source.dimensions.width)
        else:
            raw_target = (out_w, out_h)
            raw_size = (source.dimensions.width, source.dimensions.height)

        intermediates: list[NativeBuffer] = []
        try:
            buf = source.buffer
            if raw_target != raw_size:
                buf = self.codec.resize(buf, *raw_target)
                intermediates.append(buf)
            if not source.transform.is_identity:
                buf = self.codec.transform(buf, source.transform)
                intermediates.append(buf)
            data = self.codec.encode(buf, source.output_format)
        finally:
            self._release_all(intermediates)

        logger.info(
            f"Thumbnail built: {source.dimensions} -> {out_w}x{out_h} "
            f"{source.output_format.value}, {len(data)} bytes"
        )
        return data

    def crop(self, source: SourceImage, request: CropRequest) -> bytes:
        box = crop_box(
            source.dimensions.width,
            source.dimensions.height,
            request.target_width,
            request.target_height,
        )

        intermediates: list[NativeBuffer] = []
        try:
            buf = source.buffer
            if not source.transform.is_identity:
                buf = self.codec.transform(buf, source.transform)
                intermediates.append(buf)
            buf = self.codec.crop(buf, box)
            intermediates.append(buf)
            data = self.codec.encode(buf, source.output_format)
        finally:
            self._release_all(intermediates)

        logger.info(
            f"Crop built: {source.dimensions} -> {box.width}x{box.height} "
            f"at ({box.offset_x},{box.offset_y}) {source.output_format.value}, {len(data)} bytes"
        )
        return data

    def _release_all(self, buffers: list[NativeBuffer]) -> None:
        for buf in reversed(buffers):
            self.codec.release(buf)
