# imager/core/geometry.py
"""
Thumbnail and crop geometry.

Pure functions over display dimensions. Scale factors are kept as exact
fractions so width and height round the same way; the final step is a
round-half-up to whole pixels.

Two scaling modes:
- fit inside: the whole result fits the box (scale = min of axis ratios)
- fill: one axis matches its bound, the other may overflow (scale = max)

Neither mode ever upscales: the scale is clamped to 1.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from fractions import Fraction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CropBox:
    width: int
    height: int
    offset_x: int
    offset_y: int

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, upper, right, lower) rectangle."""
        return (
            self.offset_x,
            self.offset_y,
            self.offset_x + self.width,
            self.offset_y + self.height,
        )


def round_half_up(value: Fraction | float) -> int:
    return math.floor(value + Fraction(1, 2))


def _require_positive(**dims: int) -> None:
    for name, value in dims.items():
        if value < 1:
            raise ValueError(f"{name} must be a positive integer, got {value}")


def _require_non_negative(**dims: int) -> None:
    for name, value in dims.items():
        if value < 0:
            raise ValueError(f"{name} must be a non-negative integer, got {value}")


def thumbnail_scale(src_w: int, src_h: int, max_w: int, max_h: int, fit_inside: bool) -> Fraction:
    """Scale factor for a thumbnail, clamped so it never exceeds 1."""
    _require_positive(src_w=src_w, src_h=src_h)
    _require_non_negative(max_w=max_w, max_h=max_h)
    scale_w = Fraction(max_w, src_w)
    scale_h = Fraction(max_h, src_h)
    scale = min(scale_w, scale_h) if fit_inside else max(scale_w, scale_h)
    return min(scale, Fraction(1))


def thumbnail_size(src_w: int, src_h: int, max_w: int, max_h: int, fit_inside: bool) -> tuple[int, int]:
    """
    Target (width, height) for a thumbnail of a src_w x src_h image.

    With fit_inside the result fits within (max_w, max_h); otherwise at least
    one axis equals its bound when the source is large enough. The result is
    never larger than the source on either axis. A zero bound contributes a
    zero scale; each output axis is still at least one pixel.
    """
    scale = thumbnail_scale(src_w, src_h, max_w, max_h, fit_inside)
    if scale == 1:
        return src_w, src_h

    out_w = max(1, round_half_up(src_w * scale))
    out_h = max(1, round_half_up(src_h * scale))
    logger.debug(
        f"Thumbnail geometry: {src_w}x{src_h} -> {out_w}x{out_h} "
        f"(box={max_w}x{max_h}, fit_inside={fit_inside}, scale={float(scale):.4f})"
    )
    return out_w, out_h


def crop_box(src_w: int, src_h: int, target_w: int, target_h: int) -> CropBox:
    """
    Centered crop rectangle for a target_w x target_h request.

    A request that fits the source is honored exactly. An oversized request
    is shrunk to the largest rectangle of the same aspect ratio that fits,
    so a crop never upscales and never leaves the source bounds.
    """
    _require_positive(src_w=src_w, src_h=src_h, target_w=target_w, target_h=target_h)

    if target_w <= src_w and target_h <= src_h:
        out_w, out_h = target_w, target_h
    else:
        scale = min(Fraction(src_w, target_w), Fraction(src_h, target_h))
        out_w = min(src_w, max(1, round_half_up(target_w * scale)))
        out_h = min(src_h, max(1, round_half_up(target_h * scale)))
        logger.debug(
            f"Crop request {target_w}x{target_h} exceeds source {src_w}x{src_h}, "
            f"clamped to {out_w}x{out_h}"
        )

    return CropBox(
        width=out_w,
        height=out_h,
        offset_x=(src_w - out_w) // 2,
        offset_y=(src_h - out_h) // 2,
    )
