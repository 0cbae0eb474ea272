# imager/core/orientation.py
"""
EXIF orientation normalization.

An orientation code (1-8) says how the stored pixels must be transformed
to be shown upright. ``normalize`` is applied exactly once, when an image
is validated; the resulting display dimensions and ``Transform`` are stored
and reused for every derivation so reported size and encoded pixels agree.

Transform convention: mirror horizontally first (if ``flip``), then rotate
clockwise by ``rotate`` degrees.

    code  stored as            transform
    1     upright              identity
    2     mirrored             flip
    3     upside down          rotate 180
    4     flipped vertically   flip + rotate 180
    5     transposed           flip + rotate 270
    6     rotated 90 CCW       rotate 90
    7     transversed          flip + rotate 90
    8     rotated 90 CW        rotate 270
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Transform:
    rotate: int = 0
    flip: bool = False

    @property
    def is_identity(self) -> bool:
        return self.rotate == 0 and not self.flip

    @property
    def swaps_axes(self) -> bool:
        return self.rotate in (90, 270)


IDENTITY = Transform()

ORIENTATION_TRANSFORMS: dict[int, Transform] = {
    1: IDENTITY,
    2: Transform(rotate=0, flip=True),
    3: Transform(rotate=180),
    4: Transform(rotate=180, flip=True),
    5: Transform(rotate=270, flip=True),
    6: Transform(rotate=90),
    7: Transform(rotate=90, flip=True),
    8: Transform(rotate=270),
}


def transform_for(code: int | None) -> Transform:
    """Unknown or missing codes are treated as upright."""
    return ORIENTATION_TRANSFORMS.get(code, IDENTITY)


def normalize(raw_width: int, raw_height: int, code: int | None) -> tuple[int, int, Transform]:
    """Return display (width, height) and the transform that makes stored pixels upright."""
    transform = transform_for(code)
    if transform.swaps_axes:
        return raw_height, raw_width, transform
    return raw_width, raw_height, transform
