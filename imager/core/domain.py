# imager/core/domain.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from imager.core.formats import FormatTag
from imager.core.orientation import Transform


@dataclass(frozen=True)
class Dimensions:
    """Display (post-orientation) size in pixels."""
    width: int
    height: int

    @property
    def pixels(self) -> int:
        return self.width * self.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class ImageHeader:
    """What a codec can learn from container metadata without decoding pixels."""
    raw_width: int
    raw_height: int
    format: FormatTag
    orientation: Optional[int] = None


@dataclass(frozen=True)
class Admission:
    """Outcome of a successful admission check."""
    dimensions: Dimensions
    transform: Transform
    orientation: int
    input_format: FormatTag


@dataclass(frozen=True)
class ThumbnailRequest:
    max_width: int
    max_height: int
    fit_inside: bool = True


@dataclass(frozen=True)
class CropRequest:
    target_width: int
    target_height: int
