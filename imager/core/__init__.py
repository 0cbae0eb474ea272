# imager/core/__init__.py
"""
Core -- image validation and geometry, independent of any codec.

Format sniffing, admission control, orientation normalization, thumbnail
and crop geometry, and the Image handle that drives a Codec through them.

Canonical imports:
    from imager.core import Image, validate
    from imager.core.geometry import thumbnail_size, crop_box
    from imager.core.errors import UnknownFormatError, TooBigError
"""
from imager.core.errors import (  # noqa: F401
    ImagerError,
    UnknownFormatError,
    TooBigError,
    EncodeError,
    ClosedError,
)
from imager.core.formats import FormatTag, OutputFormatPolicy  # noqa: F401
from imager.core.domain import Dimensions, ImageHeader  # noqa: F401
from imager.core.orientation import Transform, normalize  # noqa: F401
from imager.core.geometry import CropBox, thumbnail_size, crop_box  # noqa: F401
from imager.core.ports import Codec  # noqa: F401
from imager.core.image import Image, ImageConfig, validate  # noqa: F401
