# imager/core/errors.py
"""
Typed errors for image validation and derivation.

Each error carries the HTTP status code a front end should answer with.
The transport layer catches ``ImagerError`` subtypes and converts them to
responses without embedding image logic in the route handlers.

None of these are retried: a corrupt decode or an over-budget image
cannot succeed on a second attempt.
"""
from __future__ import annotations


class ImagerError(Exception):
    """Base class for all imager errors."""

    status_code: int = 500

    def __init__(self, detail: str = "Image processing error"):
        self.detail = detail
        super().__init__(detail)


class UnknownFormatError(ImagerError):
    """Unrecognized signature, corrupt/truncated data, or degenerate dimensions (415)."""

    status_code = 415


class TooBigError(ImagerError):
    """Display pixel count exceeds the caller's admission budget (413)."""

    status_code = 413


class EncodeError(ImagerError):
    """Codec failed to produce output bytes for a valid request (500)."""

    status_code = 500


class ClosedError(ImagerError, ValueError):
    """Operation attempted on a released image handle."""

    status_code = 500

    def __init__(self, detail: str = "I/O operation on closed image"):
        super().__init__(detail)
