"""Service error hierarchy for variant generation.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- TransientError: Errors that may succeed on retry (I/O hiccups, disk full)
- PermanentError: Errors that will not succeed on retry (bad input, missing rows)
"""


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Temporary I/O failure writing a derivative
    - Storage full
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Image row missing
    - Corrupt or unreadable source file
    - Format not supported by the installed encoder
    """

    pass


# Variant-specific errors
class VariantError(ServiceError):
    """Base exception for variant pipeline errors."""

    pass


class ImageNotFoundError(VariantError, PermanentError):
    """Image id does not exist (stale id from the caller)."""

    def __init__(self, image_id: int):
        super().__init__(f"Image {image_id} not found")
        self.image_id = image_id


class EncodingError(VariantError):
    """Base exception for derivative encoding failures."""

    pass


class UnsupportedFormatError(EncodingError, PermanentError):
    """Target format cannot be written by the installed encoder."""

    pass


class SourceImageError(EncodingError, PermanentError):
    """Source file missing, unreadable or corrupt."""

    pass


class DerivativeWriteError(EncodingError, TransientError):
    """Derivative could not be written to disk."""

    pass
