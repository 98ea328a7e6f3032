"""Domain-specific exceptions for the sprite catalog."""

from pathlib import Path


class ValidationError(ValueError):
    """Raised when user-provided settings fail validation."""


class InvalidGridError(ValidationError):
    """Raised when grid parameters cannot describe a usable grid."""


class PackFormatError(ValueError):
    """Raised when a pack definition file is missing or malformed."""

    def __init__(self, path: Path | None, reason: str):
        message = reason if path is None else f"{path}: {reason}"
        super().__init__(message)
        self.reason = reason


class FrameIndexError(IndexError):
    """Raised when a frame index falls outside a sprite's frame list."""

    def __init__(self, index: int, frame_count: int):
        super().__init__(f"Frame index {index} out of range (0..{frame_count - 1})")
        self.index = index
        self.frame_count = frame_count


class ImageProcessingError(RuntimeError):
    """Raised when the image backend fails to decode, crop, resize or compose."""


class FetchError(RuntimeError):
    """Raised when a pack archive cannot be downloaded or extracted."""


class SessionClosedError(RuntimeError):
    """Raised when a selector session is used after its result was handed off."""
