"""
Error types raised by the banner animator core.

Only malformed input that points at a caller bug is raised. Missing layers,
frames or siblings are logged and skipped by the components themselves.
"""


class BannerAnimatorError(Exception):
    """Base class for all banner animator errors."""


class InvalidFrameIdError(BannerAnimatorError, ValueError):
    """Raised when a GIF frame identifier cannot be parsed."""

    def __init__(self, frame_id, reason: str = ""):
        self.frame_id = frame_id
        self.reason = reason
        message = f"Invalid GIF frame id: {frame_id!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ExportPlanError(BannerAnimatorError):
    """Raised when an export plan file is malformed."""
