"""Error taxonomy for Radici.

Every error raised by the roster operations is local and recoverable: the
operation fails as a whole and the caller's snapshot is left untouched.
"""

from typing import Any


class RadiciError(Exception):
    """Base class for all Radici errors.

    Carries a machine-readable ``error_code`` (the class name by default) and
    a ``context`` dictionary with the offending values.
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and structured output."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }


class NotFoundError(RadiciError):
    """A member or document id is absent from the current roster."""


class InvalidValueError(RadiciError):
    """A value lies outside one of the fixed enumerations or field bounds."""


class InvalidRelationshipError(InvalidValueError):
    """Unknown relationship tag, or a relationship change that is not allowed."""


class InvalidStatusError(InvalidValueError):
    """Unknown document status."""


class UnsupportedMediaTypeError(InvalidValueError):
    """Image MIME type is not an accepted image format."""


class InvalidMemberDataError(InvalidValueError):
    """Member identity fields failed validation."""


class PayloadTooLargeError(RadiciError):
    """Image exceeds the upload size ceiling."""


class StructuralViolationError(RadiciError):
    """The operation would break a roster invariant."""


class CannotRemovePrimaryError(StructuralViolationError):
    """The primary applicant cannot be removed."""


class CannotRemoveAncestorError(StructuralViolationError):
    """The Italian ancestor cannot be removed."""


class SnapshotFormatError(RadiciError):
    """An exported snapshot could not be read."""


ERROR_MESSAGES = {
    "NotFoundError": "That family member or document no longer exists",
    "InvalidRelationshipError": "That relationship is not supported",
    "InvalidStatusError": "Status must be not_started, in_progress or complete",
    "UnsupportedMediaTypeError": "File must be an image (JPEG, PNG, GIF, or WebP)",
    "InvalidMemberDataError": "Some family member details are not valid",
    "PayloadTooLargeError": "File size must be less than 10MB",
    "CannotRemovePrimaryError": "You cannot remove the primary applicant",
    "CannotRemoveAncestorError": "You cannot remove the Italian ancestor",
    "SnapshotFormatError": "Invalid data file format",
}


def get_user_friendly_message(error: RadiciError) -> str:
    """Get a message suitable for showing to the user.

    Args:
        error: Radici error instance

    Returns:
        User-facing description of the error
    """
    friendly_msg = ERROR_MESSAGES.get(error.__class__.__name__, error.message)

    if isinstance(error, PayloadTooLargeError) and error.context.get("max_bytes"):
        max_mb = error.context["max_bytes"] / (1024 * 1024)
        return f"File size must be less than {max_mb:g}MB"

    if isinstance(error, (InvalidMemberDataError, SnapshotFormatError)) and (
        error.message != friendly_msg
    ):
        return f"{friendly_msg}: {error.message}"

    return friendly_msg
