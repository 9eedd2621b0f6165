"""
CivicAI - Error Taxonomy
Every failure the system can distinguish gets its own type and message.
"""

from typing import Optional, Sequence


class CivicAIError(Exception):
    """Base error for CivicAI."""

    user_message = "The operation could not be completed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


# -----------------------------------------------------------------------------
# Capture
# -----------------------------------------------------------------------------

class CaptureError(CivicAIError):
    """Raised by the camera/microphone capture flow."""


class DeviceAccessDenied(CaptureError):
    """Camera or microphone access was refused or the device is unavailable."""

    user_message = "Camera access was denied. Allow camera access or choose a file instead."


class DeviceNotReady(CaptureError):
    """The camera has not delivered a frame yet. Retry without reopening."""

    user_message = "The camera is still starting. Wait a moment and try again."


class InvalidCaptureState(CaptureError):
    """A capture operation was invoked from a state that does not allow it."""

    user_message = "That camera action is not available right now."


class RecordingFailed(CaptureError):
    """The recorder stopped with an error before the recording was finalized."""

    user_message = "The recording failed. Please try recording again."


class LocationUnavailable(CivicAIError):
    """No position fix could be obtained. Manual entry is the fallback."""

    user_message = "Your location could not be determined. Enter an address or area name instead."


# -----------------------------------------------------------------------------
# Upload
# -----------------------------------------------------------------------------

class UploadError(CivicAIError):
    """Raised when media cannot be accepted or stored."""


class UnsupportedMediaType(UploadError):
    """The media is neither an image nor a video."""

    user_message = "Only photos and videos can be attached to a report."

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(f"Unsupported media type: {mime_type!r}")


class MediaTooLarge(UploadError):
    """The media exceeds the size ceiling for its kind."""

    def __init__(self, kind: str, size_bytes: int, limit_bytes: int):
        self.kind = kind
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"{kind} of {size_bytes} bytes exceeds the {limit_bytes} byte limit"
        )

    @property
    def user_message(self) -> str:
        limit_mb = self.limit_bytes // (1024 * 1024)
        return f"This {self.kind} is too large. The limit is {limit_mb} MB."


class UploadFailed(UploadError):
    """The blob store rejected or could not receive the upload."""

    user_message = "The photo or video could not be uploaded. Check your connection and try again."


# -----------------------------------------------------------------------------
# Submission
# -----------------------------------------------------------------------------

class SubmissionError(CivicAIError):
    """Raised when an issue report cannot be submitted."""


class IncompleteDraft(SubmissionError):
    """Submission was attempted before every required field was present."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Draft is missing: {', '.join(self.missing)}")

    @property
    def user_message(self) -> str:
        return f"Please add the following before submitting: {', '.join(self.missing)}."


class SubmissionInProgress(SubmissionError):
    """A submission is already in flight for this session."""

    user_message = "Your report is already being submitted."


class CreateFailed(SubmissionError):
    """The media was uploaded but the issue record could not be created."""

    user_message = "Your report could not be saved. Please try submitting again."


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------

class StoreError(CivicAIError):
    """Raised by issue store implementations."""

    user_message = "The issue database returned an error."


class StoreUnreachable(StoreError):
    """The store could not be reached."""

    user_message = "The issue database could not be reached. Check your connection."


class RecordNotFound(StoreError):
    """The addressed issue does not exist."""

    user_message = "That issue no longer exists."


class ChangeFeedError(StoreError):
    """The change feed stopped delivering events."""

    user_message = "Live updates have stopped. Reload the dashboard to resume."


# -----------------------------------------------------------------------------
# Lifecycle
# -----------------------------------------------------------------------------

class InvalidStatus(CivicAIError):
    """A status value outside the issue lifecycle."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Unknown issue status: {status!r}")

    @property
    def user_message(self) -> str:
        return f"'{self.status}' is not a valid issue status."


class UpdateFailed(CivicAIError):
    """A status change could not be applied."""

    user_message = "The issue could not be updated. Please try again."


def describe_error(exc: BaseException) -> str:
    """Return the message to show a citizen or operator for an error."""
    if isinstance(exc, CivicAIError):
        return exc.user_message
    return "Something went wrong. Please try again."
