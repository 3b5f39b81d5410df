"""Exception types raised by photogate."""
from typing import Optional


class PhotogateError(Exception):
    """Base class for all photogate errors."""


class AnalysisError(PhotogateError):
    """An LSB analysis could not produce a report."""


class InvalidImageBuffer(AnalysisError):
    """The raw sample buffer has a malformed channel/sample layout."""


class InvalidParameter(AnalysisError):
    """An analysis parameter (e.g. block size) is out of range."""


class UnclassifiableImage(AnalysisError):
    """The analysis ran but no verdict can be given.

    Approval must be refused when this is raised; rejection is unaffected.
    """


class InsufficientData(UnclassifiableImage):
    """The image has no pixels to build a single block from."""


class AnalysisTimeout(UnclassifiableImage):
    """The analysis exceeded its deadline."""

    def __init__(self, deadline: float):
        super().__init__(f"Analysis exceeded deadline of {deadline:.2f}s")
        self.deadline = deadline


class ModerationError(PhotogateError):
    """A moderation action could not be applied."""


class NotFound(ModerationError):
    """No photo exists with the requested id."""

    def __init__(self, photo_id: str):
        super().__init__(f"Photo not found: {photo_id}")
        self.photo_id = photo_id


class InvalidTransition(ModerationError):
    """The photo is not in a state that allows the requested transition."""

    def __init__(self, photo_id: str, current: Optional[str], target: str):
        if current is None:
            message = f"Invalid target status {target!r} for photo {photo_id}"
        else:
            message = f"Cannot move photo {photo_id} from {current!r} to {target!r}"
        super().__init__(message)
        self.photo_id = photo_id
        self.current = current
        self.target = target


class StaleRecord(ModerationError):
    """The stored photo changed after it was read."""

    def __init__(self, photo_id: str, expected: int, found: int):
        super().__init__(
            f"Photo {photo_id} is at version {found}, write was based on version {expected}"
        )
        self.photo_id = photo_id
        self.expected = expected
        self.found = found


class InvalidUpload(PhotogateError):
    """A submitted payload is not an acceptable image."""


class AuthenticationError(PhotogateError):
    """An actor token is malformed, forged or expired."""
