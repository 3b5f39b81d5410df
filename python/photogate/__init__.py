"""
photogate - LSB screening and moderation gate for user-submitted photos.

Submitted photos wait in a pending queue until a moderator approves or
rejects them. Approval is blocked for images whose blue-channel
least-significant bits look like embedded data.
"""

from .analyzer import LSBAnalyzer, analyze, classify
from .bitplane import block_averages, extract_bit_planes
from .gate import ModerationGate
from .policy import threshold_profile
from .store import InMemoryPhotoStore, JsonPhotoStore, PhotoStore
from .auth import ActorTokens
from .errors import (
    PhotogateError,
    AnalysisError,
    InvalidImageBuffer,
    InvalidParameter,
    UnclassifiableImage,
    InsufficientData,
    AnalysisTimeout,
    ModerationError,
    NotFound,
    InvalidTransition,
    StaleRecord,
    InvalidUpload,
    AuthenticationError,
)
from .types import (
    AnalysisOptions,
    AnalysisReport,
    ImageFormat,
    ModerationOutcome,
    ModerationResult,
    Photo,
    PhotoStatus,
    RawImageSample,
    ThresholdProfile,
)

__version__ = "0.1.0"
__all__ = [
    "LSBAnalyzer",
    "analyze",
    "classify",
    "block_averages",
    "extract_bit_planes",
    "ModerationGate",
    "threshold_profile",
    "InMemoryPhotoStore",
    "JsonPhotoStore",
    "PhotoStore",
    "ActorTokens",
    "PhotogateError",
    "AnalysisError",
    "InvalidImageBuffer",
    "InvalidParameter",
    "UnclassifiableImage",
    "InsufficientData",
    "AnalysisTimeout",
    "ModerationError",
    "NotFound",
    "InvalidTransition",
    "StaleRecord",
    "InvalidUpload",
    "AuthenticationError",
    "AnalysisOptions",
    "AnalysisReport",
    "ImageFormat",
    "ModerationOutcome",
    "ModerationResult",
    "Photo",
    "PhotoStatus",
    "RawImageSample",
    "ThresholdProfile",
]
