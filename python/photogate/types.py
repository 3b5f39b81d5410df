"""Type definitions for photogate."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, Union

from .config import (
    DEFAULT_BLOCK_SIZE,
    DEFAULT_CHANNEL,
    DEADLINE_BASE_SECONDS,
    DEADLINE_PER_MEGAPIXEL_SECONDS,
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def data_url_format(url: str) -> str:
    """MIME subtype named in a ``data:`` URL header, lower-cased.

    ``data:image/PNG;base64,...`` gives ``"png"``. The header is not
    validated here; see ``decode.parse_data_url``.
    """
    header = url.split(",", 1)[0]
    mime = header.split(";", 1)[0].split(":", 1)[-1]
    return mime.split("/", 1)[-1].strip().lower()


class ImageFormat(Enum):
    """Encoding classes that select a threshold profile."""
    LOSSY = "lossy"
    LOSSLESS = "lossless"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: Union[str, "ImageFormat", None]) -> "ImageFormat":
        """Resolve a declared format name ("jpeg", "image/png", ...)."""
        if isinstance(name, ImageFormat):
            return name
        if not name:
            return cls.OTHER
        normalized = name.strip().lower()
        if normalized.startswith("image/"):
            normalized = normalized[len("image/"):]
        if normalized in ("jpeg", "jpg"):
            return cls.LOSSY
        if normalized == "png":
            return cls.LOSSLESS
        return cls.OTHER


class PhotoStatus(Enum):
    """Moderation status of a photo."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ModerationOutcome(Enum):
    """Outcome of a status change that did not raise."""
    APPROVED = "approved"
    REFUSED = "refused"
    REJECTED = "rejected"


@dataclass(frozen=True)
class RawImageSample:
    """A decoded image as channel-interleaved sample bytes.

    Sample ``i`` belongs to channel ``i % channels``; the first three channels
    are red, green and blue.
    """
    width: int
    height: int
    channels: int
    samples: bytes

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class ThresholdProfile:
    """Suspicion window and tolerated proportion for one format class."""
    lower: float
    upper: float
    max_suspicious_proportion: float


@dataclass(frozen=True)
class AnalysisReport:
    """Result of one LSB analysis."""
    is_suspicious: bool
    suspect_blocks: int
    total_blocks: int
    suspicious_proportion: float
    max_suspicious_proportion: float
    thresholds: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_suspicious": self.is_suspicious,
            "suspect_blocks": self.suspect_blocks,
            "total_blocks": self.total_blocks,
            "suspicious_proportion": self.suspicious_proportion,
            "max_suspicious_proportion": self.max_suspicious_proportion,
            "thresholds": {
                "lower": self.thresholds["lower"],
                "upper": self.thresholds["upper"],
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisReport":
        return cls(
            is_suspicious=bool(data["is_suspicious"]),
            suspect_blocks=int(data["suspect_blocks"]),
            total_blocks=int(data["total_blocks"]),
            suspicious_proportion=float(data["suspicious_proportion"]),
            max_suspicious_proportion=float(data["max_suspicious_proportion"]),
            thresholds={
                "lower": float(data["thresholds"]["lower"]),
                "upper": float(data["thresholds"]["upper"]),
            },
        )


@dataclass
class Photo:
    """A submitted photo and its moderation state.

    ``url`` holds the image inline as ``data:image/<fmt>;base64,<payload>``.
    Only the moderation gate changes ``status``, ``approved_at`` and
    ``approved_by``. ``version`` is bumped by the store on every update
    and lets it detect a write based on a stale read.
    """
    id: str
    url: str
    status: PhotoStatus = PhotoStatus.PENDING
    uploaded_at: datetime = field(default_factory=utcnow)
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    version: int = 0

    @property
    def format_name(self) -> str:
        """MIME subtype of the inline payload, e.g. ``"jpeg"``."""
        return data_url_format(self.url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "status": self.status.value,
            "uploaded_at": self.uploaded_at.isoformat(),
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "approved_by": self.approved_by,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Photo":
        approved_at = data.get("approved_at")
        return cls(
            id=data["id"],
            url=data["url"],
            status=PhotoStatus(data["status"]),
            uploaded_at=datetime.fromisoformat(data["uploaded_at"]),
            approved_at=datetime.fromisoformat(approved_at) if approved_at else None,
            approved_by=data.get("approved_by"),
            version=data.get("version", 0),
        )


@dataclass
class ModerationResult:
    """Result of ``ModerationGate.set_status``.

    ``photo`` is set when the photo still exists (approved or refused);
    ``report`` is the analysis computed during the call, if any.
    """
    outcome: ModerationOutcome
    photo: Optional[Photo] = None
    report: Optional[AnalysisReport] = None

    @property
    def applied(self) -> bool:
        return self.outcome is not ModerationOutcome.REFUSED


@dataclass
class AnalysisOptions:
    """Options for LSB analysis."""
    block_size: int = DEFAULT_BLOCK_SIZE
    channel: str = DEFAULT_CHANNEL
    max_workers: int = 1
    deadline_base: float = DEADLINE_BASE_SECONDS
    deadline_per_megapixel: float = DEADLINE_PER_MEGAPIXEL_SECONDS

    def deadline_for(self, pixel_count: int) -> float:
        """Seconds allowed to analyze an image of ``pixel_count`` pixels."""
        return self.deadline_base + self.deadline_per_megapixel * pixel_count / 1_000_000
