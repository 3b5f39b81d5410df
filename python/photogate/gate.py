"""
Moderation decision gate.

Photos move ``pending -> approved`` or ``pending -> rejected``. Approval is
guarded by the LSB analysis and fails closed: a suspicious verdict refuses
the transition, and an image that cannot be classified raises. Rejection
never needs a verdict; it deletes the record and returns whatever analysis
could be computed for the audit trail.

The gate is the only component that writes ``status``, ``approved_at`` and
``approved_by``. Each read-verdict-write sequence runs under a per-photo lock,
so of two concurrent transitions on one pending photo exactly one succeeds.
Across processes sharing a store the same holds through the store's
version check: a write based on a stale read fails with ``InvalidTransition``
or ``NotFound`` instead of overwriting the winner.
"""
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from .analyzer import LSBAnalyzer
from .decode import decode_image, detect_format, parse_data_url, to_data_url
from .errors import (
    AnalysisError,
    InvalidTransition,
    InvalidUpload,
    ModerationError,
    NotFound,
    StaleRecord,
)
from .store import PhotoStore
from .types import (
    AnalysisReport,
    ModerationOutcome,
    ModerationResult,
    Photo,
    PhotoStatus,
    RawImageSample,
    utcnow,
)

logger = logging.getLogger(__name__)

Decoder = Callable[[bytes], Tuple[RawImageSample, str]]


class _PhotoLock:
    """A per-photo lock and the number of callers holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class ModerationGate:
    """State machine over a photo's moderation lifecycle."""

    def __init__(
        self,
        store: PhotoStore,
        analyzer: Optional[LSBAnalyzer] = None,
        decoder: Decoder = decode_image,
    ):
        """Initialize ModerationGate.

        Args:
            store: Photo persistence backend
            analyzer: LSB analyzer; a default-configured one if omitted
            decoder: Turns stored image bytes into a raw sample buffer
        """
        self.store = store
        self.analyzer = analyzer or LSBAnalyzer()
        self._decoder = decoder
        self._locks: Dict[str, _PhotoLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _photo_lock(self, photo_id: str) -> Iterator[None]:
        # The entry lives only while someone holds or waits for it.
        with self._locks_guard:
            entry = self._locks.get(photo_id)
            if entry is None:
                entry = self._locks[photo_id] = _PhotoLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[photo_id]

    def _require(self, photo_id: str) -> Photo:
        photo = self.store.get(photo_id)
        if photo is None:
            logger.info(f"Photo {photo_id} not found")
            raise NotFound(photo_id)
        return photo

    def _analyze_photo(self, photo: Photo) -> AnalysisReport:
        data, declared_format = parse_data_url(photo.url)
        sample, decoded_format = self._decoder(data)
        return self.analyzer.analyze(sample, declared_format or decoded_format)

    def submit(self, data: bytes, fmt: Optional[str] = None) -> Photo:
        """Queue a new photo for moderation.

        Args:
            data: Encoded image file bytes
            fmt: Declared format; detected from the bytes if omitted

        Returns:
            The stored pending Photo

        Raises:
            InvalidUpload: the payload is not image-like
        """
        detected = detect_format(data) if data else None
        if detected is None:
            raise InvalidUpload("Only images are allowed")

        photo = Photo(
            id=uuid.uuid4().hex,
            url=to_data_url(data, (fmt or detected).lower()),
            status=PhotoStatus.PENDING,
            uploaded_at=utcnow(),
        )
        self.store.create(photo)
        logger.info(f"Photo {photo.id} submitted ({photo.format_name}, {len(data)} bytes)")
        return photo

    def check(self, photo_id: str) -> AnalysisReport:
        """Analyze a stored photo without changing its status."""
        return self._analyze_photo(self._require(photo_id))

    def set_status(
        self,
        photo_id: str,
        target: Union[PhotoStatus, str],
        actor: str,
    ) -> ModerationResult:
        """Approve or reject a pending photo.

        Args:
            photo_id: Photo to moderate
            target: ``approved`` or ``rejected``
            actor: Authenticated moderator identity, e.g. an email

        Returns:
            ModerationResult with outcome APPROVED (photo updated), REFUSED
            (photo still pending, report explains why) or REJECTED (photo
            deleted, report for audit, None if analysis failed)

        Raises:
            NotFound: no such photo
            InvalidTransition: target is not approved/rejected, or the photo
                is no longer pending
            AnalysisError: approval could not be decided; the photo stays
                pending
        """
        try:
            target = PhotoStatus(target)
        except ValueError:
            raise InvalidTransition(photo_id, None, str(target)) from None
        if target is PhotoStatus.PENDING:
            raise InvalidTransition(photo_id, None, target.value)

        with self._photo_lock(photo_id):
            photo = self._require(photo_id)
            if photo.status is not PhotoStatus.PENDING:
                logger.info(
                    f"Photo {photo_id} is already {photo.status.value}; "
                    f"{target.value} by {actor} ignored"
                )
                raise InvalidTransition(photo_id, photo.status.value, target.value)

            if target is PhotoStatus.REJECTED:
                return self._reject(photo, actor)
            return self._approve(photo, actor)

    def _lost_race(self, photo_id: str, target: PhotoStatus) -> ModerationError:
        # Another writer moved the photo on between our read and our write.
        current = self.store.get(photo_id)
        if current is None:
            logger.info(f"Photo {photo_id} was removed before {target.value} could be applied")
            return NotFound(photo_id)
        logger.info(f"Photo {photo_id} became {current.status.value} before {target.value} could be applied")
        return InvalidTransition(photo_id, current.status.value, target.value)

    def _reject(self, photo: Photo, actor: str) -> ModerationResult:
        report: Optional[AnalysisReport] = None
        try:
            report = self._analyze_photo(photo)
        except AnalysisError as e:
            logger.warning(f"Analysis of rejected photo {photo.id} failed: {e}")

        try:
            deleted = self.store.delete(photo.id, version=photo.version)
        except StaleRecord as e:
            raise self._lost_race(photo.id, PhotoStatus.REJECTED) from e
        if not deleted:
            logger.info(f"Photo {photo.id} was removed before rejected could be applied")
            raise NotFound(photo.id)
        logger.info(f"Photo {photo.id} rejected and deleted by {actor}")
        return ModerationResult(outcome=ModerationOutcome.REJECTED, report=report)

    def _approve(self, photo: Photo, actor: str) -> ModerationResult:
        report = self._analyze_photo(photo)
        if report.is_suspicious:
            logger.info(
                f"Approval of photo {photo.id} by {actor} refused: "
                f"{report.suspect_blocks}/{report.total_blocks} suspicious blocks"
            )
            return ModerationResult(outcome=ModerationOutcome.REFUSED, photo=photo, report=report)

        photo.status = PhotoStatus.APPROVED
        photo.approved_at = utcnow()
        photo.approved_by = actor
        try:
            photo = self.store.update(photo)
        except StaleRecord as e:
            raise self._lost_race(photo.id, PhotoStatus.APPROVED) from e
        logger.info(f"Photo {photo.id} approved by {actor}")
        return ModerationResult(outcome=ModerationOutcome.APPROVED, photo=photo, report=report)

    def delete(self, photo_id: str, actor: str) -> None:
        """Hard-delete a photo regardless of its status."""
        with self._photo_lock(photo_id):
            if not self.store.delete(photo_id):
                logger.info(f"Photo {photo_id} not found")
                raise NotFound(photo_id)
        logger.info(f"Photo {photo_id} deleted by {actor}")

    def list(self, status: Union[PhotoStatus, str] = PhotoStatus.APPROVED) -> List[Photo]:
        """Photos with ``status``, newest first."""
        return self.store.list_by_status(PhotoStatus(status))
