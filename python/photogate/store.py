"""
Photo persistence.

Storage is a collaborator of the moderation gate, not part of it: the gate
only needs create / get / update / delete / list-by-status. Two backends are
provided, an in-memory one for tests and embedding, and a directory of JSON
documents used by the command-line tool.

Updates are compare-and-swap on ``Photo.version``, so a writer that read a
record before someone else changed it gets ``StaleRecord`` instead of
silently overwriting the newer state.
"""
import fcntl
import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .errors import NotFound, StaleRecord
from .types import Photo, PhotoStatus

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".lock"


def _sort_key(photo: Photo) -> datetime:
    if photo.status is PhotoStatus.APPROVED and photo.approved_at is not None:
        return photo.approved_at
    return photo.uploaded_at


def _check_version(stored: Photo, expected: int) -> None:
    if stored.version != expected:
        logger.info(f"Photo {stored.id} changed underneath a writer (v{expected} -> v{stored.version})")
        raise StaleRecord(stored.id, expected, stored.version)


class PhotoStore(ABC):
    """Abstract base class for photo storage backends."""

    @abstractmethod
    def create(self, photo: Photo) -> Photo:
        """Persist a new photo."""

    @abstractmethod
    def get(self, photo_id: str) -> Optional[Photo]:
        """Return a copy of the photo, or None if it does not exist."""

    @abstractmethod
    def update(self, photo: Photo) -> Photo:
        """Overwrite an existing photo if it is still at ``photo.version``.

        Returns:
            The stored copy, with ``version`` incremented

        Raises:
            NotFound: the photo no longer exists
            StaleRecord: the stored photo has a different version
        """

    @abstractmethod
    def delete(self, photo_id: str, version: Optional[int] = None) -> bool:
        """Remove a photo. Returns False if it did not exist.

        When ``version`` is given the delete only happens if the stored
        photo is still at that version; otherwise ``StaleRecord`` is raised.
        """

    @abstractmethod
    def all(self) -> List[Photo]:
        """Every stored photo, in no particular order."""

    def list_by_status(self, status: PhotoStatus) -> List[Photo]:
        """Photos with ``status``, newest first.

        Approved photos are ordered by approval time, the rest by upload time.
        """
        photos = [p for p in self.all() if p.status is status]
        return sorted(photos, key=_sort_key, reverse=True)


class InMemoryPhotoStore(PhotoStore):
    """Dict-backed store. Records are copied on the way in and out."""

    def __init__(self) -> None:
        self._photos: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def create(self, photo: Photo) -> Photo:
        with self._lock:
            if photo.id in self._photos:
                raise ValueError(f"Photo already exists: {photo.id}")
            self._photos[photo.id] = photo.to_dict()
        return photo

    def get(self, photo_id: str) -> Optional[Photo]:
        with self._lock:
            data = self._photos.get(photo_id)
        return Photo.from_dict(data) if data is not None else None

    def update(self, photo: Photo) -> Photo:
        with self._lock:
            data = self._photos.get(photo.id)
            if data is None:
                raise NotFound(photo.id)
            _check_version(Photo.from_dict(data), photo.version)
            updated = replace(photo, version=photo.version + 1)
            self._photos[photo.id] = updated.to_dict()
        return updated

    def delete(self, photo_id: str, version: Optional[int] = None) -> bool:
        with self._lock:
            data = self._photos.get(photo_id)
            if data is None:
                return False
            if version is not None:
                _check_version(Photo.from_dict(data), version)
            del self._photos[photo_id]
        return True

    def all(self) -> List[Photo]:
        with self._lock:
            records = list(self._photos.values())
        return [Photo.from_dict(data) for data in records]


class JsonPhotoStore(PhotoStore):
    """One JSON document per photo under a directory.

    Several processes may share the directory. Writers take an exclusive
    ``flock`` on ``<directory>/.lock``; documents are replaced atomically,
    so readers never see a partial file and need no lock.
    """

    def __init__(self, directory: Path) -> None:
        """
        Initialize the store.

        Args:
            directory: Directory holding ``<id>.json`` files; created if missing
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock_path = self.directory / LOCK_FILE_NAME
        self._lock = threading.Lock()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock, open(self._lock_path, "a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _path(self, photo_id: str) -> Path:
        if not photo_id or "/" in photo_id or "\\" in photo_id or photo_id.startswith("."):
            raise ValueError(f"Invalid photo id: {photo_id!r}")
        return self.directory / f"{photo_id}.json"

    @staticmethod
    def _read(path: Path) -> Optional[Photo]:
        try:
            with open(path, "r") as f:
                return Photo.from_dict(json.load(f))
        except FileNotFoundError:
            return None

    def _write(self, photo: Photo) -> None:
        path = self._path(photo.id)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w") as f:
            json.dump(photo.to_dict(), f, indent=2)
        tmp_path.replace(path)

    def create(self, photo: Photo) -> Photo:
        path = self._path(photo.id)
        with self._locked():
            if path.exists():
                raise ValueError(f"Photo already exists: {photo.id}")
            self._write(photo)
        logger.debug(f"Stored photo {photo.id} in {self.directory}")
        return photo

    def get(self, photo_id: str) -> Optional[Photo]:
        try:
            path = self._path(photo_id)
        except ValueError:
            return None
        return self._read(path)

    def update(self, photo: Photo) -> Photo:
        path = self._path(photo.id)
        with self._locked():
            stored = self._read(path)
            if stored is None:
                raise NotFound(photo.id)
            _check_version(stored, photo.version)
            updated = replace(photo, version=photo.version + 1)
            self._write(updated)
        return updated

    def delete(self, photo_id: str, version: Optional[int] = None) -> bool:
        try:
            path = self._path(photo_id)
        except ValueError:
            return False
        with self._locked():
            stored = self._read(path)
            if stored is None:
                return False
            if version is not None:
                _check_version(stored, version)
            path.unlink()
        return True

    def all(self) -> List[Photo]:
        photos = []
        for path in self.directory.glob("*.json"):
            photo = self._read(path)
            # Deleted between the listing and the read.
            if photo is not None:
                photos.append(photo)
        return photos
