"""Tests for photogate type definitions."""

import json
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from photogate.types import (
    AnalysisOptions,
    AnalysisReport,
    ImageFormat,
    ModerationOutcome,
    ModerationResult,
    Photo,
    PhotoStatus,
    RawImageSample,
    data_url_format,
)


def _report(**overrides):
    fields = dict(
        is_suspicious=True,
        suspect_blocks=2,
        total_blocks=4,
        suspicious_proportion=0.5,
        max_suspicious_proportion=0.3,
        thresholds={"lower": 0.4, "upper": 0.6},
    )
    fields.update(overrides)
    return AnalysisReport(**fields)


class TestImageFormat:
    @pytest.mark.parametrize("name", ["jpeg", "jpg", "JPEG", "image/jpeg", " Image/JPG "])
    def test_lossy_names(self, name):
        assert ImageFormat.from_name(name) is ImageFormat.LOSSY

    @pytest.mark.parametrize("name", ["png", "PNG", "image/png"])
    def test_lossless_names(self, name):
        assert ImageFormat.from_name(name) is ImageFormat.LOSSLESS

    @pytest.mark.parametrize("name", ["bmp", "gif", "webp", "", None, "image/"])
    def test_other_names(self, name):
        assert ImageFormat.from_name(name) is ImageFormat.OTHER

    def test_enum_passes_through(self):
        assert ImageFormat.from_name(ImageFormat.LOSSLESS) is ImageFormat.LOSSLESS


class TestPhotoStatus:
    def test_values(self):
        assert PhotoStatus.PENDING.value == "pending"
        assert PhotoStatus.APPROVED.value == "approved"
        assert PhotoStatus.REJECTED.value == "rejected"

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            PhotoStatus("archived")


class TestRawImageSample:
    def test_pixel_count(self):
        s = RawImageSample(width=4, height=3, channels=3, samples=bytes(36))
        assert s.pixel_count == 12


class TestAnalysisReport:
    def test_is_frozen(self):
        r = _report()
        with pytest.raises(FrozenInstanceError):
            r.is_suspicious = False  # type: ignore[misc]

    def test_to_dict_has_all_fields(self):
        d = _report().to_dict()
        assert d == {
            "is_suspicious": True,
            "suspect_blocks": 2,
            "total_blocks": 4,
            "suspicious_proportion": 0.5,
            "max_suspicious_proportion": 0.3,
            "thresholds": {"lower": 0.4, "upper": 0.6},
        }

    def test_json_round_trip(self):
        r = _report(is_suspicious=False, suspicious_proportion=0.1234)
        restored = AnalysisReport.from_dict(json.loads(json.dumps(r.to_dict())))
        assert restored == r


class TestPhoto:
    def test_defaults(self):
        p = Photo(id="abc", url="data:image/png;base64,AAAA")
        assert p.status is PhotoStatus.PENDING
        assert p.approved_at is None
        assert p.approved_by is None
        assert p.uploaded_at.tzinfo is not None
        assert p.version == 0

    def test_format_name(self):
        assert Photo(id="a", url="data:image/jpeg;base64,AAAA").format_name == "jpeg"
        assert Photo(id="b", url="data:image/PNG;base64,AAAA").format_name == "png"

    def test_data_url_format(self):
        assert data_url_format("data:image/JPEG;base64,AAAA") == "jpeg"
        assert data_url_format("data:image/webp;base64") == "webp"

    def test_dict_round_trip(self):
        p = Photo(
            id="abc",
            url="data:image/png;base64,AAAA",
            status=PhotoStatus.APPROVED,
            uploaded_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            approved_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
            approved_by="mod@example.com",
            version=3,
        )
        d = p.to_dict()
        assert d["status"] == "approved"
        assert d["version"] == 3
        assert Photo.from_dict(d) == p

    def test_records_without_version_load_as_zero(self):
        d = Photo(id="abc", url="data:image/png;base64,AAAA").to_dict()
        del d["version"]
        assert Photo.from_dict(d).version == 0


class TestModerationResult:
    def test_applied(self):
        assert ModerationResult(ModerationOutcome.APPROVED).applied
        assert ModerationResult(ModerationOutcome.REJECTED).applied
        assert not ModerationResult(ModerationOutcome.REFUSED).applied


class TestAnalysisOptions:
    def test_defaults(self):
        opts = AnalysisOptions()
        assert opts.block_size == 100
        assert opts.channel == "blue"
        assert opts.max_workers == 1

    def test_deadline_grows_with_pixels(self):
        opts = AnalysisOptions(deadline_base=1.0, deadline_per_megapixel=2.0)
        assert opts.deadline_for(0) == 1.0
        assert opts.deadline_for(1_000_000) == pytest.approx(3.0)
        assert opts.deadline_for(4_000_000) > opts.deadline_for(1_000_000)
