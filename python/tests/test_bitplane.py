"""Tests for bit-plane extraction and block statistics."""

import math

import numpy as np
import pytest

from photogate.bitplane import block_averages, extract_bit_planes, validate_sample
from photogate.errors import InvalidImageBuffer, InvalidParameter
from photogate.types import RawImageSample

from conftest import raw_sample


class TestExtractBitPlanes:
    def test_lsb_per_channel(self):
        s = RawImageSample(width=2, height=1, channels=3, samples=bytes([1, 2, 3, 4, 5, 7]))
        red, green, blue = extract_bit_planes(s)
        assert red.tolist() == [1, 0]
        assert green.tolist() == [0, 1]
        assert blue.tolist() == [1, 1]

    def test_alpha_channel_ignored(self):
        s = RawImageSample(width=2, height=1, channels=4, samples=bytes([0, 0, 1, 255, 1, 1, 0, 255]))
        red, green, blue = extract_bit_planes(s)
        assert red.tolist() == [0, 1]
        assert green.tolist() == [0, 1]
        assert blue.tolist() == [1, 0]

    @pytest.mark.parametrize("shape", [(1, 1, 3), (7, 13, 3), (32, 32, 4)])
    def test_plane_length_equals_pixel_count(self, shape):
        rng = np.random.default_rng(1)
        arr = rng.integers(0, 256, size=shape, dtype=np.uint8)
        planes = extract_bit_planes(raw_sample(arr))
        for plane in planes:
            assert len(plane) == shape[0] * shape[1]
            assert set(np.unique(plane)) <= {0, 1}

    def test_preserves_spatial_order(self):
        arr = np.zeros((2, 3, 3), dtype=np.uint8)
        arr[0, 2, 2] = 1
        arr[1, 0, 2] = 1
        _, _, blue = extract_bit_planes(raw_sample(arr))
        assert blue.tolist() == [0, 0, 1, 1, 0, 0]

    def test_empty_image(self):
        s = RawImageSample(width=0, height=0, channels=3, samples=b"")
        for plane in extract_bit_planes(s):
            assert len(plane) == 0


class TestValidateSample:
    def test_too_few_channels(self):
        with pytest.raises(InvalidImageBuffer):
            validate_sample(RawImageSample(width=2, height=1, channels=2, samples=bytes(4)))

    def test_length_not_multiple_of_channels(self):
        with pytest.raises(InvalidImageBuffer):
            validate_sample(RawImageSample(width=2, height=1, channels=3, samples=bytes(7)))

    def test_dimensions_mismatch(self):
        with pytest.raises(InvalidImageBuffer):
            validate_sample(RawImageSample(width=3, height=3, channels=3, samples=bytes(12)))

    def test_valid_sample_passes(self):
        validate_sample(RawImageSample(width=2, height=2, channels=3, samples=bytes(12)))


class TestBlockAverages:
    def test_full_blocks(self):
        assert block_averages(np.array([1, 0, 1, 1]), 2).tolist() == [0.5, 1.0]

    def test_partial_last_block_not_padded(self):
        averages = block_averages(np.array([0, 0, 1, 1, 1]), 2)
        assert averages.tolist() == [0.0, 1.0, 1.0]

    def test_plane_shorter_than_block(self):
        averages = block_averages(np.array([1, 0, 1]), 100)
        assert len(averages) == 1
        assert averages[0] == pytest.approx(2 / 3)

    def test_empty_plane(self):
        assert len(block_averages(np.array([], dtype=np.uint8), 100)) == 0

    @pytest.mark.parametrize("n,block_size", [(1, 1), (99, 100), (100, 100), (101, 100), (16384, 100), (1000, 7)])
    def test_block_count_is_ceiling(self, n, block_size):
        plane = np.random.default_rng(n).integers(0, 2, size=n)
        averages = block_averages(plane, block_size)
        assert len(averages) == math.ceil(n / block_size)
        assert np.all((averages >= 0) & (averages <= 1))

    def test_smaller_blocks_never_fewer(self):
        plane = np.random.default_rng(3).integers(0, 2, size=997)
        counts = [len(block_averages(plane, size)) for size in range(200, 0, -1)]
        assert counts == sorted(counts)

    def test_default_block_size(self):
        assert len(block_averages(np.zeros(250, dtype=np.uint8))) == 3

    @pytest.mark.parametrize("block_size", [0, -5, 2.5, True])
    def test_invalid_block_size(self, block_size):
        with pytest.raises(InvalidParameter):
            block_averages(np.array([1, 0]), block_size)
