"""
Bit-plane extraction and block statistics.

Both steps are pure functions over numpy arrays: they neither log nor keep
state, so per-channel statistics can be computed concurrently.
"""
from typing import Tuple

import numpy as np

from .config import DEFAULT_BLOCK_SIZE
from .errors import InvalidImageBuffer, InvalidParameter
from .types import RawImageSample

CHANNEL_INDEX = {"red": 0, "green": 1, "blue": 2}


def validate_sample(sample: RawImageSample) -> None:
    """Check the channel/sample layout of a raw buffer.

    Raises:
        InvalidImageBuffer: fewer than three channels, a sample count that is
            not a multiple of the channel count, or a pixel count that does
            not match width x height.
    """
    if sample.channels < 3:
        raise InvalidImageBuffer(
            f"Expected at least 3 channels, got {sample.channels}"
        )
    length = len(sample.samples)
    if length % sample.channels:
        raise InvalidImageBuffer(
            f"Sample count {length} is not a multiple of {sample.channels} channels"
        )
    if sample.width < 0 or sample.height < 0:
        raise InvalidImageBuffer(
            f"Invalid dimensions {sample.width}x{sample.height}"
        )
    if length // sample.channels != sample.pixel_count:
        raise InvalidImageBuffer(
            f"Buffer holds {length // sample.channels} pixels, "
            f"expected {sample.width}x{sample.height}"
        )


def extract_bit_planes(sample: RawImageSample) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Least-significant bit of every red, green and blue sample.

    Args:
        sample: Decoded image; channels beyond the third are ignored

    Returns:
        Tuple of (red, green, blue) uint8 arrays of 0/1 values, one entry per
        pixel in the original spatial order
    """
    validate_sample(sample)
    pixels = np.frombuffer(sample.samples, dtype=np.uint8).reshape(-1, sample.channels)
    lsb = pixels[:, :3] & 1
    return lsb[:, 0].copy(), lsb[:, 1].copy(), lsb[:, 2].copy()


def block_averages(plane: np.ndarray, block_size: int = DEFAULT_BLOCK_SIZE) -> np.ndarray:
    """Mean bit value of each contiguous block of a bit-plane.

    The last block may be shorter than ``block_size``; it is averaged over
    the elements it actually holds.

    Args:
        plane: 1-D array of 0/1 values
        block_size: Number of bits per block

    Returns:
        float64 array of length ceil(len(plane) / block_size), values in [0, 1]
    """
    if isinstance(block_size, bool) or not isinstance(block_size, (int, np.integer)):
        raise InvalidParameter(f"Block size must be an integer, got {block_size!r}")
    if block_size <= 0:
        raise InvalidParameter(f"Block size must be positive, got {block_size}")

    bits = np.asarray(plane, dtype=np.float64).ravel()
    if bits.size == 0:
        return np.empty(0, dtype=np.float64)

    starts = np.arange(0, bits.size, block_size)
    sums = np.add.reduceat(bits, starts)
    lengths = np.minimum(starts + block_size, bits.size) - starts
    return sums / lengths
