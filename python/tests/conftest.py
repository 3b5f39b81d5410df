"""Shared pytest fixtures for photogate tests."""

import io

import numpy as np
import pytest
from PIL import Image

from photogate import ActorTokens, InMemoryPhotoStore, LSBAnalyzer, ModerationGate
from photogate.types import RawImageSample


def raw_sample(arr: np.ndarray) -> RawImageSample:
    """Wrap an (h, w, c) uint8 array as a RawImageSample."""
    h, w, c = arr.shape
    return RawImageSample(width=w, height=h, channels=c, samples=arr.astype(np.uint8).tobytes())


def encode(arr: np.ndarray, fmt: str = "PNG", **kwargs) -> bytes:
    """Encode an (h, w, c) uint8 array with Pillow."""
    buf = io.BytesIO()
    Image.fromarray(arr.astype(np.uint8)).save(buf, format=fmt, **kwargs)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Pixel arrays
# ---------------------------------------------------------------------------


@pytest.fixture()
def noisy_pixels():
    """128x128 RGB noise: blue LSB averages cluster around 0.5."""
    rng = np.random.default_rng(0)
    return rng.integers(0, 256, size=(128, 128, 3), dtype=np.uint8)


@pytest.fixture()
def clean_pixels():
    """128x128 flat colour with even samples: every LSB is 0."""
    arr = np.zeros((128, 128, 3), dtype=np.uint8)
    arr[:, :] = (100, 150, 200)
    return arr


# ---------------------------------------------------------------------------
# Encoded images
# ---------------------------------------------------------------------------


@pytest.fixture()
def noisy_png_bytes(noisy_pixels):
    return encode(noisy_pixels)


@pytest.fixture()
def clean_png_bytes(clean_pixels):
    return encode(clean_pixels)


@pytest.fixture()
def sample_jpeg_bytes():
    """Minimal synthetic JPEG buffer (gradient image)."""
    img = Image.new("RGB", (64, 64))
    pixels = img.load()
    for y in range(64):
        for x in range(64):
            pixels[x, y] = (x * 4, y * 4, 128)
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Moderation fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store():
    return InMemoryPhotoStore()


@pytest.fixture()
def gate(store):
    """Gate with a quiet analyzer over an in-memory store."""
    return ModerationGate(store, analyzer=LSBAnalyzer(observer=None))


@pytest.fixture(scope="session")
def key_pair():
    """Generate a reusable RSA key pair (session-scoped for speed)."""
    public_key, private_key = ActorTokens.generate_signing_keys()
    return public_key, private_key
