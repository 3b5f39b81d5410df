"""Format-aware suspicion thresholds."""
from typing import Union

from .types import ImageFormat, ThresholdProfile


# Lossy re-encoding already scrambles LSBs, so its window is wider and the
# tolerated proportion of suspicious blocks is lower.
THRESHOLD_PROFILES = {
    ImageFormat.LOSSY: ThresholdProfile(lower=0.40, upper=0.60, max_suspicious_proportion=0.30),
    ImageFormat.LOSSLESS: ThresholdProfile(lower=0.45, upper=0.55, max_suspicious_proportion=0.35),
    ImageFormat.OTHER: ThresholdProfile(lower=0.45, upper=0.55, max_suspicious_proportion=0.40),
}


def threshold_profile(fmt: Union[ImageFormat, str, None]) -> ThresholdProfile:
    """Select the threshold profile for a declared image format.

    Args:
        fmt: An ImageFormat or a format name such as "jpeg" or "image/png"

    Returns:
        The ThresholdProfile for the format's class
    """
    return THRESHOLD_PROFILES[ImageFormat.from_name(fmt)]
