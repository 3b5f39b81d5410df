"""
LSB suspicion analysis for decoded images.

The analyzer extracts the least-significant bit-plane of each colour channel,
averages it over fixed-size blocks and counts the blocks whose average sits in
a narrow window around 0.5. Natural images rarely produce many such blocks in
the blue channel; sequential LSB embedding of random data does.

This is a cheap statistical screen, not a steganalysis method with any
guarantee. Only the blue channel is used by default, and the suspicion window
is open on both ends; both choices are kept for parity with the moderation
behaviour moderators already rely on.
"""
import concurrent.futures
import logging
from typing import Callable, Optional, Union

import numpy as np

from .bitplane import CHANNEL_INDEX, block_averages, extract_bit_planes
from .config import DEFAULT_BLOCK_SIZE
from .errors import AnalysisTimeout, InsufficientData, InvalidParameter
from .policy import threshold_profile
from .types import AnalysisOptions, AnalysisReport, ImageFormat, RawImageSample, ThresholdProfile

logger = logging.getLogger(__name__)

Observer = Callable[[AnalysisReport, ImageFormat, int], None]


def classify(
    red: np.ndarray,
    green: np.ndarray,
    blue: np.ndarray,
    profile: ThresholdProfile,
    channel: str = "blue",
) -> AnalysisReport:
    """Turn per-channel block averages into a verdict.

    Args:
        red: Block averages of the red bit-plane
        green: Block averages of the green bit-plane
        blue: Block averages of the blue bit-plane
        profile: Thresholds for the image's format
        channel: Channel whose averages decide the verdict

    Returns:
        AnalysisReport for the chosen channel

    Raises:
        InsufficientData: the chosen channel has no blocks
        InvalidParameter: unknown channel name
    """
    if channel not in CHANNEL_INDEX:
        raise InvalidParameter(f"Unknown channel {channel!r}")
    averages = np.asarray((red, green, blue)[CHANNEL_INDEX[channel]], dtype=np.float64)

    total_blocks = int(averages.size)
    if total_blocks == 0:
        raise InsufficientData("Image has no pixels to analyze")

    inside = (averages > profile.lower) & (averages < profile.upper)
    suspect_blocks = int(np.count_nonzero(inside))
    proportion = suspect_blocks / total_blocks

    return AnalysisReport(
        is_suspicious=proportion > profile.max_suspicious_proportion,
        suspect_blocks=suspect_blocks,
        total_blocks=total_blocks,
        suspicious_proportion=proportion,
        max_suspicious_proportion=profile.max_suspicious_proportion,
        thresholds={"lower": profile.lower, "upper": profile.upper},
    )


def log_report(report: AnalysisReport, fmt: ImageFormat, pixel_count: int) -> None:
    """Default observer: record thresholds and proportions."""
    logger.info(
        f"LSB analysis ({fmt.value}, {pixel_count} px): "
        f"{report.suspect_blocks}/{report.total_blocks} suspicious blocks, "
        f"proportion {report.suspicious_proportion:.2f} "
        f"(max {report.max_suspicious_proportion:.2f})"
    )
    logger.info(
        f"Thresholds used: {report.thresholds['lower']} - {report.thresholds['upper']}"
    )


class LSBAnalyzer:
    """Runs the LSB screen under a size-proportional deadline."""

    def __init__(
        self,
        options: Optional[AnalysisOptions] = None,
        observer: Optional[Observer] = log_report,
    ):
        """Initialize LSBAnalyzer.

        Args:
            options: Block size, channel, worker count and deadline settings
            observer: Called with (report, format, pixel_count) after each
                successful analysis. None disables it.
        """
        self.options = options or AnalysisOptions()
        self._observer = observer
        self._max_workers = max(1, self.options.max_workers)

    def analyze(
        self,
        sample: RawImageSample,
        fmt: Union[ImageFormat, str, None],
    ) -> AnalysisReport:
        """Analyze a decoded image.

        Args:
            sample: Raw channel-interleaved pixel buffer
            fmt: Declared encoding of the source file

        Returns:
            AnalysisReport

        Raises:
            InvalidImageBuffer: malformed buffer
            InvalidParameter: bad block size or channel
            InsufficientData: empty image
            AnalysisTimeout: the deadline elapsed before a verdict
        """
        image_format = ImageFormat.from_name(fmt)
        profile = threshold_profile(image_format)
        deadline = self.options.deadline_for(sample.pixel_count)

        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="photogate-analysis"
        )
        try:
            future = executor.submit(self._run, sample, profile)
            try:
                report = future.result(timeout=deadline)
            except concurrent.futures.TimeoutError:
                future.cancel()
                raise AnalysisTimeout(deadline) from None
        finally:
            executor.shutdown(wait=False)

        if self._observer is not None:
            self._observer(report, image_format, sample.pixel_count)
        return report

    def _run(self, sample: RawImageSample, profile: ThresholdProfile) -> AnalysisReport:
        planes = extract_bit_planes(sample)
        block_size = self.options.block_size

        if self._max_workers > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                futures = [executor.submit(block_averages, plane, block_size) for plane in planes]
                averages = [future.result() for future in futures]
        else:
            averages = [block_averages(plane, block_size) for plane in planes]

        return classify(*averages, profile=profile, channel=self.options.channel)


def analyze(
    sample: RawImageSample,
    fmt: Union[ImageFormat, str, None],
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> AnalysisReport:
    """Analyze a decoded image with default options and no observer."""
    return LSBAnalyzer(AnalysisOptions(block_size=block_size), observer=None).analyze(sample, fmt)
