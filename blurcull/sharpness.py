"""
Sharpness scoring module using center-weighted Laplacian variance.

Scores decoded pixel data with the variance of the 4-neighbour Laplacian,
blending the whole interior of the frame with a centered crop so that a
blurry subject is not rescued by a sharp background.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import cv2
import numpy as np


# Fraction of width and height covered by the center crop (middle 50% x 50%)
CENTER_CROP_FRACTION = 0.5

# Blend weights, center must dominate
FULL_FRAME_WEIGHT = 0.3
CENTER_WEIGHT = 0.7

# Band edges relative to the threshold
LOW_RATIO = 0.8
HIGH_RATIO = 1.2

DEFAULT_THRESHOLD = 100.0

# ITU-R BT.601 luma
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


class InvalidImageError(ValueError):
    """Raised when a DecodedImage is structurally invalid."""


class Band(str, Enum):
    """User-facing sharpness class."""
    BLURRY = 'blurry'
    BORDERLINE = 'borderline'
    SHARP = 'sharp'


@dataclass(frozen=True, eq=False)
class DecodedImage:
    """Decoded pixel data handed to the scorer."""
    width: int
    height: int
    channels: int
    pixels: Any  # row-major buffer, RGB[A] order when channels >= 3

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'DecodedImage':
        """
        Build a DecodedImage from an HxW or HxWxC array.

        Args:
            array: Pixel array

        Returns:
            DecodedImage wrapping the array

        Raises:
            InvalidImageError: If the array is not 2-D or 3-D
        """
        array = np.asarray(array)
        if array.ndim == 2:
            height, width = array.shape
            channels = 1
        elif array.ndim == 3:
            height, width, channels = array.shape
        else:
            raise InvalidImageError(
                f"Expected a 2-D or 3-D pixel array, got {array.ndim} dimensions"
            )
        return cls(width=width, height=height, channels=channels, pixels=array)


@dataclass(frozen=True)
class ScoringConfig:
    """User-adjustable scoring settings."""
    threshold: float = DEFAULT_THRESHOLD

    def __post_init__(self):
        if not self.threshold > 0:
            raise ValueError(f"Sharpness threshold must be positive, got {self.threshold}")


@dataclass(frozen=True)
class ScoreResult:
    """Results from scoring a single image."""
    score: float
    band: Band
    full_frame_variance: float
    center_variance: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary for reports."""
        return {
            'score': self.score,
            'band': self.band.value,
            'full_frame_variance': self.full_frame_variance,
            'center_variance': self.center_variance,
        }


@dataclass(frozen=True)
class Region:
    """Rectangular pixel region with inclusive bounds."""
    x0: int
    y0: int
    x1: int
    y1: int

    def width(self) -> int:
        """Get region width (0 when empty)."""
        return max(0, self.x1 - self.x0 + 1)

    def height(self) -> int:
        """Get region height (0 when empty)."""
        return max(0, self.y1 - self.y0 + 1)

    def is_empty(self) -> bool:
        return self.width() == 0 or self.height() == 0

    def clip(self, bounds: 'Region') -> 'Region':
        """Intersect this region with bounds."""
        return Region(
            x0=max(self.x0, bounds.x0),
            y0=max(self.y0, bounds.y0),
            x1=min(self.x1, bounds.x1),
            y1=min(self.y1, bounds.y1),
        )


def validate_image(image: DecodedImage) -> np.ndarray:
    """
    Validate a DecodedImage and return its pixels as an HxWxC array.

    Args:
        image: Image to validate

    Returns:
        Pixel array shaped (height, width, channels)

    Raises:
        InvalidImageError: On bad dimensions or buffer length mismatch
    """
    for name in ('width', 'height', 'channels'):
        value = getattr(image, name)
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise InvalidImageError(f"Image {name} must be an integer, got {value!r}")

    if image.width <= 0 or image.height <= 0:
        raise InvalidImageError(
            f"Image dimensions must be positive, got {image.width}x{image.height}"
        )

    if image.channels < 1:
        raise InvalidImageError(f"Image must have at least 1 channel, got {image.channels}")

    if image.pixels is None:
        raise InvalidImageError("Image has no pixel buffer")

    if isinstance(image.pixels, (bytes, bytearray, memoryview)):
        # raw 8-bit buffer, e.g. from tobytes()
        pixels = np.frombuffer(image.pixels, dtype=np.uint8)
    else:
        pixels = np.asarray(image.pixels)
    expected = image.width * image.height * image.channels
    if pixels.size != expected:
        raise InvalidImageError(
            f"Pixel buffer length {pixels.size} does not match "
            f"{image.width}x{image.height}x{image.channels} = {expected}"
        )

    return pixels.reshape(image.height, image.width, image.channels)


def to_grayscale(image: DecodedImage) -> np.ndarray:
    """
    Convert a DecodedImage to a single-channel intensity array.

    Single-channel data passes through, two channels are treated as
    gray + alpha, and three or more as RGB with any alpha ignored.

    Args:
        image: Image to convert

    Returns:
        Grayscale array of shape (height, width), float64

    Raises:
        InvalidImageError: If the image is structurally invalid
    """
    pixels = validate_image(image).astype(np.float64, copy=False)

    if image.channels < 3:
        return pixels[:, :, 0]

    r = pixels[:, :, 0]
    g = pixels[:, :, 1]
    b = pixels[:, :, 2]
    return LUMA_WEIGHTS[0] * r + LUMA_WEIGHTS[1] * g + LUMA_WEIGHTS[2] * b


def laplacian_response(gray: np.ndarray) -> np.ndarray:
    """
    Calculate the absolute 4-neighbour Laplacian over interior pixels.

    Border pixels have undefined neighbours and contribute no sample, so the
    response is (H-2)x(W-2), and empty when either side is under 3 pixels.

    Args:
        gray: Grayscale array (H x W)

    Returns:
        Absolute Laplacian response for interior pixels
    """
    height, width = gray.shape[:2]
    if height < 3 or width < 3:
        return np.empty((max(height - 2, 0), max(width - 2, 0)), dtype=np.float64)

    # ksize=1 is exactly the [0 1 0; 1 -4 1; 0 1 0] kernel
    laplacian = cv2.Laplacian(np.asarray(gray, dtype=np.float64), cv2.CV_64F, ksize=1)

    return np.abs(laplacian[1:-1, 1:-1])


def interior_region(width: int, height: int) -> Region:
    """Region covering every pixel that has four neighbours."""
    return Region(1, 1, width - 2, height - 2)


def center_region(width: int, height: int,
                  fraction: float = CENTER_CROP_FRACTION) -> Region:
    """
    Calculate the centered crop region, clipped to the interior.

    Args:
        width: Image width
        height: Image height
        fraction: Fraction of width and height covered by the crop

    Returns:
        Inclusive region; clamped to 1x1 when the crop collapses, empty
        when the image has no interior
    """
    interior = interior_region(width, height)
    if interior.is_empty():
        return interior

    x_start = int(width * (1 - fraction) / 2)
    x_end = int(width * (1 + fraction) / 2)
    y_start = int(height * (1 - fraction) / 2)
    y_end = int(height * (1 + fraction) / 2)

    crop = Region(x_start, y_start, x_end - 1, y_end - 1).clip(interior)

    if crop.is_empty():
        cx = min(max(width // 2, interior.x0), interior.x1)
        cy = min(max(height // 2, interior.y0), interior.y1)
        crop = Region(cx, cy, cx, cy)

    return crop


def region_variance(response: np.ndarray, region: Region) -> float:
    """
    Calculate population variance of the Laplacian response inside a region.

    Args:
        response: Interior response from laplacian_response()
        region: Region in image coordinates (inclusive)

    Returns:
        Variance of the samples, 0.0 when the region holds none
    """
    rows, cols = response.shape[:2]
    # response[0, 0] is image pixel (1, 1)
    bounds = Region(1, 1, cols, rows)
    region = region.clip(bounds)

    if region.is_empty():
        return 0.0

    values = response[region.y0 - 1:region.y1, region.x0 - 1:region.x1]
    if values.size == 0:
        return 0.0

    return float(values.var())


def composite_score(full_frame_variance: float, center_variance: float) -> float:
    """Blend full-frame and center variance into one score."""
    return FULL_FRAME_WEIGHT * full_frame_variance + CENTER_WEIGHT * center_variance


def classify(score_value: float, threshold: float = DEFAULT_THRESHOLD) -> Band:
    """
    Classify a score against the threshold.

    Args:
        score_value: Composite sharpness score
        threshold: Sharpness threshold (must be positive)

    Returns:
        Band for the score
    """
    if not threshold > 0:
        raise ValueError(f"Sharpness threshold must be positive, got {threshold}")

    if score_value < threshold * LOW_RATIO:
        return Band.BLURRY
    elif score_value < threshold * HIGH_RATIO:
        return Band.BORDERLINE
    else:
        return Band.SHARP


def score(image: DecodedImage, config: Optional[ScoringConfig] = None) -> ScoreResult:
    """
    Score the sharpness of a decoded image.

    Args:
        image: Decoded pixel data
        config: Scoring settings (default threshold when omitted)

    Returns:
        ScoreResult with score, band and both sub-scores

    Raises:
        InvalidImageError: If the image is structurally invalid
    """
    if config is None:
        config = ScoringConfig()

    gray = to_grayscale(image)
    response = laplacian_response(gray)

    full_variance = region_variance(response, interior_region(image.width, image.height))
    center_variance = region_variance(response, center_region(image.width, image.height))
    value = composite_score(full_variance, center_variance)

    return ScoreResult(
        score=value,
        band=classify(value, config.threshold),
        full_frame_variance=full_variance,
        center_variance=center_variance,
    )


class SharpnessAnalyzer:
    """Scores images with the threshold taken from a configuration dict."""

    def __init__(self, config: dict, logger: Optional[logging.Logger] = None):
        """
        Initialize sharpness analyzer.

        Args:
            config: Configuration dictionary
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger('BlurCull.Sharpness')

        self.scoring = ScoringConfig(threshold=float(config['sharpness']['threshold']))
        self.threshold = self.scoring.threshold

        self.logger.info(f"Sharpness analyzer initialized - Threshold: {self.threshold}")
        self.logger.info(
            f"Center crop: {CENTER_CROP_FRACTION:.0%}, weights full/center: "
            f"{FULL_FRAME_WEIGHT}/{CENTER_WEIGHT}, bands: "
            f"{self.threshold * LOW_RATIO:.1f} / {self.threshold * HIGH_RATIO:.1f}"
        )

    def analyze(self, image: DecodedImage) -> ScoreResult:
        """
        Score a decoded image.

        Args:
            image: Decoded pixel data

        Returns:
            ScoreResult object
        """
        result = score(image, self.scoring)

        self.logger.debug(
            f"Scores - Full: {result.full_frame_variance:.2f}, "
            f"Center: {result.center_variance:.2f}, Final: {result.score:.2f} "
            f"({result.band.value})"
        )

        return result

    def get_result_summary(self, result: ScoreResult) -> str:
        """
        Get human-readable summary of a score result.

        Args:
            result: ScoreResult object

        Returns:
            Summary string
        """
        return (
            f"{result.band.value.upper()} - Score: {result.score:.1f} "
            f"(full: {result.full_frame_variance:.1f}, center: {result.center_variance:.1f}, "
            f"threshold: {self.threshold})"
        )
