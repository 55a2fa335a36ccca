"""
Utility functions for blurcull.

Includes logging setup, JPEG validation and decoding, scan time estimates,
and helper functions.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from .sharpness import DecodedImage


JPEG_MAGIC = b'\xff\xd8'


class ImageDecodeError(Exception):
    """Raised when a file cannot be turned into a DecodedImage."""


def setup_logging(config: dict) -> logging.Logger:
    """
    Configure logging for console and optional file output.

    Args:
        config: Configuration dictionary containing logging settings

    Returns:
        Configured logger instance
    """
    log_level = config.get('logging', {}).get('level', 'INFO')
    console_level = config.get('logging', {}).get('console_level', log_level)
    file_level = config.get('logging', {}).get('file_level', 'DEBUG')
    log_format = config.get('logging', {}).get(
        'format',
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    date_format = config.get('logging', {}).get('date_format', '%Y-%m-%d %H:%M:%S')

    logger = logging.getLogger('BlurCull')
    logger.setLevel(logging.DEBUG)  # Capture all levels, filters applied to handlers

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, console_level.upper()))
    console_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
    logger.addHandler(console_handler)

    log_file = config.get('paths', {}).get('log_file')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(getattr(logging, file_level.upper()))
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        logger.addHandler(file_handler)
        logger.info(f"Log file: {log_file}")

    logger.debug(f"Logging initialized - Console: {console_level}, File: {file_level}")

    return logger


def is_jpeg_header(data: bytes) -> bool:
    """Check for the JPEG start-of-image marker."""
    return len(data) >= 2 and data[:2] == JPEG_MAGIC


def validate_jpeg(path: str) -> Tuple[bool, Optional[str]]:
    """
    Check that a file starts with the JPEG magic bytes.

    Args:
        path: Path to the file

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        with open(path, 'rb') as f:
            header = f.read(2)
    except OSError as e:
        return False, str(e)

    if not is_jpeg_header(header):
        return False, "not a valid JPEG"

    return True, None


def decode_jpeg(path: str, max_side: Optional[int] = None) -> DecodedImage:
    """
    Load a JPEG file into a DecodedImage in RGB order.

    Args:
        path: Path to the JPEG file
        max_side: Downscale so the long side is at most this many pixels

    Returns:
        DecodedImage with 3 channels

    Raises:
        ImageDecodeError: If the file is missing, not a JPEG, or undecodable
    """
    if not os.path.exists(path):
        raise ImageDecodeError(f"File not found: {path}")

    valid, error = validate_jpeg(path)
    if not valid:
        raise ImageDecodeError(f"{Path(path).name}: {error}")

    # imdecode handles non-ASCII paths that imread cannot
    data = np.fromfile(path, dtype=np.uint8)
    try:
        bgr = cv2.imdecode(data, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise ImageDecodeError(f"Failed to decode image with OpenCV: {path}: {e}") from e
    if bgr is None:
        raise ImageDecodeError(f"Failed to decode image with OpenCV: {path}")

    h, w = bgr.shape[:2]
    if max_side and max(h, w) > max_side:
        scale = max_side / max(h, w)
        new_w = max(1, int(w * scale))
        new_h = max(1, int(h * scale))
        bgr = cv2.resize(bgr, (new_w, new_h), interpolation=cv2.INTER_AREA)

    rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
    return DecodedImage.from_array(rgb)


def estimate_scan_time(remaining_files: int, avg_ms_per_file: float) -> Tuple[float, str]:
    """
    Estimate the time left for a scan.

    Args:
        remaining_files: Images not yet scored
        avg_ms_per_file: Average scoring time per image in milliseconds

    Returns:
        Tuple of (estimated milliseconds, coarse label such as "~1 min")
    """
    estimated_ms = remaining_files * avg_ms_per_file

    if estimated_ms < 10000:
        label = "< 10 sec"
    elif estimated_ms < 45000:
        label = "~30 sec"
    elif estimated_ms < 90000:
        label = "~1 min"
    else:
        label = f"~{round(estimated_ms / 60000)} min"

    return estimated_ms, label


def format_time(seconds: float) -> str:
    """
    Format seconds into human-readable time string.

    Args:
        seconds: Time in seconds

    Returns:
        Formatted time string (e.g., "1h 23m 45s" or "12.3s")
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.1f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = seconds % 60
        return f"{hours}h {minutes}m {secs:.0f}s"


def validate_folders(folders: list, logger: logging.Logger) -> bool:
    """
    Validate that the input folders exist.

    Args:
        folders: Folders to scan
        logger: Logger instance

    Returns:
        True if all folders are valid, False otherwise
    """
    if not folders:
        logger.error("No input folders specified")
        return False

    for folder in folders:
        if not os.path.exists(folder):
            logger.error(f"Input folder does not exist: {folder}")
            return False

        if not os.path.isdir(folder):
            logger.error(f"Input path is not a directory: {folder}")
            return False

        logger.info(f"Input folder validated: {folder}")

    return True


class ProgressTracker:
    """Simple progress tracker for logging."""

    def __init__(self, total: int, logger: logging.Logger, description: str = "Scoring"):
        self.total = total
        self.current = 0
        self.logger = logger
        self.description = description
        self.start_time = datetime.now()

    def update(self, n: int = 1):
        """Update progress by n steps."""
        self.current += n
        if self.current % 10 == 0 or self.current == self.total:
            percent = (self.current / self.total) * 100 if self.total > 0 else 0
            elapsed = (datetime.now() - self.start_time).total_seconds()
            rate = self.current / elapsed if elapsed > 0 else 0
            avg_ms = (elapsed * 1000) / self.current if self.current else 0
            _, remaining = estimate_scan_time(self.total - self.current, avg_ms)
            self.logger.info(
                f"{self.description}: {self.current}/{self.total} "
                f"({percent:.1f}%) - {rate:.1f} imgs/sec - {remaining} left"
            )

    def finish(self):
        """Mark progress as complete."""
        elapsed = (datetime.now() - self.start_time).total_seconds()
        self.logger.info(
            f"{self.description} complete: {self.current} images "
            f"in {format_time(elapsed)}"
        )
