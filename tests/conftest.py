"""
Pytest configuration and fixtures.

Synthesizes test images with numpy and writes JPEG folders with OpenCV.
"""

from pathlib import Path
from typing import Dict

import cv2
import numpy as np
import pytest

from blurcull.config_loader import load_config


def checkerboard(height: int, width: int, block: int) -> np.ndarray:
    """0/255 checkerboard with square blocks of the given size."""
    rows, cols = np.indices((height, width))
    return (((rows // block + cols // block) % 2) * 255).astype(np.uint8)


def flat(height: int, width: int, value: int = 128) -> np.ndarray:
    """Uniform gray image."""
    return np.full((height, width), value, dtype=np.uint8)


def write_jpeg(path: Path, gray: np.ndarray) -> Path:
    """Write a grayscale array as a 3-channel JPEG."""
    bgr = cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)
    assert cv2.imwrite(str(path), bgr, [cv2.IMWRITE_JPEG_QUALITY, 95])
    return path


@pytest.fixture
def config(tmp_path: Path) -> dict:
    """
    Default configuration with outputs redirected into tmp_path.

    Returns:
        Configuration dictionary
    """
    cfg = load_config()
    cfg['logging']['show_progress'] = False
    cfg['processing']['num_workers'] = 2
    cfg['output']['scores_file'] = str(tmp_path / 'out' / 'scores.csv')
    cfg['output']['report_dir'] = str(tmp_path / 'out')
    return cfg


@pytest.fixture
def photo_folder(tmp_path: Path) -> Dict[str, Path]:
    """
    Folder with one sharp, one blurry and one corrupt JPEG.

    Returns:
        {label: filepath} mapping
    """
    folder = tmp_path / 'photos'
    folder.mkdir()

    sharp = write_jpeg(folder / 'sharp.jpg', checkerboard(128, 128, 8))

    blurred = cv2.GaussianBlur(checkerboard(128, 128, 8), (31, 31), 12.0)
    blurry = write_jpeg(folder / 'blurry.jpg', blurred)

    corrupt = folder / 'corrupt.jpg'
    corrupt.write_bytes(b'\x89PNG\r\n\x1a\n' + b'\x00' * 64)

    return {'folder': folder, 'sharp': sharp, 'blurry': blurry, 'corrupt': corrupt}
