"""
blurcull - Center-weighted Laplacian blur culling for JPEG folders

Scores each photo with the variance of its Laplacian, weighting the center
of the frame over the background, and moves blurry shots into a review folder.
"""

__version__ = "1.0.0"

from .sharpness import (
    Band,
    DecodedImage,
    InvalidImageError,
    ScoreResult,
    ScoringConfig,
    classify,
    score,
)

__all__ = [
    'Band',
    'DecodedImage',
    'InvalidImageError',
    'ScoreResult',
    'ScoringConfig',
    'classify',
    'score',
]
