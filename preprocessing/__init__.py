"""
Preprocessing Module

Image loading, orientation normalization, processing-resolution resizing
and saliency mask binarization.
"""

from .image_preprocessor import (
    ImagePreprocessor,
    create_preprocessing_pipeline,
    compute_processing_size,
    normalize_orientation,
    to_bgr,
    DEFAULT_MAX_PROCESSING_SIDE
)
from .binarizer import (
    binarize,
    to_visualization,
    saliency_channel,
    is_white_pixel,
    white_pixel_mask,
    DEFAULT_THRESHOLD,
    WHITE_CUTOFF
)

__all__ = [
    'ImagePreprocessor',
    'create_preprocessing_pipeline',
    'compute_processing_size',
    'normalize_orientation',
    'to_bgr',
    'DEFAULT_MAX_PROCESSING_SIDE',
    'binarize',
    'to_visualization',
    'saliency_channel',
    'is_white_pixel',
    'white_pixel_mask',
    'DEFAULT_THRESHOLD',
    'WHITE_CUTOFF'
]
