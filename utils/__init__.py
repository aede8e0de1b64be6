"""
Utilities Module for the Composition Advisor

Provides geometry value types, coordinate mapping and validation helpers
shared by the analysis pipeline and the API.
"""

# Input validation
from .validation import (
    ValidationError,
    validate_size,
    validate_image_array,
    validate_mask_dimensions,
    validate_threshold
)

# API/config validation
from .validation_api import (
    validate_image_format,
    validate_file_size,
    validate_analysis_config,
    SUPPORTED_IMAGE_FORMATS,
    MAX_FILE_SIZE,
    ADVICE_TARGETS,
    SUBJECT_POLICIES
)

# Geometry
from .geometry import BoundingBox, Region, Point, Size, euclidean_distance, half_diagonal
from .coordinate_mapper import (
    CoordinateMapper,
    scale_factors,
    scale_point,
    scale_bbox,
    scale_region,
    scale_regions
)

__all__ = [
    # Input validation
    'ValidationError',
    'validate_size',
    'validate_image_array',
    'validate_mask_dimensions',
    'validate_threshold',

    # API/config validation
    'validate_image_format',
    'validate_file_size',
    'validate_analysis_config',
    'SUPPORTED_IMAGE_FORMATS',
    'MAX_FILE_SIZE',
    'ADVICE_TARGETS',
    'SUBJECT_POLICIES',

    # Geometry
    'BoundingBox',
    'Region',
    'Point',
    'Size',
    'euclidean_distance',
    'half_diagonal',
    'CoordinateMapper',
    'scale_factors',
    'scale_point',
    'scale_bbox',
    'scale_region',
    'scale_regions'
]
