"""
Validation utilities for the Composition Advisor API

This module provides validation functions for API inputs, image formats,
and analysis configuration parameters.
"""

from typing import Dict, Any, List
from pathlib import Path
import logging

logger = logging.getLogger(__name__)

# Supported image formats
SUPPORTED_IMAGE_FORMATS = {
    '.jpg', '.jpeg', '.png', '.tiff', '.tif', '.bmp', '.webp'
}

# Maximum file size (in bytes) - 50MB
MAX_FILE_SIZE = 50 * 1024 * 1024

ADVICE_TARGETS = {'rule_of_thirds', 'center', 'best'}
SUBJECT_POLICIES = {'discovery_order', 'largest'}

CONFIG_KEYS = {
    'binarization_threshold',
    'white_cutoff',
    'max_processing_side',
    'min_region_width',
    'min_region_height',
    'min_region_pixel_count',
    'advice_target',
    'subject_policy',
    'intensity_reference_distance',
    'max_recommendations',
    'cap_includes_multi_subject'
}


def validate_image_format(filename: str) -> bool:
    """
    Validate if the image format is supported.

    Args:
        filename: Name of the image file

    Returns:
        bool: True if format is supported, False otherwise
    """
    if not filename:
        return False

    file_extension = Path(filename).suffix.lower()
    return file_extension in SUPPORTED_IMAGE_FORMATS


def validate_file_size(file_size: int) -> bool:
    """
    Validate if the file size is within acceptable limits.

    Args:
        file_size: Size of the file in bytes

    Returns:
        bool: True if size is acceptable, False otherwise
    """
    return 0 < file_size <= MAX_FILE_SIZE


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_analysis_config(config: Dict[str, Any]) -> tuple[bool, List[str]]:
    """
    Validate analysis configuration parameters.

    Args:
        config: Configuration dictionary

    Returns:
        tuple: (is_valid, list_of_errors)
    """
    errors = []

    if not isinstance(config, dict):
        return False, ["config must be a dictionary"]

    for key in config:
        if key not in CONFIG_KEYS:
            errors.append(f"Unknown configuration key '{key}'")

    if 'binarization_threshold' in config:
        threshold = config['binarization_threshold']
        if not _is_number(threshold) or not (0 <= threshold < 1):
            errors.append("binarization_threshold must be a number in [0, 1)")

    if 'white_cutoff' in config:
        cutoff = config['white_cutoff']
        if not _is_int(cutoff) or not (1 <= cutoff <= 255):
            errors.append("white_cutoff must be an integer between 1 and 255")

    if 'max_processing_side' in config:
        max_side = config['max_processing_side']
        if not _is_int(max_side) or not (16 <= max_side <= 10000):
            errors.append("max_processing_side must be an integer between 16 and 10000")

    for field in ('min_region_width', 'min_region_height', 'min_region_pixel_count'):
        if field in config and config[field] is not None:
            if not _is_int(config[field]) or config[field] < 0:
                errors.append(f"{field} must be a non-negative integer or null")

    if 'advice_target' in config and config['advice_target'] not in ADVICE_TARGETS:
        errors.append(f"Invalid advice_target. Must be one of: {sorted(ADVICE_TARGETS)}")

    if 'subject_policy' in config and config['subject_policy'] not in SUBJECT_POLICIES:
        errors.append(f"Invalid subject_policy. Must be one of: {sorted(SUBJECT_POLICIES)}")

    if 'intensity_reference_distance' in config:
        reference = config['intensity_reference_distance']
        if not _is_number(reference) or reference <= 0:
            errors.append("intensity_reference_distance must be a positive number")

    if 'max_recommendations' in config:
        max_recommendations = config['max_recommendations']
        if not _is_int(max_recommendations) or not (1 <= max_recommendations <= 20):
            errors.append("max_recommendations must be an integer between 1 and 20")

    if 'cap_includes_multi_subject' in config:
        if not isinstance(config['cap_includes_multi_subject'], bool):
            errors.append("cap_includes_multi_subject must be a boolean value")

    if errors:
        logger.debug(f"Configuration rejected: {errors}")

    return len(errors) == 0, errors
