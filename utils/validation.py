"""
Validation utilities for the Composition Advisor.

Provides fail-fast checks for images, saliency masks and sizes so that
malformed inputs are rejected before any per-pixel work starts.
"""

import numpy as np
from typing import Any, List, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

SUPPORTED_CHANNELS = (1, 3, 4)


class ValidationError(ValueError):
    """Raised when an input cannot be analyzed."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


def validate_size(size: Sequence[float], name: str = "size") -> Tuple[float, float]:
    """
    Validate a (width, height) pair.

    Args:
        size: Width and height
        name: Name used in the error message

    Returns:
        Tuple of (width, height) as floats

    Raises:
        ValidationError: If the pair is malformed or has a non-positive side
    """

    try:
        width, height = size
        width, height = float(width), float(height)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a (width, height) pair, got {size!r}")

    if not (np.isfinite(width) and np.isfinite(height)):
        raise ValidationError(f"{name} must be finite, got {size!r}")

    if width <= 0 or height <= 0:
        raise ValidationError(f"{name} must have positive width and height, got {size!r}")

    return width, height


def validate_image_array(image: Any, name: str = "image") -> Tuple[int, int]:
    """
    Validate an image or mask array before it enters the pipeline.

    Accepts H x W, H x W x 1, H x W x 3 and H x W x 4 arrays of bool,
    unsigned integer or floating point dtype.

    Args:
        image: Candidate array
        name: Name used in the error message

    Returns:
        Tuple of (width, height)

    Raises:
        ValidationError: If the array cannot be analyzed
    """

    errors = []

    if image is None:
        raise ValidationError(f"{name} is None")

    if not isinstance(image, np.ndarray):
        raise ValidationError(f"{name} must be a numpy.ndarray, got {type(image).__name__}")

    if image.ndim not in (2, 3):
        raise ValidationError(f"{name} must be 2D or 3D, got ndim={image.ndim}")

    height, width = image.shape[:2]

    if width == 0 or height == 0:
        errors.append(f"{name} has zero area ({width}x{height})")

    if image.ndim == 3 and image.shape[2] not in SUPPORTED_CHANNELS:
        errors.append(f"{name} must have 1, 3 or 4 channels, got {image.shape[2]}")

    if not (image.dtype == np.bool_
            or np.issubdtype(image.dtype, np.unsignedinteger)
            or np.issubdtype(image.dtype, np.floating)):
        errors.append(f"{name} has unsupported dtype {image.dtype}")

    if errors:
        logger.debug(f"Rejected {name}: {errors}")
        raise ValidationError(f"Invalid {name}: {'; '.join(errors)}", errors)

    return int(width), int(height)


def validate_mask_dimensions(mask: np.ndarray, expected_size: Tuple[int, int],
                             name: str = "saliency mask") -> None:
    """
    Check that a mask matches the resolution it is supposed to describe.

    Args:
        mask: Mask array
        expected_size: Expected (width, height)
        name: Name used in the error message

    Raises:
        ValidationError: If the dimensions differ
    """

    width, height = validate_image_array(mask, name)
    expected_width, expected_height = int(expected_size[0]), int(expected_size[1])

    if (width, height) != (expected_width, expected_height):
        raise ValidationError(
            f"{name} is {width}x{height} but the processing image is "
            f"{expected_width}x{expected_height}"
        )


def validate_threshold(threshold: float) -> float:
    """Validate a binarization threshold in [0, 1)."""

    try:
        value = float(threshold)
    except (TypeError, ValueError):
        raise ValidationError(f"threshold must be a number, got {threshold!r}")

    if not 0.0 <= value < 1.0:
        raise ValidationError(f"threshold must be in [0, 1), got {value}")

    return value
