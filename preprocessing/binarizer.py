"""
Saliency Mask Binarization

Thresholds a continuous saliency / alpha channel into a binary foreground
mask, and provides the strict white-pixel test applied during region
extraction.

The two thresholds are deliberately decoupled: binarization is loose (a
saliency value just above ``threshold`` becomes foreground) while the
extractor re-tests each pixel against a near-white cutoff, which absorbs
interpolation and compression artifacts if the mask is resized in between.
"""

import numpy as np
from typing import Sequence
import logging

from utils.validation import ValidationError, validate_image_array, validate_threshold

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.01
WHITE_CUTOFF = 250


def saliency_channel(mask: np.ndarray) -> np.ndarray:
    """
    Extract the channel carrying saliency and scale it to [0, 1].

    Args:
        mask: H x W, H x W x 1, H x W x 3 (first channel is used) or
              H x W x 4 (alpha channel is used) array

    Returns:
        H x W float32 array
    """

    validate_image_array(mask, "saliency mask")

    if mask.ndim == 3:
        channel = mask[..., 3] if mask.shape[2] == 4 else mask[..., 0]
    else:
        channel = mask

    if channel.dtype == np.bool_:
        return channel.astype(np.float32)

    if np.issubdtype(channel.dtype, np.unsignedinteger):
        return channel.astype(np.float32) / float(np.iinfo(channel.dtype).max)

    return channel.astype(np.float32)


def binarize(mask: np.ndarray, threshold: float = DEFAULT_THRESHOLD) -> np.ndarray:
    """
    Threshold a saliency / alpha mask.

    Args:
        mask: Saliency mask (see ``saliency_channel`` for accepted layouts)
        threshold: Values strictly greater than this become foreground

    Returns:
        H x W float32 array of 1.0 (foreground) and 0.0 (background)
    """

    threshold = validate_threshold(threshold)
    channel = saliency_channel(mask)

    binary = (channel > threshold).astype(np.float32)

    logger.debug(f"Binarized {channel.shape[1]}x{channel.shape[0]} mask at {threshold}: "
                 f"{int(binary.sum())} foreground pixels")

    return binary


def to_visualization(binary: np.ndarray) -> np.ndarray:
    """
    Render a binary mask as a 3-channel uint8 image.

    Foreground becomes pure white (255, 255, 255), background pure black.
    """

    foreground = np.asarray(binary) > 0.5
    if foreground.ndim == 3:
        foreground = foreground[..., 0]

    visualization = np.zeros(foreground.shape + (3,), dtype=np.uint8)
    visualization[foreground] = 255

    return visualization


def is_white_pixel(pixel: Sequence[int], cutoff: int = WHITE_CUTOFF) -> bool:
    """True if every color channel of a uint8 pixel is at least ``cutoff``."""

    return all(int(channel) >= cutoff for channel in list(pixel)[:3])


def white_pixel_mask(mask: np.ndarray, cutoff: int = WHITE_CUTOFF) -> np.ndarray:
    """
    Apply the strict foreground test to a whole mask.

    Color masks require all of R, G and B to reach ``cutoff``; single channel
    masks test their one channel. Float data is compared against
    ``cutoff / 255`` and bool masks are taken as they are.

    Returns:
        H x W bool array
    """

    validate_image_array(mask, "binary mask")

    if not 1 <= cutoff <= 255:
        raise ValidationError(f"white cutoff must be in [1, 255], got {cutoff}")

    if mask.ndim == 3:
        channels = mask[..., :3] if mask.shape[2] >= 3 else mask[..., :1]
    else:
        channels = mask[..., np.newaxis]

    if channels.dtype == np.bool_:
        return np.all(channels, axis=2)

    if np.issubdtype(channels.dtype, np.floating):
        return np.all(channels >= cutoff / 255.0, axis=2)

    return np.all(channels >= cutoff, axis=2)
