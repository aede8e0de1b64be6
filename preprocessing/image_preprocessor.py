"""
Image Preprocessing Module for the Composition Advisor

Handles image acquisition, orientation normalization and reduction to the
processing resolution at which saliency and region extraction run.
"""

import io
import cv2
import numpy as np
from PIL import Image, ImageOps
from typing import Tuple, Dict, Optional
import logging

from utils.validation import ValidationError, validate_image_array

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROCESSING_SIDE = 800

# EXIF orientation code -> operation that makes the array upright
EXIF_ORIENTATIONS = {
    1: 'identity',
    2: 'flip_left_right',
    3: 'rotate_180',
    4: 'flip_top_bottom',
    5: 'transpose',
    6: 'rotate_270',
    7: 'transverse',
    8: 'rotate_90'
}


def compute_processing_size(width: int, height: int,
                            max_side: int = DEFAULT_MAX_PROCESSING_SIDE) -> Tuple[int, int]:
    """
    Compute the processing resolution for an image.

    The longest side is capped at ``max_side`` while preserving the aspect
    ratio. Images already within the cap keep their size.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        max_side: Cap on the longest side

    Returns:
        Tuple of (processing_width, processing_height)
    """

    if width <= 0 or height <= 0:
        raise ValidationError(f"Image must have positive dimensions, got {width}x{height}")

    if max_side <= 0:
        raise ValidationError(f"max_side must be positive, got {max_side}")

    longest = max(width, height)
    if longest <= max_side:
        return int(width), int(height)

    scale = max_side / longest
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def normalize_orientation(image: np.ndarray, orientation: int = 1) -> np.ndarray:
    """
    Re-orient an array stored in an EXIF orientation frame so it is upright.

    Works for images and masks alike (2D or 3D arrays).

    Args:
        image: Array as stored
        orientation: EXIF orientation code (1-8)

    Returns:
        Upright array (a view is never returned; the result is contiguous)
    """

    if orientation not in EXIF_ORIENTATIONS:
        raise ValidationError(f"Unsupported EXIF orientation: {orientation}")

    operation = EXIF_ORIENTATIONS[orientation]

    if operation == 'identity':
        result = image
    elif operation == 'flip_left_right':
        result = image[:, ::-1]
    elif operation == 'rotate_180':
        result = image[::-1, ::-1]
    elif operation == 'flip_top_bottom':
        result = image[::-1]
    elif operation == 'transpose':
        result = np.swapaxes(image, 0, 1)
    elif operation == 'rotate_270':
        # 90 degrees clockwise
        result = np.rot90(image, k=-1)
    elif operation == 'transverse':
        result = np.swapaxes(image, 0, 1)[::-1, ::-1]
    else:
        # 90 degrees counter-clockwise
        result = np.rot90(image, k=1)

    return np.ascontiguousarray(result)


def to_bgr(image: np.ndarray) -> np.ndarray:
    """
    Bring a validated image to the 3-channel layout oracles receive.

    Gray (H, W) and (H, W, 1) arrays are replicated across three channels;
    the alpha channel of (H, W, 4) arrays is dropped. The dtype is kept.
    """

    if image.ndim == 2:
        image = image[:, :, np.newaxis]

    channels = image.shape[2]
    if channels == 1:
        return np.repeat(image, 3, axis=2)
    if channels == 4:
        return np.ascontiguousarray(image[:, :, :3])

    return image


class ImagePreprocessor:
    """
    Image preprocessing for composition analysis.

    Features:
    - Multi-format image loading with EXIF orientation applied
    - Orientation normalization for arrays carrying an EXIF code
    - Downscaling to a capped processing resolution
    """

    def __init__(self, max_processing_side: int = DEFAULT_MAX_PROCESSING_SIDE,
                 interpolation: int = cv2.INTER_AREA):
        """
        Initialize the ImagePreprocessor.

        Args:
            max_processing_side: Cap on the longest side of the processing image
            interpolation: OpenCV interpolation flag used when downscaling
        """
        self.max_processing_side = max_processing_side
        self.interpolation = interpolation

        logger.info(f"ImagePreprocessor initialized with max_processing_side = {max_processing_side}")

    def load_image(self, image_path: str) -> np.ndarray:
        """
        Load image from file path, upright and in BGR format.

        Args:
            image_path: Path to the image file

        Returns:
            Loaded image as numpy array in BGR format

        Raises:
            ValidationError: If image cannot be loaded or is invalid
        """

        try:
            with Image.open(image_path) as pil_image:
                image = self._pil_to_bgr(pil_image)

            logger.debug(f"Loaded image: {image_path}, shape: {image.shape}")
            return image

        except ValidationError:
            raise

        except Exception as e:
            logger.error(f"Error loading image {image_path}: {str(e)}")
            raise ValidationError(f"Failed to load image: {str(e)}")

    def load_image_bytes(self, data: bytes) -> np.ndarray:
        """
        Decode an encoded image (JPEG, PNG, ...) held in memory.

        Returns:
            Upright image as numpy array in BGR format
        """

        if not data:
            raise ValidationError("Image data is empty")

        try:
            with Image.open(io.BytesIO(data)) as pil_image:
                return self._pil_to_bgr(pil_image)

        except Exception as e:
            logger.error(f"Error decoding image bytes: {str(e)}")
            raise ValidationError(f"Failed to decode image: {str(e)}")

    def _pil_to_bgr(self, pil_image: Image.Image) -> np.ndarray:
        """Apply EXIF orientation and convert to a BGR array."""

        upright = ImageOps.exif_transpose(pil_image)
        rgb = np.array(upright.convert('RGB'))

        if rgb.size == 0:
            raise ValidationError("Decoded image is empty")

        return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)

    def normalize_orientation(self, image: np.ndarray, orientation: int = 1) -> np.ndarray:
        """Return ``image`` upright according to its EXIF orientation code."""

        return normalize_orientation(image, orientation)

    def processing_size(self, image: np.ndarray) -> Tuple[int, int]:
        """Processing (width, height) for ``image``."""

        width, height = validate_image_array(image)
        return compute_processing_size(width, height, self.max_processing_side)

    def resize_for_processing(self, image: np.ndarray) -> np.ndarray:
        """
        Downscale an image to the processing resolution.

        Args:
            image: Input image as numpy array

        Returns:
            Resized image (the input itself when no downscaling is needed)
        """

        width, height = validate_image_array(image)
        target_w, target_h = compute_processing_size(width, height, self.max_processing_side)

        if (target_w, target_h) == (width, height):
            return image

        if image.dtype == np.bool_:
            image = image.astype(np.uint8) * 255

        resized = cv2.resize(image, (target_w, target_h), interpolation=self.interpolation)
        logger.debug(f"Resized image from {width}x{height} to {target_w}x{target_h}")

        return resized


def create_preprocessing_pipeline(config: Optional[Dict] = None) -> ImagePreprocessor:
    """
    Factory function to create a configured preprocessing pipeline.

    Args:
        config: Configuration dictionary with preprocessing parameters

    Returns:
        Configured ImagePreprocessor instance
    """

    if config is None:
        config = {}

    return ImagePreprocessor(
        max_processing_side=config.get('max_processing_side', DEFAULT_MAX_PROCESSING_SIDE)
    )
