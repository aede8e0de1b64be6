"""
Unit tests for image loading, orientation normalization and resizing.
"""

import io
import os
import sys
import pytest
import numpy as np
import cv2
from PIL import Image

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from preprocessing import (
    ImagePreprocessor,
    create_preprocessing_pipeline,
    compute_processing_size,
    normalize_orientation,
    to_bgr
)
from utils.validation import ValidationError

EXIF_ORIENTATION_TAG = 0x0112


def create_test_image(size=(60, 90)):
    """Create an asymmetric BGR test image so every orientation is distinguishable."""
    height, width = size
    image = np.zeros((height, width, 3), dtype=np.uint8)

    cv2.rectangle(image, (5, 5), (25, 15), (255, 255, 255), -1)
    cv2.rectangle(image, (width - 20, height - 30), (width - 5, height - 5), (0, 0, 255), -1)
    image[0, :, 1] = 128

    return image


def encode_png(image_bgr, orientation=None):
    """Encode a BGR array as PNG bytes, optionally tagged with an EXIF orientation."""
    pil_image = Image.fromarray(cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB))
    buffer = io.BytesIO()

    if orientation is None:
        pil_image.save(buffer, format='PNG')
    else:
        exif = Image.Exif()
        exif[EXIF_ORIENTATION_TAG] = orientation
        pil_image.save(buffer, format='PNG', exif=exif)

    return buffer.getvalue()


class TestProcessingSize:
    """Tests for the processing resolution."""

    def test_large_image_is_capped(self):
        """Test that the longest side is capped."""
        assert compute_processing_size(1600, 1200) == (800, 600)
        assert compute_processing_size(1200, 1600) == (600, 800)

    def test_small_image_is_kept(self):
        """Test that small images keep their size."""
        assert compute_processing_size(400, 300) == (400, 300)
        assert compute_processing_size(800, 800) == (800, 800)

    def test_extreme_aspect_ratio(self):
        """Test that thin images keep at least one pixel."""
        assert compute_processing_size(4000, 10) == (800, 2)
        assert compute_processing_size(10000, 1) == (800, 1)

    def test_custom_cap(self):
        """Test a custom processing cap."""
        assert compute_processing_size(1000, 500, max_side=100) == (100, 50)

    def test_invalid(self):
        """Test rejection of invalid dimensions."""
        with pytest.raises(ValidationError):
            compute_processing_size(0, 100)

        with pytest.raises(ValidationError):
            compute_processing_size(100, 100, max_side=0)


class TestOrientation:
    """Tests for EXIF orientation normalization."""

    @pytest.fixture
    def stored(self):
        return np.arange(6).reshape(2, 3)

    def test_identity(self, stored):
        """Test that orientation 1 leaves the image unchanged."""
        assert np.array_equal(normalize_orientation(stored, 1), stored)

    def test_rotations(self, stored):
        """Test rotation orientation codes."""
        assert normalize_orientation(stored, 3).tolist() == [[5, 4, 3], [2, 1, 0]]
        assert normalize_orientation(stored, 6).tolist() == [[3, 0], [4, 1], [5, 2]]
        assert normalize_orientation(stored, 8).tolist() == [[2, 5], [1, 4], [0, 3]]

    def test_mirrors(self, stored):
        """Test mirrored orientation codes."""
        assert normalize_orientation(stored, 2).tolist() == [[2, 1, 0], [5, 4, 3]]
        assert normalize_orientation(stored, 4).tolist() == [[3, 4, 5], [0, 1, 2]]
        assert normalize_orientation(stored, 5).tolist() == [[0, 3], [1, 4], [2, 5]]
        assert normalize_orientation(stored, 7).tolist() == [[5, 2], [4, 1], [3, 0]]

    def test_result_is_contiguous(self, stored):
        """Test that normalized arrays are contiguous."""
        assert normalize_orientation(stored, 6).flags['C_CONTIGUOUS']

    @pytest.mark.parametrize("orientation", [0, 9, -1])
    def test_unsupported(self, stored, orientation):
        """Test rejection of unknown orientation codes."""
        with pytest.raises(ValidationError):
            normalize_orientation(stored, orientation)

    @pytest.mark.parametrize("orientation", [2, 3, 4, 5, 6, 7, 8])
    def test_matches_exif_transpose(self, orientation):
        """Test agreement with Pillow EXIF transposition."""
        stored = create_test_image()
        preprocessor = ImagePreprocessor()

        decoded = preprocessor.load_image_bytes(encode_png(stored, orientation))

        assert np.array_equal(decoded, normalize_orientation(stored, orientation))


class TestImagePreprocessor:
    """Tests for loading and resizing."""

    @pytest.fixture
    def preprocessor(self):
        return ImagePreprocessor()

    def test_load_image_bytes(self, preprocessor):
        """Test decoding images held in memory."""
        image = create_test_image()
        assert np.array_equal(preprocessor.load_image_bytes(encode_png(image)), image)

    def test_load_image_file(self, preprocessor, tmp_path):
        """Test loading images from disk."""
        image = create_test_image()
        path = tmp_path / "photo.png"
        path.write_bytes(encode_png(image))

        assert np.array_equal(preprocessor.load_image(str(path)), image)

    def test_load_errors(self, preprocessor, tmp_path):
        """Test errors for missing and corrupt files."""
        with pytest.raises(ValidationError):
            preprocessor.load_image_bytes(b"")

        with pytest.raises(ValidationError):
            preprocessor.load_image_bytes(b"not an image")

        with pytest.raises(ValidationError):
            preprocessor.load_image(str(tmp_path / "missing.jpg"))

    def test_resize_for_processing(self, preprocessor):
        """Test downscaling to the processing resolution."""
        image = np.zeros((1200, 1600, 3), dtype=np.uint8)
        resized = preprocessor.resize_for_processing(image)

        assert resized.shape == (600, 800, 3)
        assert preprocessor.processing_size(image) == (800, 600)

    def test_small_images_are_not_copied(self, preprocessor):
        """Test that small images are returned as is."""
        image = create_test_image()
        assert preprocessor.resize_for_processing(image) is image

    def test_boolean_masks_can_be_resized(self, preprocessor):
        """Test resizing boolean masks."""
        mask = np.zeros((1000, 1000), dtype=bool)
        mask[:500] = True

        resized = preprocessor.resize_for_processing(mask)
        assert resized.shape == (800, 800)
        assert resized[0, 0] == 255

    def test_factory(self):
        """Test the preprocessing factory."""
        preprocessor = create_preprocessing_pipeline({'max_processing_side': 256})
        assert preprocessor.max_processing_side == 256


class TestChannelLayout:
    """Tests for bringing images to three channels."""

    @pytest.mark.parametrize("channels", [None, 1])
    def test_gray_is_replicated(self, channels):
        """Test that gray images are replicated across three channels."""
        gray = np.arange(12, dtype=np.uint16).reshape(3, 4)
        image = gray if channels is None else gray[..., np.newaxis]

        bgr = to_bgr(image)

        assert bgr.shape == (3, 4, 3)
        assert bgr.dtype == np.uint16
        for channel in range(3):
            assert np.array_equal(bgr[..., channel], gray)

    def test_alpha_is_dropped(self):
        """Test that the alpha channel of BGRA images is dropped."""
        bgra = cv2.cvtColor(create_test_image(), cv2.COLOR_BGR2BGRA)
        assert np.array_equal(to_bgr(bgra), create_test_image())

    def test_bgr_is_unchanged(self):
        """Test that BGR images are returned as is."""
        image = create_test_image()
        assert to_bgr(image) is image
