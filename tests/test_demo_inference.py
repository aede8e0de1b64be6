"""
Tests for the command line demo.
"""

import os
import sys
import numpy as np
import cv2
import matplotlib
from matplotlib.axes import Axes
from PIL import Image

matplotlib.use('Agg')

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import demo_inference
from analysis import CompositionAnalyzer
from models.saliency_oracle import CallableSaliencyOracle

EXIF_ORIENTATION_TAG = 0x0112


def create_test_image(size=(200, 300), squares=((30, 40, 25),)):
    """Create a black BGR image with white squares given as (x, y, side)."""
    height, width = size
    image = np.zeros((height, width, 3), dtype=np.uint8)

    for x, y, side in squares:
        image[y:y + side, x:x + side] = 255

    return image


def save_png(path, image_bgr, orientation):
    """Save a BGR array as PNG tagged with an EXIF orientation."""
    exif = Image.Exif()
    exif[EXIF_ORIENTATION_TAG] = orientation
    Image.fromarray(cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB)).save(str(path), format='PNG', exif=exif)


class TestVisualizeResults:
    """Tests for the overlay visualization."""

    def test_overlay_uses_upright_photo(self, tmp_path, monkeypatch):
        """Test that EXIF-rotated photos are drawn upright, not stretched."""
        upright = create_test_image()
        photo_path = tmp_path / "portrait.png"
        # Stored a quarter turn counter-clockwise, tagged to be rotated back
        save_png(photo_path, np.rot90(upright, k=1), orientation=6)

        shown = []
        original_imshow = Axes.imshow

        def recording_imshow(self, image, *args, **kwargs):
            shown.append(np.array(image))
            return original_imshow(self, image, *args, **kwargs)

        monkeypatch.setattr(Axes, 'imshow', recording_imshow)

        analyzer = CompositionAnalyzer(oracle=CallableSaliencyOracle(lambda image: image[..., 0] / 255.0))
        try:
            results = analyzer.analyze_file(str(photo_path))
            save_path = tmp_path / "overlay.png"
            demo_inference.visualize_results(photo_path, results, analyzer.preprocessor, save_path=save_path)
        finally:
            analyzer.shutdown()

        assert save_path.exists()
        assert results.image_size == (300, 200)
        assert np.array_equal(shown[0], cv2.cvtColor(upright, cv2.COLOR_BGR2RGB))
