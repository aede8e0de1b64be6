"""
Integration tests for the single-shot composition analyzer.
"""

import os
import sys
import threading
import pytest
import numpy as np

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from analysis import CompositionAnalyzer, AnalysisError, AdviceType
from models.saliency_oracle import CallableSaliencyOracle
from utils.geometry import BoundingBox
from utils.validation import ValidationError


def create_test_image(size=(300, 300), squares=()):
    """Create a black BGR image with white squares given as (x, y, side)."""
    height, width = size
    image = np.zeros((height, width, 3), dtype=np.uint8)

    for x, y, side in squares:
        image[y:y + side, x:x + side] = 255

    return image


def brightness_saliency(image):
    """Saliency equal to the blue channel, scaled to [0, 1]."""
    return image[..., 0] / 255.0


class BlockingOracle(CallableSaliencyOracle):
    """Oracle that waits for the test to release it."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        super().__init__(self._predict, name="blocking")

    def _predict(self, image):
        self.started.set()
        self.release.wait(5)
        return brightness_saliency(image)


def failing_saliency(image):
    raise RuntimeError("model exploded")


@pytest.fixture
def analyzer():
    analyzer = CompositionAnalyzer(oracle=CallableSaliencyOracle(brightness_saliency))
    yield analyzer
    analyzer.shutdown()


class TestAnalyze:
    """Tests for synchronous analysis."""

    def test_single_subject(self, analyzer):
        """Test analysis of an image with one subject."""
        results = analyzer.analyze(create_test_image(squares=[(100, 100, 20)]))

        assert results.image_size == (300, 300)
        assert results.processing_size == (300, 300)
        assert results.subject_detected
        assert len(results.regions) == 1
        assert results.main_subject.bbox == BoundingBox(100.0, 100.0, 20.0, 20.0)
        assert results.main_subject.centroid == pytest.approx((109.5, 109.5))

        assert results.score.best_rule == "Rule of Thirds"
        assert len(results.advice) == 1
        assert results.advice[0].type == AdviceType.MOVE_TO_RULE_OF_THIRDS
        assert results.advice[0].target_position == (100.0, 100.0)

    def test_no_subject(self, analyzer):
        """Test analysis of an image without subjects."""
        results = analyzer.analyze(create_test_image())

        assert not results.subject_detected
        assert results.regions == []
        assert results.score is None
        assert results.advice == []

        as_dict = results.to_dict()
        assert as_dict['main_subject'] is None
        assert as_dict['score'] is None

    def test_multiple_subjects(self, analyzer):
        """Test that several subjects add consolidation advice."""
        results = analyzer.analyze(create_test_image(squares=[(20, 20, 30), (200, 200, 40)]))

        assert len(results.regions) == 2
        assert results.main_subject is results.regions[0]
        assert [advice.type for advice in results.advice] == [
            AdviceType.MOVE_TO_RULE_OF_THIRDS, AdviceType.REDUCE_SUBJECTS
        ]

    def test_downscaled_results_are_in_image_pixels(self, analyzer):
        """Test that results of downscaled images are mapped back to image pixels."""
        image = create_test_image(size=(1200, 1600), squares=[(400, 400, 200)])
        results = analyzer.analyze(image)

        assert results.image_size == (1600, 1200)
        assert results.processing_size == (800, 600)

        region = results.regions[0]
        assert region.bbox.as_tuple() == pytest.approx((400.0, 400.0, 200.0, 200.0), abs=2.0)
        assert region.centroid == pytest.approx((499.5, 499.5), abs=2.0)
        # Counted at processing resolution
        assert region.pixel_count == pytest.approx(10000, rel=0.05)

    def test_overrides(self, analyzer):
        """Test that per-call overrides apply to one call only."""
        image = create_test_image(squares=[(20, 20, 10), (150, 150, 40)])

        assert len(analyzer.analyze(image).regions) == 2

        results = analyzer.analyze(image, overrides={'min_region_width': 20})
        assert len(results.regions) == 1
        assert results.regions[0].bbox.x == 150.0

        largest = analyzer.analyze(image, overrides={'subject_policy': 'largest'})
        assert largest.main_subject.bbox.x == 150.0

        # Overrides do not stick
        assert analyzer.analyze(image).main_subject.bbox.x == 20.0

    def test_threshold_override(self):
        """Test the binarization threshold override."""
        analyzer = CompositionAnalyzer(oracle=CallableSaliencyOracle(lambda image: np.full(image.shape[:2], 0.3)))

        assert len(analyzer.analyze(create_test_image()).regions) == 1
        assert analyzer.analyze(create_test_image(), overrides={'binarization_threshold': 0.5}).regions == []

    def test_orientation(self, analyzer):
        """Test that EXIF-rotated input gives upright results."""
        upright = create_test_image(size=(200, 300), squares=[(30, 40, 25)])
        # Stored rotated a quarter turn counter-clockwise (EXIF 6)
        stored = np.rot90(upright, k=1)

        expected = analyzer.analyze(upright)
        results = analyzer.analyze(stored, orientation=6)

        assert results.image_size == (300, 200)
        assert results.regions == expected.regions

    def test_oracle_output_orientation(self):
        """Test re-orientation of oracle output."""
        oracle = CallableSaliencyOracle(
            lambda image: np.rot90(brightness_saliency(image), k=1),
            output_orientation=6
        )
        analyzer = CompositionAnalyzer(oracle=oracle)

        results = analyzer.analyze(create_test_image(size=(200, 300), squares=[(30, 40, 25)]))
        assert results.regions[0].bbox == BoundingBox(30.0, 40.0, 25.0, 25.0)

    def test_oracle_failure(self):
        """Test that oracle errors become AnalysisError."""
        analyzer = CompositionAnalyzer(oracle=CallableSaliencyOracle(failing_saliency))

        with pytest.raises(AnalysisError, match="model exploded"):
            analyzer.analyze(create_test_image())

    def test_mismatched_mask(self):
        """Test rejection of oracle output with the wrong size."""
        analyzer = CompositionAnalyzer(oracle=CallableSaliencyOracle(lambda image: np.zeros((10, 10))))

        with pytest.raises(ValidationError):
            analyzer.analyze(create_test_image())

    @pytest.mark.parametrize("image", [
        np.zeros((0, 10, 3), dtype=np.uint8),
        np.zeros((10, 10, 2), dtype=np.uint8),
        None
    ])
    def test_invalid_images(self, analyzer, image):
        """Test rejection of malformed images."""
        with pytest.raises(ValidationError):
            analyzer.analyze(image)

    def test_single_channel_images(self, analyzer):
        """Test that gray and single-channel images match their BGR counterparts."""
        image = create_test_image(squares=[(100, 100, 20)])
        expected = analyzer.analyze(image).regions

        assert analyzer.analyze(image[..., :1]).regions == expected
        assert analyzer.analyze(image[..., 0]).regions == expected

    @pytest.mark.parametrize("size,square", [
        ((300, 300), (100, 100, 20)),
        ((1000, 1000), (400, 400, 200))
    ])
    def test_single_channel_with_default_oracle(self, size, square):
        """Test single-channel images below and above the processing cap."""
        analyzer = CompositionAnalyzer()
        image = create_test_image(size=size, squares=[square])[..., :1]

        try:
            results = analyzer.analyze(image)
        finally:
            analyzer.shutdown()

        assert results.subject_detected
        assert results.image_size == size

    def test_analyze_mask(self, analyzer):
        """Test analysis of a precomputed mask."""
        mask = np.zeros((100, 100), dtype=np.float32)
        mask[10:30, 60:80] = 1.0

        results = analyzer.analyze_mask(mask, image_size=(200, 200))

        assert results.image_size == (200, 200)
        assert results.processing_size == (100, 100)
        assert results.regions[0].bbox == BoundingBox(120.0, 20.0, 40.0, 40.0)

    def test_results_to_dict(self, analyzer):
        """Test JSON serialization of results."""
        as_dict = analyzer.analyze(create_test_image(squares=[(100, 100, 20)])).to_dict()

        assert as_dict['image_size'] == {'width': 300, 'height': 300}
        assert as_dict['subject_detected'] is True
        assert as_dict['regions'][0]['pixel_count'] == 400
        assert as_dict['advice'][0]['type'] == 'move_to_rule_of_thirds'
        assert isinstance(as_dict['timestamp'], str)


class TestSubmit:
    """Tests for asynchronous single-shot analysis."""

    def test_submit_delivers_outcome(self, analyzer):
        """Test that submit resolves and calls back with the outcome."""
        received = []
        future = analyzer.submit(create_test_image(squares=[(100, 100, 20)]), callback=received.append)

        outcome = future.result(timeout=10)

        assert outcome.succeeded
        assert len(outcome.result.regions) == 1
        assert received == [outcome]
        assert not analyzer.is_busy

    def test_rejects_while_busy(self):
        """Test that submit returns None while an analysis runs."""
        oracle = BlockingOracle()
        analyzer = CompositionAnalyzer(oracle=oracle)
        image = create_test_image(squares=[(100, 100, 20)])

        try:
            first = analyzer.submit(image)
            assert first is not None
            assert oracle.started.wait(5)

            assert analyzer.is_busy
            assert analyzer.submit(image) is None

            oracle.release.set()
            assert first.result(timeout=10).succeeded

            second = analyzer.submit(image)
            assert second is not None
            assert second.result(timeout=10).succeeded
        finally:
            oracle.release.set()
            analyzer.shutdown()

    def test_errors_are_delivered(self):
        """Test that failures are delivered as outcomes."""
        analyzer = CompositionAnalyzer(oracle=CallableSaliencyOracle(failing_saliency))
        received = []

        try:
            outcome = analyzer.submit(create_test_image(), callback=received.append).result(timeout=10)
        finally:
            analyzer.shutdown()

        assert not outcome.succeeded
        assert outcome.error_type == 'AnalysisError'
        assert "model exploded" in outcome.error
        assert received == [outcome]
        assert outcome.to_dict()['result'] is None

    def test_callback_errors_do_not_leak(self, analyzer):
        """Test that a raising callback leaves the analyzer usable."""
        def bad_callback(outcome):
            raise RuntimeError("callback failed")

        outcome = analyzer.submit(create_test_image(), callback=bad_callback).result(timeout=10)
        assert outcome.succeeded
        assert not analyzer.is_busy


class TestBatchAnalyze:
    """Tests for batch analysis."""

    def test_batch_keeps_order_and_errors(self, analyzer):
        """Test batch analysis order and per-image errors."""
        images = [
            create_test_image(squares=[(100, 100, 20)]),
            np.zeros((0, 0, 3), dtype=np.uint8),
            create_test_image()
        ]

        outcomes = analyzer.batch_analyze(images)

        assert [outcome.succeeded for outcome in outcomes] == [True, False, True]
        assert outcomes[1].error_type == 'ValidationError'
        assert outcomes[2].result.score is None


class TestReferenceScenes:
    """End-to-end checks on hand-computed masks."""

    def test_centered_square(self, analyzer):
        """Test a square at the frame center."""
        mask = np.zeros((300, 300), dtype=np.float32)
        mask[145:165, 145:165] = 1.0

        results = analyzer.analyze_mask(mask)

        assert len(results.regions) == 1
        assert results.regions[0].bbox == BoundingBox(145.0, 145.0, 20.0, 20.0)
        assert results.regions[0].centroid == pytest.approx((154.5, 154.5))
        assert results.score.center_score == pytest.approx(100.0, abs=5.0)
        assert results.score.best_rule == "Center Composition"

    def test_square_on_third_point(self, analyzer):
        """Test a square centered on a thirds intersection."""
        mask = np.zeros((300, 300), dtype=np.float32)
        mask[90:111, 90:111] = 1.0

        results = analyzer.analyze_mask(mask)

        assert results.main_subject.centroid == pytest.approx((100.0, 100.0))
        assert results.score.rule_of_thirds_score == pytest.approx(100.0)
        assert results.advice[0].intensity == pytest.approx(0.0)

    def test_two_subjects_get_consolidation_advice(self, analyzer):
        """Test consolidation advice for two subjects."""
        mask = np.zeros((300, 300), dtype=np.float32)
        mask[20:50, 20:50] = 1.0
        mask[230:270, 230:270] = 1.0

        results = analyzer.analyze_mask(mask)

        assert [region.bbox.x for region in results.regions] == [20.0, 230.0]
        assert results.advice[-1].type == AdviceType.REDUCE_SUBJECTS
        assert results.advice[-1].target_position is None
