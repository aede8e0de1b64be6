#!/usr/bin/env python3
"""
Main Composition Analyzer

This module provides the CompositionAnalyzer class that runs the full
composition pipeline: saliency oracle, binarization, region extraction at
the processing resolution, projection back to image pixels, scoring and
advice generation.

"""

import numpy as np
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
from dataclasses import dataclass
from datetime import datetime

from models.saliency_oracle import GradientSaliencyOracle, SaliencyOracle
from preprocessing.binarizer import DEFAULT_THRESHOLD, WHITE_CUTOFF, binarize, to_visualization
from preprocessing.image_preprocessor import (
    DEFAULT_MAX_PROCESSING_SIDE,
    ImagePreprocessor,
    normalize_orientation,
    to_bgr
)
from utils.coordinate_mapper import CoordinateMapper
from utils.geometry import Region, Size
from utils.validation import (
    ValidationError,
    validate_image_array,
    validate_mask_dimensions,
    validate_size
)

from .region_extractor import RegionExtractor, select_main_subject
from .scoring_algorithms import CompositionScore, CompositionScorer
from .suggestion_engine import AdviceGenerator, VisualAdvice

logger = logging.getLogger(__name__)


class AnalysisError(RuntimeError):
    """Raised when the saliency oracle cannot produce a mask."""


@dataclass
class CompositionResults:
    """

    Composition analysis results for one image.

    All geometry is in original-image pixel coordinates. When no subject is
    detected ``regions`` and ``advice`` are empty and ``score`` is None.

    """

    image_size: Tuple[int, int]
    processing_size: Tuple[int, int]
    regions: List[Region]
    main_subject: Optional[Region]
    score: Optional[CompositionScore]
    advice: List[VisualAdvice]
    processing_time: float
    timestamp: datetime

    @property
    def subject_detected(self) -> bool:
        return self.main_subject is not None

    def to_dict(self) -> Dict[str, Any]:
        """ Convert results to dictionary format. """

        return {
            'image_size': {'width': self.image_size[0], 'height': self.image_size[1]},
            'processing_size': {'width': self.processing_size[0], 'height': self.processing_size[1]},
            'subject_detected': self.subject_detected,
            'regions': [region.to_dict() for region in self.regions],
            'main_subject': self.main_subject.to_dict() if self.main_subject is not None else None,
            'score': self.score.to_dict() if self.score is not None else None,
            'advice': [advice.to_dict() for advice in self.advice],
            'processing_time': self.processing_time,
            'timestamp': self.timestamp.isoformat()
        }


@dataclass
class AnalysisOutcome:
    """Result-or-error delivered by an asynchronous single-shot analysis."""

    result: Optional[CompositionResults] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'succeeded': self.succeeded,
            'result': self.result.to_dict() if self.result is not None else None,
            'error': self.error,
            'error_type': self.error_type
        }


class CompositionAnalyzer:
    """

    Composition analysis orchestrator.

    Analyses are pure with respect to the analyzer: every call builds its
    own masks, visited buffers and results. The only shared state is the
    busy flag that gates ``submit``.

    """

    def __init__(self, oracle: Optional[SaliencyOracle] = None, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the composition analyzer.

        Args:
            oracle: Saliency source (defaults to the gradient fallback)
            config: Configuration overrides for analyzer settings
        """

        self.oracle = oracle or GradientSaliencyOracle()
        self.config = {**self._get_default_config(), **(config or {})}

        self.preprocessor, self.extractor, self.scorer, self.advice_generator = \
            self._build_components(self.config)

        self._busy = False
        self._busy_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="composition-analyzer")

        logger.info(f"CompositionAnalyzer initialized with {self.oracle.name} saliency oracle")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration for the analyzer"""

        return {
            'binarization_threshold': DEFAULT_THRESHOLD,
            'white_cutoff': WHITE_CUTOFF,
            'max_processing_side': DEFAULT_MAX_PROCESSING_SIDE,

            # None selects the resolution-scaled defaults
            'min_region_width': None,
            'min_region_height': None,
            'min_region_pixel_count': None,

            'advice_target': 'best',  # 'rule_of_thirds', 'center', 'best'
            'subject_policy': 'discovery_order',  # 'discovery_order', 'largest'
            'intensity_reference_distance': 100.0,

            'max_recommendations': 3,
            'cap_includes_multi_subject': False
        }

    def _build_components(self, config: Dict[str, Any]):
        """Create the pipeline stages for a configuration."""

        preprocessor = ImagePreprocessor(max_processing_side=config['max_processing_side'])
        extractor = RegionExtractor(config)
        scorer = CompositionScorer(config)
        advice_generator = AdviceGenerator(config)

        return preprocessor, extractor, scorer, advice_generator

    def _components_for(self, overrides: Optional[Dict[str, Any]]):
        if not overrides:
            return self.config, (self.preprocessor, self.extractor, self.scorer, self.advice_generator)

        settings = {**self.config, **overrides}
        return settings, self._build_components(settings)

    @property
    def is_busy(self) -> bool:
        with self._busy_lock:
            return self._busy

    def analyze(self, image: np.ndarray, orientation: int = 1,
                overrides: Optional[Dict[str, Any]] = None) -> CompositionResults:

        """
        Perform composition analysis on an image.

        Args:
            image: Input image (H, W, C) in BGR format
            orientation: EXIF orientation code of ``image``
            overrides: Per-call configuration overrides

        Returns:
            CompositionResults in original-image pixel coordinates

        Raises:
            ValidationError: If the image or the oracle output is malformed
            AnalysisError: If the saliency oracle fails
        """

        start_time = datetime.now()

        try:
            settings, (preprocessor, extractor, scorer, advice_generator) = self._components_for(overrides)

            # Step 1: Validate and bring the image upright
            validate_image_array(image)
            image = to_bgr(normalize_orientation(image, orientation))
            image_size = (image.shape[1], image.shape[0])

            # Step 2: Downscale to the processing resolution
            processing_image = preprocessor.resize_for_processing(image)
            processing_size = (processing_image.shape[1], processing_image.shape[0])
            logger.debug(f"Processing {image_size} at {processing_size}")

            # Step 3: Saliency
            saliency = self._run_oracle(processing_image, processing_size)

            # Step 4: Binarize, extract, score, advise
            results = self._analyze_saliency(
                saliency, image_size, processing_size, settings,
                extractor, scorer, advice_generator, start_time
            )

            self._log_completion(results)
            return results

        except Exception as e:
            logger.error(f"Analysis failed: {str(e)}")
            raise

    def analyze_mask(self, mask: np.ndarray, image_size: Optional[Size] = None,
                     overrides: Optional[Dict[str, Any]] = None) -> CompositionResults:
        """
        Run the engine on a precomputed saliency mask, bypassing the oracle.

        Args:
            mask: Saliency / alpha mask at any resolution
            image_size: (width, height) to project results onto (defaults to the mask size)
            overrides: Per-call configuration overrides

        Returns:
            CompositionResults
        """

        start_time = datetime.now()
        settings, (_, extractor, scorer, advice_generator) = self._components_for(overrides)

        mask_size = validate_image_array(mask, "saliency mask")
        if image_size is None:
            image_size = mask_size
        else:
            width, height = validate_size(image_size, "image_size")
            image_size = (int(width), int(height))

        results = self._analyze_saliency(
            mask, image_size, mask_size, settings,
            extractor, scorer, advice_generator, start_time
        )

        self._log_completion(results)
        return results

    def analyze_file(self, image_path: str, overrides: Optional[Dict[str, Any]] = None) -> CompositionResults:
        """Load an image file (EXIF orientation applied) and analyze it."""

        image = self.preprocessor.load_image(image_path)
        return self.analyze(image, overrides=overrides)

    def _run_oracle(self, processing_image: np.ndarray, processing_size: Tuple[int, int]) -> np.ndarray:
        """Call the oracle and normalize its output frame."""

        try:
            saliency = self.oracle.predict(processing_image)
        except Exception as e:
            raise AnalysisError(f"Saliency oracle {self.oracle.name!r} failed: {str(e)}") from e

        if not isinstance(saliency, np.ndarray):
            raise AnalysisError(f"Saliency oracle {self.oracle.name!r} returned {type(saliency).__name__}")

        saliency = normalize_orientation(saliency, self.oracle.output_orientation)
        validate_mask_dimensions(saliency, processing_size)

        return saliency

    def _analyze_saliency(self, saliency: np.ndarray, image_size: Tuple[int, int],
                          processing_size: Tuple[int, int], settings: Dict[str, Any],
                          extractor: RegionExtractor, scorer: CompositionScorer,
                          advice_generator: AdviceGenerator, start_time: datetime) -> CompositionResults:
        """Binarize a saliency map and run extraction, scoring and advice."""

        binary = binarize(saliency, settings['binarization_threshold'])
        regions = extractor.extract(to_visualization(binary))

        mapper = CoordinateMapper(processing_size, image_size)
        if not mapper.is_identity:
            regions = mapper.regions(regions)

        main_subject = select_main_subject(regions, settings['subject_policy'])
        score = scorer.score_regions(regions, image_size)
        advice = advice_generator.generate_advice(regions, image_size, settings['advice_target'])

        return CompositionResults(
            image_size=(int(image_size[0]), int(image_size[1])),
            processing_size=(int(processing_size[0]), int(processing_size[1])),
            regions=regions,
            main_subject=main_subject,
            score=score,
            advice=advice,
            processing_time=(datetime.now() - start_time).total_seconds(),
            timestamp=start_time
        )

    def _log_completion(self, results: CompositionResults) -> None:
        if results.score is None:
            logger.info(f"Analysis completed in {results.processing_time:.3f}s - no subject detected")
        else:
            logger.info(f"Analysis completed in {results.processing_time:.3f}s - "
                        f"{len(results.regions)} regions, score: {results.score.overall_score:.1f}")

    def submit(self, image: np.ndarray, orientation: int = 1,
               callback: Optional[Callable[[AnalysisOutcome], None]] = None,
               overrides: Optional[Dict[str, Any]] = None) -> Optional["Future[AnalysisOutcome]"]:
        """
        Run an analysis on the worker thread.

        Only one submitted analysis may be pending at a time; further requests
        are rejected rather than queued.

        Args:
            image: Input image (H, W, C) in BGR format
            orientation: EXIF orientation code of ``image``
            callback: Called exactly once with the AnalysisOutcome
            overrides: Per-call configuration overrides

        Returns:
            Future resolving to an AnalysisOutcome, or None if an analysis
            is already in progress
        """

        with self._busy_lock:
            if self._busy:
                logger.warning("Analysis already in progress, rejecting request")
                return None
            self._busy = True

        try:
            return self._executor.submit(self._run_submitted, image, orientation, callback, overrides)
        except RuntimeError:
            with self._busy_lock:
                self._busy = False
            raise

    def _run_submitted(self, image: np.ndarray, orientation: int,
                       callback: Optional[Callable[[AnalysisOutcome], None]],
                       overrides: Optional[Dict[str, Any]]) -> AnalysisOutcome:
        try:
            outcome = AnalysisOutcome(result=self.analyze(image, orientation, overrides))
        except Exception as e:
            outcome = AnalysisOutcome(error=str(e), error_type=type(e).__name__)
        finally:
            with self._busy_lock:
                self._busy = False

        if callback is not None:
            try:
                callback(outcome)
            except Exception as e:
                logger.warning(f"Analysis callback raised: {str(e)}")

        return outcome

    def batch_analyze(self, images: List[np.ndarray]) -> List[AnalysisOutcome]:
        """

        Analyze multiple images sequentially.

        Args:
            images: List of input images

        Returns:
            One AnalysisOutcome per image, in input order
        """

        outcomes = []

        logger.info(f"Starting batch analysis of {len(images)} images")

        for i, image in enumerate(images):
            try:
                outcomes.append(AnalysisOutcome(result=self.analyze(image)))
                logger.debug(f"Batch analysis {i+1} / {len(images)} completed")

            except (ValidationError, AnalysisError) as e:
                logger.error(f"Batch analysis failed for image {i+1}: {str(e)}")
                outcomes.append(AnalysisOutcome(error=str(e), error_type=type(e).__name__))

        logger.info(f"Batch analysis completed: {len(outcomes)} results")
        return outcomes

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker thread."""

        self._executor.shutdown(wait=wait)
