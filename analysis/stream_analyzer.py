#!/usr/bin/env python3
"""
Streaming Composition Analysis

Analyzes a high-rate stream of frames (e.g. a camera preview) with a
minimum interval between analyses and a single in-flight slot. Frames that
arrive too soon, or while an analysis is still running, are dropped rather
than queued. Failures on individual frames are logged and skipped.
"""

import time
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional
import logging
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from utils.geometry import Region
from .composition_analyzer import CompositionAnalyzer
from .scoring_algorithms import CompositionScore
from .suggestion_engine import VisualAdvice

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL = 0.2


@dataclass
class StreamUpdate:
    """Regions and advice computed for one admitted frame."""

    frame_index: int
    regions: List[Region]
    advice: List[VisualAdvice]
    score: Optional[CompositionScore]
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'frame_index': self.frame_index,
            'regions': [region.to_dict() for region in self.regions],
            'advice': [advice.to_dict() for advice in self.advice],
            'score': self.score.to_dict() if self.score is not None else None,
            'timestamp': self.timestamp.isoformat()
        }


class StreamAnalyzer:
    """
    Rate-limited, single-flight frame analyzer.

    Contracts: at least ``min_interval`` seconds separate the admission of
    two analyzed frames, and at most one analysis runs at a time. Which
    frame inside an interval is analyzed is not specified.
    """

    def __init__(self, analyzer: CompositionAnalyzer,
                 min_interval: float = DEFAULT_MIN_INTERVAL,
                 listener: Optional[Callable[[StreamUpdate], None]] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize the stream analyzer.

        Args:
            analyzer: Analyzer used for every admitted frame
            min_interval: Minimum seconds between admitted frames
            listener: Optional callback receiving each StreamUpdate
            clock: Monotonic time source
        """

        if min_interval < 0:
            raise ValueError(f"min_interval must be non-negative, got {min_interval}")

        self.analyzer = analyzer
        self.min_interval = min_interval
        self._clock = clock

        self._listeners: List[Callable[[StreamUpdate], None]] = []
        if listener is not None:
            self._listeners.append(listener)

        self._lock = threading.Lock()
        self._in_flight = False
        self._last_admitted: Optional[float] = None
        self._frame_index = 0
        self._idle = threading.Event()
        self._idle.set()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stream-analyzer")

        self._stats = {'offered': 0, 'analyzed': 0, 'dropped': 0, 'failed': 0}
        self.latest_update: Optional[StreamUpdate] = None

        logger.info(f"StreamAnalyzer initialized with min_interval = {min_interval}s")

    def add_listener(self, listener: Callable[[StreamUpdate], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[StreamUpdate], None]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    def offer_frame(self, frame: np.ndarray, orientation: int = 1) -> Optional["Future[Optional[StreamUpdate]]"]:
        """
        Offer a frame for analysis.

        Args:
            frame: Frame (H, W, C) in BGR format
            orientation: EXIF orientation code of ``frame``

        Returns:
            Future resolving to the StreamUpdate (None if the frame failed),
            or None if the frame was dropped
        """

        with self._lock:
            self._stats['offered'] += 1
            now = self._clock()

            too_soon = self._last_admitted is not None and now - self._last_admitted < self.min_interval
            if self._in_flight or too_soon:
                self._stats['dropped'] += 1
                return None

            self._in_flight = True
            self._last_admitted = now
            self._frame_index += 1
            frame_index = self._frame_index
            self._idle.clear()

        logger.debug(f"Admitted frame {frame_index}")
        try:
            return self._executor.submit(self._run_frame, frame_index, frame, orientation)
        except RuntimeError:
            with self._lock:
                self._in_flight = False
                self._idle.set()
            raise

    def _run_frame(self, frame_index: int, frame: np.ndarray, orientation: int) -> Optional[StreamUpdate]:
        try:
            results = self.analyzer.analyze(frame, orientation)
        except Exception as e:
            logger.warning(f"Skipping frame {frame_index}: {str(e)}")
            with self._lock:
                self._stats['failed'] += 1
                self._in_flight = False
                self._idle.set()
            return None

        update = StreamUpdate(
            frame_index=frame_index,
            regions=results.regions,
            advice=results.advice,
            score=results.score
        )

        with self._lock:
            self._stats['analyzed'] += 1
            self.latest_update = update
            listeners = list(self._listeners)
            self._in_flight = False

        for listener in listeners:
            try:
                listener(update)
            except Exception as e:
                logger.warning(f"Stream listener raised on frame {frame_index}: {str(e)}")

        with self._lock:
            # A listener may already have triggered the next admission
            if not self._in_flight:
                self._idle.set()

        return update

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no analysis is in flight. Returns False on timeout."""

        return self._idle.wait(timeout)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats)

    def close(self, wait: bool = True) -> None:
        """Stop the worker thread."""

        self._executor.shutdown(wait=wait)
