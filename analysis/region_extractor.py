#!/usr/bin/env python3
"""
Salient Region Extraction

Labels 4-connected foreground components of a binary saliency mask and
summarizes each one as a bounding box, a center of mass and a pixel count.

Components are flood-filled with an explicit stack so large contiguous
regions cannot exhaust the interpreter's recursion limit. The visited
buffer is allocated per call and never shared between analyses.
"""

import numpy as np
from typing import Dict, List, Optional, Any, Tuple
import logging

from preprocessing.binarizer import WHITE_CUTOFF, white_pixel_mask
from utils.geometry import BoundingBox, Region
from utils.validation_api import SUBJECT_POLICIES

logger = logging.getLogger(__name__)


def default_size_thresholds(width: int, height: int) -> Tuple[int, int, int]:
    """
    Resolution-scaled minimum component size.

    Args:
        width: Mask width in pixels
        height: Mask height in pixels

    Returns:
        Tuple of (min_width, min_height, min_pixel_count)
    """

    min_side = max(5, min(width, height) // 60)
    min_pixel_count = max(10, (width * height) // 16000)

    return min_side, min_side, min_pixel_count


def _flood_fill(foreground: List[bool], visited: bytearray, start: int,
                width: int, height: int) -> Tuple[int, int, int, int, int, int, int]:
    """
    Fill the 4-connected component containing ``start``.

    Pixels are marked visited when pushed, so each one enters the stack
    at most once.

    Returns:
        (min_x, min_y, max_x, max_y, sum_x, sum_y, pixel_count)
    """

    start_y, start_x = divmod(start, width)
    min_x = max_x = start_x
    min_y = max_y = start_y
    sum_x = sum_y = pixel_count = 0

    visited[start] = 1
    stack = [start]

    while stack:
        index = stack.pop()
        y, x = divmod(index, width)

        if x < min_x:
            min_x = x
        elif x > max_x:
            max_x = x
        if y < min_y:
            min_y = y
        elif y > max_y:
            max_y = y

        sum_x += x
        sum_y += y
        pixel_count += 1

        if x + 1 < width:
            neighbor = index + 1
            if foreground[neighbor] and not visited[neighbor]:
                visited[neighbor] = 1
                stack.append(neighbor)

        if x > 0:
            neighbor = index - 1
            if foreground[neighbor] and not visited[neighbor]:
                visited[neighbor] = 1
                stack.append(neighbor)

        if y + 1 < height:
            neighbor = index + width
            if foreground[neighbor] and not visited[neighbor]:
                visited[neighbor] = 1
                stack.append(neighbor)

        if y > 0:
            neighbor = index - width
            if foreground[neighbor] and not visited[neighbor]:
                visited[neighbor] = 1
                stack.append(neighbor)

    return min_x, min_y, max_x, max_y, sum_x, sum_y, pixel_count


def extract_regions(mask: np.ndarray,
                    min_width: Optional[int] = None,
                    min_height: Optional[int] = None,
                    min_pixel_count: Optional[int] = None,
                    white_cutoff: int = WHITE_CUTOFF) -> List[Region]:
    """
    Extract salient regions from a binary mask.

    A component is kept only if its bounding box is strictly wider than
    ``min_width``, strictly taller than ``min_height`` and it holds strictly
    more than ``min_pixel_count`` pixels. Rejected components are consumed
    (never rescanned, never merged into a neighbor).

    Args:
        mask: Binary mask; pixels are foreground only if they pass the
              strict white test (see ``white_pixel_mask``)
        min_width: Minimum bounding box width (None for resolution default)
        min_height: Minimum bounding box height (None for resolution default)
        min_pixel_count: Minimum pixel count (None for resolution default)
        white_cutoff: Per-channel cutoff of the white test

    Returns:
        Regions in raster-scan discovery order
    """

    foreground_mask = white_pixel_mask(mask, white_cutoff)
    height, width = foreground_mask.shape

    default_w, default_h, default_count = default_size_thresholds(width, height)
    min_width = default_w if min_width is None else min_width
    min_height = default_h if min_height is None else min_height
    min_pixel_count = default_count if min_pixel_count is None else min_pixel_count

    foreground = foreground_mask.ravel().tolist()
    visited = bytearray(width * height)

    regions = []
    rejected = 0

    # Raster order: flatnonzero walks rows top to bottom, columns left to right
    for start in np.flatnonzero(foreground_mask).tolist():
        if visited[start]:
            continue

        min_x, min_y, max_x, max_y, sum_x, sum_y, pixel_count = _flood_fill(
            foreground, visited, start, width, height
        )

        bbox = BoundingBox(
            x=float(min_x),
            y=float(min_y),
            width=float(max_x - min_x + 1),
            height=float(max_y - min_y + 1)
        )

        if bbox.width > min_width and bbox.height > min_height and pixel_count > min_pixel_count:
            regions.append(Region(
                bbox=bbox,
                centroid=(sum_x / pixel_count, sum_y / pixel_count),
                pixel_count=pixel_count
            ))
        else:
            rejected += 1

    logger.debug(f"Extracted {len(regions)} regions from {width}x{height} mask "
                 f"({rejected} below size thresholds)")

    return regions


def select_main_subject(regions: List[Region],
                        policy: str = 'discovery_order') -> Optional[Region]:
    """
    Pick the region treated as the photo's subject.

    ``discovery_order`` takes the first region found by the raster scan;
    ``largest`` takes the region with the most pixels (first one on ties).

    Returns:
        The subject region, or None if there are no regions
    """

    if policy not in SUBJECT_POLICIES:
        raise ValueError(f"Unknown subject policy: {policy}")

    if not regions:
        return None

    if policy == 'largest':
        return max(regions, key=lambda region: region.pixel_count)

    return regions[0]


class RegionExtractor:
    """
    Configured region extractor.

    Wraps ``extract_regions`` with thresholds taken from the analyzer
    configuration.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the region extractor.

        Args:
            config: Configuration dictionary (min_region_width,
                    min_region_height, min_region_pixel_count, white_cutoff)
        """

        self.config = {**self._get_default_config(), **(config or {})}

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default extraction configuration."""

        return {
            'min_region_width': None,
            'min_region_height': None,
            'min_region_pixel_count': None,
            'white_cutoff': WHITE_CUTOFF
        }

    def extract(self, mask: np.ndarray) -> List[Region]:
        """Extract regions from ``mask`` using the configured thresholds."""

        return extract_regions(
            mask,
            min_width=self.config['min_region_width'],
            min_height=self.config['min_region_height'],
            min_pixel_count=self.config['min_region_pixel_count'],
            white_cutoff=self.config['white_cutoff']
        )
