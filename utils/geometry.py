"""
Geometry value types shared across the analysis pipeline.

Points and sizes are plain (x, y) / (width, height) tuples in image pixel
coordinates with Y growing downward.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple

Point = Tuple[float, float]
Size = Tuple[float, float]


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box stored as origin plus extent.

    At extraction time ``width = maxX - minX + 1`` (pixel-inclusive), so the
    ``max_x`` / ``max_y`` properties describe the exclusive far edge.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, float]:
        return {
            'x': float(self.x),
            'y': float(self.y),
            'width': float(self.width),
            'height': float(self.height)
        }


@dataclass(frozen=True)
class Region:
    """
    One connected salient component.

    ``pixel_count`` is measured on the mask the region was extracted from
    and is not rescaled when the region is mapped to another space.
    """

    bbox: BoundingBox
    centroid: Point
    pixel_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bbox': self.bbox.to_dict(),
            'centroid': {'x': float(self.centroid[0]), 'y': float(self.centroid[1])},
            'pixel_count': int(self.pixel_count)
        }


def euclidean_distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def half_diagonal(size: Size) -> float:
    """Distance from the frame center to a corner."""

    return math.hypot(size[0] / 2, size[1] / 2)


def point_to_dict(point: Point) -> Dict[str, float]:
    return {'x': float(point[0]), 'y': float(point[1])}
