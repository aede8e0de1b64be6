"""
Coordinate mapping between processing, image and display spaces.

Scaling is anisotropic: X and Y use independent factors, so a square
processing mask may map onto a non-square image and vice versa.
"""

from typing import List, Sequence, Tuple

from .geometry import BoundingBox, Point, Region, Size
from .validation import validate_size


def scale_factors(from_size: Size, to_size: Size) -> Tuple[float, float]:
    """Return the (x, y) factors taking ``from_size`` onto ``to_size``."""

    from_w, from_h = validate_size(from_size, "from_size")
    to_w, to_h = validate_size(to_size, "to_size")

    return to_w / from_w, to_h / from_h


def scale_point(point: Point, from_size: Size, to_size: Size) -> Point:
    sx, sy = scale_factors(from_size, to_size)
    return (point[0] * sx, point[1] * sy)


def scale_bbox(bbox: BoundingBox, from_size: Size, to_size: Size) -> BoundingBox:
    sx, sy = scale_factors(from_size, to_size)
    return _scale_bbox(bbox, sx, sy)


def scale_region(region: Region, from_size: Size, to_size: Size) -> Region:
    sx, sy = scale_factors(from_size, to_size)
    return _scale_region(region, sx, sy)


def scale_regions(regions: Sequence[Region], from_size: Size, to_size: Size) -> List[Region]:
    sx, sy = scale_factors(from_size, to_size)
    return [_scale_region(region, sx, sy) for region in regions]


def _scale_bbox(bbox: BoundingBox, sx: float, sy: float) -> BoundingBox:
    return BoundingBox(
        x=bbox.x * sx,
        y=bbox.y * sy,
        width=bbox.width * sx,
        height=bbox.height * sy
    )


def _scale_region(region: Region, sx: float, sy: float) -> Region:
    return Region(
        bbox=_scale_bbox(region.bbox, sx, sy),
        centroid=(region.centroid[0] * sx, region.centroid[1] * sy),
        pixel_count=region.pixel_count
    )


class CoordinateMapper:
    """
    Fixed mapping from one pixel space to another.

    Typical use is projecting regions found on the downsampled processing
    mask back onto the original image, or projecting image-space results
    onto whatever space a consumer displays them in.
    """

    def __init__(self, from_size: Size, to_size: Size):
        self.from_size = validate_size(from_size, "from_size")
        self.to_size = validate_size(to_size, "to_size")
        self.scale_x, self.scale_y = scale_factors(self.from_size, self.to_size)

    @property
    def is_identity(self) -> bool:
        return self.scale_x == 1.0 and self.scale_y == 1.0

    def point(self, point: Point) -> Point:
        return (point[0] * self.scale_x, point[1] * self.scale_y)

    def bbox(self, bbox: BoundingBox) -> BoundingBox:
        return _scale_bbox(bbox, self.scale_x, self.scale_y)

    def region(self, region: Region) -> Region:
        return _scale_region(region, self.scale_x, self.scale_y)

    def regions(self, regions: Sequence[Region]) -> List[Region]:
        return [self.region(region) for region in regions]

    def inverse(self) -> "CoordinateMapper":
        return CoordinateMapper(self.to_size, self.from_size)

    def __repr__(self) -> str:
        return f"CoordinateMapper(from_size={self.from_size}, to_size={self.to_size})"
