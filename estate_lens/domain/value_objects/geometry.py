"""Geometry value objects."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Iterator, Union

import numpy as np
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon

from ...exceptions import ValidationError

PointLike = Union["Point", tuple[float, float], list[float], Mapping[str, float]]


@dataclass(frozen=True, slots=True)
class Point:
    """2D point in image pixel space."""
    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        """Calculate Euclidean distance to another point."""
        return math.sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2)

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Point:
        return Point(self.x * scalar, self.y * scalar)

    @classmethod
    def of(cls, value: PointLike) -> Point:
        """Build a point from a Point, an (x, y) pair or an {x, y} mapping."""
        if isinstance(value, Point):
            return value
        if isinstance(value, Mapping):
            try:
                return cls(float(value["x"]), float(value["y"]))
            except KeyError as e:
                raise ValidationError(f"Point mapping missing key {e}", field="point") from e
        try:
            x, y = value
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Cannot interpret {value!r} as a point", field="point") from e
        return cls(float(x), float(y))


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        """True when the box has no width or no height."""
        return self.width <= 0 or self.height <= 0

    def clip(self, width: float, height: float) -> BoundingBox:
        """Clip box to the [0, width] x [0, height] image area."""
        min_x = min(max(self.min_x, 0.0), width)
        min_y = min(max(self.min_y, 0.0), height)
        max_x = min(max(self.max_x, 0.0), width)
        max_y = min(max(self.max_y, 0.0), height)
        return BoundingBox(min_x, min_y, max_x, max_y)


def order_points(points: Iterable[PointLike]) -> list[Point]:
    """Order four points as [top-left, top-right, bottom-right, bottom-left].

    The two points with the smallest y form the top pair and the other two
    the bottom pair; within each pair the smaller x is on the left. Ties on
    y are broken by x, and ties on x by y, so the result depends only on the
    set of points and ordering is idempotent.

    Args:
        points: Exactly four points in any order

    Returns:
        Ordered list of four points

    Raises:
        ValidationError: If the input does not hold exactly four points
    """
    pts = [Point.of(p) for p in points]
    if len(pts) != 4:
        raise ValidationError(
            f"Expected exactly 4 points, got {len(pts)}",
            field="corners"
        )

    by_y = sorted(pts, key=lambda p: (p.y, p.x))
    top_left, top_right = sorted(by_y[:2], key=lambda p: (p.x, p.y))
    bottom_left, bottom_right = sorted(by_y[2:], key=lambda p: (p.x, p.y))
    return [top_left, top_right, bottom_right, bottom_left]


@dataclass(frozen=True, slots=True)
class Quadrilateral:
    """Four-point polygon.

    Points are stored as given. Geometry that depends on winding order
    (transforms, edge lengths) should use ``ordered()`` first.
    """
    p1: Point
    p2: Point
    p3: Point
    p4: Point

    def __iter__(self) -> Iterator[Point]:
        """Allow unpacking: tl, tr, br, bl = quad"""
        yield self.p1
        yield self.p2
        yield self.p3
        yield self.p4

    @classmethod
    def from_points(cls, points: Iterable[PointLike]) -> Quadrilateral:
        """Create from exactly four point-like values, keeping their order."""
        pts = [Point.of(p) for p in points]
        if len(pts) != 4:
            raise ValidationError(
                f"A quadrilateral needs exactly 4 points, got {len(pts)}",
                field="corners"
            )
        return cls(*pts)

    @classmethod
    def from_bbox(cls, x: float, y: float, w: float, h: float) -> Quadrilateral:
        """Create quadrilateral from bounding box."""
        return cls(
            Point(x, y),
            Point(x + w, y),
            Point(x + w, y + h),
            Point(x, y + h)
        )

    @property
    def points(self) -> list[Point]:
        return [self.p1, self.p2, self.p3, self.p4]

    def ordered(self) -> Quadrilateral:
        """Return the canonical clockwise ordering starting at top-left."""
        return Quadrilateral(*order_points(self.points))

    @property
    def is_ordered(self) -> bool:
        return self.points == order_points(self.points)

    @property
    def bounding_box(self) -> BoundingBox:
        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return BoundingBox(min(xs), min(ys), max(xs), max(ys))

    @property
    def area(self) -> float:
        """Calculate area using shoelace formula."""
        points = self.points + [self.p1]  # Close the polygon
        area = 0.0
        for i in range(4):
            area += points[i].x * points[i + 1].y
            area -= points[i + 1].x * points[i].y
        return abs(area) / 2

    @property
    def is_simple(self) -> bool:
        """True if the edges, taken in stored order, do not cross."""
        return Polygon(self.to_tuples()).is_valid

    def contains(self, point: PointLike) -> bool:
        """Check whether a point lies strictly inside the polygon."""
        p = Point.of(point)
        return Polygon(self.to_tuples()).contains(ShapelyPoint(p.x, p.y))

    def has_collinear_triple(self, tolerance: float = 1e-6) -> bool:
        """Check whether any three corners are (nearly) collinear.

        A homography through such corners is singular.

        Args:
            tolerance: Cross product threshold relative to squared span
        """
        pts = self.points
        span = max(self.bounding_box.width, self.bounding_box.height, 1.0)
        limit = tolerance * span * span
        for i in range(4):
            a, b, c = (pts[j] for j in range(4) if j != i)
            cross = (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)
            if abs(cross) <= limit:
                return True
        return False

    def natural_size(self) -> tuple[int, int]:
        """Output size that keeps the longest opposite edges at full length."""
        tl, tr, br, bl = self.ordered()
        width = max(tl.distance_to(tr), bl.distance_to(br))
        height = max(tl.distance_to(bl), tr.distance_to(br))
        return max(1, round(width)), max(1, round(height))

    def scale(self, sx: float, sy: float | None = None) -> Quadrilateral:
        """Scale every corner about the origin."""
        if sy is None:
            sy = sx
        return Quadrilateral(*(Point(p.x * sx, p.y * sy) for p in self.points))

    def clamp_to(self, width: float, height: float) -> Quadrilateral:
        """Clamp every corner into the [0, width] x [0, height] area."""
        return Quadrilateral(*(
            Point(min(max(p.x, 0.0), width), min(max(p.y, 0.0), height))
            for p in self.points
        ))

    def to_tuples(self) -> list[tuple[float, float]]:
        return [(p.x, p.y) for p in self.points]

    def as_array(self) -> np.ndarray:
        """Corners as a (4, 2) float32 array."""
        return np.array(self.to_tuples(), dtype=np.float32)


def to_image_space(
    quad: Quadrilateral,
    display_size: tuple[float, float],
    image_size: tuple[float, float]
) -> Quadrilateral:
    """Map corners picked on a scaled preview back to image pixels.

    Args:
        quad: Corners in preview coordinates
        display_size: (width, height) of the preview
        image_size: (width, height) of the full-resolution image

    Returns:
        Corners in image coordinates
    """
    display_w, display_h = display_size
    if display_w <= 0 or display_h <= 0:
        raise ValidationError(
            f"Display size must be positive, got {display_size}",
            field="display_size"
        )
    image_w, image_h = image_size
    return quad.scale(image_w / display_w, image_h / display_h)
