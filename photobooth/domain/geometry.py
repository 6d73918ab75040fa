# photobooth/domain/geometry.py
import math
from dataclasses import dataclass
from typing import Iterable, List, Tuple

Point = Tuple[float, float]


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, px: float, py: float) -> bool:
        # Edges inclusive; the box stays axis-aligned even for rotated elements.
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def scaled(self, sx: float, sy: float) -> "Rect":
        return Rect(self.x * sx, self.y * sy, self.width * sx, self.height * sy)


def point_in_rect(px: float, py: float, rect: Rect) -> bool:
    return rect.contains(px, py)


def scale_rect(rect: Rect, factor: float) -> Rect:
    """Uniform scale of the whole rectangle, origin included."""
    return rect.scaled(factor, factor)


@dataclass(frozen=True)
class Affine:
    """2x3 affine matrix: x' = a*x + b*y + c, y' = d*x + e*y + f."""
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 0.0
    e: float = 1.0
    f: float = 0.0

    def then(self, other: "Affine") -> "Affine":
        # Apply self first, then other.
        return Affine(
            a=other.a * self.a + other.b * self.d,
            b=other.a * self.b + other.b * self.e,
            c=other.a * self.c + other.b * self.f + other.c,
            d=other.d * self.a + other.e * self.d,
            e=other.d * self.b + other.e * self.e,
            f=other.d * self.c + other.e * self.f + other.f,
        )

    def apply(self, x: float, y: float) -> Point:
        return (self.a * x + self.b * y + self.c, self.d * x + self.e * y + self.f)

    def apply_all(self, points: Iterable[Point]) -> List[Point]:
        return [self.apply(x, y) for x, y in points]


def translate(tx: float, ty: float) -> Affine:
    return Affine(c=tx, f=ty)


def rotate(degrees: float) -> Affine:
    # Clockwise on screen (y axis points down).
    rad = math.radians(degrees)
    cos, sin = math.cos(rad), math.sin(rad)
    return Affine(a=cos, b=-sin, d=sin, e=cos)


def scale(sx: float, sy: float) -> Affine:
    return Affine(a=sx, e=sy)


def element_transform(box: Rect, rotation: float, sx: float = 1.0, sy: float = 1.0) -> Affine:
    """Maps local element space (origin at the box center) onto the canvas.

    Canvas-style composition: translate to the box center, rotate, then scale.
    Points are therefore scaled first, rotated about the center second and
    moved into place last.
    """
    cx, cy = box.center
    return scale(sx, sy).then(rotate(rotation)).then(translate(cx, cy))


def bounding_box(points: Iterable[Point]) -> Rect:
    pts = list(points)
    if not pts:
        raise ValueError("Cannot compute bounding box of an empty point set.")
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))
