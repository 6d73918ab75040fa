# photobooth/domain/star.py
import math
from typing import List

from photobooth.domain.geometry import Point

SUPPORTED_POINTS = (3, 4, 5, 6, 8)

def star_vertices(center: Point, radius: float, points: int) -> List[Point]:
    """Vertices of an n-pointed star, first tip pointing up, clockwise.

    Returns 2*points vertices alternating between the outer radius and half of it.
    """
    if points < 3:
        raise ValueError(f"Star needs at least 3 points, got {points}.")
    if radius <= 0:
        raise ValueError(f"Star radius must be positive, got {radius}.")

    cx, cy = center
    vertices = []
    for i in range(points * 2):
        r = radius if i % 2 == 0 else radius / 2
        angle = (i * math.pi) / points - math.pi / 2
        vertices.append((cx + r * math.cos(angle), cy + r * math.sin(angle)))
    return vertices
