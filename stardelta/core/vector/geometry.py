"""Geometry helpers: affine transforms, curve conversion and bounds.

Points are complex numbers. Curve comparison uses numpy polynomials.
"""

from __future__ import annotations

import math
import re
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from numpy.polynomial import polynomial as P

from ..errors import GeometryError

__all__ = [
    "Affine",
    "MIN_CURVE_TOLERANCE",
    "parse_transform",
    "cubic_point",
    "split_cubic",
    "cubic_to_quadratics",
    "quadratic_deviation",
    "quadratic_pieces",
    "quad_bounds",
    "signed_area",
]

_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_TRANSFORM = re.compile(r"([a-zA-Z]+)\s*\(([^)]*)\)")

_MAX_DEPTH = 16

# Rounding to whole twips moves a point by up to sqrt(0.5) twip, so curves
# written in twips cannot be held to a tighter tolerance than this.
MIN_CURVE_TOLERANCE = 0.75


class Affine(NamedTuple):
    """2D affine matrix in SVG order: x' = a*x + c*y + e, y' = b*x + d*y + f."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def identity(cls) -> "Affine":
        return cls()

    @classmethod
    def translate(cls, tx: float, ty: float = 0.0) -> "Affine":
        return cls(1.0, 0.0, 0.0, 1.0, tx, ty)

    @classmethod
    def scale(cls, sx: float, sy: Optional[float] = None) -> "Affine":
        return cls(sx, 0.0, 0.0, sx if sy is None else sy, 0.0, 0.0)

    @classmethod
    def rotate(cls, degrees: float, cx: float = 0.0, cy: float = 0.0) -> "Affine":
        rad = math.radians(degrees)
        cos, sin = math.cos(rad), math.sin(rad)
        rotation = cls(cos, sin, -sin, cos, 0.0, 0.0)
        if cx or cy:
            return cls.translate(cx, cy).multiply(rotation).multiply(cls.translate(-cx, -cy))
        return rotation

    @classmethod
    def skew_x(cls, degrees: float) -> "Affine":
        return cls(1.0, 0.0, math.tan(math.radians(degrees)), 1.0, 0.0, 0.0)

    @classmethod
    def skew_y(cls, degrees: float) -> "Affine":
        return cls(1.0, math.tan(math.radians(degrees)), 0.0, 1.0, 0.0, 0.0)

    def multiply(self, other: "Affine") -> "Affine":
        """Return ``self * other``: ``other`` is applied first."""
        a1, b1, c1, d1, e1, f1 = self
        a2, b2, c2, d2, e2, f2 = other
        return Affine(
            a1 * a2 + c1 * b2,
            b1 * a2 + d1 * b2,
            a1 * c2 + c1 * d2,
            b1 * c2 + d1 * d2,
            a1 * e2 + c1 * f2 + e1,
            b1 * e2 + d1 * f2 + f1,
        )

    def apply(self, point: complex) -> complex:
        x, y = point.real, point.imag
        return complex(self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    @property
    def is_identity(self) -> bool:
        return self == Affine()

    def scale_factor(self) -> float:
        """Geometric mean scale, used for stroke widths."""
        return math.sqrt(abs(self.a * self.d - self.b * self.c))


def _numbers(text: str) -> List[float]:
    return [float(n) for n in _NUMBER.findall(text)]


def parse_transform(text: Optional[str]) -> Affine:
    """Parse an SVG ``transform`` attribute into one matrix."""
    result = Affine.identity()
    if not text or not text.strip():
        return result
    consumed = 0
    for match in _TRANSFORM.finditer(text):
        if text[consumed : match.start()].strip(" \t\r\n,"):
            raise GeometryError(f"Malformed transform: {text!r}")
        consumed = match.end()
        name, args = match.group(1), _numbers(match.group(2))
        if name == "matrix" and len(args) == 6:
            step = Affine(*args)
        elif name == "translate" and len(args) in (1, 2):
            step = Affine.translate(*args)
        elif name == "scale" and len(args) in (1, 2):
            step = Affine.scale(*args)
        elif name == "rotate" and len(args) in (1, 3):
            step = Affine.rotate(*args)
        elif name == "skewX" and len(args) == 1:
            step = Affine.skew_x(args[0])
        elif name == "skewY" and len(args) == 1:
            step = Affine.skew_y(args[0])
        else:
            raise GeometryError(f"Unsupported transform {name}({match.group(2).strip()})")
        result = result.multiply(step)
    if text[consumed:].strip(" \t\r\n,"):
        raise GeometryError(f"Malformed transform: {text!r}")
    return result


def cubic_point(p0: complex, c1: complex, c2: complex, p3: complex, t):
    mt = 1.0 - t
    return mt * mt * mt * p0 + 3.0 * mt * mt * t * c1 + 3.0 * mt * t * t * c2 + t * t * t * p3


def split_cubic(
    p0: complex, c1: complex, c2: complex, p3: complex, t: float = 0.5
) -> Tuple[Tuple[complex, complex, complex, complex], Tuple[complex, complex, complex, complex]]:
    """de Casteljau split of a cubic at ``t``."""
    a = p0 + (c1 - p0) * t
    b = c1 + (c2 - c1) * t
    c = c2 + (p3 - c2) * t
    ab = a + (b - a) * t
    bc = b + (c - b) * t
    mid = ab + (bc - ab) * t
    return (p0, a, ab, mid), (mid, bc, c, p3)


def _single_quadratic(p0: complex, c1: complex, c2: complex, p3: complex) -> complex:
    return (3.0 * (c1 + c2) - p0 - p3) / 4.0


def _exact(point: complex) -> complex:
    return point


def quadratic_deviation(
    cubic: Tuple[complex, complex, complex, complex],
    start: complex,
    control: complex,
    end: complex,
) -> float:
    """Largest distance between ``cubic`` and a quadratic at matching parameters.

    The difference of the two curves is a cubic polynomial, so the maximum
    over ``[0, 1]`` lies at an end or at a root of the derivative of its
    squared length.
    """
    p0, c1, c2, p3 = cubic
    diff = np.array(
        [
            p0 - start,
            3.0 * (c1 - p0) - 2.0 * (control - start),
            3.0 * (p0 - 2.0 * c1 + c2) - (start - 2.0 * control + end),
            p3 - 3.0 * c2 + 3.0 * c1 - p0,
        ],
        dtype=complex,
    )
    squared = P.polyadd(P.polymul(diff.real, diff.real), P.polymul(diff.imag, diff.imag))
    roots = P.polyroots(P.polyder(squared))
    roots = roots[np.isfinite(roots)]
    ts = np.concatenate(([0.0, 1.0], np.clip(roots.real, 0.0, 1.0)))
    return float(np.sqrt(max(np.max(P.polyval(ts, squared)), 0.0)))


def _fits(max_delta: Optional[int], *deltas: complex) -> bool:
    if max_delta is None:
        return True
    return all(abs(d.real) <= max_delta and abs(d.imag) <= max_delta for d in deltas)


def quadratic_pieces(
    p0: complex,
    c1: complex,
    c2: complex,
    p3: complex,
    tolerance: float,
    snap: Callable[[complex], complex] = _exact,
    max_delta: Optional[int] = None,
) -> List[Tuple[float, float, complex, complex]]:
    """Approximate a cubic with quadratics as ``(t0, t1, control, end)`` pieces.

    Each piece covers the cubic's parameters ``t0..t1``. One quadratic is tried
    first; while it strays more than ``tolerance`` from the cubic the cubic is
    split at its midpoint and each half is converted. ``snap`` is applied to
    every point before the deviation is measured, so rounding is part of the
    check. With ``max_delta`` a piece is also split until its control and
    anchor deltas fit.
    """
    pieces: List[Tuple[float, float, complex, complex]] = []
    stack = [((p0, c1, c2, p3), 0.0, 1.0, 0)]
    while stack:
        cubic, t0, t1, depth = stack.pop()
        start, control, end = snap(cubic[0]), snap(_single_quadratic(*cubic)), snap(cubic[3])
        if _fits(max_delta, control - start, end - control) and (
            quadratic_deviation(cubic, start, control, end) <= tolerance
        ):
            pieces.append((t0, t1, control, end))
            continue
        if depth >= _MAX_DEPTH:
            raise GeometryError(f"Curve cannot be approximated within {tolerance} twips")
        left, right = split_cubic(*cubic)
        mid = (t0 + t1) / 2.0
        # Right half first so the left half is popped, and emitted, first.
        stack.append((right, mid, t1, depth + 1))
        stack.append((left, t0, mid, depth + 1))
    return pieces


def cubic_to_quadratics(
    p0: complex,
    c1: complex,
    c2: complex,
    p3: complex,
    tolerance: float,
    snap: Callable[[complex], complex] = _exact,
    max_delta: Optional[int] = None,
) -> List[Tuple[complex, complex]]:
    """Approximate a cubic with quadratics as ``(control, end)`` pairs."""
    return [
        (control, end)
        for _, _, control, end in quadratic_pieces(p0, c1, c2, p3, tolerance, snap, max_delta)
    ]


def _axis_extrema(p0: float, c: float, p1: float) -> List[float]:
    values = [p0, p1]
    denom = p0 - 2.0 * c + p1
    if denom != 0.0:
        t = (p0 - c) / denom
        if 0.0 < t < 1.0:
            mt = 1.0 - t
            values.append(mt * mt * p0 + 2.0 * mt * t * c + t * t * p1)
    return values


def quad_bounds(p0: complex, c: complex, p1: complex) -> Tuple[float, float, float, float]:
    """Tight ``(x_min, x_max, y_min, y_max)`` of a quadratic Bezier."""
    xs = _axis_extrema(p0.real, c.real, p1.real)
    ys = _axis_extrema(p0.imag, c.imag, p1.imag)
    return min(xs), max(xs), min(ys), max(ys)


def signed_area(points: Sequence[complex]) -> float:
    """Shoelace area; positive means clockwise on a y-down screen."""
    if len(points) < 3:
        return 0.0
    arr = np.asarray(points, dtype=complex)
    x, y = arr.real, arr.imag
    return float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y) / 2.0)
