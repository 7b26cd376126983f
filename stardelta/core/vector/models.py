"""Data types produced by the vector importer.

Points are complex numbers (``x + y*1j``) in document user units, y down, as
in SVG and svg.path. All transforms have already been applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .geometry import Affine

__all__ = [
    "Paint",
    "Stroke",
    "MoveTo",
    "LineTo",
    "CubicTo",
    "ClosePath",
    "Segment",
    "PathPrimitive",
    "VectorDocument",
]


@dataclass(frozen=True)
class Paint:
    r: int
    g: int
    b: int
    a: int = 255

    def as_color(self) -> Dict[str, int]:
        return {"r": self.r, "g": self.g, "b": self.b, "a": self.a}


@dataclass(frozen=True)
class Stroke:
    paint: Paint
    width: float


@dataclass(frozen=True)
class MoveTo:
    point: complex


@dataclass(frozen=True)
class LineTo:
    end: complex


@dataclass(frozen=True)
class CubicTo:
    control1: complex
    control2: complex
    end: complex


@dataclass(frozen=True)
class ClosePath:
    pass


Segment = Union[MoveTo, LineTo, CubicTo, ClosePath]


@dataclass(frozen=True)
class PathPrimitive:
    segments: Tuple[Segment, ...]
    transform: Affine = Affine.identity()
    fill: Optional[Paint] = None
    stroke: Optional[Stroke] = None

    @property
    def drawable(self) -> bool:
        return self.fill is not None or self.stroke is not None

    def subpaths(self) -> List[List[Segment]]:
        """Split the segment list at every MoveTo."""
        out: List[List[Segment]] = []
        for segment in self.segments:
            if isinstance(segment, MoveTo) or not out:
                out.append([])
            out[-1].append(segment)
        return [sub for sub in out if any(not isinstance(s, MoveTo) for s in sub)]


@dataclass
class VectorDocument:
    width: float
    height: float
    primitives: List[PathPrimitive] = field(default_factory=list)
    view_box: Optional[Tuple[float, float, float, float]] = None
    source: Optional[Path] = None
