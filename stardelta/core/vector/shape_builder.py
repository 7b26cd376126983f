"""
Shape builder.

Turns the primitives of a :class:`VectorDocument` into DefineShape
properties: deduplicated fill and line styles, style-change records with
absolute moves, and straight or quadratic edges in integer twips.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import GeometryError, SchemaError
from ..logger import get_logger
from .geometry import MIN_CURVE_TOLERANCE, cubic_to_quadratics, quad_bounds, signed_area
from .models import ClosePath, CubicTo, LineTo, MoveTo, Paint, PathPrimitive, VectorDocument

log = get_logger(__name__)

__all__ = ["ShapeBuilderOptions", "ShapeRecord", "build_shape", "replacement_code"]

# Shape edges store deltas in at most 17 signed bits.
MAX_DELTA = (1 << 16) - 1


def replacement_code(code: int) -> int:
    """Tag code a shape is written with once it carries alpha."""
    return 83 if code == 83 else 32


@dataclass(frozen=True)
class ShapeBuilderOptions:
    tolerance: float = 1.0
    padding: int = 0
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.tolerance < MIN_CURVE_TOLERANCE:
            raise SchemaError(
                f"Curve tolerance {self.tolerance} is below {MIN_CURVE_TOLERANCE} twips, "
                "the least whole-twip edges can hold"
            )

    @classmethod
    def from_settings(cls, settings) -> "ShapeBuilderOptions":
        return cls(
            tolerance=settings.curve_tolerance,
            padding=settings.shape_padding,
            scale=settings.shape_scale,
        )


@dataclass
class ShapeRecord:
    id: int
    bounds: Dict[str, int]
    edge_bounds: Dict[str, int]
    fill_styles: List[Paint] = field(default_factory=list)
    line_styles: List[Tuple[int, Paint]] = field(default_factory=list)
    records: List[Dict[str, Any]] = field(default_factory=list)

    def to_properties(self, code: int) -> Dict[str, Any]:
        """DefineShape properties for a tag written with ``code`` (32 or 83)."""
        if code not in (32, 83):
            raise GeometryError(f"Replacement shapes are written as DefineShape3 or 4, not code {code}")
        line_styles = []
        for width, paint in self.line_styles:
            style: Dict[str, Any] = {"width": width}
            if code == 83:
                style.update(
                    startCap="round",
                    endCap="round",
                    join="round",
                    noHScale=False,
                    noVScale=False,
                    pixelHinting=False,
                    noClose=False,
                )
            style["color"] = paint.as_color()
            line_styles.append(style)
        props: Dict[str, Any] = {"bounds": dict(self.bounds)}
        if code == 83:
            props["edgeBounds"] = dict(self.edge_bounds)
            props["usesFillWindingRule"] = False
            props["usesNonScalingStrokes"] = False
            props["usesScalingStrokes"] = bool(self.line_styles)
        props["fillStyles"] = [{"type": "solid", "color": p.as_color()} for p in self.fill_styles]
        props["lineStyles"] = line_styles
        props["records"] = copy.deepcopy(self.records)
        return props


@dataclass
class _Subpath:
    start: complex
    # ("line", end) or ("curve", control, end), absolute integer twips.
    edges: List[Tuple[Any, ...]] = field(default_factory=list)

    def outline(self) -> List[complex]:
        points = [self.start]
        for edge in self.edges:
            points.extend(edge[1:])
        return points


class _Bounds:
    def __init__(self) -> None:
        self.x_min = self.y_min = math.inf
        self.x_max = self.y_max = -math.inf

    def add_point(self, p: complex) -> None:
        self.add_box(p.real, p.real, p.imag, p.imag)

    def add_box(self, x0: float, x1: float, y0: float, y1: float) -> None:
        self.x_min, self.x_max = min(self.x_min, x0), max(self.x_max, x1)
        self.y_min, self.y_max = min(self.y_min, y0), max(self.y_max, y1)

    @property
    def empty(self) -> bool:
        return self.x_min > self.x_max

    def rect(self, padding: int = 0) -> Dict[str, int]:
        return {
            "xMin": int(math.floor(self.x_min)) - padding,
            "xMax": int(math.ceil(self.x_max)) + padding,
            "yMin": int(math.floor(self.y_min)) - padding,
            "yMax": int(math.ceil(self.y_max)) + padding,
        }


def _snap(point: complex) -> complex:
    return complex(round(point.real), round(point.imag))


def _style_index(styles: List[Any], style: Any) -> int:
    """1-based index of ``style``, appending it when new."""
    if style not in styles:
        styles.append(style)
    return styles.index(style) + 1


def _flatten(segments, options: ShapeBuilderOptions, close: bool) -> Optional[_Subpath]:
    scale = options.scale
    sub: Optional[_Subpath] = None
    cursor = 0j
    exact = 0j
    for segment in segments:
        if isinstance(segment, MoveTo):
            exact = segment.point * scale
            cursor = _snap(exact)
            sub = _Subpath(cursor)
        elif sub is None:
            raise GeometryError("Path segment without a starting point")
        elif isinstance(segment, LineTo):
            exact = segment.end * scale
            end = _snap(exact)
            if end != cursor:
                sub.edges.append(("line", end))
                cursor = end
        elif isinstance(segment, CubicTo):
            quads = cubic_to_quadratics(
                exact,
                segment.control1 * scale,
                segment.control2 * scale,
                segment.end * scale,
                options.tolerance,
                snap=_snap,
                max_delta=MAX_DELTA,
            )
            for control, end in quads:
                if end == cursor and control == cursor:
                    continue
                sub.edges.append(("curve", control, end))
                cursor = end
            exact = segment.end * scale
        elif isinstance(segment, ClosePath):
            close = True
    if sub is None or not sub.edges:
        return None
    if close and cursor != sub.start:
        sub.edges.append(("line", sub.start))
    return sub


def _emit_line(records: List[Dict[str, Any]], cursor: complex, end: complex) -> None:
    delta = end - cursor
    steps = max(1, math.ceil(max(abs(delta.real), abs(delta.imag)) / MAX_DELTA))
    previous = cursor
    for i in range(1, steps + 1):
        point = end if i == steps else _snap(cursor + delta * (i / steps))
        step = point - previous
        records.append({"type": "straightEdge", "delta": [int(step.real), int(step.imag)]})
        previous = point


def _emit_curve(records: List[Dict[str, Any]], cursor: complex, control: complex, end: complex) -> None:
    c, a = control - cursor, end - control
    records.append(
        {
            "type": "curvedEdge",
            "control": [int(c.real), int(c.imag)],
            "anchor": [int(a.real), int(a.imag)],
        }
    )


def build_shape(
    document: VectorDocument,
    target_id: int,
    options: Optional[ShapeBuilderOptions] = None,
) -> ShapeRecord:
    """Build the replacement shape for ``target_id`` from ``document``."""
    options = options or ShapeBuilderOptions()
    fills: List[Paint] = []
    lines: List[Tuple[int, Paint]] = []
    records: List[Dict[str, Any]] = []
    bounds = _Bounds()

    for primitive in document.primitives:
        _add_primitive(primitive, options, fills, lines, records, bounds)

    if bounds.empty or not records:
        raise GeometryError("Vector asset has no drawable geometry", tag_id=target_id)

    edge_bounds = bounds.rect()
    shape = ShapeRecord(
        id=target_id,
        bounds=bounds.rect(options.padding),
        edge_bounds=edge_bounds,
        fill_styles=fills,
        line_styles=lines,
        records=records,
    )
    log.debug(
        f"[VECTOR] Built shape {target_id}: {len(fills)} fill(s), {len(lines)} line style(s), "
        f"{len(records)} record(s), bounds {shape.bounds}"
    )
    return shape


def _add_primitive(
    primitive: PathPrimitive,
    options: ShapeBuilderOptions,
    fills: List[Paint],
    lines: List[Tuple[int, Paint]],
    records: List[Dict[str, Any]],
    bounds: _Bounds,
) -> None:
    filled = primitive.fill is not None
    fill_index = _style_index(fills, primitive.fill) if filled else 0
    line_index = 0
    if primitive.stroke is not None:
        width = int(round(primitive.stroke.width * options.scale))
        if width > 0xFFFF:
            raise GeometryError(f"Stroke width {width} twips is too large")
        line_index = _style_index(lines, (max(width, 1), primitive.stroke.paint))

    subpaths = [
        sub
        for sub in (_flatten(segments, options, filled) for segments in primitive.subpaths())
        if sub is not None
    ]
    if not subpaths:
        return

    fill_side = "fillStyle0"
    if filled:
        largest = max(subpaths, key=lambda s: abs(signed_area(s.outline())))
        if signed_area(largest.outline()) > 0:
            fill_side = "fillStyle1"

    for sub in subpaths:
        record: Dict[str, Any] = {
            "type": "styleChange",
            "moveTo": [int(sub.start.real), int(sub.start.imag)],
            "fillStyle0": fill_index if fill_side == "fillStyle0" else 0,
            "fillStyle1": fill_index if fill_side == "fillStyle1" else 0,
            "lineStyle": line_index,
        }
        records.append(record)
        cursor = sub.start
        bounds.add_point(cursor)
        for edge in sub.edges:
            if edge[0] == "line":
                end = edge[1]
                _emit_line(records, cursor, end)
                bounds.add_point(end)
            else:
                control, end = edge[1], edge[2]
                _emit_curve(records, cursor, control, end)
                bounds.add_box(*quad_bounds(cursor, control, end))
            cursor = end
