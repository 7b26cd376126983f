"""SVG importer.

Reads an SVG document with ElementTree, converts every drawable element to
path data and parses it with svg.path. The current transform is passed down
the recursive walk, so each primitive leaves the importer with absolute
coordinates and fully resolved paints.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import ImageColor
from svg.path import Arc, Close, CubicBezier, Line, Move, QuadraticBezier, parse_path

from ..errors import AssetError, GeometryError
from ..logger import get_logger
from .geometry import Affine, parse_transform
from .models import ClosePath, CubicTo, LineTo, MoveTo, Paint, PathPrimitive, Segment, Stroke, VectorDocument

log = get_logger(__name__)

__all__ = ["import_svg", "parse_svg"]

SVG_NS = "http://www.w3.org/2000/svg"

CONTAINERS = {"svg", "g"}
SHAPES = {"path", "rect", "circle", "ellipse", "line", "polyline", "polygon"}
# Non-rendering elements that are skipped along with their children.
IGNORED = {
    "defs",
    "title",
    "desc",
    "metadata",
    "symbol",
    "clipPath",
    "mask",
    "marker",
    "linearGradient",
    "radialGradient",
    "pattern",
    "filter",
}
UNSUPPORTED = {"text", "image", "use", "foreignObject", "style", "switch", "script"}

_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_UNITS = {"": 1.0, "px": 1.0, "pt": 4.0 / 3.0, "pc": 16.0, "mm": 96.0 / 25.4, "cm": 96.0 / 2.54, "in": 96.0}
_ARC_PIECES = 4


@dataclass(frozen=True)
class _Style:
    fill: str = "black"
    fill_opacity: float = 1.0
    stroke: str = "none"
    stroke_opacity: float = 1.0
    stroke_width: float = 1.0
    opacity: float = 1.0
    color: str = "black"
    visible: bool = True


def _local_name(tag: str) -> Tuple[Optional[str], str]:
    if tag.startswith("{"):
        ns, _, name = tag[1:].partition("}")
        return ns, name
    return None, tag


def _parse_length(raw: Optional[str], default: float = 0.0, *, what: str = "length") -> float:
    if raw is None or not raw.strip():
        return default
    value = raw.strip()
    match = re.fullmatch(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*([a-z%]*)\s*", value)
    if not match:
        raise GeometryError(f"Invalid {what}: {raw!r}")
    number, unit = float(match.group(1)), match.group(2)
    if unit == "%":
        raise GeometryError(f"Percentage {what} is not supported: {raw!r}")
    if unit not in _UNITS:
        raise GeometryError(f"Unknown unit in {what}: {raw!r}")
    return number * _UNITS[unit]


def _parse_opacity(raw: str) -> float:
    value = raw.strip()
    try:
        number = float(value[:-1]) / 100.0 if value.endswith("%") else float(value)
    except ValueError as exc:
        raise GeometryError(f"Invalid opacity {raw!r}") from exc
    return max(0.0, min(1.0, number))


def _presentation(elem: ET.Element) -> Dict[str, str]:
    """Presentation attributes, overridden by the ``style`` attribute."""
    props = {k: v for k, v in elem.attrib.items() if not k.startswith("{")}
    for decl in (elem.get("style") or "").split(";"):
        if ":" not in decl:
            continue
        key, _, value = decl.partition(":")
        props[key.strip()] = value.replace("!important", "").strip()
    return props


def _resolve_style(parent: _Style, props: Dict[str, str]) -> _Style:
    style = parent
    if "color" in props:
        style = replace(style, color=props["color"])
    if "fill" in props:
        style = replace(style, fill=props["fill"])
    if "stroke" in props:
        style = replace(style, stroke=props["stroke"])
    if "fill-opacity" in props:
        style = replace(style, fill_opacity=_parse_opacity(props["fill-opacity"]))
    if "stroke-opacity" in props:
        style = replace(style, stroke_opacity=_parse_opacity(props["stroke-opacity"]))
    if "stroke-width" in props:
        style = replace(style, stroke_width=_parse_length(props["stroke-width"], 1.0, what="stroke-width"))
    if "opacity" in props:
        # Group opacity is folded into each descendant's alpha.
        style = replace(style, opacity=parent.opacity * _parse_opacity(props["opacity"]))
    if "visibility" in props:
        style = replace(style, visible=props["visibility"].strip() not in ("hidden", "collapse"))
    return style


def _parse_paint(value: str, opacity: float, current_color: str) -> Optional[Paint]:
    text = value.strip()
    if text in ("none", "transparent", ""):
        return None
    if text.startswith("url("):
        raise GeometryError(f"Gradient and pattern paints are not supported: {text}")
    if text == "currentColor":
        text = current_color.strip()
    try:
        rgb = ImageColor.getrgb(text)
    except ValueError as exc:
        raise GeometryError(f"Unparsable colour {text!r}") from exc
    base_alpha = rgb[3] if len(rgb) == 4 else 255
    return Paint(rgb[0], rgb[1], rgb[2], int(round(base_alpha * opacity)))


def _fmt(value: float) -> str:
    out = f"{value:.6f}".rstrip("0").rstrip(".")
    return out if out not in ("", "-0") else "0"


def _rect_path(elem: ET.Element) -> Optional[str]:
    x = _parse_length(elem.get("x"))
    y = _parse_length(elem.get("y"))
    w = _parse_length(elem.get("width"))
    h = _parse_length(elem.get("height"))
    if w <= 0 or h <= 0:
        return None
    rx_raw, ry_raw = elem.get("rx"), elem.get("ry")
    rx = _parse_length(rx_raw if rx_raw is not None else ry_raw)
    ry = _parse_length(ry_raw if ry_raw is not None else rx_raw)
    rx, ry = min(max(rx, 0.0), w / 2.0), min(max(ry, 0.0), h / 2.0)
    if rx == 0 or ry == 0:
        return (
            f"M {_fmt(x)} {_fmt(y)} H {_fmt(x + w)} V {_fmt(y + h)} H {_fmt(x)} Z"
        )
    arc = f"A {_fmt(rx)} {_fmt(ry)} 0 0 1"
    return (
        f"M {_fmt(x + rx)} {_fmt(y)} H {_fmt(x + w - rx)} "
        f"{arc} {_fmt(x + w)} {_fmt(y + ry)} V {_fmt(y + h - ry)} "
        f"{arc} {_fmt(x + w - rx)} {_fmt(y + h)} H {_fmt(x + rx)} "
        f"{arc} {_fmt(x)} {_fmt(y + h - ry)} V {_fmt(y + ry)} "
        f"{arc} {_fmt(x + rx)} {_fmt(y)} Z"
    )


def _ellipse_path(cx: float, cy: float, rx: float, ry: float) -> Optional[str]:
    if rx <= 0 or ry <= 0:
        return None
    return (
        f"M {_fmt(cx + rx)} {_fmt(cy)} "
        f"A {_fmt(rx)} {_fmt(ry)} 0 1 1 {_fmt(cx - rx)} {_fmt(cy)} "
        f"A {_fmt(rx)} {_fmt(ry)} 0 1 1 {_fmt(cx + rx)} {_fmt(cy)} Z"
    )


def _points_path(raw: Optional[str], close: bool) -> Optional[str]:
    coords = [float(n) for n in _NUMBER.findall(raw or "")]
    if len(coords) % 2:
        coords = coords[:-1]
    if len(coords) < 4:
        return None
    pairs = [f"{_fmt(coords[i])} {_fmt(coords[i + 1])}" for i in range(0, len(coords), 2)]
    return "M " + " L ".join(pairs) + (" Z" if close else "")


def _element_path(name: str, elem: ET.Element) -> Optional[str]:
    if name == "path":
        d = (elem.get("d") or "").strip()
        return d or None
    if name == "rect":
        return _rect_path(elem)
    if name == "circle":
        r = _parse_length(elem.get("r"))
        return _ellipse_path(_parse_length(elem.get("cx")), _parse_length(elem.get("cy")), r, r)
    if name == "ellipse":
        return _ellipse_path(
            _parse_length(elem.get("cx")),
            _parse_length(elem.get("cy")),
            _parse_length(elem.get("rx")),
            _parse_length(elem.get("ry")),
        )
    if name == "line":
        x1, y1 = _parse_length(elem.get("x1")), _parse_length(elem.get("y1"))
        x2, y2 = _parse_length(elem.get("x2")), _parse_length(elem.get("y2"))
        return f"M {_fmt(x1)} {_fmt(y1)} L {_fmt(x2)} {_fmt(y2)}"
    if name in ("polyline", "polygon"):
        return _points_path(elem.get("points"), close=name == "polygon")
    return None


def _derivative(segment: Arc, t: float, h: float = 1e-6) -> complex:
    lo, hi = max(0.0, t - h), min(1.0, t + h)
    return (segment.point(hi) - segment.point(lo)) / (hi - lo)


def _arc_to_cubics(segment: Arc) -> List[Tuple[complex, complex, complex]]:
    """Hermite-fit cubics through an elliptical arc."""
    out = []
    for i in range(_ARC_PIECES):
        t0, t1 = i / _ARC_PIECES, (i + 1) / _ARC_PIECES
        p0 = segment.point(t0)
        p1 = segment.end if i == _ARC_PIECES - 1 else segment.point(t1)
        scale = (t1 - t0) / 3.0
        out.append((p0 + _derivative(segment, t0) * scale, p1 - _derivative(segment, t1) * scale, p1))
    return out


def _path_segments(d: str, ctm: Affine) -> List[Segment]:
    try:
        path = parse_path(d)
    except (ValueError, IndexError) as exc:
        raise GeometryError(f"Invalid path data: {exc}") from exc

    out: List[Segment] = []
    position: Optional[complex] = None
    for seg in path:
        if isinstance(seg, Move):
            out.append(MoveTo(ctm.apply(seg.end)))
            position = seg.end
            continue
        if isinstance(seg, Close):
            out.append(ClosePath())
            position = None
            continue
        if position is None or seg.start != position:
            out.append(MoveTo(ctm.apply(seg.start)))
        position = seg.end
        if isinstance(seg, Line):
            out.append(LineTo(ctm.apply(seg.end)))
        elif isinstance(seg, CubicBezier):
            out.append(CubicTo(ctm.apply(seg.control1), ctm.apply(seg.control2), ctm.apply(seg.end)))
        elif isinstance(seg, QuadraticBezier):
            c1 = seg.start + (seg.control - seg.start) * (2.0 / 3.0)
            c2 = seg.end + (seg.control - seg.end) * (2.0 / 3.0)
            out.append(CubicTo(ctm.apply(c1), ctm.apply(c2), ctm.apply(seg.end)))
        elif isinstance(seg, Arc):
            if seg.start == seg.end:
                continue
            if seg.radius.real == 0 or seg.radius.imag == 0:
                out.append(LineTo(ctm.apply(seg.end)))
                continue
            for c1, c2, end in _arc_to_cubics(seg):
                out.append(CubicTo(ctm.apply(c1), ctm.apply(c2), ctm.apply(end)))
        else:
            raise GeometryError(f"Unsupported path segment {type(seg).__name__}")
    return out


def _viewport(root: ET.Element) -> Tuple[float, float, Affine, Optional[Tuple[float, float, float, float]]]:
    view_box = None
    raw_box = root.get("viewBox")
    if raw_box:
        values = [float(n) for n in _NUMBER.findall(raw_box)]
        if len(values) != 4 or values[2] <= 0 or values[3] <= 0:
            raise GeometryError(f"Invalid viewBox {raw_box!r}")
        view_box = (values[0], values[1], values[2], values[3])

    width_raw, height_raw = root.get("width"), root.get("height")
    width = height = None
    if width_raw and not width_raw.strip().endswith("%"):
        width = _parse_length(width_raw, what="width")
    if height_raw and not height_raw.strip().endswith("%"):
        height = _parse_length(height_raw, what="height")

    if view_box is None:
        return width or 0.0, height or 0.0, Affine.identity(), None

    vx, vy, vw, vh = view_box
    width = vw if width is None else width
    height = vh if height is None else height
    sx, sy = width / vw, height / vh
    if (root.get("preserveAspectRatio") or "").strip().startswith("none"):
        ctm = Affine.scale(sx, sy).multiply(Affine.translate(-vx, -vy))
    else:
        s = min(sx, sy)
        offset_x, offset_y = (width - vw * s) / 2.0, (height - vh * s) / 2.0
        ctm = Affine.translate(offset_x, offset_y).multiply(Affine.scale(s)).multiply(Affine.translate(-vx, -vy))
    return width, height, ctm, view_box


def _walk(elem: ET.Element, ctm: Affine, parent: _Style, out: List[PathPrimitive]) -> None:
    if not isinstance(elem.tag, str):
        return
    ns, name = _local_name(elem.tag)
    if ns is not None and ns != SVG_NS:
        return
    if name in IGNORED:
        return
    if name in UNSUPPORTED:
        raise GeometryError(f"Unsupported SVG element <{name}>")
    if name not in CONTAINERS and name not in SHAPES:
        raise GeometryError(f"Unknown SVG element <{name}>")

    props = _presentation(elem)
    if props.get("display", "").strip() == "none":
        return
    for attr in ("clip-path", "mask", "filter"):
        if props.get(attr, "none").strip() != "none":
            raise GeometryError(f"'{attr}' on <{name}> is not supported")
    style = _resolve_style(parent, props)
    if elem.get("transform"):
        ctm = ctm.multiply(parse_transform(elem.get("transform")))

    if name in CONTAINERS:
        for child in elem:
            _walk(child, ctm, style, out)
        return

    if not style.visible:
        return
    d = _element_path(name, elem)
    if d is None:
        return
    segments = _path_segments(d, ctm)
    if not segments:
        return
    fill = None
    if name != "line":
        fill = _parse_paint(style.fill, style.fill_opacity * style.opacity, style.color)
    stroke_paint = _parse_paint(style.stroke, style.stroke_opacity * style.opacity, style.color)
    stroke = None
    if stroke_paint is not None and style.stroke_width > 0:
        stroke = Stroke(stroke_paint, style.stroke_width * ctm.scale_factor())
    primitive = PathPrimitive(tuple(segments), ctm, fill, stroke)
    if primitive.drawable:
        out.append(primitive)


def parse_svg(data: bytes, source: Optional[Path] = None) -> VectorDocument:
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise AssetError(f"Invalid SVG document: {exc}", path=source) from exc
    ns, name = _local_name(root.tag)
    if name != "svg" or ns not in (None, SVG_NS):
        raise AssetError(f"Not an SVG document (root element <{name}>)", path=source)

    try:
        width, height, ctm, view_box = _viewport(root)
        primitives: List[PathPrimitive] = []
        _walk(root, ctm, _Style(), primitives)
    except GeometryError as exc:
        raise exc.with_context(path=source)
    log.debug(
        f"[VECTOR] Imported {len(primitives)} primitive(s) from "
        f"{source.name if source else 'SVG data'} ({_fmt(width)}x{_fmt(height)})"
    )
    return VectorDocument(width, height, primitives, view_box, source)


def import_svg(path: Path) -> VectorDocument:
    """Load and flatten the SVG file at ``path``."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise AssetError(f"Vector asset not readable: {exc}", path=path) from exc
    return parse_svg(data, source=path)
