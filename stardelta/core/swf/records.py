"""
Codecs for the SWF records shared by several tags.

Records are decoded into plain JSON-compatible dictionaries so that patch
documents can address them directly (camelCase keys, twips for coordinates,
0-255 colour channels). Encoders validate the dictionaries they are given and
raise :class:`CodecError` on malformed input.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import CodecError
from .bits import BitReader, BitWriter, fixed_16_16, signed_bits, unsigned_bits

__all__ = [
    "FILL_TYPES",
    "read_rect",
    "write_rect",
    "read_color",
    "write_color",
    "read_matrix",
    "write_matrix",
    "read_cxform",
    "write_cxform",
    "FILTER_TYPES",
    "read_filters",
    "write_filters",
    "read_fill_style",
    "write_fill_style",
    "read_shape",
    "write_shape",
    "check_keys",
    "int_field",
    "bool_field",
    "str_field",
]

FILL_TYPES: Dict[int, str] = {
    0x00: "solid",
    0x10: "linearGradient",
    0x12: "radialGradient",
    0x13: "focalGradient",
    0x40: "repeatingBitmap",
    0x41: "clippedBitmap",
    0x42: "nonSmoothedRepeatingBitmap",
    0x43: "nonSmoothedClippedBitmap",
}
FILL_CODES: Dict[str, int] = {name: code for code, name in FILL_TYPES.items()}
GRADIENT_FILLS = {"linearGradient", "radialGradient", "focalGradient"}
BITMAP_FILLS = {
    "repeatingBitmap",
    "clippedBitmap",
    "nonSmoothedRepeatingBitmap",
    "nonSmoothedClippedBitmap",
}

CAP_STYLES = ["round", "none", "square"]
JOIN_STYLES = ["round", "bevel", "miter"]

# Largest edge delta a shape record can hold (NumBits is UB[4] + 2).
MAX_EDGE_BITS = 17

_MISSING = object()


# ---------------------------------------------------------------------------
# Field validation helpers


def check_keys(obj: Any, allowed: Iterable[str], where: str) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise CodecError(f"{where}: expected an object, got {type(obj).__name__}")
    unknown = sorted(set(obj) - set(allowed))
    if unknown:
        raise CodecError(f"{where}: unknown key(s) {', '.join(unknown)}")
    return obj


def int_field(
    obj: Mapping[str, Any],
    key: str,
    where: str,
    *,
    lo: Optional[int] = None,
    hi: Optional[int] = None,
    default: Any = _MISSING,
) -> int:
    value = obj.get(key, default)
    if value is _MISSING:
        raise CodecError(f"{where}: missing '{key}'")
    if isinstance(value, bool) or not isinstance(value, int):
        raise CodecError(f"{where}: '{key}' must be an integer, got {value!r}")
    if (lo is not None and value < lo) or (hi is not None and value > hi):
        raise CodecError(f"{where}: '{key}'={value} outside [{lo}, {hi}]")
    return value


def number_field(obj: Mapping[str, Any], key: str, where: str, default: Any = _MISSING) -> float:
    value = obj.get(key, default)
    if value is _MISSING:
        raise CodecError(f"{where}: missing '{key}'")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CodecError(f"{where}: '{key}' must be a number, got {value!r}")
    return float(value)


def bool_field(obj: Mapping[str, Any], key: str, where: str, default: Any = _MISSING) -> bool:
    value = obj.get(key, default)
    if value is _MISSING:
        raise CodecError(f"{where}: missing '{key}'")
    if not isinstance(value, bool):
        raise CodecError(f"{where}: '{key}' must be true or false, got {value!r}")
    return value


def str_field(obj: Mapping[str, Any], key: str, where: str, default: Any = _MISSING) -> str:
    value = obj.get(key, default)
    if value is _MISSING:
        raise CodecError(f"{where}: missing '{key}'")
    if not isinstance(value, str):
        raise CodecError(f"{where}: '{key}' must be a string, got {value!r}")
    return value


def list_field(obj: Mapping[str, Any], key: str, where: str, default: Any = _MISSING) -> list:
    value = obj.get(key, default)
    if value is _MISSING:
        raise CodecError(f"{where}: missing '{key}'")
    if not isinstance(value, (list, tuple)):
        raise CodecError(f"{where}: '{key}' must be a list, got {type(value).__name__}")
    return list(value)


def _pair(obj: Mapping[str, Any], key: str, where: str) -> Sequence[int]:
    value = obj.get(key)
    if (
        not isinstance(value, (list, tuple))
        or len(value) != 2
        or any(isinstance(v, bool) or not isinstance(v, int) for v in value)
    ):
        raise CodecError(f"{where}: '{key}' must be a pair of integers, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# RECT / colours / MATRIX


def read_rect(r: BitReader) -> Dict[str, int]:
    r.align()
    nbits = r.read_ub(5)
    x_min = r.read_sb(nbits)
    x_max = r.read_sb(nbits)
    y_min = r.read_sb(nbits)
    y_max = r.read_sb(nbits)
    r.align()
    return {"xMin": x_min, "xMax": x_max, "yMin": y_min, "yMax": y_max}


def write_rect(w: BitWriter, rect: Mapping[str, Any], where: str = "rect") -> None:
    check_keys(rect, ("xMin", "xMax", "yMin", "yMax"), where)
    values = [int_field(rect, k, where) for k in ("xMin", "xMax", "yMin", "yMax")]
    nbits = signed_bits(*values)
    if nbits > 31:
        raise CodecError(f"{where}: coordinates out of range")
    w.align()
    w.write_ub(5, nbits)
    for value in values:
        w.write_sb(nbits, value)
    w.align()


def read_color(r: BitReader, with_alpha: bool) -> Dict[str, int]:
    red, green, blue = r.read_u8(), r.read_u8(), r.read_u8()
    alpha = r.read_u8() if with_alpha else 255
    return {"r": red, "g": green, "b": blue, "a": alpha}


def write_color(w: BitWriter, color: Mapping[str, Any], with_alpha: bool, where: str = "color") -> None:
    check_keys(color, ("r", "g", "b", "a"), where)
    for channel in ("r", "g", "b"):
        w.write_u8(int_field(color, channel, where, lo=0, hi=255))
    alpha = int_field(color, "a", where, lo=0, hi=255, default=255)
    if with_alpha:
        w.write_u8(alpha)
    elif alpha != 255:
        raise CodecError(f"{where}: alpha is not supported by this tag version")


def read_matrix(r: BitReader) -> Dict[str, Any]:
    r.align()
    matrix: Dict[str, Any] = {
        "scaleX": 1.0,
        "scaleY": 1.0,
        "rotateSkew0": 0.0,
        "rotateSkew1": 0.0,
    }
    if r.read_bit():
        nbits = r.read_ub(5)
        matrix["scaleX"] = r.read_fb(nbits)
        matrix["scaleY"] = r.read_fb(nbits)
    if r.read_bit():
        nbits = r.read_ub(5)
        matrix["rotateSkew0"] = r.read_fb(nbits)
        matrix["rotateSkew1"] = r.read_fb(nbits)
    nbits = r.read_ub(5)
    matrix["translateX"] = r.read_sb(nbits)
    matrix["translateY"] = r.read_sb(nbits)
    r.align()
    return matrix


def write_matrix(w: BitWriter, matrix: Mapping[str, Any], where: str = "matrix") -> None:
    check_keys(
        matrix,
        ("scaleX", "scaleY", "rotateSkew0", "rotateSkew1", "translateX", "translateY"),
        where,
    )
    sx = fixed_16_16(number_field(matrix, "scaleX", where, default=1.0))
    sy = fixed_16_16(number_field(matrix, "scaleY", where, default=1.0))
    r0 = fixed_16_16(number_field(matrix, "rotateSkew0", where, default=0.0))
    r1 = fixed_16_16(number_field(matrix, "rotateSkew1", where, default=0.0))
    tx = int_field(matrix, "translateX", where, default=0)
    ty = int_field(matrix, "translateY", where, default=0)
    w.align()
    has_scale = sx != 0x10000 or sy != 0x10000
    w.write_bit(has_scale)
    if has_scale:
        nbits = signed_bits(sx, sy)
        w.write_ub(5, nbits)
        w.write_sb(nbits, sx)
        w.write_sb(nbits, sy)
    has_rotate = r0 != 0 or r1 != 0
    w.write_bit(has_rotate)
    if has_rotate:
        nbits = signed_bits(r0, r1)
        w.write_ub(5, nbits)
        w.write_sb(nbits, r0)
        w.write_sb(nbits, r1)
    nbits = signed_bits(tx, ty)
    w.write_ub(5, nbits)
    w.write_sb(nbits, tx)
    w.write_sb(nbits, ty)
    w.align()


# CXFORM terms per channel; the alpha channel only exists in CXFORMWITHALPHA.
_CXFORM_CHANNELS = ("red", "green", "blue", "alpha")


def _cxform_channels(with_alpha: bool) -> Sequence[str]:
    return _CXFORM_CHANNELS if with_alpha else _CXFORM_CHANNELS[:3]


def read_cxform(r: BitReader, with_alpha: bool) -> Dict[str, int]:
    """Read a CXFORM or CXFORMWITHALPHA.

    Multipliers are 8.8 fixed point (256 leaves a channel unchanged). Only the
    terms present in the record are returned, so an untouched transform
    encodes back to the same bits.
    """
    r.align()
    has_add = r.read_bit()
    has_mult = r.read_bit()
    nbits = r.read_ub(4)
    channels = _cxform_channels(with_alpha)
    cxform: Dict[str, int] = {}
    if has_mult:
        for channel in channels:
            cxform[f"{channel}Mult"] = r.read_sb(nbits)
    if has_add:
        for channel in channels:
            cxform[f"{channel}Add"] = r.read_sb(nbits)
    r.align()
    return cxform


def write_cxform(
    w: BitWriter, cxform: Mapping[str, Any], with_alpha: bool, where: str = "colorTransform"
) -> None:
    channels = _cxform_channels(with_alpha)
    mult_keys = [f"{channel}Mult" for channel in channels]
    add_keys = [f"{channel}Add" for channel in channels]
    check_keys(cxform, mult_keys + add_keys, where)
    has_mult = any(key in cxform for key in mult_keys)
    has_add = any(key in cxform for key in add_keys)
    values: List[int] = []
    if has_mult:
        values += [int_field(cxform, key, where, lo=-16384, hi=16383, default=256) for key in mult_keys]
    if has_add:
        values += [int_field(cxform, key, where, lo=-16384, hi=16383, default=0) for key in add_keys]
    nbits = signed_bits(*values)
    w.align()
    w.write_bit(has_add)
    w.write_bit(has_mult)
    w.write_ub(4, nbits)
    for value in values:
        w.write_sb(nbits, value)
    w.align()


# ---------------------------------------------------------------------------
# Display-list filters

FILTER_TYPES = [
    "dropShadow",
    "blur",
    "glow",
    "bevel",
    "gradientGlow",
    "convolution",
    "colorMatrix",
    "gradientBevel",
]

# Body sizes of the fixed-length filters; the others depend on a count.
_FILTER_SIZES = {0: 23, 1: 9, 2: 15, 3: 27, 6: 80}


def read_filters(r: BitReader) -> List[Tuple[str, bytes]]:
    """Read a FILTERLIST as ``(type, body)`` pairs; bodies are kept opaque."""
    filters = []
    for _ in range(r.read_u8()):
        code = r.read_u8()
        if code >= len(FILTER_TYPES):
            raise CodecError(f"Unknown filter type {code}")
        if code in _FILTER_SIZES:
            body = r.read_bytes(_FILTER_SIZES[code])
        elif code in (4, 7):
            count = r.read_u8()
            body = bytes([count]) + r.read_bytes(5 * count + 19)
        else:
            head = r.read_bytes(2)
            body = head + r.read_bytes(13 + 4 * head[0] * head[1])
        filters.append((FILTER_TYPES[code], body))
    return filters


def write_filters(w: BitWriter, filters: Sequence[Tuple[str, bytes]], where: str = "filters") -> None:
    if len(filters) > 0xFF:
        raise CodecError(f"{where}: at most 255 filters")
    w.write_u8(len(filters))
    for i, (name, body) in enumerate(filters):
        if name not in FILTER_TYPES:
            raise CodecError(f"{where}[{i}]: unknown filter type {name!r}")
        w.write_u8(FILTER_TYPES.index(name))
        w.write_bytes(body)


# ---------------------------------------------------------------------------
# Fill styles


def _read_gradient(r: BitReader, with_alpha: bool, focal: bool) -> Dict[str, Any]:
    r.align()
    spread = r.read_ub(2)
    interpolation = r.read_ub(2)
    count = r.read_ub(4)
    records = []
    for _ in range(count):
        ratio = r.read_u8()
        records.append({"ratio": ratio, "color": read_color(r, with_alpha)})
    gradient: Dict[str, Any] = {
        "spreadMode": spread,
        "interpolationMode": interpolation,
        "records": records,
    }
    if focal:
        gradient["focalPoint"] = r.read_s16() / 256.0
    return gradient


def _write_gradient(
    w: BitWriter, gradient: Mapping[str, Any], with_alpha: bool, focal: bool, where: str
) -> None:
    allowed = ["spreadMode", "interpolationMode", "records"] + (["focalPoint"] if focal else [])
    check_keys(gradient, allowed, where)
    records = list_field(gradient, "records", where)
    if len(records) > 15:
        raise CodecError(f"{where}: at most 15 gradient records are allowed")
    w.align()
    w.write_ub(2, int_field(gradient, "spreadMode", where, lo=0, hi=3, default=0))
    w.write_ub(2, int_field(gradient, "interpolationMode", where, lo=0, hi=3, default=0))
    w.write_ub(4, len(records))
    for i, record in enumerate(records):
        rwhere = f"{where}.records[{i}]"
        check_keys(record, ("ratio", "color"), rwhere)
        w.write_u8(int_field(record, "ratio", rwhere, lo=0, hi=255))
        write_color(w, record.get("color"), with_alpha, f"{rwhere}.color")
    if focal:
        point = number_field(gradient, "focalPoint", where, default=0.0)
        w.write_s16(int(round(point * 256.0)))


def read_fill_style(r: BitReader, version: int) -> Dict[str, Any]:
    code = r.read_u8()
    kind = FILL_TYPES.get(code)
    if kind is None:
        raise CodecError(f"Unknown fill style type 0x{code:02x}")
    with_alpha = version >= 3
    if kind == "solid":
        return {"type": kind, "color": read_color(r, with_alpha)}
    if kind in GRADIENT_FILLS:
        matrix = read_matrix(r)
        gradient = _read_gradient(r, with_alpha, focal=kind == "focalGradient")
        return {"type": kind, "matrix": matrix, "gradient": gradient}
    bitmap_id = r.read_u16()
    return {"type": kind, "bitmapId": bitmap_id, "matrix": read_matrix(r)}


def write_fill_style(w: BitWriter, style: Mapping[str, Any], version: int, where: str) -> None:
    if not isinstance(style, Mapping):
        raise CodecError(f"{where}: expected an object")
    kind = str_field(style, "type", where)
    if kind not in FILL_CODES:
        raise CodecError(f"{where}: unknown fill type '{kind}'")
    if kind == "focalGradient" and version < 4:
        raise CodecError(f"{where}: focal gradients require DefineShape4")
    with_alpha = version >= 3
    w.write_u8(FILL_CODES[kind])
    if kind == "solid":
        check_keys(style, ("type", "color"), where)
        write_color(w, style.get("color"), with_alpha, f"{where}.color")
    elif kind in GRADIENT_FILLS:
        check_keys(style, ("type", "matrix", "gradient"), where)
        write_matrix(w, style.get("matrix", {}), f"{where}.matrix")
        _write_gradient(
            w, style.get("gradient"), with_alpha, kind == "focalGradient", f"{where}.gradient"
        )
    else:
        check_keys(style, ("type", "bitmapId", "matrix"), where)
        w.write_u16(int_field(style, "bitmapId", where, lo=0, hi=0xFFFF))
        write_matrix(w, style.get("matrix", {}), f"{where}.matrix")


def _read_count(r: BitReader, version: int) -> int:
    count = r.read_u8()
    if count == 0xFF and version >= 2:
        count = r.read_u16()
    return count


def _write_count(w: BitWriter, count: int, version: int, where: str) -> None:
    if count < 0xFF:
        w.write_u8(count)
    elif version >= 2 and count <= 0xFFFF:
        w.write_u8(0xFF)
        w.write_u16(count)
    else:
        raise CodecError(f"{where}: too many styles ({count}) for this tag version")


def read_fill_styles(r: BitReader, version: int) -> List[Dict[str, Any]]:
    return [read_fill_style(r, version) for _ in range(_read_count(r, version))]


def write_fill_styles(w: BitWriter, styles: Sequence[Any], version: int, where: str) -> None:
    _write_count(w, len(styles), version, where)
    for i, style in enumerate(styles):
        write_fill_style(w, style, version, f"{where}[{i}]")


# ---------------------------------------------------------------------------
# Line styles


def read_line_style(r: BitReader, version: int) -> Dict[str, Any]:
    width = r.read_u16()
    if version < 4:
        return {"width": width, "color": read_color(r, version >= 3)}
    start_cap = r.read_ub(2)
    join = r.read_ub(2)
    has_fill = r.read_bit()
    style: Dict[str, Any] = {"width": width}
    style["noHScale"] = r.read_bit()
    style["noVScale"] = r.read_bit()
    style["pixelHinting"] = r.read_bit()
    r.read_ub(5)
    style["noClose"] = r.read_bit()
    end_cap = r.read_ub(2)
    style["startCap"] = CAP_STYLES[start_cap] if start_cap < 3 else "round"
    style["endCap"] = CAP_STYLES[end_cap] if end_cap < 3 else "round"
    style["join"] = JOIN_STYLES[join] if join < 3 else "round"
    if join == 2:
        style["miterLimit"] = r.read_u16() / 256.0
    if has_fill:
        style["fill"] = read_fill_style(r, version)
    else:
        style["color"] = read_color(r, True)
    return style


def write_line_style(w: BitWriter, style: Mapping[str, Any], version: int, where: str) -> None:
    if version < 4:
        check_keys(style, ("width", "color"), where)
        w.write_u16(int_field(style, "width", where, lo=0, hi=0xFFFF))
        write_color(w, style.get("color"), version >= 3, f"{where}.color")
        return
    check_keys(
        style,
        (
            "width",
            "startCap",
            "endCap",
            "join",
            "noHScale",
            "noVScale",
            "pixelHinting",
            "noClose",
            "miterLimit",
            "color",
            "fill",
        ),
        where,
    )
    start_cap = str_field(style, "startCap", where, default="round")
    end_cap = str_field(style, "endCap", where, default="round")
    join = str_field(style, "join", where, default="round")
    if start_cap not in CAP_STYLES or end_cap not in CAP_STYLES:
        raise CodecError(f"{where}: cap style must be one of {', '.join(CAP_STYLES)}")
    if join not in JOIN_STYLES:
        raise CodecError(f"{where}: join style must be one of {', '.join(JOIN_STYLES)}")
    has_fill = style.get("fill") is not None
    if has_fill == (style.get("color") is not None):
        raise CodecError(f"{where}: exactly one of 'color' or 'fill' is required")
    w.write_u16(int_field(style, "width", where, lo=0, hi=0xFFFF))
    w.write_ub(2, CAP_STYLES.index(start_cap))
    w.write_ub(2, JOIN_STYLES.index(join))
    w.write_bit(has_fill)
    w.write_bit(bool_field(style, "noHScale", where, default=False))
    w.write_bit(bool_field(style, "noVScale", where, default=False))
    w.write_bit(bool_field(style, "pixelHinting", where, default=False))
    w.write_ub(5, 0)
    w.write_bit(bool_field(style, "noClose", where, default=False))
    w.write_ub(2, CAP_STYLES.index(end_cap))
    if join == "miter":
        limit = number_field(style, "miterLimit", where, default=3.0)
        w.write_u16(int(round(limit * 256.0)))
    if has_fill:
        write_fill_style(w, style["fill"], version, f"{where}.fill")
    else:
        write_color(w, style["color"], True, f"{where}.color")


def read_line_styles(r: BitReader, version: int) -> List[Dict[str, Any]]:
    return [read_line_style(r, version) for _ in range(_read_count(r, version))]


def write_line_styles(w: BitWriter, styles: Sequence[Any], version: int, where: str) -> None:
    _write_count(w, len(styles), version, where)
    for i, style in enumerate(styles):
        if not isinstance(style, Mapping):
            raise CodecError(f"{where}[{i}]: expected an object")
        write_line_style(w, style, version, f"{where}[{i}]")


# ---------------------------------------------------------------------------
# SHAPEWITHSTYLE


def read_shape(r: BitReader, version: int) -> Dict[str, Any]:
    fill_styles = read_fill_styles(r, version)
    line_styles = read_line_styles(r, version)
    fill_bits = r.read_ub(4)
    line_bits = r.read_ub(4)
    records: List[Dict[str, Any]] = []
    while True:
        if not r.read_bit():
            flags = r.read_ub(5)
            if flags == 0:
                break
            record: Dict[str, Any] = {"type": "styleChange"}
            if flags & 0x01:
                nbits = r.read_ub(5)
                record["moveTo"] = [r.read_sb(nbits), r.read_sb(nbits)]
            if flags & 0x02:
                record["fillStyle0"] = r.read_ub(fill_bits)
            if flags & 0x04:
                record["fillStyle1"] = r.read_ub(fill_bits)
            if flags & 0x08:
                record["lineStyle"] = r.read_ub(line_bits)
            if flags & 0x10:
                new_fills = read_fill_styles(r, version)
                new_lines = read_line_styles(r, version)
                fill_bits = r.read_ub(4)
                line_bits = r.read_ub(4)
                record["newStyles"] = {"fillStyles": new_fills, "lineStyles": new_lines}
            records.append(record)
            continue

        straight = r.read_bit()
        nbits = r.read_ub(4) + 2
        if straight:
            if r.read_bit():
                dx = r.read_sb(nbits)
                dy = r.read_sb(nbits)
            elif r.read_bit():
                dx, dy = 0, r.read_sb(nbits)
            else:
                dx, dy = r.read_sb(nbits), 0
            records.append({"type": "straightEdge", "delta": [dx, dy]})
        else:
            cdx = r.read_sb(nbits)
            cdy = r.read_sb(nbits)
            adx = r.read_sb(nbits)
            ady = r.read_sb(nbits)
            records.append({"type": "curvedEdge", "control": [cdx, cdy], "anchor": [adx, ady]})
    r.align()
    return {"fillStyles": fill_styles, "lineStyles": line_styles, "records": records}


def _edge_bits(where: str, *values: int) -> int:
    nbits = max(2, signed_bits(*values))
    if nbits > MAX_EDGE_BITS:
        raise CodecError(f"{where}: edge delta too large for a shape record")
    return nbits


def _write_style_index(w: BitWriter, nbits: int, value: int, limit: int, where: str) -> None:
    if not 0 <= value <= limit:
        raise CodecError(f"{where}: style index {value} outside 0..{limit}")
    w.write_ub(nbits, value)


def write_shape(w: BitWriter, shape: Mapping[str, Any], version: int, where: str = "shape") -> None:
    fill_styles = list_field(shape, "fillStyles", where, default=[])
    line_styles = list_field(shape, "lineStyles", where, default=[])
    records = list_field(shape, "records", where, default=[])
    write_fill_styles(w, fill_styles, version, f"{where}.fillStyles")
    write_line_styles(w, line_styles, version, f"{where}.lineStyles")
    fill_count, line_count = len(fill_styles), len(line_styles)
    fill_bits, line_bits = unsigned_bits(fill_count), unsigned_bits(line_count)
    w.write_ub(4, fill_bits)
    w.write_ub(4, line_bits)

    for i, record in enumerate(records):
        rwhere = f"{where}.records[{i}]"
        kind = str_field(record, "type", rwhere) if isinstance(record, Mapping) else None
        if kind == "styleChange":
            check_keys(
                record,
                ("type", "moveTo", "fillStyle0", "fillStyle1", "lineStyle", "newStyles"),
                rwhere,
            )
            flags = 0
            if record.get("moveTo") is not None:
                flags |= 0x01
            if record.get("fillStyle0") is not None:
                flags |= 0x02
            if record.get("fillStyle1") is not None:
                flags |= 0x04
            if record.get("lineStyle") is not None:
                flags |= 0x08
            if record.get("newStyles") is not None:
                flags |= 0x10
            if not flags:
                raise CodecError(f"{rwhere}: style change record changes nothing")
            w.write_bit(False)
            w.write_ub(5, flags)
            if flags & 0x01:
                x, y = _pair(record, "moveTo", rwhere)
                nbits = signed_bits(x, y)
                if nbits > 31:
                    raise CodecError(f"{rwhere}: moveTo out of range")
                w.write_ub(5, nbits)
                w.write_sb(nbits, x)
                w.write_sb(nbits, y)
            if flags & 0x02:
                _write_style_index(
                    w, fill_bits, int_field(record, "fillStyle0", rwhere), fill_count, rwhere
                )
            if flags & 0x04:
                _write_style_index(
                    w, fill_bits, int_field(record, "fillStyle1", rwhere), fill_count, rwhere
                )
            if flags & 0x08:
                _write_style_index(
                    w, line_bits, int_field(record, "lineStyle", rwhere), line_count, rwhere
                )
            if flags & 0x10:
                new_styles = check_keys(
                    record["newStyles"], ("fillStyles", "lineStyles"), f"{rwhere}.newStyles"
                )
                new_fills = list_field(new_styles, "fillStyles", rwhere, default=[])
                new_lines = list_field(new_styles, "lineStyles", rwhere, default=[])
                write_fill_styles(w, new_fills, version, f"{rwhere}.newStyles.fillStyles")
                write_line_styles(w, new_lines, version, f"{rwhere}.newStyles.lineStyles")
                fill_count, line_count = len(new_fills), len(new_lines)
                fill_bits, line_bits = unsigned_bits(fill_count), unsigned_bits(line_count)
                w.write_ub(4, fill_bits)
                w.write_ub(4, line_bits)
        elif kind == "straightEdge":
            check_keys(record, ("type", "delta"), rwhere)
            dx, dy = _pair(record, "delta", rwhere)
            nbits = _edge_bits(rwhere, dx, dy)
            w.write_bit(True)
            w.write_bit(True)
            w.write_ub(4, nbits - 2)
            if dx != 0 and dy != 0:
                w.write_bit(True)
                w.write_sb(nbits, dx)
                w.write_sb(nbits, dy)
            else:
                vertical = dx == 0
                w.write_bit(False)
                w.write_bit(vertical)
                w.write_sb(nbits, dy if vertical else dx)
        elif kind == "curvedEdge":
            check_keys(record, ("type", "control", "anchor"), rwhere)
            cdx, cdy = _pair(record, "control", rwhere)
            adx, ady = _pair(record, "anchor", rwhere)
            nbits = _edge_bits(rwhere, cdx, cdy, adx, ady)
            w.write_bit(True)
            w.write_bit(False)
            w.write_ub(4, nbits - 2)
            for value in (cdx, cdy, adx, ady):
                w.write_sb(nbits, value)
        else:
            raise CodecError(f"{rwhere}: unknown shape record type {kind!r}")

    w.write_bit(False)
    w.write_ub(5, 0)
    w.align()
