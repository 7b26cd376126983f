"""Builders for in-memory movies and BA2 archives used across the tests."""

from __future__ import annotations

import struct
import zlib
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from stardelta.core.swf import SwfHeader, TagRecord, TagStructure, encode_swf
from stardelta.core.swf.codec import SIGNATURES, make_tag
from stardelta.core.swf.handlers import handler_for_code

FRAME = {"xMin": 0, "xMax": 11000, "yMin": 0, "yMax": 8000}


def square_records(size: int = 200, fill_side: str = "fillStyle1") -> List[dict]:
    start = {"type": "styleChange", "moveTo": [0, 0], "lineStyle": 1, fill_side: 1}
    return [
        start,
        {"type": "straightEdge", "delta": [size, 0]},
        {"type": "straightEdge", "delta": [0, size]},
        {"type": "straightEdge", "delta": [-size, 0]},
        {"type": "straightEdge", "delta": [0, -size]},
    ]


def shape_properties(code: int = 32, color=(255, 0, 0), alpha: int = 255) -> dict:
    r, g, b = color
    fill_color = {"r": r, "g": g, "b": b, "a": alpha if code >= 32 else 255}
    line_color = {"r": 0, "g": 0, "b": 0, "a": 255}
    props = {"bounds": {"xMin": -10, "xMax": 210, "yMin": -10, "yMax": 210}}
    line = {"width": 20, "color": line_color}
    if code == 83:
        props["edgeBounds"] = {"xMin": 0, "xMax": 200, "yMin": 0, "yMax": 200}
        props["usesFillWindingRule"] = False
        props["usesNonScalingStrokes"] = False
        props["usesScalingStrokes"] = True
        line.update(
            startCap="round",
            endCap="round",
            join="round",
            noHScale=False,
            noVScale=False,
            pixelHinting=False,
            noClose=False,
        )
    props["fillStyles"] = [{"type": "solid", "color": fill_color}]
    props["lineStyles"] = [line]
    props["records"] = square_records()
    return props


def shape_tag(tag_id: int, code: int = 32, **kwargs) -> TagRecord:
    return TagRecord.from_properties(
        code, tag_id, shape_properties(code, **kwargs), handler_for_code(code)
    )


def edit_text_tag(tag_id: int, text: str = "Hello") -> TagRecord:
    props = {
        "bounds": {"xMin": 0, "xMax": 2000, "yMin": 0, "yMax": 400},
        "wordWrap": False,
        "multiline": False,
        "password": False,
        "readOnly": True,
        "autoSize": False,
        "noSelect": False,
        "border": False,
        "wasStatic": False,
        "html": False,
        "useOutlines": False,
        "fontId": None,
        "fontClass": None,
        "fontHeight": None,
        "color": {"r": 255, "g": 255, "b": 255, "a": 255},
        "maxLength": None,
        "layout": None,
        "variableName": "label",
        "text": text,
    }
    return TagRecord.from_properties(37, tag_id, props, handler_for_code(37))


def file_attributes_tag(**flags) -> TagRecord:
    props = {
        "useDirectBlit": False,
        "useGPU": False,
        "hasMetadata": False,
        "actionScript3": True,
        "noCrossDomainCache": False,
        "swfRelativeUrls": False,
        "useNetwork": False,
    }
    props.update(flags)
    return TagRecord.from_properties(69, None, props, handler_for_code(69))


def background_tag(r: int = 0, g: int = 0, b: int = 0) -> TagRecord:
    props = {"backgroundColor": {"r": r, "g": g, "b": b}}
    return TagRecord.from_properties(9, None, props, handler_for_code(9))


def place_tag(depth: int, character_id: Optional[int] = None, name: Optional[str] = None) -> TagRecord:
    """PlaceObject2 at ``depth`` with an identity matrix."""
    props = {
        "move": character_id is None,
        "depth": depth,
        "characterId": character_id,
        "matrix": {"translateX": 0, "translateY": 0},
        "colorTransform": None,
        "ratio": None,
        "name": name,
        "clipDepth": None,
        "clipActions": None,
    }
    return TagRecord.from_properties(26, None, props, handler_for_code(26))


def frame_label_tag(name: str, anchor: bool = False) -> TagRecord:
    return TagRecord.from_properties(43, None, {"name": name, "anchor": anchor}, handler_for_code(43))


def do_abc_tag(name: str, data: str = "") -> TagRecord:
    props = {"flags": 1, "name": name, "data": data}
    return TagRecord.from_properties(82, None, props, handler_for_code(82))


def build_movie(
    tags: Sequence[TagRecord],
    *,
    compression: str = "none",
    version: int = 10,
    frame_size: Optional[Dict[str, int]] = None,
) -> bytes:
    header = SwfHeader(
        signature=SIGNATURES[compression],
        version=version,
        frame_size=dict(frame_size or FRAME),
        frame_rate=24.0,
        frame_count=1,
    )
    structure = TagStructure(header, list(tags) + [make_tag(1), make_tag(0)])
    return encode_swf(structure)


def sample_movie(compression: str = "none") -> bytes:
    """FileAttributes, background, shapes 1 (v3) and 2 (v1), text 3, shape 4 (v4), DoAction."""
    return build_movie(
        [
            file_attributes_tag(),
            background_tag(16, 32, 48),
            shape_tag(1, 32),
            shape_tag(2, 2, color=(0, 255, 0)),
            edit_text_tag(3),
            shape_tag(4, 83, color=(0, 0, 255)),
            make_tag(12, b"\x00"),
        ],
        compression=compression,
    )


def build_ba2(
    path: Path,
    files: Sequence[Tuple[str, bytes]],
    *,
    version: int = 1,
    compress: bool = False,
    compression_field: int = 0,
) -> Path:
    """Write a general (GNRL) BA2 archive holding ``files``."""
    header_size = 24 + (8 if version in (2, 3) else 0) + (4 if version == 3 else 0)
    offset = header_size + 36 * len(files)
    records = b""
    blobs = b""
    for name, data in files:
        payload = zlib.compress(data) if compress else data
        packed = len(payload) if compress else 0
        ext = Path(name).suffix.lstrip(".")[:4].encode("ascii").ljust(4, b"\x00")
        records += struct.pack("<I4sIIQIII", 0, ext, 0, 0, offset, packed, len(data), 0xBAADF00D)
        blobs += payload
        offset += len(payload)
    names = b"".join(struct.pack("<H", len(n.encode())) + n.encode() for n, _ in files)
    header = struct.pack("<4sI4sIQ", b"BTDX", version, b"GNRL", len(files), offset)
    if version in (2, 3):
        header += b"\x00" * 8
    if version == 3:
        header += struct.pack("<I", compression_field)
    path.write_bytes(header + records + blobs + names)
    return path


SQUARE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">'
    '<rect x="0" y="0" width="100" height="100" fill="#3366ff"/>'
    "</svg>"
)
