"""
JSON structural representation of a movie.

Editable tags are written with their decoded ``properties``; every other tag
is written as base64 ``data``. Loading a structural document rebuilds a
:class:`TagStructure` that encodes to an equivalent movie.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

from ..errors import CodecError, SchemaError, StorageError
from ..logger import get_logger
from ..storage import atomic_write
from .codec import SIGNATURES, make_tag
from .handlers import decode_b64, encode_b64, handler_for_code
from .tags import DEFINITION_CODES, SwfHeader, TagRecord, TagStructure

log = get_logger(__name__)

__all__ = ["structure_to_dict", "structure_from_dict", "dump_structural", "load_structural"]

FORMAT = "stardelta-structural/1"


def _tag_to_dict(tag: TagRecord) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"code": tag.code, "name": tag.name}
    if tag.tag_id is not None:
        entry["id"] = tag.tag_id
    if tag.long_header:
        entry["longHeader"] = True
    if tag.editable:
        try:
            entry["kind"] = tag.kind
            entry["properties"] = tag.properties
            return entry
        except CodecError as exc:
            log.warning(f"[SWF] Could not decode {tag!r}, exporting raw bytes: {exc}")
            entry.pop("kind", None)
    entry["data"] = encode_b64(tag.body())
    return entry


def structure_to_dict(structure: TagStructure) -> Dict[str, Any]:
    header = structure.header
    return {
        "format": FORMAT,
        "header": {
            "signature": header.signature,
            "version": header.version,
            "frameSize": dict(header.frame_size),
            "frameRate": header.frame_rate,
            "frameCount": header.frame_count,
        },
        "tags": [_tag_to_dict(tag) for tag in structure.tags],
    }


def _header_from_dict(data: Any) -> SwfHeader:
    if not isinstance(data, Mapping):
        raise SchemaError("Structural document is missing its 'header' object")
    signature = data.get("signature", "FWS")
    if signature not in SIGNATURES.values():
        raise SchemaError(f"Unknown signature {signature!r}", section="header")
    version = data.get("version")
    if not isinstance(version, int) or not 1 <= version <= 255:
        raise SchemaError(f"Invalid SWF version {version!r}", section="header")
    frame_rate = data.get("frameRate", 24.0)
    frame_count = data.get("frameCount", 1)
    if not isinstance(frame_rate, (int, float)) or not 0 <= frame_rate < 256:
        raise SchemaError(f"Invalid frame rate {frame_rate!r}", section="header")
    if not isinstance(frame_count, int) or not 0 <= frame_count <= 0xFFFF:
        raise SchemaError(f"Invalid frame count {frame_count!r}", section="header")
    frame_size = data.get("frameSize")
    if not isinstance(frame_size, Mapping):
        raise SchemaError("Header 'frameSize' must be an object", section="header")
    return SwfHeader(
        signature=signature,
        version=version,
        frame_size=dict(frame_size),
        frame_rate=float(frame_rate),
        frame_count=frame_count,
    )


def _tag_from_dict(entry: Any, index: int) -> TagRecord:
    if not isinstance(entry, Mapping):
        raise SchemaError("Tag entry must be an object", section="tags", index=index)
    code = entry.get("code")
    if not isinstance(code, int) or not 0 <= code < 1024:
        raise SchemaError(f"Invalid tag code {code!r}", section="tags", index=index)
    long_header = bool(entry.get("longHeader", False))

    if "properties" in entry:
        handler = handler_for_code(code)
        if handler is None:
            raise SchemaError(f"Tag code {code} has no editable properties", section="tags", index=index)
        tag_id = entry.get("id")
        if code in DEFINITION_CODES and not isinstance(tag_id, int):
            raise SchemaError("Definition tags need an integer 'id'", section="tags", index=index)
        properties = entry["properties"]
        handler.validate(properties, code, tag_id)
        record = TagRecord.from_properties(code, tag_id, dict(properties), handler)
        record.long_header = long_header
        return record

    try:
        raw = decode_b64(entry.get("data", ""), f"tags[{index}].data")
    except CodecError as exc:
        raise SchemaError(exc.message, section="tags", index=index) from exc
    return make_tag(code, raw, long_header)


def structure_from_dict(data: Any) -> TagStructure:
    if not isinstance(data, Mapping):
        raise SchemaError("Structural document must be a JSON object")
    fmt = data.get("format", FORMAT)
    if fmt != FORMAT:
        raise SchemaError(f"Unsupported structural format {fmt!r}")
    tags = data.get("tags")
    if not isinstance(tags, list):
        raise SchemaError("Structural document is missing its 'tags' list")
    records: List[TagRecord] = []
    for index, entry in enumerate(tags):
        try:
            records.append(_tag_from_dict(entry, index))
        except SchemaError as exc:
            raise exc.with_context(section="tags", index=index)
    structure = TagStructure(_header_from_dict(data.get("header")), records)
    structure.header_dirty = True
    return structure


def dump_structural(structure: TagStructure, path: Path) -> Path:
    """Write the structural document; an existing file is only replaced once the new one is complete."""
    data = json.dumps(structure_to_dict(structure), indent=2).encode("utf-8")
    return atomic_write(Path(path), data)


def load_structural(path: Path) -> TagStructure:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"Could not read structural document: {exc}", path=path) from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Structural document is not valid JSON: {exc}", path=path) from exc
    try:
        return structure_from_dict(data)
    except SchemaError as exc:
        raise exc.with_context(path=path)
