"""
In-memory tag structure of a SWF movie.

A :class:`TagStructure` is a header plus an ordered list of :class:`TagRecord`
objects. Records keep their raw body bytes until something asks for their
properties, and are only re-encoded when they have been replaced.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..errors import CodecError, TagReferenceError, TypeMismatchError
from .bits import BitReader, BitWriter

__all__ = [
    "TAG_NAMES",
    "DEFINITION_CODES",
    "SwfHeader",
    "TagRecord",
    "TagStructure",
    "read_tag_stream",
    "write_tag",
]

TAG_NAMES: Dict[int, str] = {
    0: "End",
    1: "ShowFrame",
    2: "DefineShape",
    4: "PlaceObject",
    5: "RemoveObject",
    6: "DefineBits",
    7: "DefineButton",
    8: "JPEGTables",
    9: "SetBackgroundColor",
    10: "DefineFont",
    11: "DefineText",
    12: "DoAction",
    13: "DefineFontInfo",
    14: "DefineSound",
    15: "StartSound",
    17: "DefineButtonSound",
    18: "SoundStreamHead",
    19: "SoundStreamBlock",
    20: "DefineBitsLossless",
    21: "DefineBitsJPEG2",
    22: "DefineShape2",
    23: "DefineButtonCxform",
    24: "Protect",
    26: "PlaceObject2",
    28: "RemoveObject2",
    32: "DefineShape3",
    33: "DefineText2",
    34: "DefineButton2",
    35: "DefineBitsJPEG3",
    36: "DefineBitsLossless2",
    37: "DefineEditText",
    39: "DefineSprite",
    41: "ProductInfo",
    43: "FrameLabel",
    45: "SoundStreamHead2",
    46: "DefineMorphShape",
    48: "DefineFont2",
    56: "ExportAssets",
    57: "ImportAssets",
    58: "EnableDebugger",
    59: "DoInitAction",
    60: "DefineVideoStream",
    61: "VideoFrame",
    62: "DefineFontInfo2",
    63: "DebugID",
    64: "EnableDebugger2",
    65: "ScriptLimits",
    66: "SetTabIndex",
    69: "FileAttributes",
    70: "PlaceObject3",
    71: "ImportAssets2",
    73: "DefineFontAlignZones",
    74: "CSMTextSettings",
    75: "DefineFont3",
    76: "SymbolClass",
    77: "Metadata",
    78: "DefineScalingGrid",
    82: "DoABC",
    83: "DefineShape4",
    84: "DefineMorphShape2",
    86: "DefineSceneAndFrameLabelData",
    87: "DefineBinaryData",
    88: "DefineFontName",
    89: "StartSound2",
    90: "DefineBitsJPEG4",
    91: "DefineFont4",
}

# Tags whose body starts with the character id they define.
DEFINITION_CODES = frozenset(
    {2, 6, 7, 10, 11, 14, 20, 21, 22, 32, 33, 34, 35, 36, 37, 39, 46, 48, 60, 75, 83, 84, 87, 90, 91}
)

SHAPE_CODES = (2, 22, 32, 83)


def read_tag_stream(data: bytes, pos: int = 0) -> List[Tuple[int, bytes, bool]]:
    """Split a tag stream into ``(code, body, long_header)`` triples.

    Reading stops after the End tag (code 0) or when the data runs out.
    """
    r = BitReader(data, pos)
    out: List[Tuple[int, bytes, bool]] = []
    while r.remaining() > 0:
        if r.remaining() < 2:
            raise CodecError("Truncated tag header")
        code_and_length = r.read_u16()
        code = code_and_length >> 6
        length = code_and_length & 0x3F
        long_header = length == 0x3F
        if long_header:
            length = r.read_u32()
        if length > r.remaining():
            raise CodecError(
                f"Tag {TAG_NAMES.get(code, code)} declares {length} bytes but only "
                f"{r.remaining()} remain"
            )
        out.append((code, r.read_bytes(length), long_header))
        if code == 0:
            break
    return out


def write_tag(w: BitWriter, code: int, body: bytes, long_header: bool = False) -> None:
    if not 0 <= code < 1024:
        raise CodecError(f"Tag code {code} out of range")
    if long_header or len(body) >= 0x3F:
        w.write_u16((code << 6) | 0x3F)
        w.write_u32(len(body))
    else:
        w.write_u16((code << 6) | len(body))
    w.write_bytes(body)


@dataclass
class SwfHeader:
    signature: str = "FWS"
    version: int = 10
    frame_size: Dict[str, int] = field(
        default_factory=lambda: {"xMin": 0, "xMax": 0, "yMin": 0, "yMax": 0}
    )
    frame_rate: float = 24.0
    frame_count: int = 1

    @property
    def compression(self) -> str:
        return {"FWS": "none", "CWS": "zlib", "ZWS": "lzma"}.get(self.signature, "none")


class TagRecord:
    """One tag of the movie.

    ``handler`` is the editable-kind handler for the tag code, or None for
    tags that are only ever passed through.
    """

    def __init__(
        self,
        code: int,
        raw: bytes = b"",
        *,
        long_header: bool = False,
        handler: Any = None,
    ) -> None:
        self.code = code
        self.raw = raw
        self.long_header = long_header
        self.handler = handler
        self.dirty = False
        self._properties: Optional[Dict[str, Any]] = None
        self._tag_id: Optional[int] = None
        if code in DEFINITION_CODES and len(raw) >= 2:
            self._tag_id = struct.unpack_from("<H", raw)[0]

    @classmethod
    def from_properties(
        cls, code: int, tag_id: Optional[int], properties: Dict[str, Any], handler: Any
    ) -> "TagRecord":
        record = cls(code, b"", handler=handler)
        record._tag_id = tag_id
        record.replace_properties(properties)
        return record

    def __repr__(self) -> str:
        ident = f" id={self._tag_id}" if self._tag_id is not None else ""
        return f"<TagRecord {self.name}{ident} code={self.code}>"

    @property
    def name(self) -> str:
        return TAG_NAMES.get(self.code, f"Unknown{self.code}")

    @property
    def kind(self) -> str:
        if self.handler is not None:
            return self.handler.kind
        return f"{self.name}Tag"

    @property
    def editable(self) -> bool:
        return self.handler is not None

    @property
    def tag_id(self) -> Optional[int]:
        return self._tag_id

    @property
    def properties(self) -> Dict[str, Any]:
        """Decoded properties. Treat the returned mapping as read-only."""
        if self.handler is None:
            raise CodecError(f"{self.name} tags are not editable")
        if self._properties is None:
            self._properties = self.handler.decode(self.raw, self.code)
        return self._properties

    def replace_properties(self, properties: Dict[str, Any], code: Optional[int] = None) -> None:
        self._properties = properties
        if code is not None:
            self.code = code
        self.dirty = True

    def body(self) -> bytes:
        if not self.dirty:
            return self.raw
        return self.handler.encode(self._properties, self.code, self._tag_id)

    def state(self) -> Tuple[Any, ...]:
        return (self.code, self._properties, self.dirty)

    def set_state(self, state: Tuple[Any, ...]) -> None:
        self.code, self._properties, self.dirty = state


def _contains(properties: Mapping[str, Any], match: Mapping[str, Any]) -> bool:
    for key, wanted in match.items():
        value = properties.get(key)
        if isinstance(wanted, Mapping) and isinstance(value, Mapping):
            if not _contains(value, wanted):
                return False
        elif value != wanted:
            return False
    return True


class TagStructure:
    """Header plus ordered tags of one movie, owned by a single pipeline run."""

    def __init__(
        self,
        header: SwfHeader,
        tags: List[TagRecord],
        source: Optional[bytes] = None,
    ) -> None:
        self.header = header
        self.tags = tags
        self.source = source
        self.header_dirty = False

    def __iter__(self):
        return iter(self.tags)

    def __len__(self) -> int:
        return len(self.tags)

    @property
    def is_dirty(self) -> bool:
        return self.header_dirty or any(tag.dirty for tag in self.tags)

    def set_frame_size(self, rect: Dict[str, int]) -> None:
        self.header = replace(self.header, frame_size=dict(rect))
        self.header_dirty = True

    def by_id(self, tag_id: int) -> Optional[TagRecord]:
        for tag in self.tags:
            if tag.tag_id == tag_id:
                return tag
        return None

    def find(self, kind: str, tag_id: int) -> TagRecord:
        """Find the definition with ``tag_id`` and check that it is a ``kind``."""
        tag = self.by_id(tag_id)
        if tag is None:
            raise TagReferenceError(f"No character with id {tag_id}", tag_id=tag_id)
        if tag.kind != kind:
            raise TypeMismatchError(
                f"Character {tag_id} is a {tag.kind}, not a {kind}", tag_id=tag_id
            )
        return tag

    def find_singleton(self, kind: str) -> TagRecord:
        matches = [tag for tag in self.tags if tag.kind == kind]
        if not matches:
            raise TagReferenceError(f"Movie has no {kind}")
        if len(matches) > 1:
            raise TagReferenceError(f"Movie has {len(matches)} {kind} tags; expected one")
        return matches[0]

    def find_instances(self, kind: str, match: Optional[Mapping[str, Any]] = None) -> List[TagRecord]:
        """Top-level ``kind`` tags whose properties contain every value in ``match``."""
        found = [
            tag
            for tag in self.tags
            if tag.kind == kind and (not match or _contains(tag.properties, match))
        ]
        if not found:
            picked = f" matching {dict(match)}" if match else ""
            raise TagReferenceError(f"Movie has no {kind}{picked}")
        return found

    def snapshot(self) -> Tuple[Any, ...]:
        return (
            self.header,
            self.header_dirty,
            list(self.tags),
            [tag.state() for tag in self.tags],
        )

    def restore(self, snapshot: Tuple[Any, ...]) -> None:
        self.header, self.header_dirty, tags, states = snapshot
        self.tags = list(tags)
        for tag, state in zip(self.tags, states):
            tag.set_state(state)
