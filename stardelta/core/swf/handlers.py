"""
Handlers for the tag kinds that patch documents may edit.

Each handler owns the decode, encode and merge of one tag kind. The set is
closed: a tag kind without a handler here cannot be addressed by a
modification. Handlers are looked up by patch ``tag`` name or by tag code.
"""

from __future__ import annotations

import base64
import binascii
import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import CodecError, SchemaError
from ..logger import get_logger
from .bits import BitReader, BitWriter
from .records import (
    bool_field,
    check_keys,
    int_field,
    list_field,
    read_color,
    read_cxform,
    read_filters,
    read_matrix,
    read_rect,
    read_shape,
    str_field,
    write_color,
    write_cxform,
    write_filters,
    write_matrix,
    write_rect,
    write_shape,
)
from .tags import read_tag_stream, write_tag

log = get_logger(__name__)

__all__ = [
    "TagHandler",
    "ShapeHandler",
    "get_handler",
    "handler_for_code",
    "handler_kinds",
    "deep_merge",
    "encode_b64",
    "decode_b64",
]


def encode_b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_b64(value: Any, where: str) -> bytes:
    if not isinstance(value, str):
        raise CodecError(f"{where}: expected base64 text")
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise CodecError(f"{where}: invalid base64 data") from exc


def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``patch`` onto a copy of ``base``.

    Nested objects merge key by key; everything else (lists included) is
    replaced wholesale.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class TagHandler:
    """Base class for an editable tag kind."""

    kind: str = ""
    codes: tuple = ()
    singleton: bool = False
    # Display-list and code tags: no character id, edits address every
    # instance or those picked by a property match.
    instanced: bool = False

    def keys(self, code: int) -> Iterable[str]:
        raise NotImplementedError

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        raise NotImplementedError

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        raise NotImplementedError

    def encode(self, props: Mapping[str, Any], code: int, tag_id: Optional[int]) -> bytes:
        check_keys(props, self.keys(code), self.kind)
        w = BitWriter()
        if not (self.singleton or self.instanced):
            if tag_id is None:
                raise CodecError(f"{self.kind} requires a character id")
            w.write_u16(tag_id)
        self.write(w, props, code)
        return w.getvalue()

    def validate(self, props: Mapping[str, Any], code: int, tag_id: Optional[int]) -> None:
        """Trial-encode ``props``; malformed values surface as SchemaError."""
        try:
            self.encode(props, code, tag_id)
        except CodecError as exc:
            raise SchemaError(f"Invalid {self.kind} properties: {exc.message}") from exc

    def merge(
        self,
        current: Mapping[str, Any],
        patch: Mapping[str, Any],
        code: int,
        tag_id: Optional[int],
    ) -> Dict[str, Any]:
        if not isinstance(patch, Mapping):
            raise SchemaError(f"{self.kind} properties must be an object")
        allowed = set(self.keys(code))
        unknown = sorted(set(patch) - allowed)
        if unknown:
            raise SchemaError(
                f"Unknown {self.kind} propert{'y' if len(unknown) == 1 else 'ies'}: "
                f"{', '.join(unknown)}"
            )
        merged = deep_merge(current, patch)
        self.validate(merged, code, tag_id)
        log.debug(f"[SWF] Merged {', '.join(patch)} into {self.kind}")
        return merged


# ---------------------------------------------------------------------------
# Character definitions


class ShapeHandler(TagHandler):
    kind = "DefineShapeTag"
    codes = (2, 22, 32, 83)

    VERSIONS = {2: 1, 22: 2, 32: 3, 83: 4}
    BASE_KEYS = ("bounds", "fillStyles", "lineStyles", "records")
    SHAPE4_KEYS = ("edgeBounds", "usesFillWindingRule", "usesNonScalingStrokes", "usesScalingStrokes")

    def keys(self, code: int) -> Iterable[str]:
        if code == 83:
            return self.BASE_KEYS + self.SHAPE4_KEYS
        return self.BASE_KEYS

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        r.read_u16()
        props: Dict[str, Any] = {"bounds": read_rect(r)}
        if code == 83:
            props["edgeBounds"] = read_rect(r)
            r.read_ub(5)
            props["usesFillWindingRule"] = r.read_bit()
            props["usesNonScalingStrokes"] = r.read_bit()
            props["usesScalingStrokes"] = r.read_bit()
        props.update(read_shape(r, self.VERSIONS[code]))
        return props

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        write_rect(w, props.get("bounds"), "bounds")
        if code == 83:
            write_rect(w, props.get("edgeBounds", props.get("bounds")), "edgeBounds")
            w.write_ub(5, 0)
            w.write_bit(bool_field(props, "usesFillWindingRule", self.kind, default=False))
            w.write_bit(bool_field(props, "usesNonScalingStrokes", self.kind, default=False))
            w.write_bit(bool_field(props, "usesScalingStrokes", self.kind, default=False))
        write_shape(w, props, self.VERSIONS[code], "shape")


class EditTextHandler(TagHandler):
    kind = "DefineDynamicTextTag"
    codes = (37,)

    FLAGS = (
        "wordWrap",
        "multiline",
        "password",
        "readOnly",
        "autoSize",
        "noSelect",
        "border",
        "wasStatic",
        "html",
        "useOutlines",
    )
    ALIGNMENTS = ["left", "right", "center", "justify"]
    LAYOUT_KEYS = ("align", "leftMargin", "rightMargin", "indent", "leading")

    def keys(self, code: int) -> Iterable[str]:
        return (
            ("bounds",)
            + self.FLAGS
            + ("fontId", "fontClass", "fontHeight", "color", "maxLength", "layout", "variableName", "text")
        )

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        r.read_u16()
        props: Dict[str, Any] = {"bounds": read_rect(r)}
        has_text = r.read_bit()
        props["wordWrap"] = r.read_bit()
        props["multiline"] = r.read_bit()
        props["password"] = r.read_bit()
        props["readOnly"] = r.read_bit()
        has_color = r.read_bit()
        has_max_length = r.read_bit()
        has_font = r.read_bit()
        has_font_class = r.read_bit()
        props["autoSize"] = r.read_bit()
        has_layout = r.read_bit()
        props["noSelect"] = r.read_bit()
        props["border"] = r.read_bit()
        props["wasStatic"] = r.read_bit()
        props["html"] = r.read_bit()
        props["useOutlines"] = r.read_bit()
        props["fontId"] = r.read_u16() if has_font else None
        props["fontClass"] = r.read_string() if has_font_class else None
        props["fontHeight"] = r.read_u16() if has_font or has_font_class else None
        props["color"] = read_color(r, True) if has_color else None
        props["maxLength"] = r.read_u16() if has_max_length else None
        if has_layout:
            align = r.read_u8()
            props["layout"] = {
                "align": self.ALIGNMENTS[align] if align < 4 else "left",
                "leftMargin": r.read_u16(),
                "rightMargin": r.read_u16(),
                "indent": r.read_u16(),
                "leading": r.read_s16(),
            }
        else:
            props["layout"] = None
        props["variableName"] = r.read_string()
        props["text"] = r.read_string() if has_text else None
        return props

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        where = self.kind
        write_rect(w, props.get("bounds"), "bounds")
        flags = {name: bool_field(props, name, where, default=False) for name in self.FLAGS}
        font_id = props.get("fontId")
        font_class = props.get("fontClass")
        if font_id is not None and font_class is not None:
            raise CodecError(f"{where}: 'fontId' and 'fontClass' are mutually exclusive")
        has_font_ref = font_id is not None or font_class is not None
        if has_font_ref and props.get("fontHeight") is None:
            raise CodecError(f"{where}: 'fontHeight' is required with a font")
        layout = props.get("layout")
        w.write_bit(props.get("text") is not None)
        w.write_bit(flags["wordWrap"])
        w.write_bit(flags["multiline"])
        w.write_bit(flags["password"])
        w.write_bit(flags["readOnly"])
        w.write_bit(props.get("color") is not None)
        w.write_bit(props.get("maxLength") is not None)
        w.write_bit(font_id is not None)
        w.write_bit(font_class is not None)
        w.write_bit(flags["autoSize"])
        w.write_bit(layout is not None)
        w.write_bit(flags["noSelect"])
        w.write_bit(flags["border"])
        w.write_bit(flags["wasStatic"])
        w.write_bit(flags["html"])
        w.write_bit(flags["useOutlines"])
        if font_id is not None:
            w.write_u16(int_field(props, "fontId", where, lo=0, hi=0xFFFF))
        if font_class is not None:
            w.write_string(str_field(props, "fontClass", where))
        if has_font_ref:
            w.write_u16(int_field(props, "fontHeight", where, lo=0, hi=0xFFFF))
        if props.get("color") is not None:
            write_color(w, props["color"], True, f"{where}.color")
        if props.get("maxLength") is not None:
            w.write_u16(int_field(props, "maxLength", where, lo=0, hi=0xFFFF))
        if layout is not None:
            lwhere = f"{where}.layout"
            check_keys(layout, self.LAYOUT_KEYS, lwhere)
            align = str_field(layout, "align", lwhere, default="left")
            if align not in self.ALIGNMENTS:
                raise CodecError(f"{lwhere}: align must be one of {', '.join(self.ALIGNMENTS)}")
            w.write_u8(self.ALIGNMENTS.index(align))
            w.write_u16(int_field(layout, "leftMargin", lwhere, lo=0, hi=0xFFFF, default=0))
            w.write_u16(int_field(layout, "rightMargin", lwhere, lo=0, hi=0xFFFF, default=0))
            w.write_u16(int_field(layout, "indent", lwhere, lo=0, hi=0xFFFF, default=0))
            w.write_s16(int_field(layout, "leading", lwhere, lo=-0x8000, hi=0x7FFF, default=0))
        w.write_string(str_field(props, "variableName", where, default=""))
        if props.get("text") is not None:
            w.write_string(str_field(props, "text", where))


class BinaryDataHandler(TagHandler):
    kind = "DefineBinaryDataTag"
    codes = (87,)

    def keys(self, code: int) -> Iterable[str]:
        return ("data",)

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        r.read_u16()
        r.read_u32()
        return {"data": encode_b64(r.read_rest())}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        w.write_u32(0)
        w.write_bytes(decode_b64(props.get("data", ""), f"{self.kind}.data"))


class SpriteHandler(TagHandler):
    kind = "DefineSpriteTag"
    codes = (39,)

    def keys(self, code: int) -> Iterable[str]:
        return ("frameCount", "tags")

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        r.read_u16()
        frame_count = r.read_u16()
        tags: List[Dict[str, Any]] = []
        for tag_code, body, long_header in read_tag_stream(raw, r.pos):
            entry: Dict[str, Any] = {"code": tag_code, "data": encode_b64(body)}
            if long_header:
                entry["longHeader"] = True
            tags.append(entry)
        return {"frameCount": frame_count, "tags": tags}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        w.write_u16(int_field(props, "frameCount", self.kind, lo=0, hi=0xFFFF))
        for i, entry in enumerate(list_field(props, "tags", self.kind)):
            where = f"{self.kind}.tags[{i}]"
            check_keys(entry, ("code", "data", "longHeader"), where)
            write_tag(
                w,
                int_field(entry, "code", where, lo=0, hi=1023),
                decode_b64(entry.get("data", ""), where),
                bool_field(entry, "longHeader", where, default=False),
            )


# ---------------------------------------------------------------------------
# Movie-wide singletons


class FileAttributesHandler(TagHandler):
    kind = "FileAttributesTag"
    codes = (69,)
    singleton = True

    # MSB-first order of the first flag byte; bit 7 is reserved.
    FLAGS = (
        "useDirectBlit",
        "useGPU",
        "hasMetadata",
        "actionScript3",
        "noCrossDomainCache",
        "swfRelativeUrls",
        "useNetwork",
    )

    def keys(self, code: int) -> Iterable[str]:
        return self.FLAGS

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        r.read_bit()
        return {name: r.read_bit() for name in self.FLAGS}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        w.write_bit(False)
        for name in self.FLAGS:
            w.write_bit(bool_field(props, name, self.kind, default=False))
        w.write_ub(24, 0)


class BackgroundColorHandler(TagHandler):
    kind = "SetBackgroundColorTag"
    codes = (9,)
    singleton = True

    def keys(self, code: int) -> Iterable[str]:
        return ("backgroundColor",)

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        color = read_color(BitReader(raw), False)
        del color["a"]
        return {"backgroundColor": color}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        write_color(w, props.get("backgroundColor"), False, "backgroundColor")


class SymbolClassHandler(TagHandler):
    kind = "SymbolClassTag"
    codes = (76,)
    singleton = True

    def keys(self, code: int) -> Iterable[str]:
        return ("symbols",)

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        symbols = []
        for _ in range(r.read_u16()):
            tag_id = r.read_u16()
            symbols.append({"id": tag_id, "name": r.read_string()})
        return {"symbols": symbols}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        symbols = list_field(props, "symbols", self.kind)
        w.write_u16(len(symbols))
        for i, symbol in enumerate(symbols):
            where = f"symbols[{i}]"
            check_keys(symbol, ("id", "name"), where)
            w.write_u16(int_field(symbol, "id", where, lo=0, hi=0xFFFF))
            w.write_string(str_field(symbol, "name", where))


class SceneLabelHandler(TagHandler):
    kind = "DefineSceneAndFrameLabelDataTag"
    codes = (86,)
    singleton = True

    def keys(self, code: int) -> Iterable[str]:
        return ("scenes", "labels")

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        scenes = []
        for _ in range(r.read_encoded_u32()):
            offset = r.read_encoded_u32()
            scenes.append({"offset": offset, "name": r.read_string()})
        labels = []
        for _ in range(r.read_encoded_u32()):
            frame = r.read_encoded_u32()
            labels.append({"frame": frame, "name": r.read_string()})
        return {"scenes": scenes, "labels": labels}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        for key, number_key in (("scenes", "offset"), ("labels", "frame")):
            items = list_field(props, key, self.kind, default=[])
            w.write_encoded_u32(len(items))
            for i, item in enumerate(items):
                where = f"{key}[{i}]"
                check_keys(item, (number_key, "name"), where)
                w.write_encoded_u32(int_field(item, number_key, where, lo=0, hi=0xFFFFFFFF))
                w.write_string(str_field(item, "name", where))


# ---------------------------------------------------------------------------
# Display list, timeline and code


def _optional_u16(props: Mapping[str, Any], key: str, where: str) -> Optional[int]:
    if props.get(key) is None:
        return None
    return int_field(props, key, where, lo=0, hi=0xFFFF)


def _optional_u8(props: Mapping[str, Any], key: str, where: str) -> Optional[int]:
    if props.get(key) is None:
        return None
    return int_field(props, key, where, lo=0, hi=0xFF)


class PlaceObjectHandler(TagHandler):
    """PlaceObject, PlaceObject2 and PlaceObject3.

    Optional fields of the later versions decode as None when the record
    leaves them out; giving one a value writes it. Filters keep their type
    name with an opaque base64 body, and clip actions stay base64.
    """

    kind = "PlaceObjectTag"
    codes = (4, 26, 70)
    instanced = True

    KEYS_V1 = ("characterId", "depth", "matrix", "colorTransform")
    KEYS_V2 = (
        "move",
        "depth",
        "characterId",
        "matrix",
        "colorTransform",
        "ratio",
        "name",
        "clipDepth",
        "clipActions",
    )
    KEYS_V3 = KEYS_V2 + (
        "className",
        "hasImage",
        "filters",
        "blendMode",
        "bitmapCache",
        "visible",
        "backgroundColor",
    )

    def keys(self, code: int) -> Iterable[str]:
        return {4: self.KEYS_V1, 26: self.KEYS_V2}.get(code, self.KEYS_V3)

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        if code == 4:
            props: Dict[str, Any] = {"characterId": r.read_u16(), "depth": r.read_u16()}
            props["matrix"] = read_matrix(r)
            props["colorTransform"] = read_cxform(r, False) if r.remaining() else None
            return props

        flags = r.read_u8()
        extra = r.read_u8() if code == 70 else 0
        props = {"move": bool(flags & 0x01), "depth": r.read_u16()}
        if code == 70:
            has_image = bool(extra & 0x10)
            props["hasImage"] = has_image
            named = extra & 0x08 or (has_image and flags & 0x02)
            props["className"] = r.read_string() if named else None
        props["characterId"] = r.read_u16() if flags & 0x02 else None
        props["matrix"] = read_matrix(r) if flags & 0x04 else None
        props["colorTransform"] = read_cxform(r, True) if flags & 0x08 else None
        props["ratio"] = r.read_u16() if flags & 0x10 else None
        props["name"] = r.read_string() if flags & 0x20 else None
        props["clipDepth"] = r.read_u16() if flags & 0x40 else None
        if code == 70:
            props["filters"] = None
            if extra & 0x01:
                props["filters"] = [
                    {"type": name, "data": encode_b64(body)} for name, body in read_filters(r)
                ]
            props["blendMode"] = r.read_u8() if extra & 0x02 else None
            props["bitmapCache"] = r.read_u8() if extra & 0x04 else None
            props["visible"] = r.read_u8() if extra & 0x20 else None
            props["backgroundColor"] = read_color(r, True) if extra & 0x40 else None
        props["clipActions"] = encode_b64(r.read_rest()) if flags & 0x80 else None
        return props

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        where = self.kind
        if code == 4:
            w.write_u16(int_field(props, "characterId", where, lo=0, hi=0xFFFF))
            w.write_u16(int_field(props, "depth", where, lo=0, hi=0xFFFF))
            write_matrix(w, props.get("matrix"))
            if props.get("colorTransform") is not None:
                write_cxform(w, props["colorTransform"], False)
            return

        depth = int_field(props, "depth", where, lo=0, hi=0xFFFF)
        character = _optional_u16(props, "characterId", where)
        matrix = props.get("matrix")
        cxform = props.get("colorTransform")
        ratio = _optional_u16(props, "ratio", where)
        name = None if props.get("name") is None else str_field(props, "name", where)
        clip_depth = _optional_u16(props, "clipDepth", where)
        clip_actions = props.get("clipActions")
        flags = (
            (0x80 if clip_actions is not None else 0)
            | (0x40 if clip_depth is not None else 0)
            | (0x20 if name is not None else 0)
            | (0x10 if ratio is not None else 0)
            | (0x08 if cxform is not None else 0)
            | (0x04 if matrix is not None else 0)
            | (0x02 if character is not None else 0)
            | (0x01 if bool_field(props, "move", where, default=False) else 0)
        )
        w.write_u8(flags)

        if code == 70:
            has_image = bool_field(props, "hasImage", where, default=False)
            class_name = None
            if props.get("className") is not None:
                class_name = str_field(props, "className", where)
            # With an image and a character the class name is always present.
            implied = has_image and character is not None
            if implied and class_name is None:
                raise CodecError(f"{where}: 'className' is required when 'hasImage' places a character")
            filters = props.get("filters")
            blend_mode = _optional_u8(props, "blendMode", where)
            bitmap_cache = _optional_u8(props, "bitmapCache", where)
            visible = _optional_u8(props, "visible", where)
            background = props.get("backgroundColor")
            w.write_u8(
                (0x40 if background is not None else 0)
                | (0x20 if visible is not None else 0)
                | (0x10 if has_image else 0)
                | (0x08 if class_name is not None and not implied else 0)
                | (0x04 if bitmap_cache is not None else 0)
                | (0x02 if blend_mode is not None else 0)
                | (0x01 if filters is not None else 0)
            )

        w.write_u16(depth)
        if code == 70 and class_name is not None:
            w.write_string(class_name)
        if character is not None:
            w.write_u16(character)
        if matrix is not None:
            write_matrix(w, matrix)
        if cxform is not None:
            write_cxform(w, cxform, True)
        if ratio is not None:
            w.write_u16(ratio)
        if name is not None:
            w.write_string(name)
        if clip_depth is not None:
            w.write_u16(clip_depth)
        if code == 70:
            if filters is not None:
                write_filters(w, self._filters(filters))
            if blend_mode is not None:
                w.write_u8(blend_mode)
            if bitmap_cache is not None:
                w.write_u8(bitmap_cache)
            if visible is not None:
                w.write_u8(visible)
            if background is not None:
                write_color(w, background, True, "backgroundColor")
        if clip_actions is not None:
            w.write_bytes(decode_b64(clip_actions, f"{where}.clipActions"))

    def _filters(self, filters: Any) -> List[tuple]:
        if not isinstance(filters, (list, tuple)):
            raise CodecError(f"{self.kind}: 'filters' must be a list")
        pairs = []
        for i, item in enumerate(filters):
            where = f"filters[{i}]"
            check_keys(item, ("type", "data"), where)
            pairs.append((str_field(item, "type", where), decode_b64(item.get("data"), f"{where}.data")))
        return pairs


class RemoveObjectHandler(TagHandler):
    kind = "RemoveObjectTag"
    codes = (5, 28)
    instanced = True

    def keys(self, code: int) -> Iterable[str]:
        return ("characterId", "depth") if code == 5 else ("depth",)

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        if code == 5:
            return {"characterId": r.read_u16(), "depth": r.read_u16()}
        return {"depth": r.read_u16()}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        if code == 5:
            w.write_u16(int_field(props, "characterId", self.kind, lo=0, hi=0xFFFF))
        w.write_u16(int_field(props, "depth", self.kind, lo=0, hi=0xFFFF))


class FrameLabelHandler(TagHandler):
    kind = "FrameLabelTag"
    codes = (43,)
    instanced = True

    def keys(self, code: int) -> Iterable[str]:
        return ("name", "anchor")

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        name = r.read_string()
        anchor = bool(r.read_u8()) if r.remaining() else False
        return {"name": name, "anchor": anchor}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        w.write_string(str_field(props, "name", self.kind))
        if bool_field(props, "anchor", self.kind, default=False):
            w.write_u8(1)


class DoAbcHandler(TagHandler):
    kind = "DoAbcTag"
    codes = (82,)
    instanced = True

    def keys(self, code: int) -> Iterable[str]:
        return ("flags", "name", "data")

    def decode(self, raw: bytes, code: int) -> Dict[str, Any]:
        r = BitReader(raw)
        flags = r.read_u32()
        name = r.read_string()
        return {"flags": flags, "name": name, "data": encode_b64(r.read_rest())}

    def write(self, w: BitWriter, props: Mapping[str, Any], code: int) -> None:
        w.write_u32(int_field(props, "flags", self.kind, lo=0, hi=0xFFFFFFFF, default=1))
        w.write_string(str_field(props, "name", self.kind, default=""))
        w.write_bytes(decode_b64(props.get("data", ""), f"{self.kind}.data"))


_HANDLERS: List[TagHandler] = [
    ShapeHandler(),
    EditTextHandler(),
    BinaryDataHandler(),
    SpriteHandler(),
    FileAttributesHandler(),
    BackgroundColorHandler(),
    SymbolClassHandler(),
    SceneLabelHandler(),
    PlaceObjectHandler(),
    RemoveObjectHandler(),
    FrameLabelHandler(),
    DoAbcHandler(),
]
_BY_KIND: Dict[str, TagHandler] = {h.kind: h for h in _HANDLERS}
_BY_CODE: Dict[int, TagHandler] = {code: h for h in _HANDLERS for code in h.codes}


def handler_kinds() -> List[str]:
    return [h.kind for h in _HANDLERS]


def get_handler(kind: str) -> TagHandler:
    """Handler for a patch ``tag`` name, or SchemaError for unsupported kinds."""
    handler = _BY_KIND.get(kind)
    if handler is None:
        raise SchemaError(
            f"Unsupported tag type '{kind}'. Supported: {', '.join(handler_kinds())}"
        )
    return handler


def handler_for_code(code: int) -> Optional[TagHandler]:
    return _BY_CODE.get(code)
