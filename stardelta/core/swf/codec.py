"""
SWF container codec.

``decode_swf`` turns movie bytes into a :class:`TagStructure`; ``encode_swf``
turns it back. Tag bodies are decoded lazily and untouched tags are written
back from their raw bytes, so a structure nobody modified encodes to the exact
bytes it was decoded from.
"""

from __future__ import annotations

import lzma
import struct
import zlib
from typing import Optional

from ..errors import CodecError
from ..logger import get_logger
from .bits import BitReader, BitWriter
from .handlers import handler_for_code
from .records import read_rect, write_rect
from .tags import SwfHeader, TagRecord, TagStructure, read_tag_stream, write_tag

log = get_logger(__name__)

__all__ = ["decode_swf", "encode_swf", "make_tag", "SIGNATURES"]

SIGNATURES = {"none": "FWS", "zlib": "CWS", "lzma": "ZWS"}

# lc=3, lp=0, pb=2 packed the way LZMA stores them in its properties byte.
_LZMA_LC, _LZMA_LP, _LZMA_PB = 3, 0, 2
_LZMA_DICT_SIZE = 1 << 20


def make_tag(code: int, raw: bytes = b"", long_header: bool = False) -> TagRecord:
    return TagRecord(code, raw, long_header=long_header, handler=handler_for_code(code))


def _lzma_filter(props: bytes) -> dict:
    d = props[0]
    if d >= 9 * 5 * 5:
        raise CodecError("Invalid LZMA properties in ZWS header")
    lc = d % 9
    d //= 9
    return {
        "id": lzma.FILTER_LZMA1,
        "lc": lc,
        "lp": d % 5,
        "pb": d // 5,
        "dict_size": max(struct.unpack_from("<I", props, 1)[0], 4096),
    }


def _decompress(signature: str, data: bytes) -> bytes:
    if signature == "FWS":
        return data[8:]
    if signature == "CWS":
        try:
            return zlib.decompressobj().decompress(data[8:])
        except zlib.error as exc:
            raise CodecError(f"Corrupt zlib stream in CWS movie: {exc}") from exc
    if len(data) < 17:
        raise CodecError("Truncated ZWS header")
    compressed_length = struct.unpack_from("<I", data, 8)[0]
    payload = data[17 : 17 + compressed_length] if compressed_length else data[17:]
    try:
        decompressor = lzma.LZMADecompressor(
            format=lzma.FORMAT_RAW, filters=[_lzma_filter(data[12:17])]
        )
        return decompressor.decompress(payload)
    except lzma.LZMAError as exc:
        raise CodecError(f"Corrupt LZMA stream in ZWS movie: {exc}") from exc


def decode_swf(data: bytes) -> TagStructure:
    if len(data) < 8:
        raise CodecError("File too short to be a SWF movie")
    signature = data[:3].decode("latin-1")
    if signature not in SIGNATURES.values():
        raise CodecError(f"Not a SWF movie (signature {signature!r})")
    version = data[3]
    file_length = struct.unpack_from("<I", data, 4)[0]

    body = _decompress(signature, data)
    expected = file_length - 8
    if len(body) < expected:
        log.warning(
            f"[SWF] Movie declares {file_length} bytes but only {len(body) + 8} are present"
        )
    elif expected > 0:
        body = body[:expected]

    r = BitReader(body)
    frame_size = read_rect(r)
    frame_rate = r.read_u16() / 256.0
    frame_count = r.read_u16()
    header = SwfHeader(
        signature=signature,
        version=version,
        frame_size=frame_size,
        frame_rate=frame_rate,
        frame_count=frame_count,
    )
    tags = [make_tag(code, raw, long_header) for code, raw, long_header in read_tag_stream(body, r.pos)]
    log.debug(f"[SWF] Decoded {signature} v{version} movie with {len(tags)} tags")
    return TagStructure(header, tags, source=bytes(data))


def encode_swf(structure: TagStructure, compression: Optional[str] = None) -> bytes:
    """Encode ``structure``; ``compression`` overrides the header signature."""
    header = structure.header
    signature = SIGNATURES.get(compression, header.signature) if compression else header.signature
    if signature not in SIGNATURES.values():
        raise CodecError(f"Unknown compression {compression!r}")

    if (
        structure.source is not None
        and not structure.is_dirty
        and signature == header.signature
    ):
        return structure.source

    w = BitWriter()
    write_rect(w, header.frame_size, "frameSize")
    w.write_u16(int(round(header.frame_rate * 256.0)))
    w.write_u16(header.frame_count)
    for tag in structure.tags:
        write_tag(w, tag.code, tag.body(), tag.long_header)
    body = w.getvalue()

    prefix = signature.encode("ascii") + bytes([header.version]) + struct.pack("<I", len(body) + 8)
    if signature == "FWS":
        return prefix + body
    if signature == "CWS":
        return prefix + zlib.compress(body)

    lzma_filter = {
        "id": lzma.FILTER_LZMA1,
        "lc": _LZMA_LC,
        "lp": _LZMA_LP,
        "pb": _LZMA_PB,
        "dict_size": _LZMA_DICT_SIZE,
    }
    compressed = lzma.compress(body, format=lzma.FORMAT_RAW, filters=[lzma_filter])
    props = bytes([(_LZMA_PB * 5 + _LZMA_LP) * 9 + _LZMA_LC]) + struct.pack("<I", _LZMA_DICT_SIZE)
    return prefix + struct.pack("<I", len(compressed)) + props + compressed
