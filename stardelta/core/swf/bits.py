"""Bit-level reader and writer for SWF records.

SWF packs most geometry MSB-first at bit granularity, while plain integers are
little-endian and byte aligned. Any byte-level read or write aligns first.
"""

from __future__ import annotations

import struct

from ..errors import CodecError


def unsigned_bits(*values: int) -> int:
    """Number of bits needed to store every value as an unsigned field."""
    return max((int(v).bit_length() for v in values), default=0)


def signed_bits(*values: int) -> int:
    """Number of bits needed to store every value as a signed field."""
    needed = 0
    for v in values:
        v = int(v)
        if v == 0:
            continue
        magnitude = v if v > 0 else ~v
        needed = max(needed, magnitude.bit_length() + 1)
    return needed


def fixed_16_16(value: float) -> int:
    return int(round(float(value) * 65536.0))


class BitReader:
    def __init__(self, data: bytes, pos: int = 0) -> None:
        self._data = data
        self._pos = pos
        self._current = 0
        self._bits_left = 0

    @property
    def pos(self) -> int:
        return self._pos

    def remaining(self) -> int:
        self.align()
        return len(self._data) - self._pos

    def align(self) -> None:
        self._bits_left = 0

    def read_ub(self, nbits: int) -> int:
        value = 0
        for _ in range(nbits):
            if self._bits_left == 0:
                if self._pos >= len(self._data):
                    raise CodecError("Unexpected end of data while reading bits")
                self._current = self._data[self._pos]
                self._pos += 1
                self._bits_left = 8
            self._bits_left -= 1
            value = (value << 1) | ((self._current >> self._bits_left) & 1)
        return value

    def read_sb(self, nbits: int) -> int:
        if nbits == 0:
            return 0
        value = self.read_ub(nbits)
        if value & (1 << (nbits - 1)):
            value -= 1 << nbits
        return value

    def read_fb(self, nbits: int) -> float:
        return self.read_sb(nbits) / 65536.0

    def read_bit(self) -> bool:
        return bool(self.read_ub(1))

    def _unpack(self, fmt: str, size: int):
        self.align()
        if self._pos + size > len(self._data):
            raise CodecError("Unexpected end of data")
        value = struct.unpack_from(fmt, self._data, self._pos)[0]
        self._pos += size
        return value

    def read_u8(self) -> int:
        return self._unpack("<B", 1)

    def read_u16(self) -> int:
        return self._unpack("<H", 2)

    def read_s16(self) -> int:
        return self._unpack("<h", 2)

    def read_u32(self) -> int:
        return self._unpack("<I", 4)

    def read_encoded_u32(self) -> int:
        value = 0
        for shift in range(0, 35, 7):
            byte = self.read_u8()
            value |= (byte & 0x7F) << shift
            if not byte & 0x80:
                break
        return value & 0xFFFFFFFF

    def read_bytes(self, count: int) -> bytes:
        self.align()
        if count < 0 or self._pos + count > len(self._data):
            raise CodecError("Unexpected end of data")
        chunk = self._data[self._pos : self._pos + count]
        self._pos += count
        return bytes(chunk)

    def read_rest(self) -> bytes:
        return self.read_bytes(len(self._data) - self._pos)

    def read_string(self) -> str:
        self.align()
        end = self._data.find(b"\x00", self._pos)
        if end < 0:
            raise CodecError("Unterminated string")
        raw = self._data[self._pos : end]
        self._pos = end + 1
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            # Pre-SWF6 content is stored in the local code page.
            return raw.decode("latin-1")


class BitWriter:
    def __init__(self) -> None:
        self._buf = bytearray()
        self._current = 0
        self._bit_count = 0

    def align(self) -> None:
        if self._bit_count:
            self._buf.append((self._current << (8 - self._bit_count)) & 0xFF)
            self._current = 0
            self._bit_count = 0

    def write_ub(self, nbits: int, value: int) -> None:
        value = int(value)
        if value < 0 or value >> nbits:
            raise CodecError(f"Value {value} does not fit in {nbits} unsigned bits")
        for shift in range(nbits - 1, -1, -1):
            self._current = (self._current << 1) | ((value >> shift) & 1)
            self._bit_count += 1
            if self._bit_count == 8:
                self._buf.append(self._current)
                self._current = 0
                self._bit_count = 0

    def write_sb(self, nbits: int, value: int) -> None:
        value = int(value)
        if nbits == 0:
            if value != 0:
                raise CodecError(f"Value {value} does not fit in 0 bits")
            return
        low, high = -(1 << (nbits - 1)), (1 << (nbits - 1)) - 1
        if not low <= value <= high:
            raise CodecError(f"Value {value} does not fit in {nbits} signed bits")
        self.write_ub(nbits, value & ((1 << nbits) - 1))

    def write_fb(self, nbits: int, value: float) -> None:
        self.write_sb(nbits, fixed_16_16(value))

    def write_bit(self, flag: bool) -> None:
        self.write_ub(1, 1 if flag else 0)

    def _pack(self, fmt: str, value: int) -> None:
        self.align()
        try:
            self._buf.extend(struct.pack(fmt, value))
        except struct.error as exc:
            raise CodecError(f"Value {value!r} out of range: {exc}") from exc

    def write_u8(self, value: int) -> None:
        self._pack("<B", value)

    def write_u16(self, value: int) -> None:
        self._pack("<H", value)

    def write_s16(self, value: int) -> None:
        self._pack("<h", value)

    def write_u32(self, value: int) -> None:
        self._pack("<I", value)

    def write_encoded_u32(self, value: int) -> None:
        value = int(value)
        if not 0 <= value <= 0xFFFFFFFF:
            raise CodecError(f"Value {value} out of EncodedU32 range")
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self.write_u8(byte | 0x80)
            else:
                self.write_u8(byte)
                break

    def write_bytes(self, data: bytes) -> None:
        self.align()
        self._buf.extend(data)

    def write_string(self, text: str) -> None:
        encoded = text.encode("utf-8")
        if b"\x00" in encoded:
            raise CodecError("Strings may not contain NUL characters")
        self.write_bytes(encoded + b"\x00")

    def getvalue(self) -> bytes:
        self.align()
        return bytes(self._buf)
