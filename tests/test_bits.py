import pytest

from stardelta.core.errors import CodecError
from stardelta.core.swf.bits import BitReader, BitWriter, signed_bits, unsigned_bits


def test_bit_counts():
    assert unsigned_bits(0) == 0
    assert unsigned_bits(1, 5) == 3
    assert signed_bits(0, 0) == 0
    assert signed_bits(-1) == 1
    assert signed_bits(1) == 2
    assert signed_bits(-200, 100) == 9


def test_mixed_bit_and_byte_fields():
    w = BitWriter()
    w.write_ub(5, 17)
    w.write_sb(7, -12)
    w.write_bit(True)
    w.write_u16(0xBEEF)
    w.write_encoded_u32(300)
    w.write_string("abc")
    data = w.getvalue()

    r = BitReader(data)
    assert r.read_ub(5) == 17
    assert r.read_sb(7) == -12
    assert r.read_bit() is True
    assert r.read_u16() == 0xBEEF
    assert r.read_encoded_u32() == 300
    assert r.read_string() == "abc"
    assert r.remaining() == 0


def test_writer_rejects_values_that_do_not_fit():
    w = BitWriter()
    with pytest.raises(CodecError):
        w.write_ub(3, 8)
    with pytest.raises(CodecError):
        w.write_sb(4, 8)
    with pytest.raises(CodecError):
        w.write_u16(70000)


def test_reader_reports_truncation():
    r = BitReader(b"\x01")
    with pytest.raises(CodecError):
        r.read_u16()
    with pytest.raises(CodecError):
        BitReader(b"abc").read_string()
