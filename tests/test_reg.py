import zlib

import pytest

from adc64.layers.mlink import (
    MLINK_DEVICE_ADDR,
    MLINK_HOST_ADDR,
    MLinkFrame,
    MLinkType,
)
from adc64.layers.reg import (
    Reg,
    RegOp,
    decode_reg_ops,
    encode_reg_ops,
    reg_ops_to_bytes,
)


def test_reg_hex_pads_to_four_digits():
    assert Reg(addr=0x40, value=0x8000).hex() == ("0x0040", "0x8000")


def test_reg_str():
    assert str(Reg(addr=0x4C, value=0x1)) == "addr: 0x004c value: 0x0001"


def test_regop_str():
    op = RegOp(reg=Reg(addr=0x42, value=0x10), read=True)
    assert str(op) == "read: true addr: 0x0042 value: 0x0010"


def test_from_hex_parses_hex_strings():
    assert Reg.from_hex("0x0043", "0x0004") == Reg(addr=0x43, value=0x4)


def test_from_hex_detects_bases():
    assert Reg.from_hex("64", "0b101") == Reg(addr=64, value=5)


def test_from_hex_leading_zero_is_octal():
    assert Reg.from_hex("010", "0o17") == Reg(addr=8, value=15)


@pytest.mark.parametrize(
    "addr,value",
    [("0x10000", "0x0"), ("0x0", "zz"), ("", "0x1"), ("-1", "0x1"), ("0x40", "08")],
)
def test_from_hex_rejects_bad_input(addr, value):
    with pytest.raises(ValueError):
        Reg.from_hex(addr, value)


def test_hex_round_trip():
    reg = Reg(addr=0x1000, value=0xBEEF)
    assert Reg.from_hex(*reg.hex()) == reg


def test_encode_read_op_sets_top_bit_and_ignores_value():
    data = encode_reg_ops([RegOp(reg=Reg(addr=0x42, value=0x1234), read=True)])
    assert len(data) == 4
    assert data[3] & 0x80
    assert data[0:2] == b"\x00\x00"


def test_encode_decode_round_trip():
    ops = [
        RegOp(reg=Reg(addr=0x40, value=0x8000)),
        RegOp(reg=Reg(addr=0x140, value=0), read=True),
        RegOp(reg=Reg(addr=0x41, value=0xFFFF)),
    ]
    decoded = decode_reg_ops(encode_reg_ops(ops))
    assert decoded == ops


def test_encode_masks_address_to_fifteen_bits():
    decoded = decode_reg_ops(encode_reg_ops([RegOp(reg=Reg(addr=0x8040, value=7))]))
    assert decoded == [RegOp(reg=Reg(addr=0x0040, value=7))]


def test_decode_ignores_trailing_partial_word():
    ops = [RegOp(reg=Reg(addr=0x43, value=2))]
    assert decode_reg_ops(encode_reg_ops(ops) + b"\x01\x02") == ops


def test_decode_empty():
    assert decode_reg_ops(b"") == []


def test_reg_ops_to_bytes_frame():
    ops = [
        RegOp(reg=Reg(addr=0x40, value=0)),
        RegOp(reg=Reg(addr=0x40, value=0x8000)),
    ]
    raw = reg_ops_to_bytes(ops, seq=7)
    assert len(raw) == (4 + len(ops)) * 4
    frame = MLinkFrame.decode(raw)
    assert frame.type == MLinkType.REG_REQUEST
    assert frame.seq == 7
    assert frame.length == 4 + len(ops)
    assert frame.src == MLINK_HOST_ADDR
    assert frame.dst == MLINK_DEVICE_ADDR
    assert frame.crc == zlib.crc32(raw[:-4])
    assert decode_reg_ops(frame.payload) == ops


def test_reg_ops_to_bytes_starts_with_type_and_sync():
    raw = reg_ops_to_bytes([RegOp(reg=Reg(addr=1, value=1))], seq=0)
    assert raw[:4] == b"\x01\x01\x50\x2a"