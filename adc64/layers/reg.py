"""Register read/write operations and their MLink request frames."""

from __future__ import annotations

import struct
import zlib
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from adc64 import log
from adc64.layers.mlink import (
    MLINK_DEVICE_ADDR,
    MLINK_HOST_ADDR,
    MLINK_SYNC,
    MLinkFrame,
    MLinkType,
)

_WORD = struct.Struct("<I")
_READ_BIT = 0x80000000
_ADDR_MASK = 0x7FFF


def _parse_uint16(text: str) -> int:
    """Parse an unsigned 16-bit integer, detecting the base from its prefix."""
    raw = text.strip()
    if not raw:
        raise ValueError(f"invalid syntax: {text!r}")
    lowered = raw.lower()
    try:
        if lowered.startswith("0x"):
            value = int(raw[2:], 16)
        elif lowered.startswith("0b"):
            value = int(raw[2:], 2)
        elif lowered.startswith("0o"):
            value = int(raw[2:], 8)
        elif len(raw) > 1 and raw.startswith("0"):
            value = int(raw[1:], 8)
        else:
            value = int(raw, 10)
    except ValueError as exc:
        raise ValueError(f"invalid syntax: {text!r}") from exc
    if raw[:1] in "+-" or lowered[2:3] in ("+", "-"):
        raise ValueError(f"invalid syntax: {text!r}")
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"value out of range: {text!r}")
    return value


@dataclass
class Reg:
    """A 16-bit register address and its 16-bit value."""

    addr: int = 0
    value: int = 0

    def __str__(self) -> str:
        hex_addr, hex_value = self.hex()
        return f"addr: {hex_addr} value: {hex_value}"

    def hex(self) -> tuple[str, str]:
        """Return address and value as ``0x``-prefixed four-digit hex strings."""
        return f"0x{self.addr:04x}", f"0x{self.value:04x}"

    @classmethod
    def from_hex(cls, hex_addr: str, hex_value: str) -> Reg:
        """Build a register from textual address and value (base from prefix)."""
        return cls(addr=_parse_uint16(hex_addr), value=_parse_uint16(hex_value))


@dataclass
class RegOp:
    """A register operation; for reads the register value is ignored."""

    reg: Reg = field(default_factory=Reg)
    read: bool = False

    def __str__(self) -> str:
        return f"read: {str(self.read).lower()} {self.reg}"


def encode_reg_ops(ops: Iterable[RegOp]) -> bytes:
    """Encode operations as consecutive little-endian 32-bit words."""
    chunks = []
    for op in ops:
        log.debug("Serializing RegOp: %s", op)
        addr_bits = (op.reg.addr & _ADDR_MASK) << 16
        if op.read:
            word = _READ_BIT | addr_bits
        else:
            word = addr_bits | (op.reg.value & 0xFFFF)
        log.debug("Serialized RegOp: 0x%08x", word)
        chunks.append(_WORD.pack(word))
    return b"".join(chunks)


def decode_reg_ops(data: bytes) -> list[RegOp]:
    """Decode every whole 32-bit word of ``data`` into a register operation."""
    data = bytes(data)
    ops = []
    for (word,) in _WORD.iter_unpack(data[: len(data) - len(data) % 4]):
        ops.append(
            RegOp(
                reg=Reg(addr=(word & 0x7FFF0000) >> 16, value=word & 0xFFFF),
                read=bool(word & _READ_BIT),
            )
        )
    return ops


def reg_ops_to_bytes(ops: Sequence[RegOp], seq: int) -> bytes:
    """Build a complete MLink register request frame with its CRC32 tail."""
    frame = MLinkFrame(
        type=MLinkType.REG_REQUEST,
        sync=MLINK_SYNC,
        seq=seq,
        # 3 header words + 1 CRC word + one word per operation
        length=4 + len(ops),
        src=MLINK_HOST_ADDR,
        dst=MLINK_DEVICE_ADDR,
    )
    payload = encode_reg_ops(ops)
    frame.crc = zlib.crc32(frame.serialize_header() + payload) & 0xFFFFFFFF
    return frame.wrap(payload)