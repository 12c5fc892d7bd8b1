"""Memory read/write operations and their MLink request frames."""

from __future__ import annotations

import struct
import zlib
from dataclasses import dataclass, field

from adc64.layers.mlink import (
    MLINK_DEVICE_ADDR,
    MLINK_HOST_ADDR,
    MLINK_SYNC,
    MLinkFrame,
    MLinkType,
)

_WORD = struct.Struct("<I")
MEM_READ_BIT = 0x80000000
MEM_ADDR_MASK = 0x3FFFFF  # 22 bits
MEM_SIZE_MASK = 0x1FF  # 9 bits


@dataclass
class MemOp:
    """A memory operation; for reads the data words are not sent."""

    addr: int = 0
    size: int = 0
    data: list[int] = field(default_factory=list)
    read: bool = False

    def _header(self) -> int:
        word = ((self.size & MEM_SIZE_MASK) << 22) | (self.addr & MEM_ADDR_MASK)
        if self.read:
            word |= MEM_READ_BIT
        return word

    def encode(self) -> bytes:
        """Return the header word followed, for writes, by the data words."""
        header = _WORD.pack(self._header())
        if self.read:
            return header
        return header + b"".join(_WORD.pack(word & 0xFFFFFFFF) for word in self.data)

    @classmethod
    def decode(cls, data: bytes) -> MemOp:
        """Decode a header word and up to ``size`` whole data words that follow it."""
        data = bytes(data)
        if len(data) < _WORD.size:
            raise ValueError("Mem packet too short")
        (header,) = _WORD.unpack_from(data, 0)
        size = (header >> 22) & MEM_SIZE_MASK
        available = (len(data) - _WORD.size) // _WORD.size
        count = min(size, available)
        body = data[_WORD.size : _WORD.size * (1 + count)]
        return cls(
            addr=header & MEM_ADDR_MASK,
            size=size,
            data=[word for (word,) in _WORD.iter_unpack(body)],
            read=bool(header & MEM_READ_BIT),
        )


def mem_op_to_bytes(op: MemOp, seq: int) -> bytes:
    """Build a complete MLink memory request frame with its CRC32 tail."""
    frame = MLinkFrame(
        type=MLinkType.MEM_REQUEST,
        sync=MLINK_SYNC,
        seq=seq,
        # 3 header words + 1 CRC word + 1 op header word + size data words
        length=4 + op.size + 1,
        src=MLINK_HOST_ADDR,
        dst=MLINK_DEVICE_ADDR,
    )
    payload = op.encode().ljust((1 + op.size) * _WORD.size, b"\x00")
    frame.crc = zlib.crc32(frame.serialize_header() + payload) & 0xFFFFFFFF
    return frame.wrap(payload)