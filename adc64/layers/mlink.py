"""MLink framing: 12-byte header, payload, 4-byte tail word."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from adc64 import log

MLINK_HOST_ADDR = 1
MLINK_DEVICE_ADDR = 0xFEFE
# Magic number at the start of every MLink frame.
MLINK_SYNC = 0x2A50
# Tail word of MStream frames sent from a device to the host.
MLINK_MSTREAM_CRC = 0x12206249
MLINK_HEADER_SIZE = 12
MLINK_CRC_SIZE = 4
MLINK_MAX_FRAME_SIZE = 1400
MLINK_MAX_PAYLOAD_SIZE = MLINK_MAX_FRAME_SIZE - MLINK_HEADER_SIZE - MLINK_CRC_SIZE

_HEADER = struct.Struct("<6H")
_CRC = struct.Struct("<I")


class MLinkType(IntEnum):
    """Known MLink frame types."""

    MSTREAM = 0x5354
    REG_REQUEST = 0x0101
    REG_RESPONSE = 0x0102
    MEM_REQUEST = 0x0105
    MEM_RESPONSE = 0x0106


_TYPE_NAMES = {
    MLinkType.MSTREAM: "MStream",
    MLinkType.REG_RESPONSE: "Reg",
    MLinkType.MEM_RESPONSE: "Mem",
}


def mlink_type_name(value: int) -> str:
    """Return the name of the layer that decodes frames of the given type."""
    return _TYPE_NAMES.get(value, "UnknownMLinkType")


class MLinkDecodeError(ValueError):
    """Raised when bytes cannot be decoded as an MLink frame."""


@dataclass
class MLinkFrame:
    """An MLink frame; ``length`` counts 4-byte words including header and tail."""

    type: int = 0
    sync: int = MLINK_SYNC
    seq: int = 0
    length: int = 0
    src: int = 0
    dst: int = 0
    crc: int = 0
    payload: bytes = b""

    def serialize_header(self) -> bytes:
        """Return the 12 header bytes (without the tail word)."""
        return _HEADER.pack(
            int(self.type) & 0xFFFF,
            self.sync & 0xFFFF,
            self.seq & 0xFFFF,
            self.length & 0xFFFF,
            self.src & 0xFFFF,
            self.dst & 0xFFFF,
        )

    def wrap(self, payload: bytes) -> bytes:
        """Return header, ``payload`` and tail word as one frame."""
        return self.serialize_header() + bytes(payload) + _CRC.pack(self.crc & 0xFFFFFFFF)

    @classmethod
    def decode(cls, data: bytes) -> MLinkFrame:
        """Decode a frame; the payload is everything between header and tail."""
        data = bytes(data)
        if len(data) < MLINK_HEADER_SIZE + MLINK_CRC_SIZE:
            raise MLinkDecodeError("MLink packet too short")
        frame_type, sync, seq, length, src, dst = _HEADER.unpack_from(data, 0)
        if sync != MLINK_SYNC:
            log.debug("Mlink sync is invalid")
            raise MLinkDecodeError(f"Wrong MLink sync. Must be {MLINK_SYNC}")
        (crc,) = _CRC.unpack_from(data, len(data) - MLINK_CRC_SIZE)
        try:
            frame_type = MLinkType(frame_type)
        except ValueError:
            pass
        if frame_type == MLinkType.MSTREAM and crc != MLINK_MSTREAM_CRC:
            log.error(
                "Wrong MLink tail for MStream frame 0x%08x Must be 0x%08x",
                crc,
                MLINK_MSTREAM_CRC,
            )
        return cls(
            type=frame_type,
            sync=sync,
            seq=seq,
            length=length,
            src=src,
            dst=dst,
            crc=crc,
            payload=data[MLINK_HEADER_SIZE : len(data) - MLINK_CRC_SIZE],
        )