"""MStream fragments: header codec and trigger/data payload decoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Optional

from adc64 import log

FRAGMENT_HEADER_SIZE = 8
PAYLOAD_HEADER_SIZE = 8
TRIGGER_PAYLOAD_SIZE = 24

_LAST_FRAGMENT_BIT = 0b00100000
_ACK_BIT = 0b00010000

_FRAGMENT_HEADER = struct.Struct("<HBBI")
_U32 = struct.Struct("<I")
_TRIGGER = struct.Struct("<4I")


class Subtype(IntEnum):
    """Kind of MStream fragment payload."""

    TRIGGER = 0
    DATA = 1


@dataclass
class MStreamPayloadHeader:
    """The 8-byte header opening every assembled fragment payload."""

    device_serial: int = 0
    event_num: int = 0  # 24 bits
    channel_num: int = 0  # always 0 for triggers

    def encode(self) -> bytes:
        return (
            _U32.pack(self.device_serial & 0xFFFFFFFF)
            + (self.event_num & 0xFFFFFF).to_bytes(3, "little")
            + bytes([self.channel_num & 0xFF])
        )

    @classmethod
    def decode(cls, payload: bytes) -> MStreamPayloadHeader:
        if len(payload) < PAYLOAD_HEADER_SIZE:
            raise ValueError(
                "MStream data packet too short. Must at least have data header."
            )
        header = cls(
            device_serial=_U32.unpack_from(payload, 0)[0],
            event_num=int.from_bytes(bytes(payload[4:7]), "little"),
            channel_num=payload[7],
        )
        log.debug(
            "DecodeMStreamPayloadHeader: DeviceSerial: %08x EventNum: %d ChannelNum: %d",
            header.device_serial,
            header.event_num,
            header.channel_num,
        )
        return header


@dataclass
class MStreamTrigger:
    """Trigger block: TAI timestamp, flags and the mask of channels that fired."""

    tai_sec: int = 0
    flags: int = 0  # 2 bits
    tai_nsec: int = 0  # 30 bits
    low_ch: int = 0
    hi_ch: int = 0

    @property
    def channels(self) -> int:
        """The 64-bit channel mask."""
        return (self.hi_ch << 32) | self.low_ch

    def encode(self) -> bytes:
        """Return the 16-byte trigger block (without the payload header)."""
        return _TRIGGER.pack(
            self.tai_sec & 0xFFFFFFFF,
            ((self.tai_nsec << 2) | (self.flags & 0x3)) & 0xFFFFFFFF,
            self.low_ch & 0xFFFFFFFF,
            self.hi_ch & 0xFFFFFFFF,
        )

    @classmethod
    def decode(cls, payload: bytes) -> MStreamTrigger:
        """Decode from a whole fragment payload, payload header included."""
        if len(payload) < TRIGGER_PAYLOAD_SIZE:
            raise ValueError("MStream trigger packet too short. Must be at least 24 bytes.")
        tai_sec, nsec_flags, low_ch, hi_ch = _TRIGGER.unpack_from(payload, PAYLOAD_HEADER_SIZE)
        trigger = cls(
            tai_sec=tai_sec,
            flags=nsec_flags & 0x3,
            tai_nsec=nsec_flags >> 2,
            low_ch=low_ch,
            hi_ch=hi_ch,
        )
        log.debug(
            "DecodeMStreamTrigger: TaiSec: %d TaiNSec: %d Flags: %d LowCh: %d HiCh: %d",
            trigger.tai_sec,
            trigger.tai_nsec,
            trigger.flags,
            trigger.low_ch,
            trigger.hi_ch,
        )
        return trigger


@dataclass
class MStreamData:
    """Raw ADC samples of one channel."""

    data: bytes = b""

    def encode(self) -> bytes:
        return bytes(self.data)

    @classmethod
    def decode(cls, payload: bytes) -> MStreamData:
        """Decode from a whole fragment payload, dropping the payload header."""
        return cls(data=bytes(payload[PAYLOAD_HEADER_SIZE:]))


@dataclass
class MStreamFragment:
    """One MStream fragment; after assembly it carries a trigger or data payload."""

    fragment_length: int = 0  # payload length in bytes, header excluded
    subtype: int = Subtype.TRIGGER  # 2 bits
    flags: int = 0  # 6 bits
    device_id: int = 0  # device model, e.g. 0xd9 or 0xdf
    fragment_id: int = 0
    fragment_offset: int = 0
    data: bytes = b""
    payload_header: Optional[MStreamPayloadHeader] = field(default=None, compare=False)
    trigger: Optional[MStreamTrigger] = field(default=None, compare=False)
    mstream_data: Optional[MStreamData] = field(default=None, compare=False)

    @property
    def last_fragment(self) -> bool:
        return bool(self.flags & _LAST_FRAGMENT_BIT)

    @last_fragment.setter
    def last_fragment(self, last: bool) -> None:
        if last:
            self.flags |= _LAST_FRAGMENT_BIT
        else:
            self.flags &= ~_LAST_FRAGMENT_BIT & 0xFF

    @property
    def ack(self) -> bool:
        return bool(self.flags & _ACK_BIT)

    @ack.setter
    def ack(self, ack: bool) -> None:
        if ack:
            self.flags |= _ACK_BIT
        else:
            self.flags &= ~_ACK_BIT & 0xFF

    def decode_payload(self) -> None:
        """Decode the payload of an assembled fragment into header and body."""
        try:
            self.payload_header = MStreamPayloadHeader.decode(self.data)
        except ValueError as exc:
            raise ValueError("Error while decoding payload header of MStream fragment") from exc
        if self.subtype == Subtype.TRIGGER:
            try:
                self.trigger = MStreamTrigger.decode(self.data)
            except ValueError as exc:
                raise ValueError(
                    "Error while decoding payload of MStream trigger fragment"
                ) from exc
        elif self.subtype == Subtype.DATA:
            self.mstream_data = MStreamData.decode(self.data)
        else:
            raise ValueError("Unknown fragment subtype")


def encode_fragments(fragments: Iterable[MStreamFragment]) -> bytes:
    """Encode fragments back to back; each payload is cut or zero-padded to its length."""
    chunks = []
    for fragment in fragments:
        length = fragment.fragment_length & 0xFFFF
        chunks.append(
            _FRAGMENT_HEADER.pack(
                length,
                ((fragment.flags << 2) | (int(fragment.subtype) & 0x3)) & 0xFF,
                fragment.device_id & 0xFF,
                ((fragment.fragment_id & 0xFFFF) << 16) | (fragment.fragment_offset & 0xFFFF),
            )
        )
        chunks.append(bytes(fragment.data[:length]).ljust(length, b"\x00"))
    return b"".join(chunks)


def _subtype(value: int) -> int:
    try:
        return Subtype(value)
    except ValueError:
        return value


def decode_fragments(data: bytes) -> list[MStreamFragment]:
    """Split an MStream payload into its fragments."""
    data = bytes(data)
    log.debug("DecodeFromBytes: decoding MStream layer, data length: %d", len(data))
    if len(data) < FRAGMENT_HEADER_SIZE:
        raise ValueError("MStream packet too short")
    fragments = []
    offset = 0
    while offset < len(data):
        if offset + FRAGMENT_HEADER_SIZE > len(data):
            raise ValueError("Truncated MStream fragment header")
        length, kind, device_id, offset_id = _FRAGMENT_HEADER.unpack_from(data, offset)
        if length == 0:
            raise ValueError("Invalid MStream fragment: FragmentLength = 0")
        end = offset + FRAGMENT_HEADER_SIZE + length
        if end > len(data):
            raise ValueError("Truncated MStream fragment payload")
        fragment = MStreamFragment(
            fragment_length=length,
            subtype=_subtype(kind & 0x3),
            flags=(kind >> 2) & 0x3F,
            device_id=device_id,
            fragment_id=offset_id >> 16,
            fragment_offset=offset_id & 0xFFFF,
            data=data[offset + FRAGMENT_HEADER_SIZE : end],
        )
        log.debug(
            "DecodeFragment: offset: %d FragmentLength: %d FragmentID: %d FragmentOffset: %d",
            offset,
            fragment.fragment_length,
            fragment.fragment_id,
            fragment.fragment_offset,
        )
        fragments.append(fragment)
        offset = end
    return fragments