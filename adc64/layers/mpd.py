"""MPD raw event file format: headers and serialization of one event block."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from adc64 import log
from adc64.layers.mstream import MStreamData, MStreamTrigger, Subtype

MPD_SYNC_MAGIC = 0x2A502A50
MPD_TIMESTAMP_MAGIC = 0x3F60B8A8

_TIMESTAMP = struct.Struct("<IIQ")
_EVENT = struct.Struct("<III")
_U32 = struct.Struct("<I")


@dataclass
class MpdTimestampHeader:
    """16-byte timestamp block."""

    sync: int = MPD_TIMESTAMP_MAGIC
    length: int = 8
    timestamp: int = 0

    def encode(self) -> bytes:
        log.debug(
            "MpdTimestampHeader.Serialize: Sync: %08x Length: %d Timestamp: %d",
            self.sync,
            self.length,
            self.timestamp,
        )
        return _TIMESTAMP.pack(
            self.sync & 0xFFFFFFFF,
            self.length & 0xFFFFFFFF,
            self.timestamp & 0xFFFFFFFFFFFFFFFF,
        )


@dataclass
class MpdEventHeader:
    """12-byte event header; ``length`` counts all device blocks in bytes."""

    sync: int = MPD_SYNC_MAGIC
    event_num: int = 0
    length: int = 0

    def encode(self) -> bytes:
        """Encode as sync, length, event number."""
        log.debug(
            "MpdEventHeader.Serialize: Sync: %d EventNum: %d Length: %d",
            self.sync,
            self.event_num,
            self.length,
        )
        return _EVENT.pack(
            self.sync & 0xFFFFFFFF,
            self.length & 0xFFFFFFFF,
            self.event_num & 0xFFFFFFFF,
        )


@dataclass
class MpdDeviceHeader:
    """8-byte device header; ``length`` (24 bits) counts all MStream blocks in bytes."""

    device_serial: int = 0
    device_id: int = 0
    length: int = 0

    def encode(self) -> bytes:
        log.debug(
            "MpdDeviceHeader.Serialize: DeviceSerial: %08x DeviceID: %d Length: %d",
            self.device_serial,
            self.device_id,
            self.length,
        )
        return (
            _U32.pack(self.device_serial & 0xFFFFFFFF)
            + (self.length & 0xFFFFFF).to_bytes(3, "little")
            + bytes([self.device_id & 0xFF])
        )


@dataclass
class MpdMStreamHeader:
    """4-byte block header: subtype (2 bits), length in words (22 bits), channel (8 bits)."""

    subtype: int = Subtype.TRIGGER
    length: int = 0
    channel_num: int = 0

    def encode(self) -> bytes:
        word = (
            (int(self.subtype) & 0x3)
            | ((self.length << 2) & 0xFFFFFC)
            | ((self.channel_num & 0xFF) << 24)
        )
        return _U32.pack(word)


@dataclass
class MpdEvent:
    """One device event: headers, trigger block and per-channel data blocks."""

    timestamp_header: MpdTimestampHeader
    event_header: MpdEventHeader
    device_header: MpdDeviceHeader
    trigger: MStreamTrigger
    data: dict[int, MStreamData] = field(default_factory=dict)

    def encode(self) -> bytes:
        """Serialize the event; data blocks are written in ascending channel order."""
        trigger_bytes = self.trigger.encode()
        chunks = [
            self.timestamp_header.encode(),
            self.event_header.encode(),
            self.device_header.encode(),
            MpdMStreamHeader(
                subtype=Subtype.TRIGGER, length=len(trigger_bytes) // 4, channel_num=0
            ).encode(),
            trigger_bytes,
        ]
        for channel in sorted(self.data):
            payload = self.data[channel].encode()
            chunks.append(
                MpdMStreamHeader(
                    subtype=Subtype.DATA, length=len(payload) // 4, channel_num=channel
                ).encode()
            )
            chunks.append(payload)
        result = b"".join(chunks)
        log.debug("MPD SerializeTo: %s", result.hex())
        return result