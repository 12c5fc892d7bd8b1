"""Device descriptions announced in organisation-specific discovery TLVs."""

from __future__ import annotations

import ipaddress
import re
import struct
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

import yaml

from adc64.layers.reg import _parse_uint16

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

IEEE_OUI_TIA = 0x0012BB
IEEE_OUI_AFI = 0x02A6B8

LLDP_TIA_SUBTYPE_IGNORE = 1
LLDP_TIA_SUBTYPE_HW = 5
LLDP_TIA_SUBTYPE_FW = 6
LLDP_TIA_SUBTYPE_SERIAL = 8
LLDP_TIA_SUBTYPE_MANUFACTURER = 9
LLDP_TIA_SUBTYPE_MODEL = 10

LLDP_AFI_SUBTYPE_1 = 1
LLDP_AFI_SUBTYPE_2 = 2

_U16 = struct.Struct(">H")
_U64 = struct.Struct(">Q")
_HEX_PAIR = re.compile(r"[0-9A-Fa-f]{2}")


@dataclass(frozen=True)
class OrgSpecificTLV:
    """An organisation-specific TLV: OUI, subtype and raw information bytes."""

    oui: int
    subtype: int
    info: bytes = b""


@dataclass
class Flags:
    """Lock state bits reported by a device."""

    master_locked: int = 0
    mstream_locked: int = 0
    unused: int = 0

    @classmethod
    def _from_byte(cls, value: int) -> Flags:
        return cls(
            master_locked=value & 0b00000001,
            mstream_locked=(value & 0b00000010) >> 1,
            unused=(value & 0b11111100) >> 2,
        )

    def _to_dict(self) -> dict[str, int]:
        return {
            "masterLocked": self.master_locked,
            "mstreamLocked": self.mstream_locked,
            "unused": self.unused,
        }


def format_device_id(value: int) -> str:
    """Render a device model identifier as ``0x``-prefixed hex, at least two digits."""
    return f"0x{value & 0xFFFF:02x}"


def parse_device_id(text: str) -> int:
    """Parse a 16-bit device identifier, detecting the base from its prefix."""
    return _parse_uint16(str(text).strip('"'))


def _format_mac(mac: bytes) -> str:
    return ":".join(f"{byte:02x}" for byte in mac)


def _parse_mac(text: str) -> bytes:
    separator = text[2:3]
    if separator not in (":", "-"):
        raise ValueError(f"invalid MAC address: {text}")
    parts = text.split(separator)
    if len(parts) not in (6, 8, 20) or not all(_HEX_PAIR.fullmatch(p) for p in parts):
        raise ValueError(f"invalid MAC address: {text}")
    return bytes(int(part, 16) for part in parts)


def _uint(data: dict[str, Any], key: str, bits: int) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key}: expected an integer, got {value!r}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{key}: value out of range: {value}")
    return value


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key}: expected a string, got {value!r}")
    return value


def _ip(data: dict[str, Any], key: str) -> Optional[IPAddress]:
    value = data.get(key)
    if value is None or value == "":
        return None
    return ipaddress.ip_address(str(value))


def _mac(data: dict[str, Any], key: str) -> bytes:
    value = data.get(key)
    if value is None or value == "":
        return b""
    if not isinstance(value, str):
        raise ValueError(f"{key}: expected a string, got {value!r}")
    return _parse_mac(value)


def _ip_text(ip: Optional[IPAddress]) -> str:
    return "" if ip is None else str(ip)


@dataclass
class DeviceDescription:
    """What a device tells about itself, plus where and when it was heard."""

    device_id: int = 0
    serial_id: int = 0
    chassis_slot: int = 0
    master_mac: bytes = b""
    master_ip: Optional[IPAddress] = None
    master_udp_port: int = 0
    mstream_mac: bytes = b""
    mstream_ip: Optional[IPAddress] = None
    mstream_udp_port: int = 0
    flags: Flags = field(default_factory=Flags)
    hardware_revision: str = ""
    firmware_revision: str = ""
    serial_number: str = ""
    manufacturer_name: str = ""
    model_name: str = ""
    address: Optional[IPAddress] = None
    port: int = 0
    timestamp: int = 0

    def set_source(self, host: str, port: int | str) -> None:
        """Record the address and port the announcement came from."""
        self.address = ipaddress.ip_address(str(host))
        try:
            number = int(port)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid port: {port!r}") from exc
        if not 0 <= number <= 0xFFFF:
            raise ValueError(f"invalid port: {port!r}")
        self.port = number

    def set_timestamp(self) -> None:
        """Stamp the description with the current time in milliseconds."""
        self.timestamp = time.time_ns() // 1_000_000

    def to_dict(self) -> dict[str, Any]:
        """Return the description keyed as in the wire and storage format."""
        data: dict[str, Any] = {}
        if self.device_id:
            data["deviceID"] = format_device_id(self.device_id)
        if self.serial_id:
            data["serialID"] = self.serial_id
        if self.chassis_slot:
            data["chassisSlot"] = self.chassis_slot
        data["masterMac"] = _format_mac(self.master_mac)
        data["masterIP"] = _ip_text(self.master_ip)
        data["masterUDPPort"] = self.master_udp_port
        data["mstreamMac"] = _format_mac(self.mstream_mac)
        data["mstreamIP"] = _ip_text(self.mstream_ip)
        data["mstreamUDPPort"] = self.mstream_udp_port
        data["flags"] = self.flags._to_dict()
        for key, value in (
            ("hardwareRevision", self.hardware_revision),
            ("firmwareRevision", self.firmware_revision),
            ("serialNumber", self.serial_number),
            ("manufacturerName", self.manufacturer_name),
            ("modelName", self.model_name),
        ):
            if value:
                data[key] = value
        data["address"] = _ip_text(self.address)
        data["port"] = self.port
        if self.timestamp:
            data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceDescription:
        """Build a description from the mapping produced by :meth:`to_dict`."""
        if not isinstance(data, dict):
            raise ValueError("device description must be a mapping")
        raw_id = data.get("deviceID")
        if raw_id is None:
            device_id = 0
        elif isinstance(raw_id, int) and not isinstance(raw_id, bool):
            device_id = parse_device_id(str(raw_id))
        else:
            device_id = parse_device_id(str(raw_id))
        raw_flags = data.get("flags") or {}
        if not isinstance(raw_flags, dict):
            raise ValueError("flags must be a mapping")
        return cls(
            device_id=device_id,
            serial_id=_uint(data, "serialID", 64),
            chassis_slot=_uint(data, "chassisSlot", 16),
            master_mac=_mac(data, "masterMac"),
            master_ip=_ip(data, "masterIP"),
            master_udp_port=_uint(data, "masterUDPPort", 16),
            mstream_mac=_mac(data, "mstreamMac"),
            mstream_ip=_ip(data, "mstreamIP"),
            mstream_udp_port=_uint(data, "mstreamUDPPort", 16),
            flags=Flags(
                master_locked=_uint(raw_flags, "masterLocked", 8),
                mstream_locked=_uint(raw_flags, "mstreamLocked", 8),
                unused=_uint(raw_flags, "unused", 8),
            ),
            hardware_revision=_text(data, "hardwareRevision"),
            firmware_revision=_text(data, "firmwareRevision"),
            serial_number=_text(data, "serialNumber"),
            manufacturer_name=_text(data, "manufacturerName"),
            model_name=_text(data, "modelName"),
            address=_ip(data, "address"),
            port=_uint(data, "port", 16),
            timestamp=_uint(data, "timestamp", 64),
        )

    def __str__(self) -> str:
        dumped = yaml.safe_dump(self.to_dict(), sort_keys=True, default_flow_style=False)
        return f"---\n{dumped}"


def _decode_tia(tlv: OrgSpecificTLV, description: DeviceDescription) -> None:
    text = bytes(tlv.info).decode("utf-8", errors="replace")
    if tlv.subtype == LLDP_TIA_SUBTYPE_HW:
        description.hardware_revision = text
    elif tlv.subtype == LLDP_TIA_SUBTYPE_FW:
        description.firmware_revision = text
    elif tlv.subtype == LLDP_TIA_SUBTYPE_SERIAL:
        description.serial_number = text
    elif tlv.subtype == LLDP_TIA_SUBTYPE_MANUFACTURER:
        description.manufacturer_name = text
    elif tlv.subtype == LLDP_TIA_SUBTYPE_MODEL:
        description.model_name = text


def _decode_afi(tlv: OrgSpecificTLV, description: DeviceDescription) -> None:
    info = bytes(tlv.info)
    if tlv.subtype == LLDP_AFI_SUBTYPE_1:
        if len(info) < 8:
            return
        description.device_id = _U16.unpack_from(info, 0)[0]
        description.serial_id = _U64.unpack(info[2:8].ljust(8, b"\x00"))[0]
        if len(info) >= 10:
            description.chassis_slot = _U16.unpack_from(info, 8)[0]
    elif tlv.subtype == LLDP_AFI_SUBTYPE_2:
        if len(info) < 25:
            return
        description.master_mac = info[0:6]
        description.master_ip = ipaddress.IPv4Address(info[6:10])
        description.master_udp_port = _U16.unpack_from(info, 10)[0]
        description.mstream_mac = info[12:18]
        description.mstream_ip = ipaddress.IPv4Address(info[18:22])
        description.mstream_udp_port = _U16.unpack_from(info, 22)[0]
        description.flags = Flags._from_byte(info[24])


def decode_org_specific(
    tlvs: Iterable[OrgSpecificTLV], description: DeviceDescription
) -> DeviceDescription:
    """Fill ``description`` from the TIA and AFI TLVs; other OUIs are ignored."""
    for tlv in tlvs:
        if tlv.oui == IEEE_OUI_TIA:
            _decode_tia(tlv, description)
        elif tlv.oui == IEEE_OUI_AFI:
            _decode_afi(tlv, description)
    return description