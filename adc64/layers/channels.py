"""Per-channel setup requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_CHANNEL_FIELDS = {
    "id": ("id", int),
    "en": ("en", bool),
    "trigen": ("trig_en", bool),
    "baseline": ("baseline", int),
    "trigthr": ("trig_thr", int),
    "zsthr": ("zs_thr", int),
}


def _check_type(key: str, value: Any, kind: type) -> Any:
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key}: expected an integer, got {value!r}")
    elif not isinstance(value, bool):
        raise ValueError(f"{key}: expected a boolean, got {value!r}")
    return value


@dataclass
class Channel:
    """Settings requested for one channel."""

    id: int = 0
    en: bool = False
    trig_en: bool = False
    baseline: int = 0
    trig_thr: int = 0
    zs_thr: int = 0

    @classmethod
    def _from_dict(cls, data: Any) -> Channel:
        if not isinstance(data, dict):
            raise ValueError(f"channel must be a mapping, got {data!r}")
        channel = cls()
        for key, value in data.items():
            spec = _CHANNEL_FIELDS.get(str(key).lower())
            if spec is None or value is None:
                continue
            attr, kind = spec
            setattr(channel, attr, _check_type(str(key), value, kind))
        return channel


@dataclass
class ChannelsSetup:
    """A list of channel settings to apply to a device."""

    channels: list[Channel] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ChannelsSetup:
        """Build from a decoded JSON body; keys match case-insensitively."""
        if not isinstance(data, dict):
            raise ValueError("channels setup must be a mapping")
        raw = None
        for key, value in data.items():
            if str(key).lower() == "channels":
                raw = value
        if raw is None:
            return cls()
        if not isinstance(raw, list):
            raise ValueError(f"Channels: expected a list, got {raw!r}")
        return cls(channels=[Channel._from_dict(item) for item in raw])