"""Configuration of the host and of the known devices, stored as YAML."""

from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

CONFIG_DIR = ".adc64"
CONFIG_FILE = "config"
DB_FILE = "db.bolt"
DISCOVER_DB_FILE = "discoverdb.bolt"
DEFAULT_DISCOVER_IP = "239.192.1.1"
DEFAULT_DISCOVER_IFACE = "eth0"
DEFAULT_IP = "192.168.1.100"


class ConfigFileExistsError(FileExistsError):
    """Raised when a config file already exists where a new one would be written."""

    def __init__(self, path: os.PathLike | str) -> None:
        self.path = str(path)
        super().__init__(
            f"could not create default config at {self.path}, file already exists"
        )


def _parse_ip(value: Any) -> IPAddress | None:
    if value is None:
        return None
    return ipaddress.ip_address(str(value))


@dataclass
class Device:
    """A device known to the host, by name and IP."""

    name: str = ""
    ip: IPAddress | None = None

    def _to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.name:
            data["name"] = self.name
        if self.ip is not None:
            data["ip"] = str(self.ip)
        return data

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Device:
        return cls(name=str(data.get("name", "") or ""), ip=_parse_ip(data.get("ip")))


def default_config_dir() -> Path:
    """Return the default directory holding the config and databases."""
    try:
        home = Path.home()
    except RuntimeError:
        home = Path("")
    return home / CONFIG_DIR


@dataclass
class Config:
    """Host configuration: discovery endpoint, bind address and devices."""

    discover_ip: IPAddress | None = None
    discover_iface: str = ""
    ip: IPAddress | None = None
    devices: list[Device] = field(default_factory=list)
    dirpath: Path = field(default_factory=default_config_dir)

    def config_path(self) -> Path:
        return Path(self.dirpath) / CONFIG_FILE

    def db_path(self) -> Path:
        return Path(self.dirpath) / DB_FILE

    def discover_db_path(self) -> Path:
        return Path(self.dirpath) / DISCOVER_DB_FILE

    def _to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.discover_ip is not None:
            data["discoverIP"] = str(self.discover_ip)
        if self.discover_iface:
            data["discoverIface"] = self.discover_iface
        if self.ip is not None:
            data["ip"] = str(self.ip)
        data["devices"] = [device._to_dict() for device in self.devices]
        return data

    def _update_from_dict(self, data: dict[str, Any]) -> None:
        if "discoverIP" in data:
            self.discover_ip = _parse_ip(data["discoverIP"])
        if "discoverIface" in data:
            self.discover_iface = str(data["discoverIface"] or "")
        if "ip" in data:
            self.ip = _parse_ip(data["ip"])
        if "devices" in data:
            self.devices = [Device._from_dict(item or {}) for item in data["devices"] or []]

    def persist(self, overwrite: bool = False) -> None:
        """Write the config file, refusing to replace one unless ``overwrite``."""
        path = self.config_path()
        if path.exists() and not overwrite:
            raise ConfigFileExistsError(path)
        text = yaml.safe_dump(self._to_dict(), sort_keys=True, default_flow_style=False)
        Path(self.dirpath).mkdir(mode=0o755, parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        print(f"Config is saved into file: {path}")

    def load(self) -> None:
        """Read the config file and update the fields it sets."""
        text = self.config_path().read_text(encoding="utf-8")
        data = yaml.safe_load(text)
        if data is None:
            return
        if not isinstance(data, dict):
            raise ValueError(f"Malformed config file: {self.config_path()}")
        self._update_from_dict(data)

    def get_device_by_name(self, name: str) -> Device:
        for device in self.devices:
            if device.name == name:
                return device
        raise LookupError(f"Device not found: {name}")

    def get_device_by_ip(self, ip: IPAddress | str) -> Device:
        wanted = str(ipaddress.ip_address(str(ip)))
        for device in self.devices:
            if str(device.ip) == wanted:
                return device
        raise LookupError(f"Device not found: {wanted}")


def new_default_config(dirpath: os.PathLike | str | None = None) -> Config:
    """Build a config with the default addresses and no devices."""
    return Config(
        discover_ip=ipaddress.ip_address(DEFAULT_DISCOVER_IP),
        discover_iface=DEFAULT_DISCOVER_IFACE,
        ip=ipaddress.ip_address(DEFAULT_IP),
        devices=[],
        dirpath=Path(dirpath) if dirpath is not None else default_config_dir(),
    )