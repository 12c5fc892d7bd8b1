"""HTTP client for the control, MStream and discover API servers."""

from __future__ import annotations

from typing import Any, Optional

import requests

from adc64.config import Config
from adc64.layers.mldp import DeviceDescription

CONTROL_API_PORT = 8000
MSTREAM_API_PORT = 8001
DISCOVER_API_PORT = 8003


class ApiError(Exception):
    """An API server answered with an unexpected HTTP status."""

    def __init__(self, status_code: int, reason: str) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"{status_code} {reason}".strip())


def _field(data: Any, name: str) -> Any:
    """Look up a key case-insensitively in a decoded JSON object."""
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {data!r}")
    for key, value in data.items():
        if str(key).lower() == name.lower():
            return value
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class ApiClient:
    """Sends requests to the servers bound to the configured IP."""

    def __init__(self, cfg: Config, session: Optional[requests.Session] = None) -> None:
        self.config = cfg
        self._session = session if session is not None else requests.Session()
        self.api_prefix = f"http://{cfg.ip}:{CONTROL_API_PORT}/api"
        self.mstream_api_prefix = f"http://{cfg.ip}:{MSTREAM_API_PORT}/api"
        self.discover_api_prefix = f"http://{cfg.ip}:{DISCOVER_API_PORT}/api"

    def _reg_read_url(self, device: str, addr: str) -> str:
        return f"{self.api_prefix}/reg/r/{device}/{addr}"

    def _reg_write_url(self, device: str) -> str:
        return f"{self.api_prefix}/reg/w/{device}"

    @staticmethod
    def _check(response: requests.Response) -> requests.Response:
        if response.status_code != 200:
            raise ApiError(response.status_code, response.reason or "")
        return response

    def _get(self, url: str) -> requests.Response:
        return self._check(self._session.get(url))

    def reg_read(self, device: str, addr: str) -> str:
        """Return the hexadecimal value of one register of a device."""
        data = self._get(self._reg_read_url(device, addr)).json()
        return _text(_field(data, "Value"))

    def reg_read_all(self, device: str) -> dict[str, str]:
        """Return all registers of a device as a mapping of address to value."""
        data = self._get(self._reg_read_url(device, "all")).json()
        if data is None:
            return {}
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON list, got {data!r}")
        return {_text(_field(item, "Addr")): _text(_field(item, "Value")) for item in data}

    def reg_write(self, device: str, addr: str, value: str) -> None:
        """Ask the control server to write a register of a device."""
        response = self._session.post(
            self._reg_write_url(device), json={"Addr": addr, "Value": value}
        )
        # The control server's plain 200 is reported as a failure; other codes pass.
        if response.status_code == 200:
            raise ApiError(response.status_code, response.reason or "")

    def mstream_start(self, device: str) -> None:
        """Start streaming for one device."""
        self._get(f"{self.api_prefix}/mstream/start/{device}")

    def mstream_stop(self, device: str) -> None:
        """Stop streaming for one device."""
        self._get(f"{self.api_prefix}/mstream/stop/{device}")

    def mstream_start_all(self) -> None:
        """Start streaming for all devices."""
        self._get(f"{self.api_prefix}/mstream/start")

    def mstream_stop_all(self) -> None:
        """Stop streaming for all devices."""
        self._get(f"{self.api_prefix}/mstream/stop")

    def mstream_persist(self, dir_path: str, file_prefix: str) -> None:
        """Start writing streamed data to files in ``dir_path``."""
        response = self._session.post(
            f"{self.mstream_api_prefix}/persist",
            json={"Dir": dir_path, "FilePrefix": file_prefix},
        )
        self._check(response)

    def mstream_flush(self) -> None:
        """Close the data files and discard further data."""
        self._get(f"{self.mstream_api_prefix}/flush")

    def list_devices(self) -> list[DeviceDescription]:
        """Return the devices known to the discover server."""
        data = self._get(f"{self.discover_api_prefix}/devices").json()
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON list, got {data!r}")
        return [DeviceDescription.from_dict(item) for item in data]

    def mstream_connect_to_devices(self) -> None:
        """Ask the MStream server to connect to all configured devices."""
        self._get(f"{self.mstream_api_prefix}/connect_to_devices")