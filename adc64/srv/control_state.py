"""Persistent cache of device register values, one bucket per device."""

from __future__ import annotations

import os
import sqlite3
import threading
from typing import Union

from adc64 import log
from adc64.config import Config
from adc64.layers.reg import Reg
from adc64.registers import REG_MAP

REG_BUCKET_PREFIX = "reg_"


def _reg_bucket_name(device_name: str) -> str:
    return f"{REG_BUCKET_PREFIX}{device_name}"


class RegisterStore:
    """Register values keyed by bucket and address, kept in an SQLite file."""

    def __init__(self, path: Union[os.PathLike, str]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        with self._lock, self._conn:
            self._conn.execute("CREATE TABLE IF NOT EXISTS buckets (name TEXT PRIMARY KEY)")
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS registers ("
                "bucket TEXT NOT NULL, addr INTEGER NOT NULL, value INTEGER NOT NULL, "
                "PRIMARY KEY (bucket, addr))"
            )

    @classmethod
    def from_config(cls, cfg: Config) -> RegisterStore:
        """Open the register database of ``cfg`` with a bucket for every device."""
        store = cls(cfg.db_path())
        try:
            for device in cfg.devices:
                store.create_bucket(_reg_bucket_name(device.name))
        except Exception:
            store.close()
            raise
        return store

    def __enter__(self) -> RegisterStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def create_bucket(self, name: str) -> None:
        """Create a bucket unless it already exists."""
        with self._lock, self._conn:
            self._conn.execute("INSERT OR IGNORE INTO buckets (name) VALUES (?)", (name,))

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _require_bucket(self, bucket: str) -> None:
        row = self._conn.execute("SELECT 1 FROM buckets WHERE name = ?", (bucket,)).fetchone()
        if row is None:
            raise LookupError(f"Bucket not found: {bucket}")

    def _value(self, bucket: str, addr: int) -> int:
        row = self._conn.execute(
            "SELECT value FROM registers WHERE bucket = ? AND addr = ?", (bucket, addr)
        ).fetchone()
        if row is None:
            raise LookupError(f"Key not found: {addr}")
        return row[0]

    def set_reg(self, reg: Reg, device_name: str) -> None:
        """Store the value of a register of a device."""
        log.debug(
            "Setting register: device: %s Addr: 0x%04x Value: 0x%04x",
            device_name,
            reg.addr,
            reg.value,
        )
        bucket = _reg_bucket_name(device_name)
        with self._lock, self._conn:
            self._require_bucket(bucket)
            self._conn.execute(
                "INSERT OR REPLACE INTO registers (bucket, addr, value) VALUES (?, ?, ?)",
                (bucket, reg.addr & 0xFFFF, reg.value & 0xFFFF),
            )

    def get_reg(self, addr: int, device_name: str) -> Reg:
        """Return the stored value of a register of a device."""
        log.debug("Getting register: device: %s Addr: %x", device_name, addr)
        bucket = _reg_bucket_name(device_name)
        with self._lock:
            self._require_bucket(bucket)
            return Reg(addr=addr, value=self._value(bucket, addr & 0xFFFF))

    def get_reg_all(self, device_name: str) -> list[Reg]:
        """Return every register of the register map; all must be stored."""
        log.debug("Getting all registers: device: %s", device_name)
        bucket = _reg_bucket_name(device_name)
        with self._lock:
            self._require_bucket(bucket)
            return [Reg(addr=addr, value=self._value(bucket, addr)) for addr in REG_MAP.values()]