"""Settings cache and register/memory control of one ADC64 board."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from adc64 import log
from adc64.config import Device as DeviceConfig
from adc64.config import IPAddress
from adc64.layers.channels import ChannelsSetup
from adc64.layers.mem import MemOp
from adc64.layers.reg import Reg, RegOp
from adc64.registers import (
    MEM_BIT_SELECT_CTRL,
    REG_RUN_STATUS_BIT_RUNNING,
    REG_TRIG_STATUS_BIT_LEMO,
    REG_TRIG_STATUS_BIT_THRESHOLD,
    REG_TRIG_STATUS_BIT_TIMER,
    MemAlias,
    RegAlias,
)

NCH = 64
FIR_ROUNDOFF_DEFAULT = 1
FIR_ROUNDOFF_MAX = 3
FIR_COEF_COUNT = 16


class _Controller(Protocol):
    def reg_request(self, ops: list[RegOp], ip: Optional[IPAddress]) -> None: ...

    def mem_request(self, op: MemOp, ip: Optional[IPAddress]) -> None: ...


class _State(Protocol):
    def get_reg(self, addr: int, device_name: str) -> Reg: ...

    def get_reg_all(self, device_name: str) -> list[Reg]: ...

    def set_reg(self, reg: Reg, device_name: str) -> None: ...


@dataclass
class FwVersion:
    """Firmware version read from the board."""

    major: int = 0
    minor: int = 0
    revision: int = 0


def _default_coef() -> list[int]:
    coef = [0] * FIR_COEF_COUNT
    coef[0] = 32767
    return coef


@dataclass
class FirParams:
    """FIR filter parameters."""

    preset_key: str = ""
    enabled: bool = False
    roundoff: int = FIR_ROUNDOFF_DEFAULT
    coef: list[int] = field(default_factory=_default_coef)

    def set_roundoff(self, value: int) -> None:
        """Set the roundoff, clamped to the supported range."""
        self.roundoff = max(0, min(int(value), FIR_ROUNDOFF_MAX))


@dataclass
class DspParams:
    """Digital signal processing parameters shared by all channels."""

    fir: FirParams = field(default_factory=FirParams)
    enabled: bool = False
    blc_thr: int = 100
    maf_enabled: bool = False
    maf_tap_sel: int = 2
    test_enabled: bool = False

    @property
    def maf_type(self) -> int:
        return (1 if self.maf_enabled else 0) + (2 if self.test_enabled else 0)

    @property
    def maf_active(self) -> bool:
        return self.enabled and self.maf_enabled

    @property
    def test_active(self) -> bool:
        return self.enabled and self.test_enabled


@dataclass
class ChannelSettings:
    """Cached settings of one channel."""

    enabled: bool = True
    baseline: int = 0
    trigger_enabled: bool = True
    trigger_threshold: int = 100
    zero_threshold: int = -0x8000


class Device:
    """One board: keeps its settings and turns changes into register/memory writes."""

    def __init__(self, config: DeviceConfig, ctrl: _Controller, state: _State) -> None:
        self.config = config
        self.fw_version: Optional[FwVersion] = None
        self.ch_settings = [ChannelSettings() for _ in range(NCH)]
        self.trigger_delay = 5
        self.invert_input = False
        self.zero_suppression_enabled = False
        self.invert_threshold_trigger = False
        self.invert_zero_suppression_threshold = False
        self.software_zero_suppression = False
        self.mstream_enabled = False
        self.dsp_params = DspParams()
        self.run = False
        self._ctrl = ctrl
        self._state = state

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def ip(self) -> Optional[IPAddress]:
        return self.config.ip

    def _send(self, ops: Sequence[RegOp]) -> None:
        self._ctrl.reg_request(list(ops), self.ip)

    @staticmethod
    def _write(alias: RegAlias, value: int) -> RegOp:
        return RegOp(reg=Reg(addr=alias.address, value=value & 0xFFFF))

    def reg_read(self, addr: int) -> Reg:
        """Return the cached value of a register."""
        return self._state.get_reg(addr, self.name)

    def reg_read_all(self) -> list[Reg]:
        """Return the cached values of all known registers."""
        return self._state.get_reg_all(self.name)

    def reg_write(self, reg: Reg) -> None:
        """Send a write of one register to the board."""
        self._send([RegOp(reg=reg, read=False)])

    def update_reg(self, reg: Reg) -> None:
        """Store a register value reported by the board."""
        self._state.set_reg(reg, self.name)

    def read_firmware(self) -> FwVersion:
        """Read the firmware version from the cached registers."""
        ver = self.reg_read(RegAlias.FW_VER.address)
        rev = self.reg_read(RegAlias.FW_REV.address)
        self.fw_version = FwVersion(
            major=(ver.value >> 8) & 0xFF,
            minor=ver.value & 0xFF,
            revision=rev.value,
        )
        return self.fw_version

    def has_adc_raw_data_signed(self) -> bool:
        """Whether the firmware delivers signed raw samples (assumed when unknown)."""
        try:
            self.read_firmware()
        except LookupError as exc:
            log.debug("Firmware version unavailable for %s: %s", self.name, exc)
        if self.fw_version is None:
            return True
        return self.fw_version.major >= 1

    def truncate_value(self, val: int) -> int:
        """Clamp a threshold to the sample range used by the firmware."""
        if self.has_adc_raw_data_signed():
            return max(-32768, min(val, 32767))
        return max(0, min(val + 0x8000, 0xFFFF))

    def _set_trigger_bit(self, bit: int, val: bool) -> None:
        value = self.reg_read(RegAlias.TRIG_CTRL.address).value
        value = value | bit if val else value & ~bit & 0xFFFF
        self._send([self._write(RegAlias.TRIG_CTRL, value)])

    def set_trigger_timer(self, val: bool) -> None:
        self._set_trigger_bit(REG_TRIG_STATUS_BIT_TIMER, val)

    def set_trigger_threshold(self, val: bool) -> None:
        self._set_trigger_bit(REG_TRIG_STATUS_BIT_THRESHOLD, val)

    def set_trigger_lemo(self, val: bool) -> None:
        self._set_trigger_bit(REG_TRIG_STATUS_BIT_LEMO, val)

    def set_maf_selector(self, val: int) -> None:
        """Enable the moving average filter with the given tap selector."""
        self.dsp_params.enabled = True
        self.dsp_params.maf_enabled = True
        self.dsp_params.maf_tap_sel = val
        for ch in range(NCH):
            self.write_ch_reg(ch, MemAlias.CH_CTRL.address, self._encode_ch_ctrl(ch))

    def set_maf_blc_thresh(self, val: int) -> None:
        self.dsp_params.blc_thr = val
        self._write_all_ch_ctrl()

    def set_invert(self, val: bool) -> None:
        self.invert_input = val
        self._write_all_ch_ctrl()

    def set_roundoff(self, val: int) -> None:
        self.dsp_params.fir.set_roundoff(val)
        self._write_all_ch_ctrl()

    def set_fir_coef(self, val: Sequence[int]) -> None:
        """Load the FIR coefficients (the first 16 are used)."""
        if len(val) < FIR_COEF_COUNT:
            raise ValueError(
                f"FIR needs {FIR_COEF_COUNT} coefficients, got {len(val)}"
            )
        start = RegAlias.FIR_COEF_START.address
        ops = [
            self._write(RegAlias.FIR_CONTROL, 1),
            self._write(RegAlias.FIR_ROUNDOFF, self.dsp_params.fir.roundoff),
        ]
        ops.extend(
            RegOp(reg=Reg(addr=start + i, value=coef & 0xFFFF))
            for i, coef in enumerate(val[:FIR_COEF_COUNT])
        )
        ops.append(self._write(RegAlias.FIR_COEF_CTRL, 1))
        ops.append(self._write(RegAlias.FIR_COEF_CTRL, 0))
        self._send(ops)

    def set_window_size(self, val: int) -> None:
        self._send([self._write(RegAlias.MSTREAM_DATA_SIZE_BYTES, val)])

    def set_latency(self, val: int) -> None:
        self._send([self._write(RegAlias.DEVICE_RLAT, val)])

    def set_channels(self, setup: ChannelsSetup) -> None:
        """Apply per-channel enable, trigger, baseline and threshold settings."""
        for channel in setup.channels:
            ch = channel.id
            if not 0 <= ch < NCH:
                raise ValueError(f"Channel id out of range: {ch}")
            settings = self.ch_settings[ch]
            settings.enabled = channel.en
            settings.trigger_enabled = channel.trig_en
            settings.trigger_threshold = channel.trig_thr
            self.write_ch_reg(ch, MemAlias.CH_CTRL.address, self._encode_ch_ctrl(ch))
            self.write_ch_reg(ch, MemAlias.CH_BASELINE.address, channel.baseline)
            self.write_ch_reg(
                ch, MemAlias.CH_ZS_THR.address, self.truncate_value(channel.zs_thr)
            )
            self.write_ch_reg(
                ch, MemAlias.CH_THR.address, self.truncate_value(channel.trig_thr)
            )

    def set_zs(self, val: bool) -> None:
        self.zero_suppression_enabled = val

    def mstream_start(self) -> None:
        """Reset the board and start streaming."""
        erc_bit = 2 if self.zero_suppression_enabled else 1
        self._send(
            [
                self._write(RegAlias.DEVICE_CTRL, 0),
                self._write(RegAlias.DEVICE_CTRL, 0x8000),
                self._write(RegAlias.MSTREAM_RUN_CTRL, erc_bit),
            ]
        )

    def mstream_stop(self) -> None:
        """Stop streaming."""
        self._send(
            [
                self._write(RegAlias.DEVICE_CTRL, 1),
                self._write(RegAlias.DEVICE_CTRL, 0),
                self._write(RegAlias.MSTREAM_RUN_CTRL, 0),
            ]
        )

    def mem_write(self, addr: int, data: Sequence[int]) -> None:
        words = [word & 0xFFFFFFFF for word in data]
        self._ctrl.mem_request(MemOp(addr=addr, size=len(words), data=words), self.ip)

    def is_running(self) -> bool:
        status = self.reg_read(RegAlias.RUN_STATUS.address)
        return bool(status.value & REG_RUN_STATUS_BIT_RUNNING)

    def _encode_ch_ctrl(self, ch: int) -> int:
        settings = self.ch_settings[ch]
        result = 0
        if settings.enabled:
            result |= 0x8000
        if self.invert_input:
            result |= 0x4000
        if self.invert_threshold_trigger:
            result |= 0x2000
        if self.invert_zero_suppression_threshold:
            result |= 0x1000
        if settings.trigger_enabled:
            result |= 0x0800
        result |= 0x0600  # unused bits, always set
        if self.dsp_params.maf_active:
            result |= 0x0080
        if self.dsp_params.test_active:
            result |= 0x0040
        result |= (0x0003 & self.dsp_params.maf_tap_sel) << 4
        return result

    def write_ch_reg(self, ch: int, addr: int, data: int) -> None:
        """Write one word to a channel's register space."""
        self.mem_write(MEM_BIT_SELECT_CTRL | addr | ch_base_mem_addr(ch), [data])

    def write_ch_ctrl(self, ch: int) -> None:
        """Write the control word and baseline-correction thresholds of a channel."""
        blc = self.dsp_params.blc_thr
        self.write_ch_reg(ch, MemAlias.CH_CTRL.address, self._encode_ch_ctrl(ch))
        self.write_ch_reg(ch, MemAlias.CH_BLC_THR_HI.address, blc)
        self.write_ch_reg(ch, MemAlias.CH_BLC_THR_LO.address, -blc)

    def _write_all_ch_ctrl(self) -> None:
        for ch in range(NCH):
            self.write_ch_ctrl(ch)


def ch_base_mem_addr(ch: int) -> int:
    """Base memory address of a channel's register block."""
    return (ch << 14) & 0xFFFFFFFF