"""Register and channel memory address maps of the ADC64 board."""

from __future__ import annotations

from enum import IntEnum

REG_FIR_BASE = 0x200
REG_TRIG_CSR_BASE = 0x240

REG_RUN_STATUS_BIT_RUNNING = 0x0010

REG_TRIG_STATUS_BIT_TIMER = 0x001
REG_TRIG_STATUS_BIT_THRESHOLD = 0x002
REG_TRIG_STATUS_BIT_LEMO = 0x004

# bit 13 set selects a register operation on the 16-bit bus
MEM_BIT_SELECT_CTRL = 1 << 13


class RegAlias(IntEnum):
    """Named device registers."""

    DEVICE_CTRL = 0
    DEVICE_RLAT = 1
    RUN_STATUS = 2
    DEVICE_ID = 3
    TRIG_CTRL = 4
    ADC_INFO = 5
    CH_DPM_KS = 6
    TEMPERATURE = 7
    FW_VER = 8
    FW_REV = 9
    SERIAL_NUM = 10
    DAC_MAX5501 = 11
    DAC_MAX5502 = 12
    PCA12 = 13
    ADC_SPI = 14
    ADC12_SPI_READ = 15
    ADC34_SPI_READ = 16
    ADC56_SPI_READ = 17
    ADC78_SPI_READ = 18
    ZS_EVENTS = 19
    MSTREAM_RUN_CTRL = 20
    MSTREAM_DATA_SIZE_BYTES = 21
    MSTREAM_READOUT_CHANNEL_EN = 22
    MSTREAM_SPARSE_CTRL = 23
    MSTREAM_SPARSE_OFFSET = 24
    MSTREAM_SPARSE_PERIOD = 25
    MSTREAM_MTU_SIZE = 26
    DES_CTRL = 27
    DES_STATUS = 28
    DES_IDELAY_TAP_VAL = 29
    DES_IDELAY_LOAD_MASK = 30
    FIR_CONTROL = 31
    FIR_COEF_CTRL = 32
    FIR_ROUNDOFF = 33
    FIR_COEF_START = 34
    TRIG_CSR_TRIG_TS = 35
    TRIG_CSR_EV_NUM = 36
    TRIG_CSR_TRIG_IN_DELAY = 37
    TRIG_CSR_TRIG_CODE = 38
    STATISTIC_CONTROL = 39
    ADC_STATUS = 40
    RUN_EVENT_NUMBER = 41
    WR_SYNC_LOST_COUNTER = 42
    WR_LINK_ERROR_COUNTER = 43
    ADC_STATUS_MASK = 44
    TRIG_ON_XOFF_ERROR_COUNTER = 45
    RUN_EVENT_NUMBER64 = 46
    ADC_TIME_SEC = 47

    @property
    def address(self) -> int:
        """The 16-bit register address."""
        return REG_MAP[self]


REG_ALIAS_LIMIT = len(RegAlias)

REG_MAP: dict[RegAlias, int] = {
    RegAlias.DEVICE_CTRL: 0x40,
    RegAlias.DEVICE_RLAT: 0x41,
    RegAlias.RUN_STATUS: 0x42,
    RegAlias.DEVICE_ID: 0x42,
    RegAlias.TRIG_CTRL: 0x43,
    RegAlias.ADC_INFO: 0x44,
    RegAlias.CH_DPM_KS: 0x4A,
    RegAlias.TEMPERATURE: 0x4B,
    RegAlias.FW_VER: 0x4C,
    RegAlias.FW_REV: 0x4D,
    RegAlias.SERIAL_NUM: 0x4E,
    RegAlias.DAC_MAX5501: 0x100,
    RegAlias.DAC_MAX5502: 0x101,
    RegAlias.PCA12: 0x102,
    RegAlias.ADC_SPI: 0x160,
    RegAlias.ADC12_SPI_READ: 0x161,
    RegAlias.ADC34_SPI_READ: 0x162,
    RegAlias.ADC56_SPI_READ: 0x163,
    RegAlias.ADC78_SPI_READ: 0x164,
    RegAlias.ZS_EVENTS: 0x110,
    RegAlias.MSTREAM_RUN_CTRL: 0x140,
    RegAlias.MSTREAM_DATA_SIZE_BYTES: 0x141,
    RegAlias.MSTREAM_READOUT_CHANNEL_EN: 0x142,
    RegAlias.MSTREAM_SPARSE_CTRL: 0x148,
    RegAlias.MSTREAM_SPARSE_OFFSET: 0x149,
    RegAlias.MSTREAM_SPARSE_PERIOD: 0x14A,
    RegAlias.MSTREAM_MTU_SIZE: 0x14C,
    RegAlias.DES_CTRL: 0x150,
    RegAlias.DES_STATUS: 0x151,
    RegAlias.DES_IDELAY_TAP_VAL: 0x153,
    RegAlias.DES_IDELAY_LOAD_MASK: 0x154,
    RegAlias.FIR_CONTROL: REG_FIR_BASE + 0,
    RegAlias.FIR_COEF_CTRL: REG_FIR_BASE + 1,
    RegAlias.FIR_ROUNDOFF: REG_FIR_BASE + 2,
    RegAlias.FIR_COEF_START: REG_FIR_BASE + 0x10,
    RegAlias.TRIG_CSR_TRIG_TS: REG_TRIG_CSR_BASE + 0,
    RegAlias.TRIG_CSR_EV_NUM: REG_TRIG_CSR_BASE + 4,
    RegAlias.TRIG_CSR_TRIG_IN_DELAY: REG_TRIG_CSR_BASE + 8,
    RegAlias.TRIG_CSR_TRIG_CODE: REG_TRIG_CSR_BASE + 9,
    RegAlias.STATISTIC_CONTROL: 0x300,
    RegAlias.ADC_STATUS: 0x301,
    RegAlias.RUN_EVENT_NUMBER: 0x302,
    RegAlias.WR_SYNC_LOST_COUNTER: 0x304,
    RegAlias.WR_LINK_ERROR_COUNTER: 0x306,
    RegAlias.ADC_STATUS_MASK: 0x308,
    RegAlias.TRIG_ON_XOFF_ERROR_COUNTER: 0x30A,
    RegAlias.RUN_EVENT_NUMBER64: 0x30C,
    RegAlias.ADC_TIME_SEC: 0x1000,
}


class MemAlias(IntEnum):
    """Named per-channel memory locations."""

    CH_WR_ADDR = 0
    CH_CTRL = 1
    CH_THR = 2
    CH_ZS_THR = 3
    CH_BASELINE = 4
    CH_ADC_DATA = 5
    CH_ADC_PATTERN = 6
    CH_ADC_PATTERN_MISMATCH_CNT = 7
    CH_BLC_THR_HI = 8
    CH_BLC_THR_LO = 9
    CH_D2_HIST = 10
    CH_D2_HIST_CTRL = 11
    CH_D2_HIST_ST = 12
    CH_D2_HIST_TIME = 13

    @property
    def address(self) -> int:
        """The memory offset within a channel's address block."""
        return MEM_MAP[self]


MEM_ALIAS_LIMIT = len(MemAlias)

MEM_MAP: dict[MemAlias, int] = {
    MemAlias.CH_WR_ADDR: 0x0000,
    MemAlias.CH_CTRL: 0x0001,
    MemAlias.CH_THR: 0x0002,
    MemAlias.CH_ZS_THR: 0x0003,
    MemAlias.CH_BASELINE: 0x0004,
    MemAlias.CH_ADC_DATA: 0x0005,
    MemAlias.CH_ADC_PATTERN: 0x0006,
    MemAlias.CH_ADC_PATTERN_MISMATCH_CNT: 0x0007,
    MemAlias.CH_BLC_THR_HI: 0x0008,
    MemAlias.CH_BLC_THR_LO: 0x0009,
    MemAlias.CH_D2_HIST: 0x0080,
    MemAlias.CH_D2_HIST_CTRL: 0x00C0,
    MemAlias.CH_D2_HIST_ST: 0x00C1,
    MemAlias.CH_D2_HIST_TIME: 0x00C2,
}