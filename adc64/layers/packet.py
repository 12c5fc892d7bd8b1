"""Decoding of whole MLink packets into their typed payload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from adc64 import log
from adc64.layers.mem import MemOp
from adc64.layers.mlink import MLinkDecodeError, MLinkFrame, MLinkType, mlink_type_name
from adc64.layers.mstream import MStreamFragment, decode_fragments
from adc64.layers.reg import RegOp, decode_reg_ops


@dataclass
class Packet:
    """A decoded MLink frame and, depending on its type, its decoded payload."""

    mlink: MLinkFrame
    reg_ops: Optional[list[RegOp]] = None
    mem_op: Optional[MemOp] = None
    fragments: Optional[list[MStreamFragment]] = None
    error: Optional[Exception] = None

    @property
    def layer_name(self) -> str:
        """Name of the payload layer selected by the MLink type."""
        return mlink_type_name(self.mlink.type)


def decode_packet(data: bytes) -> Packet:
    """Decode an MLink frame; payload errors are recorded in ``Packet.error``."""
    try:
        frame = MLinkFrame.decode(data)
    except MLinkDecodeError as exc:
        log.error("Error while decoding mlink layer: %s", exc)
        raise
    packet = Packet(mlink=frame)
    try:
        if frame.type == MLinkType.MSTREAM:
            packet.fragments = decode_fragments(frame.payload)
        elif frame.type == MLinkType.REG_RESPONSE:
            log.debug("Trying to decode RegLayer, data len: %d", len(frame.payload))
            packet.reg_ops = decode_reg_ops(frame.payload)
        elif frame.type == MLinkType.MEM_RESPONSE:
            packet.mem_op = MemOp.decode(frame.payload)
        else:
            packet.error = MLinkDecodeError(
                f"Unable to decode MLink type {int(frame.type)}"
            )
    except ValueError as exc:
        packet.error = exc
    return packet