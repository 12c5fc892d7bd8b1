import io

import pytest

from adc64 import log
from adc64.layers.mlink import (
    MLINK_DEVICE_ADDR,
    MLINK_HOST_ADDR,
    MLINK_MAX_PAYLOAD_SIZE,
    MLINK_MSTREAM_CRC,
    MLINK_SYNC,
    MLinkDecodeError,
    MLinkFrame,
    MLinkType,
    mlink_type_name,
)


@pytest.fixture
def logbuf():
    stream = io.StringIO()
    log.init(stream)
    yield stream
    log.init(None)


def test_ack_header_bytes():
    frame = MLinkFrame(
        type=MLinkType.MSTREAM,
        seq=0,
        length=6,
        src=MLINK_DEVICE_ADDR,
        dst=MLINK_HOST_ADDR,
    )
    assert frame.serialize_header() == bytes.fromhex("5453502a00000600fefe0100")


def test_wrap_appends_tail():
    frame = MLinkFrame(type=MLinkType.REG_REQUEST, crc=0x01020304)
    wrapped = frame.wrap(b"\xaa\xbb")
    assert wrapped[:12] == frame.serialize_header()
    assert wrapped[12:14] == b"\xaa\xbb"
    assert wrapped[14:] == bytes([4, 3, 2, 1])


def test_round_trip():
    frame = MLinkFrame(
        type=MLinkType.REG_RESPONSE, seq=7, length=5, src=3, dst=4, crc=0xDEADBEEF
    )
    payload = b"\x01\x02\x03\x04"
    decoded = MLinkFrame.decode(frame.wrap(payload))
    assert decoded == MLinkFrame(
        type=MLinkType.REG_RESPONSE,
        sync=MLINK_SYNC,
        seq=7,
        length=5,
        src=3,
        dst=4,
        crc=0xDEADBEEF,
        payload=payload,
    )


def test_decode_sample_mstream_frame(logbuf):
    data = (
        bytes.fromhex("5453502a1d00920001000000")
        + bytes(8)
        + bytes.fromhex("49622012")
    )
    frame = MLinkFrame.decode(data)
    assert frame.type is MLinkType.MSTREAM
    assert frame.seq == 0x1D
    assert frame.length == 0x92
    assert frame.src == 1
    assert frame.dst == 0
    assert frame.crc == MLINK_MSTREAM_CRC
    assert frame.payload == bytes(8)
    assert "Wrong MLink tail" not in logbuf.getvalue()


def test_mstream_bad_tail_logs_error(logbuf):
    frame = MLinkFrame(type=MLinkType.MSTREAM, crc=0)
    decoded = MLinkFrame.decode(frame.wrap(b""))
    assert decoded.crc == 0
    assert "Wrong MLink tail for MStream frame 0x00000000" in logbuf.getvalue()


def test_unknown_type_kept_as_int():
    frame = MLinkFrame(type=0x7777)
    decoded = MLinkFrame.decode(frame.wrap(b""))
    assert decoded.type == 0x7777
    assert mlink_type_name(decoded.type) == "UnknownMLinkType"


def test_decode_too_short():
    with pytest.raises(MLinkDecodeError, match="MLink packet too short"):
        MLinkFrame.decode(bytes(15))


def test_decode_wrong_sync():
    data = MLinkFrame(type=MLinkType.MSTREAM, sync=0x1234).wrap(b"")
    with pytest.raises(MLinkDecodeError, match=f"Must be {MLINK_SYNC}"):
        MLinkFrame.decode(data)


def test_type_names():
    assert mlink_type_name(MLinkType.MSTREAM) == "MStream"
    assert mlink_type_name(MLinkType.REG_RESPONSE) == "Reg"
    assert mlink_type_name(MLinkType.MEM_RESPONSE) == "Mem"
    assert mlink_type_name(MLinkType.REG_REQUEST) == "UnknownMLinkType"


def test_max_payload_fills_max_frame():
    payload = bytes(MLINK_MAX_PAYLOAD_SIZE)
    wrapped = MLinkFrame(type=MLinkType.REG_RESPONSE).wrap(payload)
    assert len(wrapped) == 1400
    assert MLinkFrame.decode(wrapped).payload == payload