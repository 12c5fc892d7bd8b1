import pytest

from adc64.layers.mstream import (
    MStreamData,
    MStreamFragment,
    MStreamPayloadHeader,
    MStreamTrigger,
    Subtype,
    decode_fragments,
    encode_fragments,
)

# Trigger fragment laid out as in the documented sample capture,
# with a made-up device serial.
TRIGGER_FRAGMENT = bytes.fromhex(
    "18008 0df 0000 3800".replace(" ", "")
    + "78563412"  # device serial
    + "1d0000"  # event number
    + "00"  # channel
    + "00000000"  # tai sec
    + "00000000"  # tai nsec + flags
    + "01000000"  # low channels
    + "00000000"  # high channels
)


def test_decode_sample_trigger_fragment():
    (fragment,) = decode_fragments(TRIGGER_FRAGMENT)
    assert fragment.fragment_length == 24
    assert fragment.subtype == Subtype.TRIGGER
    assert fragment.device_id == 0xDF
    assert fragment.fragment_id == 0x38
    assert fragment.fragment_offset == 0
    assert fragment.last_fragment is True
    assert fragment.ack is False


def test_decode_payload_of_sample_trigger():
    (fragment,) = decode_fragments(TRIGGER_FRAGMENT)
    fragment.decode_payload()
    assert fragment.payload_header == MStreamPayloadHeader(
        device_serial=0x12345678, event_num=0x1D, channel_num=0
    )
    assert fragment.trigger.low_ch == 1
    assert fragment.trigger.hi_ch == 0
    assert fragment.trigger.channels == 1
    assert fragment.mstream_data is None


def test_payload_header_round_trip():
    header = MStreamPayloadHeader(device_serial=0xCAFEF00D, event_num=0xABCDEF, channel_num=63)
    encoded = header.encode()
    assert len(encoded) == 8
    assert MStreamPayloadHeader.decode(encoded) == header


def test_payload_header_too_short():
    with pytest.raises(ValueError, match="too short"):
        MStreamPayloadHeader.decode(b"\x00" * 7)


def test_trigger_round_trip_with_payload_header():
    trigger = MStreamTrigger(tai_sec=1000, flags=2, tai_nsec=123456, low_ch=0xF0, hi_ch=0x1)
    encoded = trigger.encode()
    assert len(encoded) == 16
    payload = MStreamPayloadHeader().encode() + encoded
    assert MStreamTrigger.decode(payload) == trigger


def test_trigger_channels_combines_halves():
    trigger = MStreamTrigger(low_ch=0x5, hi_ch=0x3)
    assert trigger.channels == (0x3 << 32) | 0x5


def test_trigger_too_short():
    with pytest.raises(ValueError):
        MStreamTrigger.decode(b"\x00" * 23)


def test_data_decode_drops_payload_header():
    samples = b"\xd8\xe4\xe8\xe4"
    payload = MStreamPayloadHeader(channel_num=3).encode() + samples
    data = MStreamData.decode(payload)
    assert data.data == samples
    assert data.encode() == samples


def test_decode_payload_data_fragment():
    samples = b"\x01\x02\x03\x04"
    payload = MStreamPayloadHeader(device_serial=9, event_num=4, channel_num=5).encode() + samples
    fragment = MStreamFragment(
        fragment_length=len(payload), subtype=Subtype.DATA, data=payload
    )
    fragment.decode_payload()
    assert fragment.payload_header.channel_num == 5
    assert fragment.payload_header.event_num == 4
    assert fragment.mstream_data.data == samples
    assert fragment.trigger is None


def test_decode_payload_short_header():
    fragment = MStreamFragment(fragment_length=4, subtype=Subtype.DATA, data=b"\x00" * 4)
    with pytest.raises(ValueError, match="payload header"):
        fragment.decode_payload()


def test_decode_payload_short_trigger():
    fragment = MStreamFragment(fragment_length=8, subtype=Subtype.TRIGGER, data=b"\x00" * 8)
    with pytest.raises(ValueError, match="trigger"):
        fragment.decode_payload()


def test_decode_payload_unknown_subtype():
    fragment = MStreamFragment(fragment_length=8, subtype=2, data=b"\x00" * 8)
    with pytest.raises(ValueError, match="Unknown fragment subtype"):
        fragment.decode_payload()


def test_flag_properties_toggle_bits():
    fragment = MStreamFragment(flags=0)
    fragment.last_fragment = True
    fragment.ack = True
    assert fragment.last_fragment and fragment.ack
    fragment.last_fragment = False
    assert not fragment.last_fragment
    assert fragment.ack
    fragment.ack = False
    assert fragment.flags == 0


def test_encode_decode_fragments_round_trip():
    fragments = [
        MStreamFragment(
            fragment_length=4, subtype=Subtype.DATA, flags=0x20,
            device_id=0xD9, fragment_id=7, fragment_offset=0, data=b"abcd",
        ),
        MStreamFragment(
            fragment_length=2, subtype=Subtype.TRIGGER, flags=0x10,
            device_id=1, fragment_id=0xFFFF, fragment_offset=0x1234, data=b"xy",
        ),
    ]
    assert decode_fragments(encode_fragments(fragments)) == fragments


def test_encode_pads_payload_to_length():
    fragment = MStreamFragment(fragment_length=4, data=b"\x01")
    encoded = encode_fragments([fragment])
    assert len(encoded) == 12
    assert encoded[8:] == b"\x01\x00\x00\x00"


def test_encode_ack_header_layout():
    ack = MStreamFragment(
        fragment_length=0, flags=0b00010000, device_id=1,
        fragment_id=0x1B, fragment_offset=0,
    )
    assert encode_fragments([ack]) == bytes.fromhex("00004001" "00001b00")


def test_decode_fragments_too_short():
    with pytest.raises(ValueError, match="too short"):
        decode_fragments(b"\x01\x00\x00")


def test_decode_fragments_zero_length():
    with pytest.raises(ValueError, match="FragmentLength = 0"):
        decode_fragments(b"\x00" * 8)


def test_decode_fragments_truncated_payload():
    with pytest.raises(ValueError, match="Truncated"):
        decode_fragments(TRIGGER_FRAGMENT[:-1])


def test_decode_fragments_truncated_second_header():
    with pytest.raises(ValueError, match="Truncated"):
        decode_fragments(TRIGGER_FRAGMENT + b"\x01\x00")