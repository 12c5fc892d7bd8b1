# adc64

A library for working with ADC64 digitizer boards over the network:

- encoding and decoding of MLink transport frames, register and memory
  read/write requests, and MStream data fragments;
- reassembly of fragmented MStream frames, and serialization of events in
  the MPD raw data format;
- a per-device model of channel, trigger, MAF and FIR settings that turns
  settings into register and memory writes;
- decoding of device descriptions from discovery TLVs;
- a persistent register store, a raw data file writer, and an HTTP client
  for the control, MStream and discovery services.

## Configuration

`adc64.config` reads and writes a YAML file named `config` inside a
configuration directory (by default `.adc64` in the user's home directory):

```yaml
discoverIP: 239.192.1.1
discoverIface: eth0
ip: 192.168.1.100
devices:
  - name: adc1
    ip: 192.168.1.10
```

```python
from adc64.config import new_default_config

cfg = new_default_config("/tmp/adc64-config")
cfg.persist(False)          # raises ConfigFileExistsError if the file exists
cfg.load()
device = cfg.get_device_by_name("adc1")   # LookupError if unknown
```

`Config.db_path()` and `Config.discover_db_path()` give the paths of the
database files inside the same directory.

## Wire formats

```python
from adc64.layers.reg import Reg, RegOp, reg_ops_to_bytes

reg = Reg.from_hex("0x0040", "0x8000")
print(reg.hex())            # ('0x0040', '0x8000')
frame = reg_ops_to_bytes([RegOp(reg=reg)], seq=0)
```

- `adc64.layers.mlink`: `MLinkFrame` (`serialize_header`, `wrap`, `decode`)
  and `MLinkType`.
- `adc64.layers.reg`: `Reg`, `RegOp`, `encode_reg_ops`, `decode_reg_ops`,
  `reg_ops_to_bytes`.
- `adc64.layers.mem`: `MemOp` (`encode`, `decode`) and `mem_op_to_bytes`.
  Both request builders produce complete frames with their CRC32 tail.
- `adc64.layers.mstream`: `MStreamFragment`, `MStreamTrigger`,
  `MStreamData`, `MStreamPayloadHeader`, `encode_fragments`,
  `decode_fragments`.
- `adc64.layers.packet`: `decode_packet(data)` decodes a datagram into a
  `Packet` holding the MLink frame and, by its type, the register
  operations, memory operation or MStream fragments. Payload errors are
  recorded in `Packet.error`; a bad MLink header raises `MLinkDecodeError`.
- `adc64.layers.mpd`: `MpdEvent.encode()` serializes one event (timestamp,
  event and device headers, trigger block and per-channel data blocks in
  ascending channel order).
- `adc64.layers.mldp`: `OrgSpecificTLV`, `DeviceDescription` and
  `decode_org_specific(tlvs, description)`.
- `adc64.layers.channels`: `ChannelsSetup.from_dict` for channel setup
  requests.

## Reassembling MStream frames

`adc64.layers.defrag.FragmentBuilderManager(device_name, on_close)` takes
fragment parts through `set_fragment`; each frame whose parts are all in,
and which is the next one in frame order, is assembled, its payload decoded,
and passed to `on_close`.

## Device settings

`adc64.device.Device(config, ctrl, state)` keeps the settings of one board.
`ctrl` must provide `reg_request(ops, ip)` and `mem_request(op, ip)`;
`state` must provide `get_reg`, `get_reg_all` and `set_reg`, as
`adc64.srv.control_state.RegisterStore` does. Methods such as
`set_channels`, `set_maf_selector`, `set_fir_coef`, `mstream_start` and
`mstream_stop` translate into register and memory requests. Register
addresses are in `adc64.registers` (`RegAlias`, `MemAlias`).

## Storage and files

- `RegisterStore(path)` or `RegisterStore.from_config(cfg)` keeps register
  values per device in an SQLite file.
- `adc64.srv.writer.Writer(filename)` writes bytes to a new file; `flush()`
  syncs and closes it. Both can be used as context managers.

## Talking to the services

```python
from adc64.client import ApiClient
from adc64.config import new_default_config

client = ApiClient(new_default_config("/tmp/adc64-config"))
value = client.reg_read("adc1", "0x0040")
client.mstream_connect_to_devices()
client.mstream_persist("/data", "run42")
client.mstream_start_all()
devices = client.list_devices()
```

Requests answered with a status other than 200 raise
`adc64.client.ApiError`, which carries `status_code` and `reason`.
`reg_write` is the exception: it raises on a plain 200 and accepts any
other status.

## Logging

`adc64.log` writes levelled, timestamped lines to standard error;
`init(stream)` redirects them and `set_level(LogLevel.DEBUG)` changes the
verbosity.

## What this package does not do

It has no command-line tool and runs no servers: there is no control,
MStream or discovery service listening on UDP or HTTP here, only the client
for them. It does not group assembled fragments into events; a caller
builds `MpdEvent` objects itself. Discovery announcements are not captured
from the network; `decode_org_specific` only decodes TLVs already
extracted.

## Tests

The test suite uses pytest and responses, both listed in the `test` extra.