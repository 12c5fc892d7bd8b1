import json

import pytest
import responses

from adc64.client import ApiClient, ApiError
from adc64.config import new_default_config


@pytest.fixture
def client(tmp_path):
    return ApiClient(new_default_config(tmp_path))


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def control(client, path):
    return f"{client.api_prefix}{path}"


def test_prefixes_use_config_ip(client):
    ip = str(client.config.ip)
    assert client.api_prefix == f"http://{ip}:8000/api"
    assert client.mstream_api_prefix == f"http://{ip}:8001/api"
    assert client.discover_api_prefix == f"http://{ip}:8003/api"


def test_reg_read(client, mocked):
    mocked.add(
        responses.GET,
        control(client, "/reg/r/adc1/0x0040"),
        json={"Addr": "0x0040", "Value": "0x8000"},
    )
    assert client.reg_read("adc1", "0x0040") == "0x8000"


def test_reg_read_error_status(client, mocked):
    mocked.add(responses.GET, control(client, "/reg/r/adc1/0x0040"), status=404)
    with pytest.raises(ApiError) as info:
        client.reg_read("adc1", "0x0040")
    assert info.value.status_code == 404
    assert "404" in str(info.value)


def test_reg_read_all(client, mocked):
    mocked.add(
        responses.GET,
        control(client, "/reg/r/adc1/all"),
        json=[{"Addr": "0x0040", "Value": "0x0001"}, {"Addr": "0x0041", "Value": "0x0002"}],
    )
    assert client.reg_read_all("adc1") == {"0x0040": "0x0001", "0x0041": "0x0002"}


def test_reg_write_sends_body(client, mocked):
    mocked.add(responses.POST, control(client, "/reg/w/adc1"), status=204)
    client.reg_write("adc1", "0x0040", "0x0001")
    body = json.loads(mocked.calls[0].request.body)
    assert body == {"Addr": "0x0040", "Value": "0x0001"}


def test_reg_write_plain_ok_is_reported(client, mocked):
    mocked.add(responses.POST, control(client, "/reg/w/adc1"), status=200)
    with pytest.raises(ApiError) as info:
        client.reg_write("adc1", "0x0040", "0x0001")
    assert info.value.status_code == 200


def test_mstream_device_actions(client, mocked):
    mocked.add(responses.GET, control(client, "/mstream/start/adc1"))
    mocked.add(responses.GET, control(client, "/mstream/stop/adc1"), status=502)
    client.mstream_start("adc1")
    with pytest.raises(ApiError):
        client.mstream_stop("adc1")
    assert len(mocked.calls) == 2


def test_mstream_all_actions(client, mocked):
    mocked.add(responses.GET, control(client, "/mstream/start"))
    mocked.add(responses.GET, control(client, "/mstream/stop"))
    client.mstream_start_all()
    client.mstream_stop_all()
    assert [c.request.url for c in mocked.calls] == [
        control(client, "/mstream/start"),
        control(client, "/mstream/stop"),
    ]


def test_mstream_persist_flush_connect(client, mocked):
    mocked.add(responses.POST, f"{client.mstream_api_prefix}/persist")
    mocked.add(responses.GET, f"{client.mstream_api_prefix}/flush")
    mocked.add(responses.GET, f"{client.mstream_api_prefix}/connect_to_devices")
    client.mstream_persist("/data", "run")
    client.mstream_flush()
    client.mstream_connect_to_devices()
    body = json.loads(mocked.calls[0].request.body)
    assert body == {"Dir": "/data", "FilePrefix": "run"}
    assert len(mocked.calls) == 3


def test_mstream_flush_error(client, mocked):
    mocked.add(responses.GET, f"{client.mstream_api_prefix}/flush", status=500)
    with pytest.raises(ApiError):
        client.mstream_flush()


def test_list_devices(client, mocked):
    mocked.add(
        responses.GET,
        f"{client.discover_api_prefix}/devices",
        json=[
            {
                "deviceID": "0xdf",
                "masterMac": "02:00:00:00:00:01",
                "masterIP": "10.0.0.1",
                "masterUDPPort": 33300,
                "mstreamMac": "02:00:00:00:00:02",
                "mstreamIP": "10.0.0.1",
                "mstreamUDPPort": 33301,
                "modelName": "ADC64",
                "address": "10.0.0.1",
                "port": 33303,
            }
        ],
    )
    devices = client.list_devices()
    assert len(devices) == 1
    assert devices[0].device_id == 0xDF
    assert devices[0].model_name == "ADC64"
    assert devices[0].port == 33303


def test_list_devices_null(client, mocked):
    mocked.add(responses.GET, f"{client.discover_api_prefix}/devices", json=None)
    assert client.list_devices() == []