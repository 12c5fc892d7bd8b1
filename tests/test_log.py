import io
import time

import pytest

from adc64 import log

PREFIX = "[adc64] "


@pytest.fixture
def buf():
    stream = io.StringIO()
    log.init(stream)
    yield stream
    log.set_level(log.LogLevel.INFO)
    log.init(None)


def test_info_line_format(buf):
    log.info("value %d", 5)
    line = buf.getvalue()
    assert line.startswith(PREFIX)
    assert line.endswith(" [info] value 5\n")
    stamp = line[len(PREFIX):len(PREFIX) + 19]
    parsed = time.strptime(stamp, "%Y/%m/%d %H:%M:%S")
    assert parsed.tm_year >= 2000


def test_debug_suppressed_at_default_level(buf):
    log.debug("hidden %s", "x")
    assert buf.getvalue() == ""


def test_debug_written_when_enabled(buf):
    log.set_level(log.LogLevel.DEBUG)
    log.debug("shown %s", "x")
    assert "[debug] shown x" in buf.getvalue()


def test_error_level_filters_lower_levels(buf):
    log.set_level(log.LogLevel.ERROR)
    log.warning("w")
    log.info("i")
    log.error("e %s", "boom")
    out = buf.getvalue()
    assert "[warn]" not in out
    assert "[info]" not in out
    assert "[error] e boom" in out
    assert out.count("\n") == 1


def test_warning_prefix(buf):
    log.warning("careful")
    assert buf.getvalue().rstrip("\n").endswith("[warn] careful")


def test_message_without_args_is_literal(buf):
    log.info("100%")
    assert buf.getvalue().rstrip("\n").endswith("[info] 100%")


def test_invalid_level_rejected():
    with pytest.raises(ValueError):
        log.set_level(7)