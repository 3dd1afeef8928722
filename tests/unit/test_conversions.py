import pytest
from nerdctld.exceptions import OutputParseError
from nerdctld.PARSERS.conversions import (
    byte_size, cache_size, container_size, rfc3339, unix_natural, unix_time,
)

# 2024-03-01T12:00:00Z
NOON = 1709294400

def test_byte_size_units():
    assert byte_size("512 B") == 512
    assert byte_size("1.5 KiB") == 1536
    assert byte_size("7.6 MiB") == int(7.6 * 1024 ** 2)
    assert byte_size("2 GiB") == 2 * 1024 ** 3

def test_byte_size_bare_number_is_bytes():
    assert byte_size("12") == 12

@pytest.mark.parametrize("text", ["", "7.6 MB", "abc KiB", "1 2 3", "KiB"])
def test_byte_size_rejects_garbage(text):
    with pytest.raises(OutputParseError):
        byte_size(text)

def test_cache_size():
    assert cache_size("0B") == 0
    assert cache_size("512B") == 512
    assert cache_size("4.10KB") == int(4.10 * 1024)
    assert cache_size("12.3MB") == int(12.3 * 1024 ** 2)
    assert cache_size("1.5GiB") == int(1.5 * 1024 ** 3)
    assert cache_size("2kB") == 2048

@pytest.mark.parametrize("text", ["", "12", "xKB", "B"])
def test_cache_size_rejects_garbage(text):
    with pytest.raises(OutputParseError):
        cache_size(text)

def test_unix_time_layouts():
    assert unix_time("2024-03-01T12:00:00Z") == NOON
    assert unix_time("2024-03-01 12:00:00 +0000 UTC") == NOON
    assert unix_time("2024-03-01 12:00:00.512345 +0000 UTC") == NOON
    assert unix_time("2024-03-01 13:00:00 +0100 CET") == NOON

def test_unix_time_rejects_unknown_layout():
    with pytest.raises(OutputParseError):
        unix_time("yesterday")

def test_unix_natural():
    now = 1000000
    assert unix_natural("3 hours ago", now) == now - 3 * 3600
    assert unix_natural("About a minute ago", now) == now - 60
    assert unix_natural("About an hour ago", now) == now - 3600
    assert unix_natural("Less than a second ago", now) == now
    assert unix_natural("2 weeks ago", now) == now - 14 * 86400
    assert unix_natural("1 day ago", now) == now - 86400

def test_unix_natural_rejects_unknown_phrase():
    with pytest.raises(OutputParseError):
        unix_natural("soon", 0)

def test_container_size():
    assert container_size("4.0 KiB (virtual 7.6 MiB)") == (4096, int(7.6 * 1024 ** 2))
    assert container_size("0 B") == (0, None)
    assert container_size("") == (None, None)

def test_rfc3339():
    assert rfc3339(NOON) == "2024-03-01T12:00:00Z"
