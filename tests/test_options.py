import ipaddress
import sys
import zipfile

import pytest

from dufs.options import (
    BindAddr,
    Compress,
    bind_addrs_from_config,
    default_addrs,
    encode_uri,
    string_or_list,
)


def test_parse_ipv4_and_ipv6():
    addrs = BindAddr.parse_addrs(["127.0.0.1", "192.168.8.10", "::1"])
    assert [a.ip for a in addrs] == [
        ipaddress.ip_address("127.0.0.1"),
        ipaddress.ip_address("192.168.8.10"),
        ipaddress.ip_address("::1"),
    ]
    assert all(a.is_ip for a in addrs)


def test_parse_socket_path_on_unix(monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    addrs = BindAddr.parse_addrs(["/tmp/dufs.sock", "@abstract"])
    assert addrs == [BindAddr(socket_path="/tmp/dufs.sock"), BindAddr(socket_path="@abstract")]
    assert not addrs[0].is_ip


def test_parse_invalid_on_windows(monkeypatch):
    monkeypatch.setattr(sys, "platform", "win32")
    with pytest.raises(ValueError, match="Invalid bind address `foo,bar`"):
        BindAddr.parse_addrs(["127.0.0.1", "foo", "bar"])


def test_bind_addr_requires_exactly_one_field():
    with pytest.raises(ValueError):
        BindAddr()
    with pytest.raises(ValueError):
        BindAddr(ip=ipaddress.ip_address("::"), socket_path="/x")


def test_ordering_puts_ipv4_before_ipv6_before_paths(monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    addrs = BindAddr.parse_addrs(["/run/sock", "::1", "10.0.0.2", "10.0.0.1"])
    assert [str(a) for a in sorted(addrs)] == ["10.0.0.1", "10.0.0.2", "::1", "/run/sock"]


def test_str_round_trip():
    for text in ["0.0.0.0", "::"]:
        (addr,) = BindAddr.parse_addrs([text])
        assert BindAddr.parse_addrs([str(addr)]) == [addr]


def test_default_addrs():
    assert default_addrs() == [
        BindAddr(ip=ipaddress.ip_address("0.0.0.0")),
        BindAddr(ip=ipaddress.ip_address("::")),
    ]


def test_bind_addrs_from_config_string_and_list():
    assert bind_addrs_from_config("0.0.0.0") == [BindAddr(ip=ipaddress.ip_address("0.0.0.0"))]
    assert bind_addrs_from_config(["127.0.0.1", "192.168.8.10"]) == [
        BindAddr(ip=ipaddress.ip_address("127.0.0.1")),
        BindAddr(ip=ipaddress.ip_address("192.168.8.10")),
    ]


def test_bind_addrs_from_config_rejects_numbers():
    with pytest.raises(TypeError):
        bind_addrs_from_config(5000)


def test_string_or_list():
    assert string_or_list("tmp,*.log,*.lock") == ["tmp,*.log,*.lock"]
    assert string_or_list(["tmp", "*.log", "*.lock"]) == ["tmp", "*.log", "*.lock"]


@pytest.mark.parametrize("value", [None, 3, {"a": "b"}, ["tmp", 1]])
def test_string_or_list_rejects_other_types(value):
    with pytest.raises(TypeError):
        string_or_list(value)


def test_compress_values_parse():
    assert [Compress(v) for v in ["none", "low", "medium", "high"]] == [
        Compress.NONE,
        Compress.LOW,
        Compress.MEDIUM,
        Compress.HIGH,
    ]
    with pytest.raises(ValueError):
        Compress("extreme")


def test_compress_to_compression():
    assert Compress.NONE.to_compression() == zipfile.ZIP_STORED
    assert Compress.LOW.to_compression() == zipfile.ZIP_DEFLATED
    assert Compress.MEDIUM.to_compression() == zipfile.ZIP_BZIP2
    assert Compress.HIGH.to_compression() == zipfile.ZIP_LZMA


def test_encode_uri_keeps_slashes():
    assert encode_uri("xyz") == "xyz"
    assert encode_uri("a b/c") == "a%20b/c"
    assert encode_uri("dir1/test.html") == "dir1/test.html"


def test_encode_uri_segment_count_preserved():
    value = "some dir/😀.bin/file\n1.txt"
    encoded = encode_uri(value)
    assert encoded.count("/") == value.count("/")
    assert " " not in encoded and "\n" not in encoded