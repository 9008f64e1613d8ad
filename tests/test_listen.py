import ipaddress
import socket
from collections import namedtuple
from unittest import mock

import pytest

from dufs.listen import check_addrs, create_listener, interface_addrs, print_listening
from dufs.options import BindAddr

FakeAddr = namedtuple("FakeAddr", "family address netmask broadcast ptp")


def ip(text):
    return BindAddr(ip=ipaddress.ip_address(text))


IPV4 = [ip("192.168.8.10"), ip("127.0.0.1")]
IPV6 = [ip("::1"), ip("fe80::1")]


def test_unspecified_expands_to_interfaces():
    new, printed = check_addrs([ip("0.0.0.0"), ip("::")], IPV4, IPV6)
    assert new == [ip("0.0.0.0"), ip("::")]
    assert printed == sorted(IPV4 + IPV6)


def test_specific_address_kept():
    new, printed = check_addrs([ip("127.0.0.1")], IPV4, IPV6)
    assert new == [ip("127.0.0.1")]
    assert printed == [ip("127.0.0.1")]


def test_family_without_interfaces_dropped():
    new, printed = check_addrs([ip("0.0.0.0"), ip("::")], IPV4, [])
    assert new == [ip("0.0.0.0")]
    assert printed == sorted(IPV4)


def test_socket_path_kept_and_sorted_last():
    sock = BindAddr(socket_path="/tmp/dufs.sock")
    new, printed = check_addrs([sock, ip("::1")], IPV4, IPV6)
    assert new == [sock, ip("::1")]
    assert printed == [ip("::1"), sock]


def test_print_addrs_sorted_v4_before_v6():
    _, printed = check_addrs([ip("::1"), ip("192.168.8.10"), ip("127.0.0.1")], IPV4, IPV6)
    assert printed == [ip("127.0.0.1"), ip("192.168.8.10"), ip("::1")]


def test_print_listening_single():
    assert print_listening([ip("127.0.0.1")], 5000, "/", False) == "Listening on http://127.0.0.1:5000/"


def test_print_listening_ipv6_tls_prefix():
    text = print_listening([ip("::1")], 5000, "/xyz/", True)
    assert text == "Listening on https://[::1]:5000/xyz/"


def test_print_listening_multiple():
    sock = BindAddr(socket_path="/tmp/dufs.sock")
    text = print_listening([ip("127.0.0.1"), sock], 5000, "/", False)
    assert text == "Listening on:\n  http://127.0.0.1:5000/\n  /tmp/dufs.sock\n"


def test_create_listener_binds_and_accepts_connections():
    listener = create_listener("127.0.0.1", 0)
    try:
        host, port = listener.getsockname()
        assert host == "127.0.0.1"
        assert listener.getblocking() is False
        with socket.create_connection((host, port), timeout=2) as client:
            assert client.getpeername() == (host, port)
    finally:
        listener.close()


def test_create_listener_invalid_ip():
    with pytest.raises(ValueError):
        create_listener("not-an-ip", 0)


def test_interface_addrs_splits_families():
    fake = {
        "lo": [
            FakeAddr(socket.AF_INET, "127.0.0.1", None, None, None),
            FakeAddr(socket.AF_INET6, "::1", None, None, None),
        ],
        "eth0": [
            FakeAddr(socket.AF_INET6, "fe80::1%eth0", None, None, None),
            FakeAddr(-1, "00:00:5e:00:53:00", None, None, None),
        ],
    }
    with mock.patch("psutil.net_if_addrs", return_value=fake):
        ipv4, ipv6 = interface_addrs()
    assert ipv4 == [ip("127.0.0.1")]
    assert ipv6 == [ip("::1"), ip("fe80::1")]


def test_interface_addrs_real_families_consistent():
    ipv4, ipv6 = interface_addrs()
    assert all(addr.ip.version == 4 for addr in ipv4)
    assert all(addr.ip.version == 6 for addr in ipv6)