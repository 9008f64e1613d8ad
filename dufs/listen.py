"""Listening sockets and the addresses announced when the server starts."""

from __future__ import annotations

import ipaddress
import socket
from typing import Iterable, List, Sequence, Tuple, Union

import psutil

from dufs.options import BindAddr, IpAddress

DEFAULT_BACKLOG = 1024


def _strip_scope(address: str) -> str:
    return address.split("%", 1)[0]


def interface_addrs() -> Tuple[List[BindAddr], List[BindAddr]]:
    """IPv4 and IPv6 addresses of the local network interfaces."""
    try:
        interfaces = psutil.net_if_addrs()
    except (OSError, psutil.Error) as err:
        raise OSError("Failed to get local interface addresses") from err
    ipv4_addrs: List[BindAddr] = []
    ipv6_addrs: List[BindAddr] = []
    for entries in interfaces.values():
        for entry in entries:
            if entry.family == socket.AF_INET:
                target = ipv4_addrs
            elif entry.family == socket.AF_INET6:
                target = ipv6_addrs
            else:
                continue
            try:
                ip = ipaddress.ip_address(_strip_scope(entry.address))
            except ValueError:
                continue
            target.append(BindAddr(ip=ip))
    return ipv4_addrs, ipv6_addrs


def check_addrs(
    addrs: Iterable[BindAddr],
    ipv4_addrs: Sequence[BindAddr],
    ipv6_addrs: Sequence[BindAddr],
) -> Tuple[List[BindAddr], List[BindAddr]]:
    """Drop addresses of a family with no interfaces; return them with the addresses to print.

    An unspecified address is printed as every interface address of its family.
    """
    new_addrs: List[BindAddr] = []
    print_addrs: List[BindAddr] = []
    for bind_addr in addrs:
        if bind_addr.ip is None:
            new_addrs.append(bind_addr)
            print_addrs.append(bind_addr)
            continue
        family = ipv4_addrs if bind_addr.ip.version == 4 else ipv6_addrs
        if not family:
            continue
        new_addrs.append(bind_addr)
        if bind_addr.ip.is_unspecified:
            print_addrs.extend(family)
        else:
            print_addrs.append(bind_addr)
    print_addrs.sort()
    return new_addrs, print_addrs


def _url(bind_addr: BindAddr, port: int, uri_prefix: str, tls: bool) -> str:
    if bind_addr.ip is None:
        return bind_addr.socket_path
    host = f"{bind_addr.ip}:{port}" if bind_addr.ip.version == 4 else f"[{bind_addr.ip}]:{port}"
    protocol = "https" if tls else "http"
    return f"{protocol}://{host}{uri_prefix}"


def print_listening(addrs: Iterable[BindAddr], port: int, uri_prefix: str, tls: bool = False) -> str:
    """The start-up message listing the URLs the server answers on."""
    urls = [_url(addr, port, uri_prefix, tls) for addr in addrs]
    if len(urls) == 1:
        return f"Listening on {urls[0]}"
    info = "\n".join(f"  {url}" for url in urls)
    return f"Listening on:\n{info}\n"


def create_listener(ip: Union[str, IpAddress], port: int) -> socket.socket:
    """A non-blocking TCP socket bound and listening on ``ip``:``port``.

    IPv6 sockets accept IPv6 connections only.
    """
    address = ipaddress.ip_address(ip) if isinstance(ip, str) else ip
    family = socket.AF_INET6 if address.version == 6 else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    try:
        if family == socket.AF_INET6:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((str(address), port))
        sock.listen(DEFAULT_BACKLOG)
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock