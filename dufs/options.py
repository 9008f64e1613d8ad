"""Value types shared by command-line and configuration-file options."""

from __future__ import annotations

import ipaddress
import sys
import zipfile
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Iterable, List, Optional, Union
from urllib.parse import quote

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DEFAULT_PORT = 5000


def _unix_sockets_supported() -> bool:
    return sys.platform != "win32"


def _parse_ip(text: str) -> Optional[IpAddress]:
    if "%" in text:
        return None
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


@total_ordering
@dataclass(frozen=True, eq=True)
class BindAddr:
    """An address to listen on: an IP address or a unix socket path."""

    ip: Optional[IpAddress] = None
    socket_path: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.ip is None) == (self.socket_path is None):
            raise ValueError("BindAddr needs exactly one of an IP address or a socket path")

    @property
    def is_ip(self) -> bool:
        return self.ip is not None

    def _sort_key(self) -> tuple:
        if self.ip is not None:
            return (0, self.ip.version, self.ip.packed)
        return (1, 0, self.socket_path.encode("utf-8"))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, BindAddr):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        return str(self.ip) if self.ip is not None else self.socket_path

    @classmethod
    def parse_addrs(cls, addrs: Iterable[str]) -> List["BindAddr"]:
        """Parse addresses; anything that is not an IP is a socket path on unix."""
        bind_addrs = []
        invalid = []
        unix = _unix_sockets_supported()
        for addr in addrs:
            ip = _parse_ip(addr)
            if ip is not None:
                bind_addrs.append(cls(ip=ip))
            elif unix:
                bind_addrs.append(cls(socket_path=addr))
            else:
                invalid.append(addr)
        if invalid:
            raise ValueError(f"Invalid bind address `{','.join(invalid)}`")
        return bind_addrs


class Compress(Enum):
    """Compression level for folder archives."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def to_compression(self) -> int:
        """The zipfile compression method for this level."""
        return {
            Compress.NONE: zipfile.ZIP_STORED,
            Compress.LOW: zipfile.ZIP_DEFLATED,
            Compress.MEDIUM: zipfile.ZIP_BZIP2,
            Compress.HIGH: zipfile.ZIP_LZMA,
        }[self]


DEFAULT_COMPRESS = Compress.LOW


def _require_strings(values: list) -> List[str]:
    if not all(isinstance(item, str) for item in values):
        raise TypeError("expected string or list of strings")
    return list(values)


def string_or_list(value) -> List[str]:
    """Accept a single string or a list of strings from a config value."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return _require_strings(list(value))
    raise TypeError("expected string or list of strings")


def bind_addrs_from_config(value) -> List[BindAddr]:
    """Parse the ``bind`` config value, a string or a list of strings."""
    return BindAddr.parse_addrs(string_or_list(value))


def default_addrs() -> List[BindAddr]:
    """Listen on every IPv4 and IPv6 interface."""
    return BindAddr.parse_addrs(["0.0.0.0", "::"])


def encode_uri(value: str) -> str:
    """Percent-encode each path segment, keeping the slashes."""
    return "/".join(quote(part, safe="") for part in value.split("/"))