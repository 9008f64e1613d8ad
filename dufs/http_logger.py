"""Access-log formatting driven by an nginx-like format string."""

from __future__ import annotations

import base64
import binascii
import logging
import time
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Optional, Union
from urllib.parse import unquote_to_bytes

DEFAULT_LOG_FORMAT = '$time_iso8601 $log_level - $remote_addr "$request" $status'

ACCESS_LOGGER_NAME = "http_access"

_REQUEST_KEYS = ("request", "request_method", "request_uri")

Headers = Union[Mapping[str, str], Iterable[tuple]]


class _Kind(Enum):
    VARIABLE = "variable"
    HEADER = "header"
    LITERAL = "literal"


@dataclass(frozen=True)
class _Element:
    kind: _Kind
    value: str


def _parse_elements(text: str) -> tuple:
    elements = []
    is_var = False
    cache = ""
    for char in text + " ":
        if char == "$":
            if cache:
                elements.append(_Element(_Kind.LITERAL, cache))
            cache = ""
            is_var = True
        elif is_var and not (char.isalnum() or char == "_"):
            if cache.startswith("$http_"):
                name = cache[len("$http_"):].replace("_", "-")
                elements.append(_Element(_Kind.HEADER, name))
            elif cache.startswith("$"):
                elements.append(_Element(_Kind.VARIABLE, cache[1:]))
            cache = ""
            is_var = False
        cache += char
    cache = cache.strip()
    if cache:
        elements.append(_Element(_Kind.LITERAL, cache))
    return tuple(elements)


def sanitize_log_value(value: str) -> str:
    """Escape backslashes, double quotes and control characters."""
    parts = []
    for char in value:
        if char == "\\":
            parts.append("\\\\")
        elif char == '"':
            parts.append('\\"')
        elif unicodedata.category(char) == "Cc":
            parts.append(f"\\x{ord(char):02x}")
        else:
            parts.append(char)
    return "".join(parts)


def _decode_uri(uri: str) -> Optional[str]:
    try:
        return unquote_to_bytes(uri).decode("utf-8")
    except UnicodeDecodeError:
        return None


def _header_lookup(headers: Headers) -> dict:
    items = headers.items() if hasattr(headers, "items") else headers
    return {str(name).lower(): value for name, value in items}


def _digest_params(text: str) -> dict:
    params = {}
    rest = text
    while rest:
        rest = rest.lstrip(" ,")
        key, sep, rest = rest.partition("=")
        if not sep:
            break
        key = key.strip().lower()
        rest = rest.lstrip()
        if rest.startswith('"'):
            end = rest.find('"', 1)
            if end < 0:
                params[key] = rest[1:]
                break
            params[key] = rest[1:end]
            rest = rest[end + 1:]
        else:
            value, _, rest = rest.partition(",")
            params[key] = value.strip()
    return params


def _auth_user(authorization: str) -> Optional[str]:
    scheme, _, credentials = authorization.strip().partition(" ")
    scheme = scheme.lower()
    if scheme == "basic":
        try:
            decoded = base64.b64decode(credentials.strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        user, sep, _ = decoded.partition(":")
        return user if sep else None
    if scheme == "digest":
        return _digest_params(credentials).get("username")
    return None


@dataclass(frozen=True)
class HttpLogger:
    """A parsed log format that collects request data and renders log lines."""

    elements: tuple = field(default_factory=lambda: _parse_elements(DEFAULT_LOG_FORMAT))

    @classmethod
    def parse(cls, text: str) -> "HttpLogger":
        return cls(_parse_elements(text))

    def data(self, method: str, uri: str, headers: Headers) -> dict:
        """Collect the request values the format refers to."""
        lookup = _header_lookup(headers)
        data: dict = {}
        for element in self.elements:
            if element.kind is _Kind.VARIABLE:
                if element.value in _REQUEST_KEYS:
                    decoded = _decode_uri(uri)
                    decoded_uri = sanitize_log_value(decoded) if decoded is not None else uri
                    data.setdefault("request", f"{method} {decoded_uri}")
                    data.setdefault("request_method", method)
                    data.setdefault("request_uri", decoded_uri)
                elif element.value == "remote_user":
                    authorization = lookup.get("authorization")
                    user = _auth_user(authorization) if authorization else None
                    if user is not None:
                        data[element.value] = user
            elif element.kind is _Kind.HEADER:
                value = lookup.get(element.value.lower())
                if value is not None:
                    data[element.value] = sanitize_log_value(value)
        return data

    def render(self, data: Mapping[str, str], err: Optional[str] = None) -> Optional[str]:
        """Build the log line, or return None when the format is empty."""
        if not self.elements:
            return None
        now = datetime.now().astimezone()
        time_local = now.isoformat(timespec="seconds")
        time_iso8601 = time_local[:-6] + "Z" if time_local.endswith("+00:00") else time_local
        builtins = {
            "time_local": time_local,
            "time_iso8601": time_iso8601,
            "msec": f"{time.time():.3f}",
            "log_level": "ERROR" if err is not None else "INFO",
        }
        parts = []
        for element in self.elements:
            if element.kind is _Kind.LITERAL:
                parts.append(element.value)
            elif element.kind is _Kind.VARIABLE:
                if element.value in builtins:
                    parts.append(builtins[element.value])
                else:
                    parts.append(data.get(element.value, "-"))
            else:
                parts.append(data.get(element.value, "-"))
        output = "".join(parts)
        if err is not None:
            output = f"{output} {err}"
        return output

    def log(self, data: Mapping[str, str], err: Optional[str] = None) -> None:
        """Emit the rendered line on the access logger."""
        line = self.render(data, err)
        if line is None:
            return
        level = logging.ERROR if err is not None else logging.INFO
        logging.getLogger(ACCESS_LOGGER_NAME).log(level, "%s", line)