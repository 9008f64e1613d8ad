"""Plain HTML directory listings for clients without JavaScript."""

from __future__ import annotations

import html
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from urllib.parse import quote

_NOSCRIPT_AGENTS = (
    "lynx/", "w3m/", "links ", "elinks/", "curl/", "wget/", "httpie/", "aria2/",
)

_UNITS = ("B", "KB", "MB", "GB", "TB")

_STYLE = """<style>
  td {
    padding: 0.2rem;
    text-align: left;
  }
  td:nth-child(3) {
    text-align: right;
  }
</style>
"""

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class PathEntry:
    """One entry of a directory listing; mtime is in milliseconds."""

    name: str
    is_dir: bool
    mtime: int
    size: int


def detect_noscript(user_agent: str) -> bool:
    """True for text-mode browsers and command-line HTTP clients."""
    return user_agent.startswith(_NOSCRIPT_AGENTS)


def _encode_uri(value: str) -> str:
    return "/".join(quote(part, safe="") for part in value.split("/"))


def _escape(value: str) -> str:
    return html.escape(value, quote=False)


def generate_noscript_html(href: str, entries: Iterable[PathEntry], max_subpaths: Optional[int] = None) -> str:
    title = f"Index of {_escape(href)}"
    lines = [
        "<html>\n",
        "<head>\n",
        f"<title>{title}</title>\n",
        _STYLE,
        "</head>\n",
        "<body>\n",
        f"<h1>{title}</h1>\n",
        "<table>\n",
        "  <tbody>\n",
        f"    {_render_parent()}\n",
    ]
    lines.extend(f"    {_render_entry(entry, max_subpaths)}\n" for entry in entries)
    lines += ["  </tbody>\n", "</table>\n", "</body>\n"]
    return "".join(lines)


def _render_parent() -> str:
    value = "../"
    return f'<tr><td><a href="{value}?noscript">{value}</a></td><td></td><td></td></tr>'


def _render_entry(entry: PathEntry, max_subpaths: Optional[int]) -> str:
    href = _encode_uri(entry.name)
    name = _escape(entry.name)
    if entry.is_dir:
        href += "/?noscript"
        name += "/"
    mtime = format_mtime(entry.mtime) or ""
    size = format_size(entry.size, entry.is_dir, max_subpaths)
    return f'<tr><td><a href="{href}">{name}</a></td><td>{mtime}</td><td>{size}</td></tr>'


def format_mtime(mtime: int) -> Optional[str]:
    """Format milliseconds since the epoch as ISO 8601 UTC, or None if out of range."""
    try:
        moment = _EPOCH + timedelta(milliseconds=mtime)
    except OverflowError:
        return None
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f".{moment.microsecond // 1000:03d}Z"
    )


def format_size(size: int, is_dir: bool, max_subpaths: Optional[int] = None) -> str:
    """Human size for files, item count for directories."""
    if is_dir:
        unit = "item" if size == 1 else "items"
        if max_subpaths is not None and size >= max_subpaths:
            num = f">{max_subpaths - 1}"
        else:
            num = str(size)
        return f"{num} {unit}"
    if size == 0:
        return "0 B"
    index = math.floor(math.log2(size) / 10.0)
    if index >= len(_UNITS):
        return f"{size / 1024.0 ** 5:.2f} PB"
    return f"{size / 1024.0 ** index:.2f} {_UNITS[index]}"