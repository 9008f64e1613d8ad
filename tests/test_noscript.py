from datetime import datetime, timezone

import pytest

from dufs.noscript import (
    PathEntry,
    detect_noscript,
    format_mtime,
    format_size,
    generate_noscript_html,
)


@pytest.mark.parametrize("agent", ["curl/8.0", "wget/1.21", "lynx/2.8", "links 2.2", "aria2/1.3"])
def test_detect_noscript_true(agent):
    assert detect_noscript(agent) is True


@pytest.mark.parametrize("agent", ["Mozilla/5.0", "xcurl/1", ""])
def test_detect_noscript_false(agent):
    assert detect_noscript(agent) is False


def test_format_mtime_epoch():
    assert format_mtime(0) == "1970-01-01T00:00:00.000Z"


@pytest.mark.parametrize("millis", [1, 999, 1_700_000_000_123, 86_400_000])
def test_format_mtime_round_trip(millis):
    text = format_mtime(millis)
    parsed = datetime.strptime(text, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
    assert int(parsed.timestamp() * 1000 + 0.5) == millis


def test_format_mtime_out_of_range():
    assert format_mtime(10**20) is None


def test_format_size_zero():
    assert format_size(0, False) == "0 B"


@pytest.mark.parametrize("power,unit", list(enumerate(["B", "KB", "MB", "GB", "TB"])))
def test_format_size_units(power, unit):
    value, got_unit = format_size(1024**power, False).split(" ")
    assert got_unit == unit
    assert float(value) == 1.0


def test_format_size_petabytes():
    assert format_size(3 * 1024**5, False).endswith(" PB")


def test_format_size_dir_counts():
    assert format_size(1, True).endswith("item")
    assert format_size(2, True).endswith("items")
    assert format_size(2, True).startswith("2 ")


def test_format_size_dir_capped():
    cap = 50
    assert format_size(cap, True, cap).startswith(f">{cap - 1} ")
    assert format_size(cap - 1, True, cap).startswith(f"{cap - 1} ")


def test_generate_noscript_html():
    entries = [
        PathEntry("dir<1", True, 0, 3),
        PathEntry("f 1.txt", False, 0, 2048),
    ]
    page = generate_noscript_html("/a&b/", entries)
    assert "<title>Index of /a&amp;b/</title>" in page
    assert '<tr><td><a href="../?noscript">../</a></td><td></td><td></td></tr>' in page
    assert 'href="f%201.txt"' in page
    assert "dir&lt;1/</a>" in page
    assert "%3C1/?noscript" in page
    assert page.index("dir&lt;1") < page.index("f 1.txt")
    assert page.startswith("<html>\n<head>\n")
    assert page.endswith("</table>\n</body>\n")
    assert format_size(2048, False) in page
    assert format_size(3, True) in page