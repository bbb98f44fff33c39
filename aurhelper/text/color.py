"""Terminal colouring and small human-readable formatting helpers."""

from __future__ import annotations

import struct
from datetime import datetime

RED_CODE = "\x1b[31m"
GREEN_CODE = "\x1b[32m"
YELLOW_CODE = "\x1b[33m"
BLUE_CODE = "\x1b[34m"
MAGENTA_CODE = "\x1b[35m"
CYAN_CODE = "\x1b[36m"
BOLD_CODE = "\x1b[1m"
RESET_CODE = "\x1b[0m"

_UNITS = ("", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi", "Yi")
_MASK64 = (1 << 64) - 1

_use_color = True


def set_use_color(enabled: bool) -> None:
    """Turn coloured output on or off for the whole process."""
    global _use_color
    _use_color = bool(enabled)


def use_color() -> bool:
    """Return whether coloured output is enabled."""
    return _use_color


def _stylize(start_code: str, text: str) -> str:
    if _use_color:
        return start_code + text + RESET_CODE
    return text


def red(text: str) -> str:
    return _stylize(RED_CODE, text)


def green(text: str) -> str:
    return _stylize(GREEN_CODE, text)


def yellow(text: str) -> str:
    return _stylize(YELLOW_CODE, text)


def cyan(text: str) -> str:
    return _stylize(CYAN_CODE, text)


def magenta(text: str) -> str:
    return _stylize(MAGENTA_CODE, text)


def blue(text: str) -> str:
    return _stylize(BLUE_CODE, text)


def bold(text: str) -> str:
    return _stylize(BOLD_CODE, text)


def color_hash(name: str) -> str:
    """Colour ``name`` with a colour derived from its hash; equal names get equal colours."""
    if not _use_color:
        return name

    value = 5381
    for byte in name.encode("utf-8"):
        value = (byte + (value << 5) + value) & _MASK64

    return f"\x1b[{value % 6 + 31}m{name}\x1b[0m"


def _as_float32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def human(size: int) -> str:
    """Format a byte count with binary unit prefixes, e.g. ``1.5 MiB``."""
    value = _as_float32(float(size))
    for unit in _UNITS:
        if value < 1024:
            return f"{value:.1f} {unit}B"
        value = _as_float32(value / 1024)

    return f"{size}B"


def format_time(timestamp: int) -> str:
    """Format a unix timestamp as a local ISO 8601 date (yyyy-mm-dd)."""
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d")


def format_time_query(timestamp: int) -> str:
    """Format a unix timestamp as e.g. ``Mon 02 Jan 2006 03:04:05 PM MST``."""
    moment = datetime.fromtimestamp(timestamp).astimezone()
    return moment.strftime("%a %d %b %Y %I:%M:%S %p %Z")