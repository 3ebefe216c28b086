"""Display helpers for sizes, rates and durations."""

from __future__ import annotations

from datetime import datetime, timezone

from qbtui.models import ETA_INFINITY, STATE_ETA
from qbtui.utils.timezones import resolve_timezone

_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")


def size_str(value: int | float | None) -> str:
    """Format a byte count with binary units."""
    if value is None or value < 0:
        return "-"
    amount = float(value)
    idx = 0
    while amount >= 1024 and idx < len(_UNITS) - 1:
        amount /= 1024
        idx += 1
    if idx == 0:
        return f"{int(amount)} {_UNITS[idx]}"
    return f"{amount:.1f} {_UNITS[idx]}"


def speed_str(value: int | float | None) -> str:
    """Format a transfer rate; zero rates render as an empty string."""
    if not value or value <= 0:
        return ""
    return f"{size_str(value)}/s"


def limit_str(value: int | None) -> str:
    """Format a rate limit where 0 means unlimited."""
    if not value or value <= 0:
        return "∞"
    return f"{size_str(value)}/s"


def eta_str(eta: int | None, state: str | None = None) -> str:
    """Format an ETA in seconds.

    Only downloading states have a meaningful ETA; other states render as
    ``-``. Unknown or infinite ETAs render as ``∞``.
    """
    if state is not None and state not in STATE_ETA:
        return "-"
    if eta is None or eta < 0 or eta >= ETA_INFINITY:
        return "∞"
    if eta == 0:
        return "0s"
    if eta < 60:
        return f"{eta}s"
    if eta < 3600:
        return f"{eta // 60}m"
    if eta < 86400:
        return f"{eta // 3600}h{(eta % 3600) // 60}m"
    return f"{eta // 86400}d{(eta % 86400) // 3600}h"


def progress_str(progress: float) -> str:
    return f"{progress * 100:.1f}%"


def ratio_str(ratio: float | None) -> str:
    if ratio is None or ratio < 0:
        return "-"
    return f"{ratio:.2f}"


def timestamp_str(value: int | None, tz_name: str | None = None) -> str:
    """Format a unix timestamp in the operator's timezone."""
    if not value or value <= 0:
        return "-"
    moment = datetime.fromtimestamp(value, tz=timezone.utc)
    return moment.astimezone(resolve_timezone(tz_name)).strftime("%Y-%m-%d %H:%M")


def truncate(text: str, width: int) -> str:
    """Shorten ``text`` to ``width`` characters with a trailing ellipsis."""
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."
