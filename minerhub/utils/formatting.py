"""Display helpers for hashrates and durations."""

from __future__ import annotations

_HASHRATE_UNITS = ["K", "M", "G", "T", "P", "E"]
_TIME_UNITS = [("d", 86400), ("h", 3600), ("m", 60), ("s", 1)]


def humanize_hashrate(value: float, unit: str = "H/s") -> str:
    """Format a hashrate with a magnitude prefix, e.g. ``1.23 KH/s``."""
    if value == 0:
        return f"0 {unit}"

    scaled = float(value)
    prefix = ""
    for candidate in _HASHRATE_UNITS:
        if abs(scaled) < 1000:
            break
        scaled /= 1000
        prefix = candidate
    return f"{scaled:.2f} {prefix}{unit}"


def humanize_time(seconds: int) -> str:
    """Format a duration in seconds as ``1d 2h 3m 4s``, skipping zero parts."""
    remaining = int(seconds)
    if remaining <= 0:
        return "0s"

    parts = []
    for suffix, size in _TIME_UNITS:
        amount, remaining = divmod(remaining, size)
        if amount:
            parts.append(f"{amount}{suffix}")
    return " ".join(parts)
