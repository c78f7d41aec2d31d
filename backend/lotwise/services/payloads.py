"""Coercion helpers for loosely-shaped collaborator JSON."""

from __future__ import annotations

from typing import Optional


def parse_float(val) -> Optional[float]:
    """Float from numbers or numeric strings ("1,850,000", "$2,600"); None otherwise."""
    if val is None or isinstance(val, bool):
        return None
    try:
        if isinstance(val, str):
            val = val.replace(",", "").replace("$", "").strip()
        result = float(val)
    except (ValueError, TypeError):
        return None
    if result != result:  # NaN
        return None
    return result


def parse_int(val) -> Optional[int]:
    f = parse_float(val)
    return int(f) if f is not None else None


def parse_positive(val) -> Optional[float]:
    f = parse_float(val)
    return f if f is not None and f > 0 else None


def pick(record: dict, *keys):
    """First present, non-empty value among ``keys``."""
    for key in keys:
        val = record.get(key)
        if val is not None and val != "":
            return val
    return None


def str_list(val) -> list[str]:
    if not isinstance(val, list):
        return []
    return [str(v) for v in val if v is not None]
