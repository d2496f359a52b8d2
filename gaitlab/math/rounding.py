"""Half-up decimal rounding and compact number formatting for exports.

``round()`` in Python rounds half to even; dashboard values round 0.05 up, so
every reported angle goes through ``round_half_up``.
"""
from __future__ import annotations
import math
import numpy as np

__all__ = ["round_half_up", "round_array", "fmt_num"]


def round_half_up(x: float, ndigits: int = 1) -> float:
    if not math.isfinite(x):
        return float(x)
    scale = 10.0 ** ndigits
    return math.floor(float(x) * scale + 0.5) / scale


def round_array(a, ndigits: int = 1) -> np.ndarray:
    scale = 10.0 ** ndigits
    return np.floor(np.asarray(a, dtype=float) * scale + 0.5) / scale


def fmt_num(x) -> str:
    """Shortest text for a number: integral floats lose their '.0', -0 prints as 0."""
    if isinstance(x, (bool, np.bool_)):
        return "true" if x else "false"
    if isinstance(x, (int, np.integer)):
        return str(int(x))
    v = float(x)
    if not math.isfinite(v):
        return "NaN" if math.isnan(v) else ("Infinity" if v > 0 else "-Infinity")
    if v == 0:
        return "0"
    if v.is_integer() and abs(v) < 1e21:
        return str(int(v))
    return repr(v)
