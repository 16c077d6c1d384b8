from __future__ import annotations

import math
import os
import time


def ensure_dir(path: str) -> None:
    if path:
        os.makedirs(path, exist_ok=True)


def now_stamp() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def safe_float(v: str, default: float) -> float:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return default
    # nan and inf count as non-numeric input
    return f if math.isfinite(f) else default


def safe_int(v: str, default: int) -> int:
    try:
        return int(float(v))
    except (TypeError, ValueError, OverflowError):
        return default
