"""
# utils.py
Date: 18/10/2026

Environment helpers used to seed CLI defaults, e.g.

    AWAIT_BENCH_ITERATIONS=50000 AWAIT_BENCH_FORCE_GC=1 python main.py
"""

import os

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def get_int_env(*names: str, default: int) -> int:
    """First of `names` that is set and parses as int, else `default`."""
    for n in names:
        v = os.environ.get(n)
        if v is None:
            continue
        try:
            return int(v)
        except ValueError:
            continue
    return default


def get_bool_env(*names: str, default: bool) -> bool:
    for n in names:
        v = os.environ.get(n)
        if v is None:
            continue
        v = v.strip().lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
    return default
