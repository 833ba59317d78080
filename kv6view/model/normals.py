from __future__ import annotations

from functools import lru_cache

import numpy as np

GOLDEN_RATIO = 0.3819660112501052
TABLE_SIZE = 256
ZERO_INDEX = TABLE_SIZE - 1

_Z_MUL = 2.0 / ZERO_INDEX
_Z_ADD = _Z_MUL * 0.5 - 1.0


def generate() -> np.ndarray:
    """Build the 256-entry KV6 normal lookup table.

    Points are spread over the unit sphere with a golden-ratio spiral, then
    X and Z are flipped into render space. Entry 255 is the zero vector
    ("no normal").
    """
    i = np.arange(TABLE_SIZE, dtype=np.float64)
    z = i * _Z_MUL + _Z_ADD
    g = i * (GOLDEN_RATIO * np.pi * 2.0)
    r = np.sqrt(np.maximum(1.0 - z * z, 0.0))

    table = np.empty((TABLE_SIZE, 3), dtype=np.float32)
    table[:, 0] = -np.cos(g) * r
    table[:, 1] = np.sin(g) * r
    table[:, 2] = -z
    table[ZERO_INDEX] = 0.0
    return table


@lru_cache(maxsize=1)
def normal_table() -> np.ndarray:
    """Shared, read-only copy of the table."""
    table = generate()
    table.flags.writeable = False
    return table


def nearest_index(direction) -> int:
    """Index of the table normal closest to a render-space direction."""
    d = np.asarray(direction, dtype=np.float64)
    if not np.any(d):
        return ZERO_INDEX
    dots = normal_table()[:ZERO_INDEX].astype(np.float64) @ d
    return int(np.argmax(dots))
