from __future__ import annotations

from typing import Sequence

import numpy as np

from kv6view.model.kv6 import Face, Voxel, VoxelDataset
from kv6view.model.normals import nearest_index

# (axis, step, face bit) for each neighbor; z grows downward in KV6.
_NEIGHBORS = (
    (0, -1, Face.LEFT),
    (0, 1, Face.RIGHT),
    (1, -1, Face.BACK),
    (1, 1, Face.FRONT),
    (2, -1, Face.TOP),
    (2, 1, Face.BOTTOM),
)


def _exposed(filled: np.ndarray, axis: int, step: int) -> np.ndarray:
    """True where the neighbor along axis/step is empty or outside the grid."""
    padded = np.pad(filled, [(1, 1)] * 3, constant_values=False)
    neighbor = np.roll(padded, -step, axis=axis)[1:-1, 1:-1, 1:-1]
    return ~neighbor


def visibility_masks(filled: np.ndarray) -> np.ndarray:
    filled = np.asarray(filled, dtype=bool)
    vis = np.zeros(filled.shape, dtype=np.uint8)
    for axis, step, bit in _NEIGHBORS:
        vis |= np.where(_exposed(filled, axis, step), np.uint8(bit), np.uint8(0))
    vis[~filled] = 0
    return vis


def from_grid(
    filled: np.ndarray,
    colors: np.ndarray | Sequence[int],
    *,
    pivot: Sequence[float] | None = None,
) -> VoxelDataset:
    """Build a KV6 dataset from a dense occupancy grid.

    ``filled`` is a bool array shaped (sx, sy, sz); ``colors`` is either one
    RGB triple or an (sx, sy, sz, 3) array. Only voxels with at least one
    exposed face are stored. Shading normals point away from the grid center.
    """
    filled = np.asarray(filled, dtype=bool)
    if filled.ndim != 3:
        raise ValueError(f"expected a 3D occupancy grid, got shape {filled.shape}")
    sx, sy, sz = filled.shape
    colors = np.asarray(colors, dtype=np.uint8)
    if colors.shape == (3,):
        colors = np.broadcast_to(colors, filled.shape + (3,))

    vis = visibility_masks(filled)
    center = (np.array(filled.shape, dtype=np.float64) - 1.0) * 0.5
    if pivot is None:
        pivot = tuple(float(c) for c in center)

    columns: dict[tuple[int, int], list[Voxel]] = {}
    for x, y, z in zip(*np.nonzero(vis)):
        dx, dy, dz = np.array([x, y, z], dtype=np.float64) - center
        normal = nearest_index((-dx, dy, -dz))
        columns.setdefault((int(x), int(y)), []).append(
            Voxel.from_rgb(colors[x, y, z], z=int(z), visibility=int(vis[x, y, z]), normal_index=normal)
        )
    return VoxelDataset.build((sx, sy, sz), pivot, columns)


def light_marker(radius: int = 3, color: Sequence[int] = (255, 255, 200)) -> VoxelDataset:
    """Small voxel ball used to show where the light comes from."""
    d = 2 * int(radius) + 1
    idx = np.indices((d, d, d), dtype=np.float64) - float(radius)
    filled = (idx ** 2).sum(axis=0) <= (float(radius) + 0.5) ** 2
    return from_grid(filled, color)
