from __future__ import annotations

import numpy as np

from kv6view.model.kv6 import Face, VoxelDataset
from kv6view.model.normals import normal_table

# Interleaved vertex layout uploaded as-is: moderngl format "3f 3f 3f 3f1".
VERTEX_DTYPE = np.dtype([
    ("position", "<f4", (3,)),
    ("normal", "<f4", (3,)),
    ("face", "<f4", (3,)),
    ("color", "u1", (3,)),
])
VERTEX_FORMAT = "3f 3f 3f 3f1"
VERTEX_ATTRIBUTES = ("in_pos", "in_norm", "in_face", "in_color")

# Emission order of faces for one voxel.
FACE_ORDER = (Face.FRONT, Face.BACK, Face.TOP, Face.BOTTOM, Face.RIGHT, Face.LEFT)

FACE_NORMALS = np.array([
    [0.0, 1.0, 0.0],
    [0.0, -1.0, 0.0],
    [0.0, 0.0, 1.0],
    [0.0, 0.0, -1.0],
    [-1.0, 0.0, 0.0],
    [1.0, 0.0, 0.0],
], dtype=np.float32)

_QUADS = np.array([
    [[-0.5, 0.5, -0.5], [-0.5, 0.5, 0.5], [0.5, 0.5, 0.5], [0.5, 0.5, -0.5]],
    [[-0.5, -0.5, -0.5], [0.5, -0.5, -0.5], [0.5, -0.5, 0.5], [-0.5, -0.5, 0.5]],
    [[-0.5, -0.5, 0.5], [0.5, -0.5, 0.5], [0.5, 0.5, 0.5], [-0.5, 0.5, 0.5]],
    [[-0.5, -0.5, -0.5], [-0.5, 0.5, -0.5], [0.5, 0.5, -0.5], [0.5, -0.5, -0.5]],
    [[-0.5, -0.5, -0.5], [-0.5, -0.5, 0.5], [-0.5, 0.5, 0.5], [-0.5, 0.5, -0.5]],
    [[0.5, -0.5, -0.5], [0.5, 0.5, -0.5], [0.5, 0.5, 0.5], [0.5, -0.5, 0.5]],
], dtype=np.float32)

# Two triangles per quad: v1 v2 v3, v3 v4 v1.
_WINDING = np.array([0, 1, 2, 2, 3, 0], dtype=np.intp)
FACE_CORNERS = _QUADS[:, _WINDING, :]  # (6 faces, 6 verts, 3)

_FACE_BITS = np.array([int(f) for f in FACE_ORDER], dtype=np.uint8)


def _column_coords(data: VoxelDataset) -> tuple[np.ndarray, np.ndarray]:
    """Per-voxel (x, y) column coordinates, walking x outer, y inner."""
    sx, sy, _ = data.size
    counts = np.asarray(data.xy_entries, dtype=np.int64)[: sx * sy]
    cols = np.repeat(np.arange(counts.size, dtype=np.int64), counts)
    return cols // max(sy, 1), cols % max(sy, 1)


def _face_mask(visibility: np.ndarray) -> np.ndarray:
    return (visibility[:, None] & _FACE_BITS[None, :]) != 0


def vertex_count(data: VoxelDataset) -> int:
    xs, _ = _column_coords(data)
    n = min(xs.size, len(data.voxels))
    vis = np.asarray(data.voxels["visibility"][:n], dtype=np.uint8)
    return int(_face_mask(vis).sum()) * 6


def synthesize(data: VoxelDataset, table: np.ndarray | None = None) -> np.ndarray:
    """Build the unindexed triangle list for a decoded model.

    Voxels are consumed column by column in file order. Positions are moved
    into render space: x and z are flipped around the pivot, y is offset.
    Returns a structured array of ``VERTEX_DTYPE``.
    """
    if table is None:
        table = normal_table()

    xs, ys = _column_coords(data)
    # Anything not covered by both the column table and the records is skipped.
    n = min(xs.size, len(data.voxels))
    xs, ys = xs[:n], ys[:n]
    vox = data.voxels[:n]

    px, py, pz = (np.float32(p) for p in data.pivot)
    base = np.empty((n, 3), dtype=np.float32)
    base[:, 0] = -(xs.astype(np.float32) - px)
    base[:, 1] = ys.astype(np.float32) - py
    base[:, 2] = -vox["z"].astype(np.float32) - pz

    vi, fi = np.nonzero(_face_mask(np.asarray(vox["visibility"], dtype=np.uint8)))

    out = np.empty((vi.size, 6), dtype=VERTEX_DTYPE)
    out["position"] = base[vi][:, None, :] + FACE_CORNERS[fi]
    out["normal"] = np.asarray(table, dtype=np.float32)[vox["normal_index"][vi]][:, None, :]
    out["face"] = FACE_NORMALS[fi][:, None, :]
    # Stored b, g, r; emitted r, g, b.
    out["color"] = vox["color"][vi][:, None, 2::-1]
    return out.reshape(-1)


def bounds(vertices: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    if vertices.size == 0:
        zero = np.zeros(3, dtype=np.float32)
        return zero, zero.copy()
    pos = vertices["position"]
    return pos.min(axis=0), pos.max(axis=0)
