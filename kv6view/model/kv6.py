from __future__ import annotations

import io
from dataclasses import dataclass, field
from enum import IntFlag
from typing import BinaryIO, Iterable, Mapping, Sequence

import numpy as np

MAGIC = b"Kvxl"
READ_CHUNK = 1 << 20

# Little-endian, unpadded on-disk layouts.
HEADER_DTYPE = np.dtype([
    ("size", "<u4", (3,)),
    ("pivot", "<f4", (3,)),
    ("voxel_count", "<u4"),
])

VOXEL_DTYPE = np.dtype([
    ("color", "u1", (4,)),  # b, g, r, a
    ("z", "<u2"),
    ("visibility", "u1"),
    ("normal_index", "u1"),
])

X_ENTRY_DTYPE = np.dtype("<u4")
XY_ENTRY_DTYPE = np.dtype("<u2")


class Face(IntFlag):
    """Visibility bits of a voxel. Any other bit is ignored."""

    LEFT = 1
    RIGHT = 2
    BACK = 4
    FRONT = 8
    TOP = 16
    BOTTOM = 32


ALL_FACES = int(Face.LEFT | Face.RIGHT | Face.BACK | Face.FRONT | Face.TOP | Face.BOTTOM)


class KV6Error(Exception):
    pass


class KV6ReadError(KV6Error, EOFError):
    """The stream ended before a section was complete."""


class KV6FormatError(KV6Error, ValueError):
    """The file decoded but its tables disagree with each other."""


@dataclass(frozen=True)
class Voxel:
    color: tuple[int, int, int, int]  # b, g, r, a
    z: int
    visibility: int = ALL_FACES
    normal_index: int = 255

    @classmethod
    def from_rgb(cls, rgb: Sequence[int], z: int, visibility: int = ALL_FACES, normal_index: int = 255, *, alpha: int = 128) -> "Voxel":
        r, g, b = (int(c) for c in rgb)
        return cls(color=(b, g, r, int(alpha)), z=int(z), visibility=int(visibility), normal_index=int(normal_index))

    @property
    def rgb(self) -> tuple[int, int, int]:
        b, g, r, _a = self.color
        return (r, g, b)


def _voxel_records(voxels: Iterable[Voxel]) -> np.ndarray:
    items = [(v.color, v.z, v.visibility, v.normal_index) for v in voxels]
    return np.array(items, dtype=VOXEL_DTYPE)


@dataclass(eq=False)
class VoxelDataset:
    size: tuple[int, int, int]
    pivot: tuple[float, float, float]
    voxel_count: int
    voxels: np.ndarray
    x_entries: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=X_ENTRY_DTYPE))
    xy_entries: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=XY_ENTRY_DTYPE))

    @classmethod
    def build(
        cls,
        size: Sequence[int],
        pivot: Sequence[float],
        columns: Mapping[tuple[int, int], Sequence[Voxel]],
    ) -> "VoxelDataset":
        """Assemble a consistent dataset from per-column voxel lists."""
        sx, sy, sz = (int(v) for v in size)
        ordered: list[Voxel] = []
        xy = np.zeros(sx * sy, dtype=XY_ENTRY_DTYPE)
        xs = np.zeros(sx, dtype=X_ENTRY_DTYPE)
        for (x, y) in columns:
            if not (0 <= x < sx and 0 <= y < sy):
                raise ValueError(f"column ({x}, {y}) outside {sx}x{sy}")
        for x in range(sx):
            for y in range(sy):
                col = columns.get((x, y), ())
                ordered.extend(col)
                xy[x * sy + y] = len(col)
                xs[x] += len(col)
        return cls(
            size=(sx, sy, sz),
            pivot=tuple(float(np.float32(p)) for p in pivot),  # stored as f32 on disk
            voxel_count=len(ordered),
            voxels=_voxel_records(ordered),
            x_entries=xs,
            xy_entries=xy,
        )

    def voxel(self, index: int) -> Voxel:
        rec = self.voxels[index]
        return Voxel(
            color=tuple(int(c) for c in rec["color"]),
            z=int(rec["z"]),
            visibility=int(rec["visibility"]),
            normal_index=int(rec["normal_index"]),
        )

    def problems(self) -> list[str]:
        sx, sy, sz = self.size
        out: list[str] = []
        if min(sx, sy, sz) <= 0:
            out.append(f"zero-sized dimension in size={self.size}")
        if len(self.voxels) != self.voxel_count:
            out.append(f"voxel_count={self.voxel_count} but {len(self.voxels)} voxel records")
        if len(self.x_entries) != sx:
            out.append(f"{len(self.x_entries)} x entries, expected {sx}")
        if len(self.xy_entries) != sx * sy:
            out.append(f"{len(self.xy_entries)} xy entries, expected {sx * sy}")
        total = int(np.sum(self.xy_entries, dtype=np.int64))
        if total != self.voxel_count:
            out.append(f"xy entries sum to {total}, voxel_count is {self.voxel_count}")
        return out

    def validate(self) -> None:
        issues = self.problems()
        if issues:
            raise KV6FormatError("inconsistent KV6 data: " + "; ".join(issues))


def _remaining(stream: BinaryIO) -> int | None:
    """Bytes left in a seekable stream, or None when it cannot be measured."""
    seekable = getattr(stream, "seekable", None)
    if seekable is None or not seekable():
        return None
    pos = stream.tell()
    end = stream.seek(0, io.SEEK_END)
    stream.seek(pos)
    return end - pos


def _read_exact(stream: BinaryIO, n: int, what: str) -> bytes:
    # Header counts are untrusted; never ask the stream for more than it holds.
    left = _remaining(stream)
    if left is not None and left < n:
        raise KV6ReadError(f"truncated KV6 stream: {what} needs {n} bytes, got {left}")
    chunks: list[bytes] = []
    got = 0
    while got < n:
        part = stream.read(min(n - got, READ_CHUNK))
        if not part:
            break
        chunks.append(part)
        got += len(part)
    if got != n:
        raise KV6ReadError(f"truncated KV6 stream: {what} needs {n} bytes, got {got}")
    return b"".join(chunks)


def _read_array(stream: BinaryIO, dtype: np.dtype, count: int, what: str) -> np.ndarray:
    if count == 0:
        return np.zeros(0, dtype=dtype)
    raw = _read_exact(stream, dtype.itemsize * count, what)
    return np.frombuffer(raw, dtype=dtype, count=count)


def decode(stream: BinaryIO, *, strict: bool = False) -> VoxelDataset:
    """Decode a KV6 model from a binary stream.

    The magic tag is skipped without checking. Table consistency is only
    verified when ``strict`` is set.
    """
    _read_exact(stream, len(MAGIC), "magic")
    header = _read_array(stream, HEADER_DTYPE, 1, "header")[0]
    sx, sy, sz = (int(v) for v in header["size"])
    pivot = tuple(float(v) for v in header["pivot"])
    voxel_count = int(header["voxel_count"])

    voxels = _read_array(stream, VOXEL_DTYPE, voxel_count, "voxel records")
    x_entries = _read_array(stream, X_ENTRY_DTYPE, sx, "x entries")
    xy_entries = _read_array(stream, XY_ENTRY_DTYPE, sx * sy, "xy entries")

    data = VoxelDataset(
        size=(sx, sy, sz),
        pivot=pivot,
        voxel_count=voxel_count,
        voxels=voxels,
        x_entries=x_entries,
        xy_entries=xy_entries,
    )
    if strict:
        data.validate()
    return data


def load(path, *, strict: bool = False) -> VoxelDataset:
    with open(path, "rb") as f:
        return decode(f, strict=strict)


def encode(data: VoxelDataset, *, magic: bytes = MAGIC) -> bytes:
    if len(magic) != len(MAGIC):
        raise ValueError(f"magic must be {len(MAGIC)} bytes")
    header = np.zeros(1, dtype=HEADER_DTYPE)
    header["size"] = data.size
    header["pivot"] = data.pivot
    header["voxel_count"] = data.voxel_count
    parts = [
        magic,
        header.tobytes(),
        np.asarray(data.voxels, dtype=VOXEL_DTYPE).tobytes(),
        np.asarray(data.x_entries).astype(X_ENTRY_DTYPE).tobytes(),
        np.asarray(data.xy_entries).astype(XY_ENTRY_DTYPE).tobytes(),
    ]
    return b"".join(parts)


def save(path, data: VoxelDataset) -> None:
    with open(path, "wb") as f:
        f.write(encode(data))
