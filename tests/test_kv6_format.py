from __future__ import annotations

import io
import struct

import numpy as np
import pytest

from kv6view.model import kv6
from kv6view.model.kv6 import Face, KV6FormatError, KV6ReadError, Voxel, VoxelDataset


def _sample() -> VoxelDataset:
    return VoxelDataset.build(
        size=(2, 3, 8),
        pivot=(1.0, 1.5, 4.25),
        columns={
            (0, 0): [Voxel(color=(10, 20, 30, 128), z=0, visibility=63, normal_index=7)],
            (0, 2): [
                Voxel(color=(1, 2, 3, 4), z=2, visibility=int(Face.TOP), normal_index=255),
                Voxel(color=(5, 6, 7, 8), z=5, visibility=int(Face.BOTTOM | Face.LEFT), normal_index=0),
            ],
            (1, 1): [Voxel.from_rgb((200, 100, 50), z=7, visibility=0, normal_index=42)],
        },
    )


def _manual_file() -> bytes:
    out = b"Kvxl"
    out += struct.pack("<3I", 1, 2, 3)
    out += struct.pack("<3f", 0.5, 1.0, 1.5)
    out += struct.pack("<I", 2)
    out += struct.pack("<4BHBB", 11, 22, 33, 44, 2, 16, 9)
    out += struct.pack("<4BHBB", 55, 66, 77, 88, 1, 8, 255)
    out += struct.pack("<I", 2)
    out += struct.pack("<2H", 0, 2)
    return out


def test_decode_reads_fields_in_file_order() -> None:
    data = kv6.decode(io.BytesIO(_manual_file()))

    assert data.size == (1, 2, 3)
    assert data.pivot == (0.5, 1.0, 1.5)
    assert data.voxel_count == 2
    assert data.x_entries.tolist() == [2]
    assert data.xy_entries.tolist() == [0, 2]

    first = data.voxel(0)
    assert first.color == (11, 22, 33, 44)
    assert first.rgb == (33, 22, 11)
    assert first.z == 2
    assert first.visibility == 16
    assert first.normal_index == 9
    assert data.voxel(1) == Voxel(color=(55, 66, 77, 88), z=1, visibility=8, normal_index=255)


def test_voxel_record_is_eight_bytes() -> None:
    assert kv6.VOXEL_DTYPE.itemsize == 8
    assert kv6.HEADER_DTYPE.itemsize == 28


def test_round_trip_preserves_every_field() -> None:
    src = _sample()
    blob = kv6.encode(src)
    assert len(blob) == 4 + 28 + 8 * 4 + 4 * 2 + 2 * 6

    out = kv6.decode(io.BytesIO(blob))
    assert out.size == src.size
    assert out.pivot == src.pivot
    assert out.voxel_count == src.voxel_count == 4
    assert np.array_equal(out.voxels, src.voxels)
    assert np.array_equal(out.x_entries, src.x_entries)
    assert np.array_equal(out.xy_entries, src.xy_entries)
    assert [out.voxel(i) for i in range(4)] == [src.voxel(i) for i in range(4)]


def test_build_keeps_tables_consistent() -> None:
    data = _sample()
    assert int(data.xy_entries.sum()) == data.voxel_count
    assert data.x_entries.tolist() == [3, 1]
    assert data.xy_entries.tolist() == [1, 0, 2, 0, 1, 0]
    assert data.problems() == []
    data.validate()


def test_build_rejects_columns_outside_grid() -> None:
    with pytest.raises(ValueError):
        VoxelDataset.build((1, 1, 1), (0, 0, 0), {(1, 0): [Voxel(color=(0, 0, 0, 0), z=0)]})


@pytest.mark.parametrize("cut", [0, 3, 4, 20, 31, 32, 39, 47, 48, 51, 53, 55])
def test_truncated_stream_raises_read_error(cut: int) -> None:
    blob = _manual_file()
    assert len(blob) == 56
    with pytest.raises(KV6ReadError) as info:
        kv6.decode(io.BytesIO(blob[:cut]))
    assert isinstance(info.value, EOFError)


def _oversized_header(size: tuple[int, int, int], voxel_count: int) -> bytes:
    out = b"Kvxl"
    out += struct.pack("<3I", *size)
    out += struct.pack("<3f", 0.0, 0.0, 0.0)
    out += struct.pack("<I", voxel_count)
    return out + bytes(16)


class _Pipe:
    """Read-only stream without seek support."""

    def __init__(self, data: bytes) -> None:
        self._buf = io.BytesIO(data)

    def read(self, n: int = -1) -> bytes:
        return self._buf.read(n)


HUGE_COUNTS = [
    pytest.param((1, 1, 1), 0xFFFFFFFF, id="voxel_count"),
    pytest.param((0xFFFFFFFF, 0xFFFFFFFF, 1), 0, id="size"),
]


@pytest.mark.parametrize("size,voxel_count", HUGE_COUNTS)
def test_huge_header_counts_on_short_file_raise_read_error(size, voxel_count) -> None:
    blob = _oversized_header(size, voxel_count)
    with pytest.raises(KV6ReadError, match="truncated"):
        kv6.decode(io.BytesIO(blob))
    with pytest.raises(KV6ReadError, match="truncated"):
        kv6.decode(_Pipe(blob))


def test_unseekable_stream_decodes() -> None:
    data = kv6.decode(_Pipe(_manual_file()))
    assert data.voxel_count == 2
    assert data.xy_entries.tolist() == [0, 2]


def test_build_stores_pivot_at_file_precision() -> None:
    src = VoxelDataset.build((1, 1, 1), (0.1, 0.0, -2.3), {})
    assert src.pivot == (float(np.float32(0.1)), 0.0, float(np.float32(-2.3)))
    assert kv6.decode(io.BytesIO(kv6.encode(src))).pivot == src.pivot


def test_magic_is_not_checked_and_trailing_bytes_are_ignored() -> None:
    blob = b"JUNK" + _manual_file()[4:] + b"\x00" * 16
    data = kv6.decode(io.BytesIO(blob))
    assert data.voxel_count == 2


def test_inconsistent_tables_only_rejected_in_strict_mode() -> None:
    blob = bytearray(_manual_file())
    # xy entries claim 3 voxels, file holds 2
    blob[-2:] = struct.pack("<H", 3)

    data = kv6.decode(io.BytesIO(bytes(blob)))
    assert any("sum to 3" in p for p in data.problems())

    with pytest.raises(KV6FormatError):
        kv6.decode(io.BytesIO(bytes(blob)), strict=True)


def test_zero_sized_dimension_is_reported() -> None:
    data = VoxelDataset.build((0, 1, 1), (0, 0, 0), {})
    assert data.problems()
    with pytest.raises(KV6FormatError):
        data.validate()


def test_unknown_visibility_bits_survive_decoding() -> None:
    src = VoxelDataset.build((1, 1, 1), (0, 0, 0), {(0, 0): [Voxel(color=(0, 0, 0, 0), z=0, visibility=0xC8)]})
    out = kv6.decode(io.BytesIO(kv6.encode(src)))
    assert out.voxel(0).visibility == 0xC8


def test_save_and_load(tmp_path) -> None:
    path = tmp_path / "model.kv6"
    kv6.save(path, _sample())
    assert path.read_bytes()[:4] == kv6.MAGIC
    data = kv6.load(path, strict=True)
    assert data.voxel_count == 4


def test_load_missing_file_raises_os_error(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        kv6.load(tmp_path / "missing.kv6")


def test_encode_rejects_bad_magic_length() -> None:
    with pytest.raises(ValueError):
        kv6.encode(_sample(), magic=b"KV6")
