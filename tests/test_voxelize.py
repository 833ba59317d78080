from __future__ import annotations

import numpy as np
import pytest

from kv6view.model.kv6 import Face
from kv6view.model.mesh_builder import synthesize
from kv6view.model.voxelize import from_grid, light_marker, visibility_masks


def test_bar_hides_shared_faces() -> None:
    filled = np.ones((2, 1, 1), dtype=bool)
    data = from_grid(filled, (10, 20, 30))

    assert data.voxel_count == 2
    assert data.voxel(0).visibility == 63 & ~int(Face.RIGHT)
    assert data.voxel(1).visibility == 63 & ~int(Face.LEFT)
    assert data.voxel(0).rgb == (10, 20, 30)
    assert synthesize(data).shape == (10 * 6,)


def test_vertical_neighbors_use_top_and_bottom() -> None:
    vis = visibility_masks(np.ones((1, 1, 2), dtype=bool))
    # z grows downward: the upper voxel (z=0) has its bottom covered.
    assert vis[0, 0, 0] == 63 & ~int(Face.BOTTOM)
    assert vis[0, 0, 1] == 63 & ~int(Face.TOP)


def test_hidden_voxels_are_not_stored() -> None:
    data = from_grid(np.ones((3, 3, 3), dtype=bool), (1, 1, 1))
    assert data.voxel_count == 26
    assert data.problems() == []
    assert data.xy_entries.reshape(3, 3)[1, 1] == 2


def test_columns_are_sorted_by_z() -> None:
    data = from_grid(np.ones((1, 1, 3), dtype=bool), (5, 5, 5))
    assert [data.voxel(i).z for i in range(3)] == [0, 1, 2]


def test_per_cell_colors() -> None:
    filled = np.zeros((2, 1, 1), dtype=bool)
    filled[1, 0, 0] = True
    colors = np.zeros((2, 1, 1, 3), dtype=np.uint8)
    colors[1, 0, 0] = (7, 8, 9)
    data = from_grid(filled, colors)
    assert data.voxel_count == 1
    assert data.voxel(0).rgb == (7, 8, 9)
    assert data.xy_entries.tolist() == [0, 1]


def test_default_pivot_is_grid_center() -> None:
    data = from_grid(np.ones((3, 5, 7), dtype=bool), (1, 1, 1))
    assert data.pivot == (1.0, 2.0, 3.0)


def test_rejects_non_3d_grid() -> None:
    with pytest.raises(ValueError):
        from_grid(np.ones((2, 2), dtype=bool), (1, 1, 1))


def test_light_marker_is_a_consistent_surface() -> None:
    data = light_marker(3, (255, 255, 200))
    assert data.problems() == []
    assert data.voxel_count > 0
    vis = data.voxels["visibility"]
    assert (vis != 0).all()
    assert (data.voxels["normal_index"] != 255).all()
    pos = synthesize(data)["position"]
    # x and y are centered on the pivot
    assert np.allclose(pos[:, :2].min(axis=0), -pos[:, :2].max(axis=0))
