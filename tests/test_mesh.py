import numpy as np
import pytest

from uniscan_slice.mesh import CubeGrid, Extent, Face


def test_face_requires_three_vertices():
    with pytest.raises(ValueError):
        Face((1, 2), (1, 2))


def test_face_index_lists_must_match():
    with pytest.raises(ValueError):
        Face((1, 2, 3), (1, 2))


def test_face_uv_set_and_sharing():
    a = Face((1, 2, 3), (1, 2, 3))
    b = Face((3, 4, 5), (3, 4, 5))
    c = Face((6, 7, 8), (6, 7, 8))
    assert a.uv_set == frozenset({1, 2, 3})
    assert not a.uv_set.isdisjoint(b.uv_set)
    assert a.uv_set.isdisjoint(c.uv_set)


def test_untextured_face():
    f = Face((1, 2, 3))
    assert not f.textured
    assert f.uv_set == frozenset()


def test_remapped_leaves_face_untouched():
    f = Face((10, 20, 30), (5, 6, 7))
    verts, tex = f.remapped({10: 1, 20: 2, 30: 3}, {5: 3, 6: 2, 7: 1})
    assert verts == (1, 2, 3)
    assert tex == (3, 2, 1)
    assert f.vertex_indices == (10, 20, 30)
    assert f.uv_indices == (5, 6, 7)

    # A second pass sees the original numbering, not the first pass's output.
    verts2, tex2 = f.remapped({10: 4, 20: 5, 30: 6})
    assert verts2 == (4, 5, 6)
    assert tex2 == (5, 6, 7)


def test_extent_from_points_and_cubical():
    pts = np.asarray([(0.0, 1.0, 2.0), (4.0, 2.0, 3.0)])
    e = Extent.from_points(pts)
    assert (e.x_min, e.x_max, e.y_min, e.y_max, e.z_min, e.z_max) == (0.0, 4.0, 1.0, 2.0, 2.0, 3.0)
    c = e.cubical()
    assert np.allclose(c.size, (4.0, 4.0, 4.0))
    assert np.allclose(c.min_corner, e.min_corner)


def test_extent_json_keys():
    e = Extent(0.0, 1.0, 2.0, 3.0, 4.0, 5.0)
    assert e.to_json() == {"XMax": 1.0, "XMin": 0.0, "YMax": 3.0, "YMin": 2.0, "ZMax": 5.0, "ZMin": 4.0}


def test_cube_grid():
    g = CubeGrid(2, 3, 1)
    assert g.cubical() == CubeGrid(3, 3, 3)
    cubes = list(g.cubes())
    assert len(cubes) == 6
    assert len(set(cubes)) == 6
    with pytest.raises(ValueError):
        CubeGrid(0, 1, 1)
