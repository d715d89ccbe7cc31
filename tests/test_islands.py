import logging

import numpy as np

from uniscan_slice.islands import UVRect, find_connected_faces, find_uv_rectangles, island_rect, prune_contained
from uniscan_slice.mesh import Face


def test_transitive_islands():
    a = Face((1, 2, 3), (1, 2, 3))
    b = Face((4, 5, 6), (3, 4, 7))
    c = Face((7, 8, 9), (7, 8, 9))
    d = Face((10, 11, 12), (10, 11, 12))
    islands = find_connected_faces([a, d, c, b])
    assert [set(map(id, i)) for i in islands] == [{id(a), id(b), id(c)}, {id(d)}]


def test_chain_discovered_out_of_order():
    # c links to a only through b, which comes last.
    a = Face((1, 2, 3), (1, 2, 3))
    c = Face((1, 2, 3), (20, 21, 22))
    e = Face((1, 2, 3), (30, 31, 32))
    b = Face((1, 2, 3), (3, 20, 40))
    islands = find_connected_faces([a, c, e, b])
    assert len(islands) == 2
    assert islands[0] == [a, c, b]
    assert islands[1] == [e]


def test_isolated_faces_are_singletons():
    faces = [Face((1, 2, 3), (3 * i + 1, 3 * i + 2, 3 * i + 3)) for i in range(5)]
    islands = find_connected_faces(faces)
    assert [len(i) for i in islands] == [1] * 5


def test_untextured_faces_are_skipped():
    islands = find_connected_faces([Face((1, 2, 3)), Face((1, 2, 3), (1, 2, 3))])
    assert len(islands) == 1


def test_island_rect_covers_distinct_uvs():
    uvs = np.asarray([(0.1, 0.2), (0.4, 0.2), (0.1, 0.6), (0.3, 0.9)])
    island = [Face((1, 2, 3), (1, 2, 3)), Face((1, 2, 3), (2, 3, 4))]
    assert island_rect(island, uvs) == UVRect(0.1, 0.2, 0.4, 0.9)


def test_prune_removes_contained():
    rect1 = UVRect(0.2, 0.2, 0.3, 0.3)
    rect2 = UVRect(0.1, 0.1, 0.5, 0.5)
    rect3 = UVRect(0.6, 0.6, 0.9, 0.9)
    assert prune_contained([rect1, rect2, rect3]) == [rect2, rect3]


def test_prune_keeps_one_of_equal_rects(caplog):
    r = UVRect(0.1, 0.1, 0.4, 0.4)
    other = UVRect(0.5, 0.5, 0.6, 0.6)
    with caplog.at_level(logging.WARNING):
        kept = prune_contained([r, other, UVRect(0.1, 0.1, 0.4, 0.4)])
    assert kept == [r, other]
    assert "Removed 1 obscured rectangles" in caplog.text


def test_prune_touching_edges_is_inclusive():
    outer = UVRect(0.0, 0.0, 0.5, 0.5)
    edge = UVRect(0.0, 0.0, 0.5, 0.1)
    assert prune_contained([edge, outer]) == [outer]


def test_find_uv_rectangles():
    uvs = np.asarray([(0.1, 0.1), (0.2, 0.1), (0.1, 0.2), (0.6, 0.6), (0.8, 0.6), (0.6, 0.8)])
    islands = [[Face((1, 2, 3), (1, 2, 3))], [Face((1, 2, 3), (4, 5, 6))]]
    rects = find_uv_rectangles(islands, uvs)
    assert len(rects) == 2
    assert rects[1] == UVRect(0.6, 0.6, 0.8, 0.8)
