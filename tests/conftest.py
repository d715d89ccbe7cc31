import json
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from uniscan_slice.mesh import CubeGrid, Extent, Face, Mesh
from uniscan_slice.partition import build_face_matrix


def write_obj(path, vertices, uvs, faces):
    lines = ["# test mesh"]
    lines += [f"v {x} {y} {z}" for x, y, z in vertices]
    lines += [f"vt {u} {v}" for u, v in uvs]
    for verts, tex in faces:
        if tex:
            lines.append("f " + " ".join(f"{v}/{t}" for v, t in zip(verts, tex)))
        else:
            lines.append("f " + " ".join(str(v) for v in verts))
    Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")
    return Path(path)


def read_metadata_json(path):
    return json.loads(Path(path).read_text(encoding="utf-8"))


def quad_grid_data():
    """Four triangles, one per cube of a 2x2x1 grid, each with its own UV island."""

    vertices = []
    uvs = []
    faces = []
    for cx in range(2):
        for cy in range(2):
            x0 = 0.1 + cx
            y0 = 0.1 + cy
            base = len(vertices)
            vertices += [(x0, y0, 0.0), (x0 + 0.8, y0, 0.0), (x0, y0 + 0.8, 0.0)]
            u0 = 0.05 + 0.5 * cx
            v0 = 0.05 + 0.5 * cy
            tbase = len(uvs)
            uvs += [(u0, v0), (u0 + 0.4, v0), (u0, v0 + 0.4)]
            faces.append(((base + 1, base + 2, base + 3), (tbase + 1, tbase + 2, tbase + 3)))
    return vertices, uvs, faces


def make_mesh(vertices, uvs, faces, grid=CubeGrid(1, 1, 1), *, force_cubical=False):
    v = np.asarray(vertices, dtype=np.float64).reshape((-1, 3))
    t = np.asarray(uvs, dtype=np.float64).reshape((-1, 2))
    face_objs = [Face(tuple(fv), tuple(ft)) for fv, ft in faces]
    size = Extent.from_points(v)
    cubical = size.cubical() if force_cubical else None
    matrix = build_face_matrix(v, face_objs, cubical or size, grid)
    return Mesh(vertices=v, uvs=t, faces=face_objs, grid=grid, size=size, cubical_size=cubical, face_matrix=matrix)


@pytest.fixture
def quad_obj(tmp_path):
    vertices, uvs, faces = quad_grid_data()
    return write_obj(tmp_path / "quads.obj", vertices, uvs, faces)


@pytest.fixture
def texture_path(tmp_path):
    arr = np.zeros((64, 64, 3), dtype=np.uint8)
    arr[:32, :32] = (255, 0, 0)
    arr[:32, 32:] = (0, 255, 0)
    arr[32:, :32] = (0, 0, 255)
    arr[32:, 32:] = (255, 255, 0)
    path = tmp_path / "texture.jpg"
    Image.fromarray(arr).save(path, format="JPEG", quality=95)
    return path
