"""Wavefront OBJ loading and fragment writing."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from .mesh import CubeGrid, Extent, Face, Mesh
from .partition import build_face_matrix

log = logging.getLogger(__name__)


class ObjFormatError(ValueError):
    """Raised for malformed OBJ input, with the file and line it came from."""

    def __init__(self, message: str, *, path: str | Path | None = None, line: int | None = None) -> None:
        where = ""
        if path is not None:
            where = f"{path}"
            if line is not None:
                where += f":{line}"
            where += ": "
        super().__init__(where + message)
        self.path = path
        self.line = line


def _resolve_index(token: str, count: int) -> int:
    idx = int(token)
    if idx < 0:
        # Relative reference, -1 is the last element defined so far.
        idx = count + idx + 1
    return idx


def _parse_floats(parts: Sequence[str], n: int, required: int | None = None) -> Tuple[float, ...]:
    """Read `n` floats. Trailing values past `required` default to 0.0."""

    required = n if required is None else required
    if len(parts) < required:
        raise ValueError(f"expected {required} values, got {len(parts)}")
    values = tuple(float(p) for p in parts[:n]) + (0.0,) * max(0, n - len(parts))
    if not all(np.isfinite(values)):
        raise ValueError("non-finite coordinate")
    return values


def read_obj(path: str | Path) -> Tuple[np.ndarray, np.ndarray, List[Face]]:
    """Parse `v`, `vt` and `f` records. Everything else is ignored."""

    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"OBJ file not found: {path}")

    vertices: List[Tuple[float, ...]] = []
    uvs: List[Tuple[float, ...]] = []
    faces: List[Face] = []

    with path.open("r", encoding="utf-8", errors="replace") as fh:
        for lineno, raw in enumerate(fh, start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split()
            tag = parts[0].lower()
            try:
                if tag == "v":
                    vertices.append(_parse_floats(parts[1:], 3))
                elif tag == "vt":
                    uvs.append(_parse_floats(parts[1:], 2, required=1))
                elif tag == "f":
                    faces.append(_parse_face(parts[1:], len(vertices), len(uvs)))
            except ValueError as exc:
                raise ObjFormatError(f"{exc} in {line!r}", path=path, line=lineno) from exc

    v_arr = np.asarray(vertices, dtype=np.float64).reshape((-1, 3))
    t_arr = np.asarray(uvs, dtype=np.float64).reshape((-1, 2))
    return v_arr, t_arr, faces


def _parse_face(tokens: Sequence[str], vcount: int, tcount: int) -> Face:
    if len(tokens) < 3:
        raise ValueError("face needs at least 3 vertices")
    verts: List[int] = []
    tex: List[int] = []
    for tok in tokens:
        fields = tok.split("/")
        vi = _resolve_index(fields[0], vcount)
        if not 1 <= vi <= vcount:
            raise ValueError(f"references missing vertex {fields[0]}")
        verts.append(vi)
        if len(fields) > 1 and fields[1]:
            ti = _resolve_index(fields[1], tcount)
            if not 1 <= ti <= tcount:
                raise ValueError(f"references missing texture vertex {fields[1]}")
            tex.append(ti)
    if tex and len(tex) != len(verts):
        raise ValueError("face mixes entries with and without texture coordinates")
    return Face(tuple(verts), tuple(tex))


def load_mesh(path: str | Path, grid: CubeGrid, *, force_cubical: bool = False) -> Mesh:
    """Load an OBJ file and partition its faces into `grid`."""

    log.info("Loading %s", path)
    vertices, uvs, faces = read_obj(path)

    size = Extent.from_points(vertices)
    cubical = size.cubical() if force_cubical else None
    extent = cubical if cubical is not None else size

    matrix = build_face_matrix(vertices, faces, extent, grid)
    mesh = Mesh(
        vertices=vertices,
        uvs=uvs,
        faces=faces,
        grid=grid,
        size=size,
        cubical_size=cubical,
        face_matrix=matrix,
    )
    log.info("Loaded %d vertices and %d faces", mesh.vertex_count, len(faces))
    xs, ys, zs = (float(s) for s in size.size)
    log.info("Size: X %g Y %g Z %g", xs, ys, zs)
    return mesh


def write_fragment(
    path: str | Path,
    mesh: Mesh,
    faces: Sequence[Face],
    *,
    uv_overrides: Mapping[int, Tuple[float, float]] | None = None,
    mtllib: str | None = None,
    material: str = "material_0",
) -> int:
    """Write `faces` as a standalone OBJ with dense 1-based numbering.

    `uv_overrides` replaces the coordinates of original UV indices. Returns
    the number of vertices written; nothing is written for an empty face list.
    """

    if not faces:
        return 0

    vertex_map: Dict[int, int] = {}
    uv_map: Dict[int, int] = {}
    for face in faces:
        for vi in face.vertex_indices:
            if vi not in vertex_map:
                vertex_map[vi] = len(vertex_map) + 1
        for ti in face.uv_indices:
            if ti not in uv_map:
                uv_map[ti] = len(uv_map) + 1

    lines: List[str] = []
    if mtllib:
        lines.append(f"mtllib {mtllib}")
    for vi in vertex_map:
        x, y, z = mesh.vertices[vi - 1]
        lines.append(f"v {float(x):.6f} {float(y):.6f} {float(z):.6f}")
    overrides = uv_overrides or {}
    for ti in uv_map:
        u, v = overrides.get(ti) or mesh.uv(ti)
        lines.append(f"vt {float(u):.6f} {float(v):.6f}")
    if mtllib:
        lines.append(f"usemtl {material}")
    for face in faces:
        verts, tex = face.remapped(vertex_map, uv_map)
        if tex:
            lines.append("f " + " ".join(f"{v}/{t}" for v, t in zip(verts, tex)))
        else:
            lines.append("f " + " ".join(str(v) for v in verts))

    out_path = Path(path)
    if out_path.parent:
        out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return len(vertex_map)
