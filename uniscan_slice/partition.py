"""Assign faces to cubes of a regular 3D grid."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np

from .mesh import Cube, CubeGrid, Extent, Face

log = logging.getLogger(__name__)

ReferencePoints = Callable[[np.ndarray, Sequence[Face]], np.ndarray]


def first_vertex_reference(vertices: np.ndarray, faces: Sequence[Face]) -> np.ndarray:
    """Use each face's first vertex as its position.

    Faces straddling a cube boundary are not split; the whole face lands in
    the cube holding its first vertex.
    """

    if not faces:
        return np.zeros((0, 3), dtype=np.float64)
    first = np.fromiter((f.vertex_indices[0] for f in faces), dtype=np.int64, count=len(faces))
    return vertices[first - 1]


def cube_indices(points: np.ndarray, extent: Extent, grid: CubeGrid) -> np.ndarray:
    """Map points to integer cube coordinates, shape (N, 3).

    Each axis of `extent` is cut into equal intervals. Points on the upper
    boundary belong to the last cube and points outside the extent are
    clamped to the nearest cube.
    """

    points = np.asarray(points, dtype=np.float64).reshape((-1, 3))
    if not np.all(np.isfinite(points)):
        raise ValueError("cannot partition non-finite vertex coordinates")

    dims = np.asarray(grid.as_tuple(), dtype=np.int64)
    size = extent.size
    rel = points - extent.min_corner

    # Flat axes have zero size; everything on them goes to cube 0.
    safe = np.where(size > 0.0, size, 1.0)
    scaled = np.where(size > 0.0, rel / safe * dims, 0.0)
    idx = np.floor(scaled).astype(np.int64)
    return np.clip(idx, 0, dims - 1)


def build_face_matrix(
    vertices: np.ndarray,
    faces: Sequence[Face],
    extent: Extent,
    grid: CubeGrid,
    *,
    reference: ReferencePoints = first_vertex_reference,
) -> Dict[Cube, Tuple[int, ...]]:
    """Build the cube -> face-index lookup. Every face lands in exactly one cube."""

    points = reference(vertices, faces)
    idx = cube_indices(points, extent, grid)

    buckets: Dict[Cube, List[int]] = {}
    for fidx, (cx, cy, cz) in enumerate(idx.tolist()):
        buckets.setdefault((cx, cy, cz), []).append(fidx)

    log.debug("Partitioned %d faces into %d non-empty cubes", len(faces), len(buckets))
    return {cube: tuple(fids) for cube, fids in buckets.items()}
