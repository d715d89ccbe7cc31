"""In-memory mesh model shared by the slicing stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Sequence, Tuple

import numpy as np

Cube = Tuple[int, int, int]


@dataclass(slots=True, frozen=True)
class CubeGrid:
    """Number of cubes along each axis."""

    x: int
    y: int
    z: int

    def __post_init__(self) -> None:
        if min(self.x, self.y, self.z) < 1:
            raise ValueError(f"cube grid dimensions must be >= 1, got {self.as_tuple()}")

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.z)

    def cubical(self) -> "CubeGrid":
        m = max(self.x, self.y, self.z)
        return CubeGrid(m, m, m)

    def cubes(self) -> Iterator[Cube]:
        for x in range(self.x):
            for y in range(self.y):
                for z in range(self.z):
                    yield (x, y, z)


@dataclass(slots=True, frozen=True)
class Extent:
    x_min: float
    x_max: float
    y_min: float
    y_max: float
    z_min: float
    z_max: float

    @classmethod
    def from_points(cls, points: np.ndarray) -> "Extent":
        if points.size == 0:
            return cls(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        lo = points.min(axis=0)
        hi = points.max(axis=0)
        return cls(
            x_min=float(lo[0]),
            x_max=float(hi[0]),
            y_min=float(lo[1]),
            y_max=float(hi[1]),
            z_min=float(lo[2]),
            z_max=float(hi[2]),
        )

    @property
    def min_corner(self) -> np.ndarray:
        return np.asarray((self.x_min, self.y_min, self.z_min), dtype=np.float64)

    @property
    def max_corner(self) -> np.ndarray:
        return np.asarray((self.x_max, self.y_max, self.z_max), dtype=np.float64)

    @property
    def size(self) -> np.ndarray:
        return self.max_corner - self.min_corner

    def cubical(self) -> "Extent":
        """Grow every axis to the longest side, keeping the minimum corner."""

        side = float(self.size.max())
        return Extent(
            x_min=self.x_min,
            x_max=self.x_min + side,
            y_min=self.y_min,
            y_max=self.y_min + side,
            z_min=self.z_min,
            z_max=self.z_min + side,
        )

    def to_json(self) -> Dict[str, float]:
        return {
            "XMax": self.x_max,
            "XMin": self.x_min,
            "YMax": self.y_max,
            "YMin": self.y_min,
            "ZMax": self.z_max,
            "ZMin": self.z_min,
        }


@dataclass(slots=True, frozen=True)
class Face:
    """A polygon as 1-based (vertex, uv) index pairs.

    Faces are never mutated after load. Output stages that need different
    numbering call `remapped`, which returns new index tuples and leaves the
    face untouched, so a face shared by several write passes cannot leak
    state between them. `uv_indices` is empty for untextured faces.
    """

    vertex_indices: Tuple[int, ...]
    uv_indices: Tuple[int, ...] = ()
    uv_set: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.vertex_indices) < 3:
            raise ValueError("a face needs at least 3 vertices")
        if self.uv_indices and len(self.uv_indices) != len(self.vertex_indices):
            raise ValueError("vertex and uv index lists must have equal length")
        object.__setattr__(self, "uv_set", frozenset(self.uv_indices))

    @property
    def textured(self) -> bool:
        return bool(self.uv_indices)

    def remapped(
        self,
        vertex_map: Mapping[int, int],
        uv_map: Mapping[int, int] | None = None,
    ) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        verts = tuple(vertex_map[v] for v in self.vertex_indices)
        if uv_map is None:
            return verts, self.uv_indices
        return verts, tuple(uv_map[t] for t in self.uv_indices)


@dataclass(slots=True)
class Mesh:
    vertices: np.ndarray  # (N, 3) float64
    uvs: np.ndarray  # (M, 2) float64, origin bottom-left
    faces: List[Face]
    grid: CubeGrid
    size: Extent
    cubical_size: Extent | None = None
    # Read-only after load: cube -> indices into `faces`.
    face_matrix: Dict[Cube, Tuple[int, ...]] = field(default_factory=dict)

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def virtual_size(self) -> Extent:
        return self.cubical_size if self.cubical_size is not None else self.size

    def faces_in_cube(self, cube: Cube) -> List[Face]:
        return [self.faces[i] for i in self.face_matrix.get(tuple(cube), ())]

    def faces_in_cubes(self, cubes: Sequence[Cube]) -> List[Face]:
        out: List[Face] = []
        for cube in cubes:
            out.extend(self.faces_in_cube(cube))
        return out

    def uv(self, index: int) -> Tuple[float, float]:
        u, v = self.uvs[index - 1]
        return (float(u), float(v))
