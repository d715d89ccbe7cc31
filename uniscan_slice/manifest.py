"""Cube metadata manifest (metadata.json)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Tuple

import json

import numpy as np

from .mesh import Cube, CubeGrid, Extent

MANIFEST_NAME = "metadata.json"


@dataclass(slots=True)
class CubeMetadata:
    """Run summary plus one existence flag per cube.

    `cube_exists` is allocated once with the full grid shape. Tile workers
    each write only the cells of the cubes they own, so no locking is needed.
    """

    grid: CubeGrid
    world_bounds: Extent
    virtual_world_bounds: Extent
    vertex_count: int
    texture_set_size: Tuple[int, int] = (1, 1)
    cube_exists: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self.cube_exists = np.zeros(self.grid.as_tuple(), dtype=bool)

    def record(self, counts: Iterable[Tuple[Cube, int]]) -> None:
        for (x, y, z), vertex_count in counts:
            self.cube_exists[x, y, z] = vertex_count > 0

    def to_json(self) -> dict:
        tx, ty = self.texture_set_size
        return {
            "WorldBounds": self.world_bounds.to_json(),
            "VirtualWorldBounds": self.virtual_world_bounds.to_json(),
            "VertexCount": int(self.vertex_count),
            "TextureSetSize": {"X": int(tx), "Y": int(ty)},
            "CubeExists": self.cube_exists.tolist(),
        }


def write_metadata_json(path: str | Path, metadata: CubeMetadata) -> Path:
    out_path = Path(path)
    if out_path.is_dir():
        out_path = out_path / MANIFEST_NAME
    if out_path.parent:
        out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(metadata.to_json(), separators=(",", ":")), encoding="utf-8")
    return out_path
