"""Mapping between the texture-tile grid and the cube grid.

Texture tiles cover the X/Y footprint only. Every tile owns the full Z
column of cubes under it, so one atlas serves the whole depth of the mesh.
"""

from __future__ import annotations

from typing import Iterator, List, Tuple

from .mesh import Cube, CubeGrid

Tile = Tuple[int, int]


def tile_ratios(grid: CubeGrid, tiles_x: int, tiles_y: int) -> Tuple[int, int]:
    if tiles_x < 1 or tiles_y < 1:
        raise ValueError("texture tile grid dimensions must be >= 1")
    if tiles_x > grid.x or tiles_y > grid.y:
        raise ValueError(
            f"texture tile grid {tiles_x}x{tiles_y} is finer than cube grid {grid.x}x{grid.y}"
        )
    return grid.x // tiles_x, grid.y // tiles_y


def cubes_for_tile(grid: CubeGrid, tiles_x: int, tiles_y: int, tile: Tile) -> List[Cube]:
    """Cubes owned by `tile`, in x, y, z order.

    Trailing cubes past `tiles_x * ratio` (when the grid does not divide
    evenly) belong to no tile.
    """

    x_ratio, y_ratio = tile_ratios(grid, tiles_x, tiles_y)
    tx, ty = tile
    return [
        (x, y, z)
        for x in range(tx * x_ratio, (tx + 1) * x_ratio)
        for y in range(ty * y_ratio, (ty + 1) * y_ratio)
        for z in range(grid.z)
    ]


def tile_for_cube(grid: CubeGrid, tiles_x: int, tiles_y: int, cube_x: int, cube_y: int) -> Tile:
    x_ratio, y_ratio = tile_ratios(grid, tiles_x, tiles_y)
    return (cube_x // x_ratio, cube_y // y_ratio)


def iter_tiles(tiles_x: int, tiles_y: int) -> Iterator[Tile]:
    """Row-major over the tile grid: y outer, x inner."""

    for ty in range(tiles_y):
        for tx in range(tiles_x):
            yield (tx, ty)


def uncovered_cube_columns(grid: CubeGrid, tiles_x: int, tiles_y: int) -> int:
    """Number of (x, y) cube columns no tile owns."""

    x_ratio, y_ratio = tile_ratios(grid, tiles_x, tiles_y)
    covered = (tiles_x * x_ratio) * (tiles_y * y_ratio)
    return grid.x * grid.y - covered
