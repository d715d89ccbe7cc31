"""High-level pipeline tying together OBJ IO, partitioning, atlases and the manifest."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

from . import atlas as atlas_mod
from .manifest import MANIFEST_NAME, CubeMetadata, write_metadata_json
from .mesh import Cube, CubeGrid, Mesh
from .objio import load_mesh, write_fragment
from .tiles import Tile, cubes_for_tile, iter_tiles, tile_ratios, uncovered_cube_columns

log = logging.getLogger(__name__)

TEXTURE_SUBDIRECTORY = "texture"


class TileProcessingError(RuntimeError):
    """A texture tile failed; `tile` names it and `__cause__` holds the reason."""

    def __init__(self, tile: Tile, cause: BaseException) -> None:
        super().__init__(f"texture tile {tile[0]}_{tile[1]} failed: {cause}")
        self.tile = tile


@dataclass(slots=True)
class SlicingOptions:
    obj: str | Path
    cube_grid: CubeGrid
    texture: str | Path | None = None
    texture_slice_x: int = 1
    texture_slice_y: int = 1
    force_cubical: bool = False
    texture_scale: float = 1.0
    write_mtl: bool = False
    debug: bool = False  # sequential, deterministic tile order
    workers: int | None = None

    @property
    def grid(self) -> CubeGrid:
        return self.cube_grid.cubical() if self.force_cubical else self.cube_grid

    @property
    def texture_set_size(self) -> Tuple[int, int]:
        if self.texture is None:
            return (1, 1)
        return (int(self.texture_slice_x), int(self.texture_slice_y))

    def validate(self) -> None:
        if self.texture_scale <= 0:
            raise ValueError("texture_scale must be > 0")
        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be >= 1")
        tx, ty = self.texture_set_size
        tile_ratios(self.grid, tx, ty)


class CubeManager:
    """Loads a mesh once and writes cube fragments, atlases and the manifest."""

    def __init__(self, options: SlicingOptions, mesh: Mesh | None = None) -> None:
        options.validate()
        self.options = options
        self.grid = options.grid
        self.mesh = mesh if mesh is not None else load_mesh(options.obj, self.grid, force_cubical=options.force_cubical)
        self.texture: atlas_mod.SourceTexture | None = None
        if options.texture is not None:
            self.texture = atlas_mod.SourceTexture(options.texture)

    def cubes_for_tile(self, tile: Tile) -> List[Cube]:
        tx, ty = self.options.texture_set_size
        return cubes_for_tile(self.grid, tx, ty, tile)

    def generate_cubes(self, output_path: str | Path) -> CubeMetadata:
        output = Path(output_path)
        output.mkdir(parents=True, exist_ok=True)
        # Drop any manifest left by an earlier run.
        (output / MANIFEST_NAME).unlink(missing_ok=True)
        opts = self.options
        tiles_x, tiles_y = opts.texture_set_size

        metadata = CubeMetadata(
            grid=self.grid,
            world_bounds=self.mesh.size,
            virtual_world_bounds=self.mesh.virtual_size,
            vertex_count=self.mesh.vertex_count,
            texture_set_size=(tiles_x, tiles_y),
        )

        missing = uncovered_cube_columns(self.grid, tiles_x, tiles_y)
        if missing:
            log.warning(
                "Cube grid %dx%d is not a multiple of texture grid %dx%d; %d cube columns are skipped",
                self.grid.x,
                self.grid.y,
                tiles_x,
                tiles_y,
                missing,
            )

        tiles = list(iter_tiles(tiles_x, tiles_y))
        if opts.debug:
            for tile in tiles:
                self._run_tile(output, tile, metadata)
        else:
            self._run_parallel(output, tiles, metadata)

        manifest_path = write_metadata_json(output / MANIFEST_NAME, metadata)
        log.info("Wrote %s", manifest_path)
        return metadata

    def _run_parallel(self, output: Path, tiles: List[Tile], metadata: CubeMetadata) -> None:
        failures: Dict[Tile, TileProcessingError] = {}
        with ThreadPoolExecutor(max_workers=self.options.workers) as pool:
            futures = {pool.submit(self._run_tile, output, tile, metadata): tile for tile in tiles}
            for fut in as_completed(futures):
                exc = fut.exception()
                if exc is None:
                    continue
                tile = futures[fut]
                log.error("Tile %s failed: %s", tile, exc)
                if not isinstance(exc, TileProcessingError):
                    exc = TileProcessingError(tile, exc)
                failures[tile] = exc
        if failures:
            first = min(failures, key=lambda t: (t[1], t[0]))
            raise failures[first]

    def _run_tile(self, output: Path, tile: Tile, metadata: CubeMetadata) -> None:
        try:
            counts = self.generate_cubes_for_tile(output, tile)
        except TileProcessingError:
            raise
        except Exception as exc:
            raise TileProcessingError(tile, exc) from exc
        metadata.record(counts.items())

    def generate_cubes_for_tile(self, output_path: str | Path, tile: Tile) -> Dict[Cube, int]:
        """Write every cube of `tile` and return cube -> vertices written."""

        output = Path(output_path)
        uv_overrides: Dict[int, Tuple[float, float]] | None = None
        mtllib = None
        if self.texture is not None:
            texture_dir = output / TEXTURE_SUBDIRECTORY
            uv_overrides = self.process_texture_tile(texture_dir, tile)
            if uv_overrides and self.options.write_mtl:
                mtllib = f"{TEXTURE_SUBDIRECTORY}/{tile[0]}_{tile[1]}.mtl"

        counts: Dict[Cube, int] = {}
        for cube in self.cubes_for_tile(tile):
            x, y, z = cube
            log.debug("Processing cube %s", cube)
            faces = self.mesh.faces_in_cube(cube)
            counts[cube] = write_fragment(
                output / f"{x}_{y}_{z}.obj",
                self.mesh,
                faces,
                uv_overrides=uv_overrides,
                mtllib=mtllib,
            )
        return counts

    def process_texture_tile(self, output_path: str | Path, tile: Tile) -> Dict[int, Tuple[float, float]]:
        """Repack the tile's atlas and return new coordinates for its UVs."""

        if self.texture is None:
            raise ValueError("process_texture_tile requires a texture")
        log.info("Processing texture tile %s", tile)
        faces = self.mesh.faces_in_cubes(self.cubes_for_tile(tile))
        if not faces:
            log.info("No faces found in tile %s. No texture generated.", tile)
            return {}

        atlas_path = Path(output_path) / f"{tile[0]}_{tile[1]}.jpg"
        transforms = atlas_mod.build_tile_atlas(
            self.mesh,
            faces,
            self.texture,
            atlas_path,
            scale=float(self.options.texture_scale),
            mtl=bool(self.options.write_mtl),
        )
        return atlas_mod.remap_uvs(self.mesh, faces, transforms)

    def markup_transforms(self, output_path: str | Path) -> List[Path]:
        """Outline each tile's island rectangles on a copy of the source texture."""

        if self.texture is None:
            raise ValueError("markup_transforms requires a texture")
        out: List[Path] = []
        tiles_x, tiles_y = self.options.texture_set_size
        for tile in iter_tiles(tiles_x, tiles_y):
            faces = self.mesh.faces_in_cubes(self.cubes_for_tile(tile))
            packing = atlas_mod.pack_tile(self.mesh, faces, self.texture.size) if faces else None
            if packing is None:
                continue
            path = Path(output_path) / TEXTURE_SUBDIRECTORY / f"transforms_{tile[0]}_{tile[1]}.jpg"
            out.append(atlas_mod.markup_texture_transforms(self.texture, packing.transforms, path))
        return out


def slice_mesh(options: SlicingOptions, output_path: str | Path) -> CubeMetadata:
    """Run the slicing pipeline end-to-end."""

    started = time.perf_counter()
    manager = CubeManager(options)
    metadata = manager.generate_cubes(output_path)
    log.info("Sliced %s in %.2fs", options.obj, time.perf_counter() - started)
    return metadata
