"""Command line interface for uniscan-slice."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from .atlas import markup_texture_faces
from .image_tiles import ImageTiler
from .mesh import CubeGrid
from .pipeline import CubeManager, SlicingOptions, TileProcessingError

IMAGE_SUFFIXES = (".jpg", ".jpeg")
MESH_SUFFIXES = (".obj",)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="uniscan-slice")
    parser.add_argument("input", nargs="+", help="Input .obj meshes and/or .jpg images")
    parser.add_argument("-o", "--output", required=True, help="Output directory")

    parser.add_argument("-x", "--x-size", type=int, default=1, help="Cubes (or image tiles) along X")
    parser.add_argument("-y", "--y-size", type=int, default=1, help="Cubes (or image tiles) along Y")
    parser.add_argument("-z", "--z-size", type=int, default=1, help="Cubes along Z")
    parser.add_argument("--force-cubical", action="store_true", help="Use max(x,y,z) on every axis and cubical bounds")

    parser.add_argument("-t", "--texture", help="Source texture for the mesh")
    parser.add_argument("--texture-x", type=int, default=1, help="Texture tiles along X")
    parser.add_argument("--texture-y", type=int, default=1, help="Texture tiles along Y")
    parser.add_argument("--scale-texture", type=float, default=1.0, help="Uniform scale applied to written atlases")
    parser.add_argument("--write-mtl", action="store_true", help="Write an MTL per atlas and reference it from fragments")

    parser.add_argument("--debug", action="store_true", help="Process texture tiles sequentially")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads for parallel tile processing")
    markup = parser.add_mutually_exclusive_group()
    markup.add_argument("--markup-uv", action="store_true", help="Outline UV faces on the texture instead of slicing")
    markup.add_argument("--markup-transforms", action="store_true", help="Outline packed island rectangles instead of slicing")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug)")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _slice_obj(path: Path, output: Path, args: argparse.Namespace) -> None:
    grid = CubeGrid(args.x_size, args.y_size, args.z_size)
    if args.force_cubical:
        grid = grid.cubical()
        print(f"Due to --force-cubical grid size is now {grid.x},{grid.y},{grid.z}")

    options = SlicingOptions(
        obj=path,
        cube_grid=grid,
        texture=args.texture,
        texture_slice_x=args.texture_x,
        texture_slice_y=args.texture_y,
        force_cubical=bool(args.force_cubical),
        texture_scale=float(args.scale_texture),
        write_mtl=bool(args.write_mtl),
        debug=bool(args.debug),
        workers=args.workers,
    )
    if (args.markup_uv or args.markup_transforms) and not args.texture:
        raise ValueError("--markup-uv and --markup-transforms require --texture")

    manager = CubeManager(options)
    if args.markup_uv:
        written = markup_texture_faces(manager.mesh, args.texture, output / "texture_debug.jpg")
        print(f" -> Wrote {written}")
    elif args.markup_transforms:
        for written in manager.markup_transforms(output):
            print(f" -> Wrote {written}")
    else:
        manager.generate_cubes(output)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    started = time.perf_counter()
    print("MESH-TILER: STARTING TILING PROCESS")
    output = Path(args.output)
    inputs = [Path(p) for p in args.input]

    try:
        for path in inputs:
            suffix = path.suffix.lower()
            if suffix in IMAGE_SUFFIXES:
                print(" -> Generating image tiles")
                ImageTiler(path, args.x_size, args.y_size).generate_tiles(output)
            elif suffix in MESH_SUFFIXES:
                print(" -> Slicing OBJ")
                # One subdirectory per mesh when several are given.
                target = output if len(inputs) == 1 else output / path.stem
                _slice_obj(path, target, args)
            else:
                print(f"uniscan-slice only accepts .jpg and .obj files for input, skipping {path}")
    except (OSError, ValueError, TileProcessingError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f" ?> Elapsed {time.perf_counter() - started:.2f}s")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
